"""Textual TUI for gsr."""

import logging
import threading
from pathlib import Path

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Static

from gsr.config import Settings
from gsr.presenter import SPINNER, Theme, render
from gsr.session import Event, KeyPressed, SessionController, SessionState
from gsr.tasks import Quit, Task, run_task

logger = logging.getLogger(__name__)

CSS = """
Screen {
    layout: vertical;
}

#header {
    padding: 0 1;
    height: auto;
    border-bottom: solid $primary;
}

#panes {
    height: 1fr;
}

.pane {
    width: 1fr;
    height: 1fr;
    padding: 1;
    border: solid $panel;
}

#detail {
    height: auto;
    max-height: 8;
    padding: 0 1;
    border-top: solid $panel;
}

#footer {
    padding: 0 1;
    height: 1;
    color: $text-muted;
}

.modal {
    align: center middle;
    height: 1fr;
}

.modal-body {
    width: auto;
    max-width: 100;
    height: auto;
    border: thick $primary;
    background: $surface;
    padding: 1 2;
}
"""

# Textual key names that the session knows by another name or as-is.
NAMED_KEYS = {
    "escape": "esc",
    "enter": "enter",
    "tab": "tab",
    "backspace": "backspace",
    "up": "up",
    "down": "down",
    "ctrl+c": "ctrl+c",
}


def normalize_key(key: str, character: str | None) -> str | None:
    """Translate a Textual key event into the session's key vocabulary."""
    if key in NAMED_KEYS:
        return NAMED_KEYS[key]
    if character and len(character) == 1 and character.isprintable():
        return character
    return None


class SessionView(Vertical, can_focus=True):
    """Focus target that hands every key press to the session."""

    def on_key(self, event: events.Key) -> None:
        key = normalize_key(event.key, event.character)
        if key is None:
            return
        event.stop()
        event.prevent_default()
        app = self.app
        if isinstance(app, SyncApp):
            app.handle_key(key)


class SyncApp(App[None]):
    """Main textual application."""

    CSS = CSS

    def __init__(
        self,
        repo_root: Path,
        state: SessionState,
        settings: Settings,
        theme: Theme | None = None,
    ) -> None:
        super().__init__()
        self.repo_root = repo_root
        self.settings = settings
        self.controller = SessionController(state)
        self.theme_styles = theme or Theme.default()
        self._spinner_index = 0

    def compose(self) -> ComposeResult:
        with SessionView(id="session"):
            with Vertical(id="main"):
                yield Static("", id="header")
                with Horizontal(id="panes"):
                    yield Static("", id="pane_a", classes="pane")
                    yield Static("", id="pane_b", classes="pane")
                yield Static("", id="detail")
                yield Static("", id="footer")
            with Vertical(id="overlay", classes="modal"):
                yield Static("", id="overlay_body", classes="modal-body")

    def on_mount(self) -> None:
        self.query_one(SessionView).focus()
        self._dispatch(self.controller.start())
        self._repaint()
        self.set_interval(0.1, self._tick)

    def _tick(self) -> None:
        if self.controller.state.loading:
            self._spinner_index += 1
            self._repaint()

    def handle_key(self, key: str) -> None:
        self._apply(KeyPressed(key))

    def _apply(self, event: Event) -> None:
        self._dispatch(self.controller.handle(event))
        self._repaint()

    def _dispatch(self, tasks: list[Task]) -> None:
        for task in tasks:
            if isinstance(task, Quit):
                self.exit(None)
                return
            self._start_task(task)

    def _start_task(self, task: Task) -> None:
        logger.debug("Starting %s", task)

        def runner() -> None:
            event = run_task(task, self.repo_root, self.settings)
            self.call_from_thread(self._apply, event)

        threading.Thread(target=runner, daemon=True).start()

    def _repaint(self) -> None:
        spinner = SPINNER[self._spinner_index % len(SPINNER)]
        view = render(self.controller.state, self.theme_styles, spinner)
        self.query_one("#header", Static).update(view.header)
        self.query_one("#pane_a", Static).update(view.pane_a)
        self.query_one("#pane_b", Static).update(view.pane_b)
        self.query_one("#detail", Static).update(view.detail)
        self.query_one("#footer", Static).update(view.footer)

        overlay_open = view.overlay is not None
        self.query_one("#main", Vertical).display = not overlay_open
        self.query_one("#overlay", Vertical).display = overlay_open
        if view.overlay is not None:
            self.query_one("#overlay_body", Static).update(view.overlay)


def run_tui(repo_root: Path, state: SessionState, settings: Settings) -> None:
    """Run the textual TUI application."""
    SyncApp(repo_root, state, settings).run()
