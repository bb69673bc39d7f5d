"""Interactive session state and the controller that drives it.

`SessionController.handle` is the only place `SessionState` changes. It
consumes key presses and background completion events and returns the
tasks to run next; it never blocks and never calls git itself.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import IntEnum

from gsr.compare import remote_ref
from gsr.models import Branch, Commit, ComparisonResult, Remote, SyncDirection, SyncStatus
from gsr.tasks import (
    AddRemote,
    BranchCreated,
    BranchesLoaded,
    BranchSwitched,
    CompareBranch,
    CompareCompleted,
    Completion,
    CreateBranch,
    FetchCompleted,
    FetchRemotes,
    LoadBranches,
    Quit,
    RemoteAdded,
    SwitchBranch,
    SyncBranch,
    SyncCompleted,
    Task,
)

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Another operation is in progress."
ONE_REMOTE_MESSAGE = "Only one remote found. Press 'a' to add a second remote."
BOTH_OR_NEITHER_MESSAGE = "Branch exists on both remotes or neither remote"
DIVERGED_MESSAGE = "Remotes have diverged - manual intervention required"


class Pane(IntEnum):
    COMMITS_A = 0
    COMMITS_B = 1
    DETAIL = 2


# Modes. Exactly one is active at a time: SessionState has a single `mode`.


@dataclass(frozen=True)
class Normal:
    """Commit panes with header and footer."""


@dataclass(frozen=True)
class HelpOverlay:
    pass


@dataclass(frozen=True)
class AddRemoteForm:
    name: str = ""
    url: str = ""
    field: int = 0  # 0 = name, 1 = url

    def typed(self, text: str) -> "AddRemoteForm":
        if self.field == 0:
            return replace(self, name=self.name + text)
        return replace(self, url=self.url + text)

    def erased(self) -> "AddRemoteForm":
        if self.field == 0:
            return replace(self, name=self.name[:-1])
        return replace(self, url=self.url[:-1])

    def toggled(self) -> "AddRemoteForm":
        return replace(self, field=(self.field + 1) % 2)


@dataclass(frozen=True)
class BranchSelector:
    """Branch list; `index` points into the filtered (visible) list."""

    branches: tuple[Branch, ...] = ()
    index: int = 0
    query: str = ""
    searching: bool = False

    def visible(self) -> tuple[Branch, ...]:
        if not self.query:
            return self.branches
        needle = self.query.lower()
        return tuple(b for b in self.branches if needle in b.name.lower())

    def highlighted(self) -> Branch | None:
        visible = self.visible()
        if 0 <= self.index < len(visible):
            return visible[self.index]
        return None

    def moved(self, delta: int) -> "BranchSelector":
        count = len(self.visible())
        if count == 0:
            return self
        return replace(self, index=max(0, min(count - 1, self.index + delta)))


@dataclass(frozen=True)
class BranchCreateConfirm:
    selector: BranchSelector
    branch: str
    target: str
    source: str


@dataclass(frozen=True)
class BranchInfoOverlay:
    selector: BranchSelector
    branch: Branch


@dataclass(frozen=True)
class SyncConfirm:
    direction: SyncDirection
    count: int


Mode = (
    Normal
    | HelpOverlay
    | AddRemoteForm
    | BranchSelector
    | BranchCreateConfirm
    | BranchInfoOverlay
    | SyncConfirm
)


@dataclass(frozen=True)
class KeyPressed:
    """A key press; printable keys as themselves, others by name (esc, enter, ...)."""

    key: str


Event = KeyPressed | Completion


@dataclass
class SessionState:
    remote_a: Remote
    remote_b: Remote | None
    branch: str
    mode: Mode = field(default_factory=Normal)
    result: ComparisonResult | None = None
    loading: bool = False
    message: str | None = None
    focus: Pane = Pane.COMMITS_A
    selected: int = 0

    @classmethod
    def initial(cls, remote_a: Remote, remote_b: Remote | None, branch: str) -> "SessionState":
        if remote_b is None:
            return cls(remote_a=remote_a, remote_b=None, branch=branch, message=ONE_REMOTE_MESSAGE)
        return cls(remote_a=remote_a, remote_b=remote_b, branch=branch, loading=True)

    def commits_for(self, pane: Pane) -> tuple[Commit, ...]:
        if self.result is None:
            return ()
        if pane == Pane.COMMITS_A:
            return self.result.commits_a
        if pane == Pane.COMMITS_B:
            return self.result.commits_b
        return ()

    def selected_commit(self) -> Commit | None:
        """The highlighted commit of whichever side has unique commits."""
        if self.result is None:
            return None
        commits = self.result.commits_a or self.result.commits_b
        if 0 <= self.selected < len(commits):
            return commits[self.selected]
        return None


def _selector_of(mode: Mode) -> BranchSelector | None:
    if isinstance(mode, BranchSelector):
        return mode
    if isinstance(mode, (BranchCreateConfirm, BranchInfoOverlay)):
        return mode.selector
    return None


def _with_selector(mode: Mode, selector: BranchSelector) -> Mode:
    if isinstance(mode, (BranchCreateConfirm, BranchInfoOverlay)):
        return replace(mode, selector=selector)
    return selector


def _is_text(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


class SessionController:
    """Event-driven state machine for one interactive session."""

    def __init__(self, state: SessionState) -> None:
        self.state = state

    def start(self) -> list[Task]:
        """Tasks to run when the session opens."""
        state = self.state
        if state.remote_b is None:
            return []
        state.loading = True
        return [FetchRemotes(state.remote_a.name, state.remote_b.name)]

    def handle(self, event: Event) -> list[Task]:
        """Apply one event to the state and return the tasks it starts."""
        if isinstance(event, KeyPressed):
            return self._on_key(event.key)
        logger.debug("Completion: %s", event)
        if isinstance(event, FetchCompleted):
            return self._on_fetch_completed(event)
        if isinstance(event, CompareCompleted):
            return self._on_compare_completed(event)
        if isinstance(event, SyncCompleted):
            return self._on_sync_completed(event)
        if isinstance(event, RemoteAdded):
            return self._on_remote_added(event)
        if isinstance(event, BranchesLoaded):
            return self._on_branches_loaded(event)
        if isinstance(event, BranchSwitched):
            return self._on_branch_switched(event)
        if isinstance(event, BranchCreated):
            return self._on_branch_created(event)
        raise TypeError(f"Unexpected event {event!r}")

    # Helpers

    def _refuse_if_busy(self) -> bool:
        if self.state.loading:
            self.state.message = BUSY_MESSAGE
            return True
        return False

    def _names(self) -> tuple[str, str]:
        remote_b = self.state.remote_b
        if remote_b is None:
            raise RuntimeError("second remote is not configured")
        return self.state.remote_a.name, remote_b.name

    def _need_two_remotes(self, action: str) -> bool:
        if self.state.remote_b is None:
            self.state.message = f"Need 2 remotes to {action}. Press 'a' to add a second remote."
            return True
        return False

    # Keys

    def _on_key(self, key: str) -> list[Task]:
        if key == "ctrl+c":
            return [Quit()]
        mode = self.state.mode
        if isinstance(mode, HelpOverlay):
            return self._help_key(key)
        if isinstance(mode, AddRemoteForm):
            return self._add_remote_key(mode, key)
        if isinstance(mode, BranchCreateConfirm):
            return self._branch_create_key(mode, key)
        if isinstance(mode, BranchInfoOverlay):
            self.state.mode = mode.selector
            return []
        if isinstance(mode, BranchSelector):
            if mode.searching:
                return self._branch_search_key(mode, key)
            return self._branch_selector_key(mode, key)
        if isinstance(mode, SyncConfirm):
            return self._sync_confirm_key(key)
        return self._normal_key(key)

    def _normal_key(self, key: str) -> list[Task]:
        state = self.state
        if key == "q":
            return [Quit()]
        if key == "?":
            state.mode = HelpOverlay()
        elif key == "a":
            if state.remote_b is not None:
                state.message = "Already have 2 remotes configured"
            elif not self._refuse_if_busy():
                state.mode = AddRemoteForm()
        elif key == "b":
            return self._open_branch_selector()
        elif key == "f":
            return self._request_fetch()
        elif key == "s":
            self._request_sync()
        elif key == "tab":
            state.focus = Pane((state.focus + 1) % len(Pane))
        elif key in ("j", "down"):
            self._move_selection(1)
        elif key in ("k", "up"):
            self._move_selection(-1)
        return []

    def _move_selection(self, delta: int) -> None:
        commits = self.state.commits_for(self.state.focus)
        if not commits:
            return
        self.state.selected = max(0, min(len(commits) - 1, self.state.selected + delta))

    def _request_fetch(self) -> list[Task]:
        if self._need_two_remotes("fetch") or self._refuse_if_busy():
            return []
        self.state.loading = True
        self.state.message = None
        return [FetchRemotes(*self._names())]

    def _request_sync(self) -> None:
        state = self.state
        if self._need_two_remotes("sync") or self._refuse_if_busy():
            return
        result = state.result
        if result is None:
            state.message = "Nothing to compare yet. Press 'f' to fetch."
        elif result.status == SyncStatus.IN_SYNC:
            state.message = "Remotes are already in sync"
        elif result.status == SyncStatus.DIVERGED:
            state.message = DIVERGED_MESSAGE
        elif result.status == SyncStatus.BRANCH_MISSING:
            state.message = (
                f"Branch '{state.branch}' is missing on a remote. Press 'b' then 'c' to create it."
            )
        else:
            state.mode = SyncConfirm(
                direction=result.direction(*self._names()), count=result.ahead_count()
            )

    def _open_branch_selector(self) -> list[Task]:
        if self._need_two_remotes("manage branches") or self._refuse_if_busy():
            return []
        self.state.mode = BranchSelector()
        self.state.loading = True
        self.state.message = None
        return [LoadBranches(*self._names())]

    def _help_key(self, key: str) -> list[Task]:
        if key in ("?", "esc"):
            self.state.mode = Normal()
        return []

    def _add_remote_key(self, form: AddRemoteForm, key: str) -> list[Task]:
        state = self.state
        if key == "esc":
            state.mode = Normal()
        elif key in ("tab", "down", "up"):
            state.mode = form.toggled()
        elif key == "backspace":
            state.mode = form.erased()
        elif key == "enter":
            name, url = form.name.strip(), form.url.strip()
            if not name or not url:
                state.message = "Both a name and a URL are required."
            elif not self._refuse_if_busy():
                state.loading = True
                return [AddRemote(name, url)]
        elif _is_text(key):
            state.mode = form.typed(key)
        return []

    def _branch_search_key(self, selector: BranchSelector, key: str) -> list[Task]:
        if key == "esc":
            self.state.mode = replace(selector, searching=False, query="", index=0)
        elif key == "enter":
            self.state.mode = replace(selector, searching=False)
        elif key == "backspace":
            self.state.mode = replace(selector, query=selector.query[:-1], index=0)
        elif _is_text(key):
            self.state.mode = replace(selector, query=selector.query + key, index=0)
        return []

    def _branch_selector_key(self, selector: BranchSelector, key: str) -> list[Task]:
        state = self.state
        if key == "esc":
            state.mode = Normal()
        elif key in ("j", "down"):
            state.mode = selector.moved(1)
        elif key in ("k", "up"):
            state.mode = selector.moved(-1)
        elif key == "/":
            state.mode = replace(selector, searching=True)
        elif key == "enter":
            branch = selector.highlighted()
            if branch is None:
                return []
            if branch.name == state.branch:
                state.mode = Normal()
                state.message = "Already on this branch"
            elif not self._refuse_if_busy():
                state.loading = True
                return [SwitchBranch(branch.name)]
        elif key == "r":
            if not self._refuse_if_busy():
                state.loading = True
                return [LoadBranches(*self._names())]
        elif key == "c":
            self._request_branch_create(selector)
        elif key == "i":
            branch = selector.highlighted()
            if branch is not None:
                state.mode = BranchInfoOverlay(selector=selector, branch=branch)
        return []

    def _request_branch_create(self, selector: BranchSelector) -> None:
        state = self.state
        branch = selector.highlighted()
        if branch is None or self._refuse_if_busy():
            return
        if not branch.on_one_side_only:
            state.message = BOTH_OR_NEITHER_MESSAGE
            return
        name_a, name_b = self._names()
        source, target = (name_a, name_b) if branch.exists_on_a else (name_b, name_a)
        state.mode = BranchCreateConfirm(
            selector=selector, branch=branch.name, target=target, source=source
        )

    def _branch_create_key(self, confirm: BranchCreateConfirm, key: str) -> list[Task]:
        state = self.state
        if key in ("y", "Y"):
            if self._refuse_if_busy():
                return []
            state.mode = confirm.selector
            state.loading = True
            return [
                CreateBranch(
                    remote=confirm.target,
                    branch=confirm.branch,
                    source_ref=remote_ref(confirm.source, confirm.branch),
                )
            ]
        if key in ("n", "N", "esc"):
            state.mode = confirm.selector
        return []

    def _sync_confirm_key(self, key: str) -> list[Task]:
        state = self.state
        if key in ("y", "Y"):
            if self._refuse_if_busy():
                return []
            result = state.result
            state.mode = Normal()
            if result is None:
                return []
            state.loading = True
            state.message = None
            return [SyncBranch(result.status, *self._names(), state.branch)]
        if key in ("n", "N", "esc"):
            state.mode = Normal()
        return []

    # Completions

    def _on_fetch_completed(self, event: FetchCompleted) -> list[Task]:
        state = self.state
        if event.error is not None:
            state.loading = False
            state.message = f"Fetch failed: {event.error}. Press 'f' to retry."
            return []
        if state.remote_b is None:
            state.loading = False
            return []
        return [CompareBranch(*self._names(), state.branch, note=event.note)]

    def _on_compare_completed(self, event: CompareCompleted) -> list[Task]:
        state = self.state
        state.loading = False
        if event.error is not None or event.result is None:
            state.message = f"Compare failed: {event.error}. Press 'f' to retry."
            return []
        state.result = event.result
        state.selected = 0
        state.message = event.note
        return []

    def _on_sync_completed(self, event: SyncCompleted) -> list[Task]:
        state = self.state
        note = f"Sync failed: {event.error}" if event.error else "Sync successful!"
        state.mode = Normal()
        state.message = note
        if state.remote_b is None:
            state.loading = False
            return []
        # Re-verify against the remotes after every push, failed or not.
        state.loading = True
        return [FetchRemotes(*self._names(), note=note)]

    def _on_remote_added(self, event: RemoteAdded) -> list[Task]:
        state = self.state
        state.loading = False
        state.mode = Normal()
        if event.error is not None or event.remote is None:
            state.message = f"Failed to add remote: {event.error}"
            return []
        state.remote_b = event.remote
        state.message = f"Remote '{event.remote.name}' added successfully! Press 'f' to fetch."
        return []

    def _on_branches_loaded(self, event: BranchesLoaded) -> list[Task]:
        state = self.state
        state.loading = False
        selector = _selector_of(state.mode)
        if event.error is not None:
            state.message = f"Failed to load branches: {event.error}"
            if selector is not None:
                state.mode = Normal()
            return []
        if selector is None:
            return []
        names = [branch.name for branch in event.branches]
        index = names.index(state.branch) if state.branch in names else 0
        state.mode = _with_selector(state.mode, BranchSelector(branches=event.branches, index=index))
        return []

    def _on_branch_switched(self, event: BranchSwitched) -> list[Task]:
        state = self.state
        state.mode = Normal()
        if event.error is not None:
            state.loading = False
            state.message = f"Failed to switch branch: {event.error}"
            return []
        state.branch = event.branch
        state.result = None
        state.selected = 0
        state.message = f"Switched to branch '{event.branch}'."
        if state.remote_b is None:
            state.loading = False
            return []
        state.loading = True
        return [CompareBranch(*self._names(), event.branch, note=state.message)]

    def _on_branch_created(self, event: BranchCreated) -> list[Task]:
        state = self.state
        if event.error is not None:
            state.message = f"Failed to create branch: {event.error}"
        else:
            state.message = f"Branch '{event.branch}' created on {event.remote}."
        if state.remote_b is None:
            state.loading = False
            return []
        state.loading = True
        return [LoadBranches(*self._names())]
