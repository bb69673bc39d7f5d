"""Render session state as Rich text blocks.

Nothing here mutates the session; the TUI calls `render` after every event
and copies the resulting `View` into its widgets.
"""

from dataclasses import dataclass

from rich.style import Style
from rich.text import Text

from gsr.models import Commit, ComparisonResult, SyncStatus
from gsr.session import (
    AddRemoteForm,
    BranchCreateConfirm,
    BranchInfoOverlay,
    BranchSelector,
    HelpOverlay,
    Pane,
    SessionState,
    SyncConfirm,
)

SPINNER = "|/-\\"

HELP_TEXT = """Keyboard Shortcuts:

  Navigation:
    ↑/k         Move up in list
    ↓/j         Move down in list
    Tab         Switch between panes

  Actions:
    a           Add remote (when only 1 remote exists)
    b           Branch selector (switch/manage branches)
    f           Fetch from remotes
    s           Sync commits

  Branch Management (in branch selector):
    /           Search branches
    c           Create branch on missing remote
    i           Show branch information
    r           Reload branch list

  Other:
    ?           Toggle this help
    q/Ctrl+C    Quit

Press ? or Esc to close this help."""

SELECTOR_HINT = "↑/↓/j/k: Navigate  Enter: Switch  c: Create  i: Info  /: Search  r: Refresh  Esc: Close"


@dataclass(frozen=True)
class Theme:
    """Styles used by the presenter, built once per app."""

    in_sync: Style
    ahead: Style
    diverged: Style
    accent: Style
    commit: Style
    muted: Style
    title: Style

    @classmethod
    def default(cls) -> "Theme":
        return cls(
            in_sync=Style(color="green"),
            ahead=Style(color="yellow"),
            diverged=Style(color="red"),
            accent=Style(color="magenta", bold=True),
            commit=Style(color="bright_cyan"),
            muted=Style(dim=True),
            title=Style(bold=True),
        )


@dataclass(frozen=True)
class View:
    header: Text
    pane_a: Text
    pane_b: Text
    detail: Text
    footer: Text
    overlay: Text | None = None


def format_sync_status(
    result: ComparisonResult, remote_a: str, remote_b: str, theme: Theme
) -> Text:
    """One-line description of a comparison, colored by severity."""
    status = result.status
    if status == SyncStatus.IN_SYNC:
        return Text(f"✓ {remote_a} and {remote_b} are in sync", style=theme.in_sync)
    if status == SyncStatus.AHEAD_A:
        return Text(
            f"→ {remote_a} has {result.ahead_a} commit(s) ahead of {remote_b}", style=theme.ahead
        )
    if status == SyncStatus.AHEAD_B:
        return Text(
            f"← {remote_b} has {result.ahead_b} commit(s) ahead of {remote_a}", style=theme.ahead
        )
    if status == SyncStatus.DIVERGED:
        return Text(
            f"⚠ Diverged: {remote_a} has {result.ahead_a}, "
            f"{remote_b} has {result.ahead_b} unique commits",
            style=theme.diverged,
        )
    if not result.has_branch_a and not result.has_branch_b:
        return Text(
            f"⚠ Branch doesn't exist on {remote_a} or {remote_b}. Push to create it.",
            style=theme.ahead,
        )
    missing = remote_a if not result.has_branch_a else remote_b
    return Text(
        f"⚠ Branch missing on {missing}. Press 'b' then 'c' to create it.", style=theme.ahead
    )


def _titled(title: str, style: Style) -> Text:
    text = Text()
    text.append(title, style=style)
    return text


def _remote_names(state: SessionState) -> tuple[str, str]:
    remote_b = state.remote_b.name if state.remote_b is not None else "-"
    return state.remote_a.name, remote_b


def render(state: SessionState, theme: Theme, spinner: str = "") -> View:
    """Build every visible block for the current state."""
    return View(
        header=_header(state, theme, spinner),
        pane_a=_commit_pane(state, Pane.COMMITS_A, theme),
        pane_b=_commit_pane(state, Pane.COMMITS_B, theme),
        detail=_detail(state, theme),
        footer=_footer(state, theme),
        overlay=_overlay(state, theme, spinner),
    )


def _header(state: SessionState, theme: Theme, spinner: str) -> Text:
    text = _titled(f"Branch: {state.branch} | ", theme.title)
    if state.remote_b is None:
        text.append("Waiting for a second remote.")
    elif state.loading:
        text.append(f"{spinner} Working with remotes...".strip())
    elif state.result is not None:
        text.append_text(
            format_sync_status(state.result, state.remote_a.name, state.remote_b.name, theme)
        )
    else:
        text.append("Ready. Press 'f' to fetch from remotes.")
    if state.message:
        text.append("\n")
        text.append(state.message)
    return text


def _commit_pane(state: SessionState, pane: Pane, theme: Theme) -> Text:
    if pane == Pane.COMMITS_B and state.remote_b is None:
        text = _titled("SECOND REMOTE", theme.title)
        text.append("\n\n  Press 'a' to add a second remote")
        return text

    remote = state.remote_a if pane == Pane.COMMITS_A else state.remote_b
    if remote is None:
        return Text()
    focused = state.focus == pane
    text = _titled(f"COMMITS ({remote.name})", theme.accent if focused else theme.title)
    text.append("\n\n")

    commits = state.commits_for(pane)
    if not commits:
        placeholder = "(waiting for fetch...)" if state.result is None else "(no unique commits)"
        text.append(f"  {placeholder}", style=theme.muted)
        return text

    lines = []
    for idx, commit in enumerate(commits):
        marker = "> " if focused and idx == state.selected else "  "
        line = Text(marker)
        line.append(f"{commit.short_id} {commit.summary}", style=theme.commit)
        lines.append(line)
    text.append_text(Text("\n").join(lines))
    return text


def _detail(state: SessionState, theme: Theme) -> Text:
    focused = state.focus == Pane.DETAIL
    text = _titled("DETAILS", theme.accent if focused else theme.title)
    commit = state.selected_commit()
    if commit is None:
        text.append("  (no commit selected)", style=theme.muted)
        return text
    text.append("\n")
    text.append_text(format_commit_detail(commit))
    return text


def format_commit_detail(commit: Commit) -> Text:
    return Text(
        f"commit {commit.full_id}\n"
        f"Author: {commit.author}\n"
        f"Date:   {commit.date_text}\n\n"
        f"    {commit.summary}"
    )


def _footer(state: SessionState, theme: Theme) -> Text:
    if state.remote_b is None:
        return Text("[a]dd remote [q]uit [?]help", style=theme.muted)
    return Text("[f]etch [s]ync [b]ranches [tab] pane [q]uit [?]help", style=theme.muted)


def _overlay(state: SessionState, theme: Theme, spinner: str) -> Text | None:
    mode = state.mode
    if isinstance(mode, HelpOverlay):
        return Text(HELP_TEXT)
    if isinstance(mode, AddRemoteForm):
        return _add_remote_dialog(mode, theme)
    if isinstance(mode, BranchSelector):
        return _branch_selector(state, mode, theme, spinner)
    if isinstance(mode, BranchCreateConfirm):
        text = _titled("Create Branch", theme.title)
        text.append(
            f"\n\nBranch: {mode.branch}\nRemote: {mode.target}\n\n"
            f"This will create the branch on {mode.target} "
            f"from the existing branch on {mode.source}.\n\nContinue? [y/n]"
        )
        return text
    if isinstance(mode, BranchInfoOverlay):
        return _branch_info(state, mode, theme)
    if isinstance(mode, SyncConfirm):
        text = _titled("Sync Confirmation", theme.title)
        text.append(
            f"\n\nDirection: {mode.direction.source} → {mode.direction.dest}\n"
            f"Commits to sync: {mode.count}\n\nContinue? [y/n]"
        )
        return text
    return None


def _add_remote_dialog(form: AddRemoteForm, theme: Theme) -> Text:
    text = _titled("Add Remote", theme.title)
    text.append("\n\n")
    for idx, (label, value, placeholder) in enumerate(
        (("Name: ", form.name, "(enter name)"), ("URL:  ", form.url, "(enter URL)"))
    ):
        active = form.field == idx
        text.append("> " if active else "  ")
        text.append(label)
        text.append(value or placeholder, style=theme.accent if active else theme.muted)
        text.append("\n")
    text.append(
        "\nPress Tab to switch fields\nPress Enter to submit\nPress Esc to cancel",
        style=theme.muted,
    )
    return text


def _branch_selector(
    state: SessionState, selector: BranchSelector, theme: Theme, spinner: str
) -> Text:
    if state.loading and not selector.branches:
        return Text(f"Loading branches... {spinner}".strip())

    name_a, name_b = _remote_names(state)
    text = _titled("Select Branch", theme.title)
    text.append("\n\n")
    visible = selector.visible()
    if not visible:
        text.append("  No branches found\n", style=theme.muted)
    for idx, branch in enumerate(visible):
        text.append("> " if idx == selector.index else "  ")
        if branch.exists_on_a and branch.exists_on_b:
            indicator = " [both]"
        elif branch.exists_on_a:
            indicator = f" [{name_a}]"
        else:
            indicator = f" [{name_b}]"
        if branch.name == state.branch:
            text.append(f"* {branch.name}{indicator}", style=theme.accent)
        else:
            text.append(f"{branch.name}{indicator}")
        text.append("\n")

    text.append("\n")
    if selector.searching:
        text.append(f"Search: {selector.query}_\nPress Esc to exit search", style=theme.muted)
    elif selector.query:
        text.append(f"Filter: {selector.query} (Press / to search again)", style=theme.muted)
    else:
        text.append(SELECTOR_HINT, style=theme.muted)
    return text


def _branch_info(state: SessionState, info: BranchInfoOverlay, theme: Theme) -> Text:
    name_a, name_b = _remote_names(state)
    branch = info.branch
    text = _titled("Branch Information", theme.title)
    text.append(f"\n\nName: {branch.name}\n\nAvailability:\n")
    availability = (
        (name_a, branch.exists_on_a),
        (name_b, branch.exists_on_b),
    )
    for name, present in availability:
        text.append(f"  {name}: ")
        if present:
            text.append("✓ Available", style=theme.in_sync)
        else:
            text.append("✗ Not found", style=theme.diverged)
        text.append("\n")
    text.append("\n")

    if branch.exists_on_a and branch.exists_on_b:
        result = state.result
        if branch.name == state.branch and result is not None:
            text.append("Status: ")
            text.append_text(format_sync_status(result, name_a, name_b, theme))
        else:
            text.append("Status: Switch to this branch to see sync status")
    else:
        text.append("Status: Branch only exists on one remote\n")
        text.append("Press 'c' to create on the other remote")

    text.append("\n\nPress any key to close", style=theme.muted)
    return text


def report_lines(result: ComparisonResult, remote_a: str, remote_b: str) -> list[str]:
    """Plain-text comparison report for non-interactive output."""
    lines = [format_sync_status(result, remote_a, remote_b, Theme.default()).plain]
    for remote, commits in ((remote_a, result.commits_a), (remote_b, result.commits_b)):
        if not commits:
            continue
        lines.append("")
        lines.append(f"Commits only on {remote}:")
        lines.extend(f"  {c.short_id} {c.summary} ({c.author}, {c.date_text})" for c in commits)
    return lines
