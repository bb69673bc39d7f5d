"""Git subprocess operations."""

import logging
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Sequence

from gsr.models import Branch, Commit, Remote

logger = logging.getLogger(__name__)

LOG_FORMAT = "%H|%h|%s|%an|%ai"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"
DEFAULT_TIMEOUT = 30.0


class GitError(Exception):
    """Git command failed."""

    def __init__(self, cmd: Sequence[str], output: str) -> None:
        self.cmd = list(cmd)
        self.output = output
        super().__init__(f"git {' '.join(cmd)}: {output}")


class GitTimeoutError(GitError):
    """Git command did not finish within its timeout."""

    def __init__(self, cmd: Sequence[str], timeout: float) -> None:
        self.timeout = timeout
        super().__init__(cmd, f"timed out after {timeout:g} seconds")


class GitParseError(GitError):
    """Git produced output that could not be parsed."""


class InvalidBranchNameError(ValueError):
    """Branch name violates git ref naming rules."""


def run_process(
    args: Sequence[str], cwd: Path | None = None, timeout: float | None = None
) -> subprocess.CompletedProcess[str]:
    """Run a git command without checking its exit status.

    Timeouts raise GitTimeoutError; a git that cannot be started (missing
    executable, missing working directory) raises GitError.
    """
    logger.debug("git %s (cwd=%s, timeout=%s)", " ".join(args), cwd, timeout)
    try:
        return subprocess.run(
            ["git", *args],
            cwd=cwd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        logger.warning("git %s timed out after %s seconds", " ".join(args), timeout)
        raise GitTimeoutError(args, timeout or 0) from exc
    except OSError as exc:
        logger.warning("git %s could not run: %s", " ".join(args), exc)
        raise GitError(args, str(exc)) from exc


def _failure_output(result: subprocess.CompletedProcess[str]) -> str:
    return (result.stderr or result.stdout or "").strip()


def run(args: Sequence[str], cwd: Path | None = None, timeout: float | None = None) -> str:
    """Run a git command and return stdout."""
    result = run_process(args, cwd=cwd, timeout=timeout)
    if result.returncode != 0:
        output = _failure_output(result) or f"exit status {result.returncode}"
        logger.warning("git %s failed: %s", " ".join(args), output)
        raise GitError(args, output)
    return result.stdout.strip()


def get_repo_root(cwd: Path | None = None) -> Path:
    """Get the top-level directory of the work tree."""
    return Path(run(["rev-parse", "--show-toplevel"], cwd=cwd))


def get_current_branch(repo_root: Path) -> str:
    """Get the name of the checked-out branch."""
    branch = run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root)
    if not branch or branch == "HEAD":
        raise GitError(["rev-parse", "--abbrev-ref", "HEAD"], "detached HEAD or invalid branch")
    return branch


# Remotes


def list_remote_names(repo_root: Path) -> list[str]:
    """List configured remote names."""
    out = run(["remote"], cwd=repo_root)
    return [line.strip() for line in out.splitlines() if line.strip()]


def get_remote_url(repo_root: Path, name: str) -> str:
    """Get the URL for a remote."""
    return run(["remote", "get-url", name], cwd=repo_root)


def list_remotes(repo_root: Path) -> list[Remote]:
    """List configured remotes with their URLs."""
    return [
        Remote(name=name, url=get_remote_url(repo_root, name))
        for name in list_remote_names(repo_root)
    ]


def remote_exists(repo_root: Path, name: str) -> bool:
    """Check if a remote is configured."""
    return name in list_remote_names(repo_root)


def add_remote(repo_root: Path, name: str, url: str) -> Remote:
    """Add a remote and return it as configured."""
    if remote_exists(repo_root, name):
        raise GitError(["remote", "add", name, url], f"remote '{name}' already exists")
    run(["remote", "add", name, url], cwd=repo_root)
    return Remote(name=name, url=get_remote_url(repo_root, name))


def fetch(repo_root: Path, remote: str, timeout: float | None = DEFAULT_TIMEOUT) -> None:
    """Fetch from a remote."""
    run(["fetch", remote], cwd=repo_root, timeout=timeout)


# Branches


def list_remote_branches(repo_root: Path, remote: str) -> list[str]:
    """List branch names present on a remote."""
    out = run(["ls-remote", "--heads", remote], cwd=repo_root)
    branches: list[str] = []
    for line in out.splitlines():
        parts = line.split()
        if len(parts) < 2 or not parts[1].startswith("refs/heads/"):
            continue
        branches.append(parts[1].removeprefix("refs/heads/"))
    return branches


def branch_exists_on_remote(repo_root: Path, remote: str, branch: str) -> bool:
    """Check if a branch exists on a remote."""
    out = run(["ls-remote", "--heads", remote, f"refs/heads/{branch}"], cwd=repo_root)
    return bool(out.strip())


def list_all_branches(repo_root: Path, remote_a: str, remote_b: str) -> list[Branch]:
    """Merge the branch lists of two remotes, sorted by name.

    Names are compared as exact, case-sensitive strings.
    """
    on_a = set(list_remote_branches(repo_root, remote_a))
    on_b = set(list_remote_branches(repo_root, remote_b))
    return [
        Branch(name=name, exists_on_a=name in on_a, exists_on_b=name in on_b)
        for name in sorted(on_a | on_b)
    ]


def validate_branch_name(name: str) -> None:
    """Raise InvalidBranchNameError if name is not a usable branch name."""
    if not name:
        raise InvalidBranchNameError("branch name cannot be empty")
    if name.startswith("."):
        raise InvalidBranchNameError("branch name cannot start with a dot")
    if name.endswith(".lock"):
        raise InvalidBranchNameError("branch name cannot end with '.lock'")
    for pattern, label in (
        ("..", "'..'"),
        ("~", "'~'"),
        ("^", "'^'"),
        (":", "':'"),
        ("?", "'?'"),
        ("*", "'*'"),
        ("[", "'['"),
        (" ", "spaces"),
        ("@{", "'@{'"),
    ):
        if pattern in name:
            raise InvalidBranchNameError(f"branch name cannot contain {label}")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidBranchNameError("branch name cannot contain control characters")


def push(
    repo_root: Path,
    remote: str,
    source_ref: str,
    branch: str,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> None:
    """Push a ref to refs/heads/<branch> on a remote."""
    run(["push", remote, f"{source_ref}:refs/heads/{branch}"], cwd=repo_root, timeout=timeout)


def create_branch_on_remote(
    repo_root: Path,
    remote: str,
    branch: str,
    source_ref: str,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> None:
    """Create a branch on a remote by pushing an existing ref to it."""
    validate_branch_name(branch)
    push(repo_root, remote, source_ref, branch, timeout=timeout)


# History queries


def resolve_ref(repo_root: Path, ref: str) -> str | None:
    """Resolve a ref to a commit id, returning None if it does not exist.

    Failures other than a missing ref raise GitError.
    """
    args = ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"]
    result = run_process(args, cwd=repo_root)
    if result.returncode == 0:
        return result.stdout.strip()
    output = _failure_output(result)
    if result.returncode == 1 and not output:
        return None
    raise GitError(args, output or f"exit status {result.returncode}")


def count_commits_between(repo_root: Path, base: str, tip: str) -> int:
    """Count commits reachable from tip but not from base."""
    args = ["rev-list", "--count", f"{base}..{tip}"]
    out = run(args, cwd=repo_root)
    if not out.isdigit():
        raise GitParseError(args, f"invalid count output: {out!r}")
    return int(out)


def log_between(repo_root: Path, base: str, tip: str, limit: int) -> list[Commit]:
    """List commits reachable from tip but not from base, newest first."""
    args = ["log", f"--format={LOG_FORMAT}", f"-n{limit}", f"{base}..{tip}"]
    out = run(args, cwd=repo_root)
    commits: list[Commit] = []
    for line in out.splitlines():
        if not line.strip():
            continue
        commit = parse_log_line(line)
        if commit is None:
            raise GitParseError(args, f"unexpected log line: {line!r}")
        commits.append(commit)
    return commits


def parse_log_line(line: str) -> Commit | None:
    """Parse one `LOG_FORMAT` line; None if the ids or fields are missing."""
    head = line.split("|", 2)
    if len(head) < 3:
        return None
    full_id, short_id, rest = head
    tail = rest.rsplit("|", 2)
    if len(tail) < 3 or not full_id or not short_id:
        return None
    summary, author, date_text = tail
    date_text = date_text.strip()
    try:
        timestamp = datetime.strptime(date_text, DATE_FORMAT)
    except ValueError:
        logger.warning("Unparsable commit date %r for %s", date_text, short_id)
        timestamp = datetime.now().astimezone()
    return Commit(
        full_id=full_id,
        short_id=short_id,
        summary=summary,
        author=author,
        timestamp=timestamp,
        date_text=date_text,
    )
