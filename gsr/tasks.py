"""Background tasks and the completion events they produce.

The session controller never calls git directly. It returns task records,
the UI runs each one off the main thread with `run_task`, and the single
event that comes back is fed into the controller again.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from gsr import git_ops
from gsr.compare import compare_branch
from gsr.config import Settings
from gsr.models import Branch, ComparisonResult, Remote, SyncStatus
from gsr.sync import sync_branch

logger = logging.getLogger(__name__)


# Tasks


@dataclass(frozen=True)
class FetchRemotes:
    remote_a: str
    remote_b: str
    note: str | None = None


@dataclass(frozen=True)
class CompareBranch:
    remote_a: str
    remote_b: str
    branch: str
    note: str | None = None


@dataclass(frozen=True)
class SyncBranch:
    status: SyncStatus
    remote_a: str
    remote_b: str
    branch: str


@dataclass(frozen=True)
class AddRemote:
    name: str
    url: str


@dataclass(frozen=True)
class LoadBranches:
    remote_a: str
    remote_b: str


@dataclass(frozen=True)
class SwitchBranch:
    branch: str


@dataclass(frozen=True)
class CreateBranch:
    remote: str
    branch: str
    source_ref: str


@dataclass(frozen=True)
class Quit:
    """Stop the session; handled by the UI, never run in the background."""


Task = (
    FetchRemotes
    | CompareBranch
    | SyncBranch
    | AddRemote
    | LoadBranches
    | SwitchBranch
    | CreateBranch
    | Quit
)


# Completion events


@dataclass(frozen=True)
class FetchCompleted:
    error: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class CompareCompleted:
    result: ComparisonResult | None = None
    error: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class SyncCompleted:
    error: str | None = None


@dataclass(frozen=True)
class RemoteAdded:
    remote: Remote | None = None
    error: str | None = None


@dataclass(frozen=True)
class BranchesLoaded:
    branches: tuple[Branch, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class BranchSwitched:
    branch: str
    error: str | None = None


@dataclass(frozen=True)
class BranchCreated:
    branch: str
    remote: str
    error: str | None = None


Completion = (
    FetchCompleted
    | CompareCompleted
    | SyncCompleted
    | RemoteAdded
    | BranchesLoaded
    | BranchSwitched
    | BranchCreated
)


def run_task(task: Task, repo_root: Path, settings: Settings) -> Completion:
    """Run a task to completion and describe the outcome as an event.

    Git and validation failures are folded into the event's `error` field.
    """
    try:
        return _execute(task, repo_root, settings)
    except (git_ops.GitError, ValueError) as exc:
        logger.warning("%s failed: %s", type(task).__name__, exc)
        return _failed(task, str(exc))


def _execute(task: Task, repo_root: Path, settings: Settings) -> Completion:
    if isinstance(task, FetchRemotes):
        # The second remote is only fetched once the first succeeded.
        git_ops.fetch(repo_root, task.remote_a, timeout=settings.timeout)
        git_ops.fetch(repo_root, task.remote_b, timeout=settings.timeout)
        return FetchCompleted(note=task.note)
    if isinstance(task, CompareBranch):
        result = compare_branch(
            repo_root, task.remote_a, task.remote_b, task.branch, limit=settings.commit_limit
        )
        return CompareCompleted(result=result, note=task.note)
    if isinstance(task, SyncBranch):
        sync_branch(
            repo_root,
            task.status,
            task.remote_a,
            task.remote_b,
            task.branch,
            timeout=settings.timeout,
        )
        return SyncCompleted()
    if isinstance(task, AddRemote):
        return RemoteAdded(remote=git_ops.add_remote(repo_root, task.name, task.url))
    if isinstance(task, LoadBranches):
        branches = git_ops.list_all_branches(repo_root, task.remote_a, task.remote_b)
        return BranchesLoaded(branches=tuple(branches))
    if isinstance(task, SwitchBranch):
        # Only the branch the session compares changes; the work tree is untouched.
        git_ops.validate_branch_name(task.branch)
        return BranchSwitched(branch=task.branch)
    if isinstance(task, CreateBranch):
        git_ops.create_branch_on_remote(
            repo_root, task.remote, task.branch, task.source_ref, timeout=settings.timeout
        )
        return BranchCreated(branch=task.branch, remote=task.remote)
    raise TypeError(f"{type(task).__name__} is not a background task")


def _failed(task: Task, error: str) -> Completion:
    if isinstance(task, FetchRemotes):
        return FetchCompleted(error=error, note=task.note)
    if isinstance(task, CompareBranch):
        return CompareCompleted(error=error, note=task.note)
    if isinstance(task, SyncBranch):
        return SyncCompleted(error=error)
    if isinstance(task, AddRemote):
        return RemoteAdded(error=error)
    if isinstance(task, LoadBranches):
        return BranchesLoaded(error=error)
    if isinstance(task, SwitchBranch):
        return BranchSwitched(branch=task.branch, error=error)
    if isinstance(task, CreateBranch):
        return BranchCreated(branch=task.branch, remote=task.remote, error=error)
    raise TypeError(f"{type(task).__name__} is not a background task")
