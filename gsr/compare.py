"""Compare one branch between two remotes."""

import logging
from pathlib import Path

from gsr import git_ops
from gsr.models import Commit, ComparisonResult, SyncStatus

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_LIMIT = 50


def remote_ref(remote: str, branch: str) -> str:
    """Return the remote-tracking ref for a branch."""
    return f"refs/remotes/{remote}/{branch}"


def compare_branch(
    repo_root: Path,
    remote_a: str,
    remote_b: str,
    branch: str,
    limit: int = DEFAULT_COMMIT_LIMIT,
) -> ComparisonResult:
    """Determine how `branch` on remote_a relates to `branch` on remote_b.

    Works on remote-tracking refs, so the result reflects the last fetch. A
    branch missing on either side yields BRANCH_MISSING without touching
    history. Identical tips short-circuit to IN_SYNC. Otherwise both ahead
    counts are computed independently; when exactly one is positive the
    unique commits of that side are listed newest first, up to `limit`.
    Diverged histories report counts only.

    Raises GitError when git itself fails (as opposed to a ref being absent).
    """
    ref_a = remote_ref(remote_a, branch)
    ref_b = remote_ref(remote_b, branch)

    tip_a = git_ops.resolve_ref(repo_root, ref_a)
    tip_b = git_ops.resolve_ref(repo_root, ref_b)

    if tip_a is None or tip_b is None:
        return ComparisonResult(
            status=SyncStatus.BRANCH_MISSING,
            tip_a=tip_a,
            tip_b=tip_b,
            has_branch_a=tip_a is not None,
            has_branch_b=tip_b is not None,
        )

    if tip_a == tip_b:
        return ComparisonResult(
            status=SyncStatus.IN_SYNC,
            tip_a=tip_a,
            tip_b=tip_b,
            has_branch_a=True,
            has_branch_b=True,
        )

    ahead_a = git_ops.count_commits_between(repo_root, ref_b, ref_a)
    ahead_b = git_ops.count_commits_between(repo_root, ref_a, ref_b)

    commits_a: tuple[Commit, ...] = ()
    commits_b: tuple[Commit, ...] = ()
    if ahead_a > 0 and ahead_b > 0:
        status = SyncStatus.DIVERGED
    elif ahead_a > 0:
        status = SyncStatus.AHEAD_A
        commits_a = tuple(git_ops.log_between(repo_root, ref_b, ref_a, limit))
    elif ahead_b > 0:
        status = SyncStatus.AHEAD_B
        commits_b = tuple(git_ops.log_between(repo_root, ref_a, ref_b, limit))
    else:
        # Tips differ but neither side has unique commits.
        logger.warning(
            "%s and %s differ on %s (%s vs %s) with no unique commits; reporting diverged",
            remote_a,
            remote_b,
            branch,
            tip_a,
            tip_b,
        )
        status = SyncStatus.DIVERGED

    return ComparisonResult(
        status=status,
        ahead_a=ahead_a,
        ahead_b=ahead_b,
        tip_a=tip_a,
        tip_b=tip_b,
        has_branch_a=True,
        has_branch_b=True,
        commits_a=commits_a,
        commits_b=commits_b,
    )
