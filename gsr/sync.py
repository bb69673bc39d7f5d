"""Push a branch from the ahead remote to the behind one."""

import logging
from pathlib import Path

from gsr import git_ops
from gsr.compare import remote_ref
from gsr.models import SyncDirection, SyncStatus, direction_for

logger = logging.getLogger(__name__)


def sync_branch(
    repo_root: Path,
    status: SyncStatus,
    remote_a: str,
    remote_b: str,
    branch: str,
    timeout: float | None = git_ops.DEFAULT_TIMEOUT,
) -> SyncDirection:
    """Reconcile `branch` by pushing the ahead side onto the behind side.

    Only AHEAD_A and AHEAD_B can be synced; other statuses raise ValueError.
    """
    direction = direction_for(status, remote_a, remote_b)
    logger.info("Syncing %s: %s -> %s", branch, direction.source, direction.dest)
    git_ops.push(
        repo_root,
        direction.dest,
        remote_ref(direction.source, branch),
        branch,
        timeout=timeout,
    )
    return direction
