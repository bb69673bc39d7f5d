"""Data models for gsr."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class Remote:
    """A configured git remote."""

    name: str
    url: str


@dataclass(frozen=True)
class Branch:
    """A branch name and which of the two remotes carry it."""

    name: str
    exists_on_a: bool
    exists_on_b: bool

    @property
    def on_one_side_only(self) -> bool:
        return self.exists_on_a != self.exists_on_b


@dataclass(frozen=True)
class Commit:
    """A single commit record parsed from git log."""

    full_id: str
    short_id: str
    summary: str
    author: str
    timestamp: datetime
    date_text: str


class SyncStatus(Enum):
    """Divergence state of one branch across two remotes."""

    IN_SYNC = "in sync"
    AHEAD_A = "remote a ahead"
    AHEAD_B = "remote b ahead"
    DIVERGED = "diverged"
    BRANCH_MISSING = "branch missing"


@dataclass(frozen=True)
class SyncDirection:
    """Source and destination remote names for a one-way push."""

    source: str
    dest: str


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of comparing one branch between two remotes."""

    status: SyncStatus
    ahead_a: int = 0
    ahead_b: int = 0
    tip_a: str | None = None
    tip_b: str | None = None
    has_branch_a: bool = False
    has_branch_b: bool = False
    commits_a: tuple[Commit, ...] = ()
    commits_b: tuple[Commit, ...] = ()

    def direction(self, remote_a: str, remote_b: str) -> SyncDirection:
        """Return the push direction implied by the status."""
        return direction_for(self.status, remote_a, remote_b)

    def ahead_count(self) -> int:
        if self.status == SyncStatus.AHEAD_A:
            return self.ahead_a
        if self.status == SyncStatus.AHEAD_B:
            return self.ahead_b
        return 0


def direction_for(status: SyncStatus, remote_a: str, remote_b: str) -> SyncDirection:
    """Map an ahead status to the push that reconciles it.

    Any status other than AHEAD_A or AHEAD_B has no single push that fixes it
    and raises ValueError.
    """
    if status == SyncStatus.AHEAD_A:
        return SyncDirection(source=remote_a, dest=remote_b)
    if status == SyncStatus.AHEAD_B:
        return SyncDirection(source=remote_b, dest=remote_a)
    raise ValueError(f"cannot sync remotes with status '{status.value}'")
