"""Pytest configuration and fixtures."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

GIT_AVAILABLE = subprocess.run(["git", "--version"], capture_output=True).returncode == 0

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git missing")


def _run(cmd: list[str], cwd: Path | None = None) -> str:
    result = subprocess.run(
        cmd, cwd=str(cwd) if cwd else None, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@dataclass
class Workspace:
    """A work tree with two bare remotes, `origin` and `upstream`."""

    root: Path
    work: Path

    def git(self, *args: str) -> str:
        return _run(["git", *args], cwd=self.work)

    def commit(self, message: str) -> str:
        path = self.work / "log.txt"
        with path.open("a", encoding="utf-8") as handle:
            handle.write(message + "\n")
        self.git("add", "log.txt")
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")

    def push(self, remote: str, refspec: str = "main") -> None:
        """Push to the bare repository behind `remote`, leaving tracking refs stale."""
        self.git("push", "-q", str(self.root / f"{remote}.git"), refspec)

    def fetch_all(self) -> None:
        self.git("fetch", "-q", "origin")
        self.git("fetch", "-q", "upstream")


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Create a repository whose `main` is pushed to both remotes."""
    if not GIT_AVAILABLE:
        pytest.skip("git missing")
    for name in ("origin", "upstream"):
        _run(["git", "init", "-q", "--bare", str(tmp_path / f"{name}.git")])

    work = tmp_path / "work"
    work.mkdir()
    _run(["git", "init", "-q"], cwd=work)
    _run(["git", "symbolic-ref", "HEAD", "refs/heads/main"], cwd=work)
    _run(["git", "config", "user.email", "test@example.com"], cwd=work)
    _run(["git", "config", "user.name", "Test"], cwd=work)
    _run(["git", "config", "commit.gpgsign", "false"], cwd=work)
    for name in ("origin", "upstream"):
        _run(["git", "remote", "add", name, str(tmp_path / f"{name}.git")], cwd=work)

    ws = Workspace(root=tmp_path, work=work)
    ws.commit("base")
    ws.push("origin")
    ws.push("upstream")
    ws.fetch_all()
    return ws
