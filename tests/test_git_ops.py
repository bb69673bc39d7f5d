from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from gsr import git_ops
from gsr.git_ops import GitError, GitParseError, GitTimeoutError, InvalidBranchNameError
from gsr.models import Branch, Remote

from conftest import Workspace, requires_git


@requires_git
def test_list_remotes_with_urls(workspace: Workspace) -> None:
    remotes = git_ops.list_remotes(workspace.work)

    assert remotes == [
        Remote("origin", str(workspace.root / "origin.git")),
        Remote("upstream", str(workspace.root / "upstream.git")),
    ]
    assert git_ops.remote_exists(workspace.work, "origin")
    assert not git_ops.remote_exists(workspace.work, "mirror")


@requires_git
def test_add_remote(workspace: Workspace) -> None:
    url = str(workspace.root / "mirror.git")

    remote = git_ops.add_remote(workspace.work, "mirror", url)

    assert remote == Remote("mirror", url)
    assert git_ops.get_remote_url(workspace.work, "mirror") == url


@requires_git
def test_add_existing_remote_fails(workspace: Workspace) -> None:
    with pytest.raises(GitError, match="already exists"):
        git_ops.add_remote(workspace.work, "origin", "https://example.com/x.git")


@requires_git
def test_current_branch_and_repo_root(workspace: Workspace) -> None:
    assert git_ops.get_current_branch(workspace.work) == "main"
    assert git_ops.get_repo_root(workspace.work).resolve() == workspace.work.resolve()


@requires_git
def test_list_all_branches_merges_both_remotes(workspace: Workspace) -> None:
    workspace.push("origin", "main:refs/heads/only-origin")
    workspace.push("upstream", "main:refs/heads/only-upstream")

    branches = git_ops.list_all_branches(workspace.work, "origin", "upstream")

    assert branches == [
        Branch("main", exists_on_a=True, exists_on_b=True),
        Branch("only-origin", exists_on_a=True, exists_on_b=False),
        Branch("only-upstream", exists_on_a=False, exists_on_b=True),
    ]


@requires_git
def test_branch_names_are_case_sensitive(workspace: Workspace) -> None:
    workspace.push("upstream", "main:refs/heads/Main")

    branches = git_ops.list_all_branches(workspace.work, "origin", "upstream")

    assert Branch("Main", exists_on_a=False, exists_on_b=True) in branches
    assert Branch("main", exists_on_a=True, exists_on_b=True) in branches


@requires_git
def test_create_branch_on_remote(workspace: Workspace) -> None:
    workspace.push("origin", "main:refs/heads/feature")
    workspace.fetch_all()
    assert not git_ops.branch_exists_on_remote(workspace.work, "upstream", "feature")

    git_ops.create_branch_on_remote(
        workspace.work, "upstream", "feature", "refs/remotes/origin/feature"
    )

    assert git_ops.branch_exists_on_remote(workspace.work, "upstream", "feature")


@requires_git
def test_fetch_unknown_remote_fails(workspace: Workspace) -> None:
    with pytest.raises(GitError) as excinfo:
        git_ops.fetch(workspace.work, "nowhere")
    assert not isinstance(excinfo.value, GitTimeoutError)
    assert excinfo.value.cmd == ["fetch", "nowhere"]


@requires_git
def test_resolve_missing_ref_returns_none(workspace: Workspace) -> None:
    assert git_ops.resolve_ref(workspace.work, "refs/remotes/origin/nope") is None
    assert git_ops.resolve_ref(workspace.work, "refs/remotes/origin/main") == workspace.git(
        "rev-parse", "HEAD"
    )


@pytest.mark.parametrize(
    "name",
    ["", ".hidden", "topic.lock", "a..b", "a~1", "a^", "a:b", "a?", "a*", "a[1]", "a b", "a@{1}", "a\tb"],
)
def test_validate_branch_name_rejects(name: str) -> None:
    with pytest.raises(InvalidBranchNameError):
        git_ops.validate_branch_name(name)


def test_validate_branch_name_accepts() -> None:
    git_ops.validate_branch_name("feature/login-form")


def test_create_branch_validates_before_pushing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_ops, "push", lambda *a, **k: pytest.fail("push must not run"))

    with pytest.raises(InvalidBranchNameError):
        git_ops.create_branch_on_remote(Path("."), "origin", "bad name", "upstream/bad name")


def test_timeout_is_distinct_from_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(*args: object, **kwargs: object) -> None:
        raise subprocess.TimeoutExpired(cmd="git push", timeout=30)

    monkeypatch.setattr(git_ops.subprocess, "run", fake_run)

    with pytest.raises(GitTimeoutError) as excinfo:
        git_ops.push(Path("."), "origin", "upstream/main", "main", timeout=30)

    assert isinstance(excinfo.value, GitError)
    assert excinfo.value.timeout == 30
    assert "timed out after 30 seconds" in str(excinfo.value)


def test_count_parse_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_ops, "run", lambda args, cwd=None, timeout=None: "lots")

    with pytest.raises(GitParseError):
        git_ops.count_commits_between(Path("."), "a", "b")


def test_parse_log_line_keeps_pipes_in_summary() -> None:
    commit = git_ops.parse_log_line(
        "abc123def|abc123d|fix a|b parsing|Jane Doe|2024-03-01 12:30:00 +0100"
    )

    assert commit is not None
    assert commit.full_id == "abc123def"
    assert commit.short_id == "abc123d"
    assert commit.summary == "fix a|b parsing"
    assert commit.author == "Jane Doe"
    assert commit.timestamp.year == 2024
    assert commit.timestamp.utcoffset() is not None
    assert commit.date_text == "2024-03-01 12:30:00 +0100"


def test_parse_log_line_falls_back_on_bad_date() -> None:
    commit = git_ops.parse_log_line("abc|ab|msg|me|yesterday")

    assert commit is not None
    assert commit.date_text == "yesterday"
    assert commit.timestamp.tzinfo is not None


def test_parse_log_line_rejects_missing_fields() -> None:
    assert git_ops.parse_log_line("abc|ab|msg") is None
    assert git_ops.parse_log_line("|ab|msg|me|2024-03-01 12:30:00 +0100") is None


def test_log_between_raises_on_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(git_ops, "run", lambda args, cwd=None, timeout=None: "not a record")

    with pytest.raises(GitParseError):
        git_ops.log_between(Path("."), "a", "b", 50)


def test_git_that_cannot_start_is_a_git_error(tmp_path: Path) -> None:
    gone = tmp_path / "gone"

    with pytest.raises(GitError) as excinfo:
        git_ops.run(["status"], cwd=gone)
    assert not isinstance(excinfo.value, GitTimeoutError)

    with pytest.raises(GitError):
        git_ops.resolve_ref(gone, "refs/remotes/origin/main")
