"""Release assembly against real git repositories (skipped without git)."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from handpick.core.result import Err, Ok
from handpick.git.repository import Repository
from handpick.output.console import MockConsole
from handpick.services.release.assembly import assemble_release_branch
from handpick.services.release.model import Accepted, ReleaseBranches, SelectionBatch
from handpick.services.release.session import open_session

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

BRANCHES = ReleaseBranches(integration="develop", stable="master")


@pytest.fixture(autouse=True)
def _isolated_git(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Release Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "bot@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Release Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "bot@example.com")


def _git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return proc.stdout.strip()


def _commit(cwd: Path, name: str, content: str, message: str) -> str:
    (cwd / name).write_text(content, encoding="utf-8")
    _git(cwd, "add", name)
    _git(cwd, "commit", "-q", "-m", message)
    return _git(cwd, "rev-parse", "HEAD")


def _setup(tmp_path: Path, *, conflicting: bool = False) -> tuple[Path, str, str]:
    """Origin with master and develop; returns (work tree, PR merge sha, direct sha)."""
    origin = tmp_path / "origin.git"
    work = tmp_path / "work"
    _git(tmp_path, "init", "-q", "--bare", str(origin))
    work.mkdir()
    _git(work, "init", "-q", "-b", "master")
    _git(work, "remote", "add", "origin", str(origin))
    _commit(work, "app.txt", "base\n", "Initial commit")
    _git(work, "push", "-q", "origin", "master")

    _git(work, "checkout", "-q", "-b", "develop")
    _git(work, "checkout", "-q", "-b", "feature")
    _commit(work, "feature.txt", "feature\n", "Add feature")
    _git(work, "checkout", "-q", "develop")
    _git(work, "merge", "-q", "--no-ff", "feature", "-m", "Merge pull request #12 from org/feature")
    merge_sha = _git(work, "rev-parse", "HEAD")
    direct_sha = _commit(work, "app.txt", "develop\n", "Fix typo")
    _git(work, "push", "-q", "origin", "develop")

    _git(work, "checkout", "-q", "master")
    if conflicting:
        _commit(work, "app.txt", "hotfix\n", "Hotfix on master")
        _git(work, "push", "-q", "origin", "master")
    _git(work, "fetch", "-q", "origin")
    return work, merge_sha, direct_sha


def _batch(merge_sha: str, direct_sha: str) -> SelectionBatch:
    # Commit selected before the PR: PR merges are still replayed first.
    return SelectionBatch(
        outcomes=(
            Accepted("fixtypo", "commit", direct_sha, "Commit x: Fix typo"),
            Accepted("12", "pr", merge_sha, "#12: Add feature"),
        )
    )


def test_pr_merges_are_replayed_before_plain_commits(tmp_path: Path) -> None:
    work, merge_sha, direct_sha = _setup(tmp_path)
    repo = Repository(work)
    console = MockConsole()

    opened = open_session(repo=repo, console=console, confirm_stash=lambda: False)
    assert isinstance(opened, Ok)
    with opened.value as session:
        result = assemble_release_branch(
            repo=repo,
            branches=BRANCHES,
            batch=_batch(merge_sha, direct_sha),
            name="release/handpicked-20240501-120000",
            session=session,
            on_conflict=lambda item, error: "abort",
            console=console,
        )
        assert isinstance(result, Ok)
        assert not result.value.has_conflicts
        session.mark_succeeded()

    assert repo.current_branch() == "master"
    subjects = _git(
        work, "log", "--reverse", "--format=%s", "master..release/handpicked-20240501-120000"
    ).splitlines()
    assert subjects == ["Merge pull request #12 from org/feature", "Fix typo"]


def test_conflict_abort_restores_branch_and_stash(tmp_path: Path) -> None:
    work, merge_sha, direct_sha = _setup(tmp_path, conflicting=True)
    (work / "notes.txt").write_text("local notes\n", encoding="utf-8")
    repo = Repository(work)
    console = MockConsole()

    opened = open_session(repo=repo, console=console, confirm_stash=lambda: True)
    assert isinstance(opened, Ok)
    assert opened.value.stashed is True
    assert not (work / "notes.txt").exists()

    with opened.value as session:
        result = assemble_release_branch(
            repo=repo,
            branches=BRANCHES,
            batch=_batch(merge_sha, direct_sha),
            name="release/handpicked-20240501-130000",
            session=session,
            on_conflict=lambda item, error: "abort",
            console=console,
        )

    assert isinstance(result, Err)
    assert result.error.kind == "conflict_aborted"
    assert repo.current_branch() == "master"
    assert not repo.local_branch_exists("release/handpicked-20240501-130000")
    assert not repo.cherry_pick_in_progress()
    assert (work / "notes.txt").read_text(encoding="utf-8") == "local notes\n"
    assert not repo.remote_branch_exists("origin", "release/handpicked-20240501-130000")
