from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from handpick.core.result import Err, Ok
from handpick.output.console import MockConsole
from handpick.platform.process import ProcessError
from handpick.services.release import publication as publication_mod
from handpick.services.release.model import (
    Accepted,
    AssemblyReport,
    PullRequestDraft,
    PullRequestSettings,
    Rejected,
    ReleaseBranches,
    SelectionBatch,
)
from handpick.services.release.publication import (
    build_pull_request_body,
    make_draft,
    pull_request_command,
    pull_request_title,
    push_release_branch,
)
from handpick.services.release.session import ReleaseSession
from handpick.test.services._fakes import FakeRepo

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
BRANCHES = ReleaseBranches(integration="develop", stable="master")
BRANCH = "release/handpicked-20240501-120000"

PR_1577 = Accepted("1577", "pr", "m1577", "#1577: Add export")
PR_1576 = Accepted("1576", "pr", "m1576", "#1576: Fix login")
COMMIT = Accepted("abc1234", "commit", "abc1234", "Commit abc1234: Fix typo")

BATCH = SelectionBatch(
    outcomes=(
        PR_1577,
        Rejected("1580", "PR #1580", "not merged (state: OPEN)"),
        COMMIT,
        PR_1576,
    )
)


def test_title_uses_month_and_day() -> None:
    assert pull_request_title(NOW) == "Release, May 01 (Hand-picked)"


def test_body_sections() -> None:
    body = build_pull_request_body(
        batch=BATCH, branches=BRANCHES, now=NOW, reviewers=("alice", "bob")
    )

    assert body.startswith(
        "Hand-picked release PR merging selected PRs and commits from develop into master "
        "for May 01.\n\nThis PR was created using the `handpick` tool.\n\n"
    )
    assert "## Included PRs:\n\n- #1577: Add export\n- #1576: Fix login\n" in body
    assert "## Included Commits:\n\n- Commit abc1234: Fix typo\n" in body
    assert "## Skipped Items (could not be included):\n\n- PR #1580\n" in body
    assert "not merged (state: OPEN)" not in body
    assert "## Reviewers:\n\n- alice bob\n" in body
    assert body.index("Included PRs") < body.index("Included Commits") < body.index("Skipped")


def test_body_omits_empty_sections() -> None:
    batch = SelectionBatch(outcomes=(Accepted("1", "pr", "m1", "#1: One"),))
    body = build_pull_request_body(batch=batch, branches=BRANCHES, now=NOW)

    assert "Included Commits" not in body
    assert "Skipped Items" not in body
    assert "Reviewers" not in body
    assert "Pending" not in body


def test_body_with_report_lists_only_applied_items() -> None:
    report = AssemblyReport(branch=BRANCH, applied=(PR_1577,), conflicted=(PR_1576, COMMIT))

    body = build_pull_request_body(batch=BATCH, branches=BRANCHES, now=NOW, report=report)

    assert "## Included PRs:\n\n- #1577: Add export\n\n" in body
    assert "Included Commits" not in body
    assert (
        "## Pending (conflicted, to be picked manually):\n\n"
        "- #1576: Fix login\n- Commit abc1234: Fix typo\n"
    ) in body
    assert body.index("Pending") < body.index("Skipped")


def test_command_flags() -> None:
    draft = make_draft(
        batch=BATCH,
        branches=BRANCHES,
        branch=BRANCH,
        settings=PullRequestSettings(draft=True, reviewers=("alice", "bob")),
        now=NOW,
    )
    cmd = pull_request_command(repo_slug="acme/shop", draft=draft)

    assert cmd[:3] == ["gh", "pr", "create"]
    assert cmd[cmd.index("--base") + 1] == "master"
    assert cmd[cmd.index("--head") + 1] == BRANCH
    assert cmd[cmd.index("--repo") + 1] == "acme/shop"
    assert cmd[cmd.index("--title") + 1] == "Release, May 01 (Hand-picked)"
    assert "--draft" in cmd
    assert cmd[-4:] == ["--reviewer", "alice", "--reviewer", "bob"]


def test_command_ready_for_review_has_no_draft_flag() -> None:
    draft = make_draft(
        batch=BATCH,
        branches=BRANCHES,
        branch=BRANCH,
        settings=PullRequestSettings(draft=False),
        now=NOW,
    )
    cmd = pull_request_command(repo_slug="acme/shop", draft=draft)
    assert "--draft" not in cmd
    assert "--reviewer" not in cmd


def _draft() -> PullRequestDraft:
    return make_draft(
        batch=BATCH,
        branches=BRANCHES,
        branch=BRANCH,
        settings=PullRequestSettings(draft=True),
        now=NOW,
    )


@pytest.mark.parametrize(
    ("stdout", "expected"),
    [
        ("https://github.com/acme/shop/pull/1600\n", "https://github.com/acme/shop/pull/1600"),
        (
            "Creating draft pull request for x into master\n"
            "https://github.com/acme/shop/pull/1601\n",
            "https://github.com/acme/shop/pull/1601",
        ),
    ],
)
def test_create_pull_request_returns_url(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, stdout: str, expected: str
) -> None:
    monkeypatch.setattr(publication_mod, "run_process", lambda cmd, **kwargs: Ok(stdout))

    result = publication_mod.create_pull_request(
        workspace_root=tmp_path, repo_slug="acme/shop", draft=_draft(), console=MockConsole()
    )
    assert result == Ok(expected)


def test_create_pull_request_rejects_non_url(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setattr(publication_mod, "run_process", lambda cmd, **kwargs: Ok("done\n"))

    result = publication_mod.create_pull_request(
        workspace_root=tmp_path, repo_slug="acme/shop", draft=_draft(), console=MockConsole()
    )
    assert isinstance(result, Err)
    assert result.error.kind == "pr_create_failed"


def test_create_pull_request_failure_carries_stderr(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    failure = Err(
        ProcessError(
            command=("gh", "pr", "create"),
            returncode=1,
            stdout="",
            stderr="a pull request for branch already exists\n",
        )
    )
    monkeypatch.setattr(publication_mod, "run_process", lambda cmd, **kwargs: failure)

    result = publication_mod.create_pull_request(
        workspace_root=tmp_path, repo_slug="acme/shop", draft=_draft(), console=MockConsole()
    )
    assert isinstance(result, Err)
    assert result.error.hint == "a pull request for branch already exists"


def _session(repo: FakeRepo) -> ReleaseSession:
    return ReleaseSession(
        repo=repo,
        console=MockConsole(),
        original_branch="feature/login",
        original_head=None,
        stashed=False,
    )


def test_push_marks_session() -> None:
    repo = FakeRepo()
    session = _session(repo)

    result = push_release_branch(
        repo=repo, branches=BRANCHES, branch=BRANCH, session=session, console=MockConsole()
    )

    assert result == Ok(None)
    assert repo.calls == [f"push origin {BRANCH}"]
    assert session.pushed is True


def test_push_failure() -> None:
    repo = FakeRepo()
    repo.push_fails = True
    session = _session(repo)

    result = push_release_branch(
        repo=repo, branches=BRANCHES, branch=BRANCH, session=session, console=MockConsole()
    )

    assert isinstance(result, Err)
    assert result.error.kind == "push_failed"
    assert session.pushed is False
