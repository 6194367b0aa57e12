from __future__ import annotations

from pathlib import Path

import pytest

from handpick.core.result import Err, Ok
from handpick.git.repository import LogCommit
from handpick.output.console import MockConsole, Style
from handpick.services.release import discovery as discovery_mod
from handpick.services.release.discovery import classify_changes, pr_reference_pattern
from handpick.services.release.errors import ReleaseError
from handpick.services.release.model import (
    DirectCommit,
    MergedPullRequest,
    PRMerge,
    ReleaseBranches,
    UnreleasedCommit,
)
from handpick.test.services._fakes import FakeRepo

BRANCHES = ReleaseBranches(integration="develop", stable="master")


def _commit(sha: str, subject: str, *, parents: int = 1) -> UnreleasedCommit:
    return UnreleasedCommit(
        sha=sha, parent_count=parents, subject=subject, author="Alice", date="2024-05-01"
    )


def _pr(number: int, sha: str | None, title: str = "Title") -> MergedPullRequest:
    return MergedPullRequest(
        number=number,
        title=title,
        author="bob",
        merged_at="2024-05-02T09:00:00Z",
        merge_commit_sha=sha,
    )


def _no_grep(number: int) -> str | None:
    del number
    return None


def _no_pr(sha: str) -> int | None:
    del sha
    return None


def test_pr_reference_pattern_does_not_match_longer_numbers() -> None:
    assert pr_reference_pattern(12) == "#12([^0-9]|$)"


def test_prs_first_then_direct_commits() -> None:
    commits = [
        _commit("c1", "Fix typo"),
        _commit("m2", "Merge pull request #12", parents=2),
        _commit("c3", "Bump deps"),
    ]
    result = classify_changes(
        commits=commits,
        merged_prs=[_pr(12, "m2", "Add export")],
        find_merge_commit=_no_grep,
        associated_pr=_no_pr,
    )

    assert [type(i) for i in result.items] == [PRMerge, DirectCommit, DirectCommit]
    assert result.pr_merges[0].number == 12
    assert result.pr_merges[0].merged_date == "2024-05-02"
    assert [c.sha for c in result.direct_commits] == ["c1", "c3"]


def test_released_prs_are_dropped_silently() -> None:
    result = classify_changes(
        commits=[_commit("c1", "Fix typo")],
        merged_prs=[_pr(10, "old-merge")],
        find_merge_commit=_no_grep,
        associated_pr=_no_pr,
    )
    assert result.pr_merges == ()
    assert len(result) == 1


def test_no_direct_commit_duplicates_a_pr_merge_commit() -> None:
    # A squash-merged PR: its merge commit is a single-parent commit.
    commits = [_commit("s1", "Add export (#12)"), _commit("c2", "Fix typo")]
    result = classify_changes(
        commits=commits,
        merged_prs=[_pr(12, "s1")],
        find_merge_commit=_no_grep,
        associated_pr=_no_pr,
    )

    pr_shas = {p.merge_commit_sha for p in result.pr_merges}
    direct_shas = {c.sha for c in result.direct_commits}
    assert pr_shas == {"s1"}
    assert direct_shas == {"c2"}
    assert not pr_shas & direct_shas


def test_first_pr_claiming_a_sha_wins() -> None:
    commits = [_commit("m1", "Merge", parents=2)]
    result = classify_changes(
        commits=commits,
        merged_prs=[_pr(20, "m1"), _pr(21, "m1")],
        find_merge_commit=_no_grep,
        associated_pr=_no_pr,
    )
    assert [p.number for p in result.pr_merges] == [20]


def test_missing_merge_commit_is_recovered_by_grep() -> None:
    commits = [_commit("m5", "Merge pull request #5 from x", parents=2)]
    asked: list[int] = []

    def grep(number: int) -> str | None:
        asked.append(number)
        return "m5" if number == 5 else None

    result = classify_changes(
        commits=commits,
        merged_prs=[_pr(5, None), _pr(50, "m50")],
        find_merge_commit=grep,
        associated_pr=_no_pr,
    )
    assert [p.merge_commit_sha for p in result.pr_merges] == ["m5"]
    assert asked == [5]


def test_grep_hit_outside_unreleased_set_is_ignored() -> None:
    result = classify_changes(
        commits=[_commit("c1", "x")],
        merged_prs=[_pr(5, None)],
        find_merge_commit=lambda n: "elsewhere",
        associated_pr=_no_pr,
    )
    assert result.pr_merges == ()


def test_associated_pr_labels_direct_commit() -> None:
    commits = [_commit("c1", "Tweak copy"), _commit("c2", "Hotfix")]
    result = classify_changes(
        commits=commits,
        merged_prs=[],
        find_merge_commit=_no_grep,
        associated_pr=lambda sha: 1576 if sha == "c1" else None,
    )
    first, second = result.direct_commits
    assert first.associated_pr == 1576
    assert first.display_subject == "PR #1576: Tweak copy"
    assert second.display_subject == "Hotfix"


def test_unclaimed_merge_commits_are_not_direct_commits() -> None:
    result = classify_changes(
        commits=[_commit("m9", "Merge branch 'x'", parents=2)],
        merged_prs=[],
        find_merge_commit=_no_grep,
        associated_pr=_no_pr,
    )
    assert result.is_empty


# -----------------------------------------------------------------------------
# discover_unreleased (I/O wiring)
# -----------------------------------------------------------------------------


def test_discover_falls_back_to_local_history(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    repo = FakeRepo(tmp_path)
    repo.log = [
        LogCommit(sha="c1", parents=("p",), author="Alice", date="2024-05-01", subject="Fix"),
        LogCommit(sha="m2", parents=("c1", "x"), author="Bob", date="2024-05-02", subject="Merge"),
    ]
    repo.grep[pr_reference_pattern(7)] = "m2"

    monkeypatch.setattr(
        discovery_mod,
        "compare_commits",
        lambda **kwargs: Err(ReleaseError(kind="invalid_input", message="HTTP 500")),
    )
    monkeypatch.setattr(discovery_mod, "list_merged_prs", lambda **kwargs: Ok([_pr(7, None)]))
    monkeypatch.setattr(discovery_mod, "prs_for_commit", lambda **kwargs: Ok([]))
    console = MockConsole()

    result = discovery_mod.discover_unreleased(
        workspace_root=tmp_path,
        repo=repo,
        slug="acme/shop",
        branches=BRANCHES,
        pr_limit=200,
        console=console,
    )

    assert isinstance(result, Ok)
    assert [p.number for p in result.value.pr_merges] == [7]
    assert [c.sha for c in result.value.direct_commits] == ["c1"]
    assert not console.has_error()
    assert console.find("compare API unavailable")[0].style == Style.DIM


def test_discover_empty_diff_is_empty_set(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    repo = FakeRepo(tmp_path)
    monkeypatch.setattr(discovery_mod, "compare_commits", lambda **kwargs: Ok([]))

    def fail(**kwargs: object) -> None:
        raise AssertionError("PR list must not be queried for an empty diff")

    monkeypatch.setattr(discovery_mod, "list_merged_prs", fail)

    result = discovery_mod.discover_unreleased(
        workspace_root=tmp_path,
        repo=repo,
        slug="acme/shop",
        branches=BRANCHES,
        pr_limit=200,
        console=MockConsole(),
    )
    assert isinstance(result, Ok)
    assert result.value.is_empty


def test_discover_without_pr_list_still_lists_commits(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    repo = FakeRepo(tmp_path)
    monkeypatch.setattr(
        discovery_mod, "compare_commits", lambda **kwargs: Ok([_commit("c1", "Fix")])
    )
    monkeypatch.setattr(
        discovery_mod,
        "list_merged_prs",
        lambda **kwargs: Err(ReleaseError(kind="invalid_input", message="boom")),
    )
    monkeypatch.setattr(discovery_mod, "prs_for_commit", lambda **kwargs: Ok([42]))

    result = discovery_mod.discover_unreleased(
        workspace_root=tmp_path,
        repo=repo,
        slug="acme/shop",
        branches=BRANCHES,
        pr_limit=200,
        console=MockConsole(),
    )
    assert isinstance(result, Ok)
    assert result.value.direct_commits[0].associated_pr == 42
