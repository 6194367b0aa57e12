from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol, Style
from handpick.services.release.errors import ReleaseError
from handpick.services.release.gh import compare_commits, list_merged_prs, prs_for_commit
from handpick.services.release.model import (
    ChangeItem,
    CommitClaims,
    DirectCommit,
    MergedPullRequest,
    PRMerge,
    ReleaseBranches,
    UnreleasedCommit,
    UnreleasedSet,
)

FindMergeCommit = Callable[[int], str | None]
AssociatedPr = Callable[[str], int | None]


def pr_reference_pattern(number: int) -> str:
    """Extended regex matching ``#<number>`` not followed by another digit."""
    return f"#{number}([^0-9]|$)"


def classify_changes(
    *,
    commits: Sequence[UnreleasedCommit],
    merged_prs: Sequence[MergedPullRequest],
    find_merge_commit: FindMergeCommit,
    associated_pr: AssociatedPr,
) -> UnreleasedSet:
    """Split unreleased commits into PR merges and direct commits.

    ``find_merge_commit`` is only consulted for PRs the hosting API reports
    without a merge commit. ``associated_pr`` is only consulted for commits
    that survive deduplication.
    """
    unreleased = {c.sha: c for c in commits}
    claims = CommitClaims()

    pr_items: list[ChangeItem] = []
    for pr in merged_prs:
        sha = pr.merge_commit_sha
        if sha is None:
            sha = find_merge_commit(pr.number)
        if sha is None or sha not in unreleased:
            # Already released, or merged into a different history.
            continue
        if not claims.claim(sha, pr.number):
            continue
        pr_items.append(
            PRMerge(
                number=pr.number,
                title=pr.title,
                author=pr.author,
                merged_at=pr.merged_at,
                merge_commit_sha=sha,
            )
        )

    direct_items: list[ChangeItem] = []
    for c in commits:
        if c.is_merge or claims.is_claimed(c.sha):
            continue
        direct_items.append(
            DirectCommit(
                sha=c.sha,
                subject=c.subject,
                author=c.author,
                date=c.date,
                associated_pr=associated_pr(c.sha),
            )
        )

    return UnreleasedSet(items=tuple(pr_items + direct_items))


def _local_unreleased(*, repo: Repository, branches: ReleaseBranches) -> list[UnreleasedCommit]:
    result = repo.log_range(branches.integration_ref, exclude=branches.stable_ref)
    if isinstance(result, Err):
        return []
    return [
        UnreleasedCommit(
            sha=c.sha,
            parent_count=len(c.parents),
            subject=c.subject,
            author=c.author,
            date=c.date,
        )
        for c in result.value
    ]


def unreleased_commits(
    *,
    workspace_root: Path,
    repo: Repository,
    slug: str,
    branches: ReleaseBranches,
    console: ConsoleProtocol,
) -> list[UnreleasedCommit]:
    """Commits on the integration branch but not the stable branch.

    The compare API is preferred; local history is the fallback when the API
    fails or reports nothing.
    """
    api = compare_commits(
        workspace_root=workspace_root,
        repo=slug,
        base=branches.stable,
        head=branches.integration,
    )
    if isinstance(api, Ok) and api.value:
        return api.value

    if isinstance(api, Err):
        console.print(
            f"compare API unavailable, using local history ({api.error.message})", Style.DIM
        )
    return _local_unreleased(repo=repo, branches=branches)


def discover_unreleased(
    *,
    workspace_root: Path,
    repo: Repository,
    slug: str,
    branches: ReleaseBranches,
    pr_limit: int,
    console: ConsoleProtocol,
) -> Result[UnreleasedSet, ReleaseError]:
    """Build the unreleased change set for interactive selection.

    Discovery never fails the run: API errors degrade to local history or to
    "no PR information", and an empty diff yields an empty set.
    """
    console.print(
        f"Finding differences between {branches.stable} and {branches.integration}...",
        Style.INFO,
    )
    commits = unreleased_commits(
        workspace_root=workspace_root,
        repo=repo,
        slug=slug,
        branches=branches,
        console=console,
    )
    if not commits:
        return Ok(UnreleasedSet())

    merged = list_merged_prs(
        workspace_root=workspace_root,
        repo=slug,
        base=branches.integration,
        limit=pr_limit,
    )
    merged_prs: list[MergedPullRequest] = []
    if isinstance(merged, Err):
        console.print(f"merged PR list unavailable ({merged.error.message})", Style.DIM)
    else:
        merged_prs = merged.value

    def find_merge_commit(number: int) -> str | None:
        return repo.grep_log(
            pr_reference_pattern(number),
            branches.integration_ref,
            exclude=branches.stable_ref,
        )

    def associated_pr(sha: str) -> int | None:
        found = prs_for_commit(workspace_root=workspace_root, repo=slug, sha=sha)
        if isinstance(found, Err) or not found.value:
            return None
        return found.value[0]

    console.print("Analyzing commits waiting to be released...", Style.INFO)
    return Ok(
        classify_changes(
            commits=commits,
            merged_prs=merged_prs,
            find_merge_commit=find_merge_commit,
            associated_pr=associated_pr,
        )
    )
