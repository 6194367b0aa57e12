from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol
from handpick.services.release.discovery import pr_reference_pattern
from handpick.services.release.errors import ReleaseError
from handpick.services.release.gh import view_pr
from handpick.services.release.model import (
    Accepted,
    ItemOutcome,
    PullRequestInfo,
    Rejected,
    ReleaseBranches,
    SelectionBatch,
    short_sha,
)

_DIGITS = re.compile(r"^[0-9]+$")
_HEX = re.compile(r"^[0-9a-f]+$")

INVALID_IDENTIFIER = "not a valid PR number or commit hash"


@dataclass(frozen=True, slots=True)
class PrRef:
    identifier: str
    number: int


@dataclass(frozen=True, slots=True)
class CommitRef:
    identifier: str
    ref: str


type ParsedIdentifier = PrRef | CommitRef | Rejected


def dedupe_identifiers(identifiers: Sequence[str]) -> list[str]:
    """Strip, drop blanks, and keep the first occurrence of each identifier."""
    seen: set[str] = set()
    out: list[str] = []
    for raw in identifiers:
        item = raw.strip()
        if not item or item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def classify_identifier(
    identifier: str,
    *,
    min_hash_length: int,
    resolve_commit: Callable[[str], str | None],
) -> ParsedIdentifier:
    """Classify one raw identifier.

    Order: all digits -> PR number; hex of at least ``min_hash_length`` ->
    commit hash; otherwise a VCS lookup of the short/symbolic ref.
    """
    if _DIGITS.match(identifier):
        return PrRef(identifier=identifier, number=int(identifier))
    if len(identifier) >= min_hash_length and _HEX.match(identifier):
        return CommitRef(identifier=identifier, ref=identifier)

    full = resolve_commit(identifier)
    if full is not None:
        return CommitRef(identifier=identifier, ref=full)
    return Rejected(identifier=identifier, label=f"'{identifier}'", reason=INVALID_IDENTIFIER)


def check_pr(
    info: PullRequestInfo,
    *,
    identifier: str,
    integration: str,
    find_merge_commit: Callable[[int], str | None],
) -> ItemOutcome:
    """Apply the merged/base/merge-commit rules to one PR."""
    label = f"PR #{info.number}"
    if info.state != "MERGED":
        return Rejected(identifier, label, f"not merged (state: {info.state})")
    if info.base != integration:
        return Rejected(identifier, label, f"not merged to {integration} (base: {info.base})")
    if not info.merged_at:
        return Rejected(identifier, label, "merge commit not found")

    sha = info.merge_commit_sha or find_merge_commit(info.number)
    if sha is None:
        return Rejected(identifier, label, "merge commit not found")

    return Accepted(
        identifier=identifier,
        kind="pr",
        commit_sha=sha,
        label=f"#{info.number}: {info.title}",
    )


def _validate_pr(
    ref: PrRef,
    *,
    workspace_root: Path,
    repo: Repository,
    slug: str,
    branches: ReleaseBranches,
) -> ItemOutcome:
    info = view_pr(workspace_root=workspace_root, repo=slug, number=ref.number)
    if isinstance(info, Err):
        return Rejected(ref.identifier, f"PR #{ref.number}", "PR not found")

    return check_pr(
        info.value,
        identifier=ref.identifier,
        integration=branches.integration,
        find_merge_commit=lambda n: repo.grep_log(
            pr_reference_pattern(n), branches.integration_ref
        ),
    )


def _validate_commit(
    ref: CommitRef,
    *,
    repo: Repository,
    branches: ReleaseBranches,
    claimed: dict[str, int],
) -> ItemOutcome:
    label = f"Commit {short_sha(ref.ref)}"
    if not repo.has_commit(ref.ref):
        repo.fetch(branches.remote, ref.ref)

    full = repo.resolve_commit(ref.ref)
    if full is None:
        return Rejected(ref.identifier, label, "commit not found")
    if not repo.is_ancestor(full, branches.integration_ref):
        return Rejected(ref.identifier, label, f"not on {branches.integration} branch")

    owner = claimed.get(full)
    if owner is not None:
        return Rejected(ref.identifier, label, f"already included via PR #{owner}")

    subject, _author = repo.commit_summary(full) or ("Unknown", "Unknown")
    return Accepted(
        identifier=ref.identifier,
        kind="commit",
        commit_sha=full,
        label=f"Commit {short_sha(full)}: {subject}",
    )


def resolve_selection(
    *,
    identifiers: Sequence[str],
    workspace_root: Path,
    repo: Repository,
    slug: str,
    branches: ReleaseBranches,
    min_hash_length: int,
    console: ConsoleProtocol,
) -> SelectionBatch:
    """Validate every identifier; one bad item never stops the others.

    PRs are validated before commits so a commit that is some accepted PR's
    merge commit is reported once, as the PR. Outcomes keep input order.
    """
    parsed = [
        classify_identifier(
            item,
            min_hash_length=min_hash_length,
            resolve_commit=repo.resolve_commit,
        )
        for item in dedupe_identifiers(identifiers)
    ]

    outcomes: list[ItemOutcome | None] = [None] * len(parsed)
    claimed: dict[str, int] = {}
    for i, p in enumerate(parsed):
        if isinstance(p, PrRef):
            outcome = _validate_pr(
                p, workspace_root=workspace_root, repo=repo, slug=slug, branches=branches
            )
            if isinstance(outcome, Accepted):
                claimed.setdefault(outcome.commit_sha, p.number)
            outcomes[i] = outcome
        elif isinstance(p, Rejected):
            outcomes[i] = p

    for i, p in enumerate(parsed):
        if isinstance(p, CommitRef):
            outcomes[i] = _validate_commit(p, repo=repo, branches=branches, claimed=claimed)

    batch = SelectionBatch(outcomes=tuple(o for o in outcomes if o is not None))
    for outcome in batch.outcomes:
        match outcome:
            case Accepted(label=label):
                console.success(label)
            case Rejected(label=label, reason=reason):
                console.warning(f"{label}: {reason}")
    return batch


def decide(
    batch: SelectionBatch,
    *,
    confirm_partial: Callable[[SelectionBatch], bool],
) -> Result[SelectionBatch, ReleaseError]:
    """Single decision point for a validated batch.

    Nothing accepted is fatal. Some rejections ask once whether to proceed
    with the accepted subset.
    """
    if not batch.has_accepted:
        return Err(
            ReleaseError(
                kind="nothing_to_include",
                message="no valid PRs or commits to include",
            )
        )

    if batch.rejected and not confirm_partial(batch):
        skipped = ", ".join(r.label for r in batch.rejected)
        return Err(
            ReleaseError(
                kind="declined",
                message="aborted: some items could not be included",
                hint=skipped,
            )
        )

    return Ok(batch)
