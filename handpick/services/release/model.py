from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

ItemKind = Literal["pr", "commit"]
ConflictChoice = Literal["abort", "continue"]

SHORT_SHA_LENGTH = 7
RELEASE_BRANCH_PREFIX = "release/handpicked-"


def short_sha(sha: str) -> str:
    return sha[:SHORT_SHA_LENGTH]


@dataclass(frozen=True, slots=True)
class ReleaseBranches:
    """The two branches a run works between."""

    integration: str  # e.g. develop
    stable: str  # e.g. master or main
    remote: str = "origin"

    @property
    def integration_ref(self) -> str:
        return f"{self.remote}/{self.integration}"

    @property
    def stable_ref(self) -> str:
        return f"{self.remote}/{self.stable}"


# -----------------------------------------------------------------------------
# Discovery
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UnreleasedCommit:
    """A commit reachable from the integration tip but not the stable tip."""

    sha: str
    parent_count: int
    subject: str
    author: str
    date: str

    @property
    def is_merge(self) -> bool:
        return self.parent_count > 1


@dataclass(frozen=True, slots=True)
class MergedPullRequest:
    """A merged PR as listed by the hosting API.

    ``merge_commit_sha`` is None when the API does not expose one.
    """

    number: int
    title: str
    author: str
    merged_at: str
    merge_commit_sha: str | None


@dataclass(frozen=True, slots=True)
class PRMerge:
    number: int
    title: str
    author: str
    merged_at: str
    merge_commit_sha: str

    @property
    def merged_date(self) -> str:
        return self.merged_at.split("T", 1)[0]


@dataclass(frozen=True, slots=True)
class DirectCommit:
    """A non-merge commit not claimed by any kept PR.

    Squashed or rebased PRs leave no merge commit, so their commits show up
    here with ``associated_pr`` set; they are still picked as plain commits.
    """

    sha: str
    subject: str
    author: str
    date: str
    associated_pr: int | None = None

    @property
    def display_subject(self) -> str:
        if self.associated_pr is not None:
            return f"PR #{self.associated_pr}: {self.subject}"
        return self.subject

    @property
    def short_sha(self) -> str:
        return short_sha(self.sha)


type ChangeItem = PRMerge | DirectCommit


@dataclass(frozen=True, slots=True)
class CommitClaims:
    """Keyed map of commit sha -> PR number that claims it.

    Built once per discovery run; a sha is claimed by the first PR that
    asks for it.
    """

    by_sha: dict[str, int] = field(default_factory=dict[str, int])

    def claim(self, sha: str, number: int) -> bool:
        """Record ``sha`` for PR ``number``; False if another PR already owns it."""
        owner = self.by_sha.get(sha)
        if owner is not None and owner != number:
            return False
        self.by_sha[sha] = number
        return True

    def owner(self, sha: str) -> int | None:
        return self.by_sha.get(sha)

    def is_claimed(self, sha: str) -> bool:
        return sha in self.by_sha


@dataclass(frozen=True, slots=True)
class UnreleasedSet:
    """Ordered change set: PR merges first, then direct commits."""

    items: tuple[ChangeItem, ...] = ()

    @property
    def pr_merges(self) -> tuple[PRMerge, ...]:
        return tuple(i for i in self.items if isinstance(i, PRMerge))

    @property
    def direct_commits(self) -> tuple[DirectCommit, ...]:
        return tuple(i for i in self.items if isinstance(i, DirectCommit))

    @property
    def is_empty(self) -> bool:
        return not self.items

    def __len__(self) -> int:
        return len(self.items)


# -----------------------------------------------------------------------------
# Selection
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PullRequestInfo:
    """Single-PR view used during validation."""

    number: int
    title: str
    state: str
    base: str
    merged_at: str | None
    merge_commit_sha: str | None


@dataclass(frozen=True, slots=True)
class Accepted:
    identifier: str
    kind: ItemKind
    commit_sha: str
    label: str


@dataclass(frozen=True, slots=True)
class Rejected:
    identifier: str
    label: str
    reason: str


type ItemOutcome = Accepted | Rejected


@dataclass(frozen=True, slots=True)
class SelectionBatch:
    """Aggregated per-item outcomes, in selection order."""

    outcomes: tuple[ItemOutcome, ...] = ()

    @property
    def accepted(self) -> tuple[Accepted, ...]:
        return tuple(o for o in self.outcomes if isinstance(o, Accepted))

    @property
    def accepted_prs(self) -> tuple[Accepted, ...]:
        return tuple(o for o in self.accepted if o.kind == "pr")

    @property
    def accepted_commits(self) -> tuple[Accepted, ...]:
        return tuple(o for o in self.accepted if o.kind == "commit")

    @property
    def rejected(self) -> tuple[Rejected, ...]:
        return tuple(o for o in self.outcomes if isinstance(o, Rejected))

    @property
    def has_accepted(self) -> bool:
        return any(isinstance(o, Accepted) for o in self.outcomes)

    @property
    def cherry_pick_order(self) -> tuple[Accepted, ...]:
        """PR merges in selection order, then plain commits in selection order."""
        return self.accepted_prs + self.accepted_commits


# -----------------------------------------------------------------------------
# Assembly / publication
# -----------------------------------------------------------------------------


def release_branch_name(now_utc: datetime) -> str:
    return f"{RELEASE_BRANCH_PREFIX}{now_utc.strftime('%Y%m%d-%H%M%S')}"


@dataclass(frozen=True, slots=True)
class AssemblyReport:
    branch: str
    applied: tuple[Accepted, ...]
    conflicted: tuple[Accepted, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicted)


@dataclass(frozen=True, slots=True)
class PullRequestSettings:
    draft: bool
    reviewers: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PullRequestDraft:
    title: str
    body: str
    base: str
    head: str
    settings: PullRequestSettings
