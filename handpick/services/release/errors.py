from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "not_a_repo",
    "gh_missing",
    "gh_auth_required",
    "repo_unknown",
    "invalid_input",
    "dirty_worktree",
    "nothing_to_include",
    "declined",
    "git_failed",
    "conflict_aborted",
    "push_failed",
    "pr_create_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload, rendered by ``handpick.output.errors``."""

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
