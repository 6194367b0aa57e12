"""Cross-layer contracts between the CLI and the release flow."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

from handpick.core.config import HandpickConfig
from handpick.git.repository import GitError
from handpick.services.release.model import (
    Accepted,
    AssemblyReport,
    ConflictChoice,
    PullRequestSettings,
    SelectionBatch,
)

OutcomeStatus = Literal["nothing_to_do", "dry_run", "created"]


class ReleasePrompts(Protocol):
    """Operator decisions the flow needs; the CLI answers them interactively."""

    def select_identifiers(self) -> list[str]: ...

    def confirm_stash(self) -> bool: ...

    def confirm_partial(self, batch: SelectionBatch) -> bool: ...

    def on_conflict(self, item: Accepted, error: GitError) -> ConflictChoice: ...

    def pull_request_settings(
        self,
        *,
        draft: bool | None,
        reviewers: tuple[str, ...] | None,
        default_draft: bool,
    ) -> PullRequestSettings:
        """Fill in whichever of ``draft``/``reviewers`` is None."""
        ...


@dataclass(frozen=True, slots=True)
class HandpickRequest:
    """Normalized run request shared between CLI and flow."""

    workspace_root: Path
    config: HandpickConfig
    identifiers: tuple[str, ...] = ()
    draft: bool | None = None
    reviewers: tuple[str, ...] | None = None
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class HandpickOutcome:
    status: OutcomeStatus
    branch: str | None = None
    url: str | None = None
    report: AssemblyReport | None = None
