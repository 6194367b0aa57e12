from __future__ import annotations

import typer

from handpick.git.repository import GitError
from handpick.output.console import ConsoleProtocol, Style
from handpick.services.release.model import (
    Accepted,
    ConflictChoice,
    PullRequestSettings,
    SelectionBatch,
)


def split_words(raw: str) -> list[str]:
    return raw.split()


class TyperPrompts:
    """Interactive answers for the release flow, asked on the terminal."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def select_identifiers(self) -> list[str]:
        raw = typer.prompt("Selection", default="", show_default=False)
        return split_words(raw)

    def confirm_stash(self) -> bool:
        return typer.confirm("Stash them and continue?", default=False)

    def confirm_partial(self, batch: SelectionBatch) -> bool:
        self._console.newline()
        self._console.warning(
            f"{len(batch.rejected)} item(s) could not be included; "
            f"{len(batch.accepted)} valid item(s) remain."
        )
        return typer.confirm("Continue with the valid items?", default=False)

    def on_conflict(self, item: Accepted, error: GitError) -> ConflictChoice:
        self._console.print(error.message, Style.DIM)
        self._console.warning("You may need to resolve conflicts manually.")
        if typer.confirm("Continue with remaining items?", default=False):
            return "continue"
        return "abort"

    def pull_request_settings(
        self,
        *,
        draft: bool | None,
        reviewers: tuple[str, ...] | None,
        default_draft: bool,
    ) -> PullRequestSettings:
        self._console.header("PR settings")
        if draft is None:
            draft = typer.confirm("Create PR as draft?", default=default_draft)
        self._console.success("Will create as draft PR" if draft else "Will create as active PR")

        if reviewers is None:
            raw = typer.prompt(
                "Add reviewers? (space-separated GitHub usernames, Enter to skip)",
                default="",
                show_default=False,
            )
            reviewers = tuple(split_words(raw))
        if reviewers:
            self._console.success(f"Reviewers: {' '.join(reviewers)}")
        else:
            self._console.info("No reviewers specified")

        return PullRequestSettings(draft=draft, reviewers=reviewers)
