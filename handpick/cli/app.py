from __future__ import annotations

from pathlib import Path

import typer

from handpick import __version__
from handpick.cli.context import build_context
from handpick.cli.prompts import TyperPrompts
from handpick.core.errors import ErrorCode
from handpick.core.result import Err
from handpick.output.errors import print_release_error, release_error_exit_code
from handpick.services.release.contracts import HandpickRequest
from handpick.services.release.flow import run_handpick

app = typer.Typer(
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.command()
def handpick(
    identifiers: list[str] | None = typer.Argument(
        None,
        help="PR numbers and/or commit hashes. Omit to pick from unreleased changes.",
    ),
    draft: bool | None = typer.Option(
        None, "--draft/--ready", help="Open the PR as draft or ready (skips the prompt)"
    ),
    reviewer: list[str] = typer.Option(
        [], "--reviewer", "-r", help="Request a review (repeatable; skips the prompt)"
    ),
    integration_branch: str | None = typer.Option(
        None, "--integration-branch", help="Branch changes are picked from (default: develop)"
    ),
    stable_branch: str | None = typer.Option(
        None, "--stable-branch", help="Branch the release targets (default: master, else main)"
    ),
    remote: str | None = typer.Option(None, "--remote", help="Git remote (default: origin)"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate and print the plan without touching branches"
    ),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: .handpick.toml at the repo root)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Create a hand-picked release PR from selected PRs and commits.

    PR merge commits are cherry-picked first (first-parent mainline), then
    plain commits, onto a new release/handpicked-* branch cut from the
    stable branch.
    """
    ctx = build_context(config_path=config)
    cfg = ctx.config.with_overrides(
        integration=integration_branch,
        stable=stable_branch,
        remote=remote,
    )

    reviewers: tuple[str, ...] | None = tuple(reviewer) if reviewer else None
    if reviewers is None and cfg.pull_request.reviewers:
        reviewers = cfg.pull_request.reviewers

    request = HandpickRequest(
        workspace_root=ctx.workspace_root,
        config=cfg,
        identifiers=tuple(identifiers or ()),
        draft=draft,
        reviewers=reviewers,
        dry_run=dry_run,
    )
    result = run_handpick(
        request=request,
        repo=ctx.repo,
        prompts=TyperPrompts(ctx.console),
        console=ctx.console,
    )
    if isinstance(result, Err):
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error))

    raise typer.Exit(code=int(ErrorCode.OK))


def main() -> None:
    app()
