from __future__ import annotations

from datetime import datetime
from pathlib import Path

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol, Style
from handpick.platform.process import run as run_process
from handpick.services.release.errors import ReleaseError
from handpick.services.release.model import (
    Accepted,
    AssemblyReport,
    PullRequestDraft,
    PullRequestSettings,
    ReleaseBranches,
    SelectionBatch,
)
from handpick.services.release.session import ReleaseSession
from handpick.services.release.timeouts import GH_PR_CREATE_TIMEOUT_SECONDS

TOOL_NAME = "handpick"


def release_date(now: datetime) -> str:
    return now.strftime("%b %d")


def pull_request_title(now: datetime) -> str:
    return f"Release, {release_date(now)} (Hand-picked)"


def _section(heading: str, lines: list[str]) -> str:
    bullets = "".join(f"- {line}\n" for line in lines)
    return f"## {heading}\n\n{bullets}\n"


def build_pull_request_body(
    *,
    batch: SelectionBatch,
    branches: ReleaseBranches,
    now: datetime,
    reviewers: tuple[str, ...] = (),
    report: AssemblyReport | None = None,
) -> str:
    """Markdown body: preamble, included PRs and commits, pending, skipped, reviewers.

    With a ``report``, only applied items count as included and conflicted
    ones are listed as pending. Empty sections are omitted. Skipped items
    list labels only.
    """
    body = (
        f"Hand-picked release PR merging selected PRs and commits from "
        f"{branches.integration} into {branches.stable} for {release_date(now)}.\n\n"
        f"This PR was created using the `{TOOL_NAME}` tool.\n\n"
    )

    included: tuple[Accepted, ...] = batch.cherry_pick_order
    pending: tuple[Accepted, ...] = ()
    if report is not None:
        included = report.applied
        pending = report.conflicted

    prs = [a.label for a in included if a.kind == "pr"]
    if prs:
        body += _section("Included PRs:", prs)

    commits = [a.label for a in included if a.kind == "commit"]
    if commits:
        body += _section("Included Commits:", commits)

    if pending:
        body += _section(
            "Pending (conflicted, to be picked manually):", [a.label for a in pending]
        )

    skipped = [r.label for r in batch.rejected]
    if skipped:
        body += _section("Skipped Items (could not be included):", skipped)

    if reviewers:
        body += _section("Reviewers:", [" ".join(reviewers)])

    return body


def push_release_branch(
    *,
    repo: Repository,
    branches: ReleaseBranches,
    branch: str,
    session: ReleaseSession,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    console.print(f"git push -u {branches.remote} {branch}", Style.DIM)
    pushed = repo.push(branches.remote, branch)
    if isinstance(pushed, Err):
        return Err(
            ReleaseError(
                kind="push_failed",
                message=f"failed to push {branch}",
                hint=pushed.error.message,
            )
        )

    session.mark_pushed()
    return Ok(None)


def pull_request_command(*, repo_slug: str, draft: PullRequestDraft) -> list[str]:
    cmd = [
        "gh",
        "pr",
        "create",
        "--base",
        draft.base,
        "--head",
        draft.head,
        "--title",
        draft.title,
        "--body",
        draft.body,
        "--repo",
        repo_slug,
    ]
    if draft.settings.draft:
        cmd.append("--draft")
    for reviewer in draft.settings.reviewers:
        cmd += ["--reviewer", reviewer]
    return cmd


def create_pull_request(
    *,
    workspace_root: Path,
    repo_slug: str,
    draft: PullRequestDraft,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    """Open the release PR and return its URL."""
    cmd = pull_request_command(repo_slug=repo_slug, draft=draft)
    console.print(" ".join(cmd[:3]) + " ...", Style.DIM)

    result = run_process(cmd, cwd=workspace_root, timeout=GH_PR_CREATE_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="pr_create_failed",
                message="failed to create pull request",
                hint=result.error.detail,
            )
        )

    # gh may print progress lines before the URL.
    lines = result.value.strip().splitlines()
    url = lines[-1].strip() if lines else ""
    if not url.startswith("https://"):
        return Err(
            ReleaseError(
                kind="pr_create_failed",
                message="unexpected gh pr create output",
                hint=result.value.strip() or None,
            )
        )
    return Ok(url)


def make_draft(
    *,
    batch: SelectionBatch,
    branches: ReleaseBranches,
    branch: str,
    settings: PullRequestSettings,
    now: datetime,
    report: AssemblyReport | None = None,
) -> PullRequestDraft:
    return PullRequestDraft(
        title=pull_request_title(now),
        body=build_pull_request_body(
            batch=batch,
            branches=branches,
            now=now,
            reviewers=settings.reviewers,
            report=report,
        ),
        base=branches.stable,
        head=branch,
        settings=settings,
    )
