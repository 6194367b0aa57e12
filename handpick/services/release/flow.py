"""End-to-end hand-picked release run.

Sequence: environment checks -> branch detection and fetch -> discovery
(interactive only) -> selection and decision -> release session ->
assembly -> push -> pull request. Everything before the session is
read-only; the session owns every change made to the working tree.
"""

from __future__ import annotations

from datetime import UTC, datetime

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol, Style
from handpick.services.release.assembly import assemble_release_branch
from handpick.services.release.contracts import HandpickOutcome, HandpickRequest, ReleasePrompts
from handpick.services.release.discovery import discover_unreleased
from handpick.services.release.environment import (
    check_environment,
    detect_stable_branch,
    refresh_branches,
)
from handpick.services.release.errors import ReleaseError
from handpick.services.release.model import (
    DirectCommit,
    PRMerge,
    ReleaseBranches,
    SelectionBatch,
    UnreleasedSet,
    release_branch_name,
    short_sha,
)
from handpick.services.release.publication import (
    create_pull_request,
    make_draft,
    pull_request_title,
    push_release_branch,
)
from handpick.services.release.selection import decide, resolve_selection
from handpick.services.release.session import open_session


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def show_unreleased(
    unreleased: UnreleasedSet,
    *,
    branches: ReleaseBranches,
    title_max_length: int,
    console: ConsoleProtocol,
) -> None:
    rows: list[list[str]] = []
    styles: list[Style] = []
    for item in unreleased.items:
        match item:
            case PRMerge():
                rows.append(
                    [
                        "PR",
                        f"#{item.number}",
                        truncate(item.title, title_max_length),
                        item.author,
                        item.merged_date,
                    ]
                )
                styles.append(Style.PR)
            case DirectCommit():
                rows.append(
                    [
                        "COMMIT",
                        item.short_sha,
                        truncate(item.display_subject, title_max_length),
                        item.author,
                        item.date,
                    ]
                )
                styles.append(Style.COMMIT)

    console.table(
        ["Type", "ID/Ref", "Title/Subject", "Author", "Date"],
        rows,
        row_styles=styles,
        title=(
            f"Changes waiting to be released "
            f"(in {branches.integration}, not in {branches.stable})"
        ),
    )
    console.print("Enter PR numbers or commit hashes to include (space-separated).", Style.INFO)
    console.print("  PRs: use the PR number (e.g. 1234)", Style.DIM)
    console.print("  Commits: use the commit hash (e.g. abc1234)", Style.DIM)
    console.print("  Press Enter to exit", Style.DIM)


def show_plan(
    batch: SelectionBatch,
    *,
    branch: str,
    title: str,
    branches: ReleaseBranches,
    console: ConsoleProtocol,
) -> None:
    console.header("Release plan")
    console.print(f"branch: {branch} (from {branches.stable})")
    console.print(f"title:  {title}")
    for item in batch.cherry_pick_order:
        console.print(f"  pick {short_sha(item.commit_sha)}  {item.label}")
    for rejected in batch.rejected:
        console.print(f"  skip {rejected.label}: {rejected.reason}", Style.DIM)


def run_handpick(
    *,
    request: HandpickRequest,
    repo: Repository,
    prompts: ReleasePrompts,
    console: ConsoleProtocol,
    now: datetime | None = None,
) -> Result[HandpickOutcome, ReleaseError]:
    """Run one release; ``now`` is the operator's local time.

    The PR title and body carry the local date; the branch name uses UTC.
    """
    config = request.config
    root = request.workspace_root
    local_now = now or datetime.now().astimezone()
    now_utc = local_now.astimezone(UTC)

    env = check_environment(workspace_root=root, repo=repo)
    if isinstance(env, Err):
        return env
    slug = env.value

    stable = detect_stable_branch(
        workspace_root=root,
        repo=repo,
        slug=slug,
        candidates=config.branches.stable,
        remote=config.branches.remote,
    )
    branches = ReleaseBranches(
        integration=config.branches.integration,
        stable=stable,
        remote=config.branches.remote,
    )
    console.print(f"Repository: {slug} ({branches.integration} -> {branches.stable})", Style.INFO)
    refresh_branches(repo=repo, branches=branches, console=console)

    identifiers = list(request.identifiers)
    if not identifiers:
        found = discover_unreleased(
            workspace_root=root,
            repo=repo,
            slug=slug,
            branches=branches,
            pr_limit=config.discovery.pr_limit,
            console=console,
        )
        if isinstance(found, Err):
            return found
        if found.value.is_empty:
            console.success("No unreleased changes found!")
            console.print(
                f"All changes in {branches.integration} are already in {branches.stable}.",
                Style.DIM,
            )
            console.print("You can still name PR numbers or commit hashes explicitly.", Style.DIM)
            return Ok(HandpickOutcome(status="nothing_to_do"))

        show_unreleased(
            found.value,
            branches=branches,
            title_max_length=config.discovery.title_max_length,
            console=console,
        )
        identifiers = prompts.select_identifiers()
        if not identifiers:
            console.info("Exiting. Nothing selected.")
            return Ok(HandpickOutcome(status="nothing_to_do"))

    console.header("Validating selection")
    batch = resolve_selection(
        identifiers=identifiers,
        workspace_root=root,
        repo=repo,
        slug=slug,
        branches=branches,
        min_hash_length=config.discovery.commit_hash_min_length,
        console=console,
    )
    decided = decide(batch, confirm_partial=prompts.confirm_partial)
    if isinstance(decided, Err):
        return decided
    batch = decided.value

    branch = release_branch_name(now_utc)
    show_plan(
        batch,
        branch=branch,
        title=pull_request_title(local_now),
        branches=branches,
        console=console,
    )
    if request.dry_run:
        console.info("Dry run: no branch created, nothing pushed.")
        return Ok(HandpickOutcome(status="dry_run", branch=branch))

    opened = open_session(repo=repo, console=console, confirm_stash=prompts.confirm_stash)
    if isinstance(opened, Err):
        return opened

    with opened.value as session:
        assembled = assemble_release_branch(
            repo=repo,
            branches=branches,
            batch=batch,
            name=branch,
            session=session,
            on_conflict=prompts.on_conflict,
            console=console,
        )
        if isinstance(assembled, Err):
            return assembled
        report = assembled.value

        console.header("Publishing")
        pushed = push_release_branch(
            repo=repo,
            branches=branches,
            branch=branch,
            session=session,
            console=console,
        )
        if isinstance(pushed, Err):
            return pushed

        settings = prompts.pull_request_settings(
            draft=request.draft,
            reviewers=request.reviewers,
            default_draft=config.pull_request.draft,
        )
        draft = make_draft(
            batch=batch,
            branches=branches,
            branch=branch,
            settings=settings,
            now=local_now,
            report=report,
        )
        created = create_pull_request(
            workspace_root=root,
            repo_slug=slug,
            draft=draft,
            console=console,
        )
        if isinstance(created, Err):
            console.print(
                f"Branch {branch} stays on {branches.remote} for manual recovery.", Style.DIM
            )
            return created

        session.mark_succeeded()
        status = " (draft)" if settings.draft else ""
        console.success(f"Created hand-picked release PR{status}: {created.value}")
        return Ok(
            HandpickOutcome(status="created", branch=branch, url=created.value, report=report)
        )
