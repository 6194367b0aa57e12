from __future__ import annotations

from collections.abc import Callable

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import GitError, Repository
from handpick.output.console import ConsoleProtocol, Style
from handpick.services.release.errors import ReleaseError
from handpick.services.release.model import (
    Accepted,
    AssemblyReport,
    ConflictChoice,
    ReleaseBranches,
    SelectionBatch,
    short_sha,
)
from handpick.services.release.session import ReleaseSession

OnConflict = Callable[[Accepted, GitError], ConflictChoice]


def create_release_branch(
    *,
    repo: Repository,
    branches: ReleaseBranches,
    name: str,
    session: ReleaseSession,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Cut ``name`` from the remote stable tip, or the local stable branch."""
    start = branches.stable_ref
    if not repo.remote_branch_exists(branches.remote, branches.stable):
        start = branches.stable

    console.print(f"git checkout -b {name} {start}", Style.DIM)
    created = repo.create_branch(name, start)
    if isinstance(created, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"failed to create branch: {name}",
                hint=created.error.message,
            )
        )

    session.branch_created(name)
    return Ok(None)


def _mainline_for(item: Accepted, repo: Repository) -> int | None:
    if item.kind == "pr":
        return 1
    # A plain commit that is itself a merge still needs a mainline parent.
    if repo.parent_count(item.commit_sha) > 1:
        return 1
    return None


def cherry_pick_items(
    *,
    repo: Repository,
    batch: SelectionBatch,
    branch: str,
    session: ReleaseSession,
    on_conflict: OnConflict,
    console: ConsoleProtocol,
) -> Result[AssemblyReport, ReleaseError]:
    """Replay the accepted items: PR merges first, then plain commits.

    An "abort" answer rolls back the conflicting pick and fails the run.
    A "continue" answer leaves the conflict in the tree; later items cannot
    start while it is unresolved, so they are recorded as conflicted too and
    the session keeps the commands that pick them by hand.
    """
    applied: list[Accepted] = []
    conflicted: list[Accepted] = []
    remaining: list[str] = []

    for item in batch.cherry_pick_order:
        mainline = _mainline_for(item, repo)
        flag = f"-m {mainline} " if mainline is not None else ""
        console.print(f"git cherry-pick {flag}{short_sha(item.commit_sha)}", Style.DIM)

        picked = repo.cherry_pick(item.commit_sha, mainline=mainline)
        if isinstance(picked, Ok):
            console.success(f"Cherry-picked {item.label}")
            applied.append(item)
            continue

        console.error(f"Failed to cherry-pick {item.label}")
        if conflicted:
            console.print("an earlier conflict is still unresolved", Style.DIM)
            conflicted.append(item)
            remaining.append(f"git cherry-pick {flag}{item.commit_sha}")
            continue

        choice = on_conflict(item, picked.error)
        if choice == "abort":
            console.print("git cherry-pick --abort", Style.DIM)
            repo.cherry_pick_abort()
            return Err(
                ReleaseError(
                    kind="conflict_aborted",
                    message=f"cherry-pick of {item.label} conflicted; release aborted",
                    hint=picked.error.message,
                )
            )

        conflicted.append(item)

    if conflicted:
        session.mark_conflicts_left(remaining)
    return Ok(AssemblyReport(branch=branch, applied=tuple(applied), conflicted=tuple(conflicted)))


def assemble_release_branch(
    *,
    repo: Repository,
    branches: ReleaseBranches,
    batch: SelectionBatch,
    name: str,
    session: ReleaseSession,
    on_conflict: OnConflict,
    console: ConsoleProtocol,
) -> Result[AssemblyReport, ReleaseError]:
    console.header("Creating release branch")
    created = create_release_branch(
        repo=repo,
        branches=branches,
        name=name,
        session=session,
        console=console,
    )
    if isinstance(created, Err):
        return created

    console.header("Cherry-picking selected items")
    return cherry_pick_items(
        repo=repo,
        batch=batch,
        branch=name,
        session=session,
        on_conflict=on_conflict,
        console=console,
    )
