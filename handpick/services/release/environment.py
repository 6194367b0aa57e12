from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol, Style
from handpick.services.release.errors import ReleaseError
from handpick.services.release.gh import (
    branch_exists,
    detect_repo,
    ensure_gh_auth,
    ensure_gh_available,
)
from handpick.services.release.model import ReleaseBranches


def check_environment(*, workspace_root: Path, repo: Repository) -> Result[str, ReleaseError]:
    """Preconditions, in order; returns the ``owner/name`` slug.

    Nothing here touches the working tree.
    """
    if not repo.is_work_tree():
        return Err(
            ReleaseError(
                kind="not_a_repo",
                message="not in a git repository",
                hint="Run handpick from inside your project checkout.",
            )
        )

    available = ensure_gh_available()
    if isinstance(available, Err):
        return available

    auth = ensure_gh_auth(workspace_root=workspace_root)
    if isinstance(auth, Err):
        return auth

    return detect_repo(workspace_root=workspace_root)


def detect_stable_branch(
    *,
    workspace_root: Path,
    repo: Repository,
    slug: str,
    candidates: Sequence[str],
    remote: str,
) -> str:
    """First candidate the hosting API knows, then the first with a local remote ref."""
    for name in candidates:
        exists = branch_exists(workspace_root=workspace_root, repo=slug, branch=name)
        if isinstance(exists, Ok) and exists.value:
            return name

    for name in candidates:
        if repo.remote_branch_exists(remote, name):
            return name

    return candidates[0]


def refresh_branches(
    *,
    repo: Repository,
    branches: ReleaseBranches,
    console: ConsoleProtocol,
) -> None:
    """Best-effort fetch of both branch tips; stale refs are still usable."""
    console.print(
        f"git fetch {branches.remote} {branches.integration} {branches.stable}", Style.DIM
    )
    fetched = repo.fetch(branches.remote, branches.integration, branches.stable)
    if isinstance(fetched, Err):
        console.print(f"fetch failed, using local refs ({fetched.error.message})", Style.DIM)
