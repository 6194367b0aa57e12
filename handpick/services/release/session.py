from __future__ import annotations

from collections.abc import Callable, Sequence

from handpick.core.result import Err, Ok, Result
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol, Style
from handpick.services.release.errors import ReleaseError

STASH_MESSAGE = "Stashed for hand-picked release PR"


class ReleaseSession:
    """Scoped working-tree state for one release run.

    Records where the operator started and what the run changed, and puts
    the tree back on every exit path. Callers flip ``succeeded`` once the
    pull request exists; anything else counts as a failed run.
    """

    def __init__(
        self,
        *,
        repo: Repository,
        console: ConsoleProtocol,
        original_branch: str | None,
        original_head: str | None,
        stashed: bool,
    ) -> None:
        self._repo = repo
        self._console = console
        self.original_branch = original_branch
        self.original_head = original_head
        self.stashed = stashed
        self.release_branch: str | None = None
        self.pushed = False
        self.succeeded = False
        self.conflicts_left = False
        self.remaining_picks: tuple[str, ...] = ()

    @property
    def restore_target(self) -> str | None:
        return self.original_branch or self.original_head

    def branch_created(self, name: str) -> None:
        self.release_branch = name

    def mark_pushed(self) -> None:
        self.pushed = True

    def mark_conflicts_left(self, remaining_picks: Sequence[str] = ()) -> None:
        """Keep the conflict in the tree; ``remaining_picks`` are commands for later items."""
        self.conflicts_left = True
        self.remaining_picks = tuple(remaining_picks)

    def mark_succeeded(self) -> None:
        self.succeeded = True

    def close(self) -> None:
        """Restore the working tree; safe to call more than once."""
        if self.conflicts_left and (self.succeeded or self.pushed):
            self._leave_conflicts()
            return

        repo = self._repo
        console = self._console

        if not self.succeeded and repo.cherry_pick_in_progress():
            console.print("git cherry-pick --abort", Style.DIM)
            repo.cherry_pick_abort()

        target = self.restore_target
        if target is not None and repo.current_branch() != target:
            console.print(f"git checkout {target}", Style.DIM)
            checkout = repo.checkout(target)
            if isinstance(checkout, Err):
                console.warning(f"could not return to {target}: {checkout.error.message}")

        branch = self.release_branch
        if branch is not None and not self.pushed and not self.succeeded:
            console.print(f"git branch -D {branch}", Style.DIM)
            deleted = repo.delete_branch(branch)
            if isinstance(deleted, Ok):
                self.release_branch = None
            else:
                console.warning(f"could not delete {branch}: {deleted.error.message}")

        if self.stashed:
            console.print("git stash pop", Style.DIM)
            popped = repo.stash_pop()
            if isinstance(popped, Err):
                console.warning("stashed changes could not be restored automatically")
                console.print("Run: git stash list && git stash pop", Style.DIM)
            self.stashed = False

    def _leave_conflicts(self) -> None:
        console = self._console
        console.warning(f"unresolved conflicts left on {self.release_branch}")
        console.print("Resolve them, then run: git cherry-pick --continue", Style.DIM)
        if self.remaining_picks:
            console.print("Then pick the remaining items:", Style.DIM)
            for command in self.remaining_picks:
                console.print(f"  {command}", Style.DIM)
        if self.release_branch is not None:
            console.print(f"Then push: git push {self.release_branch}", Style.DIM)
        if self.restore_target is not None:
            console.print(f"Return afterwards with: git checkout {self.restore_target}", Style.DIM)
        if self.stashed:
            console.print("Your stashed changes are kept; run: git stash pop", Style.DIM)

    def __enter__(self) -> ReleaseSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: object | None,
    ) -> None:
        self.close()


def open_session(
    *,
    repo: Repository,
    console: ConsoleProtocol,
    confirm_stash: Callable[[], bool],
) -> Result[ReleaseSession, ReleaseError]:
    """Record the starting point and stash local changes if the operator agrees."""
    status = repo.status()
    if isinstance(status, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message="failed to read git status",
                hint=status.error.message,
            )
        )

    original_branch = repo.current_branch()
    original_head = None if original_branch else repo.resolve_commit("HEAD")

    stashed = False
    if not status.value.is_clean:
        console.warning("You have uncommitted changes.")
        if not confirm_stash():
            return Err(
                ReleaseError(
                    kind="dirty_worktree",
                    message="uncommitted changes",
                    hint="Commit or stash your changes, then retry.",
                )
            )
        console.print(f"git stash push -m {STASH_MESSAGE!r}", Style.DIM)
        stash = repo.stash_push(STASH_MESSAGE)
        if isinstance(stash, Err):
            return Err(
                ReleaseError(
                    kind="git_failed",
                    message="failed to stash changes",
                    hint=stash.error.message,
                )
            )
        stashed = True

    return Ok(
        ReleaseSession(
            repo=repo,
            console=console,
            original_branch=original_branch,
            original_head=original_head,
            stashed=stashed,
        )
    )
