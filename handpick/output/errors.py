"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from handpick.core.errors import ErrorCode
from handpick.output.console import Style
from handpick.services.release.errors import ReleaseError

if TYPE_CHECKING:
    from handpick.core.config import ConfigError
    from handpick.output.console import ConsoleProtocol

__all__ = ["print_config_error", "print_release_error", "release_error_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    """Print a release error to console with appropriate formatting."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def print_config_error(error: ConfigError, console: ConsoleProtocol) -> None:
    console.error(f"invalid config: {error.message}")
    if error.path is not None:
        console.print(f"file: {error.path}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    """Get exit code for a release error."""
    match error.kind:
        case "not_a_repo" | "gh_missing" | "gh_auth_required" | "repo_unknown":
            return int(ErrorCode.ENV_ERROR)
        case "git_failed":
            return int(ErrorCode.GIT_ERROR)
        case "push_failed" | "pr_create_failed":
            return int(ErrorCode.NETWORK_ERROR)
        case (
            "invalid_input"
            | "dirty_worktree"
            | "nothing_to_include"
            | "declined"
            | "conflict_aborted"
        ):
            return int(ErrorCode.USER_ERROR)
    return int(ErrorCode.USER_ERROR)
