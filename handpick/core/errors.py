"""Exit codes for the handpick CLI.

Values are used as process exit codes and should remain stable:
- 0: Success, including "nothing to release"
- 1: User error (no valid items, declined a prompt, aborted on conflict)
- 2: Environment error (not a git repo, gh missing or unauthenticated)
- 3: Git error (local branch/cherry-pick plumbing failed)
- 4: Network error (push rejected, pull request creation failed)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GIT_ERROR = 3
    NETWORK_ERROR = 4

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
