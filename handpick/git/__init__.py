"""Git operations.

Usage:
    from handpick.git import Repository

    repo = Repository(Path.cwd())
    if repo.is_work_tree():
        print(repo.current_branch())
"""

from handpick.git.repository import (
    GitError,
    GitStatus,
    LogCommit,
    Repository,
    StatusEntry,
)

__all__ = [
    "GitError",
    "GitStatus",
    "LogCommit",
    "Repository",
    "StatusEntry",
]
