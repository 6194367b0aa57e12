"""Git repository abstraction.

This module provides the Repository class used by every release step:
ancestry queries for discovery, reachability checks for selection,
branch/cherry-pick plumbing for assembly, and stash handling for the
release session. All operations that can fail return Result types.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.log_range("origin/develop", exclude="origin/master"):
        case Ok(commits):
            for c in commits:
                print(c.short_sha, c.subject)
        case Err(e):
            print(f"log failed: {e.message}")

    match repo.cherry_pick(sha, mainline=1):
        case Ok(_):
            print("applied")
        case Err(e):
            print(f"conflict: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from handpick.core.result import Err, Ok, Result
from handpick.platform.process import ProcessError
from handpick.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Unit separator between fields of one `git log` record.
_FIELD_SEP = "\x1f"
_LOG_FORMAT = _FIELD_SEP.join(("%H", "%P", "%an", "%ad", "%s"))

_UNMERGED_XY = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}

__all__ = [
    "GitError",
    "GitStatus",
    "LogCommit",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??", "UU")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"

    @property
    def is_unmerged(self) -> bool:
        """True if the path has an unresolved conflict."""
        return self.xy in _UNMERGED_XY

    def pretty_xy(self) -> str:
        """Format XY with dots for spaces (". M" instead of " M")."""
        return self.xy.replace(" ", ".")


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed `git status --porcelain=v1 -b` output.

    Attributes:
        branch: Current branch name
        upstream: Upstream branch (e.g., "origin/develop"), None if not set
        entries: All status entries (staged, unstaged, untracked, unmerged)
    """

    branch: str
    upstream: str | None = None
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return len(self.entries) == 0

    @property
    def unmerged(self) -> list[StatusEntry]:
        return [e for e in self.entries if e.is_unmerged]

    @property
    def has_conflicts(self) -> bool:
        return any(e.is_unmerged for e in self.entries)


@dataclass(frozen=True, slots=True)
class LogCommit:
    """One commit from `git log`, in the shape discovery needs."""

    sha: str
    parents: tuple[str, ...]
    author: str
    date: str
    subject: str

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository work tree
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def is_work_tree(self) -> bool:
        """True if ``path`` is inside a git work tree."""
        result = self._run(["rev-parse", "--is-inside-work-tree"])
        return isinstance(result, Ok) and result.value.strip() == "true"

    def toplevel(self) -> Path | None:
        """Absolute path of the work tree root, or None outside a repo."""
        result = self._run(["rev-parse", "--show-toplevel"])
        match result:
            case Ok(stdout):
                return Path(stdout.strip())
            case Err(_):
                return None

    def status(self) -> Result[GitStatus, GitError]:
        """Get repository status.

        Runs `git status --porcelain=v1 -b` and parses the output.
        """
        result = self._run(["status", "--porcelain=v1", "-b"])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="status",
                        message=e.stderr.strip() or "git status failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        result = self._run(["show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{branch}"])
        return isinstance(result, Ok)

    def local_branch_exists(self, branch: str) -> bool:
        result = self._run(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"])
        return isinstance(result, Ok)

    def resolve_commit(self, ref: str) -> str | None:
        """Resolve a short hash, tag or other symbolic ref to a full commit sha."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def has_commit(self, sha: str) -> bool:
        return isinstance(self._run(["cat-file", "-e", f"{sha}^{{commit}}"]), Ok)

    def is_ancestor(self, sha: str, ref: str) -> bool:
        """True if ``sha`` is reachable from ``ref``."""
        return isinstance(self._run(["merge-base", "--is-ancestor", sha, ref]), Ok)

    def parent_count(self, sha: str) -> int:
        """Number of parents of ``sha`` (0 if it cannot be read)."""
        result = self._run(["rev-list", "--parents", "-n", "1", sha])
        match result:
            case Ok(stdout):
                parts = stdout.split()
                return max(0, len(parts) - 1)
            case Err(_):
                return 0

    def commit_summary(self, sha: str) -> tuple[str, str] | None:
        """Return (subject, author name) for ``sha``."""
        result = self._run(["log", "-1", f"--format=%s{_FIELD_SEP}%an", sha])
        match result:
            case Ok(stdout):
                line = stdout.strip("\n")
                if _FIELD_SEP not in line:
                    return None
                subject, author = line.split(_FIELD_SEP, 1)
                return (subject, author)
            case Err(_):
                return None

    def log_range(
        self, include: str, *, exclude: str | None = None
    ) -> Result[list[LogCommit], GitError]:
        """Commits reachable from ``include`` but not from ``exclude``, oldest first."""
        args = ["log", "--reverse", f"--format={_LOG_FORMAT}", "--date=short", include]
        if exclude is not None:
            args += ["--not", exclude]
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="log",
                        message=e.stderr.strip() or "git log failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(self._parse_log(stdout))

    def grep_log(self, pattern: str, include: str, *, exclude: str | None = None) -> str | None:
        """Newest commit in range whose message matches the extended regex ``pattern``."""
        args = ["log", "-E", f"--grep={pattern}", "--format=%H", include]
        if exclude is not None:
            args += ["--not", exclude]
        result = self._run(args)
        match result:
            case Ok(stdout):
                lines = [ln.strip() for ln in stdout.splitlines() if ln.strip()]
                return lines[0] if lines else None
            case Err(_):
                return None

    def cherry_pick_in_progress(self) -> bool:
        result = self._run(["rev-parse", "--git-path", "CHERRY_PICK_HEAD"])
        match result:
            case Ok(stdout):
                marker = Path(stdout.strip())
                if not marker.is_absolute():
                    marker = self.path / marker
                return marker.exists()
            case Err(_):
                return False

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def fetch(self, remote: str, *refs: str) -> Result[str, GitError]:
        return self._call(["fetch", remote, *refs], label="fetch")

    def checkout(self, branch: str) -> Result[str, GitError]:
        return self._call(["checkout", branch], label="checkout")

    def create_branch(self, name: str, start_point: str) -> Result[str, GitError]:
        """Create ``name`` at ``start_point`` and switch to it."""
        return self._call(["checkout", "-b", name, start_point], label="checkout -b")

    def delete_branch(self, name: str) -> Result[str, GitError]:
        return self._call(["branch", "-D", name], label="branch -D")

    def cherry_pick(self, sha: str, *, mainline: int | None = None) -> Result[str, GitError]:
        """Cherry-pick ``sha``; ``mainline=1`` replays a merge against its first parent."""
        args = ["cherry-pick"]
        if mainline is not None:
            args += ["-m", str(mainline)]
        args.append(sha)
        return self._call(args, label="cherry-pick")

    def cherry_pick_abort(self) -> Result[str, GitError]:
        return self._call(["cherry-pick", "--abort"], label="cherry-pick --abort")

    def stash_push(self, message: str) -> Result[str, GitError]:
        """Stash tracked and untracked changes."""
        return self._call(
            ["stash", "push", "--include-untracked", "-m", message], label="stash push"
        )

    def stash_pop(self) -> Result[str, GitError]:
        return self._call(["stash", "pop"], label="stash pop")

    def push(self, remote: str, branch: str) -> Result[str, GitError]:
        """Push ``branch`` and set its upstream."""
        return self._call(["push", "-u", remote, branch], label="push")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _call(self, args: list[str], *, label: str) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=label,
                        message=e.stderr.strip() or e.stdout.strip() or f"git {label} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_log(self, output: str) -> list[LogCommit]:
        commits: list[LogCommit] = []
        for line in output.splitlines():
            if not line.strip():
                continue
            parts = line.split(_FIELD_SEP)
            if len(parts) != 5:
                continue
            sha, parents, author, date, subject = parts
            commits.append(
                LogCommit(
                    sha=sha.strip(),
                    parents=tuple(parents.split()),
                    author=author,
                    date=date,
                    subject=subject,
                )
            )
        return commits

    def _parse_status(self, output: str) -> GitStatus:
        """Parse git status --porcelain=v1 -b output."""
        lines = [ln for ln in output.splitlines() if ln.strip()]

        if not lines:
            return GitStatus(branch="")

        # First line is branch info: ## branch...upstream [ahead N, behind M]
        branch, upstream = self._parse_branch_line(lines[0])

        entries: list[StatusEntry] = []
        for line in lines[1:]:
            entry = self._parse_entry(line)
            if entry:
                entries.append(entry)

        return GitStatus(branch=branch, upstream=upstream, entries=tuple(entries))

    def _parse_branch_line(self, line: str) -> tuple[str, str | None]:
        """Parse branch line: ## branch...upstream [info]"""
        s = line.strip()
        if s.startswith("##"):
            s = s[2:].lstrip()

        s = re.split(r" \[", s, maxsplit=1)[0].strip()

        if "..." in s:
            left, right = s.split("...", 1)
            return (left.strip(), right.strip())

        return (s, None)

    def _parse_entry(self, line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None
        if line.startswith("?? "):
            return StatusEntry(xy="??", path=line[3:])
        return StatusEntry(xy=line[:2], path=line[3:])
