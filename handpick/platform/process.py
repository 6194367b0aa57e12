"""Subprocess execution with Result-based error handling.

Every ``git`` and ``gh`` invocation goes through :func:`run`. Output is
captured and a failure comes back as :class:`ProcessError`, so callers
decide whether it is fatal, recoverable through a fallback, or "not found".

Both tools run non-interactively: a credential or confirmation prompt
would otherwise block the release run with no visible terminal.

Usage:
    result = run(["git", "rev-parse", "HEAD"], cwd=repo_root)
    match result:
        case Ok(stdout):
            print(stdout.strip())
        case Err(error):
            print(f"Failed: {error.detail}")
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from handpick.core.result import Err, Ok, Result

__all__ = ["NON_INTERACTIVE_ENV", "ProcessError", "run"]

NON_INTERACTIVE_ENV = {
    "GIT_TERMINAL_PROMPT": "0",
    "GH_PROMPT_DISABLED": "1",
}


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not run or exited non-zero.

    ``returncode`` is -1 when the executable is missing or the call timed out.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """Best human-readable detail: stderr, then stdout, then the summary."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def _child_env(extra: dict[str, str] | None) -> dict[str, str]:
    env = dict(os.environ)
    if extra:
        env.update(extra)
    env.update(NON_INTERACTIVE_ENV)
    return env


def _failed(cmd: list[str], returncode: int, stdout: str, stderr: str) -> Err[ProcessError]:
    return Err(
        ProcessError(command=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr)
    )


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its stdout.

    ``env`` is layered over the current environment; ``timeout`` is in
    seconds (None waits forever).
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=_child_env(env),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return _failed(cmd, -1, partial, f"Command timed out after {timeout}s")
    except OSError as e:
        return _failed(cmd, -1, "", str(e))

    if proc.returncode != 0:
        return _failed(cmd, proc.returncode, proc.stdout, proc.stderr)
    return Ok(proc.stdout)
