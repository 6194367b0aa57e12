from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from handpick.core.config import HandpickConfig, load_config, load_repo_config
from handpick.core.errors import ErrorCode
from handpick.core.result import Err
from handpick.git.repository import Repository
from handpick.output.console import ConsoleProtocol, RichConsole
from handpick.output.errors import print_config_error


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace_root: Path
    repo: Repository
    config: HandpickConfig
    console: ConsoleProtocol


def build_context(*, config_path: Path | None = None, cwd: Path | None = None) -> CLIContext:
    console = RichConsole()
    start = cwd or Path.cwd()

    # Outside a repo the flow reports not_a_repo itself; keep cwd as root.
    candidate = Repository(start)
    root = candidate.toplevel() or start
    repo = Repository(root)

    if config_path is not None:
        config_result = load_config(config_path.expanduser())
    else:
        config_result = load_repo_config(root)
    if isinstance(config_result, Err):
        print_config_error(config_result.error, console)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        workspace_root=root,
        repo=repo,
        config=config_result.value,
        console=console,
    )
