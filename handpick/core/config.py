"""Typed configuration loading and access.

Configuration is optional. When a ``.handpick.toml`` exists at the repository
root (or a path is given with ``--config``) its values override the defaults
below; CLI flags override both.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_int, get_str, get_str_list, get_table

__all__ = [
    "BranchesConfig",
    "ConfigError",
    "DiscoveryConfig",
    "HandpickConfig",
    "PullRequestConfig",
    "CONFIG_FILE_NAME",
    "load_config",
    "load_repo_config",
]

CONFIG_FILE_NAME = ".handpick.toml"

DEFAULT_INTEGRATION_BRANCH = "develop"
DEFAULT_STABLE_BRANCHES = ("master", "main")
DEFAULT_REMOTE = "origin"

# Bounded query for merged PRs on the integration branch.
DEFAULT_PR_LIMIT = 200
DEFAULT_COMMIT_HASH_MIN_LENGTH = 7
DEFAULT_TITLE_MAX_LENGTH = 35


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class BranchesConfig:
    """Branch names and the remote they live on.

    ``stable`` lists candidate names in priority order; the first one that
    exists on the hosting side wins.
    """

    integration: str = DEFAULT_INTEGRATION_BRANCH
    stable: tuple[str, ...] = DEFAULT_STABLE_BRANCHES
    remote: str = DEFAULT_REMOTE


@dataclass(frozen=True, slots=True)
class DiscoveryConfig:
    pr_limit: int = DEFAULT_PR_LIMIT
    commit_hash_min_length: int = DEFAULT_COMMIT_HASH_MIN_LENGTH
    title_max_length: int = DEFAULT_TITLE_MAX_LENGTH


@dataclass(frozen=True, slots=True)
class PullRequestConfig:
    """Defaults for the draft/reviewer prompts.

    ``reviewers`` are passed through to ``gh`` uninterpreted.
    """

    draft: bool = True
    reviewers: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class HandpickConfig:
    """Main configuration container."""

    branches: BranchesConfig = field(default_factory=BranchesConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    pull_request: PullRequestConfig = field(default_factory=PullRequestConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> HandpickConfig:
        """Create config from a mapping (parsed TOML)."""
        branches: StrDict = get_table(data, "branches") or {}
        discovery: StrDict = get_table(data, "discovery") or {}
        pull_request: StrDict = get_table(data, "pull_request") or {}

        stable = get_str_list(branches, "stable")
        if stable is None:
            single = get_str(branches, "stable")
            stable = [single] if single else None

        draft = get_bool(pull_request, "draft")
        return cls(
            branches=BranchesConfig(
                integration=get_str(branches, "integration") or DEFAULT_INTEGRATION_BRANCH,
                stable=tuple(stable) if stable else DEFAULT_STABLE_BRANCHES,
                remote=get_str(branches, "remote") or DEFAULT_REMOTE,
            ),
            discovery=DiscoveryConfig(
                pr_limit=_int_or(discovery, "pr_limit", DEFAULT_PR_LIMIT),
                commit_hash_min_length=_int_or(
                    discovery, "commit_hash_min_length", DEFAULT_COMMIT_HASH_MIN_LENGTH
                ),
                title_max_length=_int_or(discovery, "title_max_length", DEFAULT_TITLE_MAX_LENGTH),
            ),
            pull_request=PullRequestConfig(
                draft=True if draft is None else draft,
                reviewers=tuple(get_str_list(pull_request, "reviewers") or ()),
            ),
        )

    def with_overrides(
        self,
        *,
        integration: str | None = None,
        stable: str | None = None,
        remote: str | None = None,
    ) -> HandpickConfig:
        """Apply CLI flag overrides on top of file/default values."""
        branches = self.branches
        if integration:
            branches = replace(branches, integration=integration)
        if stable:
            branches = replace(branches, stable=(stable,))
        if remote:
            branches = replace(branches, remote=remote)
        return replace(self, branches=branches)


def _int_or(table: StrDict, key: str, default: int) -> int:
    value = get_int(table, key)
    return default if value is None else value


def _validate(config: HandpickConfig, path: Path) -> Result[HandpickConfig, ConfigError]:
    if config.discovery.pr_limit < 1:
        return Err(ConfigError("discovery.pr_limit must be >= 1", path=path))
    if not 4 <= config.discovery.commit_hash_min_length <= 40:
        return Err(ConfigError("discovery.commit_hash_min_length must be 4..40", path=path))
    if config.discovery.title_max_length < 4:
        return Err(ConfigError("discovery.title_max_length must be >= 4", path=path))
    if config.branches.integration in config.branches.stable:
        return Err(
            ConfigError("integration branch cannot also be a stable branch candidate", path=path)
        )
    return Ok(config)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[HandpickConfig, ConfigError]:
    """Load and validate configuration from a TOML file.

    Args:
        path: Path to the TOML file

    Returns:
        Ok(HandpickConfig) on success, Err(ConfigError) on failure
    """
    parsed = _parse_toml(path)
    if isinstance(parsed, Err):
        return parsed
    return _validate(HandpickConfig.from_dict(parsed.value), path)


def load_repo_config(repo_root: Path) -> Result[HandpickConfig, ConfigError]:
    """Load ``.handpick.toml`` from the repository root, or defaults if absent."""
    path = repo_root / CONFIG_FILE_NAME
    if not path.is_file():
        return Ok(HandpickConfig())
    return load_config(path)
