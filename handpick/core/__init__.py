"""Core types shared by every layer."""

from .config import ConfigError, HandpickConfig, load_config, load_repo_config
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "HandpickConfig",
    "load_config",
    "load_repo_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
