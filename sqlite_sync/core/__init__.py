"""Core types: results, configuration, untyped-data helpers."""

from .config import ConfigError, SyncConfig, load_config
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "ConfigError",
    "SyncConfig",
    "load_config",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
