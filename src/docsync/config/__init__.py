"""Application configuration helpers."""

from __future__ import annotations

from docsync.common.logging import configure_logging

from .env import optional_env_var, optional_int_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .mongo import MongoConfig, get_mongo_config
from .sync import DEFAULT_BATCH_SIZE, SyncConfig, get_sync_config

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "ConfigurationError",
    "MissingConfigurationError",
    "MongoConfig",
    "SyncConfig",
    "configure_logging",
    "get_mongo_config",
    "get_sync_config",
    "optional_env_var",
    "optional_int_env_var",
    "require_env_vars",
]
