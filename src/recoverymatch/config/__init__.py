"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float
from .errors import ConfigurationError
from .logging import configure_logging
from .retry import NO_RETRY, RetryPolicy
from .storage import (
    DatabaseConfig,
    StorageConfig,
    StoreConfig,
    get_database_config,
    get_storage_config,
    get_store_config,
)

__all__ = [
    "NO_RETRY",
    "ConfigurationError",
    "DatabaseConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreConfig",
    "configure_logging",
    "env_float",
    "get_database_config",
    "get_storage_config",
    "get_store_config",
]
