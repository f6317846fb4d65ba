"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, env_int, optional_env, require_env_vars
from .errors import (
    ConfigurationError,
    InvalidConnectionPropertiesError,
    MissingConfigurationError,
)
from .http_resilience import (
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
    get_callback_resilience_config,
    get_upload_resilience_config,
)
from .logging import configure_logging
from .pipeline import (
    PipelineConfig,
    SchedulerConfig,
    SourceConfig,
    get_pipeline_config,
    get_scheduler_config,
    get_source_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConnectionPropertiesError",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SchedulerConfig",
    "SourceConfig",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "env_int",
    "get_callback_resilience_config",
    "get_database_config",
    "get_pipeline_config",
    "get_scheduler_config",
    "get_source_config",
    "get_storage_config",
    "get_upload_resilience_config",
    "optional_env",
    "require_env_vars",
]
