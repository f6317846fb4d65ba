"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import ENV_PREFIX, optional_env

APP_DIR_NAME: Final[str] = "flightdeck"
STATE_DB_FILENAME: Final[str] = "state.db"
PRIMARY_DB_FILENAME: Final[str] = "graph.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    state_filename: str = STATE_DB_FILENAME
    primary_filename: str = PRIMARY_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def state_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.ensure_data_dir() / self.state_filename}"

    def primary_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.ensure_data_dir() / self.primary_filename}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Where durable job state lives and where the primary graph store writes go."""

    state_uri: str
    primary_uri: str
    max_connections: int | None = None


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = optional_env(f"{ENV_PREFIX}DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    storage_config = storage or get_storage_config()
    state_uri = optional_env(f"{ENV_PREFIX}STATE_DATABASE_URI")
    primary_uri = optional_env(f"{ENV_PREFIX}PRIMARY_DATABASE_URI")
    return DatabaseConfig(
        state_uri=state_uri or storage_config.state_uri(),
        primary_uri=primary_uri or storage_config.primary_uri(),
    )
