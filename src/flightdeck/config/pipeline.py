"""Pipeline and scheduler defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .env import ENV_PREFIX, env_bool, env_float, env_int

DEFAULT_UPLOAD_BATCH_SIZE = 100_000
DEFAULT_FETCH_SIZE = 10_000
DEFAULT_READ_RATE_LIMIT = 1_000.0

# scheduled jobs use smaller uploads than ad-hoc runs
DEFAULT_JOB_UPLOAD_BATCH_SIZE = 10_000


def available_parallelism() -> int:
    return os.cpu_count() or 1


def default_queue_capacity() -> int:
    return max(2, 2 * (available_parallelism() - 2))


def default_batch_parallelism() -> int:
    return max(1, available_parallelism() - 1)


def default_max_concurrent_jobs() -> int:
    return 2 * available_parallelism()


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Sizing knobs for one orchestrator run.

    ``queue_capacity`` bounds the number of row batches buffered between the
    producer and the consumer; ``batch_parallelism`` bounds the number of batches
    transformed and written concurrently.
    """

    upload_batch_size: int = DEFAULT_UPLOAD_BATCH_SIZE
    queue_capacity: int = field(default_factory=default_queue_capacity)
    batch_parallelism: int = field(default_factory=default_batch_parallelism)
    poll_interval_seconds: float = 0.5

    def __post_init__(self) -> None:
        if self.upload_batch_size < 1:
            raise ValueError("upload_batch_size must be positive")
        if self.queue_capacity < 1:
            raise ValueError("queue_capacity must be positive")
        if self.batch_parallelism < 1:
            raise ValueError("batch_parallelism must be positive")


@dataclass(frozen=True, slots=True)
class SourceConfig:
    fetch_size: int = DEFAULT_FETCH_SIZE
    read_rate_limit: float | None = DEFAULT_READ_RATE_LIMIT


@dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Dispatch settings for the integration job scheduler."""

    max_concurrent_jobs: int = field(default_factory=default_max_concurrent_jobs)
    poll_interval_seconds: float = 1.0
    delete_terminal_on_poll: bool = False
    max_job_attempts: int = 1

    def __post_init__(self) -> None:
        if self.max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be positive")
        if self.max_job_attempts < 1:
            raise ValueError("max_job_attempts must be positive")


def get_pipeline_config() -> PipelineConfig:
    host = PipelineConfig(upload_batch_size=DEFAULT_JOB_UPLOAD_BATCH_SIZE)
    return PipelineConfig(
        upload_batch_size=env_int(
            f"{ENV_PREFIX}UPLOAD_BATCH_SIZE", host.upload_batch_size, minimum=1
        ),
        queue_capacity=env_int(f"{ENV_PREFIX}QUEUE_CAPACITY", host.queue_capacity, minimum=1),
        batch_parallelism=env_int(
            f"{ENV_PREFIX}BATCH_PARALLELISM", host.batch_parallelism, minimum=1
        ),
    )


def get_source_config() -> SourceConfig:
    rate_limit = env_float(f"{ENV_PREFIX}READ_RATE_LIMIT", DEFAULT_READ_RATE_LIMIT)
    return SourceConfig(
        fetch_size=env_int(f"{ENV_PREFIX}FETCH_SIZE", DEFAULT_FETCH_SIZE, minimum=1),
        read_rate_limit=rate_limit if rate_limit else None,
    )


def get_scheduler_config() -> SchedulerConfig:
    return SchedulerConfig(
        max_concurrent_jobs=env_int(
            f"{ENV_PREFIX}MAX_CONCURRENT_JOBS", default_max_concurrent_jobs(), minimum=1
        ),
        delete_terminal_on_poll=env_bool(f"{ENV_PREFIX}DELETE_TERMINAL_ON_POLL", False),
        max_job_attempts=env_int(f"{ENV_PREFIX}MAX_JOB_ATTEMPTS", 1, minimum=1),
    )
