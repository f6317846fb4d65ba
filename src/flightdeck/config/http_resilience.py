"""Retry, throttle and timeout settings for the outbound HTTP adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version

import httpx

from .env import ENV_PREFIX, env_float, env_int

CALLBACK_TIMEOUT_SECONDS = 10.0
UPLOAD_TIMEOUT_SECONDS = 60.0


def _user_agent() -> str:
    try:
        return f"flightdeck/{version('flightdeck')}"
    except PackageNotFoundError:
        return "flightdeck"


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Which failures are retried and how long to wait between attempts.

    Pre-signed uploads and callbacks are idempotent from the receiver's point of
    view, so ``POST`` and ``PUT`` are retried alongside the safe methods.
    """

    total: int = 4
    backoff_factor: float = 0.5
    max_backoff_wait: float = 60.0
    backoff_jitter: float = 1.0
    respect_retry_after_header: bool = True
    methods: frozenset[str] = frozenset({"HEAD", "GET", "POST", "PUT"})
    statuses: frozenset[int] = frozenset({429, 500, 502, 503, 504})
    exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    user_agent: str = field(default_factory=_user_agent)


def get_callback_resilience_config() -> ResilienceConfig:
    timeout = env_float(f"{ENV_PREFIX}CALLBACK_TIMEOUT_SECONDS", CALLBACK_TIMEOUT_SECONDS)
    retries = env_int(f"{ENV_PREFIX}CALLBACK_RETRIES", 2, minimum=0)
    return ResilienceConfig(
        name="callbacks",
        timeout_seconds=timeout or CALLBACK_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=retries),
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
    )


def get_upload_resilience_config() -> ResilienceConfig:
    timeout = env_float(f"{ENV_PREFIX}UPLOAD_TIMEOUT_SECONDS", UPLOAD_TIMEOUT_SECONDS)
    retries = env_int(f"{ENV_PREFIX}UPLOAD_RETRIES", 4, minimum=0)
    return ResilienceConfig(
        name="object-store",
        timeout_seconds=timeout or UPLOAD_TIMEOUT_SECONDS,
        retry=RetryPolicy(total=retries),
    )
