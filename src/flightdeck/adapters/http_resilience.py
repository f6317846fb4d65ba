"""Retrying, throttled async HTTP client for callbacks and object uploads."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from aiolimiter import AsyncLimiter
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from flightdeck.config.http_resilience import ResilienceConfig, RetryPolicy

log = getLogger(__name__)

OCTET_STREAM = "application/octet-stream"


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        backoff_jitter=policy.backoff_jitter,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=sorted(policy.methods),
        status_forcelist=sorted(policy.statuses),
        retry_on_exceptions=policy.exceptions,
    )


class ResilientClient:
    """``httpx.AsyncClient`` wrapped in a retry transport and an optional call limiter.

    ``transport`` replaces the network layer underneath the retries; tests hand
    in an ``httpx.MockTransport`` here.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit is not None
            else None
        )
        self._client = httpx.AsyncClient(
            timeout=config.timeout_seconds,
            headers={"User-Agent": config.user_agent},
            transport=RetryTransport(transport=transport, retry=build_retry(config.retry)),
        )

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def post_form(self, url: str, fields: Mapping[str, str]) -> httpx.Response:
        return await self._send(self._client.build_request("POST", url, data=dict(fields)))

    async def put_bytes(
        self, url: str, payload: bytes, *, content_type: str = OCTET_STREAM
    ) -> httpx.Response:
        request = self._client.build_request(
            "PUT", url, content=payload, headers={"Content-Type": content_type}
        )
        return await self._send(request)

    async def _send(self, request: httpx.Request) -> httpx.Response:
        if self._limiter is not None:
            await self._limiter.acquire()
        response = await self._client.send(request)
        log.debug(
            "%s %s %s -> %s", self.config.name, request.method, request.url, response.status_code
        )
        return response
