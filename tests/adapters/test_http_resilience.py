from __future__ import annotations

import asyncio
from dataclasses import replace

import httpx

from flightdeck.adapters.http_resilience import ResilientClient
from flightdeck.config.http_resilience import RateLimit, ResilienceConfig, RetryPolicy

BASE_CONFIG = ResilienceConfig(
    name="test",
    retry=RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0),
    user_agent="flightdeck-tests",
)


def _config(ratelimit: RateLimit | None = None) -> ResilienceConfig:
    return replace(BASE_CONFIG, ratelimit=ratelimit)


def test_retryable_status_is_retried_until_success() -> None:
    statuses = iter([503, 502, 200])
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return httpx.Response(next(statuses))

    async def run() -> httpx.Response:
        async with ResilientClient(_config(), transport=httpx.MockTransport(handler)) as client:
            return await client.put_bytes("https://bucket.example/object", b"payload")

    response = asyncio.run(run())

    assert response.status_code == 200
    assert seen == ["PUT", "PUT", "PUT"]


def test_client_errors_are_returned_without_retrying() -> None:
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(403)

    async def run() -> httpx.Response:
        async with ResilientClient(_config(), transport=httpx.MockTransport(handler)) as client:
            return await client.post_form("https://hooks.example/done", {"message": "ok"})

    assert asyncio.run(run()).status_code == 403
    assert len(calls) == 1


def test_requests_carry_user_agent_and_payload_headers() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200)

    async def run() -> None:
        config = _config(ratelimit=RateLimit(max_calls=5, per_seconds=1.0))
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            await client.put_bytes("https://bucket.example/a", b"\x00", content_type="image/png")
            await client.post_form("https://hooks.example/b", {"jobId": "42"})

    asyncio.run(run())

    upload, form = captured
    assert upload.headers["User-Agent"] == "flightdeck-tests"
    assert upload.headers["Content-Type"] == "image/png"
    assert upload.content == b"\x00"
    assert form.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert form.content == b"jobId=42"
