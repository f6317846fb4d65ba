"""HTTP completion callbacks for integration jobs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from flightdeck.adapters.http_resilience import ResilientClient
from flightdeck.config.http_resilience import ResilienceConfig, get_callback_resilience_config

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpCallbackNotifier:
    """POSTs ``message`` and ``jobId`` form fields to every callback URL.

    Failures are logged per URL and never raised; one unreachable endpoint does
    not keep the others from being notified.
    """

    resilience: ResilienceConfig = field(default_factory=get_callback_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def notify(self, job_id: UUID, urls: Sequence[str], message: str) -> None:
        if not urls:
            return
        asyncio.run(self._notify(job_id, urls, message))

    async def _notify(self, job_id: UUID, urls: Sequence[str], message: str) -> None:
        form = {"message": message, "jobId": str(job_id)}
        async with self.client_factory(self.resilience) as client:
            for url in urls:
                try:
                    response = await client.post_form(url, form)
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    log.warning(
                        "Encountered %s when submitting callback to url %s for integration job "
                        "with id %s",
                        exc,
                        url,
                        job_id,
                    )
                else:
                    log.debug(
                        "Callback to %s for job %s returned %s", url, job_id, response.status_code
                    )
