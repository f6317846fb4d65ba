"""Integration job scheduling."""

from __future__ import annotations

from flightdeck.domain.scheduling.scheduler import (
    LOG_SET_NAME_TEMPLATE,
    IntegrationScheduler,
    completion_message,
    describe_flights,
    validate_callback_urls,
)

__all__ = [
    "LOG_SET_NAME_TEMPLATE",
    "IntegrationScheduler",
    "completion_message",
    "describe_flights",
    "validate_callback_urls",
]
