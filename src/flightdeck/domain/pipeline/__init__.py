"""Streaming transform-and-write pipeline."""

from __future__ import annotations

from flightdeck.domain.pipeline.counters import IntegrationCounters
from flightdeck.domain.pipeline.orchestrator import PipelineOrchestrator
from flightdeck.domain.pipeline.transform import FlightTransformer, as_values, transform_batch

__all__ = [
    "FlightTransformer",
    "IntegrationCounters",
    "PipelineOrchestrator",
    "as_values",
    "transform_batch",
]
