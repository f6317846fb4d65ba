"""Stored integration definitions and the jobs that execute them.

Both models are persisted as JSON in the durable job substrate, so every field
(including the nested mapping plans) must round-trip through
``model_dump_json``/``model_validate_json`` without loss.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from flightdeck.domain.mapping.plan import MappingPlan  # noqa: TC001
from flightdeck.domain.model.enums import Environment, JobStatus


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FlightPlanParameters(BaseModel):
    """One flight of an integration: its mapping plan and where its rows come from."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    flight: MappingPlan
    sql: str
    source: dict[str, str] = Field(default_factory=dict)
    source_primary_key_columns: tuple[str, ...] = ()


class Integration(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    key: UUID = Field(default_factory=uuid4)
    environment: Environment = Environment.PRODUCTION
    s3_bucket: str | None = None
    contacts: tuple[str, ...] = ()
    max_connections: int | None = Field(default=None, ge=1)
    callback_urls: tuple[str, ...] | None = None
    log_entity_set_id: UUID | None = None
    flight_plan_parameters: dict[str, FlightPlanParameters] = Field(default_factory=dict)

    def flights(self) -> list[MappingPlan]:
        return [parameters.flight for parameters in self.flight_plan_parameters.values()]


class IntegrationUpdate(BaseModel):
    """Partial update: only the fields that were explicitly supplied are applied."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    environment: Environment | None = None
    s3_bucket: str | None = None
    contacts: tuple[str, ...] | None = None
    max_connections: int | None = Field(default=None, ge=1)
    callback_urls: tuple[str, ...] | None = None
    log_entity_set_id: UUID | None = None
    flight_plan_parameters: dict[str, FlightPlanParameters] | None = None

    def apply(self, integration: Integration) -> Integration:
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        if "environment" in changes and changes["environment"] is None:
            del changes["environment"]
        if "contacts" in changes and changes["contacts"] is None:
            del changes["contacts"]
        if changes.get("flight_plan_parameters") is not None:
            changes["flight_plan_parameters"] = {
                **integration.flight_plan_parameters,
                **changes["flight_plan_parameters"],
            }
        elif "flight_plan_parameters" in changes:
            del changes["flight_plan_parameters"]
        return integration.model_copy(update=changes)


class IntegrationJob(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    integration_name: str
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    error: str | None = None

    def with_status(self, status: JobStatus, *, error: str | None = None) -> Self:
        attempts = self.attempts + 1 if status is JobStatus.IN_PROGRESS else self.attempts
        return self.model_copy(
            update={"status": status, "attempts": attempts, "error": error, "updated_at": _utcnow()}
        )
