"""Port through which the scheduler runs one integration job."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from uuid import UUID

    from flightdeck.domain.integrations import Integration


@runtime_checkable
class JobLauncher(Protocol):
    """Builds sources, plans and destinations for an integration and runs them.

    Returns the number of graph elements written; raises on failure.
    """

    def __call__(self, job_id: UUID, integration: Integration) -> int: ...
