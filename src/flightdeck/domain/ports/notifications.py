"""Ports for side effects of the scheduler: callbacks and log artifacts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class CallbackNotifier(Protocol):
    """Best-effort completion notification; implementations log failures instead of raising."""

    def notify(self, job_id: UUID, urls: Sequence[str], message: str) -> None: ...


@runtime_checkable
class LogSetRegistry(Protocol):
    """Provisioning of the per-integration log entity set in the metadata catalog."""

    def is_reserved(self, name: str) -> bool: ...

    def create(self, name: str, description: str, contacts: Sequence[str]) -> UUID: ...

    def delete(self, entity_set_id: UUID) -> None: ...
