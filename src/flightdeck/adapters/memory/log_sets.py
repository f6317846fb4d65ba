"""Log entity set provisioning without an external catalog."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


@dataclass(frozen=True, slots=True)
class LogSet:
    id: UUID
    name: str
    description: str
    contacts: tuple[str, ...]


class InMemoryLogSetRegistry:
    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._reserved = set(reserved)
        self._log_sets: dict[UUID, LogSet] = {}
        self._lock = threading.Lock()

    def is_reserved(self, name: str) -> bool:
        with self._lock:
            return name in self._reserved

    def create(self, name: str, description: str, contacts: Sequence[str]) -> UUID:
        with self._lock:
            if name in self._reserved:
                raise ValueError(f"Entity set name {name!r} is already reserved")
            log_set = LogSet(uuid4(), name, description, tuple(contacts))
            self._reserved.add(name)
            self._log_sets[log_set.id] = log_set
            return log_set.id

    def delete(self, entity_set_id: UUID) -> None:
        with self._lock:
            log_set = self._log_sets.pop(entity_set_id, None)
            if log_set is not None:
                self._reserved.discard(log_set.name)

    def get(self, entity_set_id: UUID) -> LogSet | None:
        with self._lock:
            return self._log_sets.get(entity_set_id)
