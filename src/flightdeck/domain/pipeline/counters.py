"""Thread-safe per-destination write counters."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from flightdeck.domain.model import StorageDestination  # noqa: TC001


@dataclass(slots=True)
class IntegrationCounters:
    entities: dict[StorageDestination, int] = field(default_factory=dict)
    associations: dict[StorageDestination, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_entities(self, destination: StorageDestination, count: int) -> None:
        with self._lock:
            self.entities[destination] = self.entities.get(destination, 0) + count

    def add_associations(self, destination: StorageDestination, count: int) -> None:
        with self._lock:
            self.associations[destination] = self.associations.get(destination, 0) + count

    def total(self) -> int:
        with self._lock:
            return sum(self.entities.values()) + sum(self.associations.values())

    def describe(self) -> str:
        with self._lock:
            entities = {str(dest): count for dest, count in self.entities.items()}
            associations = {str(dest): count for dest, count in self.associations.items()}
        return f"entities={entities} associations={associations}"
