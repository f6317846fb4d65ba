"""Name-based entity key ids."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING
from uuid import NAMESPACE_URL, UUID, uuid5

if TYPE_CHECKING:
    from collections.abc import Set

    from flightdeck.domain.model import EntityKey

ENTITY_KEY_NAMESPACE = uuid5(NAMESPACE_URL, "flightdeck:entity-key")


def entity_key_id(key: EntityKey) -> UUID:
    return uuid5(ENTITY_KEY_NAMESPACE, f"{key.entity_set_id}/{key.entity_id}")


class InMemoryIdentityResolver:
    """Derives ids from the key itself, so they agree across processes without storage."""

    def __init__(self) -> None:
        self._ids: dict[EntityKey, UUID] = {}
        self._lock = threading.Lock()
        self.calls = 0

    def resolve(self, keys: Set[EntityKey]) -> dict[EntityKey, UUID]:
        with self._lock:
            self.calls += 1
            for key in keys:
                if key not in self._ids:
                    self._ids[key] = entity_key_id(key)
            return {key: self._ids[key] for key in keys}

    def known_keys(self) -> int:
        with self._lock:
            return len(self._ids)
