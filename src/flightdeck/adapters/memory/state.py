"""In-process durable map and job queue for tests and single-process runs."""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID


class InMemoryDurableMap[K, V]:
    def __init__(self, initial: Mapping[K, V] | None = None) -> None:
        self._data: dict[K, V] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: K) -> V | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._data[key] = value

    def put_if_absent(self, key: K, value: V) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def remove(self, key: K) -> V | None:
        with self._lock:
            return self._data.pop(key, None)

    def update(self, key: K, mutate: Callable[[V], V]) -> V | None:
        with self._lock:
            if key not in self._data:
                return None
            updated = mutate(self._data[key])
            self._data[key] = updated
            return updated

    def keys_where(self, predicate: Callable[[V], bool]) -> list[K]:
        with self._lock:
            return [key for key, value in self._data.items() if predicate(value)]

    def items(self) -> dict[K, V]:
        with self._lock:
            return dict(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class InMemoryJobQueue:
    def __init__(self) -> None:
        self._items: deque[UUID] = deque()
        self._available = threading.Condition()

    def put(self, job_id: UUID) -> None:
        with self._available:
            if job_id in self._items:
                return
            self._items.append(job_id)
            self._available.notify()

    def take(self, timeout: float) -> UUID | None:
        with self._available:
            if not self._available.wait_for(lambda: bool(self._items), timeout=timeout):
                return None
            return self._items.popleft()

    def __contains__(self, job_id: object) -> bool:
        with self._available:
            return job_id in self._items

    def __len__(self) -> int:
        with self._available:
            return len(self._items)
