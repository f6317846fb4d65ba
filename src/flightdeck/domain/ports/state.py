"""Ports for the durable map and queue substrate backing the job scheduler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID


@runtime_checkable
class DurableMap[K, V](Protocol):
    """Shared key/value map with the atomic operations the scheduler relies on."""

    def get(self, key: K) -> V | None: ...

    def put(self, key: K, value: V) -> None: ...

    def put_if_absent(self, key: K, value: V) -> bool:
        """Store ``value`` only if ``key`` is absent; return whether it was stored."""
        ...

    def remove(self, key: K) -> V | None: ...

    def update(self, key: K, mutate: Callable[[V], V]) -> V | None:
        """Atomically replace the value under ``key``; ``None`` when the key is absent."""
        ...

    def keys_where(self, predicate: Callable[[V], bool]) -> list[K]: ...

    def items(self) -> dict[K, V]: ...

    def __contains__(self, key: object) -> bool: ...


@runtime_checkable
class JobQueue(Protocol):
    """Durable FIFO of job ids; an id already waiting is not queued twice."""

    def put(self, job_id: UUID) -> None: ...

    def take(self, timeout: float) -> UUID | None:
        """Remove and return the head of the queue, waiting up to ``timeout`` seconds."""
        ...

    def __contains__(self, job_id: object) -> bool: ...

    def __len__(self) -> int: ...
