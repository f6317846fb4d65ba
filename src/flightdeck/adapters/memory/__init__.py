"""In-memory adapters for tests and single-process runs."""

from __future__ import annotations

from .destination import InMemoryGraphDestination, StoredEdge
from .identity import InMemoryIdentityResolver, entity_key_id
from .log_sets import InMemoryLogSetRegistry, LogSet
from .state import InMemoryDurableMap, InMemoryJobQueue

__all__ = [
    "InMemoryDurableMap",
    "InMemoryGraphDestination",
    "InMemoryIdentityResolver",
    "InMemoryJobQueue",
    "InMemoryLogSetRegistry",
    "LogSet",
    "StoredEdge",
    "entity_key_id",
]
