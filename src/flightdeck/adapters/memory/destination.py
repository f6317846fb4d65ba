"""Dictionary-backed graph destination."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from flightdeck.domain.model import UpdateType, merge_properties

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from flightdeck.domain.model import EntityKey, GraphAssociation, GraphEntity, PropertyValues


@dataclass(frozen=True, slots=True)
class StoredEdge:
    src: tuple[UUID, UUID]
    dst: tuple[UUID, UUID]


@dataclass(slots=True)
class InMemoryGraphDestination:
    """Keeps written elements keyed by ``(entity_set_id, id)``; records every call."""

    entities: dict[tuple[UUID, UUID], PropertyValues] = field(default_factory=dict)
    associations: dict[tuple[UUID, UUID], PropertyValues] = field(default_factory=dict)
    edges: dict[tuple[UUID, UUID], StoredEdge] = field(default_factory=dict)
    calls: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def integrate_entities(
        self,
        entities: Sequence[GraphEntity],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int:
        with self._lock:
            self.calls += 1
            for entity in entities:
                ident = (entity.key.entity_set_id, entity_key_ids[entity.key])
                self._store(self.entities, ident, entity.properties, update_types)
        return len(entities)

    def integrate_associations(
        self,
        associations: Sequence[GraphAssociation],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int:
        with self._lock:
            self.calls += 1
            for association in associations:
                ident = (association.key.entity_set_id, entity_key_ids[association.key])
                self._store(self.associations, ident, association.properties, update_types)
                self.edges[ident] = StoredEdge(
                    src=(association.src.entity_set_id, entity_key_ids[association.src]),
                    dst=(association.dst.entity_set_id, entity_key_ids[association.dst]),
                )
        return len(associations)

    @staticmethod
    def _store(
        table: dict[tuple[UUID, UUID], PropertyValues],
        ident: tuple[UUID, UUID],
        properties: PropertyValues,
        update_types: Mapping[UUID, UpdateType],
    ) -> None:
        update_type = update_types.get(ident[0], UpdateType.MERGE)
        table[ident] = merge_properties(table.get(ident, {}), properties, update_type)
