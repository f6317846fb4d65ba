"""Graph elements emitted by the transformation stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from flightdeck.domain.model.enums import StorageDestination, UpdateType

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from flightdeck.domain.model.keys import EntityKey

type PropertyValues = dict[UUID, set[object]]


@dataclass(slots=True)
class GraphEntity:
    key: EntityKey
    properties: PropertyValues = field(default_factory=dict)


@dataclass(slots=True)
class GraphAssociation:
    key: EntityKey
    src: EntityKey
    dst: EntityKey
    properties: PropertyValues = field(default_factory=dict)


@dataclass(slots=True)
class AddressedData:
    """Elements of one batch grouped by the storage destination that receives them."""

    entities: dict[StorageDestination, list[GraphEntity]] = field(default_factory=dict)
    associations: dict[StorageDestination, list[GraphAssociation]] = field(default_factory=dict)
    skipped_associations: int = 0

    def add_entity(self, destination: StorageDestination, entity: GraphEntity) -> None:
        self.entities.setdefault(destination, []).append(entity)

    def add_association(
        self, destination: StorageDestination, association: GraphAssociation
    ) -> None:
        self.associations.setdefault(destination, []).append(association)

    def destinations(self) -> list[StorageDestination]:
        """Destinations holding elements, the primary store always first."""
        return [
            destination
            for destination in StorageDestination
            if destination in self.entities or destination in self.associations
        ]

    def entity_keys(self) -> set[EntityKey]:
        """Every key that needs an internal id: entities, associations and their endpoints."""
        keys: set[EntityKey] = set()
        for entity in self._iter_entities():
            keys.add(entity.key)
        for association in self._iter_associations():
            keys.update((association.key, association.src, association.dst))
        return keys

    def entity_count(self) -> int:
        return sum(len(entities) for entities in self.entities.values())

    def association_count(self) -> int:
        return sum(len(associations) for associations in self.associations.values())

    def is_empty(self) -> bool:
        return not self.entities and not self.associations

    def _iter_entities(self) -> Iterator[GraphEntity]:
        for entities in self.entities.values():
            yield from entities

    def _iter_associations(self) -> Iterator[GraphAssociation]:
        for associations in self.associations.values():
            yield from associations


def merge_properties(
    existing: PropertyValues, incoming: PropertyValues, update_type: UpdateType
) -> PropertyValues:
    """Combine stored and incoming property values under ``update_type``.

    ``MERGE`` unions value sets, ``PARTIAL_REPLACE`` overwrites only the incoming
    properties and ``REPLACE`` keeps nothing that was stored before.
    """
    match update_type:
        case UpdateType.REPLACE:
            return {pid: set(values) for pid, values in incoming.items()}
        case UpdateType.PARTIAL_REPLACE:
            merged = {pid: set(values) for pid, values in existing.items()}
            merged.update({pid: set(values) for pid, values in incoming.items()})
            return merged
        case _:
            merged = {pid: set(values) for pid, values in existing.items()}
            for pid, values in incoming.items():
                merged.setdefault(pid, set()).update(values)
            return merged
