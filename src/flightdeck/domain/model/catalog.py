"""Read-only snapshot of the metadata catalog a flight is mapped against."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from flightdeck.domain.errors import CatalogError, UnknownEntitySetError, UnknownPropertyTypeError
from flightdeck.domain.model.enums import Datatype

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID


@dataclass(frozen=True, slots=True)
class PropertyType:
    id: UUID
    fqn: str
    datatype: Datatype = Datatype.STRING


@dataclass(frozen=True, slots=True)
class EntityType:
    id: UUID
    fqn: str
    key: tuple[UUID, ...]
    properties: tuple[UUID, ...] = ()


@dataclass(frozen=True, slots=True)
class EntitySet:
    id: UUID
    name: str
    entity_type_id: UUID


@dataclass(frozen=True, slots=True)
class Catalog:
    """Entity sets, entity types and property types, indexed for lookups during mapping.

    The catalog is handed to the transformation stage explicitly; nothing in the
    engine reaches for a process-wide copy.
    """

    entity_sets: dict[str, EntitySet] = field(default_factory=dict)
    entity_types: dict[UUID, EntityType] = field(default_factory=dict)
    property_types: dict[str, PropertyType] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        entity_sets: Iterable[EntitySet] = (),
        entity_types: Iterable[EntityType] = (),
        property_types: Iterable[PropertyType] = (),
    ) -> Catalog:
        catalog = cls(
            entity_sets={entity_set.name: entity_set for entity_set in entity_sets},
            entity_types={entity_type.id: entity_type for entity_type in entity_types},
            property_types={prop.fqn: prop for prop in property_types},
        )
        for entity_set in catalog.entity_sets.values():
            if entity_set.entity_type_id not in catalog.entity_types:
                raise CatalogError(
                    f"Entity set {entity_set.name!r} references unknown entity type "
                    f"{entity_set.entity_type_id}"
                )
        return catalog

    def entity_set(self, name: str) -> EntitySet:
        try:
            return self.entity_sets[name]
        except KeyError:
            raise UnknownEntitySetError(name) from None

    def entity_type_of(self, entity_set_name: str) -> EntityType:
        return self.entity_types[self.entity_set(entity_set_name).entity_type_id]

    def key_of(self, entity_set_name: str) -> tuple[UUID, ...]:
        return self.entity_type_of(entity_set_name).key

    def property_type(self, fqn: str) -> PropertyType:
        try:
            return self.property_types[fqn]
        except KeyError:
            raise UnknownPropertyTypeError(fqn) from None
