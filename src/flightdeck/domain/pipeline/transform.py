"""Row-to-graph transformation for one mapping plan."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Set
from dataclasses import dataclass
from typing import TYPE_CHECKING

from flightdeck.domain.mapping.conditions import is_blank, passes
from flightdeck.domain.model import (
    AddressedData,
    EntityKey,
    GraphAssociation,
    GraphEntity,
    StorageDestination,
    generate_default_entity_id,
)

if TYPE_CHECKING:
    from uuid import UUID

    from flightdeck.domain.mapping.conditions import Row
    from flightdeck.domain.mapping.expressions import ValueExpression
    from flightdeck.domain.mapping.plan import (
        AssociationDefinition,
        EntityDefinition,
        MappingPlan,
    )
    from flightdeck.domain.model import Catalog, PropertyValues

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _BoundProperty:
    property_id: UUID
    value: ValueExpression
    destination: StorageDestination


@dataclass(frozen=True, slots=True)
class _BoundDefinition:
    definition: EntityDefinition | AssociationDefinition
    entity_set_id: UUID
    key: tuple[UUID, ...]
    properties: tuple[_BoundProperty, ...]


def as_values(value: object) -> list[object]:
    """Flatten an expression result into property values, dropping null and blank entries."""
    if isinstance(value, Mapping):
        raise TypeError(f"Cannot store a mapping as a property value: {value!r}")
    if isinstance(value, str | bytes | bytearray) or not isinstance(value, Iterable):
        members: Iterable[object] = (value,)
    else:
        members = value
    return [member for member in members if not is_blank(member)]


class FlightTransformer:
    """Maps batches of rows to graph elements under one mapping plan.

    Catalog lookups happen once at construction, so a transformer is cheap to call
    per batch and safe to share between batch workers.
    """

    def __init__(self, plan: MappingPlan, catalog: Catalog) -> None:
        self.plan = plan
        self._entities = tuple(self._bind(definition, catalog) for definition in plan.entities)
        self._associations = tuple(
            self._bind(definition, catalog) for definition in plan.associations
        )
        self._known_aliases = frozenset(definition.alias for definition in plan.entities)

    @staticmethod
    def _bind(definition: EntityDefinition, catalog: Catalog) -> _BoundDefinition:
        entity_set = catalog.entity_set(definition.entity_set_name)
        properties: list[_BoundProperty] = []
        for prop in definition.properties:
            property_type = catalog.property_type(prop.property_type)
            destination = (
                prop.storage_destination
                or definition.storage_destination
                or property_type.datatype.default_destination
            )
            properties.append(_BoundProperty(property_type.id, prop.value, destination))
        return _BoundDefinition(
            definition=definition,
            entity_set_id=entity_set.id,
            key=catalog.entity_types[entity_set.entity_type_id].key,
            properties=tuple(properties),
        )

    def transform(self, rows: Iterable[Row]) -> AddressedData:
        addressed = AddressedData()
        for row in rows:
            if passes(self.plan.condition, row):
                self._transform_row(row, addressed)
        return addressed

    def _transform_row(self, row: Row, addressed: AddressedData) -> None:
        aliases: dict[str, EntityKey] = {}
        created: set[str] = set()

        for bound in self._entities:
            definition = bound.definition
            if not passes(definition.condition, row):
                continue
            properties, by_destination = self._collect(bound, row)
            entity_id = self._entity_id(bound, row, properties)
            if not entity_id or not properties:
                continue
            key = EntityKey(bound.entity_set_id, entity_id)
            aliases[definition.alias] = key
            created.add(definition.alias)
            for destination, subset in by_destination.items():
                addressed.add_entity(destination, GraphEntity(key, subset))

        for bound in self._associations:
            definition = bound.definition
            if not passes(definition.condition, row):
                continue
            if not self._endpoints_created(definition, created):
                addressed.skipped_associations += 1
                continue
            properties, by_destination = self._collect(bound, row)
            entity_id = self._entity_id(bound, row, properties)
            if not entity_id:
                log.warning(
                    "Omitting association %s in flight %s: no identifier could be derived",
                    definition.alias,
                    self.plan.name,
                )
                continue
            key = EntityKey(bound.entity_set_id, entity_id)
            src = aliases[definition.src_alias]
            dst = aliases[definition.dst_alias]
            if not by_destination:
                by_destination = {StorageDestination.PRIMARY: {}}
            for destination, subset in by_destination.items():
                addressed.add_association(destination, GraphAssociation(key, src, dst, subset))

    def _endpoints_created(self, definition: AssociationDefinition, created: Set[str]) -> bool:
        endpoints = (definition.src_alias, definition.dst_alias)
        for alias in endpoints:
            if alias not in self._known_aliases:
                log.error(
                    "Alias %s cannot be found to construct association %s in flight %s",
                    alias,
                    definition.alias,
                    self.plan.name,
                )
        missing = [alias for alias in endpoints if alias not in created]
        if missing:
            log.warning(
                "Skipping association %s in flight %s: %s not created for this row",
                definition.alias,
                self.plan.name,
                ", ".join(missing),
            )
            return False
        return True

    @staticmethod
    def _collect(
        bound: _BoundDefinition, row: Row
    ) -> tuple[PropertyValues, dict[StorageDestination, PropertyValues]]:
        properties: PropertyValues = {}
        by_destination: dict[StorageDestination, PropertyValues] = {}
        for prop in bound.properties:
            values = as_values(prop.value.evaluate(row))
            if not values:
                continue
            properties.setdefault(prop.property_id, set()).update(values)
            bucket = by_destination.setdefault(prop.destination, {})
            bucket.setdefault(prop.property_id, set()).update(values)
        return properties, by_destination

    @staticmethod
    def _entity_id(bound: _BoundDefinition, row: Row, properties: PropertyValues) -> str:
        generator = bound.definition.generator
        if generator is not None:
            generated = generator.evaluate(row)
            return "" if is_blank(generated) else str(generated).strip()
        return generate_default_entity_id(bound.key, properties)


def transform_batch(plan: MappingPlan, rows: Iterable[Row], catalog: Catalog) -> AddressedData:
    """One-shot helper: bind ``plan`` against ``catalog`` and transform ``rows``."""
    return FlightTransformer(plan, catalog).transform(rows)
