"""Catalog snapshots loaded from a JSON document."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from pydantic import BaseModel, ConfigDict

from flightdeck.domain.model import Catalog, Datatype, EntitySet, EntityType, PropertyType

if TYPE_CHECKING:
    from pathlib import Path


class _CatalogModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PropertyTypeDocument(_CatalogModel):
    id: UUID
    fqn: str
    datatype: Datatype = Datatype.STRING


class EntityTypeDocument(_CatalogModel):
    id: UUID
    fqn: str
    key: list[UUID]
    properties: list[UUID] = []


class EntitySetDocument(_CatalogModel):
    id: UUID
    name: str
    entity_type_id: UUID


class CatalogDocument(_CatalogModel):
    property_types: list[PropertyTypeDocument] = []
    entity_types: list[EntityTypeDocument] = []
    entity_sets: list[EntitySetDocument] = []

    def to_catalog(self) -> Catalog:
        return Catalog.build(
            property_types=(PropertyType(p.id, p.fqn, p.datatype) for p in self.property_types),
            entity_types=(
                EntityType(t.id, t.fqn, tuple(t.key), tuple(t.properties))
                for t in self.entity_types
            ),
            entity_sets=(EntitySet(s.id, s.name, s.entity_type_id) for s in self.entity_sets),
        )


def load_catalog(path: Path) -> Catalog:
    """Read the catalog afresh; called once per job so edits are picked up between runs."""
    return CatalogDocument.model_validate_json(path.read_text(encoding="utf-8")).to_catalog()
