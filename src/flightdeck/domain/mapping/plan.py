"""Declarative mapping plans ("flights")."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flightdeck.domain.mapping.conditions import Condition  # noqa: TC001
from flightdeck.domain.mapping.expressions import ValueExpression  # noqa: TC001
from flightdeck.domain.model.enums import StorageDestination, UpdateType

if TYPE_CHECKING:
    from uuid import UUID

    from flightdeck.domain.model.catalog import Catalog


class _PlanModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PropertyDefinition(_PlanModel):
    property_type: str
    value: ValueExpression
    storage_destination: StorageDestination | None = None


class EntityDefinition(_PlanModel):
    alias: str = Field(min_length=1)
    entity_set_name: str
    properties: tuple[PropertyDefinition, ...] = ()
    condition: Condition | None = None
    generator: ValueExpression | None = None
    storage_destination: StorageDestination | None = None
    update_type: UpdateType = UpdateType.MERGE


class AssociationDefinition(EntityDefinition):
    src_alias: str
    dst_alias: str


class MappingPlan(_PlanModel):
    """Ordered recipe turning one row into entities and associations."""

    name: str = Field(min_length=1)
    condition: Condition | None = None
    entities: tuple[EntityDefinition, ...] = ()
    associations: tuple[AssociationDefinition, ...] = ()
    tags: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _unique_aliases(self) -> MappingPlan:
        seen: set[str] = set()
        for definition in (*self.entities, *self.associations):
            if definition.alias in seen:
                raise ValueError(
                    f"Alias {definition.alias!r} is used more than once in {self.name}"
                )
            seen.add(definition.alias)
        return self

    def definitions(self) -> tuple[EntityDefinition, ...]:
        return (*self.entities, *self.associations)

    def update_types(self, catalog: Catalog) -> dict[UUID, UpdateType]:
        """Update policy per entity set id written by this plan."""
        return {
            catalog.entity_set(definition.entity_set_name).id: definition.update_type
            for definition in self.definitions()
        }

    def check_catalog(self, catalog: Catalog) -> None:
        """Fail fast if the plan references entity sets or property types the catalog lacks."""
        for definition in self.definitions():
            catalog.entity_set(definition.entity_set_name)
            for prop in definition.properties:
                catalog.property_type(prop.property_type)
