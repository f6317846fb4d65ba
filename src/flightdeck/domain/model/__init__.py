"""Public domain model surface."""

from __future__ import annotations

from flightdeck.domain.model.catalog import Catalog, EntitySet, EntityType, PropertyType
from flightdeck.domain.model.elements import (
    AddressedData,
    GraphAssociation,
    GraphEntity,
    PropertyValues,
    merge_properties,
)
from flightdeck.domain.model.enums import (
    Datatype,
    Environment,
    JobStatus,
    StorageDestination,
    UpdateType,
)
from flightdeck.domain.model.keys import (
    EntityKey,
    canonical_value,
    decode_default_entity_id,
    generate_default_entity_id,
)

__all__ = [  # noqa: RUF022
    # catalog
    "Catalog",
    "EntitySet",
    "EntityType",
    "PropertyType",
    # elements
    "AddressedData",
    "GraphAssociation",
    "GraphEntity",
    "PropertyValues",
    "merge_properties",
    # enums
    "Datatype",
    "Environment",
    "JobStatus",
    "StorageDestination",
    "UpdateType",
    # keys
    "EntityKey",
    "canonical_value",
    "decode_default_entity_id",
    "generate_default_entity_id",
]
