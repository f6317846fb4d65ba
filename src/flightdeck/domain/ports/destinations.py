"""Ports for persisting graph elements and resolving their identities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence, Set
    from uuid import UUID

    from flightdeck.domain.model import EntityKey, GraphAssociation, GraphEntity, UpdateType


@runtime_checkable
class IntegrationDestination(Protocol):
    """A storage backend receiving batches of graph elements.

    ``entity_key_ids`` holds the resolved id of every key in the batch, including
    association endpoints. Both methods return the number of elements written.
    """

    def integrate_entities(
        self,
        entities: Sequence[GraphEntity],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int: ...

    def integrate_associations(
        self,
        associations: Sequence[GraphAssociation],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int: ...


@runtime_checkable
class IdentityResolver(Protocol):
    """Maps natural entity keys to durable surrogate ids, creating ids on first sight."""

    def resolve(self, keys: Set[EntityKey]) -> dict[EntityKey, UUID]: ...


@dataclass(frozen=True, slots=True)
class ObjectUpload:
    """Address of one binary property value in the object store."""

    entity_set_id: UUID
    entity_key_id: UUID
    property_type_id: UUID
    content_hash: str

    def object_key(self) -> str:
        return (
            f"{self.entity_set_id}/{self.entity_key_id}/{self.property_type_id}/{self.content_hash}"
        )


@runtime_checkable
class UrlSigner(Protocol):
    """Produces one pre-signed upload URL per object, in order."""

    def presigned_urls(self, objects: Sequence[ObjectUpload]) -> list[str]: ...
