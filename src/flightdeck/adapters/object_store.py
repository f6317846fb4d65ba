"""Object-store destination: binary values are uploaded, the primary store keeps their hashes."""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from flightdeck.adapters.http_resilience import ResilientClient
from flightdeck.config.http_resilience import ResilienceConfig, get_upload_resilience_config
from flightdeck.domain.model import GraphAssociation, GraphEntity, UpdateType
from flightdeck.domain.ports import ObjectUpload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from uuid import UUID

    from flightdeck.domain.model import EntityKey, PropertyValues
    from flightdeck.domain.ports import IntegrationDestination, UrlSigner

log = getLogger(__name__)


class ObjectStoreUploadError(RuntimeError):
    """Raised when a binary payload could not be stored."""


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def content_hash(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def _without_replace(update_types: Mapping[UUID, UpdateType]) -> dict[UUID, UpdateType]:
    # the primary subset of each element has already been written this batch
    return {
        entity_set_id: (
            UpdateType.PARTIAL_REPLACE if update_type is UpdateType.REPLACE else update_type
        )
        for entity_set_id, update_type in update_types.items()
    }


@dataclass(slots=True)
class ObjectStoreDestination:
    """Uploads binary property values through pre-signed URLs, then delegates to ``primary``.

    Binary values are replaced by their SHA-256 hex digest before the element is
    handed to the primary writer, so the relational store only references the
    object. Non-binary values routed here are passed through unchanged.
    ``REPLACE`` reaches the primary writer as ``PARTIAL_REPLACE`` because only the
    object-store share of each element passes through here.
    """

    primary: IntegrationDestination
    signer: UrlSigner
    resilience: ResilienceConfig = field(default_factory=get_upload_resilience_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def integrate_entities(
        self,
        entities: Sequence[GraphEntity],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int:
        uploads: list[tuple[ObjectUpload, bytes]] = []
        rewritten = [
            GraphEntity(
                entity.key,
                self._extract(entity.key, entity.properties, entity_key_ids, uploads),
            )
            for entity in entities
        ]
        self._upload(uploads)
        return self.primary.integrate_entities(
            rewritten, entity_key_ids, _without_replace(update_types)
        )

    def integrate_associations(
        self,
        associations: Sequence[GraphAssociation],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int:
        uploads: list[tuple[ObjectUpload, bytes]] = []
        rewritten = [
            GraphAssociation(
                association.key,
                association.src,
                association.dst,
                self._extract(association.key, association.properties, entity_key_ids, uploads),
            )
            for association in associations
        ]
        self._upload(uploads)
        return self.primary.integrate_associations(
            rewritten, entity_key_ids, _without_replace(update_types)
        )

    @staticmethod
    def _extract(
        key: EntityKey,
        properties: PropertyValues,
        entity_key_ids: Mapping[EntityKey, UUID],
        uploads: list[tuple[ObjectUpload, bytes]],
    ) -> PropertyValues:
        extracted: PropertyValues = {}
        for property_id, values in properties.items():
            kept: set[object] = set()
            for value in values:
                if not isinstance(value, bytes | bytearray):
                    kept.add(value)
                    continue
                payload = bytes(value)
                digest = content_hash(payload)
                upload = ObjectUpload(key.entity_set_id, entity_key_ids[key], property_id, digest)
                uploads.append((upload, payload))
                kept.add(digest)
            extracted[property_id] = kept
        return extracted

    def _upload(self, uploads: list[tuple[ObjectUpload, bytes]]) -> None:
        if not uploads:
            return
        urls = self.signer.presigned_urls([upload for upload, _payload in uploads])
        if len(urls) != len(uploads):
            raise ObjectStoreUploadError(
                f"Expected {len(uploads)} pre-signed urls but received {len(urls)}"
            )
        payloads = [payload for _upload, payload in uploads]
        asyncio.run(self._put_all(list(zip(urls, payloads, strict=True))))
        log.debug("Uploaded %s binary values", len(uploads))

    async def _put_all(self, requests: list[tuple[str, bytes]]) -> None:
        async with self.client_factory(self.resilience) as client:
            responses = await asyncio.gather(
                *(client.put_bytes(url, payload) for url, payload in requests),
                return_exceptions=True,
            )
        for (url, _payload), response in zip(requests, responses, strict=True):
            if isinstance(response, BaseException):
                raise ObjectStoreUploadError(f"Upload to {url} failed: {response}") from response
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise ObjectStoreUploadError(f"Upload to {url} failed: {exc}") from exc
