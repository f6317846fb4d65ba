from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

import httpx
import pytest

from flightdeck.adapters.memory import InMemoryGraphDestination
from flightdeck.adapters.object_store import (
    ObjectStoreDestination,
    ObjectStoreUploadError,
    content_hash,
)
from flightdeck.config.pipeline import PipelineConfig
from flightdeck.domain.mapping import PropertyDefinition, column
from flightdeck.domain.model import (
    EntityKey,
    GraphAssociation,
    GraphEntity,
    StorageDestination,
    UpdateType,
)
from flightdeck.domain.pipeline import PipelineOrchestrator
from tests.helpers.graph import NAME, PHOTO, SSN, person_plan
from tests.helpers.http import make_client_factory

if TYPE_CHECKING:
    from collections.abc import Sequence

    from flightdeck.adapters.memory import InMemoryIdentityResolver
    from flightdeck.domain.model import Catalog
    from flightdeck.domain.ports import ObjectUpload


@dataclass
class FakeSigner:
    signed: list[ObjectUpload] = field(default_factory=list)
    drop: int = 0

    def presigned_urls(self, objects: Sequence[ObjectUpload]) -> list[str]:
        self.signed.extend(objects)
        urls = [f"https://bucket.example/{upload.object_key()}" for upload in objects]
        return urls[: len(urls) - self.drop]


def test_binary_values_are_uploaded_and_replaced_by_their_hash() -> None:
    uploaded: dict[str, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        uploaded[request.url.path] = request.content
        return httpx.Response(200)

    primary = InMemoryGraphDestination()
    signer = FakeSigner()
    destination = ObjectStoreDestination(
        primary, signer, client_factory=make_client_factory(handler)
    )
    key = EntityKey(uuid4(), "ada")
    photo, caption = uuid4(), uuid4()
    ids = {key: uuid4()}

    written = destination.integrate_entities(
        [GraphEntity(key, {photo: {b"\x89PNG"}, caption: {"portrait"}})], ids, {}
    )

    digest = content_hash(b"\x89PNG")
    assert written == 1
    assert primary.entities[(key.entity_set_id, ids[key])] == {
        photo: {digest},
        caption: {"portrait"},
    }
    [upload] = signer.signed
    assert upload.content_hash == digest
    assert upload.entity_key_id == ids[key]
    assert uploaded == {f"/{upload.object_key()}": b"\x89PNG"}


def test_associations_without_binaries_skip_signing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("nothing to upload")

    primary = InMemoryGraphDestination()
    signer = FakeSigner()
    destination = ObjectStoreDestination(
        primary, signer, client_factory=make_client_factory(handler)
    )
    src, dst, edge = EntityKey(uuid4(), "a"), EntityKey(uuid4(), "b"), EntityKey(uuid4(), "e")
    ids = {src: uuid4(), dst: uuid4(), edge: uuid4()}

    assert destination.integrate_associations([GraphAssociation(edge, src, dst)], ids, {}) == 1
    assert signer.signed == []


def test_failed_upload_raises_and_skips_the_primary_write() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403)

    primary = InMemoryGraphDestination()
    destination = ObjectStoreDestination(
        primary, FakeSigner(), client_factory=make_client_factory(handler)
    )
    key = EntityKey(uuid4(), "ada")

    with pytest.raises(ObjectStoreUploadError, match="403"):
        destination.integrate_entities([GraphEntity(key, {uuid4(): {b"x"}})], {key: uuid4()}, {})
    assert primary.calls == 0


def test_signer_must_return_one_url_per_object() -> None:
    destination = ObjectStoreDestination(
        InMemoryGraphDestination(),
        FakeSigner(drop=1),
        client_factory=make_client_factory(lambda _request: httpx.Response(200)),
    )
    key = EntityKey(uuid4(), "ada")

    with pytest.raises(ObjectStoreUploadError, match="pre-signed"):
        destination.integrate_entities([GraphEntity(key, {uuid4(): {b"x"}})], {key: uuid4()}, {})


def test_replace_keeps_primary_properties_of_a_split_entity(
    catalog: Catalog, identity_resolver: InMemoryIdentityResolver
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    primary = InMemoryGraphDestination()
    plan = person_plan(
        properties=(
            PropertyDefinition(property_type=PHOTO.fqn, value=column("photo")),
            PropertyDefinition(property_type=SSN.fqn, value=column("ssn")),
            PropertyDefinition(property_type=NAME.fqn, value=column("full_name")),
        ),
        update_type=UpdateType.REPLACE,
    )
    orchestrator = PipelineOrchestrator(
        [(plan, [{"ssn": "1", "full_name": "Ada", "photo": b"\x89PNG"}])],
        catalog=catalog,
        destinations={
            StorageDestination.PRIMARY: primary,
            StorageDestination.OBJECT_STORE: ObjectStoreDestination(
                primary, FakeSigner(), client_factory=make_client_factory(handler)
            ),
        },
        identity_resolver=identity_resolver,
        config=PipelineConfig(upload_batch_size=10, poll_interval_seconds=0.05),
    )

    orchestrator.launch()

    [stored] = primary.entities.values()
    assert stored == {
        SSN.id: {"1"},
        NAME.id: {"Ada"},
        PHOTO.id: {content_hash(b"\x89PNG")},
    }


def test_delegated_write_does_not_replace_the_whole_element() -> None:
    primary = InMemoryGraphDestination()
    destination = ObjectStoreDestination(
        primary,
        FakeSigner(),
        client_factory=make_client_factory(lambda _request: httpx.Response(200)),
    )
    key = EntityKey(uuid4(), "ada")
    name, photo = uuid4(), uuid4()
    ids = {key: uuid4()}
    update_types = {key.entity_set_id: UpdateType.REPLACE}
    primary.integrate_entities([GraphEntity(key, {name: {"Ada"}})], ids, update_types)

    destination.integrate_entities([GraphEntity(key, {photo: {b"raw"}})], ids, update_types)

    assert primary.entities[(key.entity_set_id, ids[key])] == {
        name: {"Ada"},
        photo: {content_hash(b"raw")},
    }
