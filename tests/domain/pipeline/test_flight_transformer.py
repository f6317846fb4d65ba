from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from flightdeck.domain.mapping import (
    AssociationDefinition,
    ColumnEquals,
    EntityDefinition,
    IsNull,
    MappingPlan,
    Not,
    PropertyDefinition,
    column,
    constant,
)
from flightdeck.domain.model import EntityKey, StorageDestination, generate_default_entity_id
from flightdeck.domain.pipeline import FlightTransformer, as_values, transform_batch
from tests.helpers.graph import (
    LIVES_IN,
    NAME,
    PEOPLE,
    PHOTO,
    PLACES,
    SSN,
    person_definition,
    person_plan,
    residence_plan,
)

if TYPE_CHECKING:
    from flightdeck.domain.model import Catalog


def test_single_row_becomes_one_primary_entity(catalog: Catalog) -> None:
    addressed = transform_batch(
        person_plan(), [{"ssn": "123-45-6789", "full_name": "Ada Lovelace"}], catalog
    )

    [entity] = addressed.entities[StorageDestination.PRIMARY]
    assert entity.key == EntityKey(
        PEOPLE.id, generate_default_entity_id((SSN.id,), {SSN.id: {"123-45-6789"}})
    )
    assert entity.properties == {SSN.id: {"123-45-6789"}, NAME.id: {"Ada Lovelace"}}
    assert addressed.associations == {}


def test_identical_rows_yield_identical_keys(catalog: Catalog) -> None:
    row = {"ssn": "1", "full_name": "Ada"}

    addressed = transform_batch(person_plan(), [row, dict(row)], catalog)

    first, second = addressed.entities[StorageDestination.PRIMARY]
    assert first.key == second.key
    assert len(addressed.entity_keys()) == 1


def test_rows_without_key_values_produce_nothing(catalog: Catalog) -> None:
    addressed = transform_batch(person_plan(), [{"ssn": "  ", "full_name": "Nobody"}], catalog)

    assert addressed.is_empty()


def test_flight_condition_filters_rows(catalog: Catalog) -> None:
    plan = MappingPlan(
        name="people",
        condition=Not(condition=IsNull(column="ssn")),
        entities=(person_definition(generator=constant("fixed")),),
    )

    addressed = transform_batch(plan, [{"ssn": None, "full_name": "Skipped"}], catalog)

    assert addressed.is_empty()


def test_generator_overrides_default_identifier(catalog: Catalog) -> None:
    plan = person_plan(generator=column("employee_number"))

    addressed = transform_batch(
        plan, [{"employee_number": " E-7 ", "ssn": "1", "full_name": "Ada"}], catalog
    )

    [entity] = addressed.entities[StorageDestination.PRIMARY]
    assert entity.key.entity_id == "E-7"


def test_false_entity_condition_skips_association_and_logs(
    catalog: Catalog, caplog: pytest.LogCaptureFixture
) -> None:
    plan = residence_plan(city_condition="London")
    caplog.set_level(logging.WARNING)

    addressed = transform_batch(
        plan, [{"ssn": "1", "full_name": "Ada", "city": "Paris", "since": "1835"}], catalog
    )

    entities = addressed.entities[StorageDestination.PRIMARY]
    assert [entity.key.entity_set_id for entity in entities] == [PEOPLE.id]
    assert addressed.association_count() == 0
    assert addressed.skipped_associations == 1
    skips = [record for record in caplog.records if "Skipping association" in record.getMessage()]
    assert len(skips) == 1
    assert "place" in skips[0].getMessage()


def test_association_links_created_endpoints(catalog: Catalog) -> None:
    row = {"ssn": "1", "full_name": "Ada", "city": "London", "since": "1835"}

    addressed = transform_batch(residence_plan(), [row], catalog)

    [association] = addressed.associations[StorageDestination.PRIMARY]
    assert association.key.entity_set_id == LIVES_IN.id
    assert association.src.entity_set_id == PEOPLE.id
    assert association.dst.entity_set_id == PLACES.id
    assert addressed.skipped_associations == 0


def test_association_without_properties_goes_to_primary(catalog: Catalog) -> None:
    plan = residence_plan()
    bare = AssociationDefinition(
        alias="lives_in",
        entity_set_name=LIVES_IN.name,
        src_alias="person",
        dst_alias="place",
        generator=constant("edge"),
    )
    plan = plan.model_copy(update={"associations": (bare,)})

    addressed = transform_batch(plan, [{"ssn": "1", "full_name": "Ada", "city": "London"}], catalog)

    [association] = addressed.associations[StorageDestination.PRIMARY]
    assert association.properties == {}
    assert association.key.entity_id == "edge"


def test_unknown_alias_is_logged_as_error(
    catalog: Catalog, caplog: pytest.LogCaptureFixture
) -> None:
    plan = MappingPlan(
        name="people",
        entities=(person_definition(),),
        associations=(
            AssociationDefinition(
                alias="knows",
                entity_set_name=LIVES_IN.name,
                src_alias="person",
                dst_alias="ghost",
                generator=constant("edge"),
            ),
        ),
    )
    caplog.set_level(logging.WARNING)

    addressed = transform_batch(plan, [{"ssn": "1", "full_name": "Ada"}], catalog)

    assert addressed.association_count() == 0
    assert any(
        record.levelno == logging.ERROR and "ghost" in record.getMessage()
        for record in caplog.records
    )


def test_destination_precedence(catalog: Catalog) -> None:
    plan = MappingPlan(
        name="photos",
        entities=(
            EntityDefinition(
                alias="person",
                entity_set_name=PEOPLE.name,
                properties=(
                    PropertyDefinition(property_type=SSN.fqn, value=column("ssn")),
                    PropertyDefinition(property_type=PHOTO.fqn, value=column("photo")),
                    PropertyDefinition(
                        property_type=NAME.fqn,
                        value=column("full_name"),
                        storage_destination=StorageDestination.OBJECT_STORE,
                    ),
                ),
            ),
        ),
    )

    addressed = transform_batch(
        plan, [{"ssn": "1", "photo": b"\x89PNG", "full_name": "Ada"}], catalog
    )

    [primary] = addressed.entities[StorageDestination.PRIMARY]
    [stored] = addressed.entities[StorageDestination.OBJECT_STORE]
    assert primary.key == stored.key
    assert primary.properties == {SSN.id: {"1"}}
    assert stored.properties == {PHOTO.id: {b"\x89PNG"}, NAME.id: {"Ada"}}


def test_entity_level_destination_applies_to_unrouted_properties(catalog: Catalog) -> None:
    plan = person_plan(storage_destination=StorageDestination.OBJECT_STORE)

    addressed = transform_batch(plan, [{"ssn": "1", "full_name": "Ada"}], catalog)

    assert StorageDestination.PRIMARY not in addressed.entities
    assert len(addressed.entities[StorageDestination.OBJECT_STORE]) == 1


def test_column_equals_compares_text_of_non_string_values(catalog: Catalog) -> None:
    transformer = FlightTransformer(
        person_plan(condition=ColumnEquals(column="ssn", value="1")), catalog
    )

    addressed = transformer.transform([{"ssn": 1, "full_name": "Ada"}])

    assert addressed.entity_count() == 1


def test_as_values_flattens_and_drops_blanks() -> None:
    assert as_values(None) == []
    assert as_values("  ") == []
    assert as_values("x") == ["x"]
    assert as_values(b"raw") == [b"raw"]
    assert sorted(as_values(["a", None, " ", "b"])) == ["a", "b"]


def test_mapping_values_are_rejected_rather_than_flattened(catalog: Catalog) -> None:
    with pytest.raises(TypeError, match="mapping"):
        as_values({"first": "Ada", "last": "Lovelace"})

    with pytest.raises(TypeError, match="mapping"):
        transform_batch(person_plan(), [{"ssn": "1", "full_name": {"first": "Ada"}}], catalog)
