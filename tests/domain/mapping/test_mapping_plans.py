from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from flightdeck.domain.errors import UnknownPropertyTypeError
from flightdeck.domain.mapping import (
    AllOf,
    AnyOf,
    CoalesceValue,
    ColumnEquals,
    ConcatValue,
    ConditionalValue,
    Contains,
    EntityDefinition,
    HashedValue,
    IsNull,
    MappingPlan,
    Not,
    PropertyDefinition,
    RegexMatch,
    Trim,
    column,
    constant,
)
from flightdeck.domain.model import UpdateType
from tests.helpers.graph import PEOPLE, person_definition, residence_plan

if TYPE_CHECKING:
    from flightdeck.domain.model import Catalog


def test_conditions_evaluate_rows() -> None:
    row = {"state": " WA ", "name": "Ada", "empty": "  "}

    assert ColumnEquals(column="name", value="ada", ignore_case=True).evaluate(row)
    assert not ColumnEquals(column="missing", value="x").evaluate(row)
    assert IsNull(column="empty").evaluate(row)
    assert IsNull(column="name", reverse=True).evaluate(row)
    assert Contains(column="state", substring="wa", ignore_case=True).evaluate(row)
    assert RegexMatch(column="name", pattern=r"^A").evaluate(row)
    assert AllOf(
        conditions=(IsNull(column="missing"), Not(condition=IsNull(column="name")))
    ).evaluate(row)
    assert AnyOf(
        conditions=(ColumnEquals(column="name", value="x"), IsNull(column="empty"))
    ).evaluate(row)


def test_regex_conditions_reject_invalid_patterns() -> None:
    with pytest.raises(ValidationError):
        RegexMatch(column="name", pattern="(unclosed")


def test_expressions_evaluate_rows() -> None:
    row = {"first": " Ada ", "last": "Lovelace", "nick": None}

    assert column("first", Trim()).evaluate(row) == "Ada"
    assert constant("x").evaluate(row) == "x"
    assert CoalesceValue(candidates=(column("nick"), column("last"))).evaluate(row) == "Lovelace"
    assert ConcatValue(parts=(column("first", Trim()), column("last"))).evaluate(row) == (
        "Ada Lovelace"
    )
    assert ConcatValue(parts=(column("nick"),)).evaluate(row) is None
    assert (
        ConditionalValue(
            condition=IsNull(column="nick"), if_true=constant("anonymous"), if_false=column("nick")
        ).evaluate(row)
        == "anonymous"
    )
    digest = HashedValue(parts=(column("first"), column("last"))).evaluate(row)
    assert isinstance(digest, str)
    assert len(digest) == 64
    assert digest != HashedValue(parts=(column("last"), column("first"))).evaluate(row)


def test_plan_round_trips_through_json() -> None:
    plan = MappingPlan(
        name="residence",
        condition=Not(condition=IsNull(column="ssn")),
        entities=(
            person_definition(
                generator=HashedValue(parts=(column("ssn"),)),
                update_type=UpdateType.PARTIAL_REPLACE,
                condition=RegexMatch(column="ssn", pattern=r"^\d+$"),
            ),
        ),
        associations=residence_plan().associations,
        tags=("census", "nightly"),
    )

    restored = MappingPlan.model_validate_json(plan.model_dump_json())

    assert restored == plan
    assert restored.entities[0].condition is not None
    assert restored.entities[0].condition.evaluate({"ssn": "123"})


def test_plan_rejects_duplicate_aliases() -> None:
    with pytest.raises(ValidationError, match="more than once"):
        MappingPlan(name="dupes", entities=(person_definition(), person_definition()))


def test_plan_reports_update_types_per_entity_set(catalog: Catalog) -> None:
    plan = MappingPlan(
        name="people", entities=(person_definition(update_type=UpdateType.REPLACE),)
    )

    assert plan.update_types(catalog) == {PEOPLE.id: UpdateType.REPLACE}


def test_plan_catalog_check_names_missing_property(catalog: Catalog) -> None:
    plan = MappingPlan(
        name="broken",
        entities=(
            EntityDefinition(
                alias="person",
                entity_set_name=PEOPLE.name,
                properties=(
                    PropertyDefinition(property_type="person.shoe_size", value=column("x")),
                ),
            ),
        ),
    )

    with pytest.raises(UnknownPropertyTypeError, match="person.shoe_size"):
        plan.check_catalog(catalog)
