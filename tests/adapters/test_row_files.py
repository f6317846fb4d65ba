from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from flightdeck.adapters.catalog_file import load_catalog
from flightdeck.adapters.csv_source import CsvRowSource
from flightdeck.adapters.rate_limit import RowRateLimiter, build_row_limiter
from flightdeck.domain.errors import CatalogError
from flightdeck.domain.model import Datatype
from tests.helpers.graph import PEOPLE, PERSON_TYPE, PHOTO, SSN

if TYPE_CHECKING:
    from pathlib import Path


def test_csv_rows_map_empty_cells_to_none(tmp_path: Path) -> None:
    path = tmp_path / "people.csv"
    path.write_text("ssn;full_name\n1;Ada\n2;\n", encoding="utf-8")

    rows = list(CsvRowSource(path, delimiter=";"))

    assert rows == [{"ssn": "1", "full_name": "Ada"}, {"ssn": "2", "full_name": None}]


def test_csv_source_can_be_read_twice(tmp_path: Path) -> None:
    path = tmp_path / "people.csv"
    path.write_text("ssn\n1\n", encoding="utf-8")
    source = CsvRowSource(path, rate_limit=100)

    assert list(source) == list(source)


def test_row_limiter_needs_a_positive_rate() -> None:
    assert build_row_limiter("rows", None) is None
    assert build_row_limiter("rows", 0) is None
    assert isinstance(build_row_limiter("rows", 5), RowRateLimiter)
    with pytest.raises(ValueError, match="at least 1"):
        RowRateLimiter("rows", 0.5)


def _catalog_document() -> dict[str, object]:
    return {
        "property_types": [
            {"id": str(SSN.id), "fqn": SSN.fqn},
            {"id": str(PHOTO.id), "fqn": PHOTO.fqn, "datatype": "binary"},
        ],
        "entity_types": [
            {
                "id": str(PERSON_TYPE.id),
                "fqn": PERSON_TYPE.fqn,
                "key": [str(SSN.id)],
                "properties": [str(SSN.id), str(PHOTO.id)],
            }
        ],
        "entity_sets": [
            {"id": str(PEOPLE.id), "name": PEOPLE.name, "entity_type_id": str(PERSON_TYPE.id)}
        ],
    }


def test_catalog_file_loads_a_catalog(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(_catalog_document()), encoding="utf-8")

    catalog = load_catalog(path)

    assert catalog.entity_set(PEOPLE.name) == PEOPLE
    assert catalog.key_of(PEOPLE.name) == (SSN.id,)
    assert catalog.property_type(PHOTO.fqn).datatype is Datatype.BINARY
    assert catalog.property_type(SSN.fqn).datatype is Datatype.STRING


def test_catalog_file_with_dangling_entity_type_is_rejected(tmp_path: Path) -> None:
    document = _catalog_document()
    document["entity_types"] = []
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(CatalogError):
        load_catalog(path)
