"""SQLAlchemy Core tables for durable job state and the primary graph store."""

from __future__ import annotations

import base64
import json
import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from flightdeck.domain.model import PropertyValues

UUIDColumnType = Uuid[uuid.UUID]

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def encode_value(value: object) -> object:
    if isinstance(value, bytes | bytearray):
        return {"$binary": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, uuid.UUID):
        return {"$uuid": str(value)}
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)


def decode_value(value: object) -> object:
    if not isinstance(value, dict):
        return value
    tagged = cast(dict[str, str], value)
    if "$binary" in tagged:
        return base64.b64decode(tagged["$binary"])
    if "$datetime" in tagged:
        return datetime.fromisoformat(tagged["$datetime"])
    if "$date" in tagged:
        return date.fromisoformat(tagged["$date"])
    if "$uuid" in tagged:
        return uuid.UUID(tagged["$uuid"])
    return json.dumps(tagged, sort_keys=True)


class PropertyValuesType(TypeDecorator[dict[uuid.UUID, set[object]]]):
    """Property-type id to value set, stored as a JSON object with sorted value lists."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: PropertyValues | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = {
            str(property_id): sorted(
                (encode_value(item) for item in values),
                key=lambda item: json.dumps(item, sort_keys=True),
            )
            for property_id, values in value.items()
        }
        return json.dumps(payload, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> PropertyValues:
        _ = dialect
        if value is None:
            return {}
        loaded = cast(dict[str, list[Any]], json.loads(value))
        return {
            uuid.UUID(property_id): {decode_value(item) for item in items}
            for property_id, items in loaded.items()
        }


# Durable job state -----------------------------------------------------------

state_metadata = MetaData(naming_convention=NAMING_CONVENTION)

durable_entry_table = Table(
    "durable_entry",
    state_metadata,
    Column("namespace", String(64), primary_key=True),
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

job_queue_table = Table(
    "job_queue",
    state_metadata,
    Column("position", Integer, primary_key=True, autoincrement=True),
    Column("job_id", UUIDColumnType, nullable=False),
    Column("enqueued_at", UTCDateTime, nullable=False),
    UniqueConstraint("job_id"),
)

# Primary graph store ---------------------------------------------------------

graph_metadata = MetaData(naming_convention=NAMING_CONVENTION)

entity_key_id_table = Table(
    "entity_key_id",
    graph_metadata,
    Column("entity_set_id", UUIDColumnType, primary_key=True),
    Column("entity_id", String, primary_key=True),
    Column("id", UUIDColumnType, nullable=False),
    UniqueConstraint("id"),
)

entity_table = Table(
    "entity",
    graph_metadata,
    Column("entity_set_id", UUIDColumnType, primary_key=True),
    Column("id", UUIDColumnType, primary_key=True),
    Column("properties", PropertyValuesType, nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Column("last_write", UTCDateTime, nullable=False),
)

association_table = Table(
    "association",
    graph_metadata,
    Column("entity_set_id", UUIDColumnType, primary_key=True),
    Column("id", UUIDColumnType, primary_key=True),
    Column("src_entity_set_id", UUIDColumnType, nullable=False),
    Column("src_id", UUIDColumnType, nullable=False),
    Column("dst_entity_set_id", UUIDColumnType, nullable=False),
    Column("dst_id", UUIDColumnType, nullable=False),
    Column("properties", PropertyValuesType, nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Column("last_write", UTCDateTime, nullable=False),
    Index(None, "src_entity_set_id", "src_id"),
    Index(None, "dst_entity_set_id", "dst_id"),
)


def create_state_schema(engine: Engine) -> None:
    state_metadata.create_all(engine)


def create_graph_schema(engine: Engine) -> None:
    graph_metadata.create_all(engine)
