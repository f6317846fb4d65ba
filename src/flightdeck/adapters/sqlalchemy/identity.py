"""Entity key id assignment backed by the primary graph store."""

from __future__ import annotations

from collections import defaultdict
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from flightdeck.adapters.sqlalchemy.tables import entity_key_id_table
from flightdeck.domain.model import EntityKey

if TYPE_CHECKING:
    from collections.abc import Iterable, Set

    from sqlalchemy.engine import Connection, Engine

log = getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500


class SqlAlchemyIdentityResolver:
    """Assigns a random id to each new entity key and returns the stored id afterwards.

    New keys are inserted with ``ON CONFLICT DO NOTHING`` and then read back, so
    concurrent resolvers racing on the same key all observe the id that won.
    """

    def __init__(self, engine: Engine, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.engine = engine
        self.chunk_size = chunk_size
        self._table = entity_key_id_table

    def resolve(self, keys: Set[EntityKey]) -> dict[EntityKey, UUID]:
        resolved: dict[EntityKey, UUID] = {}
        if not keys:
            return resolved
        with self.engine.begin() as conn:
            for chunk in batched(sorted(keys), self.chunk_size):
                existing = self._select(conn, chunk)
                missing = [key for key in chunk if key not in existing]
                if missing:
                    self._insert_ignore(conn, missing)
                    existing.update(self._select(conn, missing))
                resolved.update(existing)
        log.debug("Resolved %s entity keys", len(resolved))
        return resolved

    def _select(self, conn: Connection, keys: Iterable[EntityKey]) -> dict[EntityKey, UUID]:
        by_set: dict[UUID, list[str]] = defaultdict(list)
        for key in keys:
            by_set[key.entity_set_id].append(key.entity_id)
        found: dict[EntityKey, UUID] = {}
        table = self._table
        for entity_set_id, entity_ids in by_set.items():
            rows = conn.execute(
                select(table.c.entity_id, table.c.id).where(
                    (table.c.entity_set_id == entity_set_id) & table.c.entity_id.in_(entity_ids)
                )
            )
            for row in rows:
                found[EntityKey(entity_set_id, row.entity_id)] = row.id
        return found

    def _insert_ignore(self, conn: Connection, keys: Iterable[EntityKey]) -> None:
        rows = [
            {"entity_set_id": key.entity_set_id, "entity_id": key.entity_id, "id": uuid4()}
            for key in keys
        ]
        match conn.dialect.name:
            case "sqlite":
                conn.execute(sqlite_insert(self._table).on_conflict_do_nothing(), rows)
            case "postgresql":
                conn.execute(postgresql_insert(self._table).on_conflict_do_nothing(), rows)
            case _:
                for row in rows:
                    try:
                        with conn.begin_nested():
                            conn.execute(insert(self._table), row)
                    except IntegrityError:
                        continue
