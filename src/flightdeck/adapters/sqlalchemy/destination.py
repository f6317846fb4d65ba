"""Primary-store writer for entities and associations."""

from __future__ import annotations

import threading
from collections import defaultdict
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update

from flightdeck.adapters.sqlalchemy.tables import association_table, entity_table
from flightdeck.domain.model import UpdateType, merge_properties

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

    from sqlalchemy import Table
    from sqlalchemy.engine import Connection, Engine

    from flightdeck.domain.model import EntityKey, GraphAssociation, GraphEntity, PropertyValues

log = getLogger(__name__)


def _combine(target: PropertyValues, source: PropertyValues) -> None:
    for pid, values in source.items():
        target.setdefault(pid, set()).update(values)


class SqlAlchemyGraphDestination:
    """Writes graph elements to the ``entity`` and ``association`` tables.

    Elements sharing an id within one call are folded together first. The
    read-modify-write of each call is serialised per writer instance so that
    concurrently written batches never lose each other's merged values.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._lock = threading.Lock()

    def integrate_entities(
        self,
        entities: Sequence[GraphEntity],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int:
        pending: dict[tuple[UUID, UUID], PropertyValues] = {}
        for entity in entities:
            ident = (entity.key.entity_set_id, entity_key_ids[entity.key])
            _combine(pending.setdefault(ident, {}), entity.properties)
        with self._lock, self.engine.begin() as conn:
            self._write(conn, entity_table, pending, {}, update_types)
        log.debug("Wrote %s entities", len(pending))
        return len(pending)

    def integrate_associations(
        self,
        associations: Sequence[GraphAssociation],
        entity_key_ids: Mapping[EntityKey, UUID],
        update_types: Mapping[UUID, UpdateType],
    ) -> int:
        pending: dict[tuple[UUID, UUID], PropertyValues] = {}
        edges: dict[tuple[UUID, UUID], dict[str, UUID]] = {}
        for association in associations:
            ident = (association.key.entity_set_id, entity_key_ids[association.key])
            _combine(pending.setdefault(ident, {}), association.properties)
            edges[ident] = {
                "src_entity_set_id": association.src.entity_set_id,
                "src_id": entity_key_ids[association.src],
                "dst_entity_set_id": association.dst.entity_set_id,
                "dst_id": entity_key_ids[association.dst],
            }
        with self._lock, self.engine.begin() as conn:
            self._write(conn, association_table, pending, edges, update_types)
        log.debug("Wrote %s associations", len(pending))
        return len(pending)

    @staticmethod
    def _existing(
        conn: Connection, table: Table, idents: Iterable[tuple[UUID, UUID]]
    ) -> dict[tuple[UUID, UUID], tuple[PropertyValues, int]]:
        by_set: dict[UUID, list[UUID]] = defaultdict(list)
        for entity_set_id, element_id in idents:
            by_set[entity_set_id].append(element_id)
        found: dict[tuple[UUID, UUID], tuple[PropertyValues, int]] = {}
        for entity_set_id, element_ids in by_set.items():
            rows = conn.execute(
                select(table.c.id, table.c.properties, table.c.version).where(
                    (table.c.entity_set_id == entity_set_id) & table.c.id.in_(element_ids)
                )
            )
            for row in rows:
                found[(entity_set_id, row.id)] = (row.properties, row.version)
        return found

    def _write(
        self,
        conn: Connection,
        table: Table,
        pending: dict[tuple[UUID, UUID], PropertyValues],
        extra: Mapping[tuple[UUID, UUID], Mapping[str, UUID]],
        update_types: Mapping[UUID, UpdateType],
    ) -> None:
        if not pending:
            return
        now = datetime.now(UTC)
        existing = self._existing(conn, table, pending)
        inserts = []
        for ident, properties in pending.items():
            entity_set_id, element_id = ident
            update_type = update_types.get(entity_set_id, UpdateType.MERGE)
            stored = existing.get(ident)
            if stored is None:
                inserts.append(
                    {
                        "entity_set_id": entity_set_id,
                        "id": element_id,
                        "properties": properties,
                        "version": 1,
                        "last_write": now,
                        **extra.get(ident, {}),
                    }
                )
                continue
            stored_properties, version = stored
            conn.execute(
                update(table)
                .where((table.c.entity_set_id == entity_set_id) & (table.c.id == element_id))
                .values(
                    properties=merge_properties(stored_properties, properties, update_type),
                    version=version + 1,
                    last_write=now,
                    **extra.get(ident, {}),
                )
            )
        if inserts:
            conn.execute(insert(table), inserts)
