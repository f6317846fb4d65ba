"""Durable map and queue on top of the state store."""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from flightdeck.adapters.sqlalchemy.tables import durable_entry_table, job_queue_table
from flightdeck.domain.integrations import Integration, IntegrationJob

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import ColumnElement
    from sqlalchemy.engine import Connection, Engine

log = getLogger(__name__)

INTEGRATIONS_NAMESPACE = "integrations"
JOBS_NAMESPACE = "integration_jobs"


def _now() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyDurableMap[K, V: BaseModel]:
    """Namespaced key/value map storing pydantic models as JSON.

    ``update`` is atomic within the process via a lock and across processes via
    ``SELECT ... FOR UPDATE`` on backends that support it.
    """

    def __init__(
        self,
        engine: Engine,
        namespace: str,
        model: type[V],
        key_parser: Callable[[str], K],
    ) -> None:
        self.engine = engine
        self.namespace = namespace
        self.model = model
        self._parse_key = key_parser
        self._lock = threading.RLock()
        self._table = durable_entry_table

    def _where_key(self, key: K) -> ColumnElement[bool]:
        return (self._table.c.namespace == self.namespace) & (self._table.c.key == str(key))

    def _load(self, raw: str) -> V:
        return self.model.model_validate_json(raw)

    def get(self, key: K) -> V | None:
        with self.engine.connect() as conn:
            raw = conn.execute(select(self._table.c.value).where(self._where_key(key))).scalar()
        return None if raw is None else self._load(raw)

    def put(self, key: K, value: V) -> None:
        with self._lock, self.engine.begin() as conn:
            result = conn.execute(
                update(self._table)
                .where(self._where_key(key))
                .values(value=value.model_dump_json(), updated_at=_now())
            )
            if result.rowcount == 0:
                self._insert(conn, key, value)

    def put_if_absent(self, key: K, value: V) -> bool:
        try:
            with self._lock, self.engine.begin() as conn:
                self._insert(conn, key, value)
        except IntegrityError:
            return False
        return True

    def _insert(self, conn: Connection, key: K, value: V) -> None:
        conn.execute(
            insert(self._table).values(
                namespace=self.namespace,
                key=str(key),
                value=value.model_dump_json(),
                updated_at=_now(),
            )
        )

    def remove(self, key: K) -> V | None:
        with self._lock, self.engine.begin() as conn:
            raw = conn.execute(
                select(self._table.c.value).where(self._where_key(key)).with_for_update()
            ).scalar()
            if raw is None:
                return None
            conn.execute(delete(self._table).where(self._where_key(key)))
        return self._load(raw)

    def update(self, key: K, mutate: Callable[[V], V]) -> V | None:
        with self._lock, self.engine.begin() as conn:
            raw = conn.execute(
                select(self._table.c.value).where(self._where_key(key)).with_for_update()
            ).scalar()
            if raw is None:
                return None
            updated = mutate(self._load(raw))
            conn.execute(
                update(self._table)
                .where(self._where_key(key))
                .values(value=updated.model_dump_json(), updated_at=_now())
            )
        return updated

    def items(self) -> dict[K, V]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(self._table.c.key, self._table.c.value).where(
                    self._table.c.namespace == self.namespace
                )
            ).all()
        return {self._parse_key(row.key): self._load(row.value) for row in rows}

    def keys_where(self, predicate: Callable[[V], bool]) -> list[K]:
        return [key for key, value in self.items().items() if predicate(value)]

    def __contains__(self, key: object) -> bool:
        with self.engine.connect() as conn:
            found = conn.execute(select(self._table.c.key).where(self._where_key(key))).first()
        return found is not None


class SqlAlchemyJobQueue:
    """FIFO of job ids; ``take`` polls the table until an id arrives or the timeout expires."""

    def __init__(self, engine: Engine, *, poll_interval_seconds: float = 0.2) -> None:
        self.engine = engine
        self.poll_interval_seconds = poll_interval_seconds
        self._lock = threading.Lock()
        self._table = job_queue_table

    def put(self, job_id: UUID) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(self._table).values(job_id=job_id, enqueued_at=_now()))
        except IntegrityError:
            log.debug("Job %s is already queued", job_id)

    def take(self, timeout: float) -> UUID | None:
        deadline = time.monotonic() + timeout
        while True:
            job_id = self._pop()
            if job_id is not None:
                return job_id
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            time.sleep(min(self.poll_interval_seconds, remaining))

    def _pop(self) -> UUID | None:
        with self._lock, self.engine.begin() as conn:
            row = conn.execute(
                select(self._table.c.position, self._table.c.job_id)
                .order_by(self._table.c.position)
                .limit(1)
                .with_for_update(skip_locked=True)
            ).first()
            if row is None:
                return None
            conn.execute(delete(self._table).where(self._table.c.position == row.position))
        return row.job_id

    def __contains__(self, job_id: object) -> bool:
        if not isinstance(job_id, UUID):
            return False
        with self.engine.connect() as conn:
            found = conn.execute(
                select(self._table.c.position).where(self._table.c.job_id == job_id)
            ).first()
        return found is not None

    def __len__(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(self._table)).scalar_one()


def integration_map(engine: Engine) -> SqlAlchemyDurableMap[str, Integration]:
    return SqlAlchemyDurableMap(engine, INTEGRATIONS_NAMESPACE, Integration, str)


def job_map(engine: Engine) -> SqlAlchemyDurableMap[UUID, IntegrationJob]:
    return SqlAlchemyDurableMap(engine, JOBS_NAMESPACE, IntegrationJob, UUID)
