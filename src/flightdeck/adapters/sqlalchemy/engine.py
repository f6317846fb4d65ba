"""Engine construction for the state store and the primary graph store."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool

from flightdeck.adapters.sqlalchemy.tables import create_graph_schema, create_state_schema

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a store cannot be initialised."""


def _engine_options(uri: str, *, max_connections: int | None) -> dict[str, Any]:
    url = make_url(uri)
    if url.get_backend_name() != "sqlite":
        options: dict[str, Any] = {"pool_pre_ping": True}
        if max_connections is not None:
            options["pool_size"] = max_connections
            options["max_overflow"] = 0
        return options
    options = {"connect_args": {"check_same_thread": False, "timeout": 30}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def _enable_sqlite_wal(engine: Engine) -> None:
    if engine.dialect.name != "sqlite" or engine.url.database in (None, "", ":memory:"):
        return

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection: Any, _record: object) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()


def create_store_engine(uri: str, *, max_connections: int | None = None) -> Engine:
    engine = create_engine(uri, **_engine_options(uri, max_connections=max_connections))
    _enable_sqlite_wal(engine)
    return engine


def startup_state_store(uri: str) -> Engine:
    """Create the engine backing durable job state and make sure its tables exist."""
    engine = create_store_engine(uri)
    try:
        create_state_schema(engine)
    except Exception as exc:
        engine.dispose()
        raise StartupError(f"Could not initialise the state store at {engine.url!r}") from exc
    log.info("State store ready at %r", engine.url)
    return engine


def startup_graph_store(uri: str, *, max_connections: int | None = None) -> Engine:
    """Create the engine for the primary graph store and make sure its tables exist."""
    engine = create_store_engine(uri, max_connections=max_connections)
    try:
        create_graph_schema(engine)
    except Exception as exc:
        engine.dispose()
        raise StartupError(f"Could not initialise the graph store at {engine.url!r}") from exc
    log.debug("Graph store ready at %r", engine.url)
    return engine
