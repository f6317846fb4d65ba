"""SQLAlchemy adapter package for flightdeck."""

from __future__ import annotations

from .destination import SqlAlchemyGraphDestination
from .engine import StartupError, create_store_engine, startup_graph_store, startup_state_store
from .identity import SqlAlchemyIdentityResolver
from .source import SqlAlchemyRowSource, open_row_source
from .state import SqlAlchemyDurableMap, SqlAlchemyJobQueue, integration_map, job_map
from .tables import create_graph_schema, create_state_schema, graph_metadata, state_metadata

__all__ = [
    "SqlAlchemyDurableMap",
    "SqlAlchemyGraphDestination",
    "SqlAlchemyIdentityResolver",
    "SqlAlchemyJobQueue",
    "SqlAlchemyRowSource",
    "StartupError",
    "create_graph_schema",
    "create_state_schema",
    "create_store_engine",
    "graph_metadata",
    "integration_map",
    "job_map",
    "open_row_source",
    "startup_graph_store",
    "startup_state_store",
    "state_metadata",
]
