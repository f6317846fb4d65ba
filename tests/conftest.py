from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from flightdeck.adapters.memory import (
    InMemoryDurableMap,
    InMemoryGraphDestination,
    InMemoryIdentityResolver,
    InMemoryJobQueue,
    InMemoryLogSetRegistry,
)
from flightdeck.adapters.sqlalchemy.engine import startup_graph_store, startup_state_store
from tests.helpers.graph import make_catalog

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path
    from uuid import UUID

    from sqlalchemy.engine import Engine

    from flightdeck.domain.integrations import Integration, IntegrationJob
    from flightdeck.domain.model import Catalog


@pytest.fixture
def catalog() -> Catalog:
    return make_catalog()


@pytest.fixture
def identity_resolver() -> InMemoryIdentityResolver:
    return InMemoryIdentityResolver()


@pytest.fixture
def graph_destination() -> InMemoryGraphDestination:
    return InMemoryGraphDestination()


@pytest.fixture
def integrations() -> InMemoryDurableMap[str, Integration]:
    return InMemoryDurableMap()


@pytest.fixture
def jobs() -> InMemoryDurableMap[UUID, IntegrationJob]:
    return InMemoryDurableMap()


@pytest.fixture
def job_queue() -> InMemoryJobQueue:
    return InMemoryJobQueue()


@pytest.fixture
def log_sets() -> InMemoryLogSetRegistry:
    return InMemoryLogSetRegistry()


@pytest.fixture
def state_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = startup_state_store(f"sqlite+pysqlite:///{tmp_path / 'state.db'}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def graph_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = startup_graph_store(f"sqlite+pysqlite:///{tmp_path / 'graph.db'}")
    try:
        yield engine
    finally:
        engine.dispose()
