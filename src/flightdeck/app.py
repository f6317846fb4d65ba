"""Application wiring for flightdeck."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from flightdeck.adapters.callbacks import HttpCallbackNotifier
from flightdeck.adapters.object_store import ObjectStoreDestination
from flightdeck.adapters.sqlalchemy.destination import SqlAlchemyGraphDestination
from flightdeck.adapters.sqlalchemy.engine import startup_graph_store, startup_state_store
from flightdeck.adapters.sqlalchemy.identity import SqlAlchemyIdentityResolver
from flightdeck.adapters.sqlalchemy.source import open_row_source
from flightdeck.adapters.sqlalchemy.state import SqlAlchemyJobQueue, integration_map, job_map
from flightdeck.config.errors import ConfigurationError
from flightdeck.config.http_resilience import ResilienceConfig, get_upload_resilience_config
from flightdeck.config.pipeline import (
    PipelineConfig,
    SchedulerConfig,
    SourceConfig,
    get_pipeline_config,
    get_scheduler_config,
    get_source_config,
)
from flightdeck.domain.model import StorageDestination
from flightdeck.domain.pipeline import PipelineOrchestrator
from flightdeck.domain.scheduling import IntegrationScheduler

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID

    from sqlalchemy.engine import Engine

    from flightdeck.config.storage import DatabaseConfig
    from flightdeck.domain.integrations import Integration
    from flightdeck.domain.mapping import MappingPlan
    from flightdeck.domain.model import Catalog
    from flightdeck.domain.ports import (
        IdentityResolver,
        IntegrationDestination,
        LogSetRegistry,
        RowSource,
        UrlSigner,
    )

log = logging.getLogger(__name__)


class RowSourceFactory(Protocol):
    def __call__(
        self,
        connection: Mapping[str, str],
        query: str,
        *,
        fetch_size: int,
        rate_limit: float | None,
    ) -> RowSource: ...


def _close_source(source: RowSource) -> None:
    close = getattr(source, "close", None)
    if callable(close):
        close()


@dataclass(slots=True)
class IntegrationLauncher:
    """Runs one stored integration: opens its sources, wires its destinations, flies its plan.

    The catalog is fetched per job. Without an explicit ``identity_resolver`` the
    entity key ids are assigned in the primary graph store itself.
    """

    catalog_provider: Callable[[], Catalog]
    database: DatabaseConfig
    identity_resolver: IdentityResolver | None = None
    pipeline: PipelineConfig = field(default_factory=get_pipeline_config)
    source: SourceConfig = field(default_factory=get_source_config)
    url_signer: UrlSigner | None = None
    upload_resilience: ResilienceConfig = field(default_factory=get_upload_resilience_config)
    row_source_factory: RowSourceFactory = open_row_source

    def __call__(self, job_id: UUID, integration: Integration) -> int:
        log.info("Starting integration job %s", job_id)
        started = time.perf_counter()
        catalog = self.catalog_provider()
        flight_plan: list[tuple[MappingPlan, RowSource]] = []
        graph_engine = startup_graph_store(
            self.database.primary_uri,
            max_connections=integration.max_connections or self.database.max_connections,
        )
        try:
            for parameters in integration.flight_plan_parameters.values():
                source = self.row_source_factory(
                    parameters.source,
                    parameters.sql,
                    fetch_size=self.source.fetch_size,
                    rate_limit=self.source.read_rate_limit,
                )
                flight_plan.append((parameters.flight, source))
            orchestrator = PipelineOrchestrator(
                flight_plan,
                catalog=catalog,
                destinations=self.build_destinations(integration, graph_engine),
                identity_resolver=self.identity_resolver
                or SqlAlchemyIdentityResolver(graph_engine),
                config=self.pipeline,
            )
            written = orchestrator.launch()
        finally:
            for _plan, source in flight_plan:
                _close_source(source)
            graph_engine.dispose()
        log.info(
            "Finished integration job %s: %s elements in %.0f ms",
            job_id,
            written,
            (time.perf_counter() - started) * 1000,
        )
        return written

    def build_destinations(
        self, integration: Integration, graph_engine: Engine
    ) -> dict[StorageDestination, IntegrationDestination]:
        primary = SqlAlchemyGraphDestination(graph_engine)
        destinations: dict[StorageDestination, IntegrationDestination] = {
            StorageDestination.PRIMARY: primary
        }
        if integration.s3_bucket:
            if self.url_signer is None:
                raise ConfigurationError(
                    f"Integration writes binary data to bucket {integration.s3_bucket!r} "
                    "but no URL signer is configured"
                )
            destinations[StorageDestination.OBJECT_STORE] = ObjectStoreDestination(
                primary, self.url_signer, self.upload_resilience
            )
        return destinations


def build_scheduler(
    *,
    database: DatabaseConfig,
    catalog_provider: Callable[[], Catalog],
    log_sets: LogSetRegistry,
    url_signer: UrlSigner | None = None,
    config: SchedulerConfig | None = None,
) -> IntegrationScheduler:
    """Wire a scheduler over the durable state store and the SQL-backed launcher."""

    state_engine = startup_state_store(database.state_uri)
    launcher = IntegrationLauncher(
        catalog_provider=catalog_provider, database=database, url_signer=url_signer
    )
    return IntegrationScheduler(
        integrations=integration_map(state_engine),
        jobs=job_map(state_engine),
        queue=SqlAlchemyJobQueue(state_engine),
        launcher=launcher,
        log_sets=log_sets,
        notifier=HttpCallbackNotifier(),
        config=config or get_scheduler_config(),
    )
