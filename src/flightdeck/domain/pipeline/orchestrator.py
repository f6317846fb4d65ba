"""Backpressure-bounded execution of a flight plan.

Each plan gets a producer (the calling thread) that chunks its row source into
batches and a consumer thread that hands batches to a small worker pool. The
bounded batch queue between them is the only buffer: when writers fall behind,
the producer blocks instead of reading further ahead.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from itertools import batched
from typing import TYPE_CHECKING, Final

from flightdeck.config.pipeline import PipelineConfig
from flightdeck.domain.errors import PipelineError
from flightdeck.domain.pipeline.counters import IntegrationCounters
from flightdeck.domain.pipeline.transform import FlightTransformer

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from flightdeck.domain.mapping.conditions import Row
    from flightdeck.domain.mapping.plan import MappingPlan
    from flightdeck.domain.model import Catalog, StorageDestination, UpdateType
    from flightdeck.domain.ports import IdentityResolver, IntegrationDestination, RowSource

log = logging.getLogger(__name__)


class _EndOfStream:
    __slots__ = ()


_END: Final = _EndOfStream()

type _QueueItem = tuple[Row, ...] | _EndOfStream


@dataclass(slots=True)
class _FailureSignal:
    """First batch failure of a flight, shared between the consumer and batch workers."""

    event: threading.Event = field(default_factory=threading.Event)
    error: BaseException | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record(self, error: BaseException) -> None:
        with self._lock:
            if self.error is None:
                self.error = error
        self.event.set()

    @property
    def is_set(self) -> bool:
        return self.event.is_set()


class PipelineOrchestrator:
    """Runs the flights of one integration, one after another."""

    def __init__(
        self,
        flight_plan: Sequence[tuple[MappingPlan, RowSource]],
        *,
        catalog: Catalog,
        destinations: Mapping[StorageDestination, IntegrationDestination],
        identity_resolver: IdentityResolver,
        config: PipelineConfig | None = None,
    ) -> None:
        self.flight_plan = tuple(flight_plan)
        self.catalog = catalog
        self.destinations = dict(destinations)
        self.identity_resolver = identity_resolver
        self.config = config or PipelineConfig()
        self.update_types: dict[UUID, UpdateType] = {}
        for plan, _source in self.flight_plan:
            plan.check_catalog(catalog)
            self.update_types.update(plan.update_types(catalog))

    def launch(self) -> int:
        """Execute every flight and return the number of graph elements written."""
        started = time.perf_counter()
        total = 0
        for plan, source in self.flight_plan:
            log.info("Launching flight: %s", plan.name)
            total += self.takeoff(plan, source)
            log.info("Finished flight: %s", plan.name)
        log.info(
            "Executed %s entity writes in flight plan in %.0f ms.",
            total,
            (time.perf_counter() - started) * 1000,
        )
        return total

    def takeoff(self, plan: MappingPlan, source: RowSource) -> int:
        started = time.perf_counter()
        transformer = FlightTransformer(plan, self.catalog)
        counters = IntegrationCounters()
        batches: queue.Queue[_QueueItem] = queue.Queue(maxsize=self.config.queue_capacity)
        failure = _FailureSignal()

        consumer = threading.Thread(
            target=self._consume,
            args=(transformer, batches, counters, failure),
            name=f"flightdeck-consumer-{plan.name}",
            daemon=True,
        )
        consumer.start()
        read_error: Exception | None = None
        try:
            rows = self._produce(source, batches, failure)
        except Exception as exc:  # noqa: BLE001 - reported after the consumer drained
            read_error = exc
            rows = 0
            failure.event.set()
        consumer.join()

        if failure.error is not None:
            raise PipelineError(
                f"Flight {plan.name} failed while integrating a batch: {failure.error}"
            ) from failure.error
        if read_error is not None:
            raise PipelineError(
                f"Flight {plan.name} failed while reading its source: {read_error}"
            ) from read_error

        total = counters.total()
        log.info(
            "Integrated %s rows into %s elements (%s) in %.0f ms for flight %s",
            rows,
            total,
            counters.describe(),
            (time.perf_counter() - started) * 1000,
            plan.name,
        )
        return total

    def _produce(
        self,
        source: RowSource,
        batches: queue.Queue[_QueueItem],
        failure: _FailureSignal,
    ) -> int:
        rows = 0
        for batch in batched(source, self.config.upload_batch_size):
            if not self._offer(batches, batch, failure):
                return rows
            rows += len(batch)
        self._offer(batches, _END, failure)
        return rows

    def _offer(
        self, batches: queue.Queue[_QueueItem], item: _QueueItem, failure: _FailureSignal
    ) -> bool:
        while not failure.is_set:
            try:
                batches.put(item, timeout=self.config.poll_interval_seconds)
            except queue.Full:
                continue
            return True
        return False

    def _consume(
        self,
        transformer: FlightTransformer,
        batches: queue.Queue[_QueueItem],
        counters: IntegrationCounters,
        failure: _FailureSignal,
    ) -> None:
        parallelism = self.config.batch_parallelism
        poll = self.config.poll_interval_seconds
        in_flight = threading.BoundedSemaphore(parallelism)

        def on_done(future: Future[None]) -> None:
            in_flight.release()
            error = future.exception()
            if error is not None:
                log.error("Batch failed in flight %s: %s", transformer.plan.name, error)
                failure.record(error)

        try:
            with ThreadPoolExecutor(
                max_workers=parallelism, thread_name_prefix="flightdeck-batch"
            ) as pool:
                while not failure.is_set:
                    if not in_flight.acquire(timeout=poll):
                        continue
                    item = self._take(batches, failure)
                    if item is None or isinstance(item, _EndOfStream):
                        in_flight.release()
                        return
                    future = pool.submit(self._integrate_batch, transformer, item, counters)
                    future.add_done_callback(on_done)
        except Exception as exc:
            log.exception("Consumer for flight %s stopped", transformer.plan.name)
            failure.record(exc)

    def _take(
        self, batches: queue.Queue[_QueueItem], failure: _FailureSignal
    ) -> _QueueItem | None:
        while not failure.is_set:
            try:
                return batches.get(timeout=self.config.poll_interval_seconds)
            except queue.Empty:
                continue
        return None

    def _integrate_batch(
        self,
        transformer: FlightTransformer,
        batch: Sequence[Row],
        counters: IntegrationCounters,
    ) -> None:
        addressed = transformer.transform(batch)
        keys = addressed.entity_keys()
        entity_key_ids = self.identity_resolver.resolve(keys) if keys else {}
        unresolved = keys.difference(entity_key_ids)
        if unresolved:
            raise PipelineError(f"Identity resolution returned no id for {len(unresolved)} keys")

        for destination in addressed.destinations():
            writer = self.destinations.get(destination)
            if writer is None:
                log.warning(
                    "No writer configured for destination %s in flight %s; skipping",
                    destination,
                    transformer.plan.name,
                )
                continue
            entities = addressed.entities.get(destination)
            if entities:
                written = writer.integrate_entities(entities, entity_key_ids, self.update_types)
                counters.add_entities(destination, written)
            associations = addressed.associations.get(destination)
            if associations:
                written = writer.integrate_associations(
                    associations, entity_key_ids, self.update_types
                )
                counters.add_associations(destination, written)

        if addressed.skipped_associations:
            log.info(
                "Skipped %s associations in a batch of %s rows for flight %s",
                addressed.skipped_associations,
                len(batch),
                transformer.plan.name,
            )
        log.info("Current progress for flight %s: %s", transformer.plan.name, counters.describe())
