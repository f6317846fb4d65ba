from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

import pytest

from flightdeck.adapters.memory import entity_key_id
from flightdeck.config.pipeline import PipelineConfig
from flightdeck.domain.errors import PipelineError, UnknownEntitySetError
from flightdeck.domain.mapping import MappingPlan, PropertyDefinition, column
from flightdeck.domain.model import EntityKey, StorageDestination, generate_default_entity_id
from flightdeck.domain.pipeline import PipelineOrchestrator
from tests.helpers.graph import (
    NAME,
    PEOPLE,
    PHOTO,
    SSN,
    BlockingDestination,
    CountingSource,
    ExplodingDestination,
    FailingSource,
    people_rows,
    person_definition,
    person_plan,
    residence_plan,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from flightdeck.adapters.memory import InMemoryGraphDestination, InMemoryIdentityResolver
    from flightdeck.domain.mapping import Row
    from flightdeck.domain.model import Catalog
    from flightdeck.domain.ports import IntegrationDestination

FAST = PipelineConfig(upload_batch_size=2, poll_interval_seconds=0.05)


def _orchestrator(
    flights: Iterable[tuple[MappingPlan, Iterable[Row]]],
    catalog: Catalog,
    destination: IntegrationDestination,
    resolver: InMemoryIdentityResolver,
    config: PipelineConfig = FAST,
) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        list(flights),
        catalog=catalog,
        destinations={StorageDestination.PRIMARY: destination},
        identity_resolver=resolver,
        config=config,
    )


def test_end_to_end_single_person(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
) -> None:
    rows = [{"ssn": "123-45-6789", "full_name": "Ada Lovelace"}]
    orchestrator = _orchestrator(
        [(person_plan(), rows)], catalog, graph_destination, identity_resolver
    )

    written = orchestrator.launch()

    key = EntityKey(PEOPLE.id, generate_default_entity_id((SSN.id,), {SSN.id: {"123-45-6789"}}))
    assert written == 1
    assert graph_destination.entities == {
        (PEOPLE.id, entity_key_id(key)): {SSN.id: {"123-45-6789"}, NAME.id: {"Ada Lovelace"}}
    }


def test_rerunning_the_same_rows_does_not_duplicate_entities(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
) -> None:
    rows = people_rows(5)
    for _ in range(2):
        _orchestrator(
            [(person_plan(), rows + rows)], catalog, graph_destination, identity_resolver
        ).launch()

    assert len(graph_destination.entities) == 5
    assert identity_resolver.known_keys() == 5


def test_flights_run_in_order_and_sum_their_writes(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
) -> None:
    residence_rows = [{"ssn": "1", "full_name": "Ada", "city": "London", "since": "1835"}]
    orchestrator = _orchestrator(
        [(person_plan(), people_rows(3)), (residence_plan(), residence_rows)],
        catalog,
        graph_destination,
        identity_resolver,
    )

    written = orchestrator.launch()

    assert written == 3 + 2 + 1
    assert len(graph_destination.associations) == 1
    [edge] = graph_destination.edges.values()
    assert edge.src[0] == PEOPLE.id


@pytest.mark.parametrize("capacity", [1, 2, 100])
def test_producer_blocks_when_the_queue_is_full(
    catalog: Catalog, identity_resolver: InMemoryIdentityResolver, capacity: int
) -> None:
    total = capacity * 3 + 5
    source = CountingSource(people_rows(total))
    destination = BlockingDestination()
    config = PipelineConfig(
        upload_batch_size=1,
        queue_capacity=capacity,
        batch_parallelism=1,
        poll_interval_seconds=0.02,
    )
    orchestrator = _orchestrator(
        [(person_plan(), source)], catalog, destination, identity_resolver, config
    )
    result: list[int] = []
    runner = threading.Thread(target=lambda: result.append(orchestrator.launch()))

    runner.start()
    time.sleep(0.3)
    read_while_blocked = source.read
    destination.release.set()
    runner.join(timeout=30)

    # one batch in the worker, `capacity` queued, one waiting on the full queue
    assert read_while_blocked <= capacity + 2
    assert read_while_blocked < total
    assert destination.peak_active == 1
    assert result == [total]
    assert destination.written == total


def test_batches_run_in_parallel_up_to_the_configured_limit(
    catalog: Catalog, identity_resolver: InMemoryIdentityResolver
) -> None:
    destination = BlockingDestination()
    config = PipelineConfig(
        upload_batch_size=1, queue_capacity=4, batch_parallelism=3, poll_interval_seconds=0.02
    )
    orchestrator = _orchestrator(
        [(person_plan(), people_rows(12))], catalog, destination, identity_resolver, config
    )
    runner = threading.Thread(target=orchestrator.launch)

    runner.start()
    time.sleep(0.3)
    destination.release.set()
    runner.join(timeout=30)

    assert destination.peak_active == 3
    assert destination.written == 12


def test_write_failure_fails_the_flight(
    catalog: Catalog, identity_resolver: InMemoryIdentityResolver
) -> None:
    orchestrator = _orchestrator(
        [(person_plan(), people_rows(10))], catalog, ExplodingDestination(), identity_resolver
    )

    with pytest.raises(PipelineError, match="write rejected"):
        orchestrator.launch()


def test_source_failure_fails_the_flight(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
) -> None:
    source = FailingSource(people_rows(10), fail_after=5)
    orchestrator = _orchestrator(
        [(person_plan(), source)], catalog, graph_destination, identity_resolver
    )

    with pytest.raises(PipelineError, match="source connection reset"):
        orchestrator.launch()


def test_unresolved_keys_fail_the_flight(
    catalog: Catalog, graph_destination: InMemoryGraphDestination
) -> None:
    class ForgetfulResolver:
        def resolve(self, keys: object) -> dict[EntityKey, object]:
            return {}

    orchestrator = PipelineOrchestrator(
        [(person_plan(), people_rows(1))],
        catalog=catalog,
        destinations={StorageDestination.PRIMARY: graph_destination},
        identity_resolver=ForgetfulResolver(),  # type: ignore[arg-type]
        config=FAST,
    )

    with pytest.raises(PipelineError, match="no id"):
        orchestrator.launch()


def test_missing_writer_is_logged_and_skipped(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
    caplog: pytest.LogCaptureFixture,
) -> None:
    plan = MappingPlan(
        name="photos",
        entities=(
            person_definition(
                properties=(
                    PropertyDefinition(property_type=SSN.fqn, value=column("ssn")),
                    PropertyDefinition(property_type=PHOTO.fqn, value=column("photo")),
                )
            ),
        ),
    )
    caplog.set_level(logging.WARNING)
    orchestrator = _orchestrator(
        [(plan, [{"ssn": "1", "photo": b"raw"}])], catalog, graph_destination, identity_resolver
    )

    assert orchestrator.launch() == 1
    assert any("No writer configured" in record.getMessage() for record in caplog.records)


def test_unknown_entity_set_fails_before_reading(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
) -> None:
    source = CountingSource(people_rows(3))
    plan = person_plan(entity_set_name="martians")

    with pytest.raises(UnknownEntitySetError):
        _orchestrator([(plan, source)], catalog, graph_destination, identity_resolver)
    assert source.read == 0


def test_empty_source_writes_nothing(
    catalog: Catalog,
    graph_destination: InMemoryGraphDestination,
    identity_resolver: InMemoryIdentityResolver,
) -> None:
    orchestrator = _orchestrator(
        [(person_plan(), [])], catalog, graph_destination, identity_resolver
    )

    assert orchestrator.launch() == 0
    assert graph_destination.calls == 0
