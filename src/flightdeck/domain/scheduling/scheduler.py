"""Durable job scheduling for stored integrations."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING
from urllib.parse import urlsplit
from uuid import UUID, uuid4

from flightdeck.config.pipeline import SchedulerConfig
from flightdeck.domain.errors import (
    IntegrationExistsError,
    IntegrationKeyMismatchError,
    IntegrationNotFoundError,
    InvalidIntegrationError,
    JobNotFoundError,
)
from flightdeck.domain.integrations import IntegrationJob
from flightdeck.domain.model import JobStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from flightdeck.domain.integrations import FlightPlanParameters, Integration, IntegrationUpdate
    from flightdeck.domain.ports import (
        CallbackNotifier,
        DurableMap,
        JobLauncher,
        JobQueue,
        LogSetRegistry,
    )

log = logging.getLogger(__name__)

LOG_SET_NAME_TEMPLATE = "Integration logs for {name}"
_ACTIVE_STATUSES = frozenset({JobStatus.QUEUED, JobStatus.IN_PROGRESS})


def validate_callback_urls(urls: Iterable[str] | None) -> None:
    for url in urls or ():
        parts = urlsplit(url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise InvalidIntegrationError(f"Callback URL {url!r} was not properly formatted")


def describe_flights(flight_plan_parameters: Mapping[str, FlightPlanParameters]) -> str:
    clauses = []
    for parameters in flight_plan_parameters.values():
        flight = parameters.flight
        tags = f" with tags [{', '.join(flight.tags)}]" if flight.tags else ""
        clauses.append(f"{flight.name}{tags}")
    return (
        "Auto-generated entity set containing logs of the following flights: "
        + ", ".join(clauses)
    )


def completion_message(job_id: UUID, status: JobStatus) -> str:
    if status is JobStatus.SUCCEEDED:
        return f"Integration job with id {job_id} succeeded! :D"
    return f"Integration job with id {job_id} failed."


class IntegrationScheduler:
    """Stores integrations, queues their jobs and runs them on a bounded worker pool.

    Dispatch happens on one coordinator thread: it acquires a permit before taking
    a job id from the durable queue, so no more than ``max_concurrent_jobs`` jobs
    ever run at once and queued ids stay in the durable queue until a worker is
    free. On :meth:`start`, jobs left ``QUEUED`` or ``IN_PROGRESS`` by a previous
    process are queued again.
    """

    def __init__(
        self,
        *,
        integrations: DurableMap[str, Integration],
        jobs: DurableMap[UUID, IntegrationJob],
        queue: JobQueue,
        launcher: JobLauncher,
        log_sets: LogSetRegistry,
        notifier: CallbackNotifier | None = None,
        config: SchedulerConfig | None = None,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self.integrations = integrations
        self.jobs = jobs
        self.queue = queue
        self.launcher = launcher
        self.log_sets = log_sets
        self.notifier = notifier
        self.config = config or SchedulerConfig()
        self._id_factory = id_factory
        self._permits = threading.BoundedSemaphore(self.config.max_concurrent_jobs)
        self._stopping = threading.Event()
        self._dispatcher: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None

    # lifecycle -------------------------------------------------------------

    def start(self) -> None:
        if self._dispatcher is not None:
            log.warning("Integration scheduler already running")
            return
        log.info(
            "Starting integration scheduler with %s concurrent jobs",
            self.config.max_concurrent_jobs,
        )
        self._stopping.clear()
        self.recover()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_concurrent_jobs, thread_name_prefix="flightdeck-job"
        )
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop, name="flightdeck-dispatch", daemon=True
        )
        self._dispatcher.start()

    def stop(self, *, wait: bool = True) -> None:
        if self._dispatcher is None:
            return
        log.info("Stopping integration scheduler")
        self._stopping.set()
        self._dispatcher.join()
        self._dispatcher = None
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
        log.info("Integration scheduler stopped")

    def __enter__(self) -> IntegrationScheduler:
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop()

    def recover(self) -> list[UUID]:
        """Queue every job a previous process left unfinished; return the ids queued."""
        recovered = []
        for job_id in self.jobs.keys_where(lambda job: job.status in _ACTIVE_STATUSES):
            if job_id in self.queue:
                continue
            self.queue.put(job_id)
            recovered.append(job_id)
        if recovered:
            log.info("Recovered %s unfinished integration jobs", len(recovered))
        return recovered

    # jobs ------------------------------------------------------------------

    def enqueue(self, integration_name: str, integration_key: UUID | None = None) -> UUID:
        integration = self.integrations.get(integration_name)
        if integration is None:
            raise IntegrationNotFoundError(integration_name)
        if integration_key is not None and integration_key != integration.key:
            raise IntegrationKeyMismatchError(f"Integration key {integration_key} is incorrect")
        job = IntegrationJob(integration_name=integration_name, status=JobStatus.QUEUED)
        job_id = self._id_factory()
        while not self.jobs.put_if_absent(job_id, job):
            job_id = self._id_factory()
        self.queue.put(job_id)
        log.info("Queued integration job %s for %s", job_id, integration_name)
        return job_id

    def poll_status(self, job_id: UUID) -> JobStatus:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if self.config.delete_terminal_on_poll and job.status.is_terminal:
            self.jobs.remove(job_id)
        return job.status

    def poll_job(self, job_id: UUID) -> IntegrationJob:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def poll_all(self) -> dict[UUID, IntegrationJob]:
        return self.jobs.items()

    def delete_job_status(self, job_id: UUID) -> None:
        if self.jobs.remove(job_id) is None:
            raise JobNotFoundError(job_id)

    # integrations ----------------------------------------------------------

    def create_integration(self, name: str, integration: Integration) -> UUID:
        validate_callback_urls(integration.callback_urls)
        if name in self.integrations:
            raise IntegrationExistsError(name)
        log_set_id = self.log_sets.create(
            self._log_set_name(name),
            describe_flights(integration.flight_plan_parameters),
            integration.contacts,
        )
        stored = integration.model_copy(update={"log_entity_set_id": log_set_id})
        if not self.integrations.put_if_absent(name, stored):
            self.log_sets.delete(log_set_id)
            raise IntegrationExistsError(name)
        log.info("Created integration %s", name)
        return stored.key

    def read_integration(self, name: str) -> Integration:
        integration = self.integrations.get(name)
        if integration is None:
            raise IntegrationNotFoundError(name)
        return integration

    def update_integration(self, name: str, update: IntegrationUpdate) -> Integration:
        if "callback_urls" in update.model_fields_set:
            validate_callback_urls(update.callback_urls)
        updated = self.integrations.update(name, update.apply)
        if updated is None:
            raise IntegrationNotFoundError(name)
        log.info("Updated integration %s (%s)", name, ", ".join(sorted(update.model_fields_set)))
        return updated

    def delete_integration(self, name: str) -> None:
        integration = self.integrations.remove(name)
        if integration is None:
            raise IntegrationNotFoundError(name)
        if integration.log_entity_set_id is not None:
            self.log_sets.delete(integration.log_entity_set_id)
        log.info("Deleted integration %s", name)

    def _log_set_name(self, integration_name: str) -> str:
        base = LOG_SET_NAME_TEMPLATE.format(name=integration_name)
        candidate = base
        count = 1
        while self.log_sets.is_reserved(candidate):
            candidate = f"{base}_{count}"
            count += 1
        return candidate

    # dispatch --------------------------------------------------------------

    def _dispatch_loop(self) -> None:
        poll = self.config.poll_interval_seconds
        while not self._stopping.is_set():
            if not self._permits.acquire(timeout=poll):
                continue
            try:
                job_id = self.queue.take(timeout=poll)
            except Exception:
                self._permits.release()
                log.exception("Failed to take the next integration job")
                self._stopping.wait(poll)
                continue
            if job_id is None:
                self._permits.release()
                continue
            executor = self._executor
            if executor is None:
                self._permits.release()
                self.queue.put(job_id)
                return
            future = executor.submit(self._run_job, job_id)
            future.add_done_callback(lambda _future: self._permits.release())

    def run_job(self, job_id: UUID) -> JobStatus | None:
        """Execute one job synchronously; the dispatch loop calls this on a worker."""
        return self._run_job(job_id)

    def _run_job(self, job_id: UUID) -> JobStatus | None:
        job = self.jobs.get(job_id)
        if job is None:
            log.warning("Skipping integration job %s: no status record", job_id)
            return None
        if job.status.is_terminal:
            log.info("Skipping integration job %s: already %s", job_id, job.status)
            return job.status
        integration = self.integrations.get(job.integration_name)
        if integration is None:
            message = f"Integration {job.integration_name} no longer exists"
            log.error("Integration job %s failed: %s", job_id, message)
            self._set_status(job_id, JobStatus.FAILED, error=message)
            return JobStatus.FAILED

        running = self._set_status(job_id, JobStatus.IN_PROGRESS)
        attempts = running.attempts if running is not None else 1
        try:
            written = self.launcher(job_id, integration)
        except Exception as exc:
            log.exception("Integration job %s for %s failed", job_id, job.integration_name)
            if attempts < self.config.max_job_attempts:
                self._set_status(job_id, JobStatus.QUEUED, error=str(exc))
                self.queue.put(job_id)
                log.info(
                    "Retrying integration job %s (attempt %s of %s)",
                    job_id,
                    attempts + 1,
                    self.config.max_job_attempts,
                )
                return JobStatus.QUEUED
            status = JobStatus.FAILED
            self._set_status(job_id, status, error=str(exc) or type(exc).__name__)
        else:
            status = JobStatus.SUCCEEDED
            self._set_status(job_id, status)
            log.info(
                "Integration job %s for %s wrote %s elements", job_id, job.integration_name, written
            )
        self._notify(job_id, integration, status)
        return status

    def _set_status(
        self, job_id: UUID, status: JobStatus, *, error: str | None = None
    ) -> IntegrationJob | None:
        return self.jobs.update(job_id, lambda job: job.with_status(status, error=error))

    def _notify(self, job_id: UUID, integration: Integration, status: JobStatus) -> None:
        if self.notifier is None or not integration.callback_urls:
            return
        try:
            self.notifier.notify(
                job_id, integration.callback_urls, completion_message(job_id, status)
            )
        except Exception:
            log.exception("Callback notification for integration job %s failed", job_id)
