"""Streaming SQL row source."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from flightdeck.adapters.rate_limit import build_row_limiter
from flightdeck.config.errors import InvalidConnectionPropertiesError
from flightdeck.config.pipeline import DEFAULT_FETCH_SIZE

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from sqlalchemy.engine import Engine

    from flightdeck.domain.mapping.conditions import Row

log = getLogger(__name__)

READ_LOG_INTERVAL = 100_000


class SqlAlchemyRowSource:
    """Rows of one query, streamed with a server-side cursor in ``fetch_size`` chunks.

    A source can be iterated once. When ``dispose_engine`` is set the engine is
    disposed after the last row, which is how sources built from connection
    properties release their pool.
    """

    def __init__(
        self,
        engine: Engine,
        query: str,
        *,
        fetch_size: int = DEFAULT_FETCH_SIZE,
        rate_limit: float | None = None,
        dispose_engine: bool = False,
    ) -> None:
        self.engine = engine
        self.query = query
        self.fetch_size = fetch_size
        self.rate_limit = rate_limit
        self.dispose_engine = dispose_engine
        self._consumed = False

    def close(self) -> None:
        """Release the engine of a source that was never iterated to the end."""
        self._consumed = True
        if self.dispose_engine:
            self.engine.dispose()

    def __iter__(self) -> Iterator[Row]:
        if self._consumed:
            raise RuntimeError(f"Row source for query {self.query!r} was already consumed")
        self._consumed = True
        return self._stream()

    def _stream(self) -> Iterator[Row]:
        limiter = build_row_limiter("sql-source", self.rate_limit)
        started = time.perf_counter()
        count = 0
        try:
            with self.engine.connect() as conn:
                result = conn.execution_options(
                    stream_results=True, yield_per=self.fetch_size
                ).execute(text(self.query))
                for row in result.mappings():
                    if limiter is not None:
                        limiter.acquire()
                    count += 1
                    yield dict(row)
                    if count % READ_LOG_INTERVAL == 0:
                        log.info("%s rows have been read for the query %s", count, self.query)
        finally:
            if self.dispose_engine:
                self.engine.dispose()
        log.info(
            "Read %s rows in %.0f ms for the query %s",
            count,
            (time.perf_counter() - started) * 1000,
            self.query,
        )


def open_row_source(
    connection: Mapping[str, str],
    query: str,
    *,
    fetch_size: int = DEFAULT_FETCH_SIZE,
    rate_limit: float | None = None,
) -> SqlAlchemyRowSource:
    """Build a row source from a flight's connection properties.

    ``url`` is required and may be any SQLAlchemy URL; ``username`` and
    ``password``, when present, override the credentials embedded in it.
    """
    raw_url = connection.get("url")
    if not raw_url:
        raise InvalidConnectionPropertiesError("Connection properties require a 'url'")
    try:
        url = make_url(raw_url)
    except ArgumentError as exc:
        raise InvalidConnectionPropertiesError(f"Invalid connection url: {exc}") from exc
    if connection.get("username"):
        url = url.set(username=connection["username"])
    if connection.get("password"):
        url = url.set(password=connection["password"])
    engine = create_engine(url, pool_pre_ping=True)
    return SqlAlchemyRowSource(
        engine, query, fetch_size=fetch_size, rate_limit=rate_limit, dispose_engine=True
    )
