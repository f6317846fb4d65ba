"""Flat-file row source."""

from __future__ import annotations

import csv
from logging import getLogger
from typing import TYPE_CHECKING

from flightdeck.adapters.rate_limit import build_row_limiter

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from flightdeck.domain.mapping.conditions import Row

log = getLogger(__name__)

READ_LOG_INTERVAL = 100_000


class CsvRowSource:
    """Rows of a delimited file with a header line; empty cells read as ``None``."""

    def __init__(
        self,
        path: Path,
        *,
        delimiter: str = ",",
        encoding: str = "utf-8",
        rate_limit: float | None = None,
    ) -> None:
        self.path = path
        self.delimiter = delimiter
        self.encoding = encoding
        self.rate_limit = rate_limit

    def __iter__(self) -> Iterator[Row]:
        limiter = build_row_limiter("csv-source", self.rate_limit)
        count = 0
        with self.path.open(newline="", encoding=self.encoding) as handle:
            for record in csv.DictReader(handle, delimiter=self.delimiter):
                if limiter is not None:
                    limiter.acquire()
                count += 1
                yield {column: value if value != "" else None for column, value in record.items()}
                if count % READ_LOG_INTERVAL == 0:
                    log.info("%s rows have been read from %s", count, self.path)
        log.info("Read %s rows from %s", count, self.path)
