"""Blocking records-per-second limiter for row sources."""

from __future__ import annotations

from pyrate_limiter import Duration, InMemoryBucket, Limiter, Rate


class RowRateLimiter:
    """Blocks the reading thread so that at most ``rows_per_second`` rows are yielded."""

    def __init__(self, name: str, rows_per_second: float) -> None:
        if rows_per_second < 1:
            raise ValueError("rows_per_second must be at least 1")
        self.name = name
        self.rows_per_second = rows_per_second
        bucket = InMemoryBucket(rates=[Rate(int(rows_per_second), Duration.SECOND)])
        self._limiter = Limiter(bucket, max_delay=Duration.MINUTE, raise_when_fail=True)

    def acquire(self, weight: int = 1) -> None:
        self._limiter.try_acquire(self.name, weight=weight)


def build_row_limiter(name: str, rows_per_second: float | None) -> RowRateLimiter | None:
    if not rows_per_second:
        return None
    return RowRateLimiter(name, rows_per_second)
