"""Row source port."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from flightdeck.domain.mapping.conditions import Row


@runtime_checkable
class RowSource(Protocol):
    """Lazy, single-pass sequence of rows. Plain lists of dicts satisfy it too."""

    def __iter__(self) -> Iterator[Row]: ...
