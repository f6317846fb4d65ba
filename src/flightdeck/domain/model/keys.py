"""Entity keys and default identifier generation."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence
    from uuid import UUID


@dataclass(frozen=True, slots=True, order=True)
class EntityKey:
    """Natural identity of an element inside an entity set."""

    entity_set_id: UUID
    entity_id: str

    def __post_init__(self) -> None:
        if not self.entity_id or not self.entity_id.strip():
            raise ValueError("Entity keys require a non-blank entity id")


def canonical_value(value: object) -> str:
    """Render a property value the way identifier generation compares it."""
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def generate_default_entity_id(
    key: Sequence[UUID],
    properties: Mapping[UUID, Collection[object]],
) -> str:
    """Derive an entity id from the values of the entity type's key properties.

    Values of each key property are sorted so the result does not depend on set
    iteration order; the key properties themselves keep their declared order. The
    id is empty when none of the key properties carries a value, which callers
    treat as "no entity for this row".
    """
    components = [
        sorted(canonical_value(value) for value in properties.get(pid, ())) for pid in key
    ]
    if not any(components):
        return ""
    payload = json.dumps(components, ensure_ascii=False, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def decode_default_entity_id(entity_id: str) -> list[list[str]]:
    """Inverse of :func:`generate_default_entity_id`, for diagnostics."""
    return json.loads(base64.urlsafe_b64decode(entity_id.encode("ascii")).decode("utf-8"))
