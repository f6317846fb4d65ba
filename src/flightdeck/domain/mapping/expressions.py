"""Value expressions: how a property value or an entity id is computed from a row."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from flightdeck.domain.mapping.conditions import Condition, is_blank
from flightdeck.domain.mapping.transforms import Transform, apply_transforms

if TYPE_CHECKING:
    from flightdeck.domain.mapping.conditions import Row


class ExpressionModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def evaluate(self, row: Row) -> object:
        raise NotImplementedError


class ColumnValue(ExpressionModel):
    kind: Literal["column"] = "column"
    column: str

    def evaluate(self, row: Row) -> object:
        return row.get(self.column)


class ConstantValue(ExpressionModel):
    kind: Literal["constant"] = "constant"
    value: str | int | float | bool

    def evaluate(self, row: Row) -> object:
        return self.value


class TransformedValue(ExpressionModel):
    kind: Literal["transformed"] = "transformed"
    source: ValueExpression
    transforms: tuple[Transform, ...] = ()

    def evaluate(self, row: Row) -> object:
        return apply_transforms(self.transforms, self.source.evaluate(row))


class ConditionalValue(ExpressionModel):
    kind: Literal["conditional"] = "conditional"
    condition: Condition
    if_true: ValueExpression | None = None
    if_false: ValueExpression | None = None

    def evaluate(self, row: Row) -> object:
        branch = self.if_true if self.condition.evaluate(row) else self.if_false
        return None if branch is None else branch.evaluate(row)


class CoalesceValue(ExpressionModel):
    """First non-blank value among the candidates."""

    kind: Literal["coalesce"] = "coalesce"
    candidates: tuple[ValueExpression, ...] = Field(min_length=1)

    def evaluate(self, row: Row) -> object:
        for candidate in self.candidates:
            value = candidate.evaluate(row)
            if not is_blank(value):
                return value
        return None


class ConcatValue(ExpressionModel):
    """Join the non-blank parts with ``separator``; null when every part is blank."""

    kind: Literal["concat"] = "concat"
    parts: tuple[ValueExpression, ...] = Field(min_length=1)
    separator: str = " "

    def evaluate(self, row: Row) -> object:
        values = (part.evaluate(row) for part in self.parts)
        pieces = [str(value) for value in values if not is_blank(value)]
        return self.separator.join(pieces) if pieces else None


class HashedValue(ExpressionModel):
    """Digest of the concatenated parts; blank parts contribute an empty string."""

    kind: Literal["hash"] = "hash"
    parts: tuple[ValueExpression, ...] = Field(min_length=1)
    algorithm: Literal["sha256", "sha1", "md5"] = "sha256"

    def evaluate(self, row: Row) -> object:
        digest = hashlib.new(self.algorithm)
        for part in self.parts:
            value = part.evaluate(row)
            digest.update(b"" if value is None else str(value).encode("utf-8"))
            digest.update(b"\x1f")
        return digest.hexdigest()


ValueExpression = Annotated[
    ColumnValue
    | ConstantValue
    | TransformedValue
    | ConditionalValue
    | CoalesceValue
    | ConcatValue
    | HashedValue,
    Field(discriminator="kind"),
]

for _model in (TransformedValue, ConditionalValue, CoalesceValue, ConcatValue, HashedValue):
    _model.model_rebuild()


def column(name: str, *transforms: BaseModel) -> ColumnValue | TransformedValue:
    """Shorthand for building expressions in code: a column, optionally transformed."""
    source = ColumnValue(column=name)
    if not transforms:
        return source
    return TransformedValue(source=source, transforms=transforms)


def constant(value: str | int | float | bool) -> ConstantValue:
    return ConstantValue(value=value)
