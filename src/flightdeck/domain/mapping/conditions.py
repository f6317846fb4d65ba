"""Row predicates used to gate flights, entities and associations."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

type Row = Mapping[str, object]


def column_text(row: Row, column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class ConditionModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def evaluate(self, row: Row) -> bool:
        raise NotImplementedError


class ColumnEquals(ConditionModel):
    kind: Literal["column_equals"] = "column_equals"
    column: str
    value: str
    ignore_case: bool = False

    def evaluate(self, row: Row) -> bool:
        text = column_text(row, self.column)
        if text is None:
            return False
        if self.ignore_case:
            return text.casefold() == self.value.casefold()
        return text == self.value


class IsNull(ConditionModel):
    """True when the column is missing, null or whitespace; ``reverse`` flips it."""

    kind: Literal["is_null"] = "is_null"
    column: str
    reverse: bool = False

    def evaluate(self, row: Row) -> bool:
        return is_blank(row.get(self.column)) != self.reverse


class Contains(ConditionModel):
    kind: Literal["contains"] = "contains"
    column: str
    substring: str
    ignore_case: bool = False

    def evaluate(self, row: Row) -> bool:
        text = column_text(row, self.column)
        if text is None:
            return False
        if self.ignore_case:
            return self.substring.casefold() in text.casefold()
        return self.substring in text


class RegexMatch(ConditionModel):
    kind: Literal["regex"] = "regex"
    column: str
    pattern: str
    _compiled: re.Pattern[str] = PrivateAttr()

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, pattern: str) -> str:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc
        return pattern

    def model_post_init(self, _context: object, /) -> None:
        self._compiled = re.compile(self.pattern)

    def evaluate(self, row: Row) -> bool:
        text = column_text(row, self.column)
        return text is not None and self._compiled.search(text) is not None


class AllOf(ConditionModel):
    kind: Literal["all"] = "all"
    conditions: tuple[Condition, ...]

    def evaluate(self, row: Row) -> bool:
        return all(condition.evaluate(row) for condition in self.conditions)


class AnyOf(ConditionModel):
    kind: Literal["any"] = "any"
    conditions: tuple[Condition, ...]

    def evaluate(self, row: Row) -> bool:
        return any(condition.evaluate(row) for condition in self.conditions)


class Not(ConditionModel):
    kind: Literal["not"] = "not"
    condition: Condition

    def evaluate(self, row: Row) -> bool:
        return not self.condition.evaluate(row)


Condition = Annotated[
    ColumnEquals | IsNull | Contains | RegexMatch | AllOf | AnyOf | Not,
    Field(discriminator="kind"),
]

for _model in (AllOf, AnyOf, Not):
    _model.model_rebuild()


def passes(condition: ConditionModel | None, row: Row) -> bool:
    """Absent conditions accept every row."""
    return condition is None or condition.evaluate(row)
