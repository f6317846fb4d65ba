"""Value transforms applied to column values before they become property values.

Every transform is a small frozen pydantic model with a ``kind`` discriminator so
that flight definitions round-trip through JSON. String transforms treat null or
blank input as "no value" and return ``None``.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date, datetime
from typing import Annotated, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flightdeck.domain.mapping.conditions import is_blank

_TRUTHY = frozenset({"1", "yes", "true", "on", "y", "t"})


class TransformModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def apply(self, value: object) -> object:
        if is_blank(value):
            return None
        return self.apply_text(value if isinstance(value, str) else str(value))

    def apply_text(self, text: str) -> object:
        raise NotImplementedError


class Prefix(TransformModel):
    kind: Literal["prefix"] = "prefix"
    prefix: str

    def apply_text(self, text: str) -> object:
        return self.prefix + text


class Suffix(TransformModel):
    kind: Literal["suffix"] = "suffix"
    suffix: str

    def apply_text(self, text: str) -> object:
        return text + self.suffix


class Trim(TransformModel):
    kind: Literal["trim"] = "trim"

    def apply_text(self, text: str) -> object:
        return text.strip()


class Replace(TransformModel):
    kind: Literal["replace"] = "replace"
    target: str
    goal: str
    ignore_case: bool = False

    def apply_text(self, text: str) -> object:
        if not self.ignore_case:
            return text.replace(self.target, self.goal)
        return re.sub(re.escape(self.target), lambda _match: self.goal, text, flags=re.IGNORECASE)


class Case(TransformModel):
    kind: Literal["case"] = "case"
    style: Literal["lower", "upper", "sentence", "title"] = "sentence"

    def apply_text(self, text: str) -> object:
        match self.style:
            case "lower":
                return text.lower()
            case "upper":
                return text.upper()
            case "title":
                return text.title()
            case _:
                return text.capitalize()


class Split(TransformModel):
    """Pick one piece of a value split on a regular-expression separator.

    ``if_more_than`` requires strictly more pieces than given, otherwise the result
    is null. ``value_else`` is returned when the index is out of range.
    """

    kind: Literal["split"] = "split"
    separator: str
    index: int | Literal["last"] = 0
    value_else: str | None = None
    if_more_than: int | None = None

    def apply_text(self, text: str) -> object:
        pieces = re.split(self.separator, text.strip())
        if self.if_more_than is not None and not self.if_more_than < len(pieces):
            return None
        index = len(pieces) - 1 if self.index == "last" else self.index
        if 0 <= index < len(pieces):
            return pieces[index].strip()
        if not is_blank(self.value_else):
            return self.value_else
        return None


class Padding(TransformModel):
    """Pad a value with a repeated pattern up to ``length``, optionally cutting longer values."""

    kind: Literal["padding"] = "padding"
    pattern: str = Field(min_length=1)
    length: int = Field(ge=0)
    prepend: bool = False
    cutoff: bool = False

    def apply_text(self, text: str) -> object:
        if len(text) > self.length:
            if not self.cutoff:
                return text
            return text[len(text) - self.length :] if self.prepend else text[: self.length]
        missing = self.length - len(text)
        repeats = -(-missing // len(self.pattern))
        filler = self.pattern * repeats
        if self.prepend:
            return (filler + text)[-self.length :] if self.length else ""
        return (text + filler)[: self.length]


class ParseBool(TransformModel):
    kind: Literal["parse_bool"] = "parse_bool"

    def apply_text(self, text: str) -> object:
        return text.strip().lower() in _TRUTHY


class ParseInt(TransformModel):
    kind: Literal["parse_int"] = "parse_int"

    def apply_text(self, text: str) -> object:
        cleaned = text.strip().replace(",", "")
        try:
            return int(cleaned)
        except ValueError:
            return int(float(cleaned))


class ConditionalPrefixSubstring(TransformModel):
    """Drop everything before ``location`` when the value starts with ``prefix``."""

    kind: Literal["conditional_prefix_substring"] = "conditional_prefix_substring"
    prefix: str
    location: int = Field(ge=0)

    def apply_text(self, text: str) -> object:
        if text.startswith(self.prefix):
            return text[self.location :]
        return text


class _PatternParse(TransformModel):
    patterns: tuple[str, ...] = Field(min_length=1)

    def _parse(self, text: str) -> datetime:
        stripped = text.strip()
        for pattern in self.patterns:
            try:
                return datetime.strptime(stripped, pattern)
            except ValueError:
                continue
        raise ValueError(f"Unable to parse {stripped!r} with any of the patterns {self.patterns}")


class ParseDate(_PatternParse):
    kind: Literal["date"] = "date"

    def apply_text(self, text: str) -> date:
        return self._parse(text).date()


class ParseDateTime(_PatternParse):
    """Parse a timestamp; naive results are placed in ``timezone`` when one is given."""

    kind: Literal["datetime"] = "datetime"
    timezone: str | None = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, timezone: str | None) -> str | None:
        if timezone is None:
            return None
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone id {timezone}") from exc
        return timezone

    def apply_text(self, text: str) -> datetime:
        parsed = self._parse(text)
        if parsed.tzinfo is None and self.timezone is not None:
            return parsed.replace(tzinfo=ZoneInfo(self.timezone))
        return parsed


class Hash(TransformModel):
    kind: Literal["hash"] = "hash"
    algorithm: Literal["sha256", "sha1", "md5"] = "sha256"

    def apply_text(self, text: str) -> object:
        return hashlib.new(self.algorithm, text.encode("utf-8")).hexdigest()


class ValueOrElse(TransformModel):
    """Substitute a constant for null or blank values; other values pass through."""

    kind: Literal["value_or_else"] = "value_or_else"
    value_else: str

    @model_validator(mode="after")
    def _not_blank(self) -> ValueOrElse:
        if is_blank(self.value_else):
            raise ValueError("value_else must not be blank")
        return self

    def apply(self, value: object) -> object:
        return self.value_else if is_blank(value) else value


Transform = Annotated[
    Prefix
    | Suffix
    | Trim
    | Replace
    | Case
    | Split
    | Padding
    | ParseBool
    | ParseInt
    | ConditionalPrefixSubstring
    | ParseDate
    | ParseDateTime
    | Hash
    | ValueOrElse,
    Field(discriminator="kind"),
]


def apply_transforms(transforms: tuple[TransformModel, ...], value: object) -> object:
    for transform in transforms:
        value = transform.apply(value)
    return value
