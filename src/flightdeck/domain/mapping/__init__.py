"""Mapping plans: conditions, transforms and value expressions."""

from __future__ import annotations

from flightdeck.domain.mapping.conditions import (
    AllOf,
    AnyOf,
    ColumnEquals,
    Condition,
    Contains,
    IsNull,
    Not,
    RegexMatch,
    Row,
)
from flightdeck.domain.mapping.expressions import (
    CoalesceValue,
    ColumnValue,
    ConcatValue,
    ConditionalValue,
    ConstantValue,
    HashedValue,
    TransformedValue,
    ValueExpression,
    column,
    constant,
)
from flightdeck.domain.mapping.plan import (
    AssociationDefinition,
    EntityDefinition,
    MappingPlan,
    PropertyDefinition,
)
from flightdeck.domain.mapping.transforms import (
    Case,
    ConditionalPrefixSubstring,
    Hash,
    Padding,
    ParseBool,
    ParseDate,
    ParseDateTime,
    ParseInt,
    Prefix,
    Replace,
    Split,
    Suffix,
    Transform,
    Trim,
    ValueOrElse,
)

__all__ = [  # noqa: RUF022
    # conditions
    "AllOf",
    "AnyOf",
    "ColumnEquals",
    "Condition",
    "Contains",
    "IsNull",
    "Not",
    "RegexMatch",
    "Row",
    # expressions
    "CoalesceValue",
    "ColumnValue",
    "ConcatValue",
    "ConditionalValue",
    "ConstantValue",
    "HashedValue",
    "TransformedValue",
    "ValueExpression",
    "column",
    "constant",
    # plans
    "AssociationDefinition",
    "EntityDefinition",
    "MappingPlan",
    "PropertyDefinition",
    # transforms
    "Case",
    "ConditionalPrefixSubstring",
    "Hash",
    "Padding",
    "ParseBool",
    "ParseDate",
    "ParseDateTime",
    "ParseInt",
    "Prefix",
    "Replace",
    "Split",
    "Suffix",
    "Transform",
    "Trim",
    "ValueOrElse",
]
