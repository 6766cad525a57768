from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from app.core.errors import InternalError
from app.services.filter_values import coerce_filter_value

_MEMBERSHIP_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True)
class Condition:
    """Lookup condition on one of an entity's declared ``Field`` members.

    A collection value matches with ``IN``; anything else with ``=``.
    """

    field: enum.Enum
    value: Any

    @property
    def is_membership(self) -> bool:
        return isinstance(self.value, _MEMBERSHIP_TYPES)


def column_for(model, field: enum.Enum):
    if not isinstance(field, model.Field):
        raise InternalError(detail=f"{field!r} is not a {model.__name__} field")
    return model.__table__.c[model.COLUMNS[field]]


def condition_clause(model, condition: Condition):
    column = column_for(model, condition.field)
    if condition.is_membership:
        return column.in_([coerce_filter_value(column, v) for v in condition.value])
    return column == coerce_filter_value(column, condition.value)


def has_condition_on(conditions, field: enum.Enum) -> bool:
    return any(c.field is field and c.value is not None for c in conditions)
