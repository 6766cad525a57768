from __future__ import annotations

import operator
from datetime import datetime, timedelta
from typing import Callable, List, Mapping, Sequence

from sqlalchemy import String, asc, cast, desc, or_
from sqlalchemy.orm import Query

from app.core.errors import InvalidRequestError
from app.db.conditions import Condition, condition_clause
from app.schemas.query import FilterExpr, OrderExpr
from app.services.filter_values import coerce_filter_value, column_python_type, is_collection_column, is_date_only_literal

_COMPARATORS: Mapping[str, Callable] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "gt": operator.gt,
    "lte": operator.le,
    "gte": operator.ge,
}


def build_condition(column, op: str, value):
    """Build the predicate for ``column <op> value`` with ``value`` bound as a parameter."""
    if op == "like":
        target = column if isinstance(column.type, String) else cast(column, String)
        return target.like(f"%{value}%")
    if is_collection_column(column):
        # list columns only match on their text form
        raise InvalidRequestError(f"unsupported filter operator for field {column.key}: {op}", field=column.key)
    compare = _COMPARATORS.get(op)
    if compare is None:
        raise InvalidRequestError(f"unsupported filter operator: {op}", field="filter")
    coerced = coerce_filter_value(column, value)
    if column_python_type(column) is datetime and op in {"eq", "ne"} and is_date_only_literal(value):
        day_expr = (column >= coerced) & (column < coerced + timedelta(days=1))
        return day_expr if op == "eq" else ~day_expr
    return compare(column, coerced)


def group_filters_by_join(filters: Sequence[FilterExpr]) -> List[List[FilterExpr]]:
    """OR extends the current group, AND starts a new one."""
    groups: List[List[FilterExpr]] = []
    for f in filters:
        if groups and f.join == "OR":
            groups[-1].append(f)
        else:
            groups.append([f])
    return groups


def resolve_column(model, field: str, column_names: Mapping[str, str] | None = None, kind: str = "filter"):
    name = (column_names or {}).get(field.lower(), field)
    try:
        return model.__table__.c[name]
    except KeyError:
        raise InvalidRequestError(f"invalid {kind} field: {field}", field=field)


class Specification:
    def apply(self, query: Query) -> Query:
        raise NotImplementedError


class ConditionSpecification(Specification):
    def __init__(self, model, conditions: Sequence[Condition]):
        self.model = model
        self.conditions = [c for c in conditions if c.value is not None]

    def apply(self, query: Query) -> Query:
        for condition in self.conditions:
            query = query.filter(condition_clause(self.model, condition))
        return query


class FilterSpecification(Specification):
    def __init__(self, model, filters: Sequence[FilterExpr], column_names: Mapping[str, str] | None = None):
        self.model = model
        self.filters = list(filters)
        self.column_names = column_names

    def apply(self, query: Query) -> Query:
        for group in group_filters_by_join(self.filters):
            predicates = [
                build_condition(resolve_column(self.model, f.field, self.column_names), f.operator, f.value)
                for f in group
            ]
            query = query.filter(or_(*predicates))
        return query


class OrderSpecification(Specification):
    def __init__(self, model, orders: Sequence[OrderExpr], column_names: Mapping[str, str] | None = None):
        self.model = model
        self.orders = list(orders)
        self.column_names = column_names

    def apply(self, query: Query) -> Query:
        for o in self.orders:
            col = resolve_column(self.model, o.field, self.column_names, kind="order")
            query = query.order_by(desc(col) if o.direction.upper() == "DESC" else asc(col))
        return query


class PaginationSpecification(Specification):
    def __init__(self, limit: int, offset: int):
        self.limit = limit
        self.offset = offset

    def apply(self, query: Query) -> Query:
        if self.limit > 0:
            query = query.limit(self.limit).offset(self.offset)
        return query


class CompositeSpecification(Specification):
    def __init__(self, *specs: Specification):
        self.specs = [s for s in specs if s is not None]

    def apply(self, query: Query) -> Query:
        for spec in self.specs:
            query = spec.apply(query)
        return query
