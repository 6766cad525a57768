"""Parsers for the ``filter`` and ``orderBy`` query strings.

Filter grammar, e.g. ``name eq 'foo' and (status eq ENABLE or status eq DISABLE)``:

* the whole string is an AND/OR sequence of groups;
* each group is an AND/OR sequence of ``<field> <operator> <value>`` leaves.

Only these two levels exist. A group nested inside a group is not a leaf and
fails to parse. Each leaf records the connector to the leaf before it; the
grouping step in ``app.services.specifications`` flattens that sequence into
OR-groups joined by AND, so ``a or (b and c)`` evaluates as ``(a or b) and c``.
Existing clients depend on this shape; keep it.
"""

from __future__ import annotations

import re
from typing import List, Tuple

from app.core.errors import InvalidRequestError
from app.schemas.query import FilterExpr, OrderExpr

_CONDITION_RE = re.compile(
    r"^\s*([a-zA-Z0-9_.]+)\s+(eq|ne|lt|gt|lte|gte|like)\s+(.+?)\s*$",
    re.IGNORECASE,
)
_KEYWORDS = ((" and ", "AND"), (" or ", "OR"))
_QUOTES = ("'", '"')


def _invalid_filter(fragment: str) -> InvalidRequestError:
    return InvalidRequestError("invalid filter expression", field="filter", detail=fragment)


def strip_outer_parens(text: str) -> str:
    s = text.strip()
    if len(s) < 2 or not (s.startswith("(") and s.endswith(")")):
        return s
    depth = 0
    quote = None
    for i, ch in enumerate(s):
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and i < len(s) - 1:
                # "(a) and (b)": the first paren closes early.
                return s
    return s[1:-1].strip()


def _keyword_at(lowered: str, index: int) -> Tuple[str, str] | None:
    for keyword, join in _KEYWORDS:
        if lowered.startswith(keyword, index):
            return keyword, join
    return None


def split_top_level(expr: str) -> Tuple[List[str], List[str]]:
    """Split on `` and `` / `` or `` outside parentheses and quotes.

    Returns the trimmed parts and the joins between them (``len(joins) == len(parts) - 1``).
    """
    lowered = expr.lower()
    parts: List[str] = []
    joins: List[str] = []
    depth = 0
    quote = None
    start = 0
    i = 0
    while i < len(expr):
        ch = expr[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth == 0:
            match = _keyword_at(lowered, i)
            if match is not None:
                keyword, join = match
                parts.append(expr[start:i].strip())
                joins.append(join)
                i += len(keyword)
                start = i
                continue
        i += 1
    parts.append(expr[start:].strip())
    return parts, joins


def _clean_value(raw: str) -> str:
    value = strip_outer_parens(raw.strip())
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        value = value[1:-1]
    return value.strip()


def parse_condition(token: str, join: str = "AND") -> FilterExpr:
    match = _CONDITION_RE.match(token)
    if not match:
        raise _invalid_filter(token)
    field, operator, raw_value = match.groups()
    return FilterExpr(field=field, operator=operator.lower(), value=_clean_value(raw_value), join=join)


def parse_filter_expr(raw: str | None) -> List[FilterExpr]:
    expr = (raw or "").strip()
    if not expr:
        return []

    groups, top_joins = split_top_level(strip_outer_parens(expr))
    filters: List[FilterExpr] = []
    for group_index, segment in enumerate(groups):
        if not segment:
            raise _invalid_filter(expr)
        leaves, inner_joins = split_top_level(strip_outer_parens(segment))
        for leaf_index, leaf in enumerate(leaves):
            if leaf_index > 0:
                join = inner_joins[leaf_index - 1]
            elif group_index > 0:
                join = top_joins[group_index - 1]
            else:
                join = "AND"
            filters.append(parse_condition(leaf, join))
    return filters


def parse_order_expr(raw: str | None) -> List[OrderExpr]:
    orders: List[OrderExpr] = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        tokens = part.split()
        if len(tokens) > 2:
            raise InvalidRequestError("invalid order expression", field="orderBy", detail=part)
        direction = tokens[1].upper() if len(tokens) == 2 else "DESC"
        if direction not in ("ASC", "DESC"):
            raise InvalidRequestError(f"invalid order direction: {tokens[1]}", field="orderBy")
        orders.append(OrderExpr(field=tokens[0], direction=direction))
    return orders
