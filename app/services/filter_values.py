"""Conversion of raw filter literals to the Python type a column binds."""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping

from app.core.errors import InvalidRequestError

_TRUE = frozenset({"1", "true", "yes", "y"})
_FALSE = frozenset({"0", "false", "no", "n"})


def _invalid(field: str, kind: str) -> InvalidRequestError:
    return InvalidRequestError(f'invalid filter value for field "{field}" ({kind})', field=field)


def _to_uuid(field: str, raw: Any) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw).strip())
    except ValueError:
        raise _invalid(field, "uuid")


def _to_bool(field: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    word = str(raw).strip().lower()
    if word in _TRUE:
        return True
    if word in _FALSE:
        return False
    raise _invalid(field, "boolean")


def _to_int(field: str, raw: Any) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        raise _invalid(field, "number")


def _to_datetime(field: str, raw: Any) -> datetime:
    if isinstance(raw, datetime):
        moment = raw
    else:
        literal = str(raw).strip()
        try:
            if is_date_only_literal(literal):
                # midnight of that day
                moment = datetime.combine(date.fromisoformat(literal), datetime.min.time())
            else:
                moment = datetime.fromisoformat(literal.replace("Z", "+00:00"))
        except ValueError:
            raise _invalid(field, "datetime")
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _to_str(field: str, raw: Any) -> str:
    return raw if isinstance(raw, str) else str(raw)


_COERCERS: Mapping[type, Callable[[str, Any], Any]] = {
    uuid.UUID: _to_uuid,
    bool: _to_bool,
    int: _to_int,
    datetime: _to_datetime,
    str: _to_str,
}


def column_python_type(column):
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def is_collection_column(column) -> bool:
    return column_python_type(column) in (list, dict)


def coerce_filter_value(column, value):
    if value is None:
        return None
    coerce = _COERCERS.get(column_python_type(column))
    if coerce is None:
        return value
    return coerce(column.key, value)


def is_date_only_literal(raw_value) -> bool:
    if isinstance(raw_value, date):
        return not isinstance(raw_value, datetime)
    if not isinstance(raw_value, str) or "T" in raw_value or " " in raw_value.strip():
        return False
    try:
        date.fromisoformat(raw_value.strip())
    except ValueError:
        return False
    return True
