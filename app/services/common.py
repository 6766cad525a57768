from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Iterator

from app.core.errors import EntityAlreadyExistsError, EntityNotExistError, InvalidRequestError
from app.db import store
from app.db.conditions import Condition
from app.db.unit_of_work import UnitOfWork

AUDIT_FIELDS = ("status", "created_at", "updated_at", "updated_by")


def serialize_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def serialize_row(row, fields: Iterable[str]) -> dict[str, Any]:
    data = {"id": str(row.id)}
    for name in fields:
        data[name] = serialize_value(getattr(row, name))
    return data


def parse_uuid(raw: Any, field: str) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw or "").strip())
    except ValueError:
        raise InvalidRequestError(f"invalid {field}: {raw}", field=field)


def require_reference(uow: UnitOfWork, model, *conditions: Condition, field: str, message: str):
    """Look up a row the caller referenced; a miss is the caller's mistake, not a 404."""
    try:
        return store.find(uow, model, *conditions)
    except EntityNotExistError:
        raise InvalidRequestError(message, field=field)


def ensure_absent(uow: UnitOfWork, model, *conditions: Condition, field: str, message: str, exclude_id=None) -> None:
    if exclude_id is None:
        taken = store.exists(uow, model, *conditions)
    else:
        taken = any(row.id != exclude_id for row in store.find_all(uow, model, *conditions))
    if taken:
        raise InvalidRequestError(message, field=field)


@contextmanager
def duplicate_as_invalid(field: str, message: str) -> Iterator[None]:
    """Report a unique-index conflict lost to a concurrent writer as a validation error."""
    try:
        yield
    except EntityAlreadyExistsError as exc:
        raise InvalidRequestError(message, field=field, detail=exc.detail) from exc
