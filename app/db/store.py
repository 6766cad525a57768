"""Storage calls used by the usecases.

Each function takes the caller's ``UnitOfWork`` and never commits; the
unit of work decides the outcome. Lookups exclude soft-deleted rows unless
a status condition is given explicitly.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Sequence

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, selectinload

from app.core.errors import DBError, EntityAlreadyExistsError, EntityNotExistError, InvalidRequestError
from app.db.conditions import Condition, condition_clause, has_condition_on
from app.db.unit_of_work import UnitOfWork
from app.models.common import VISIBLE_STATUSES, EntityStatus, utcnow

logger = logging.getLogger(__name__)

_UNIQUE_SQLSTATE = "23505"
_SQLITE_UNIQUE_ERRORS = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == _UNIQUE_SQLSTATE
    return getattr(orig, "sqlite_errorname", None) in _SQLITE_UNIQUE_ERRORS


@contextmanager
def _storage_errors(entity: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise EntityAlreadyExistsError(entity, detail=str(exc.orig)) from exc
        raise InvalidRequestError(f"{entity} violates a storage constraint", detail=str(exc.orig)) from exc
    except OperationalError as exc:
        logger.error("storage operation failed for %s: %s", entity, exc.orig)
        raise DBError(detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.error("storage error for %s: %s", entity, exc)
        raise DBError(detail=str(exc)) from exc


def _query(uow: UnitOfWork, model, conditions: Sequence[Condition], preload: Iterable[Any] = ()) -> Query:
    q = uow.session.query(model)
    for rel in preload:
        q = q.options(selectinload(rel))
    live = [c for c in conditions if c.value is not None]
    for c in live:
        q = q.filter(condition_clause(model, c))
    if not has_condition_on(live, model.Field.STATUS):
        q = q.filter(condition_clause(model, Condition(model.Field.STATUS, VISIBLE_STATUSES)))
    return q


def find(uow: UnitOfWork, model, *conditions: Condition, preload: Iterable[Any] = ()):
    with _storage_errors(model.ENTITY_NAME):
        row = _query(uow, model, conditions, preload).first()
    if row is None:
        raise EntityNotExistError(model.ENTITY_NAME)
    return row


def find_all(uow: UnitOfWork, model, *conditions: Condition, preload: Iterable[Any] = ()) -> list:
    with _storage_errors(model.ENTITY_NAME):
        return _query(uow, model, conditions, preload).all()


def exists(uow: UnitOfWork, model, *conditions: Condition) -> bool:
    with _storage_errors(model.ENTITY_NAME):
        return _query(uow, model, conditions).first() is not None


def insert(uow: UnitOfWork, row):
    with _storage_errors(row.ENTITY_NAME):
        uow.session.add(row)
        uow.session.flush()
    return row


def insert_batch(uow: UnitOfWork, rows: Sequence) -> None:
    if not rows:
        return
    with _storage_errors(rows[0].ENTITY_NAME):
        uow.session.add_all(rows)
        uow.session.flush()


def update(uow: UnitOfWork, row, **values):
    for key, value in values.items():
        setattr(row, key, value)
    row.updated_at = utcnow()
    with _storage_errors(row.ENTITY_NAME):
        uow.session.flush()
    return row


def change_status_to_delete(uow: UnitOfWork, row, updated_by: str):
    return update(uow, row, status=EntityStatus.DELETE.value, updated_by=updated_by)


def delete_where(uow: UnitOfWork, model, *conditions: Condition) -> int:
    """Hard delete; only association rows are ever removed this way."""
    stmt = delete(model)
    for c in conditions:
        stmt = stmt.where(condition_clause(model, c))
    with _storage_errors(model.ENTITY_NAME):
        result = uow.session.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount


def list_rows(uow: UnitOfWork, model, spec, preload: Iterable[Any] = ()) -> list:
    q = uow.session.query(model)
    for rel in preload:
        q = q.options(selectinload(rel))
    with _storage_errors(model.ENTITY_NAME):
        return spec.apply(q).all()


def count_rows(uow: UnitOfWork, model, spec) -> int:
    with _storage_errors(model.ENTITY_NAME):
        return spec.apply(uow.session.query(model)).count()


def count_by_status(uow: UnitOfWork, model, *conditions: Condition) -> int:
    q = _query(uow, model, conditions).with_entities(func.count(model.id))
    with _storage_errors(model.ENTITY_NAME):
        return int(q.scalar() or 0)


class BatchInserter:
    """Buffers new rows and flushes them to the open transaction every ``batch_size`` rows."""

    def __init__(self, uow: UnitOfWork, batch_size: int):
        self.uow = uow
        self.batch_size = max(1, batch_size)
        self.pending: list = []
        self.flushed = 0

    def add(self, row) -> None:
        self.pending.append(row)
        if len(self.pending) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self.pending:
            return
        insert_batch(self.uow, self.pending)
        self.flushed += len(self.pending)
        logger.debug("flushed %s %s rows", len(self.pending), self.pending[0].ENTITY_NAME)
        self.pending = []
