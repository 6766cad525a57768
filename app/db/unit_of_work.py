from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import DBError, InternalError

logger = logging.getLogger(__name__)


class UnitOfWork:
    """An open transaction on the request's session.

    Every store call takes one of these; once committed or rolled back it
    refuses further use.
    """

    def __init__(self, manager: "TransactionManager"):
        self._manager = manager
        self.active = True

    @property
    def session(self) -> Session:
        if not self.active:
            raise InternalError(detail="missing transaction handle")
        return self._manager.session

    def commit(self) -> None:
        session = self.session
        try:
            session.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise DBError(detail=str(exc)) from exc
        self._close()

    def rollback(self) -> None:
        if not self.active:
            return
        try:
            self._manager.session.rollback()
        except SQLAlchemyError:
            logger.exception("transaction rollback failed")
        finally:
            self._close()

    def _close(self) -> None:
        self.active = False
        self._manager._release(self)


class TransactionManager:
    """Opens at most one unit of work at a time on a request-scoped session."""

    def __init__(self, session: Session, statement_timeout_seconds: int | None = None):
        self.session = session
        self.statement_timeout_seconds = statement_timeout_seconds
        self._current: UnitOfWork | None = None

    def begin(self) -> UnitOfWork:
        if self._current is not None:
            raise InternalError(detail="transaction already active")
        if self.session.in_transaction():
            # Autobegun by an earlier read outside a unit of work; start clean.
            self.session.rollback()
        uow = UnitOfWork(self)
        self._current = uow
        self._apply_statement_timeout()
        return uow

    def _apply_statement_timeout(self) -> None:
        if not self.statement_timeout_seconds:
            return
        bind = self.session.get_bind()
        if bind.dialect.name != "postgresql":
            return
        timeout_ms = int(self.statement_timeout_seconds * 1000)
        try:
            self.session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))
        except SQLAlchemyError as exc:
            self._current.rollback()
            raise DBError(detail=str(exc)) from exc

    def _release(self, uow: UnitOfWork) -> None:
        if self._current is uow:
            self._current = None

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        """Commit when the block finishes, roll back if it raises."""
        uow = self.begin()
        try:
            yield uow
        except BaseException:
            uow.rollback()
            raise
        uow.commit()

    @contextmanager
    def read(self) -> Iterator[UnitOfWork]:
        uow = self.begin()
        try:
            yield uow
        finally:
            uow.rollback()
