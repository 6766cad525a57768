from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidRequestError
from app.db.session import get_db
from app.db.unit_of_work import TransactionManager
from app.schemas.query import QueryOptions
from app.services.query_builder import parse_query_options

def get_transactions(db: Session = Depends(get_db)) -> TransactionManager:
    return TransactionManager(db, statement_timeout_seconds=settings.DB_STATEMENT_TIMEOUT_SECONDS)

def get_actor(user_name: str | None = Header(default=None, alias="User-Name")) -> str:
    actor = str(user_name or "").strip()
    if not actor:
        raise InvalidRequestError("User-Name header is required", field="User-Name")
    return actor

def list_options(
    filter: str | None = Query(default=None),
    order_by: str | None = Query(default=None, alias="orderBy"),
    limit: int = Query(default=settings.DEFAULT_PAGE_LIMIT),
    offset: int = Query(default=0),
) -> QueryOptions:
    return parse_query_options(filter, order_by, limit, offset)

def export_options(
    filter: str | None = Query(default=None),
    order_by: str | None = Query(default=None, alias="orderBy"),
) -> QueryOptions:
    return parse_query_options(filter, order_by)
