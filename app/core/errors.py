from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

_LOG = logging.getLogger("app.errors")


class AppError(Exception):
    """Base of the error taxonomy shared by the query engine, the store and the usecases.

    ``message`` is what the client sees; ``detail`` is kept for the logs only.
    """

    key = "ErrInternal"
    status_code = 500

    def __init__(self, message: str, *, field: str | None = None, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.detail = detail

    def __str__(self) -> str:
        return self.message


class InvalidRequestError(AppError):
    key = "ErrInvalidRequest"
    status_code = 400


class EntityNotExistError(AppError):
    key = "ErrEntityNotExist"
    status_code = 404

    def __init__(self, entity: str, *, detail: Any = None):
        super().__init__(f"{entity} not found", detail=detail)
        self.entity = entity


class EntityAlreadyExistsError(AppError):
    key = "ErrEntityAlreadyExists"
    status_code = 409

    def __init__(self, entity: str, *, detail: Any = None):
        super().__init__(f"{entity} already exists", detail=detail)
        self.entity = entity


class DBError(AppError):
    key = "ErrDB"
    status_code = 503

    def __init__(self, detail: Any = None):
        super().__init__("The server is currently unavailable", detail=detail)


class InternalError(AppError):
    key = "ErrInternal"
    status_code = 500

    def __init__(self, detail: Any = None):
        super().__init__("Internal server error", detail=detail)


def error_body(exc: AppError) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": exc.message, "key": exc.key}
    if exc.field:
        body["field"] = exc.field
    return body


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            _LOG.error(
                "%s %s failed key=%s detail=%s request_id=%s",
                request.method,
                request.url.path,
                exc.key,
                exc.detail,
                getattr(request.state, "request_id", None),
            )
        elif exc.detail is not None:
            _LOG.info("%s %s rejected key=%s detail=%s", request.method, request.url.path, exc.key, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc))
