from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_HEADER = "User-Name"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("app.http")

RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
    # management data changes on every write
    "Cache-Control": "no-store",
}


def request_id_for(request: Request) -> str:
    """Reuse the caller's request id when it is well formed, otherwise mint one."""
    supplied = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return supplied if _REQUEST_ID_RE.fullmatch(supplied) else uuid4().hex


def _stamp(response: Response, request_id: str) -> None:
    response.headers.update(RESPONSE_HEADERS)
    response.headers[REQUEST_ID_HEADER] = request_id


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _hardening(request: Request, call_next):
        request_id = request_id_for(request)
        request.state.request_id = request_id
        started = perf_counter()

        response = await call_next(request)
        _stamp(response, request_id)

        _LOG.info(
            "%s %s -> %s in %.1fms actor=%s request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started) * 1000.0,
            request.headers.get(ACTOR_HEADER) or "-",
            request_id,
        )
        return response
