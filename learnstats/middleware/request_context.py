"""Request context middleware.

Assigns every request an id (the caller's X-Request-ID when present),
keeps it and the gateway-supplied actor id in context variables, and
logs one summary line per request.  A logging filter on the root logger
copies both onto every record emitted while the request runs, so a
Query Guard warning deep inside an aggregation still carries the
request it belongs to.

Context variables rather than thread-locals: concurrent requests share
the event loop thread, and each task gets its own context copy.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)


class _RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if getattr(record, "actor_id", None) is None:
            record.actor_id = actor_id_var.get(None)  # type: ignore[attr-defined]
        return True


def install_log_filter() -> None:
    """Attach the context filter to the root logger's handlers, once."""
    root_logger = logging.getLogger()
    targets: list[logging.Filterer] = [root_logger, *root_logger.handlers]
    for target in targets:
        if not any(isinstance(f, _RequestContextFilter) for f in target.filters):
            target.addFilter(_RequestContextFilter())


install_log_filter()


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        actor_id = request.headers.get("x-user-id") or None
        request_id_token = request_id_var.set(req_id)
        actor_token = actor_id_var.set(actor_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "actor_id": actor_id,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(request_id_token)
            actor_id_var.reset(actor_token)
