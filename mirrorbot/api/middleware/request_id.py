"""Request ID middleware — tags every request's log lines with an id."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("mirrorbot.api")


def _request_id(request: Request) -> str:
    """Reuse GitHub's delivery id (or a caller's UUID) when there is one."""
    delivery = request.headers.get("x-github-delivery", "")
    raw = request.headers.get("x-request-id", "") or delivery
    try:
        return str(uuid.UUID(raw))
    except (ValueError, AttributeError):
        return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind request_id, method, path and GitHub event type via structlog contextvars."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        tokens = structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        event = request.headers.get("x-github-event")
        if event:
            tokens.update(structlog.contextvars.bind_contextvars(github_event=event))
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            log.info("request.completed", status_code=response.status_code, duration_ms=duration_ms)
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception:
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            log.exception("request.failed", duration_ms=duration_ms)
            raise
        finally:
            structlog.contextvars.reset_contextvars(**tokens)
