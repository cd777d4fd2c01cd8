"""Webhook router — ``POST /ghevent`` for GitHub event deliveries."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import os
import signal
from collections.abc import Awaitable
from typing import Any, TypeVar

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from mirrorbot.api.deps import Services, get_services
from mirrorbot.api.schemas import CommentEventResponse, PullRequestEventResponse
from mirrorbot.exceptions import StatusAuthError
from mirrorbot.pipeline import Verdict

log = structlog.get_logger("mirrorbot.api")

router = APIRouter()

T = TypeVar("T")

# strong references so in-flight runs are not garbage-collected when the
# caller disconnects
_running: set[asyncio.Task[Any]] = set()


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check ``X-Hub-Signature-256`` against the HMAC-SHA256 of *body*."""
    expected = "sha256=" + hmac.new(secret.encode(), msg=body, digestmod=hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature or "")


async def run_shielded(coro: Awaitable[T]) -> T:
    """Run *coro* to completion even if the awaiting request is cancelled."""
    task = asyncio.ensure_future(coro)
    _running.add(task)
    task.add_done_callback(_finished)
    return await asyncio.shield(task)


def _finished(task: asyncio.Task[Any]) -> None:
    _running.discard(task)
    if not task.cancelled() and task.exception() is not None:
        log.debug("webhook.task_failed", error=str(task.exception()))


async def _guard_auth(services: Services, coro: Awaitable[T]) -> T:
    try:
        return await coro
    except StatusAuthError:
        if services.settings.exit_on_auth_failure:
            log.critical("service.exiting", reason="status auth failure")
            os.kill(os.getpid(), signal.SIGTERM)
        raise


@router.post("/ghevent")
async def ghevent(
    request: Request,
    x_github_event: str | None = Header(None),
    x_hub_signature_256: str | None = Header(None),
    services: Services = Depends(get_services),
) -> Response:
    body = await request.body()

    secret = services.settings.webhook_secret
    if secret and not verify_signature(secret, body, x_hub_signature_256):
        log.warning("webhook.bad_signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    if not x_github_event:
        raise HTTPException(status_code=400, detail="Missing X-GitHub-Event header")
    event = x_github_event.lower()

    if event == "ping":
        return PlainTextResponse("pong")
    if event not in {"pull_request", "issue_comment"}:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported GitHub event type {x_github_event!r}; "
            "expected one of ping, pull_request, issue_comment",
        )

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body is not valid JSON") from None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    if event == "pull_request":
        verdict = await run_shielded(
            _guard_auth(services, services.pipeline.handle_event(payload))
        )
        body_model = PullRequestEventResponse(verdict=verdict.value if verdict else None)
        return JSONResponse(
            status_code=500 if verdict is Verdict.ERROR else 200,
            content=body_model.model_dump(),
        )

    outcome = await run_shielded(services.comments.handle_event(payload))
    response = CommentEventResponse(
        status=outcome.status.value if outcome else None,
        handled=outcome is not None,
    )
    return JSONResponse(response.model_dump())
