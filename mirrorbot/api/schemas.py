"""Response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class PullRequestEventResponse(BaseModel):
    verdict: str | None


class CommentEventResponse(BaseModel):
    status: str | None
    handled: bool


class HealthResponse(BaseModel):
    status: str
    upstream_busy: bool = False
