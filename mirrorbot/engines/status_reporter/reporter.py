"""Publish the verdict as a GitHub commit status."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from mirrorbot.core.github import GitHubClient
from mirrorbot.exceptions import ExternalServiceError, StatusAuthError

if TYPE_CHECKING:
    from mirrorbot.pipeline.context import PullRequestContext, Verdict

log = structlog.get_logger("mirrorbot.engine.status_reporter")

_AUTH_FAILURE_CODES = frozenset({401, 404})


class StatusReporter:
    """POSTs ``{state, target_url, description, context}`` to a PR's status URL.

    A 401/404 means the token cannot write statuses on the repository;
    :attr:`degraded` stays set from then on.
    """

    def __init__(self, github: GitHubClient, *, base_url: str, context: str) -> None:
        self._github = github
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._context = context
        self.degraded = False

    def target_url(self, ctx: PullRequestContext) -> str:
        return f"{self._base_url}pr/{ctx.number}/{ctx.head_sha}/index.html"

    async def publish(self, ctx: PullRequestContext, verdict: Verdict, description: str) -> None:
        payload: dict[str, Any] = {
            "state": verdict.value,
            "target_url": self.target_url(ctx),
            "description": description,
            "context": self._context,
        }
        response = await self._github.post_json(ctx.status_url, payload)

        if response.status_code in _AUTH_FAILURE_CODES:
            self.degraded = True
            log.critical(
                "status.auth_failed",
                pr=ctx.number,
                status=response.status_code,
                response=response.text[:500],
            )
            raise StatusAuthError(
                f"GitHub refused status update for PR #{ctx.number} "
                f"(HTTP {response.status_code}); check the access token"
            )
        if response.status_code >= 400:
            log.error(
                "status.publish_failed",
                pr=ctx.number,
                status=response.status_code,
                response=response.text[:500],
            )
            raise ExternalServiceError(
                f"could not set status of PR #{ctx.number}: HTTP {response.status_code}"
            )
        log.info("status.published", pr=ctx.number, state=verdict.value, description=description)
