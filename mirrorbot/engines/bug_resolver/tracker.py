"""Jira REST search client for the bug tracker."""

from __future__ import annotations

from collections.abc import Iterable

import httpx
import structlog

from mirrorbot.exceptions import ExternalServiceError

log = structlog.get_logger("mirrorbot.engine.bug_resolver")

OPEN_STATUSES: tuple[str, ...] = ("Open", "In Progress", "New", "Provisional")


def build_jql(
    bug_id: str, *, project: str, component: str, statuses: Iterable[str] = OPEN_STATUSES
) -> str:
    status_list = ", ".join(f"'{s}'" for s in statuses)
    return (
        f"project = {project} AND status IN ({status_list}) "
        f"AND component = {component} AND id = {bug_id}"
    )


class JiraClient:
    """Anonymous read-only access to ``/rest/api/2/search``."""

    def __init__(
        self,
        base_url: str,
        *,
        project: str = "JDK",
        component: str = "javafx",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.project = project
        self.component = component
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Accept": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def is_open(self, bug_id: str) -> bool:
        """True if *bug_id* is an open bug of the configured project/component."""
        params = {
            "jql": build_jql(bug_id, project=self.project, component=self.component),
            "maxResults": 1,
            "fields": "key",
        }
        try:
            response = await self._client.get("/rest/api/2/search", params=params)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Jira search for {bug_id} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Jira search for {bug_id} returned HTTP {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"Jira search for {bug_id} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise ExternalServiceError(f"Jira search for {bug_id} returned unexpected JSON")
        return bool(data.get("issues"))
