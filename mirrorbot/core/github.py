"""Async GitHub API client — pagination, statuses, and issue comments."""

from __future__ import annotations

import re
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import structlog

from mirrorbot.exceptions import ExternalServiceError

log = structlog.get_logger("mirrorbot.github")

GITHUB_API = "https://api.github.com"

_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')


class GitHubClient:
    """Thin async wrapper around the GitHub REST API.

    Calls are made exactly once: a failed request surfaces as
    :class:`ExternalServiceError` and the caller decides what it means.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"token {token}"
        self._client = httpx.AsyncClient(
            base_url=GITHUB_API,
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get_paginated(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        max_pages: int = 10,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Yield JSON items from a paginated GitHub API endpoint.

        Follows ``Link: <...>; rel="next"`` headers and stops after
        *max_pages* pages.
        """
        url: str | None = path
        params = dict(params or {})
        params.setdefault("per_page", 100)
        page = 0

        while url and page < max_pages:
            response = await self._send("GET", url, params=params if page == 0 else None)
            self._raise_for_status(response)

            data = response.json()
            if isinstance(data, list):
                for item in data:
                    yield item
            else:
                yield data

            url = self._parse_next_link(response.headers.get("Link", ""))
            page += 1

    async def post_json(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        """POST *payload* and return the raw response; transport errors raise."""
        return await self._send("POST", url, json=payload)

    async def post_comment(self, comments_url: str, body: str) -> None:
        """Add a comment to an issue or pull request."""
        response = await self.post_json(comments_url, {"body": body})
        if response.status_code >= 400:
            log.error(
                "github.comment_failed",
                url=comments_url,
                status=response.status_code,
                response=response.text[:500],
            )
            raise ExternalServiceError(
                f"could not post comment to {comments_url}: HTTP {response.status_code}"
            )

    # ── internal ───────────────────────────────────────────────────────────

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            log.error("github.request_failed", method=method, url=url, error=str(exc))
            raise ExternalServiceError(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"GitHub returned HTTP {response.status_code} for {response.request.url}"
            )

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the ``next`` URL from a GitHub ``Link`` header."""
        match = _NEXT_LINK_RE.search(link_header)
        return match.group(1) if match else None
