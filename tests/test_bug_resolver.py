"""Tests for bug-reference extraction and tracker verification."""

from __future__ import annotations

import json

import httpx
import pytest

from mirrorbot.engines.bug_resolver import (
    BugResolver,
    JiraClient,
    bug_number,
    build_jql,
    extract_bug_ids,
)
from mirrorbot.exceptions import ExternalServiceError

JIRA_URL = "https://bugs.example.com"


class FakeTracker:
    def __init__(self, open_bugs: set[str], *, failing: set[str] | None = None) -> None:
        self.open_bugs = open_bugs
        self.failing = failing or set()

    async def is_open(self, bug_id: str) -> bool:
        if bug_id in self.failing:
            raise ExternalServiceError("tracker down")
        return bug_id in self.open_bugs


# ── TestExtract ───────────────────────────────────────────────────────────


class TestExtract:
    def test_order_and_dedup(self):
        texts = ["8200000: fix JDK-8200000", "see JDK-8199999 and JDK-8200000", None]
        assert extract_bug_ids(texts) == ["JDK-8200000", "JDK-8199999"]

    def test_needs_seven_digits(self):
        assert extract_bug_ids(["JDK-123456", "JDK-12345678", "XJDK-1234567"]) == []

    def test_custom_prefix(self):
        assert extract_bug_ids(["JBS-1234567 JDK-1234567"], prefix="JBS") == ["JBS-1234567"]

    def test_bug_number(self):
        assert bug_number("JDK-8200000") == "8200000"


# ── TestJiraClient ────────────────────────────────────────────────────────


class TestJiraClient:
    def test_jql(self):
        jql = build_jql("JDK-8200000", project="JDK", component="javafx")
        assert jql.startswith("project = JDK AND status IN ('Open', 'In Progress'")
        assert jql.endswith("AND component = javafx AND id = JDK-8200000")

    @pytest.mark.asyncio
    async def test_is_open(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            issues = [{"key": "JDK-8200000"}] if "JDK-8200000" in request.url.params["jql"] else []
            return httpx.Response(200, content=json.dumps({"issues": issues}))

        client = JiraClient(JIRA_URL, transport=httpx.MockTransport(handler))
        try:
            assert await client.is_open("JDK-8200000") is True
            assert await client.is_open("JDK-1234567") is False
        finally:
            await client.close()

        assert seen[0].url.path == "/rest/api/2/search"
        assert seen[0].url.params["maxResults"] == "1"

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = JiraClient(
            JIRA_URL, transport=httpx.MockTransport(lambda request: httpx.Response(500))
        )
        try:
            with pytest.raises(ExternalServiceError, match="HTTP 500"):
                await client.is_open("JDK-8200000")
        finally:
            await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[], "x", 3])
    async def test_non_object_reply(self, body):
        client = JiraClient(
            JIRA_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        )
        try:
            with pytest.raises(ExternalServiceError, match="unexpected JSON"):
                await client.is_open("JDK-8200000")
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_non_object_reply_leaves_bug_unverified(self):
        client = JiraClient(
            JIRA_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[]))
        )
        try:
            result = await BugResolver(client).resolve(["Fixes JDK-1234567"])
        finally:
            await client.close()

        assert result.referenced == ["JDK-1234567"]
        assert result.unverified == ["JDK-1234567"]


# ── TestResolver ──────────────────────────────────────────────────────────


class TestResolver:
    @pytest.mark.asyncio
    async def test_partition(self):
        resolver = BugResolver(FakeTracker({"JDK-8200000"}))
        result = await resolver.resolve(["JDK-1234567 and JDK-8200000"])

        assert result.referenced == ["JDK-1234567", "JDK-8200000"]
        assert result.unverified == ["JDK-1234567"]
        assert result.verified == ["JDK-8200000"]
        assert result.primary == "JDK-8200000"

    @pytest.mark.asyncio
    async def test_tracker_failure_marks_unverified(self):
        resolver = BugResolver(FakeTracker({"JDK-8200000"}, failing={"JDK-8200000"}))
        result = await resolver.resolve(["JDK-8200000"])

        assert result.unverified == ["JDK-8200000"]
        assert result.primary == "JDK-8200000"

    @pytest.mark.asyncio
    async def test_no_references(self):
        result = await BugResolver(FakeTracker(set())).resolve(["no bugs here"])
        assert result.referenced == []
        assert result.primary is None
