"""Partition referenced bugs into verified and unverified."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from mirrorbot.engines.bug_resolver.ref_parser import DEFAULT_PREFIX, extract_bug_ids
from mirrorbot.exceptions import ExternalServiceError

log = structlog.get_logger("mirrorbot.engine.bug_resolver")


class BugTracker(Protocol):
    async def is_open(self, bug_id: str) -> bool: ...


@dataclass(frozen=True)
class BugResolution:
    referenced: list[str] = field(default_factory=list)
    unverified: list[str] = field(default_factory=list)

    @property
    def verified(self) -> list[str]:
        return [b for b in self.referenced if b not in self.unverified]

    @property
    def primary(self) -> str | None:
        """The bug a review is filed under: first verified, else first referenced."""
        candidates = self.verified or self.referenced
        return candidates[0] if candidates else None


class BugResolver:
    def __init__(self, tracker: BugTracker, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._tracker = tracker
        self._prefix = prefix

    async def resolve(self, texts: Iterable[str | None]) -> BugResolution:
        """Extract and verify bug references. Tracker problems never propagate."""
        referenced = extract_bug_ids(texts, self._prefix)
        unverified: list[str] = []
        for bug_id in referenced:
            try:
                found = await self._tracker.is_open(bug_id)
            except ExternalServiceError as exc:
                log.warning("bugs.verify_failed", bug=bug_id, error=str(exc))
                found = False
            if not found:
                unverified.append(bug_id)
        log.info("bugs.resolved", referenced=referenced, unverified=unverified)
        return BugResolution(referenced=referenced, unverified=unverified)
