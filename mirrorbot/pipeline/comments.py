"""CommentHandler — route ``issue_comment`` events to the agreement state machine."""

from __future__ import annotations

from typing import Any

import structlog

from mirrorbot.engines.contributor_agreement import CommentOutcome, ContributorAgreement
from mirrorbot.exceptions import InvalidEventError

log = structlog.get_logger("mirrorbot.pipeline")

HANDLED_ACTIONS = frozenset({"created", "edited"})


class CommentHandler:
    def __init__(self, agreement: ContributorAgreement) -> None:
        self._agreement = agreement

    async def handle_event(self, payload: dict[str, Any]) -> CommentOutcome | None:
        action = str(payload.get("action", "")).lower()
        if action not in HANDLED_ACTIONS:
            return None
        try:
            issue = payload["issue"]
            comment = payload["comment"]
            number = int(issue["number"])
            author = issue["user"]["login"]
            commenter = comment["user"]["login"]
            comments_url = issue["comments_url"]
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidEventError(f"issue_comment event is missing {exc}") from exc

        with structlog.contextvars.bound_contextvars(pr=number):
            outcome = await self._agreement.handle_comment(
                number,
                author=author,
                commenter=commenter,
                body=comment.get("body") or "",
                comments_url=comments_url,
            )
            if outcome is None:
                log.debug("comments.ignored", commenter=commenter)
            return outcome
