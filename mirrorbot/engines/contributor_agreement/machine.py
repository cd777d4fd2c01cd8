"""Contributor-agreement state machine.

``check`` runs for every pull_request event; ``handle_comment`` runs for
comments on PRs whose author has not been confirmed yet. ``SIGNED`` is
absorbing and every transition into it is recorded in the ledger.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from typing import Protocol

import structlog

from mirrorbot.engines.contributor_agreement import replies
from mirrorbot.engines.contributor_agreement.classifier import (
    ClaimSignedWithName,
    ClaimSignedWithUsername,
    ConfirmIdentity,
    classify,
    strip_mention,
)
from mirrorbot.engines.contributor_agreement.status import AgreementStatus
from mirrorbot.engines.contributor_agreement.store import AgreementMarkerStore, Ledger

log = structlog.get_logger("mirrorbot.engine.contributor_agreement")


class SignatureSource(Protocol):
    async def find(self, query: str) -> str | None: ...


class CommentPoster(Protocol):
    async def post_comment(self, comments_url: str, body: str) -> None: ...


@dataclass(frozen=True)
class CommentOutcome:
    previous: AgreementStatus
    status: AgreementStatus
    reply: str


class ContributorAgreement:
    def __init__(
        self,
        *,
        markers: AgreementMarkerStore,
        ledger: Ledger,
        signatures: SignatureSource,
        github: CommentPoster,
        bot_username: str,
        oca_url: str,
    ) -> None:
        self._markers = markers
        self._ledger = ledger
        self._signatures = signatures
        self._github = github
        self._bot_username = bot_username
        self._oca_url = oca_url
        # one in-flight decision per PR; markers are read-then-written
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def check(self, pr_number: int, author: str, comments_url: str) -> AgreementStatus:
        """Determine the agreement status of the PR author.

        An existing marker wins so re-runs for new pushes neither re-query the
        signature page nor comment again.
        """
        async with self._locks[pr_number]:
            return await self._check(pr_number, author, comments_url)

    async def _check(self, pr_number: int, author: str, comments_url: str) -> AgreementStatus:
        existing = self._markers.get(pr_number)
        if existing is not None:
            log.debug("agreement.marker_reused", pr=pr_number, status=existing.value)
            return existing

        name = self._ledger.lookup(author)
        if name is not None:
            log.info("agreement.known_signer", pr=pr_number, author=author, name=name)
            self._markers.set(pr_number, AgreementStatus.SIGNED)
            return AgreementStatus.SIGNED

        signature = await self._signatures.find(author)
        status = AgreementStatus.FOUND_PENDING if signature else AgreementStatus.NOT_FOUND_PENDING
        await self._github.post_comment(
            comments_url,
            replies.first_contact(author, signature, self._bot_username, self._oca_url),
        )
        self._markers.set(pr_number, status)
        log.info("agreement.checked", pr=pr_number, author=author, status=status.value)
        return status

    async def handle_comment(
        self,
        pr_number: int,
        *,
        author: str,
        commenter: str,
        body: str,
        comments_url: str,
    ) -> CommentOutcome | None:
        """React to a comment on PR *pr_number*; ``None`` means it was not for us."""
        async with self._locks[pr_number]:
            return await self._handle_comment(
                pr_number, author=author, commenter=commenter, body=body, comments_url=comments_url
            )

    async def _handle_comment(
        self, pr_number: int, *, author: str, commenter: str, body: str, comments_url: str
    ) -> CommentOutcome | None:
        current = self._markers.get(pr_number)
        if current is None or not current.pending:
            return None
        if commenter.lower() != author.lower():
            log.debug("agreement.comment_not_from_author", pr=pr_number, commenter=commenter)
            return None
        text = strip_mention(body, self._bot_username)
        if text is None:
            return None

        intent = classify(text)
        status = current
        if isinstance(intent, ConfirmIdentity) and current is AgreementStatus.FOUND_PENDING:
            await self._sign(pr_number, commenter, commenter)
            status, reply = AgreementStatus.SIGNED, replies.confirmed_identity()
        elif isinstance(intent, ClaimSignedWithName):
            if intent.name is None:
                reply = replies.name_not_quoted(self._bot_username)
            elif await self._signatures.find(intent.name):
                await self._sign(pr_number, commenter, intent.name)
                status, reply = AgreementStatus.SIGNED, replies.found_name(intent.name)
            else:
                reply = replies.not_found_name(intent.name, self._bot_username, self._oca_url)
        elif isinstance(intent, ClaimSignedWithUsername):
            if await self._signatures.find(commenter):
                await self._sign(pr_number, commenter, commenter)
                status, reply = AgreementStatus.SIGNED, replies.found_username_claim()
            else:
                reply = replies.not_found_username_claim(
                    commenter, self._bot_username, self._oca_url
                )
        else:
            reply = replies.not_understood()

        log.info(
            "agreement.comment_handled",
            pr=pr_number,
            intent=type(intent).__name__,
            previous=current.value,
            status=status.value,
        )
        await self._github.post_comment(comments_url, f"@{commenter} {reply}")
        return CommentOutcome(previous=current, status=status, reply=reply)

    async def _sign(self, pr_number: int, username: str, name: str) -> None:
        await self._ledger.append(username, name)
        self._markers.set(pr_number, AgreementStatus.SIGNED)
