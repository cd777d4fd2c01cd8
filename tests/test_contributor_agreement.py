"""Tests for the contributor-agreement state machine and its parts."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from mirrorbot.engines.contributor_agreement import (
    AgreementMarkerStore,
    AgreementStatus,
    ClaimSignedWithName,
    ClaimSignedWithUsername,
    ConfirmIdentity,
    ContributorAgreement,
    Ledger,
    SignatureList,
    Unrecognized,
    classify,
    find_signature,
    parse_signatures,
    strip_mention,
)
from mirrorbot.exceptions import ExternalServiceError, LedgerCorruptError

BOT = "jfxmirror-bot"
OCA_URL = "https://oca.example.com/signatures.html"
COMMENTS_URL = "https://api.github.com/repos/o/r/issues/7/comments"

OCA_PAGE = """\
<html><body><table class="dataTable"><tr><td>
<ul><li>John Smith - OpenJFX - jsmith</li><li>Ana Lima - <b>ACME</b> - analima</li></ul>
<ul><li>Jean-Luc Picard - Starfleet</li></ul>
</td></tr></table></body></html>
"""


class FakeSignatures:
    def __init__(self, lines: list[str] | None = None, *, error: bool = False) -> None:
        self.lines = parse_signatures(OCA_PAGE) if lines is None else lines
        self.error = error
        self.queries: list[str] = []

    async def find(self, query: str) -> str | None:
        self.queries.append(query)
        if self.error:
            raise ExternalServiceError("OCA page unavailable")
        return find_signature(self.lines, query)


class SlowSignatures(FakeSignatures):
    async def find(self, query: str) -> str | None:
        await asyncio.sleep(0)
        return await super().find(query)


@pytest.fixture
def markers(tmp_path) -> AgreementMarkerStore:
    return AgreementMarkerStore(tmp_path / "pr")


@pytest.fixture
def ledger(tmp_path) -> Ledger:
    return Ledger(tmp_path / "oca.txt")


@pytest.fixture
def github() -> AsyncMock:
    client = AsyncMock()
    client.post_comment = AsyncMock(return_value=None)
    return client


def _machine(markers, ledger, github, signatures=None) -> ContributorAgreement:
    return ContributorAgreement(
        markers=markers,
        ledger=ledger,
        signatures=signatures or FakeSignatures(),
        github=github,
        bot_username=BOT,
        oca_url=OCA_URL,
    )


# ── TestClassifier ────────────────────────────────────────────────────────


class TestClassifier:
    @pytest.mark.parametrize("text", ["Yes, that's me", "yes thats me", "YES, THAT'S ME!"])
    def test_confirm(self, text):
        assert classify(text) == ConfirmIdentity()

    def test_name_claim(self):
        intent = classify('I have signed the OCA under the name "John Smith"')
        assert intent == ClaimSignedWithName(name="John Smith")

    def test_name_claim_without_quotes(self):
        assert classify("i have signed the oca under the name John Smith") == ClaimSignedWithName(
            name=None
        )

    def test_username_claim(self):
        text = "I have now signed the OCA using my GitHub username"
        assert classify(text) == ClaimSignedWithUsername()

    @pytest.mark.parametrize("text", ["", "hello", "I signed it", "Is that me? Yes, that's me"])
    def test_unrecognized(self, text):
        assert classify(text) == Unrecognized()


class TestStripMention:
    def test_strips_leading_mention(self):
        assert strip_mention(f"@{BOT} Yes, that's me", BOT) == "Yes, that's me"

    def test_not_addressed(self):
        assert strip_mention("Yes, that's me", BOT) is None
        assert strip_mention(f"@{BOT}-2 Yes", BOT) is None


# ── TestSignatures ────────────────────────────────────────────────────────


class TestSignatures:
    def test_parse_list_items(self):
        assert parse_signatures(OCA_PAGE) == [
            "John Smith - OpenJFX - jsmith",
            "Ana Lima - ACME - analima",
            "Jean-Luc Picard - Starfleet",
        ]

    def test_parse_plain_lines(self):
        page = "John Smith - OpenJFX - jsmith\n\nAna Lima - analima\n"
        assert parse_signatures(page) == ["John Smith - OpenJFX - jsmith", "Ana Lima - analima"]

    def test_find_token_case_insensitive(self):
        lines = parse_signatures(OCA_PAGE)
        assert find_signature(lines, "JSmith") == "John Smith - OpenJFX - jsmith"
        assert find_signature(lines, "ana lima") == "Ana Lima - ACME - analima"

    def test_find_is_whole_token(self):
        lines = parse_signatures(OCA_PAGE)
        assert find_signature(lines, "smith") is None
        assert find_signature(lines, "Jean") is None
        assert find_signature(lines, "Jean-Luc Picard") == "Jean-Luc Picard - Starfleet"

    @pytest.mark.asyncio
    async def test_fetch(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=OCA_PAGE))
        signatures = SignatureList(OCA_URL, transport=transport)
        try:
            assert await signatures.find("analima") == "Ana Lima - ACME - analima"
        finally:
            await signatures.close()

    @pytest.mark.asyncio
    async def test_fetch_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        signatures = SignatureList(OCA_URL, transport=transport)
        try:
            with pytest.raises(ExternalServiceError):
                await signatures.fetch()
        finally:
            await signatures.close()


# ── TestStores ────────────────────────────────────────────────────────────


class TestStores:
    def test_marker_round_trip(self, markers):
        assert markers.get(7) is None
        markers.set(7, AgreementStatus.FOUND_PENDING)
        assert markers.path(7).read_text() == "found_pending"
        assert markers.get(7) is AgreementStatus.FOUND_PENDING

    def test_marker_unknown_state(self, markers):
        markers.path(7).parent.mkdir(parents=True)
        markers.path(7).write_text("maybe")
        with pytest.raises(LedgerCorruptError):
            markers.get(7)

    @pytest.mark.asyncio
    async def test_ledger_append_and_lookup(self, ledger):
        assert ledger.lookup("octocat") is None
        await ledger.append("octocat", "Octo Cat")
        assert ledger.lookup("octocat") == "Octo Cat"
        assert ledger.path.read_text() == "octocat@@@Octo Cat\n"

    def test_ledger_lookup_ignores_case(self, ledger):
        ledger.path.write_text("OctoCat@@@Octo Cat\n")
        assert ledger.lookup("octocat") == "Octo Cat"
        assert ledger.lookup("OCTOCAT") == "Octo Cat"

    def test_ledger_corrupt_line(self, ledger):
        ledger.path.write_text("octocat@@@Octo Cat\nbroken line\n")
        with pytest.raises(LedgerCorruptError, match=":2:"):
            ledger.lookup("someone")

    def test_description(self):
        assert AgreementStatus.SIGNED.description == "User has signed OCA."


# ── TestCheck ─────────────────────────────────────────────────────────────


class TestCheck:
    @pytest.mark.asyncio
    async def test_known_signer(self, markers, ledger, github):
        ledger.path.write_text("octocat@@@Octo Cat\n")
        status = await _machine(markers, ledger, github).check(7, "octocat", COMMENTS_URL)

        assert status is AgreementStatus.SIGNED
        assert markers.get(7) is AgreementStatus.SIGNED
        github.post_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_found_on_page(self, markers, ledger, github):
        status = await _machine(markers, ledger, github).check(7, "jsmith", COMMENTS_URL)

        assert status is AgreementStatus.FOUND_PENDING
        url, body = github.post_comment.await_args.args
        assert url == COMMENTS_URL
        assert body.startswith("@jsmith ")
        assert "`John Smith - OpenJFX - jsmith`" in body
        assert f"@{BOT} Yes, that's me" in body

    @pytest.mark.asyncio
    async def test_not_found(self, markers, ledger, github):
        status = await _machine(markers, ledger, github).check(7, "octocat", COMMENTS_URL)

        assert status is AgreementStatus.NOT_FOUND_PENDING
        assert markers.get(7) is AgreementStatus.NOT_FOUND_PENDING
        body = github.post_comment.await_args.args[1]
        assert "could not find a signature line" in body
        assert OCA_URL in body

    @pytest.mark.asyncio
    async def test_rerun_reuses_marker(self, markers, ledger, github):
        machine = _machine(markers, ledger, github)
        first = await machine.check(7, "octocat", COMMENTS_URL)
        second = await machine.check(7, "octocat", COMMENTS_URL)

        assert first is second is AgreementStatus.NOT_FOUND_PENDING
        assert github.post_comment.await_count == 1

    @pytest.mark.asyncio
    async def test_page_failure_leaves_no_marker(self, markers, ledger, github):
        machine = _machine(markers, ledger, github, FakeSignatures(error=True))
        with pytest.raises(ExternalServiceError):
            await machine.check(7, "octocat", COMMENTS_URL)
        assert markers.get(7) is None

    @pytest.mark.asyncio
    async def test_concurrent_checks_comment_once(self, markers, ledger, github):
        machine = _machine(markers, ledger, github, SlowSignatures())
        first, second = await asyncio.gather(
            machine.check(7, "jsmith", COMMENTS_URL),
            machine.check(7, "jsmith", COMMENTS_URL),
        )

        assert first is second is AgreementStatus.FOUND_PENDING
        assert github.post_comment.await_count == 1


# ── TestHandleComment ─────────────────────────────────────────────────────


async def _comment(machine, body, *, author="octocat", commenter="octocat"):
    return await machine.handle_comment(
        7, author=author, commenter=commenter, body=body, comments_url=COMMENTS_URL
    )


class TestHandleComment:
    @pytest.mark.asyncio
    async def test_confirm_from_found_pending(self, markers, ledger, github):
        markers.set(7, AgreementStatus.FOUND_PENDING)
        outcome = await _comment(_machine(markers, ledger, github), f"@{BOT} Yes, that's me")

        assert outcome.status is AgreementStatus.SIGNED
        assert markers.get(7) is AgreementStatus.SIGNED
        assert ledger.lookup("octocat") == "octocat"
        github.post_comment.assert_awaited_once_with(
            COMMENTS_URL, "@octocat Okay, thanks. We won't ask again."
        )

    @pytest.mark.asyncio
    async def test_confirm_from_not_found_pending_not_understood(self, markers, ledger, github):
        markers.set(7, AgreementStatus.NOT_FOUND_PENDING)
        outcome = await _comment(_machine(markers, ledger, github), f"@{BOT} Yes, that's me")

        assert outcome.status is AgreementStatus.NOT_FOUND_PENDING
        assert "could not understand" in outcome.reply
        assert ledger.lookup("octocat") is None

    @pytest.mark.asyncio
    async def test_name_claim_verified(self, markers, ledger, github):
        markers.set(7, AgreementStatus.NOT_FOUND_PENDING)
        body = f'@{BOT} I have signed the OCA under the name "John Smith"'
        outcome = await _comment(_machine(markers, ledger, github), body)

        assert outcome.status is AgreementStatus.SIGNED
        assert ledger.lookup("octocat") == "John Smith"

    @pytest.mark.asyncio
    async def test_name_claim_not_on_page(self, markers, ledger, github):
        markers.set(7, AgreementStatus.NOT_FOUND_PENDING)
        body = f'@{BOT} I have signed the OCA under the name "Nobody Here"'
        outcome = await _comment(_machine(markers, ledger, github), body)

        assert outcome.status is AgreementStatus.NOT_FOUND_PENDING
        assert "weren't able to find that name" in outcome.reply
        assert markers.get(7) is AgreementStatus.NOT_FOUND_PENDING

    @pytest.mark.asyncio
    async def test_name_claim_without_quotes(self, markers, ledger, github):
        markers.set(7, AgreementStatus.FOUND_PENDING)
        signatures = FakeSignatures()
        body = f"@{BOT} I have signed the OCA under the name John Smith"
        outcome = await _comment(_machine(markers, ledger, github, signatures), body)

        assert outcome.status is AgreementStatus.FOUND_PENDING
        assert "double quotes" in outcome.reply
        assert signatures.queries == []

    @pytest.mark.asyncio
    async def test_username_claim(self, markers, ledger, github):
        markers.set(7, AgreementStatus.NOT_FOUND_PENDING)
        body = f"@{BOT} I have now signed the OCA using my GitHub username"
        outcome = await _comment(
            _machine(markers, ledger, github), body, author="analima", commenter="analima"
        )
        assert outcome.status is AgreementStatus.SIGNED
        assert ledger.lookup("analima") == "analima"

    @pytest.mark.asyncio
    async def test_unrecognized_keeps_state(self, markers, ledger, github):
        markers.set(7, AgreementStatus.NOT_FOUND_PENDING)
        outcome = await _comment(_machine(markers, ledger, github), f"@{BOT} what is this?")

        assert outcome.status is AgreementStatus.NOT_FOUND_PENDING
        assert markers.get(7) is AgreementStatus.NOT_FOUND_PENDING
        github.post_comment.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_signed_never_changes(self, markers, ledger, github):
        markers.set(7, AgreementStatus.SIGNED)
        outcome = await _comment(_machine(markers, ledger, github), f"@{BOT} Yes, that's me")

        assert outcome is None
        assert markers.get(7) is AgreementStatus.SIGNED
        github.post_comment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignores_other_users(self, markers, ledger, github):
        markers.set(7, AgreementStatus.FOUND_PENDING)
        outcome = await _comment(
            _machine(markers, ledger, github), f"@{BOT} Yes, that's me", commenter="mallory"
        )
        assert outcome is None
        assert markers.get(7) is AgreementStatus.FOUND_PENDING

    @pytest.mark.asyncio
    async def test_ignores_comments_not_addressed(self, markers, ledger, github):
        markers.set(7, AgreementStatus.FOUND_PENDING)
        assert await _comment(_machine(markers, ledger, github), "Yes, that's me") is None

    @pytest.mark.asyncio
    async def test_no_marker_ignored(self, markers, ledger, github):
        assert await _comment(_machine(markers, ledger, github), f"@{BOT} Yes, that's me") is None

    @pytest.mark.asyncio
    async def test_page_failure_keeps_marker(self, markers, ledger, github):
        markers.set(7, AgreementStatus.NOT_FOUND_PENDING)
        machine = _machine(markers, ledger, github, FakeSignatures(error=True))
        body = f"@{BOT} I have now signed the OCA using my GitHub username"
        with pytest.raises(ExternalServiceError):
            await _comment(machine, body)
        assert markers.get(7) is AgreementStatus.NOT_FOUND_PENDING
        github.post_comment.assert_not_awaited()
