"""The public OCA signatory list: fetch, parse, search.

Signatures look like ``Name - Affiliation - username``; the affiliation and
username parts are optional.
"""

from __future__ import annotations

from html.parser import HTMLParser

import httpx
import structlog

from mirrorbot.exceptions import ExternalServiceError

log = structlog.get_logger("mirrorbot.engine.contributor_agreement")

TOKEN_SEPARATOR = " - "


class _ListItemParser(HTMLParser):
    """Collect the text of every ``<li>`` element."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.items: list[str] = []
        self._buf: list[str] | None = None

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag == "li":
            self._flush()
            self._buf = []

    def handle_endtag(self, tag: str) -> None:
        if tag in {"li", "ul", "ol"}:
            self._flush()

    def handle_data(self, data: str) -> None:
        if self._buf is not None:
            self._buf.append(data)

    def close(self) -> None:
        super().close()
        self._flush()

    def _flush(self) -> None:
        if self._buf is not None:
            text = " ".join("".join(self._buf).split())
            if text:
                self.items.append(text)
        self._buf = None


def parse_signatures(page: str) -> list[str]:
    """Extract signature lines from the page.

    HTML pages contribute their ``<li>`` items; a page without any (for
    instance a plain-text mirror of the list) contributes its non-blank lines.
    """
    parser = _ListItemParser()
    parser.feed(page)
    parser.close()
    if parser.items:
        return parser.items
    return [" ".join(line.split()) for line in page.splitlines() if line.strip()]


def find_signature(signatures: list[str], query: str) -> str | None:
    """Return the first signature with a `` - ``-separated part equal to *query*.

    Comparison ignores case and surrounding whitespace.
    """
    wanted = query.strip().casefold()
    if not wanted:
        return None
    for line in signatures:
        if any(part.strip().casefold() == wanted for part in line.split(TOKEN_SEPARATOR)):
            return line
    return None


class SignatureList:
    """HTTP access to the signatory page. One GET per call, no caching."""

    def __init__(
        self,
        url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=30.0,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch(self) -> list[str]:
        try:
            response = await self._client.get(self.url)
        except httpx.HTTPError as exc:
            log.error("agreement.signatures_fetch_failed", url=self.url, error=str(exc))
            raise ExternalServiceError(f"could not download OCA signatures: {exc}") from exc
        if response.status_code >= 400:
            log.error(
                "agreement.signatures_fetch_failed", url=self.url, status=response.status_code
            )
            raise ExternalServiceError(
                f"could not download OCA signatures: HTTP {response.status_code}"
            )
        signatures = parse_signatures(response.text)
        log.debug("agreement.signatures_fetched", count=len(signatures))
        return signatures

    async def find(self, query: str) -> str | None:
        return find_signature(await self.fetch(), query)
