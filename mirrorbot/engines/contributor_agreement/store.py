"""Flat-file persistence: the signer ledger and one marker file per PR."""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from mirrorbot.engines.contributor_agreement.status import AgreementStatus
from mirrorbot.exceptions import LedgerCorruptError
from mirrorbot.storage.atomic import write_text_atomic

log = structlog.get_logger("mirrorbot.engine.contributor_agreement")

LEDGER_SEPARATOR = "@@@"
MARKER_NAME = ".oca"


class Ledger:
    """Append-only ``username@@@signature name`` lines.

    Every line is validated on read; a malformed line raises
    :class:`LedgerCorruptError` instead of being skipped.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    def entries(self) -> list[tuple[str, str]]:
        if not self.path.exists():
            return []
        result: list[tuple[str, str]] = []
        for lineno, line in enumerate(self.path.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip():
                continue
            parts = line.split(LEDGER_SEPARATOR)
            if len(parts) != 2:
                raise LedgerCorruptError(
                    f"{self.path}:{lineno}: expected exactly one {LEDGER_SEPARATOR!r} separator"
                )
            result.append((parts[0], parts[1]))
        return result

    def lookup(self, username: str) -> str | None:
        """Return the signature name recorded for *username*, if any."""
        for user, name in self.entries():
            if user.casefold() == username.casefold():
                return name
        return None

    async def append(self, username: str, name: str) -> None:
        if LEDGER_SEPARATOR in username or LEDGER_SEPARATOR in name or "\n" in name:
            raise ValueError(f"cannot record signature name {name!r} for {username!r}")
        async with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(f"{username}{LEDGER_SEPARATOR}{name}\n")
        log.info("agreement.ledger_append", username=username, name=name)


class AgreementMarkerStore:
    """``<pr_root>/<number>/.oca`` holds the lower-case state name."""

    def __init__(self, pr_root: Path) -> None:
        self.pr_root = pr_root

    def path(self, pr_number: int) -> Path:
        return self.pr_root / str(pr_number) / MARKER_NAME

    def get(self, pr_number: int) -> AgreementStatus | None:
        path = self.path(pr_number)
        if not path.exists():
            return None
        raw = path.read_text(encoding="utf-8").strip().lower()
        try:
            return AgreementStatus(raw)
        except ValueError:
            raise LedgerCorruptError(f"{path}: unknown agreement state {raw!r}") from None

    def set(self, pr_number: int, status: AgreementStatus) -> None:
        write_text_atomic(self.path(pr_number), status.value)
        log.debug("agreement.marker_written", pr=pr_number, status=status.value)
