"""Custom exceptions for mirrorbot."""

from __future__ import annotations

from pathlib import Path


class MirrorBotError(Exception):
    """Base exception for all mirrorbot errors."""


class MalformedPatchError(MirrorBotError):
    """Raised when an email-form patch lacks a required header."""


class SyncError(MirrorBotError):
    """Raised when the git mirror cannot be synchronized."""


class SyncAnchorNotFoundError(SyncError):
    """Raised when no merge-from-upstream commit (or qualifying parent) exists."""


class ApplyConflictError(MirrorBotError):
    """Raised when the hg patch does not apply cleanly to upstream."""

    def __init__(self, output: str, rejects: list[Path]):
        self.output = output
        self.rejects = rejects
        super().__init__(f"patch failed to apply ({len(rejects)} reject file(s))")


class InvariantViolationError(MirrorBotError):
    """Raised when the upstream tip moved underneath a speculative apply."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"revision before applied changeset is {actual!r}, expected {expected!r}"
        )


class SubprocessTimeoutError(MirrorBotError):
    """Raised when a subprocess exceeded its timeout policy and was killed."""

    def __init__(self, policy_name: str, seconds: float):
        self.policy_name = policy_name
        self.seconds = seconds
        super().__init__(f"{policy_name} did not finish in {seconds:g}s")


class ToolCommandError(MirrorBotError):
    """Raised when an external tool could not be run or exited non-zero."""

    def __init__(self, cmd: list[str], returncode: int | None, output: str):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"command {' '.join(cmd[:3])!r} failed (exit {returncode}): {output.strip()[:500]}"
        )


class ExternalServiceError(MirrorBotError):
    """Raised when GitHub, Jira or the OCA signature page cannot be used."""


class StatusAuthError(ExternalServiceError):
    """Raised when GitHub rejects a status update for authentication reasons."""


class LedgerCorruptError(MirrorBotError):
    """Raised when the agreement ledger or a per-PR marker file is malformed."""


class InvalidEventError(MirrorBotError):
    """Raised when a webhook payload lacks a field the bot relies on."""
