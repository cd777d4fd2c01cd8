"""Contributor-agreement states for the author of one pull request."""

from __future__ import annotations

import enum


class AgreementStatus(enum.Enum):
    FOUND_PENDING = "found_pending"
    NOT_FOUND_PENDING = "not_found_pending"
    SIGNED = "signed"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def pending(self) -> bool:
        return self is not AgreementStatus.SIGNED


_DESCRIPTIONS = {
    AgreementStatus.FOUND_PENDING: (
        "Found GitHub username on OCA page, waiting for user confirmation."
    ),
    AgreementStatus.NOT_FOUND_PENDING: (
        "Could not find GitHub username on OCA page, waiting for user response."
    ),
    AgreementStatus.SIGNED: "User has signed OCA.",
}
