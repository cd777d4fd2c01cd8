"""Contributor-agreement (OCA) tracking — ledger, per-PR markers, comment intents."""

from mirrorbot.engines.contributor_agreement.classifier import (
    ClaimSignedWithName,
    ClaimSignedWithUsername,
    ConfirmIdentity,
    Intent,
    Unrecognized,
    classify,
    strip_mention,
)
from mirrorbot.engines.contributor_agreement.machine import CommentOutcome, ContributorAgreement
from mirrorbot.engines.contributor_agreement.signatures import (
    SignatureList,
    find_signature,
    parse_signatures,
)
from mirrorbot.engines.contributor_agreement.status import AgreementStatus
from mirrorbot.engines.contributor_agreement.store import AgreementMarkerStore, Ledger

__all__ = [
    "AgreementMarkerStore",
    "AgreementStatus",
    "ClaimSignedWithName",
    "ClaimSignedWithUsername",
    "CommentOutcome",
    "ConfirmIdentity",
    "ContributorAgreement",
    "Intent",
    "Ledger",
    "SignatureList",
    "Unrecognized",
    "classify",
    "find_signature",
    "parse_signatures",
    "strip_mention",
]
