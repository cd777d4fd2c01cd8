"""Classify a comment addressed to the bot into an agreement intent."""

from __future__ import annotations

import re
from dataclasses import dataclass

CONFIRM_PATTERN = re.compile(r"yes,? that['’]?s me", re.IGNORECASE)
NAME_CLAIM_PREFIX = "i have signed the oca under the name"
USERNAME_CLAIM_PREFIX = "i have now signed the oca using my github username"
_QUOTED = re.compile(r'"([^"]*)"')


@dataclass(frozen=True)
class ConfirmIdentity:
    """The author confirms the signature line we found is theirs."""


@dataclass(frozen=True)
class ClaimSignedWithName:
    """The author claims a signature under *name* (``None`` when not quoted)."""

    name: str | None


@dataclass(frozen=True)
class ClaimSignedWithUsername:
    """The author claims a signature under their GitHub username."""


@dataclass(frozen=True)
class Unrecognized:
    pass


Intent = ConfirmIdentity | ClaimSignedWithName | ClaimSignedWithUsername | Unrecognized


def strip_mention(body: str, bot_username: str) -> str | None:
    """Return *body* without its leading ``@bot`` mention.

    ``None`` means the comment is not addressed to the bot.
    """
    text = body.strip()
    mention = f"@{bot_username}"
    if not text.lower().startswith(mention.lower()):
        return None
    rest = text[len(mention):]
    if rest and not rest[0].isspace() and rest[0] not in ",:":
        # a longer username that merely starts with ours
        return None
    return rest.lstrip(",:").strip()


def classify(text: str) -> Intent:
    text = text.strip()
    lowered = text.lower()
    if CONFIRM_PATTERN.match(text):
        return ConfirmIdentity()
    if lowered.startswith(NAME_CLAIM_PREFIX):
        match = _QUOTED.search(text, len(NAME_CLAIM_PREFIX))
        name = match.group(1).strip() if match else ""
        return ClaimSignedWithName(name=name or None)
    if lowered.startswith(USERNAME_CLAIM_PREFIX):
        return ClaimSignedWithUsername()
    return Unrecognized()
