"""git ``format-patch`` output → Mercurial changeset patch.

Pure text transformation, no I/O. The header layout is the one ``hg import``
expects::

    # HG changeset patch
    # User Jane Doe <jane@example.com>
    # Date Mon, 2 Apr 2018 10:00:00 +0200

    Subject line without the [PATCH n/m] tag

    diff --git ...
"""

from __future__ import annotations

import email
import re
from email.header import decode_header, make_header
from email.message import Message
from email.policy import compat32

from mirrorbot.exceptions import MalformedPatchError

HG_HEADER = "# HG changeset patch"

PATCH_TAG_PATTERN = re.compile(r"^\[PATCH(?: \d+/\d+)?\] ")

# git appends "-- \n<git version>\n" (plus a blank line) after the diff
SIGNATURE_PATTERN = re.compile(r"^--\s?\n[^\n]+\s*\Z", re.MULTILINE)

_FOLD_PATTERN = re.compile(r"\r?\n[ \t]+")


def translate(patch_text: str) -> str:
    """Translate an email-form git patch into an hg changeset patch.

    Raises :class:`MalformedPatchError` if ``From`` or ``Date`` is missing.
    """
    message = email.message_from_string(patch_text, policy=compat32)

    author = _header(message, "From")
    date = _header(message, "Date")
    if author is None or date is None:
        missing = [name for name, value in (("From", author), ("Date", date)) if value is None]
        raise MalformedPatchError(f"patch is missing required header(s): {', '.join(missing)}")

    subject = PATCH_TAG_PATTERN.sub("", _header(message, "Subject") or "", count=1)
    body = SIGNATURE_PATTERN.sub("", _body(message), count=1)

    return f"{HG_HEADER}\n# User {author}\n# Date {date}\n\n{subject}\n\n{body}"


def _header(message: Message, name: str) -> str | None:
    raw = message.get(name)
    if raw is None:
        return None
    unfolded = _FOLD_PATTERN.sub(" ", str(raw)).strip()
    if not unfolded:
        return None
    return str(make_header(decode_header(unfolded)))


def _body(message: Message) -> str:
    encoding = (message.get("Content-Transfer-Encoding") or "").strip().lower()
    if encoding in {"quoted-printable", "base64"}:
        payload = message.get_payload(decode=True)
        charset = message.get_content_charset() or "utf-8"
        return payload.decode(charset, errors="replace")
    return message.get_payload()
