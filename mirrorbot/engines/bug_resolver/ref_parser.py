"""Find tracked-bug references (``JDK-1234567``) in PR text."""

from __future__ import annotations

import re
from collections.abc import Iterable

DEFAULT_PREFIX = "JDK"


def bug_pattern(prefix: str = DEFAULT_PREFIX) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(prefix)}-\d{{7}}\b")


def extract_bug_ids(texts: Iterable[str | None], prefix: str = DEFAULT_PREFIX) -> list[str]:
    """All distinct bug ids in *texts*, in order of first appearance."""
    pattern = bug_pattern(prefix)
    seen: dict[str, None] = {}
    for text in texts:
        for bug_id in pattern.findall(text or ""):
            seen.setdefault(bug_id, None)
    return list(seen)


def bug_number(bug_id: str) -> str:
    """``JDK-1234567`` → ``1234567``."""
    return bug_id.rsplit("-", 1)[-1]
