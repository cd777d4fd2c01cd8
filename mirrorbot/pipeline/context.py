"""Per-event state of one pull-request pipeline run."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mirrorbot.core.github import GITHUB_API
from mirrorbot.engines.contributor_agreement.status import AgreementStatus
from mirrorbot.exceptions import InvalidEventError


class Verdict(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass
class PullRequestContext:
    """Owned by a single pipeline invocation and discarded once published."""

    number: int
    head_sha: str
    status_url: str
    repo_full_name: str = ""
    author: str = ""
    title: str = ""
    branch: str = ""
    comments_url: str = ""
    commits_url: str = ""

    agreement: AgreementStatus | None = None
    bugs: list[str] = field(default_factory=list)
    unverified_bugs: list[str] = field(default_factory=list)
    rejects: list[Path] = field(default_factory=list)
    lint_clean: bool | None = None
    verdict: Verdict = Verdict.PENDING
    description: str = ""

    @classmethod
    def from_event(cls, payload: dict[str, Any]) -> PullRequestContext:
        """Build a context from a ``pull_request`` webhook payload."""
        try:
            pr = payload["pull_request"]
            number = int(pr["number"])
            head_sha = pr["head"]["sha"]
            full_name = payload["repository"]["full_name"]
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidEventError(f"pull_request event is missing {exc}") from exc

        links = pr.get("_links") or {}
        comments_url = (links.get("comments") or {}).get("href") or pr.get("comments_url") or (
            f"{GITHUB_API}/repos/{full_name}/issues/{number}/comments"
        )
        return cls(
            number=number,
            head_sha=head_sha,
            status_url=pr.get("statuses_url")
            or f"{GITHUB_API}/repos/{full_name}/statuses/{head_sha}",
            repo_full_name=full_name,
            author=(pr.get("user") or {}).get("login", ""),
            title=pr.get("title") or "",
            branch=(pr.get("head") or {}).get("ref") or "",
            comments_url=comments_url,
            commits_url=pr.get("commits_url")
            or f"{GITHUB_API}/repos/{full_name}/pulls/{number}/commits",
        )
