"""Turn a PR on the git mirror into one translator-ready patch."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from fnmatch import fnmatchcase

import structlog

from mirrorbot.exceptions import SyncAnchorNotFoundError
from mirrorbot.vcs.base import CommitInfo, MirrorVcs

log = structlog.get_logger("mirrorbot.engine.mirror_sync")


@dataclass(frozen=True)
class SyncResult:
    """Outcome of syncing one PR.

    ``patch`` is ``None`` when the PR only touched excluded paths.
    """

    anchor: str
    squashed_sha: str | None
    patch: str | None

    @property
    def empty(self) -> bool:
        return self.squashed_sha is None


def concat_messages(messages: Iterable[str]) -> str:
    """Join commit messages oldest-first, one blank line apart."""
    return "\n\n".join(m.strip() for m in messages if m.strip()) + "\n"


class MirrorSynchronizer:
    """Squash a PR against the mirror, drop mirror-only files, diff against upstream."""

    def __init__(
        self,
        mirror: MirrorVcs,
        *,
        blacklist: Iterable[str],
        merge_bot_author: str,
        merge_bot_subject: str,
    ) -> None:
        self._mirror = mirror
        self._blacklist = tuple(blacklist)
        self._bot_author = merge_bot_author
        self._bot_subject = merge_bot_subject

    def is_excluded(self, path: str) -> bool:
        return any(fnmatchcase(path, pattern) for pattern in self._blacklist)

    async def find_anchor(self) -> CommitInfo:
        """Return the upstream commit most recently merged into the mirror.

        That is the first parent of the newest "Merge from (root)" commit by
        the merge bot that is not itself one of the bot's merge commits.
        """
        marker: CommitInfo | None = None
        for commit in await self._mirror.history():
            if self._is_merge_marker(commit):
                marker = commit
                break
        if marker is None:
            raise SyncAnchorNotFoundError(
                f"could not find commit with author {self._bot_author!r} "
                f"and message {self._bot_subject!r}"
            )

        for parent_sha in marker.parents:
            parent = await self._mirror.commit(parent_sha)
            if (
                parent.author_name.lower() != self._bot_author.lower()
                and self._bot_subject.lower() not in parent.subject.lower()
            ):
                log.info(
                    "mirror_sync.anchor_found",
                    sha=parent.sha,
                    author=parent.author_name,
                    subject=parent.subject,
                )
                return parent

        raise SyncAnchorNotFoundError(
            f"no parent of merge commit {marker.sha} is an upstream commit"
        )

    async def sync(self, pr_number: int, head_sha: str, commit_messages: list[str]) -> SyncResult:
        """Steps:
        1. Refresh the base branch and locate the upstream anchor.
        2. Fetch the PR head.
        3. Squash its commits, leaving excluded paths out.
        4. Diff the squashed change against the anchor.
        """
        if not commit_messages:
            raise ValueError(f"PR #{pr_number} has no commits")

        await self._mirror.fetch_base()
        anchor = await self.find_anchor()

        branch = await self._mirror.fetch_pull_request(pr_number, head_sha)
        squashed = await self._mirror.squash(
            branch,
            len(commit_messages),
            concat_messages(commit_messages),
            self.is_excluded,
        )
        if squashed is None:
            log.info("mirror_sync.only_excluded_paths", pr=pr_number)
            return SyncResult(anchor=anchor.sha, squashed_sha=None, patch=None)

        patch = await self._mirror.diff(anchor.sha, squashed)
        return SyncResult(anchor=anchor.sha, squashed_sha=squashed, patch=patch)

    def _is_merge_marker(self, commit: CommitInfo) -> bool:
        return (
            commit.author_name.lower() == self._bot_author.lower()
            and commit.subject.lower() == self._bot_subject.lower()
        )
