"""Capability interfaces for the two version-control systems.

The pipeline only talks to these protocols; :mod:`mirrorbot.vcs.git` and
:mod:`mirrorbot.vcs.hg` implement them on top of the command-line tools and
the test-suite implements them in memory.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mirrorbot.core.process import Ok, Timeout, TimeoutPolicy, ToolError


@dataclass(frozen=True)
class CommitInfo:
    sha: str
    author_name: str
    subject: str
    parents: tuple[str, ...] = ()


@dataclass(frozen=True)
class Conflict:
    """``hg import`` refused the patch; *rejects* are the hunks it left behind."""

    output: str
    rejects: list[Path]


ApplyResult = Ok | Conflict | Timeout | ToolError


class MirrorVcs(Protocol):
    """The git mirror: fetch, inspect history, squash, diff."""

    async def fetch_base(self) -> None: ...

    async def history(self) -> list[CommitInfo]:
        """All commits reachable from any ref, newest first."""
        ...

    async def commit(self, sha: str) -> CommitInfo: ...

    async def fetch_pull_request(self, pr_number: int, head_sha: str) -> str:
        """Fetch the PR head into a local branch and return the branch name."""
        ...

    async def squash(
        self,
        ref: str,
        count: int,
        message: str,
        excluded: Callable[[str], bool],
    ) -> str | None:
        """Squash the last *count* commits of *ref* into one.

        Paths for which *excluded* returns true are left out. Returns the new
        commit's SHA, or ``None`` if nothing is left to commit.
        """
        ...

    async def diff(self, base: str, commit: str) -> str:
        """Email-form patch taking *base* to the files *commit* touched."""
        ...


class UpstreamVcs(Protocol):
    """The hg upstream working copy."""

    async def pull(self) -> None: ...

    async def identify(self, rev: str) -> str: ...

    async def apply(self, patch_path: Path, policy: TimeoutPolicy) -> ApplyResult: ...

    async def strip(self, rev: str) -> None: ...

    async def lint(self, policy: TimeoutPolicy) -> Ok | Timeout | ToolError: ...

    async def review(
        self,
        base_rev: str,
        output_dir: Path,
        bug_number: str | None,
        policy: TimeoutPolicy,
    ) -> Ok | Timeout | ToolError: ...
