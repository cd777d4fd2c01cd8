"""Mercurial command-line implementation of :class:`~mirrorbot.vcs.base.UpstreamVcs`."""

from __future__ import annotations

from pathlib import Path

import structlog

from mirrorbot.core.process import (
    FETCH_POLICY,
    VCS_POLICY,
    Ok,
    Timeout,
    TimeoutPolicy,
    ToolError,
    expect_ok,
    run_command,
)
from mirrorbot.vcs.base import ApplyResult, Conflict

log = structlog.get_logger("mirrorbot.vcs.hg")

CONFLICT_MARKER = "abort: patch failed to apply"
_REJECT_SEARCH_DEPTH = 30


class HgUpstream:
    """The single shared working copy of the upstream repository.

    Not safe for concurrent use; :class:`SpeculativeApplyEngine` is the only
    owner and serializes access.
    """

    def __init__(self, path: Path, *, jcheck_extension: Path, webrev_script: Path) -> None:
        self.path = path
        self.jcheck_extension = jcheck_extension
        self.webrev_script = webrev_script

    async def pull(self) -> None:
        await self._hg("pull", "--update", policy=FETCH_POLICY)

    async def identify(self, rev: str) -> str:
        return (await self._hg("identify", "--id", "--rev", rev)).strip()

    async def apply(self, patch_path: Path, policy: TimeoutPolicy) -> ApplyResult:
        """``hg import --bypass``: commit the patch without touching the working copy."""
        result = await run_command(
            ["hg", "import", "--bypass", str(patch_path)],
            cwd=self.path,
            policy=policy,
            merge_stderr=True,
        )
        if isinstance(result, ToolError) and CONFLICT_MARKER in result.output:
            log.debug("hg.apply_conflict", searching_rejects=True)
            return Conflict(output=result.output, rejects=self._find_rejects())
        return result

    async def strip(self, rev: str) -> None:
        await self._hg("--config", "extensions.strip=", "strip", "--rev", rev, "--no-backup")

    async def lint(self, policy: TimeoutPolicy) -> Ok | Timeout | ToolError:
        return await run_command(
            ["hg", "--config", f"extensions.jcheck={self.jcheck_extension}", "jcheck"],
            cwd=self.path,
            policy=policy,
            merge_stderr=True,
        )

    async def review(
        self,
        base_rev: str,
        output_dir: Path,
        bug_number: str | None,
        policy: TimeoutPolicy,
    ) -> Ok | Timeout | ToolError:
        cmd = ["ksh", str(self.webrev_script), "-N", "-m", "-r", base_rev, "-o", str(output_dir)]
        if bug_number:
            cmd += ["-c", bug_number]
        return await run_command(cmd, cwd=self.path, policy=policy, merge_stderr=True)

    def _find_rejects(self) -> list[Path]:
        rejects: list[Path] = []
        for candidate in self.path.rglob("*.rej"):
            parts = candidate.relative_to(self.path).parts
            if ".hg" in parts or len(parts) > _REJECT_SEARCH_DEPTH:
                continue
            if candidate.is_file():
                rejects.append(candidate)
        return sorted(rejects)

    async def _hg(self, *args: str, policy: TimeoutPolicy = VCS_POLICY) -> str:
        cmd = ["hg", *args]
        result = await run_command(cmd, cwd=self.path, policy=policy)
        return expect_ok(result, cmd)
