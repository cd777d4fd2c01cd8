"""git command-line implementation of :class:`~mirrorbot.vcs.base.MirrorVcs`."""

from __future__ import annotations

import asyncio
import tempfile
from collections.abc import Callable
from pathlib import Path

import structlog

from mirrorbot.core.process import (
    FETCH_POLICY,
    FORMAT_PATCH_POLICY,
    VCS_POLICY,
    TimeoutPolicy,
    expect_ok,
    run_command,
)
from mirrorbot.exceptions import SyncError, ToolCommandError
from mirrorbot.vcs.base import CommitInfo

log = structlog.get_logger("mirrorbot.vcs.git")

_FIELD = "\x1f"
_RECORD = "\x1e"
_LOG_FORMAT = "%H%x1f%an%x1f%s%x1f%P%x1e"
_IDENTITY_FORMAT = "%an%x1f%ae%x1f%aI%x1f%cn%x1f%ce%x1f%cI"
_EMPTY_SHA = "0" * 40


class GitMirror:
    """A local clone of the git mirror.

    Squashing happens in a throw-away ``git worktree`` so PRs can be synced
    concurrently; only ref-updating fetches are serialized.
    """

    def __init__(self, path: Path, *, remote: str = "origin", branch: str = "master") -> None:
        self.path = path
        self.remote = remote
        self.branch = branch
        self._fetch_lock = asyncio.Lock()

    # ── fetching ───────────────────────────────────────────────────────────

    async def fetch_base(self) -> None:
        refspec = f"+refs/heads/{self.branch}:refs/remotes/{self.remote}/{self.branch}"
        async with self._fetch_lock:
            await self._git("fetch", self.remote, refspec, policy=FETCH_POLICY)

    async def fetch_pull_request(self, pr_number: int, head_sha: str) -> str:
        branch = f"pr-{head_sha}"
        refspec = f"+refs/pull/{pr_number}/head:refs/heads/{branch}"
        async with self._fetch_lock:
            await self._git("fetch", self.remote, refspec, policy=FETCH_POLICY)
        return branch

    # ── history ────────────────────────────────────────────────────────────

    async def history(self) -> list[CommitInfo]:
        out = await self._git("log", "--all", "--date-order", f"--format={_LOG_FORMAT}")
        return [_parse_commit(rec) for rec in out.split(_RECORD) if rec.strip()]

    async def commit(self, sha: str) -> CommitInfo:
        out = await self._git("show", "-s", f"--format={_LOG_FORMAT}", sha)
        return _parse_commit(out.split(_RECORD)[0])

    # ── squash / diff ──────────────────────────────────────────────────────

    async def squash(
        self,
        ref: str,
        count: int,
        message: str,
        excluded: Callable[[str], bool],
    ) -> str | None:
        with tempfile.TemporaryDirectory(prefix="mirrorbot-wt-") as tmp:
            worktree = Path(tmp) / "wt"
            await self._git("worktree", "add", "--detach", str(worktree), ref)
            try:
                identity = await self._identity_env(ref)
                await self._git("reset", "--soft", f"HEAD~{count}", cwd=worktree)
                staged = await self._staged_paths(worktree)
                dropped = [p for p in staged if excluded(p)]
                if dropped:
                    log.debug("git.unstage_excluded", paths=dropped)
                    await self._git("reset", "-q", "HEAD", "--", *dropped, cwd=worktree)
                if len(dropped) == len(staged):
                    return None
                await self._git(
                    "commit", "-q", "--no-verify", "-F", "-",
                    cwd=worktree, env=identity, stdin=message,
                )
                return (await self._git("rev-parse", "HEAD", cwd=worktree)).strip()
            finally:
                await self._remove_worktree(worktree)

    async def diff(self, base: str, commit: str) -> str:
        """Build a commit on top of *base* carrying *commit*'s files, then format-patch it.

        Only the paths changed by *commit* relative to its own parent are
        carried over, so mirror-only differences between *base* and the PR's
        fork point never leak into the patch.
        """
        changed = await self._git(
            "diff-tree", "--no-commit-id", "--name-only", "--no-renames", "-r", "-z",
            f"{commit}^", commit,
        )
        paths = [p for p in changed.split("\0") if p]
        identity = await self._identity_env(commit)
        message = await self._git("log", "-1", "--format=%B", commit)

        with tempfile.TemporaryDirectory(prefix="mirrorbot-idx-") as tmp:
            env = {"GIT_INDEX_FILE": str(Path(tmp) / "index")}
            await self._git("read-tree", base, env=env)
            present = await self._git("ls-tree", "-z", commit, "--", *paths) if paths else ""
            entries = [e for e in present.split("\0") if e]
            kept = {e.split("\t", 1)[1] for e in entries}
            removals = [f"0 {_EMPTY_SHA}\t{p}" for p in paths if p not in kept]
            index_info = "\0".join(entries + removals)
            if index_info:
                await self._git(
                    "update-index", "-z", "--index-info", env=env, stdin=index_info + "\0"
                )
            tree = (await self._git("write-tree", env=env)).strip()

        synthetic = (
            await self._git(
                "commit-tree", tree, "-p", base, "-F", "-",
                env=identity, stdin=message,
            )
        ).strip()
        return await self._git(
            "format-patch", "-1", synthetic, "--stdout", "--minimal",
            policy=FORMAT_PATCH_POLICY,
        )

    # ── internal ───────────────────────────────────────────────────────────

    async def _identity_env(self, ref: str) -> dict[str, str]:
        out = await self._git("log", "-1", f"--format={_IDENTITY_FORMAT}", ref)
        an, ae, ad, cn, ce, cd = out.strip().split(_FIELD)
        return {
            "GIT_AUTHOR_NAME": an,
            "GIT_AUTHOR_EMAIL": ae,
            "GIT_AUTHOR_DATE": ad,
            "GIT_COMMITTER_NAME": cn,
            "GIT_COMMITTER_EMAIL": ce,
            "GIT_COMMITTER_DATE": cd,
        }

    async def _staged_paths(self, worktree: Path) -> list[str]:
        out = await self._git("diff", "--cached", "--name-only", "--no-renames", "-z", cwd=worktree)
        return [p for p in out.split("\0") if p]

    async def _remove_worktree(self, worktree: Path) -> None:
        try:
            await self._git("worktree", "remove", "--force", str(worktree))
        except SyncError:
            log.warning("git.worktree_remove_failed", worktree=str(worktree), exc_info=True)
            await self._git("worktree", "prune")

    async def _git(
        self,
        *args: str,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        stdin: str | None = None,
        policy: TimeoutPolicy = VCS_POLICY,
    ) -> str:
        cmd = ["git", *args]
        result = await run_command(cmd, cwd=cwd or self.path, env=env, stdin=stdin, policy=policy)
        try:
            return expect_ok(result, cmd)
        except ToolCommandError as exc:
            raise SyncError(str(exc)) from exc


def _parse_commit(record: str) -> CommitInfo:
    sha, author, subject, parents = record.strip("\n").split(_FIELD)
    return CommitInfo(
        sha=sha,
        author_name=author,
        subject=subject,
        parents=tuple(parents.split()),
    )
