"""Apply a translated PR to the shared upstream working copy, check it, undo it.

Everything between recording the upstream tip and rolling back runs under one
lock: the upstream copy is a single mutable resource and every run must leave
``tip(after) == tip(before)``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import structlog

from mirrorbot.core.process import TimeoutPolicy, ToolError, expect_ok
from mirrorbot.exceptions import ApplyConflictError, InvariantViolationError
from mirrorbot.storage.artifacts import ArtifactStore
from mirrorbot.vcs.base import Conflict, UpstreamVcs

log = structlog.get_logger("mirrorbot.engine.speculative_apply")

APPLY_POLICY = TimeoutPolicy("apply", 60.0)
LINT_POLICY = TimeoutPolicy("lint", 60.0)
REVIEW_POLICY = TimeoutPolicy("review", 120.0)


@dataclass(frozen=True)
class ApplyReport:
    """What a clean speculative apply produced."""

    tip: str
    lint_clean: bool
    lint_output: str
    review_dir: Path


class SpeculativeApplyEngine:
    """Sole owner of the upstream working copy and of the lock guarding it."""

    def __init__(
        self,
        upstream: UpstreamVcs,
        artifacts: ArtifactStore,
        *,
        pull: bool = True,
        apply_policy: TimeoutPolicy = APPLY_POLICY,
        lint_policy: TimeoutPolicy = LINT_POLICY,
        review_policy: TimeoutPolicy = REVIEW_POLICY,
    ) -> None:
        self._upstream = upstream
        self._artifacts = artifacts
        self._pull = pull
        self._apply_policy = apply_policy
        self._lint_policy = lint_policy
        self._review_policy = review_policy
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run(
        self,
        pr_number: int,
        head_sha: str,
        patch_path: Path,
        *,
        bug_number: str | None = None,
    ) -> ApplyReport:
        """Apply *patch_path*, run jcheck and webrev, then roll back.

        Raises :class:`ApplyConflictError` when the patch does not apply,
        :class:`InvariantViolationError` when the applied changeset is not a
        child of the recorded tip (the working copy is then left alone),
        and :class:`SubprocessTimeoutError` / :class:`ToolCommandError` for
        tool failures. All but the invariant violation roll back first.
        """
        async with self._lock:
            if self._pull:
                await self._upstream.pull()
            tip_before = await self._upstream.identify("-1")
            log.info("apply.start", pr=pr_number, tip=tip_before)

            try:
                result = await self._upstream.apply(patch_path, self._apply_policy)
                if isinstance(result, Conflict):
                    stored = self._artifacts.store_rejects(
                        pr_number, head_sha, result.rejects, result.output
                    )
                    log.info("apply.conflict", pr=pr_number, rejects=len(stored))
                    raise ApplyConflictError(result.output, stored)
                expect_ok(result, ["hg", "import", "--bypass", str(patch_path)])

                parent = await self._upstream.identify("-2")
                if parent != tip_before:
                    log.critical(
                        "apply.tip_moved", pr=pr_number, expected=tip_before, actual=parent
                    )
                    raise InvariantViolationError(tip_before, parent)

                lint_clean, lint_output = await self._lint(pr_number, head_sha)
                review_dir = await self._review(pr_number, head_sha, tip_before, bug_number)
            except InvariantViolationError:
                raise
            except BaseException:
                await self._rollback_after_failure(pr_number, tip_before)
                raise

            await self._rollback(tip_before)
            return ApplyReport(
                tip=tip_before,
                lint_clean=lint_clean,
                lint_output=lint_output,
                review_dir=review_dir,
            )

    # ── internal ───────────────────────────────────────────────────────────

    async def _rollback(self, tip_before: str) -> bool:
        """Strip the speculative changeset if it is still on top of *tip_before*.

        Safe to call any number of times; returns whether anything was stripped.
        """
        if await self._upstream.identify("-2") != tip_before:
            return False
        await self._upstream.strip("-1")
        log.debug("apply.rolled_back", tip=tip_before)
        return True

    async def _rollback_after_failure(self, pr_number: int, tip_before: str) -> None:
        # logged only; the run's own exception propagates
        try:
            await self._rollback(tip_before)
        except Exception:
            log.exception("apply.rollback_failed", pr=pr_number, tip=tip_before)

    async def _lint(self, pr_number: int, head_sha: str) -> tuple[bool, str]:
        result = await self._upstream.lint(self._lint_policy)
        if isinstance(result, ToolError) and result.returncode is not None:
            # non-zero exit: jcheck reported findings
            output, clean = result.output, False
        else:
            output, clean = expect_ok(result, ["hg", "jcheck"]), True

        lint_path = self._artifacts.lint_path(pr_number, head_sha)
        lint_path.parent.mkdir(parents=True, exist_ok=True)
        lint_path.write_text(output, encoding="utf-8")
        log.info("apply.lint", pr=pr_number, clean=clean)
        return clean, output

    async def _review(
        self, pr_number: int, head_sha: str, base_rev: str, bug_number: str | None
    ) -> Path:
        output_dir = self._artifacts.review_dir(pr_number, head_sha)
        result = await self._upstream.review(base_rev, output_dir, bug_number, self._review_policy)
        expect_ok(result, ["ksh", "webrev.ksh", "-r", base_rev])
        log.info("apply.review_generated", pr=pr_number, path=str(output_dir))
        return output_dir
