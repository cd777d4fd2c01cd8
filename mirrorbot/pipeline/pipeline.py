"""PullRequestPipeline — the full mergeability check for one pull_request event."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from mirrorbot.core.github import GitHubClient
from mirrorbot.engines.bug_resolver import BugResolver, bug_number
from mirrorbot.engines.contributor_agreement import ContributorAgreement
from mirrorbot.engines.mirror_sync import MirrorSynchronizer
from mirrorbot.engines.patch_translator import translate
from mirrorbot.engines.speculative_apply import SpeculativeApplyEngine
from mirrorbot.engines.status_reporter import StatusReporter, render_status_page
from mirrorbot.exceptions import (
    ApplyConflictError,
    InvariantViolationError,
    MirrorBotError,
    StatusAuthError,
    SyncAnchorNotFoundError,
)
from mirrorbot.pipeline.context import PullRequestContext, Verdict
from mirrorbot.storage.artifacts import GIT_PATCH, HG_PATCH, ArtifactStore
from mirrorbot.storage.atomic import write_text_atomic

log = structlog.get_logger("mirrorbot.pipeline")

HANDLED_ACTIONS = frozenset({"opened", "edited", "reopened"})

DESC_PENDING = "Checking for upstream mergeability..."
DESC_NO_CHANGES = "PR has no changes meant for upstream."
DESC_CONFLICT = "Could not merge PR into upstream."
DESC_READY = "Ready to merge with upstream."
DESC_UPSTREAM_ERROR = "Upstream hg repository error."
DESC_UNEXPECTED = "Unexpected error while checking mergeability."

_STAGE_ERRORS: dict[str, str] = {
    "commits": "Could not read commits JSON.",
    "sync": "Could not sync git mirror repository.",
    "translate": "Could not convert git patch to hg patch.",
    "agreement": "Could not determine if user who opened PR has signed OCA.",
    "bugs": "Could not look up referenced JBS bugs.",
    "apply": DESC_UPSTREAM_ERROR,
}


class PullRequestPipeline:
    """sync → translate → agreement → bugs → apply → page + status.

    Stage failures become a verdict here and nowhere else; exactly one
    terminal status is published per run. A :class:`StatusAuthError`
    propagates because no status can be published any more.
    """

    def __init__(
        self,
        *,
        github: GitHubClient,
        synchronizer: MirrorSynchronizer,
        apply_engine: SpeculativeApplyEngine,
        agreement: ContributorAgreement,
        bugs: BugResolver,
        reporter: StatusReporter,
        artifacts: ArtifactStore,
        tracker_url: str = "https://bugs.openjdk.java.net",
        component: str = "javafx",
    ) -> None:
        self._github = github
        self._synchronizer = synchronizer
        self._apply = apply_engine
        self._agreement = agreement
        self._bugs = bugs
        self._reporter = reporter
        self._artifacts = artifacts
        self._tracker_url = tracker_url
        self._component = component

    async def handle_event(self, payload: dict[str, Any]) -> Verdict | None:
        """Run the pipeline for a ``pull_request`` payload; ``None`` if the action is ignored."""
        action = str(payload.get("action", "")).lower()
        if action not in HANDLED_ACTIONS:
            log.debug("pipeline.action_ignored", action=action)
            return None
        return await self.run(PullRequestContext.from_event(payload))

    async def run(self, ctx: PullRequestContext) -> Verdict:
        with structlog.contextvars.bound_contextvars(pr=ctx.number, head_sha=ctx.head_sha):
            await self._reporter.publish(ctx, Verdict.PENDING, DESC_PENDING)

            stage = "prepare"
            early_success = False
            try:
                patch_dir = self._artifacts.prepare(ctx.number, ctx.head_sha)

                stage = "commits"
                messages = await self._commit_messages(ctx)

                stage = "sync"
                synced = await self._synchronizer.sync(ctx.number, ctx.head_sha, messages)
                if synced.empty:
                    early_success = True
                    verdict, description = Verdict.SUCCESS, DESC_NO_CHANGES
                else:
                    write_text_atomic(patch_dir / GIT_PATCH, synced.patch or "")

                    stage = "translate"
                    hg_patch = patch_dir / HG_PATCH
                    write_text_atomic(hg_patch, translate(synced.patch or ""))

                    stage = "agreement"
                    ctx.agreement = await self._agreement.check(
                        ctx.number, ctx.author, ctx.comments_url
                    )

                    stage = "bugs"
                    resolution = await self._bugs.resolve([*messages, ctx.branch, ctx.title])
                    ctx.bugs = resolution.referenced
                    ctx.unverified_bugs = resolution.unverified

                    stage = "apply"
                    verdict, description = await self._speculative_apply(
                        ctx, hg_patch, resolution.primary
                    )
            except StatusAuthError:
                raise
            except InvariantViolationError as exc:
                log.critical("pipeline.invariant_violated", error=str(exc))
                verdict, description = Verdict.ERROR, DESC_UPSTREAM_ERROR
            except SyncAnchorNotFoundError as exc:
                log.error("pipeline.stage_failed", stage=stage, error=str(exc))
                verdict = Verdict.ERROR
                description = "Could not determine latest upstream commit in mirror."
            except MirrorBotError as exc:
                log.error("pipeline.stage_failed", stage=stage, error=str(exc))
                verdict = Verdict.ERROR
                description = _STAGE_ERRORS.get(stage, DESC_UNEXPECTED)
            except Exception:
                log.exception("pipeline.unexpected_error", stage=stage)
                verdict, description = Verdict.ERROR, DESC_UNEXPECTED

            ctx.verdict = verdict
            ctx.description = description
            self._write_status_page(ctx, early_success)
            await self._reporter.publish(ctx, verdict, description)
            log.info("pipeline.verdict", verdict=verdict.value, description=description)
            return verdict

    async def _speculative_apply(
        self, ctx: PullRequestContext, hg_patch: Path, primary_bug: str | None
    ) -> tuple[Verdict, str]:
        try:
            report = await self._apply.run(
                ctx.number,
                ctx.head_sha,
                hg_patch,
                bug_number=bug_number(primary_bug) if primary_bug else None,
            )
        except ApplyConflictError as exc:
            ctx.rejects = exc.rejects
            return Verdict.FAILURE, DESC_CONFLICT
        ctx.lint_clean = report.lint_clean
        return Verdict.SUCCESS, DESC_READY

    async def _commit_messages(self, ctx: PullRequestContext) -> list[str]:
        """Commit messages of the PR, oldest first."""
        messages: list[str] = []
        async for item in self._github.get_paginated(ctx.commits_url):
            messages.append(((item.get("commit") or {}).get("message")) or "")
        return messages

    def _write_status_page(self, ctx: PullRequestContext, early_success: bool) -> None:
        html = render_status_page(
            ctx,
            early_success=early_success,
            tracker_url=self._tracker_url,
            component=self._component,
        )
        path = self._artifacts.status_page_path(ctx.number, ctx.head_sha)
        try:
            write_text_atomic(path, html)
        except OSError as exc:
            log.error("pipeline.status_page_failed", path=str(path), error=str(exc))
