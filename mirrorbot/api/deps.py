"""Dependency injection — the service graph, built once per process."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from mirrorbot.core.config import Settings
from mirrorbot.core.github import GitHubClient
from mirrorbot.core.process import TimeoutPolicy
from mirrorbot.engines.bug_resolver import BugResolver, JiraClient
from mirrorbot.engines.contributor_agreement import (
    AgreementMarkerStore,
    ContributorAgreement,
    Ledger,
    SignatureList,
)
from mirrorbot.engines.mirror_sync import MirrorSynchronizer
from mirrorbot.engines.speculative_apply import SpeculativeApplyEngine
from mirrorbot.engines.status_reporter import StatusReporter
from mirrorbot.pipeline import CommentHandler, PullRequestPipeline
from mirrorbot.storage.artifacts import ArtifactStore
from mirrorbot.vcs import GitMirror, HgUpstream, MirrorVcs, UpstreamVcs


@dataclass
class Services:
    settings: Settings
    github: GitHubClient
    signatures: SignatureList
    jira: JiraClient
    artifacts: ArtifactStore
    reporter: StatusReporter
    apply_engine: SpeculativeApplyEngine
    pipeline: PullRequestPipeline
    comments: CommentHandler

    async def close(self) -> None:
        await self.github.close()
        await self.signatures.close()
        await self.jira.close()


def build_services(
    settings: Settings,
    *,
    mirror: MirrorVcs | None = None,
    upstream: UpstreamVcs | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    """Wire every component from *settings*.

    *mirror*, *upstream* and *transport* replace the git/hg working copies and
    the outbound HTTP transport (for testing).
    """
    if mirror is None:
        mirror = GitMirror(
            settings.mirror_dir, remote=settings.mirror_remote, branch=settings.mirror_branch
        )
    if upstream is None:
        upstream = HgUpstream(
            settings.upstream_dir,
            jcheck_extension=settings.jcheck_extension,
            webrev_script=settings.webrev_script,
        )

    github = GitHubClient(settings.github_token, transport=transport)
    signatures = SignatureList(settings.oca_url, transport=transport)
    jira = JiraClient(
        settings.jira_url,
        project=settings.jira_project,
        component=settings.jira_component,
        transport=transport,
    )
    artifacts = ArtifactStore(settings.pr_root)
    reporter = StatusReporter(github, base_url=settings.base_url, context=settings.bot_username)
    apply_engine = SpeculativeApplyEngine(
        upstream,
        artifacts,
        pull=settings.upstream_pull,
        apply_policy=TimeoutPolicy("apply", settings.apply_timeout),
        lint_policy=TimeoutPolicy("lint", settings.lint_timeout),
        review_policy=TimeoutPolicy("review", settings.review_timeout),
    )
    agreement = ContributorAgreement(
        markers=AgreementMarkerStore(settings.pr_root),
        ledger=Ledger(settings.ledger_path),
        signatures=signatures,
        github=github,
        bot_username=settings.bot_username,
        oca_url=settings.oca_url,
    )
    pipeline = PullRequestPipeline(
        github=github,
        synchronizer=MirrorSynchronizer(
            mirror,
            blacklist=settings.blacklist,
            merge_bot_author=settings.merge_bot_author,
            merge_bot_subject=settings.merge_bot_subject,
        ),
        apply_engine=apply_engine,
        agreement=agreement,
        bugs=BugResolver(jira, prefix=settings.bug_prefix),
        reporter=reporter,
        artifacts=artifacts,
        tracker_url=settings.jira_url,
        component=settings.jira_component,
    )
    return Services(
        settings=settings,
        github=github,
        signatures=signatures,
        jira=jira,
        artifacts=artifacts,
        reporter=reporter,
        apply_engine=apply_engine,
        pipeline=pipeline,
        comments=CommentHandler(agreement),
    )


# ---------------------------------------------------------------------------
# Process-wide singleton (initialised by app lifespan)
# ---------------------------------------------------------------------------
_services: Services | None = None


def init_services(settings: Settings | None = None) -> Services:
    """Build the service graph from the environment. Called once at startup."""
    global _services  # noqa: PLW0603
    if _services is not None:
        return _services
    settings = settings or Settings.from_env()
    if not settings.github_token:
        raise RuntimeError("MIRRORBOT_GH_TOKEN must be set to a GitHub access token")
    _services = build_services(settings)
    return _services


def set_services(services: Services | None) -> None:
    """Override the service graph (for testing)."""
    global _services  # noqa: PLW0603
    _services = services


async def close_services() -> None:
    global _services  # noqa: PLW0603
    if _services is not None:
        await _services.close()
        _services = None


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_services() -> Services:
    if _services is None:
        raise RuntimeError("call init_services() before handling requests")
    return _services


def get_artifact_store() -> ArtifactStore:
    return get_services().artifacts
