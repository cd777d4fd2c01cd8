"""Pipeline orchestration — one run per webhook event."""

from mirrorbot.pipeline.comments import CommentHandler
from mirrorbot.pipeline.context import PullRequestContext, Verdict
from mirrorbot.pipeline.pipeline import PullRequestPipeline

__all__ = ["CommentHandler", "PullRequestContext", "PullRequestPipeline", "Verdict"]
