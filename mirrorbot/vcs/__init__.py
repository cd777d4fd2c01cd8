"""Version-control capability layer — git mirror and hg upstream."""

from mirrorbot.vcs.base import ApplyResult, CommitInfo, Conflict, MirrorVcs, UpstreamVcs
from mirrorbot.vcs.git import GitMirror
from mirrorbot.vcs.hg import HgUpstream

__all__ = [
    "ApplyResult",
    "CommitInfo",
    "Conflict",
    "GitMirror",
    "HgUpstream",
    "MirrorVcs",
    "UpstreamVcs",
]
