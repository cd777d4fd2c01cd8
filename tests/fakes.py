"""In-memory VCS fakes, a sample patch and webhook payload builders."""

from __future__ import annotations

from pathlib import Path

from mirrorbot.core.process import Ok, Timeout, TimeoutPolicy, ToolError
from mirrorbot.vcs.base import CommitInfo, Conflict

MERGE_BOT = "javafxports-github-bot"
MERGE_SUBJECT = "Merge from (root)"

GIT_PATCH = """\
From 0123456789abcdef0123456789abcdef01234567 Mon Sep 17 00:00:00 2001
From: Jane Doe <jane@example.com>
Date: Mon, 2 Apr 2018 10:00:00 +0200
Subject: [PATCH] 8200000: Fix the frobnicator

Fixes JDK-8200000 by frobnicating less.
---
 modules/javafx.base/src/Foo.java | 2 +-
 1 file changed, 1 insertion(+), 1 deletion(-)

diff --git a/modules/javafx.base/src/Foo.java b/modules/javafx.base/src/Foo.java
index 1111111..2222222 100644
--- a/modules/javafx.base/src/Foo.java
+++ b/modules/javafx.base/src/Foo.java
@@ -1 +1 @@
-old
+new
-- 
2.17.0

"""


def mirror_history() -> list[CommitInfo]:
    """Newest first: a PR-unrelated commit, the bot merge, its two parents."""
    return [
        CommitInfo("c3", "Someone", "Tweak CI", ("m2",)),
        CommitInfo("m2", MERGE_BOT, MERGE_SUBJECT, ("m1", "u2")),
        CommitInfo("m1", MERGE_BOT, MERGE_SUBJECT, ("u1",)),
        CommitInfo("u2", "Upstream Dev", "8199999: Upstream change", ("u1",)),
        CommitInfo("u1", "Upstream Dev", "8199998: Older change", ()),
    ]


class FakeMirror:
    """In-memory :class:`~mirrorbot.vcs.base.MirrorVcs`."""

    def __init__(
        self,
        history: list[CommitInfo] | None = None,
        *,
        changed_paths: list[str] | None = None,
        patch: str = GIT_PATCH,
    ) -> None:
        self._history = mirror_history() if history is None else history
        self._by_sha = {c.sha: c for c in self._history}
        self.changed_paths = (
            ["modules/javafx.base/src/Foo.java"] if changed_paths is None else changed_paths
        )
        self.patch = patch
        self.calls: list[tuple] = []
        self.squash_message: str | None = None

    async def fetch_base(self) -> None:
        self.calls.append(("fetch_base",))

    async def history(self) -> list[CommitInfo]:
        return list(self._history)

    async def commit(self, sha: str) -> CommitInfo:
        return self._by_sha[sha]

    async def fetch_pull_request(self, pr_number: int, head_sha: str) -> str:
        self.calls.append(("fetch_pull_request", pr_number, head_sha))
        return f"pr-{head_sha}"

    async def squash(self, ref, count, message, excluded):
        self.calls.append(("squash", ref, count))
        self.squash_message = message
        kept = [p for p in self.changed_paths if not excluded(p)]
        return "s1" if kept else None

    async def diff(self, base: str, commit: str) -> str:
        self.calls.append(("diff", base, commit))
        return self.patch


class FakeUpstream:
    """In-memory :class:`~mirrorbot.vcs.base.UpstreamVcs`; ``revs[-1]`` is the tip."""

    def __init__(self, revs: tuple[str, ...] = ("r0", "r1")) -> None:
        self.revs = list(revs)
        self.apply_result: str | Timeout | ToolError = "ok"
        self.rejects: list[Path] = []
        self.interloper = False
        self.lint_result: Ok | Timeout | ToolError = Ok("")
        self.review_result: Ok | Timeout | ToolError = Ok("")
        self.pulls = 0
        self.strips = 0
        self.review_calls: list[tuple] = []

    @property
    def tip(self) -> str:
        return self.revs[-1]

    async def pull(self) -> None:
        self.pulls += 1

    async def identify(self, rev: str) -> str:
        return self.revs[int(rev)]

    async def apply(self, patch_path: Path, policy: TimeoutPolicy):
        if self.apply_result == "conflict":
            return Conflict(output="abort: patch failed to apply", rejects=list(self.rejects))
        if isinstance(self.apply_result, (Timeout, ToolError)):
            return self.apply_result
        if self.interloper:
            self.revs.append("intruder")
        self.revs.append(f"applied-{len(self.revs)}")
        return Ok("applying " + str(patch_path))

    async def strip(self, rev: str) -> None:
        assert rev == "-1"
        self.revs.pop()
        self.strips += 1

    async def lint(self, policy: TimeoutPolicy):
        return self.lint_result

    async def review(self, base_rev, output_dir, bug_number, policy):
        self.review_calls.append((base_rev, output_dir, bug_number))
        return self.review_result


def pull_request_payload(
    *,
    action: str = "opened",
    number: int = 7,
    sha: str = "abc123",
    author: str = "octocat",
    title: str = "Fix frobnicator",
    branch: str = "fix-frob",
) -> dict:
    repo = "javafxports/openjdk-jfx"
    return {
        "action": action,
        "pull_request": {
            "number": number,
            "title": title,
            "user": {"login": author},
            "head": {"sha": sha, "ref": branch},
            "statuses_url": f"https://api.github.com/repos/{repo}/statuses/{sha}",
            "commits_url": f"https://api.github.com/repos/{repo}/pulls/{number}/commits",
            "_links": {
                "comments": {
                    "href": f"https://api.github.com/repos/{repo}/issues/{number}/comments"
                }
            },
        },
        "repository": {"full_name": repo},
    }


def comment_payload(
    body: str,
    *,
    action: str = "created",
    number: int = 7,
    author: str = "octocat",
    commenter: str = "octocat",
) -> dict:
    repo = "javafxports/openjdk-jfx"
    return {
        "action": action,
        "issue": {
            "number": number,
            "user": {"login": author},
            "comments_url": f"https://api.github.com/repos/{repo}/issues/{number}/comments",
        },
        "comment": {"body": body, "user": {"login": commenter}},
    }
