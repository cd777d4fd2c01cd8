"""Runtime settings, read once from ``MIRRORBOT_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BLACKLIST: tuple[str, ...] = (
    ".travis.yml",
    "appveyor.yml",
    ".github/*",
    ".ci/*",
)


def _env_bool(name: str, default: bool) -> bool:
    raw = str(os.environ.get(name, "true" if default else "false")).strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    """Everything the service needs to know about its environment."""

    github_token: str = ""
    home: Path = field(default_factory=lambda: Path.home() / "jfxmirror")
    base_url: str = "http://localhost:8433/"
    bot_username: str = "jfxmirror-bot"
    webhook_secret: str = ""
    mirror_path: Path | None = None
    upstream_path: Path | None = None
    mirror_remote: str = "origin"
    mirror_branch: str = "master"
    merge_bot_author: str = "javafxports-github-bot"
    merge_bot_subject: str = "Merge from (root)"
    blacklist: tuple[str, ...] = DEFAULT_BLACKLIST
    upstream_pull: bool = True
    jira_url: str = "https://bugs.openjdk.java.net"
    jira_project: str = "JDK"
    jira_component: str = "javafx"
    bug_prefix: str = "JDK"
    oca_url: str = "http://www.oracle.com/technetwork/community/oca-486395.html"
    exit_on_auth_failure: bool = False
    apply_timeout: float = 60.0
    lint_timeout: float = 60.0
    review_timeout: float = 120.0

    # ── derived paths ─────────────────────────────────────────────────────

    @property
    def mirror_dir(self) -> Path:
        return self.mirror_path or self.home / "mirror"

    @property
    def upstream_dir(self) -> Path:
        return self.upstream_path or self.home / "upstream"

    @property
    def pr_root(self) -> Path:
        return self.home / "pr"

    @property
    def ledger_path(self) -> Path:
        return self.home / "oca.txt"

    @property
    def webrev_script(self) -> Path:
        return self.home / "webrev" / "webrev.ksh"

    @property
    def jcheck_extension(self) -> Path:
        return self.home / "jcheck.py"

    # ── construction ──────────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment.

        Reads from environment variables:
            MIRRORBOT_GH_TOKEN      — GitHub personal access token
            MIRRORBOT_HOME          — data directory (default: ~/jfxmirror)
            MIRRORBOT_BASE_URL      — public URL of this service
            MIRRORBOT_BLACKLIST     — comma-separated fnmatch patterns
        plus one ``MIRRORBOT_*`` variable per remaining field.
        """
        env = os.environ.get
        home = Path(env("MIRRORBOT_HOME", str(Path.home() / "jfxmirror"))).expanduser()
        blacklist_raw = env("MIRRORBOT_BLACKLIST")
        blacklist = (
            tuple(p.strip() for p in blacklist_raw.split(",") if p.strip())
            if blacklist_raw
            else DEFAULT_BLACKLIST
        )
        mirror_path = env("MIRRORBOT_MIRROR_PATH")
        upstream_path = env("MIRRORBOT_UPSTREAM_PATH")
        base_url = env("MIRRORBOT_BASE_URL", "http://localhost:8433/")
        if not base_url.endswith("/"):
            base_url += "/"

        return cls(
            github_token=env("MIRRORBOT_GH_TOKEN", env("jfxmirror_gh_token", "")),
            home=home,
            base_url=base_url,
            bot_username=env("MIRRORBOT_BOT_USERNAME", "jfxmirror-bot"),
            webhook_secret=env("MIRRORBOT_WEBHOOK_SECRET", ""),
            mirror_path=Path(mirror_path).expanduser() if mirror_path else None,
            upstream_path=Path(upstream_path).expanduser() if upstream_path else None,
            mirror_remote=env("MIRRORBOT_MIRROR_REMOTE", "origin"),
            mirror_branch=env("MIRRORBOT_MIRROR_BRANCH", "master"),
            merge_bot_author=env("MIRRORBOT_MERGE_BOT_AUTHOR", "javafxports-github-bot"),
            merge_bot_subject=env("MIRRORBOT_MERGE_BOT_SUBJECT", "Merge from (root)"),
            blacklist=blacklist,
            upstream_pull=_env_bool("MIRRORBOT_UPSTREAM_PULL", True),
            jira_url=env("MIRRORBOT_JIRA_URL", "https://bugs.openjdk.java.net"),
            jira_project=env("MIRRORBOT_JIRA_PROJECT", "JDK"),
            jira_component=env("MIRRORBOT_JIRA_COMPONENT", "javafx"),
            bug_prefix=env("MIRRORBOT_BUG_PREFIX", "JDK"),
            oca_url=env(
                "MIRRORBOT_OCA_URL", "http://www.oracle.com/technetwork/community/oca-486395.html"
            ),
            exit_on_auth_failure=_env_bool("MIRRORBOT_EXIT_ON_AUTH_FAILURE", False),
            apply_timeout=_env_float("MIRRORBOT_APPLY_TIMEOUT", 60.0),
            lint_timeout=_env_float("MIRRORBOT_LINT_TIMEOUT", 60.0),
            review_timeout=_env_float("MIRRORBOT_REVIEW_TIMEOUT", 120.0),
        )
