"""HTML status page for one pipeline run, served at ``pr/<n>/<sha>/index.html``."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mirrorbot.engines.bug_resolver.tracker import OPEN_STATUSES

if TYPE_CHECKING:
    from mirrorbot.pipeline.context import PullRequestContext

DEFAULT_TRACKER_URL = "https://bugs.openjdk.java.net"

_VERDICT_COLORS: dict[str, str] = {
    "success": "#388e3c",
    "failure": "#d32f2f",
    "error": "#f57c00",
    "pending": "#757575",
}


def render_status_page(
    ctx: PullRequestContext,
    *,
    early_success: bool = False,
    tracker_url: str = DEFAULT_TRACKER_URL,
    component: str = "javafx",
) -> str:
    """Return the complete HTML document for *ctx*.

    With *early_success* (the PR only touched mirror-only files) there is no
    patch, review or lint output to link to.
    """
    verdict = ctx.verdict.value
    color = _VERDICT_COLORS.get(verdict, "#757575")
    agreement = ctx.agreement.description if ctx.agreement else "Not checked."
    title = f"Status: PR #{ctx.number} ({ctx.head_sha})"
    body_style = (
        "font-family: -apple-system, BlinkMacSystemFont,"
        " 'Segoe UI', Roboto, sans-serif;"
        " color: #212121; max-width: 720px; margin: 0 auto;"
    )

    if early_success:
        artifacts = "<p>This PR has no changes meant for upstream.</p>"
    else:
        artifacts = _format_artifacts(ctx)

    return f"""\
<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{_esc(title)}</title>
</head>
<body style="{body_style}">
<h2>{_esc(title)}</h2>
<p>Verdict: <span style="color: {color}; font-weight: bold;">{verdict.upper()}</span></p>
<p>{_esc(ctx.description)}</p>
<p>OCA: {_esc(agreement)}</p>
<h3>JBS Bug(s)</h3>
{_format_bugs(ctx.bugs, ctx.unverified_bugs, tracker_url, component)}
<h3>Artifacts</h3>
{artifacts}
</body>
</html>
"""


def _esc(text: str) -> str:
    """Minimal HTML escaping."""
    return (
        text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")
    )


def _format_bugs(
    referenced: list[str], unverified: list[str], tracker_url: str, component: str
) -> str:
    if not referenced:
        return "<p>No JBS bugs referenced in PR commit message, branch name, or title.</p>"

    base = tracker_url.rstrip("/")
    links = " | ".join(
        f'<a href="{_esc(base)}/browse/{_esc(bug)}">{_esc(bug)}</a>' for bug in referenced
    )
    parts = [f"<p>JBS bugs referenced by PR: {links}</p>"]

    if unverified:
        statuses = ", ".join(f"&quot;{_esc(s)}&quot;" for s in OPEN_STATUSES)
        parts.append(
            "<p>JBS bugs referenced by PR that could not be found: "
            f"{_esc(', '.join(unverified))}</p>"
        )
        parts.append(
            "<p>Make sure for each of the above bugs that they are:</p>"
            f"<ul><li>For the &quot;{_esc(component)}&quot; component.</li>"
            f"<li>Status is one of {statuses}.</li></ul>"
        )
    return "\n".join(parts)


def _format_artifacts(ctx: PullRequestContext) -> str:
    parts = [
        '<p>Mercurial patch: <a href="./patch/hg.patch">View</a></p>',
        '<p>git patch: <a href="./patch/git.patch">View</a></p>',
    ]
    if ctx.rejects:
        items = "".join(
            f'<li><a href="./rejects/{_esc(p.name)}">{_esc(p.name)}</a></li>' for p in ctx.rejects
        )
        parts.append(f"<p>Rejected hunks:</p><ul>{items}</ul>")
    else:
        parts.append('<p>Webrev: <a href="./webrev/">View</a></p>')
        lint = ""
        if ctx.lint_clean is False:
            lint = " (reported problems)"
        parts.append(f'<p>jcheck: <a href="./jcheck.txt">View</a>{lint}</p>')
    return "\n".join(parts)
