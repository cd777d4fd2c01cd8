"""CLI entry point: mirrorbot.

Subcommands:
    mirrorbot serve                       # Run the webhook server
    mirrorbot translate 0001-fix.patch    # Print the hg version of a git patch
    mirrorbot classify "Yes, that's me"   # Show how a PR comment is understood
"""

from __future__ import annotations

import os
import sys

import click

from mirrorbot.engines.contributor_agreement import ClaimSignedWithName, classify, strip_mention
from mirrorbot.engines.patch_translator import translate
from mirrorbot.exceptions import MalformedPatchError


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """mirrorbot — upstream mergeability checks for mirror pull requests."""
    if verbose:
        os.environ["MIRRORBOT_LOG_LEVEL"] = "DEBUG"


@main.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address")
@click.option("--port", default=8433, show_default=True, type=int, help="Bind port")
def serve(host: str, port: int) -> None:
    """Run the webhook server."""
    import uvicorn

    from mirrorbot.api import create_app

    if not (os.environ.get("MIRRORBOT_GH_TOKEN") or os.environ.get("jfxmirror_gh_token")):
        click.echo("Error: MIRRORBOT_GH_TOKEN is not set.", err=True)
        sys.exit(1)
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


@main.command("translate")
@click.argument("patch_file", type=click.File("r", encoding="utf-8"))
def translate_cmd(patch_file) -> None:
    """Print PATCH_FILE (git format-patch output) as an hg changeset patch."""
    try:
        click.echo(translate(patch_file.read()), nl=False)
    except MalformedPatchError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command("classify")
@click.argument("text")
@click.option("--bot", default="jfxmirror-bot", show_default=True, help="Bot username")
def classify_cmd(text: str, bot: str) -> None:
    """Show which intent a PR comment TEXT maps to."""
    stripped = strip_mention(text, bot)
    if stripped is None and text.lstrip().startswith("@"):
        click.echo(f"Not addressed to @{bot}")
        return
    intent = classify(stripped if stripped is not None else text)
    line = type(intent).__name__
    if isinstance(intent, ClaimSignedWithName):
        line += f" (name={intent.name!r})"
    click.echo(line)


if __name__ == "__main__":
    main()
