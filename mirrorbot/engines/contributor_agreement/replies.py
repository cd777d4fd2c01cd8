"""Comment and reply texts posted on pull requests."""

from __future__ import annotations


def found_username(signature: str, bot_username: str) -> str:
    return (
        "We attempted to determine if you have signed the Oracle Contributor Agreement (OCA) "
        f"and found a signatory with your GitHub username: `{signature}`. **If that's you**, "
        f"add a comment on this PR saying: `@{bot_username} Yes, that's me`. **Otherwise, "
        "if that's not you**:\n\n"
    )


def not_found_username() -> str:
    return (
        "We attempted to determine if you have signed the Oracle Contributor Agreement (OCA) "
        "but could not find a signature line with your GitHub username.\n\n"
    )


def instructions(bot_username: str, oca_url: str) -> str:
    return (
        "**If you have already signed the OCA**:\n"
        "Add a comment on this PR saying: "
        f'`@{bot_username} I have signed the OCA under the name "{{name}}"` '
        "where `{name}` is the first, name-like part of an OCA signature line. "
        "For example, the signature line `John Smith - OpenJFX - jsmith` has a first, "
        "name-like part of `John Smith`.\n\n"
        "**If you have never signed the OCA before:**\n"
        f"Follow the instructions at {oca_url} for doing so. Make sure to fill out the "
        "username portion of the form with your GitHub username. Once you have signed the "
        "OCA and your name has been added to the list of signatures, add a comment on this "
        "PR saying: "
        f"`@{bot_username} I have now signed the OCA using my GitHub username`."
    )


def first_contact(author: str, signature: str | None, bot_username: str, oca_url: str) -> str:
    """The comment posted when a PR author's agreement status is first checked."""
    lead = found_username(signature, bot_username) if signature else not_found_username()
    return f"@{author} {lead}{instructions(bot_username, oca_url)}"


# ── replies to comments ───────────────────────────────────────────────────


def confirmed_identity() -> str:
    return "Okay, thanks. We won't ask again."


def found_name(name: str) -> str:
    return (
        "Okay, thanks :thumbsup:. We have updated our records that you have signed the OCA "
        f"under the name `{name}`."
    )


def not_found_name(name: str, bot_username: str, oca_url: str) -> str:
    return (
        f"You said that you signed the OCA under your name `{name}`, but we weren't able to find "
        f"that name on the [OCA signatures page]({oca_url}) :flushed:. Make sure it is correct and "
        "try again with the correct name by adding a comment to this PR of the form: "
        f'`@{bot_username} I have signed the OCA under the name "{{name}}"`.'
    )


def name_not_quoted(bot_username: str) -> str:
    return (
        "Sorry, we could not understand your response because we could not find a name in double "
        "quotes. Please try again by adding a comment to this PR of the form: "
        f'`@{bot_username} I have signed the OCA under the name "{{name}}"`.'
    )


def found_username_claim() -> str:
    return (
        "Okay, thanks :thumbsup:. We have updated our records that you have signed the OCA "
        "using your GitHub username."
    )


def not_found_username_claim(username: str, bot_username: str, oca_url: str) -> str:
    return (
        f"You said that you signed the OCA under your GitHub username `{username}`, but we weren't "
        f"able to find that username on the [OCA signatures page]({oca_url}) :flushed:. Make sure "
        "it is correct and try again by adding a comment to this PR of the form: "
        f"`@{bot_username} I have now signed the OCA using my GitHub username`."
    )


def not_understood() -> str:
    return "Sorry, we could not understand your response :confused:."
