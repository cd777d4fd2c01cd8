"""Bug reference resolver — extract ``JDK-nnnnnnn`` ids and verify them in Jira."""

from mirrorbot.engines.bug_resolver.ref_parser import bug_number, extract_bug_ids
from mirrorbot.engines.bug_resolver.resolver import BugResolution, BugResolver
from mirrorbot.engines.bug_resolver.tracker import JiraClient, build_jql

__all__ = [
    "BugResolution",
    "BugResolver",
    "JiraClient",
    "bug_number",
    "build_jql",
    "extract_bug_ids",
]
