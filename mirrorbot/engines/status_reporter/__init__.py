"""Status reporter — render the status page, publish the commit status."""

from mirrorbot.engines.status_reporter.reporter import StatusReporter
from mirrorbot.engines.status_reporter.template import render_status_page

__all__ = ["StatusReporter", "render_status_page"]
