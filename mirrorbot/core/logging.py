"""Structured logging for the bot: structlog rendered through stdlib handlers.

Environment:
    MIRRORBOT_LOG_LEVEL   bot log level (default: INFO)
    MIRRORBOT_LOG_FORMAT  console | json | auto (default: auto, json unless stdout is a TTY)
    MIRRORBOT_ACCESS_LOG  truthy to keep uvicorn's per-request access lines
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
from typing import Any

import structlog

_FORMATS = ("console", "json")
_SECRET_KEYS = frozenset({"token", "github_token", "webhook_secret", "authorization", "signature"})
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _resolve_format(raw: str | None, isatty: bool) -> str:
    value = (raw or "auto").strip().lower()
    if value in _FORMATS:
        return value
    return "console" if isatty else "json"


def _redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in _SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def setup_logging() -> None:
    """Configure structlog and the stdlib loggers the server touches.

    ``pr`` and ``head_sha`` bound by the pipeline travel on every line via
    contextvars, so webhook deliveries can be followed across engines.
    """
    log_level = os.environ.get("MIRRORBOT_LOG_LEVEL", "INFO").upper()
    log_format = _resolve_format(os.environ.get("MIRRORBOT_LOG_FORMAT"), sys.stdout.isatty())
    access_log = os.environ.get("MIRRORBOT_ACCESS_LOG", "").strip().lower() in _TRUTHY

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["default"], "level": "WARNING"},
            "loggers": {
                "mirrorbot": {"level": log_level},
                "uvicorn.access": {"level": "INFO" if access_log else "WARNING"},
                "uvicorn.error": {"level": "INFO"},
                "httpx": {"level": "WARNING"},
                "httpcore": {"level": "WARNING"},
            },
        }
    )
