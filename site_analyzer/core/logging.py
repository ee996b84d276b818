"""
Structured logging using structlog.
JSON lines for workers in production, colored console while developing.

Run-scoped context (analysis id, domain) is carried in contextvars so every
event emitted during a crawl is tagged without threading loggers around.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict

from site_analyzer.core.config import get_settings

SERVICE_NAME = "site-analyzer"

_NOISY_LOGGERS = ("asyncio", "httpx", "httpcore", "sqlalchemy.engine", "celery")


def add_severity(logger: Any, method: str, event_dict: EventDict) -> EventDict:
    """Mirror the level into a `severity` key for log aggregators."""
    event_dict["severity"] = method.upper() if method != "warn" else "WARNING"
    return event_dict


def add_service(logger: Any, method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging() -> None:
    settings = get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_severity,
        add_service,
    ]

    if settings.LOG_FORMAT == "json":
        renderer_chain = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_chain = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + renderer_chain,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    if settings.ENV == "production":
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def bind_run_context(analysis_id: str, domain: str) -> None:
    """Tag every subsequent event in this context with the running analysis."""
    structlog.contextvars.bind_contextvars(analysis_id=analysis_id, domain=domain)


def clear_run_context() -> None:
    structlog.contextvars.unbind_contextvars("analysis_id", "domain")
