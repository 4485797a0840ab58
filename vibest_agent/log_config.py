"""Structlog configuration shared by the agent server, Uvicorn and the SDK."""

from __future__ import annotations

import logging
import logging.config
import sys

import structlog

from vibest_agent.settings import settings

# Stdlib loggers rendered through the structlog formatter instead of their own
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "claude_agent_sdk")


def _add_uvicorn_access_fields(
    logger: logging.Logger | None, name: str, event_dict: dict
) -> dict:
    """Split a uvicorn.access record's positional args into structured fields."""
    record = event_dict.get("_record")
    if not record or record.name != "uvicorn.access":
        return event_dict
    args = record.args
    if isinstance(args, tuple) and len(args) >= 5:
        client_addr, method, path, http_version, status_code = args[:5]
        event_dict.update(
            client_addr=client_addr,
            method=method,
            path=path,
            http_version=http_version,
            status_code=status_code,
        )
    return event_dict


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging() -> None:
    """Configure structlog + stdlib logging from ``VIBEST_AGENT_LOG_*`` settings."""
    log_level = getattr(logging, settings.log_level(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_renderer(settings.log_format()),
        foreign_pre_chain=shared_processors + [_add_uvicorn_access_fields],
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"()": lambda: formatter}},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": sys.stdout,
                }
            },
            "root": {"handlers": ["default"], "level": log_level},
            "loggers": {
                name: {"handlers": ["default"], "level": log_level, "propagate": False}
                for name in _ROUTED_LOGGERS
            },
        }
    )
