"""structlog setup shared by the CLI and the API server.

Environment:
    GITVISION_LOG_LEVEL   DEBUG, INFO, WARNING... (default: INFO)
    GITVISION_LOG_FORMAT  console | json (default: console)
"""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

# third-party loggers that are noisy below WARNING
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(level: str | None = None) -> None:
    """Route structlog events and stdlib records through one stderr handler.

    *level* (the CLI's ``-v``) takes precedence over ``GITVISION_LOG_LEVEL``.
    Command output stays alone on stdout.
    """
    log_level = (level or os.environ.get("GITVISION_LOG_LEVEL", "INFO")).upper()
    pre_chain = _pre_chain()
    formatter = {
        "()": structlog.stdlib.ProcessorFormatter,
        "foreign_pre_chain": pre_chain,
        "processors": [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(os.environ.get("GITVISION_LOG_FORMAT", "console").lower()),
        ],
    }
    loggers = {name: {"level": "WARNING"} for name in _QUIET_LOGGERS}
    loggers["gitvision"] = {"level": log_level}

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"structlog": formatter},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["stderr"], "level": log_level},
            "loggers": loggers,
        }
    )
