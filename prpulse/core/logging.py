"""structlog on top of stdlib logging, rendered to stderr.

Environment:
    PRPULSE_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR (default: INFO)
    PRPULSE_LOG_FORMAT  console | json (default: console)

stdout belongs to the CLI's own output (``prpulse once --json`` is piped),
so every log line goes to stderr.
"""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# chatty third-party loggers, capped regardless of PRPULSE_LOG_LEVEL
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def _resolve_level(override: str | None) -> str:
    level = (override or os.environ.get("PRPULSE_LOG_LEVEL") or "INFO").upper()
    return level if level in _LEVELS else "INFO"


def _processors() -> list[structlog.types.Processor]:
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
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(level: str | None = None) -> None:
    """Route structlog through stdlib logging. *level* beats the env var."""
    log_level = _resolve_level(level)
    chain = _processors()

    structlog.configure(
        processors=[*chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = {
        "()": structlog.stdlib.ProcessorFormatter,
        "foreign_pre_chain": chain,
        "processors": [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(os.environ.get("PRPULSE_LOG_FORMAT", "console").lower()),
        ],
    }
    loggers = {name: {"level": "WARNING"} for name in _QUIET_LOGGERS}
    loggers["prpulse"] = {"level": log_level}

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
