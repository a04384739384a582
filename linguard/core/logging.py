"""structlog on top of stdlib logging, for library callers and tests alike."""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

from linguard.exceptions import ConfigError

_FORMATS = ("console", "json")

# Chatty transport loggers, capped regardless of the linguard level.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _pre_chain(log_format: str) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
    else:
        processors.append(structlog.processors.format_exc_info)
    processors.append(structlog.processors.UnicodeDecoder())
    return processors


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog events through a single stderr handler.

    Arguments left as None come from the environment:
        LINGUARD_LOG_LEVEL  : level for the ``linguard`` loggers (default: INFO)
        LINGUARD_LOG_FORMAT : console | json (default: console)
    """
    level = (level or os.environ.get("LINGUARD_LOG_LEVEL") or "INFO").upper()
    log_format = (log_format or os.environ.get("LINGUARD_LOG_FORMAT") or "console").lower()
    if log_format not in _FORMATS:
        raise ConfigError(f"LINGUARD_LOG_FORMAT must be one of {_FORMATS}, got {log_format!r}")

    pre_chain = _pre_chain(log_format)
    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers = {"linguard": {"level": level}}
    loggers.update({name: {"level": "WARNING"} for name in _QUIET_LOGGERS})
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "linguard": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": pre_chain,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "linguard",
                },
            },
            "root": {"handlers": ["stderr"], "level": "WARNING"},
            "loggers": loggers,
        }
    )
