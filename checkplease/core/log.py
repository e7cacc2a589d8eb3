"""
Logging
"""

# pyright: basic

import logging
import sys

from asgi_correlation_id.context import correlation_id
from loguru import logger

from checkplease.core.config import settings
from checkplease.schema.log_entry import LogEntry

__all__ = (
    "log_serializer",
    "logger",
    "sink",
    "uvicorn_log_config",
)

_LEVEL = "DEBUG" if settings.DEBUG else "INFO"


class InterceptHandler(logging.Handler):
    """Route stdlib logging (uvicorn, taskiq, botocore) into loguru."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_back and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


uvicorn_log_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "correlation_id": {
            "()": "asgi_correlation_id.CorrelationIdFilter",
            "default_value": "",
        },
    },
    "formatters": {
        "default": {
            "format": '{"asctime":"%(asctime)s","levelname":"%(levelname)s","message":"%(correlation_id)s - %(name)s - %(message)s"}',
        },
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "stream": "ext://sys.stdout",
            "filters": ["correlation_id"],
        },
    },
    "loggers": {
        "uvicorn": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.access": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["default"], "level": "ERROR", "propagate": False},
    },
    "root": {"handlers": ["default"], "level": _LEVEL},
}


def log_serializer(record) -> str:
    """
    Serialize a loguru record to a single JSON line.

    Worker-side messages carry no request correlation id; they are tagged with
    the fixity check record id bound through ``logger.contextualize``.
    """

    cid = correlation_id.get() or record["extra"].get("record_id", "")
    message = record["message"]
    if len(message) > settings.LOG_MESSAGE_MAX_LEN:
        message = message[: settings.LOG_MESSAGE_MAX_LEN - 3] + "..."

    log_entry = LogEntry(
        asctime=record["time"],
        levelname=record["level"].name,
        message=f"{cid} - {record['name']} - {message}",
        exception=repr(record["exception"].value) if record["exception"] else None,
    )

    return log_entry.model_dump_json(exclude_none=True)


def sink(message) -> None:
    sys.stdout.write(log_serializer(message.record) + "\n")
    sys.stdout.flush()


logger.remove()
logger.add(sink, level=_LEVEL)

logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO)
# botocore is chatty at INFO (credential lookups, retries)
logging.getLogger("botocore").setLevel(logging.WARNING)
