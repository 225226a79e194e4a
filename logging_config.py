from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "identifier",
    "raw_value",
    "reading",
    "reason",
    "source",
    "policy",
    "telegram_count",
    "line_count",
)

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends whitelisted ``extra`` attributes to the message as key=value pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts = [
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        ]
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def build_logging_config(level: str | int | None = None) -> Dict[str, Any]:
    """Return the dictConfig payload shared by the service and the uvicorn server."""
    log_level = level if level is not None else get_settings().log_level
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "style": "%",
                "extra_keys": list(_DEFAULT_EXTRA_KEYS),
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "contextual",
            }
        },
        "loggers": {
            "uvicorn": {"handlers": ["default"], "level": log_level, "propagate": False},
            "uvicorn.access": {"handlers": ["default"], "level": "WARNING", "propagate": False},
        },
        "root": {"handlers": ["default"], "level": log_level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured:
        return

    dictConfig(build_logging_config(level))
    _configured = True
