from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import TYPE_CHECKING, Any, Dict, Iterable, Sequence

from settings import Settings, get_settings

if TYPE_CHECKING:
    from models.records import GroupKey

_DEFAULT_EXTRA_KEYS = (
    "site",
    "day",
    "unit_id",
    "variable",
    "row_key",
    "row_number",
    "reason",
    "status",
    "processing_ms",
    "row_count",
    "dropped_rows",
    "group_count",
    "failure_count",
    "invalid_value",
)

_configured = False


class ContextualFormatter(logging.Formatter):
    """Formatter that appends known ``extra`` fields as ``key=value`` pairs."""

    converter = time.gmtime

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
        context_parts: list[str] = []
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def group_context(key: "GroupKey", **fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping used when logging about one entity-group."""
    context: Dict[str, Any] = {"site": key.site, "day": key.day, "unit_id": key.unit_id}
    context.update(fields)
    return context


def configure_logging(
    level: str | int | None = None, settings: Settings | None = None
) -> None:
    """Configure application-wide logging with contextual formatting."""
    global _configured
    if _configured:
        return

    settings = settings or get_settings()
    log_level = level if level is not None else settings.log_level

    dictConfig(
        {
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
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
