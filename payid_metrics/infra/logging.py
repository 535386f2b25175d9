"""Structured logging helpers shared by the metrics package."""

from __future__ import annotations

import logging
from typing import Any, Mapping

ROOT_LOGGER_NAME = "payid_metrics"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_HANDLER_MARKER = "_payid_metrics_handler"


class KeyValueFormatter(logging.Formatter):
    """Append ``extra`` fields to the rendered message as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not fields:
            return rendered
        pairs = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{rendered} {pairs}"


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the package root logger."""

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(settings: Mapping[str, Any] | None = None) -> logging.Logger:
    """Install a single stream handler on the package root logger.

    Calling this again only updates the level and format.
    """

    settings = settings or {}
    level = str(settings.get("level", DEFAULT_LOG_LEVEL)).upper()
    fmt = str(settings.get("format", DEFAULT_LOG_FORMAT))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    handler = next(
        (h for h in root.handlers if getattr(h, _HANDLER_MARKER, False)), None
    )
    if handler is None:
        handler = logging.StreamHandler()
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)
    handler.setFormatter(KeyValueFormatter(fmt))
    return root
