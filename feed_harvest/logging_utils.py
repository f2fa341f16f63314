"""
Logging setup for harvest runs.

Console output goes through rich. The optional log file under the output
directory gets one JSON object per line, carrying the structured fields
passed to log_event().
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig

# Attributes every LogRecord carries; anything else arrived through `extra`
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig, output_dir: Path | None) -> logging.Logger:
    """Configure the feed_harvest logger for one CLI invocation.

    Handlers installed by an earlier call are closed and replaced.
    """
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger("feed_harvest")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    if cfg.console:
        console = RichHandler(rich_tracebacks=True, show_time=False, markup=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console)

    if cfg.file and output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(output_dir / cfg.filename, encoding="utf-8")
        if cfg.format == "jsonl":
            file_handler.setFormatter(JsonlFormatter())
        else:
            file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(file_handler)

    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log message with fields attached as record attributes."""
    if logger is not None:
        logger.log(level, message, extra=fields)


class JsonlFormatter(logging.Formatter):
    """Formats a record as a single JSON line including its extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in record.__dict__.items() if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
