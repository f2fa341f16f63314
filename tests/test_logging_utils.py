"""Tests for logging setup and JSONL formatting."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from feed_harvest.config import LoggingConfig
from feed_harvest.logging_utils import JsonlFormatter, log_event, setup_logging


def test_jsonl_formatter_includes_extra_fields():
    record = logging.LogRecord("feed_harvest", logging.INFO, __file__, 1, "Run done", None, None)
    record.event = "run_done"
    record.source = "greenpeace_ph"
    payload = json.loads(JsonlFormatter().format(record))

    assert payload["message"] == "Run done"
    assert payload["level"] == "INFO"
    assert payload["event"] == "run_done"
    assert payload["source"] == "greenpeace_ph"
    assert "lineno" not in payload


def test_setup_logging_writes_jsonl_file(tmp_path: Path):
    cfg = LoggingConfig(level="DEBUG", console=False, file=True, format="jsonl")
    logger = setup_logging(cfg, tmp_path)
    log_event(logger, "Enrich failed", level=logging.WARNING, event="enrich_failed", url="https://example.com/a")
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / cfg.filename).read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["event"] == "enrich_failed"
    assert payload["url"] == "https://example.com/a"


def test_setup_logging_without_file(tmp_path: Path):
    logger = setup_logging(LoggingConfig(console=False, file=False), tmp_path)
    assert logger.handlers == []
    assert not (tmp_path / "harvest.jsonl").exists()


def test_log_event_ignores_missing_logger():
    log_event(None, "nothing", event="noop")



def test_setup_logging_replaces_previous_handlers(tmp_path: Path):
    cfg = LoggingConfig(console=True, file=True, format="plain")
    setup_logging(cfg, tmp_path)
    logger = setup_logging(cfg, tmp_path)
    assert len(logger.handlers) == 2
    setup_logging(LoggingConfig(console=False, file=False), None)


def test_jsonl_formatter_keeps_non_ascii():
    record = logging.LogRecord("feed_harvest", logging.INFO, __file__, 1, "Première", None, None)
    assert "Première" in JsonlFormatter().format(record)
