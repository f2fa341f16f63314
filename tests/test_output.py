"""Tests for record and run summary output."""

from __future__ import annotations

import json
from pathlib import Path

from feed_harvest.core.types import (
    EnrichmentOutcome,
    EnrichmentStatus,
    Record,
    RunResult,
    RunState,
)
from feed_harvest.output.writer import safe_stem, write_records, write_run_summary


def test_write_records_outputs_json_array(tmp_path: Path) -> None:
    records = [
        Record(title="Première annonce", url="https://example.com/a", date="1 mai 2024"),
        Record(title="B", url="https://example.com/b", enriched=True, date="2 May 2024"),
    ]
    path = write_records(records, tmp_path / "out", "greenpeace ph")

    assert path.name == "greenpeace-ph.json"
    text = path.read_text(encoding="utf-8")
    assert "Première annonce" in text
    data = json.loads(text)
    assert data == [
        {"title": "Première annonce", "url": "https://example.com/a", "date": "1 mai 2024", "enriched": False},
        {"title": "B", "url": "https://example.com/b", "date": "2 May 2024", "enriched": True},
    ]


def test_write_records_empty_list(tmp_path: Path) -> None:
    path = write_records([], tmp_path, "empty")
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_safe_stem():
    assert safe_stem("asa_rulings") == "asa_rulings"
    assert safe_stem("../../etc/passwd") == "etc-passwd"
    assert safe_stem("///") == "source"


def test_write_run_summary_appends_lines(tmp_path: Path) -> None:
    failed = RunResult(source="down", state=RunState.FAILED, failure="NavigationError: HTTP 500")
    record = Record(title="B", url="https://example.com/b")
    done = RunResult(
        source="up",
        state=RunState.DONE,
        records=[record],
        outcomes=[EnrichmentOutcome(record=record, status=EnrichmentStatus.TIMEOUT, error="slow")],
    )
    path = tmp_path / "runs.jsonl"
    write_run_summary([failed], path)
    write_run_summary([done], path)

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [line["source"] for line in lines] == ["down", "up"]
    assert lines[0]["state"] == "failed"
    assert lines[0]["failure"] == "NavigationError: HTTP 500"
    assert lines[1]["records"] == 1
    assert lines[1]["enrichment_errors"] == [
        {"url": "https://example.com/b", "status": "timeout", "error": "slow"}
    ]
    assert "timestamp" in lines[1]
