"""
JSON output for harvested records.

Records for each source are written as a pretty-printed JSON array to
<output_dir>/<source name>.json. A JSONL run summary is appended so failed
or partially enriched runs can be audited later.
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path
import re

from ..core.types import Record, RunResult

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_stem(name: str) -> str:
    """Turn a source name into a filesystem-safe file stem."""
    stem = _UNSAFE_RE.sub("-", name).strip("-.")
    return stem or "source"


def write_records(records: list[Record], output_dir: Path, name: str) -> Path:
    """Write records as a JSON array and return the file path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{safe_stem(name)}.json"
    payload = [record.to_dict() for record in records]
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return path


def write_run_summary(results: list[RunResult], path: Path) -> Path:
    """Append one JSON line per run result."""
    path.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).isoformat()
    with path.open("a", encoding="utf-8") as handle:
        for result in results:
            line = {
                "timestamp": timestamp,
                "source": result.source,
                "state": result.state.value,
                "failure": result.failure,
                "empty": result.empty,
                "records": len(result.records),
                "stats": result.stats.to_dict(),
                "enrichment_errors": [
                    {"url": outcome.record.url, "status": outcome.status.value, "error": outcome.error}
                    for outcome in result.outcomes
                    if outcome.failed
                ],
            }
            handle.write(json.dumps(line, ensure_ascii=False))
            handle.write("\n")
    return path
