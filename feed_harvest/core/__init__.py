"""
Core extraction logic.

This package contains the data types and the synchronous stages of the
pipeline: selector chains, listing extraction and deduplication. Nothing
here performs I/O.
"""

from .dedup import dedup_records, normalize_url, title_url_key, url_key
from .extractor import extract_listing
from .selectors import resolve_field, resolve_node, resolve_nodes
from .types import (
    UNKNOWN_DATE,
    EnrichmentRule,
    ExtractionRule,
    FieldRule,
    ReadinessPolicy,
    Record,
    RunResult,
    RunState,
    SourceConfig,
)

__all__ = [
    "UNKNOWN_DATE",
    "EnrichmentRule",
    "ExtractionRule",
    "FieldRule",
    "ReadinessPolicy",
    "Record",
    "RunResult",
    "RunState",
    "SourceConfig",
    "dedup_records",
    "extract_listing",
    "normalize_url",
    "resolve_field",
    "resolve_node",
    "resolve_nodes",
    "title_url_key",
    "url_key",
]
