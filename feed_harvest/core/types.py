"""
Core data types for the harvesting pipeline.

This module defines the structures that flow between pipeline stages:
- Record: One article (title, url, date, enriched flag)
- FieldRule / ExtractionRule / EnrichmentRule: Declarative per-site selectors
- ReadinessPolicy: When a rendered page counts as ready for extraction
- SourceConfig: Everything needed to harvest one listing page
- ListingResult / EnrichmentOutcome / RunResult: Stage and run results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UNKNOWN_DATE = "unknown"


@dataclass
class Record:
    """A harvested article record.

    Attributes:
        title: The article headline, never empty
        url: Absolute URL of the article's own page
        date: Publication date as shown by the source, or "unknown"
        enriched: True if the date was recovered from the detail page
    """
    title: str
    url: str
    date: str = UNKNOWN_DATE
    enriched: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "date": self.date,
            "enriched": self.enriched,
        }


@dataclass
class FieldRule:
    """Selector chain and post-processing for a single field.

    Attributes:
        selectors: Ordered CSS expressions; the first one yielding a value wins.
                   ":self" refers to the node the chain is resolved against.
        attribute: Read this attribute instead of the node text
        regex: Keep only the first match (group 1 if the pattern has groups)
        trim: Collapse runs of whitespace and strip the value
        required: Drop the listing item when this optional field is absent
    """
    selectors: list[str]
    attribute: str | None = None
    regex: str | None = None
    trim: bool = True
    required: bool = False


@dataclass
class ReadinessPolicy:
    """Explicit readiness conditions applied after navigation.

    Attributes:
        wait_until: Load state to wait for ("domcontentloaded", "load", "networkidle")
        wait_for: CSS selector that must appear before extraction
        wait_timeout_seconds: Upper bound for the wait_for selector
        scroll_steps: Number of page-height scrolls for lazily loaded lists
    """
    wait_until: str = "domcontentloaded"
    wait_for: str | None = None
    wait_timeout_seconds: float = 15.0
    scroll_steps: int = 0

    def scaled(self, factor: float) -> "ReadinessPolicy":
        """Return a copy with the selector wait stretched by factor."""
        return ReadinessPolicy(
            wait_until=self.wait_until,
            wait_for=self.wait_for,
            wait_timeout_seconds=self.wait_timeout_seconds * factor,
            scroll_steps=self.scroll_steps,
        )


@dataclass
class ExtractionRule:
    """How to turn a listing page into candidate records.

    Attributes:
        container: Chain locating one node per candidate item
        title: Field rule for the title, resolved inside each container
        link: Field rule for the link (usually attribute "href")
        date: Optional field rule for a date shown on the listing
        base_url: Base for relative links; defaults to the listing page URL
    """
    container: list[str]
    title: FieldRule
    link: FieldRule
    date: FieldRule | None = None
    base_url: str | None = None


@dataclass
class EnrichmentRule:
    """How to recover the date from an item's own page.

    Attributes:
        date: Field rule resolved against the whole detail document
        fallback: Sentinel attached when enrichment fails
        readiness: Readiness policy for detail pages
        force: Visit every item, not only those missing a date
    """
    date: FieldRule
    fallback: str = UNKNOWN_DATE
    readiness: ReadinessPolicy = field(default_factory=ReadinessPolicy)
    force: bool = False


@dataclass
class SourceConfig:
    """One configured listing source.

    Attributes:
        name: Unique source name, also used as the output file stem
        listing_url: Absolute URL of the listing page
        extraction: Listing extraction rule
        enrichment: Optional detail-page enrichment rule
        readiness: Readiness policy for the listing page
        dedup_key: "url" (normalized URL) or "title_url" for unstable URLs
        batch: Per-source overrides of the global batch settings
    """
    name: str
    listing_url: str
    extraction: ExtractionRule
    enrichment: EnrichmentRule | None = None
    readiness: ReadinessPolicy = field(default_factory=ReadinessPolicy)
    dedup_key: str = "url"
    batch: dict[str, Any] = field(default_factory=dict)


class ListingStatus(str, Enum):
    OK = "ok"
    NO_ITEMS_FOUND = "no_items_found"


@dataclass
class ListingResult:
    """Raw candidates from one listing page, in document order.

    Attributes:
        records: Candidate records, not yet deduplicated or truncated
        status: NO_ITEMS_FOUND when the container chain matched nothing
        containers: Number of container nodes matched
        field_absent: Per-field count of containers where a chain missed
        dropped: Containers dropped for a missing title or unusable link
    """
    records: list[Record]
    status: ListingStatus = ListingStatus.OK
    containers: int = 0
    field_absent: dict[str, int] = field(default_factory=dict)
    dropped: int = 0

    @property
    def empty(self) -> bool:
        return self.status is ListingStatus.NO_ITEMS_FOUND


class EnrichmentStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    TIMEOUT = "timeout"
    NAVIGATION_ERROR = "navigation_error"
    FIELD_ABSENT = "field_absent"


@dataclass
class EnrichmentOutcome:
    """Result of enriching one record; status is never an exception."""
    record: Record
    status: EnrichmentStatus
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status not in (EnrichmentStatus.OK, EnrichmentStatus.SKIPPED)


class RunState(str, Enum):
    IDLE = "idle"
    LISTING_FETCHED = "listing_fetched"
    EXTRACTED = "extracted"
    DEDUPLICATED = "deduplicated"
    TRUNCATED = "truncated"
    ENRICHING = "enriching"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunStats:
    """Counters collected during one pipeline run."""
    candidates: int = 0
    unique: int = 0
    kept: int = 0
    enriched: int = 0
    enrichment_failed: int = 0
    listing_attempts: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "candidates": self.candidates,
            "unique": self.unique,
            "kept": self.kept,
            "enriched": self.enriched,
            "enrichment_failed": self.enrichment_failed,
            "listing_attempts": self.listing_attempts,
        }


@dataclass
class RunResult:
    """Outcome of one pipeline run.

    A run either reaches DONE with a (possibly empty) record list, or FAILED
    with exactly one failure reason and no records.
    """
    source: str
    state: RunState
    records: list[Record] = field(default_factory=list)
    failure: str | None = None
    empty: bool = False
    outcomes: list[EnrichmentOutcome] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)
    state_history: list[RunState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE
