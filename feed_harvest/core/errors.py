"""
Error taxonomy for the harvesting pipeline.

Only listing-stage navigation faults and renderer unavailability end a run.
Everything else is absorbed per field or per record:
- NavigationError / NavigationTimeout: a page could not be rendered
- RendererUnavailable: no page context can be obtained at all
- Zero container matches are not an error: ListingResult.status is
  NO_ITEMS_FOUND (benign-empty)
- FieldAbsent: a field chain matched nothing (resolved via sentinel)
- EnrichmentTimeout / EnrichmentNavigationError: soft failure of one record
- ConfigError: invalid configuration or source definition
"""

from __future__ import annotations


class HarvestError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(HarvestError):
    """Raised when configuration or a source definition is invalid."""


class NavigationError(HarvestError):
    """Raised by a renderer when a page cannot be navigated or rendered.

    Attributes:
        url: The URL being rendered
        status_code: HTTP status if the failure came with one
    """

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class NavigationTimeout(NavigationError):
    """Navigation or readiness wait exceeded its timeout."""


class RendererUnavailable(HarvestError):
    """No page context could be obtained from the rendering engine."""


class FieldAbsent(HarvestError):
    """A field chain matched nothing on a node."""

    def __init__(self, field: str, url: str | None = None):
        where = f" on {url}" if url else ""
        super().__init__(f"Field '{field}' absent{where}")
        self.field = field
        self.url = url


class EnrichmentTimeout(HarvestError):
    """Detail-page enrichment for one record timed out."""


class EnrichmentNavigationError(HarvestError):
    """Detail-page navigation for one record failed."""
