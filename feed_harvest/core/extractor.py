"""
Listing-page extraction.

Turns a rendered listing document and an ExtractionRule into raw candidate
records in document order. Items without a title, a usable absolute link or
a date marked required are dropped silently; partial pages are expected, not
errors.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlsplit

from ..render.document import Document
from .selectors import resolve_field, resolve_nodes
from .types import UNKNOWN_DATE, ExtractionRule, ListingResult, ListingStatus, Record

logger = logging.getLogger("feed_harvest.extractor")

_SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


def extract_listing(document: Document, rule: ExtractionRule) -> ListingResult:
    """Extract candidate records from a listing document.

    Args:
        document: Rendered listing page
        rule: Container chain and field rules for this source

    Returns:
        ListingResult with candidates in document order. Zero container
        matches yield an empty result with status NO_ITEMS_FOUND.
    """
    containers = resolve_nodes(document, rule.container)
    if not containers:
        logger.debug("No containers matched %s on %s", rule.container, document.url)
        return ListingResult(records=[], status=ListingStatus.NO_ITEMS_FOUND)

    base_url = rule.base_url or document.url
    result = ListingResult(records=[], containers=len(containers))

    for container in containers:
        title = resolve_field(container, rule.title)
        if not title:
            _count_absent(result, "title")
            result.dropped += 1
            continue

        href = resolve_field(container, rule.link)
        url = absolutize(href, base_url) if href else None
        if not url:
            if not href:
                _count_absent(result, "link")
            result.dropped += 1
            continue

        date = UNKNOWN_DATE
        if rule.date is not None:
            inline = resolve_field(container, rule.date)
            if inline:
                date = inline
            else:
                _count_absent(result, "date")
                if rule.date.required:
                    result.dropped += 1
                    continue

        result.records.append(Record(title=title, url=url, date=date))

    return result


def absolutize(href: str, base_url: str) -> str | None:
    """Resolve a link against a base URL.

    Returns None for links that cannot identify an article page
    (javascript:, mailto:, fragment-only, or a non-http result).
    """
    href = href.strip()
    if not href or href.startswith("#"):
        return None
    if href.lower().startswith(_SKIPPED_SCHEMES):
        return None
    url = urljoin(base_url, href)
    if not is_absolute_http_url(url):
        return None
    return url


def is_absolute_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
        parts.port  # raises on a malformed port
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _count_absent(result: ListingResult, field: str) -> None:
    result.field_absent[field] = result.field_absent.get(field, 0) + 1
