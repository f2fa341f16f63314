"""
Record deduplication by identity key, with optional fuzzy title matching.

This module removes duplicate candidates based on:
1. An identity key (normalized URL, or title + normalized URL for sources
   whose URLs carry unstable tracking parts)
2. Optionally, fuzzy title similarity against already kept records

Deduplication must run before the batch is truncated; otherwise duplicates
take up slots that unique items should have had.
"""

from __future__ import annotations

from typing import Callable, Hashable
from urllib.parse import urlsplit, urlunsplit

from rapidfuzz import fuzz

from .errors import ConfigError
from .types import Record

KeyFunc = Callable[[Record], Hashable]

_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str) -> str:
    """Normalize a URL for identity comparison.

    Lower-cases scheme and host, drops default ports, the fragment and a
    trailing slash on non-root paths. The query string is kept since many
    listing sites address articles by query parameters.

    Examples:
        >>> normalize_url("HTTPS://Example.com:443/news/a/#top")
        'https://example.com/news/a'
    """
    parts = urlsplit(url.strip())
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port
    netloc = host
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{host}:{port}"
    path = parts.path or "/"
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return urlunsplit((scheme, netloc, path, parts.query, ""))


def url_key(record: Record) -> Hashable:
    return normalize_url(record.url)


def title_url_key(record: Record) -> Hashable:
    return (record.title.strip().lower(), normalize_url(record.url))


_KEY_FUNCS: dict[str, KeyFunc] = {
    "url": url_key,
    "title_url": title_url_key,
}


def available_keys() -> list[str]:
    return sorted(_KEY_FUNCS.keys())


def key_func(name: str) -> KeyFunc:
    """Look up a key function by its configured name."""
    func = _KEY_FUNCS.get(name)
    if func is None:
        supported = ", ".join(available_keys())
        raise ConfigError(f"Unknown dedup key: {name}. Supported: {supported}")
    return func


def dedup_records(
    records: list[Record],
    key: KeyFunc = url_key,
    title_similarity_threshold: int | None = None,
) -> list[Record]:
    """Remove duplicate records, first occurrence wins.

    Args:
        records: Candidates in listing order
        key: Identity key function
        title_similarity_threshold: If set (0-100), also drop records whose
            title is at least this similar to an already kept title

    Returns:
        Deduplicated records, preserving original order
    """
    seen: set[Hashable] = set()
    kept: list[Record] = []
    titles: list[str] = []

    for record in records:
        identity = key(record)
        if identity in seen:
            continue
        if title_similarity_threshold is not None and _is_similar_title(
            record.title, titles, title_similarity_threshold
        ):
            continue
        seen.add(identity)
        titles.append(record.title)
        kept.append(record)

    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    """Check if a title is similar to any title in the given list.

    Uses rapidfuzz's ratio, a normalized Levenshtein similarity in 0-100.
    """
    for existing in titles:
        if fuzz.ratio(title, existing) >= threshold:
            return True
    return False
