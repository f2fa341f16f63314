"""
Loading per-site source definitions from YAML.

Each site is described as data: a listing URL, a container chain, field
rules and an optional enrichment rule. Example:

    sources:
      - name: greenpeace_ph
        listing_url: https://www.greenpeace.org/philippines/press/
        readiness:
          wait_for: div.query-list-item-body
        extraction:
          container: div.query-list-item-body
          title: h4.query-list-item-headline a
          link: h4.query-list-item-headline a
          date: div.wp-block-post-date

A field rule may be a selector string, a list of selectors, or a mapping
with selectors/attribute/regex/trim. Link rules read the href attribute
unless another attribute is given.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
import re
from typing import Any

import yaml

from .config import BatchConfig, check_number, resolve_batch
from .core.dedup import available_keys
from .core.errors import ConfigError
from .core.extractor import is_absolute_http_url
from .core.types import (
    UNKNOWN_DATE,
    EnrichmentRule,
    ExtractionRule,
    FieldRule,
    ReadinessPolicy,
    SourceConfig,
)

WAIT_UNTIL_STATES = ("domcontentloaded", "load", "networkidle", "commit")


def load_sources(path: str | Path) -> list[SourceConfig]:
    """Load and validate source definitions from a YAML file.

    Raises:
        ConfigError: If the file or any source definition is invalid
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return parse_sources(raw)


def parse_sources(raw: Any) -> list[SourceConfig]:
    """Parse the already-loaded YAML document into SourceConfig objects."""
    if isinstance(raw, dict):
        raw = raw.get("sources", [])
    if not isinstance(raw, list):
        raise ConfigError("Sources file must contain a 'sources' list")

    sources: list[SourceConfig] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        source = parse_source(item, index)
        if source.name in seen:
            raise ConfigError(f"Duplicate source name: {source.name}")
        seen.add(source.name)
        sources.append(source)
    return sources


def parse_source(item: Any, index: int = 0) -> SourceConfig:
    if not isinstance(item, dict):
        raise ConfigError(f"Source #{index} must be a mapping")
    name = str(item.get("name") or "").strip()
    if not name:
        raise ConfigError(f"Source #{index} has no name")

    try:
        listing_url = str(item.get("listing_url") or "").strip()
        if not is_absolute_http_url(listing_url):
            raise ConfigError(f"listing_url must be an absolute http(s) URL, got {listing_url!r}")

        dedup_key = item.get("dedup_key", "url")
        if dedup_key not in available_keys():
            raise ConfigError(f"dedup_key must be one of {', '.join(available_keys())}")

        batch = item.get("batch") or {}
        if not isinstance(batch, dict):
            raise ConfigError("batch must be a mapping")
        resolve_batch(BatchConfig(), batch)

        enrichment = item.get("enrichment")
        return SourceConfig(
            name=name,
            listing_url=listing_url,
            extraction=_parse_extraction(item.get("extraction")),
            enrichment=_parse_enrichment(enrichment) if enrichment else None,
            readiness=_parse_readiness(item.get("readiness")),
            dedup_key=dedup_key,
            batch=dict(batch),
        )
    except ConfigError as exc:
        raise ConfigError(f"Source '{name}': {exc}") from exc


def _parse_extraction(raw: Any) -> ExtractionRule:
    if not isinstance(raw, dict):
        raise ConfigError("extraction must be a mapping")
    container = _selector_list(raw.get("container"), "container")
    if "title" not in raw or "link" not in raw:
        raise ConfigError("extraction needs both title and link rules")
    base_url = raw.get("base_url")
    if base_url is not None and not is_absolute_http_url(str(base_url)):
        raise ConfigError(f"base_url must be an absolute http(s) URL, got {base_url!r}")
    date = raw.get("date")
    return ExtractionRule(
        container=container,
        title=parse_field_rule(raw["title"], "title"),
        link=parse_field_rule(raw["link"], "link", default_attribute="href"),
        date=parse_field_rule(date, "date") if date is not None else None,
        base_url=base_url,
    )


def _parse_enrichment(raw: Any) -> EnrichmentRule:
    if not isinstance(raw, dict):
        raise ConfigError("enrichment must be a mapping")
    if "date" not in raw:
        raise ConfigError("enrichment needs a date rule")
    fallback = str(raw.get("fallback", UNKNOWN_DATE))
    return EnrichmentRule(
        date=parse_field_rule(raw["date"], "enrichment.date"),
        fallback=fallback,
        readiness=_parse_readiness(raw.get("readiness")),
        force=bool(raw.get("force", False)),
    )


def _parse_readiness(raw: Any) -> ReadinessPolicy:
    if raw is None:
        return ReadinessPolicy()
    if not isinstance(raw, dict):
        raise ConfigError("readiness must be a mapping")
    known = {f.name for f in fields(ReadinessPolicy)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown readiness keys: {', '.join(unknown)}")
    policy = ReadinessPolicy(**raw)
    if policy.wait_for is not None and not isinstance(policy.wait_for, str):
        raise ConfigError("wait_for must be a CSS selector string")
    check_number("wait_timeout_seconds", policy.wait_timeout_seconds)
    check_number("scroll_steps", policy.scroll_steps, integer=True)
    if policy.wait_until not in WAIT_UNTIL_STATES:
        raise ConfigError(f"wait_until must be one of {', '.join(WAIT_UNTIL_STATES)}")
    if policy.wait_timeout_seconds <= 0:
        raise ConfigError("wait_timeout_seconds must be positive")
    if policy.scroll_steps < 0:
        raise ConfigError("scroll_steps cannot be negative")
    return policy


def parse_field_rule(raw: Any, field_name: str, default_attribute: str | None = None) -> FieldRule:
    """Parse a field rule from its shorthand or mapping form."""
    if isinstance(raw, (str, list)):
        return FieldRule(selectors=_selector_list(raw, field_name), attribute=default_attribute)
    if not isinstance(raw, dict):
        raise ConfigError(f"{field_name} rule must be a selector, a list or a mapping")

    regex = raw.get("regex")
    if regex is not None:
        try:
            re.compile(regex)
        except re.error as exc:
            raise ConfigError(f"{field_name} regex is invalid: {exc}") from exc

    return FieldRule(
        selectors=_selector_list(raw.get("selectors"), field_name),
        attribute=raw.get("attribute", default_attribute),
        regex=regex,
        trim=bool(raw.get("trim", True)),
        required=bool(raw.get("required", False)),
    )


def _selector_list(raw: Any, field_name: str) -> list[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not raw:
        raise ConfigError(f"{field_name} needs at least one selector")
    selectors = [str(s).strip() for s in raw if str(s).strip()]
    if not selectors:
        raise ConfigError(f"{field_name} needs at least one selector")
    return selectors
