"""Tests for source definition loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from feed_harvest.core.errors import ConfigError
from feed_harvest.sources import load_sources, parse_field_rule, parse_sources

EXAMPLE = Path(__file__).resolve().parent.parent / "sources.example.yaml"


def _minimal(**overrides) -> dict:
    item = {
        "name": "site",
        "listing_url": "https://example.com/news",
        "extraction": {"container": "article", "title": "h2", "link": "h2 a"},
    }
    item.update(overrides)
    return item


def test_example_sources_file_loads():
    sources = load_sources(EXAMPLE)
    names = [s.name for s in sources]
    assert names == ["asa_rulings", "al_monitor", "economic_times", "greenpeace_ph"]

    al_monitor = sources[1]
    assert al_monitor.enrichment is not None
    assert al_monitor.readiness.scroll_steps == 2
    assert al_monitor.batch == {"concurrency": 3}
    assert sources[2].dedup_key == "title_url"


def test_shorthand_rules():
    (source,) = parse_sources({"sources": [_minimal()]})
    extraction = source.extraction
    assert extraction.container == ["article"]
    assert extraction.title.selectors == ["h2"]
    assert extraction.title.attribute is None
    assert extraction.link.attribute == "href"
    assert extraction.date is None
    assert source.enrichment is None
    assert source.dedup_key == "url"


def test_top_level_list_is_accepted():
    sources = parse_sources([_minimal(name="a"), _minimal(name="b")])
    assert [s.name for s in sources] == ["a", "b"]


def test_mapping_field_rule():
    rule = parse_field_rule(
        {"selectors": ["time", "span.date"], "attribute": "datetime", "regex": r"(\d{4}-\d{2}-\d{2})"},
        "date",
    )
    assert rule.selectors == ["time", "span.date"]
    assert rule.attribute == "datetime"
    assert rule.regex == r"(\d{4}-\d{2}-\d{2})"
    assert rule.trim is True
    assert rule.required is False

    required = parse_field_rule({"selectors": "time", "required": True}, "date")
    assert required.required is True


def test_link_mapping_keeps_href_default():
    rule = parse_field_rule({"selectors": "a.more"}, "link", default_attribute="href")
    assert rule.attribute == "href"


def test_enrichment_options():
    item = _minimal(
        enrichment={
            "date": "time",
            "fallback": "Date not found",
            "force": True,
            "readiness": {"wait_for": "time", "wait_timeout_seconds": 5},
        }
    )
    (source,) = parse_sources([item])
    assert source.enrichment.fallback == "Date not found"
    assert source.enrichment.force is True
    assert source.enrichment.readiness.wait_for == "time"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"listing_url": "/relative"}, "listing_url"),
        ({"dedup_key": "hash"}, "dedup_key"),
        ({"batch": {"parallelism": 3}}, "parallelism"),
        ({"batch": {"batch_size": 0}}, "batch_size"),
        ({"batch": {"batch_size": "5"}}, "batch_size must be an integer"),
        ({"batch": {"concurrency": True}}, "concurrency must be an integer"),
        ({"batch": {"navigation_timeout_seconds": "30"}}, "navigation_timeout_seconds must be a number"),
        ({"readiness": {"wait_timeout_seconds": "10"}}, "wait_timeout_seconds must be a number"),
        ({"readiness": {"scroll_steps": 1.5}}, "scroll_steps must be an integer"),
        ({"readiness": {"wait_for": ["div"]}}, "wait_for"),
        ({"extraction": {"container": "article", "title": "h2"}}, "title and link"),
        ({"extraction": {"container": [], "title": "h2", "link": "a"}}, "container"),
        ({"readiness": {"wait_until": "idle"}}, "wait_until"),
        ({"readiness": {"delay": 3}}, "Unknown readiness keys"),
        ({"enrichment": {"fallback": "x"}}, "date rule"),
    ],
)
def test_invalid_definitions_are_rejected(overrides, message):
    with pytest.raises(ConfigError, match=message):
        parse_sources([_minimal(**overrides)])


def test_invalid_regex_is_rejected():
    with pytest.raises(ConfigError, match="regex"):
        parse_field_rule({"selectors": "time", "regex": "(unclosed"}, "date")


def test_errors_name_the_source():
    with pytest.raises(ConfigError, match="Source 'site'"):
        parse_sources([_minimal(listing_url="not a url")])


def test_duplicate_names_are_rejected():
    with pytest.raises(ConfigError, match="Duplicate"):
        parse_sources([_minimal(), _minimal()])


def test_missing_name_is_rejected():
    item = _minimal()
    del item["name"]
    with pytest.raises(ConfigError, match="no name"):
        parse_sources([item])
