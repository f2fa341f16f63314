"""
Selector chain resolution.

A chain is an ordered list of CSS expressions tried in priority order. The
earliest-listed expression that yields something wins; a total miss returns
None instead of raising, since markup drift across sources is expected.
"""

from __future__ import annotations

import logging
import re

from soupsieve import SelectorSyntaxError

from ..render.document import Node
from .types import FieldRule

SELF = ":self"

logger = logging.getLogger("feed_harvest.selectors")

_WS_RE = re.compile(r"\s+")


def resolve_nodes(node: Node, chain: list[str]) -> list[Node]:
    """Return all matches of the first selector in the chain that matches anything."""
    for selector in chain:
        matches = _select(node, selector)
        if matches:
            return matches
    return []


def resolve_node(node: Node, chain: list[str]) -> Node | None:
    """Return the first match of the first selector in the chain that matches."""
    matches = resolve_nodes(node, chain)
    return matches[0] if matches else None


def resolve_field(node: Node, rule: FieldRule) -> str | None:
    """Resolve a field rule against a node.

    Each selector is tried in order; for the first node it matches, the text
    (or configured attribute) is read and post-processed. The first non-empty
    result is returned, so a selector that matches an empty element falls
    through to the next one.

    Args:
        node: The node to resolve against (container or whole document)
        rule: Field rule with selectors and post-processing

    Returns:
        The processed value, or None if no selector produced one
    """
    for selector in rule.selectors:
        matches = _select(node, selector)
        if not matches:
            continue
        target = matches[0]
        raw = target.attribute(rule.attribute) if rule.attribute else target.text()
        value = postprocess(raw, rule)
        if value:
            return value
    return None


def postprocess(raw: str | None, rule: FieldRule) -> str | None:
    """Apply trim and regex post-processing to a raw value."""
    if raw is None:
        return None
    value = _WS_RE.sub(" ", raw).strip() if rule.trim else raw
    if rule.regex:
        match = re.search(rule.regex, value)
        if match is None:
            return None
        value = match.group(1) if match.groups() else match.group(0)
        if value is None:
            return None
        if rule.trim:
            value = value.strip()
    return value or None


def _select(node: Node, selector: str) -> list[Node]:
    if selector == SELF:
        return [node]
    try:
        return node.select(selector)
    except (SelectorSyntaxError, ValueError) as exc:
        logger.debug("Invalid selector %r treated as a miss: %s", selector, exc)
        return []
