"""
Parsed page snapshots handed from renderers to the extraction stages.

Renderers return the final HTML of a page; it is parsed once with
BeautifulSoup and all extraction runs synchronously against the snapshot.
"""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag


class Node:
    """A single element in a rendered document."""

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def tag(self) -> Tag:
        return self._tag

    def select(self, selector: str) -> list["Node"]:
        """Return all descendants matching a CSS selector, in document order."""
        return [Node(tag) for tag in self._tag.select(selector)]

    def select_one(self, selector: str) -> "Node | None":
        tag = self._tag.select_one(selector)
        return Node(tag) if tag is not None else None

    def text(self) -> str:
        return self._tag.get_text(" ")

    def attribute(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        # Multi-valued attributes such as class come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def extract_text(self, selector: str) -> str | None:
        node = self.select_one(selector)
        return node.text() if node is not None else None

    def extract_attribute(self, selector: str, attr: str) -> str | None:
        node = self.select_one(selector)
        return node.attribute(attr) if node is not None else None

    def __repr__(self) -> str:
        return f"Node(<{self._tag.name}>)"


class Document(Node):
    """A rendered page: the parsed root node plus the URL it was loaded from.

    Attributes:
        url: Final URL of the page (after redirects when the renderer knows it)
        html: The raw HTML the snapshot was parsed from
    """

    def __init__(self, url: str, html: str):
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        super().__init__(soup)
        self.url = url
        self.html = html

    def __repr__(self) -> str:
        return f"Document({self.url!r})"
