"""In-memory renderer used by the pipeline tests."""

from __future__ import annotations

import asyncio

from feed_harvest.core.types import ReadinessPolicy
from feed_harvest.render.base import Renderer
from feed_harvest.render.document import Document


class FakeRenderer(Renderer):
    """Serves canned HTML per URL.

    pages maps a URL to an HTML string, an exception instance to raise, or a
    list of either (consumed one per call, last entry repeats). delays maps a
    URL to seconds slept before answering.
    """

    name = "fake"

    def __init__(self, pages: dict, delays: dict | None = None, start_error: Exception | None = None):
        self.pages = pages
        self.delays = delays or {}
        self.start_error = start_error
        self.calls: list[tuple[str, ReadinessPolicy, float]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = False
        self.closed = False

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def render(self, url: str, readiness: ReadinessPolicy, timeout: float) -> Document:
        self.calls.append((url, readiness, timeout))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(url, 0)
            if delay:
                await asyncio.sleep(delay)
            page = self.pages[url]
            if isinstance(page, list):
                page = page.pop(0) if len(page) > 1 else page[0]
            if isinstance(page, Exception):
                raise page
            return Document(url, page)
        finally:
            self.in_flight -= 1

    def visited(self) -> list[str]:
        return [url for url, _, _ in self.calls]
