"""
Static page rendering over plain HTTP.

Uses a shared httpx.AsyncClient with per-request timeouts and a small retry
loop for transport errors. No JavaScript runs, so readiness selectors can
only be checked, not awaited.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from ..config import RenderConfig
from ..core.errors import NavigationError, NavigationTimeout, RendererUnavailable
from ..core.selectors import resolve_node
from ..core.types import ReadinessPolicy
from .base import Renderer
from .document import Document

logger = logging.getLogger("feed_harvest.render.http")


class HttpxRenderer(Renderer):
    """Renderer backed by httpx for server-rendered listing sites."""

    name = "httpx"

    def __init__(self, cfg: RenderConfig, transport: httpx.AsyncBaseTransport | None = None):
        self._cfg = cfg
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self._cfg.user_agent},
            follow_redirects=True,
            trust_env=self._cfg.trust_env,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def render(self, url: str, readiness: ReadinessPolicy, timeout: float) -> Document:
        if self._client is None:
            raise RendererUnavailable("httpx renderer used before start()")

        last_error: str | None = None
        retries = max(0, self._cfg.retries)

        # Linear backoff between retries: 0.5s, 1.0s, 1.5s...
        for attempt in range(retries + 1):
            try:
                resp = await self._client.get(url, timeout=timeout)
            except httpx.TimeoutException as exc:
                raise NavigationTimeout(url, f"TimeoutError: {exc}") from exc
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                if attempt < retries:
                    await asyncio.sleep(0.5 * (attempt + 1))
                continue
            except httpx.HTTPError as exc:
                raise NavigationError(url, f"{type(exc).__name__}: {exc}") from exc

            if resp.status_code >= 400:
                raise NavigationError(url, f"HTTP {resp.status_code}", status_code=resp.status_code)

            document = Document(str(resp.url), resp.text)
            if readiness.wait_for and resolve_node(document, [readiness.wait_for]) is None:
                logger.debug("Readiness selector %r not present in static HTML of %s", readiness.wait_for, url)
            return document

        raise NavigationError(url, last_error or "request failed")
