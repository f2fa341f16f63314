"""
Page rendering via a remote Crawl4AI API service.

The service runs the browser (JavaScript rendering, anti-bot handling); this
renderer only posts crawl requests and parses the returned HTML. Each request
is its own browser session on the service side.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any

import httpx

from ..config import RenderConfig, get_crawl4ai_api_auth, get_crawl4ai_api_url
from ..core.errors import NavigationError, NavigationTimeout, RendererUnavailable
from ..core.types import ReadinessPolicy
from .base import Renderer
from .document import Document

logger = logging.getLogger("feed_harvest.render.crawl4ai")

_SCROLL_JS = "window.scrollTo(0, document.body.scrollHeight);"


class Crawl4AIApiRenderer(Renderer):
    """Renderer that delegates navigation to a Crawl4AI API deployment."""

    name = "crawl4ai"

    def __init__(self, cfg: RenderConfig, transport: httpx.AsyncBaseTransport | None = None):
        self._cfg = cfg
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._endpoint: str | None = None

    async def start(self) -> None:
        if self._client is not None:
            return
        api_url = get_crawl4ai_api_url(self._cfg)
        if not api_url:
            raise RendererUnavailable(
                "Crawl4AI API URL is required. Set CRAWL4AI_API_URL environment variable "
                "or configure render.crawl4ai_api_url in config."
            )
        self._endpoint = f"{api_url.rstrip('/')}/crawl"

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        auth = get_crawl4ai_api_auth(self._cfg)
        if auth:
            username, password = auth
            credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
            headers["Authorization"] = f"Basic {credentials}"

        self._client = httpx.AsyncClient(
            headers=headers,
            trust_env=self._cfg.trust_env,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def render(self, url: str, readiness: ReadinessPolicy, timeout: float) -> Document:
        if self._client is None or self._endpoint is None:
            raise RendererUnavailable("crawl4ai renderer used before start()")

        payload = build_payload(url, readiness, timeout, self._cfg.user_agent)
        # Connect is short, read covers the whole remote crawl plus readiness wait
        timeout_config = httpx.Timeout(
            connect=10.0,
            read=timeout + readiness.wait_timeout_seconds + 10.0,
            write=10.0,
            pool=10.0,
        )

        last_error: str | None = None
        retries = max(0, self._cfg.retries)
        for attempt in range(retries + 1):
            try:
                resp = await self._client.post(self._endpoint, json=payload, timeout=timeout_config)
            except httpx.TimeoutException as exc:
                raise NavigationTimeout(url, f"TimeoutError: {exc}") from exc
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                if attempt < retries:
                    await asyncio.sleep(0.5 * (attempt + 1))
                continue
            except httpx.HTTPError as exc:
                raise NavigationError(url, f"{type(exc).__name__}: {exc}") from exc

            if resp.status_code != 200:
                last_error = f"Crawl4AI API HTTP Error: {resp.status_code}"
                if attempt < retries:
                    await asyncio.sleep(0.5 * (attempt + 1))
                continue

            try:
                data = resp.json()
            except ValueError as exc:
                raise NavigationError(url, f"Crawl4AI API returned invalid JSON: {exc}") from exc
            return _document_from_response(url, data)

        raise NavigationError(url, last_error or "Crawl4AI API request failed")


def build_payload(url: str, readiness: ReadinessPolicy, timeout: float, user_agent: str | None) -> dict[str, Any]:
    """Build the crawl request body for one URL."""
    payload: dict[str, Any] = {
        "urls": [url],
        "page_timeout": int(timeout * 1000),
        "wait_until": readiness.wait_until,
    }
    if readiness.wait_for:
        payload["wait_for"] = f"css:{readiness.wait_for}"
        payload["wait_for_timeout"] = int(readiness.wait_timeout_seconds * 1000)
    if readiness.scroll_steps > 0:
        payload["js_code"] = [_SCROLL_JS] * readiness.scroll_steps
    if user_agent:
        payload["user_agent"] = user_agent
    return payload


def _document_from_response(url: str, data: Any) -> Document:
    # The API wraps per-URL results in a "results" array
    if isinstance(data, dict) and "results" in data:
        results = data["results"]
        if not isinstance(results, list) or not results:
            raise NavigationError(url, "Crawl4AI API Error: empty results array")
        data = results[0]
    elif isinstance(data, list):
        if not data:
            raise NavigationError(url, "Crawl4AI API Error: empty response list")
        data = data[0]

    if not isinstance(data, dict):
        raise NavigationError(url, "Crawl4AI API Error: unexpected response shape")

    if not data.get("success", True):
        message = data.get("error_message") or data.get("error") or "Unknown API error"
        if "timeout" in str(message).lower():
            raise NavigationTimeout(url, f"Crawl4AI API Error: {message}")
        raise NavigationError(url, f"Crawl4AI API Error: {message}", status_code=data.get("status_code"))

    status_code = data.get("status_code")
    if isinstance(status_code, int) and status_code >= 400:
        raise NavigationError(url, f"HTTP {status_code}", status_code=status_code)

    html = data.get("html") or data.get("cleaned_html")
    if not html or not str(html).strip():
        raise NavigationError(url, "Crawl4AI API Error: empty html")

    final_url = data.get("redirected_url") or data.get("url") or url
    return Document(final_url, html)
