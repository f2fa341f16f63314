"""Tests for the httpx and Crawl4AI API renderers using mock transports."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from feed_harvest.config import RenderConfig
from feed_harvest.core.errors import NavigationError, NavigationTimeout, RendererUnavailable
from feed_harvest.core.types import ReadinessPolicy
from feed_harvest.render.crawl4ai_api import Crawl4AIApiRenderer, build_payload
from feed_harvest.render.http import HttpxRenderer

PAGE = "<html><body><article><h2>Hello</h2></article></body></html>"


def _render(renderer, url: str, readiness: ReadinessPolicy | None = None, timeout: float = 5.0):
    async def _go():
        async with renderer:
            return await renderer.render(url, readiness or ReadinessPolicy(), timeout)

    return asyncio.run(_go())


def test_httpx_renderer_returns_document():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, text=PAGE)

    cfg = RenderConfig(backend="httpx", user_agent="feed-harvest-test")
    doc = _render(HttpxRenderer(cfg, transport=httpx.MockTransport(handler)), "https://example.com/list")

    assert doc.url == "https://example.com/list"
    assert doc.extract_text("article h2") == "Hello"
    assert seen["ua"] == "feed-harvest-test"


def test_httpx_renderer_http_error_is_navigation_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, text="down"))
    with pytest.raises(NavigationError) as excinfo:
        _render(HttpxRenderer(RenderConfig(), transport=transport), "https://example.com/list")
    assert excinfo.value.status_code == 503
    assert excinfo.value.url == "https://example.com/list"


def test_httpx_renderer_timeout_is_navigation_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(NavigationTimeout):
        _render(HttpxRenderer(RenderConfig(), transport=httpx.MockTransport(handler)), "https://example.com/")


def test_httpx_renderer_retries_transport_errors():
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, text=PAGE)

    cfg = RenderConfig(retries=1)
    doc = _render(HttpxRenderer(cfg, transport=httpx.MockTransport(handler)), "https://example.com/")
    assert calls["n"] == 2
    assert doc.extract_text("h2") == "Hello"


def test_httpx_renderer_gives_up_after_retries():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    cfg = RenderConfig(retries=0)
    with pytest.raises(NavigationError, match="ConnectError"):
        _render(HttpxRenderer(cfg, transport=httpx.MockTransport(handler)), "https://example.com/")


def test_httpx_renderer_requires_start():
    renderer = HttpxRenderer(RenderConfig())
    with pytest.raises(RendererUnavailable):
        asyncio.run(renderer.render("https://example.com/", ReadinessPolicy(), 1.0))


def test_build_payload_maps_readiness():
    readiness = ReadinessPolicy(wait_until="networkidle", wait_for="div.list", wait_timeout_seconds=4, scroll_steps=2)
    payload = build_payload("https://example.com/", readiness, 20, "agent")

    assert payload["urls"] == ["https://example.com/"]
    assert payload["page_timeout"] == 20000
    assert payload["wait_until"] == "networkidle"
    assert payload["wait_for"] == "css:div.list"
    assert payload["wait_for_timeout"] == 4000
    assert len(payload["js_code"]) == 2
    assert payload["user_agent"] == "agent"


def test_build_payload_minimal():
    payload = build_payload("https://example.com/", ReadinessPolicy(), 10, None)
    assert "wait_for" not in payload
    assert "js_code" not in payload
    assert "user_agent" not in payload


def test_crawl4ai_renderer_posts_with_basic_auth():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"results": [{"success": True, "html": PAGE, "redirected_url": "https://example.com/final"}]},
        )

    cfg = RenderConfig(
        crawl4ai_api_url="https://crawl.example.com/",
        crawl4ai_api_username="user",
        crawl4ai_api_password="pass",
    )
    doc = _render(Crawl4AIApiRenderer(cfg, transport=httpx.MockTransport(handler)), "https://example.com/")

    assert seen["url"] == "https://crawl.example.com/crawl"
    assert seen["auth"] == "Basic dXNlcjpwYXNz"
    assert seen["body"]["urls"] == ["https://example.com/"]
    assert doc.url == "https://example.com/final"
    assert doc.extract_text("h2") == "Hello"


def test_crawl4ai_renderer_maps_failed_crawl():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": [{"success": False, "error_message": "Page.goto: Timeout 30000ms exceeded"}]})

    cfg = RenderConfig(crawl4ai_api_url="https://crawl.example.com")
    with pytest.raises(NavigationTimeout):
        _render(Crawl4AIApiRenderer(cfg, transport=httpx.MockTransport(handler)), "https://example.com/")


def test_crawl4ai_renderer_maps_upstream_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"success": True, "status_code": 404, "html": "<p>gone</p>"}])

    cfg = RenderConfig(crawl4ai_api_url="https://crawl.example.com")
    with pytest.raises(NavigationError) as excinfo:
        _render(Crawl4AIApiRenderer(cfg, transport=httpx.MockTransport(handler)), "https://example.com/")
    assert excinfo.value.status_code == 404


def test_crawl4ai_renderer_requires_api_url(monkeypatch):
    monkeypatch.delenv("CRAWL4AI_API_URL", raising=False)
    renderer = Crawl4AIApiRenderer(RenderConfig())
    with pytest.raises(RendererUnavailable, match="CRAWL4AI_API_URL"):
        asyncio.run(renderer.start())


def test_httpx_renderer_maps_redirect_loop_to_navigation_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    with pytest.raises(NavigationError, match="TooManyRedirects"):
        _render(HttpxRenderer(RenderConfig(), transport=httpx.MockTransport(handler)), "https://example.com/loop")
