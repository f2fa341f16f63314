"""Renderer factory and registry for swappable rendering backends."""

from __future__ import annotations

from typing import Callable

from ..config import RenderConfig
from .base import Renderer


def _build_httpx(cfg: RenderConfig) -> Renderer:
    from .http import HttpxRenderer

    return HttpxRenderer(cfg)


def _build_crawl4ai(cfg: RenderConfig) -> Renderer:
    from .crawl4ai_api import Crawl4AIApiRenderer

    return Crawl4AIApiRenderer(cfg)


def _build_playwright(cfg: RenderConfig) -> Renderer:
    # Imported lazily, only this backend needs the browser driver
    from .browser import PlaywrightRenderer

    return PlaywrightRenderer(cfg)


RendererBuilder = Callable[[RenderConfig], Renderer]

_RENDERER_REGISTRY: dict[str, RendererBuilder] = {
    "httpx": _build_httpx,
    "static": _build_httpx,
    "crawl4ai": _build_crawl4ai,
    "crawl4ai_api": _build_crawl4ai,
    "playwright": _build_playwright,
    "chromium": _build_playwright,
}


def available_renderers() -> list[str]:
    """Return the set of registered renderer names."""
    return sorted(_RENDERER_REGISTRY.keys())


def create_renderer(cfg: RenderConfig) -> Renderer:
    """Build a renderer instance from runtime config."""
    name = cfg.backend.lower().strip()
    builder = _RENDERER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_renderers())
        raise ValueError(f"Unsupported renderer: {cfg.backend}. Supported: {supported}")
    return builder(cfg)
