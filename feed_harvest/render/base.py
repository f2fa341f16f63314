"""Abstract renderer interface shared by all page rendering backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.types import ReadinessPolicy
from .document import Document


class Renderer(ABC):
    """Supplies rendered documents to the pipeline.

    A renderer may share one engine (HTTP client, browser) across
    navigations, but each render() call must run in its own isolated page
    context that is released on both success and failure.

    Renderers are async context managers: the engine is started on enter
    and shut down on exit.
    """

    name: str = "base"

    async def start(self) -> None:
        """Start the underlying engine. Default is a no-op."""

    async def close(self) -> None:
        """Shut the underlying engine down. Default is a no-op."""

    async def __aenter__(self) -> "Renderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @abstractmethod
    async def render(self, url: str, readiness: ReadinessPolicy, timeout: float) -> Document:
        """Navigate to url, apply the readiness policy and return a snapshot.

        Raises:
            NavigationTimeout: Navigation or readiness wait timed out
            NavigationError: The page could not be loaded
            RendererUnavailable: No page context could be obtained
        """
        raise NotImplementedError
