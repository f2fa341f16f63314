"""
Page rendering backends.

Renderers turn a URL into a parsed Document snapshot. Backends are built
by name through render.factory.create_renderer.
"""

from .base import Renderer
from .document import Document, Node

__all__ = ["Renderer", "Document", "Node"]
