"""Test helper utilities exposed for import convenience."""
from .glb import build_glb, minimal_document

__all__ = ["build_glb", "minimal_document"]
