"""Content generation module."""

from .generator import ContentGenerator, IContentGenerator

__all__ = ["ContentGenerator", "IContentGenerator"]
