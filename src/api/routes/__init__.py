"""API routes package."""

from . import formatting, health

__all__ = ["formatting", "health"]
