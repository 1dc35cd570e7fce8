"""Book lifecycle operations."""

from .lifecycle import BookLifecycle

__all__ = ["BookLifecycle"]
