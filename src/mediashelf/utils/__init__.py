"""Shared helpers."""

from .logging import get_logger
from .natural_sort import natural_compare, natural_sort_key
from .text import strip_accents

__all__ = [
    "get_logger",
    "natural_compare",
    "natural_sort_key",
    "strip_accents",
]
