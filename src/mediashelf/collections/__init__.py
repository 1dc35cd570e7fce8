"""Series collections."""

from .models import Collection, CollectionSeries
from .repository import CollectionRepository

__all__ = [
    "Collection",
    "CollectionSeries",
    "CollectionRepository",
]
