"""Feed aggregation module."""

from .aggregator import aggregate, fetch_sources, normalize_items, sort_by_published
from .pipeline import ContentPipeline

__all__ = [
    "ContentPipeline",
    "aggregate",
    "fetch_sources",
    "normalize_items",
    "sort_by_published",
]
