from __future__ import annotations

from .vector import SearchFilters, SearchResult, VectorRecord

__all__ = [
    "SearchFilters",
    "SearchResult",
    "VectorRecord",
]
