"""Map Vectorize response shapes onto the fixed data model.

Extra backend fields are dropped; missing required fields raise
MalformedResponseError so callers never see backend-native names.
"""
from __future__ import annotations

from typing import Any

from vecstore.core.exceptions import MalformedResponseError
from vecstore.schemas.vector import SearchResult


def _metadata(item: dict[str, Any], operation: str) -> dict[str, Any]:
    metadata = item.get("metadata")
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise MalformedResponseError(
            "metadata is not an object",
            operation=operation,
            payload=item,
        )
    return dict(metadata)


def _vector_id(item: Any, operation: str) -> str:
    if not isinstance(item, dict) or not isinstance(item.get("id"), str):
        raise MalformedResponseError("record without a string id", operation=operation, payload=item)
    return str(item["id"])


def normalize_match(item: Any, operation: str = "search") -> SearchResult:
    vector_id = _vector_id(item, operation)
    score = item.get("score")
    if isinstance(score, bool) or not isinstance(score, int | float):
        raise MalformedResponseError(
            f"match {vector_id!r} has no numeric score",
            operation=operation,
            payload=item,
        )
    return SearchResult(id=vector_id, score=float(score), payload=_metadata(item, operation))


def normalize_matches(result: Any, limit: int, operation: str = "search") -> list[SearchResult]:
    """Normalize a query result, keeping backend order and capping at ``limit``."""
    if not isinstance(result, dict) or not isinstance(result.get("matches"), list):
        raise MalformedResponseError("query result has no matches list", operation=operation, payload=result)
    return [normalize_match(m, operation) for m in result["matches"][:limit]]


def normalize_vector(item: Any, operation: str = "get") -> SearchResult:
    return SearchResult(id=_vector_id(item, operation), payload=_metadata(item, operation))


def normalize_vectors(result: Any, operation: str = "get") -> list[SearchResult]:
    """Normalize a get-by-ids result (a list of stored vectors)."""
    if result is None:
        return []
    if not isinstance(result, list):
        raise MalformedResponseError("expected a list of vectors", operation=operation, payload=result)
    return [normalize_vector(item, operation) for item in result]


def index_dimensions(result: Any, operation: str = "initialize") -> int:
    """Extract the dimensionality from an index description.

    Accepts the REST shape ``{"config": {"dimensions": n}}`` and the binding
    ``describe()`` shape ``{"dimensions": n}``.
    """
    if isinstance(result, dict):
        config = result.get("config")
        source = config if isinstance(config, dict) else result
        dimensions = source.get("dimensions")
        if isinstance(dimensions, int) and not isinstance(dimensions, bool):
            return dimensions
    raise MalformedResponseError("index description has no dimensions", operation=operation, payload=result)
