"""Caller-input checks shared by all adapters.

All of these run before any backend call, so invalid input never causes a
partial remote side effect.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import TypeAdapter, ValidationError

from vecstore.core.exceptions import (
    ArityMismatchError,
    DimensionMismatchError,
    InvalidInputError,
)
from vecstore.schemas.vector import FiniteFloat, VectorRecord

_query_adapter = TypeAdapter(list[FiniteFloat])


def build_record(
    vector_id: str,
    vector: Sequence[float],
    payload: Mapping[str, Any] | None,
    dimension: int,
    operation: str,
) -> VectorRecord:
    if len(vector) != dimension:
        raise DimensionMismatchError(dimension, len(vector), operation=operation, vector_id=vector_id)
    try:
        return VectorRecord(
            id=vector_id,
            values=list(vector),
            metadata=dict(payload) if isinstance(payload, Mapping) else payload,
        )
    except ValidationError as e:
        raise InvalidInputError(
            f"invalid record {vector_id!r}: {e.errors(include_url=False)}",
            operation=operation,
            details={"id": vector_id},
        ) from e


def build_records(
    vectors: Sequence[Sequence[float]],
    ids: Sequence[str],
    payloads: Sequence[Mapping[str, Any] | None],
    dimension: int,
    operation: str = "insert",
) -> list[VectorRecord]:
    """Zip the parallel insert sequences into validated records."""
    if not (len(vectors) == len(ids) == len(payloads)):
        raise ArityMismatchError(len(vectors), len(ids), len(payloads), operation=operation)

    return [
        build_record(vector_id, vector, payload, dimension, operation)
        for vector, vector_id, payload in zip(vectors, ids, payloads, strict=True)
    ]


def check_query(query: Sequence[float], limit: int, dimension: int, operation: str = "search") -> list[float]:
    check_limit(limit, operation)
    if len(query) != dimension:
        raise DimensionMismatchError(dimension, len(query), operation=operation)
    try:
        return _query_adapter.validate_python(list(query))
    except ValidationError as e:
        raise InvalidInputError(
            f"invalid query vector: {e.errors(include_url=False)}",
            operation=operation,
        ) from e


def check_limit(limit: int, operation: str) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidInputError(
            f"limit must be a positive integer, got {limit!r}",
            operation=operation,
            details={"limit": limit},
        )
    return limit
