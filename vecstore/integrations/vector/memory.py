from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from vecstore.core.config import Metric, StoreConfig
from vecstore.core.exceptions import InvalidInputError, NotFoundError
from vecstore.integrations.vector.base import VectorStore
from vecstore.integrations.vector.validation import (
    build_record,
    build_records,
    check_limit,
    check_query,
)
from vecstore.schemas.vector import SearchFilters, SearchResult, VectorRecord

logger = logging.getLogger(__name__)

_MISSING = object()


def _cosine(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b, strict=True)) / norm


def _dot(a: list[float], b: list[float]) -> float:
    return sum(x * y for x, y in zip(a, b, strict=True))


def _euclidean(a: list[float], b: list[float]) -> float:
    return math.dist(a, b)


_SCORERS = {
    "cosine": _cosine,
    "dot-product": _dot,
    "euclidean": _euclidean,
}


def _lookup(metadata: Mapping[str, Any], key: str) -> Any:
    """Resolve a possibly dotted key ("a.b") against nested metadata."""
    if key in metadata:
        return metadata[key]
    value: Any = metadata
    for part in key.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


_OPERATORS = frozenset({"$eq", "$ne", "$in", "$nin", "$lt", "$lte", "$gt", "$gte"})


def _compare(op: str, value: Any, operand: Any, operation: str = "search") -> bool:
    if op not in _OPERATORS:
        raise InvalidInputError(f"unsupported filter operator {op!r}", operation=operation, details={"operator": op})
    if op in ("$in", "$nin") and not isinstance(operand, (list, tuple, set, frozenset)):
        raise InvalidInputError(
            f"{op} expects a list of values, got {type(operand).__name__}",
            operation=operation,
            details={"operator": op, "operand": operand},
        )
    if op == "$eq":
        return value is not _MISSING and value == operand
    if op == "$ne":
        return value is _MISSING or value != operand
    if op == "$in":
        return value is not _MISSING and value in operand
    if op == "$nin":
        return value is _MISSING or value not in operand
    if value is _MISSING:
        return False
    try:
        if op == "$lt":
            return bool(value < operand)
        if op == "$lte":
            return bool(value <= operand)
        if op == "$gt":
            return bool(value > operand)
        return bool(value >= operand)
    except TypeError:
        return False


def matches_filters(metadata: Mapping[str, Any], filters: SearchFilters | None, operation: str = "search") -> bool:
    """Evaluate a metadata filter.

    A bare value means equality; an operator mapping such as
    ``{"$gte": 3, "$lt": 10}`` must satisfy every operator.
    """
    if not filters:
        return True
    for key, condition in filters.items():
        value = _lookup(metadata, key)
        if isinstance(condition, Mapping) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(op, value, operand, operation) for op, operand in condition.items()):
                return False
        elif not _compare("$eq", value, condition, operation):
            return False
    return True


class InMemoryVectorStore(VectorStore):
    """VectorStore kept in process memory, with exhaustive scoring.

    Implements the whole contract: insert overwrites existing ids, records are
    partitioned per user id, and filters use the Vectorize operator set.
    Nothing is persisted.
    """

    backend = "memory"
    upsert_on_insert = True

    def __init__(self, config: StoreConfig | None = None, user_id: str | None = None) -> None:
        self.config = config or StoreConfig.from_settings()
        self._user_id = user_id
        self._partitions: dict[str | None, dict[str, VectorRecord]] = {}

    @property
    def metric(self) -> Metric:
        return self.config.metric

    @property
    def _records(self) -> dict[str, VectorRecord]:
        # Reads never create a partition for an unseen user id
        return self._partitions.get(self._user_id, {})

    def _writable_records(self) -> dict[str, VectorRecord]:
        return self._partitions.setdefault(self._user_id, {})

    def _score(self, query: list[float], record: VectorRecord) -> float:
        return _SCORERS[self.metric](query, record.values)

    async def insert(
        self,
        vectors: Sequence[Sequence[float]],
        ids: Sequence[str],
        payloads: Sequence[Mapping[str, Any] | None],
    ) -> None:
        records = build_records(vectors, ids, payloads, self.config.dimension)
        partition = self._writable_records()
        for record in records:
            partition[record.id] = record
        logger.debug("Inserted %d vector(s) into memory index '%s'", len(records), self.config.index_name)

    async def search(
        self,
        query: Sequence[float],
        limit: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        vector = check_query(query, limit, self.config.dimension)
        scored = [
            (self._score(vector, record), record)
            for record in self._records.values()
            if matches_filters(record.metadata, filters)
        ]
        # Euclidean scores are distances: smaller is more relevant
        scored.sort(key=lambda pair: pair[0], reverse=self.metric != "euclidean")
        return [
            SearchResult(id=record.id, score=score, payload=dict(record.metadata))
            for score, record in scored[:limit]
        ]

    async def get(self, vector_id: str) -> SearchResult | None:
        record = self._records.get(vector_id)
        if record is None:
            return None
        return SearchResult(id=record.id, payload=dict(record.metadata))

    async def update(
        self,
        vector_id: str,
        vector: Sequence[float],
        payload: Mapping[str, Any] | None,
    ) -> None:
        record = build_record(vector_id, vector, payload, self.config.dimension, operation="update")
        if vector_id not in self._records:
            raise NotFoundError(vector_id, operation="update")
        self._writable_records()[vector_id] = record

    async def delete(self, vector_id: str) -> None:
        self._records.pop(vector_id, None)

    async def delete_collection(self) -> None:
        logger.warning("Dropping memory index '%s'", self.config.index_name)
        self._partitions.clear()

    async def list(
        self,
        filters: SearchFilters | None = None,
        limit: int = 100,
    ) -> tuple[list[SearchResult], int]:
        check_limit(limit, operation="list")
        matching = sorted(
            (r for r in self._records.values() if matches_filters(r.metadata, filters, operation="list")),
            key=lambda r: r.id,
        )
        page = [SearchResult(id=r.id, payload=dict(r.metadata)) for r in matching[:limit]]
        return page, len(matching)

    async def get_user_id(self) -> str | None:
        return self._user_id

    async def set_user_id(self, user_id: str | None) -> None:
        self._user_id = user_id

    async def initialize(self) -> None:
        self._partitions.setdefault(self._user_id, {})

    async def __aenter__(self) -> InMemoryVectorStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        pass
