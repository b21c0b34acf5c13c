from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol

from vecstore.core.config import StoreConfig
from vecstore.core.exceptions import (
    DimensionMismatchError,
    RemoteFailureError,
    UnsupportedOperationError,
    VectorStoreError,
)
from vecstore.integrations.vector.base import VectorStore
from vecstore.integrations.vector.normalize import (
    index_dimensions,
    normalize_matches,
    normalize_vectors,
)
from vecstore.integrations.vector.validation import build_records, check_query
from vecstore.schemas.vector import SearchFilters, SearchResult

logger = logging.getLogger(__name__)


class VectorizeBinding(Protocol):
    """In-process handle to a Vectorize index (e.g. a Workers binding).

    Results use the same shapes as the REST API ``result`` payloads.
    """

    async def insert(self, vectors: list[dict[str, Any]]) -> dict[str, Any]: ...

    async def upsert(self, vectors: list[dict[str, Any]]) -> dict[str, Any]: ...

    async def query(self, vector: list[float], options: dict[str, Any]) -> dict[str, Any]: ...

    async def get_by_ids(self, ids: list[str]) -> list[dict[str, Any]]: ...

    async def delete_by_ids(self, ids: list[str]) -> dict[str, Any]: ...

    async def describe(self) -> dict[str, Any]: ...


class VectorizeBindingStore(VectorStore):
    """VectorStore backed by an in-process Vectorize binding, bypassing HTTP.

    Bindings cannot create or destroy indexes; ``initialize`` only verifies
    the dimensions of the bound index.
    """

    backend = "vectorize-binding"

    def __init__(self, binding: VectorizeBinding, config: StoreConfig | None = None) -> None:
        self.binding = binding
        self.config = config or StoreConfig.from_settings()

    @property
    def upsert_on_insert(self) -> bool:
        return self.config.insert_mode == "upsert"

    async def _call(self, operation: str, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        try:
            return await func(*args)
        except VectorStoreError:
            raise
        except Exception as e:
            raise RemoteFailureError(
                f"binding call failed: {e!r}",
                operation=operation,
                details={"index": self.config.index_name},
            ) from e

    async def insert(
        self,
        vectors: Sequence[Sequence[float]],
        ids: Sequence[str],
        payloads: Sequence[Mapping[str, Any] | None],
    ) -> None:
        records = build_records(vectors, ids, payloads, self.config.dimension)
        if not records:
            return

        logger.info(
            "Inserting %d vector(s) into bound index '%s'...",
            len(records),
            self.config.index_name,
        )
        method = self.binding.upsert if self.upsert_on_insert else self.binding.insert
        await self._call("insert", method, [record.model_dump() for record in records])

    async def search(
        self,
        query: Sequence[float],
        limit: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        vector = check_query(query, limit, self.config.dimension)
        options: dict[str, Any] = {"topK": limit, "returnMetadata": "all", "returnValues": False}
        if filters is not None:
            options["filter"] = filters

        result = await self._call("search", self.binding.query, vector, options)
        return normalize_matches(result, limit)

    async def get(self, vector_id: str) -> SearchResult | None:
        result = await self._call("get", self.binding.get_by_ids, [vector_id])
        vectors = normalize_vectors(result)
        return vectors[0] if vectors else None

    async def update(
        self,
        vector_id: str,
        vector: Sequence[float],
        payload: Mapping[str, Any] | None,
    ) -> None:
        raise UnsupportedOperationError("update", self.backend)

    async def delete(self, vector_id: str) -> None:
        await self._call("delete", self.binding.delete_by_ids, [vector_id])

    async def delete_collection(self) -> None:
        raise UnsupportedOperationError("delete_collection", self.backend)

    async def list(
        self,
        filters: SearchFilters | None = None,
        limit: int = 100,
    ) -> tuple[list[SearchResult], int]:
        raise UnsupportedOperationError("list", self.backend)

    async def get_user_id(self) -> str | None:
        raise UnsupportedOperationError("get_user_id", self.backend)

    async def set_user_id(self, user_id: str | None) -> None:
        raise UnsupportedOperationError("set_user_id", self.backend)

    async def initialize(self) -> None:
        description = await self._call("initialize", self.binding.describe)
        dimensions = index_dimensions(description)
        if dimensions != self.config.dimension:
            raise DimensionMismatchError(self.config.dimension, dimensions, operation="initialize")

    async def __aenter__(self) -> VectorizeBindingStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """The binding is owned by the runtime; nothing to release."""
