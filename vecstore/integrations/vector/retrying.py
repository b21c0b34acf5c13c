from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from vecstore.core.exceptions import RemoteFailureError
from vecstore.integrations.vector.base import VectorStore
from vecstore.schemas.vector import SearchFilters, SearchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryingVectorStore(VectorStore):
    """Deployment-level wrapper that retries read operations.

    Only ``search``, ``get`` and ``list`` are retried, and only on transient
    remote failures (429, 5xx, transport errors). Writes are passed through
    once: repeating a mutation that may already have been applied is left to
    the caller.
    """

    def __init__(self, inner: VectorStore, max_retries: int = 3, base_delay: float = 1.0) -> None:
        self.inner = inner
        self.max_retries = max_retries
        self.base_delay = base_delay

    @property
    def upsert_on_insert(self) -> bool:
        return self.inner.upsert_on_insert

    async def _retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        for attempt in range(1, self.max_retries + 2):
            try:
                return await call()
            except RemoteFailureError as e:
                if not e.is_transient or attempt > self.max_retries:
                    raise
                delay = self.base_delay * 2 ** (attempt - 1)
                logger.warning(
                    "%s failed with status %s, retrying in %.1fs (attempt %d/%d)",
                    operation,
                    e.status_code,
                    delay,
                    attempt,
                    self.max_retries,
                )
                await asyncio.sleep(delay)

        raise RuntimeError("Unreachable")

    async def insert(
        self,
        vectors: Sequence[Sequence[float]],
        ids: Sequence[str],
        payloads: Sequence[Mapping[str, Any] | None],
    ) -> None:
        await self.inner.insert(vectors, ids, payloads)

    async def search(
        self,
        query: Sequence[float],
        limit: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        return await self._retry("search", lambda: self.inner.search(query, limit, filters))

    async def get(self, vector_id: str) -> SearchResult | None:
        return await self._retry("get", lambda: self.inner.get(vector_id))

    async def update(
        self,
        vector_id: str,
        vector: Sequence[float],
        payload: Mapping[str, Any] | None,
    ) -> None:
        await self.inner.update(vector_id, vector, payload)

    async def delete(self, vector_id: str) -> None:
        await self.inner.delete(vector_id)

    async def delete_collection(self) -> None:
        await self.inner.delete_collection()

    async def list(
        self,
        filters: SearchFilters | None = None,
        limit: int = 100,
    ) -> tuple[list[SearchResult], int]:
        return await self._retry("list", lambda: self.inner.list(filters, limit))

    async def get_user_id(self) -> str | None:
        return await self.inner.get_user_id()

    async def set_user_id(self, user_id: str | None) -> None:
        await self.inner.set_user_id(user_id)

    async def initialize(self) -> None:
        await self.inner.initialize()

    async def __aenter__(self) -> RetryingVectorStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self.inner.close()
