from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from vecstore.schemas.vector import SearchFilters, SearchResult


@runtime_checkable
class VectorStore(Protocol):
    """Abstract vector store interface.

    Implement this protocol to swap vector backends
    (Cloudflare Vectorize, in-memory, Qdrant, Pinecone, etc.)

    Every operation is a coroutine. Adapters keep only read-only configuration
    and one shared client, so concurrent calls on one instance need no locking.
    Ordering of racing writes on the same id is decided by the backend.

    Cancelling a pending write does not cancel it remotely: the backend may
    still apply the mutation after the caller stopped waiting.

    Operations a backend cannot perform raise ``UnsupportedOperationError``.
    """

    # True when inserting an existing id overwrites it.
    upsert_on_insert: bool

    async def insert(
        self,
        vectors: Sequence[Sequence[float]],
        ids: Sequence[str],
        payloads: Sequence[Mapping[str, Any] | None],
    ) -> None:
        """Insert one record per index of the three parallel sequences."""
        ...

    async def search(
        self,
        query: Sequence[float],
        limit: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Search for similar vectors, most relevant first, at most ``limit``."""
        ...

    async def get(self, vector_id: str) -> SearchResult | None:
        """Fetch a single record by id, or None if absent."""
        ...

    async def update(
        self,
        vector_id: str,
        vector: Sequence[float],
        payload: Mapping[str, Any] | None,
    ) -> None:
        """Replace an existing record. Raises NotFoundError if absent."""
        ...

    async def delete(self, vector_id: str) -> None:
        """Remove a record. Deleting a missing id is a no-op."""
        ...

    async def delete_collection(self) -> None:
        """Destroy the whole index. Irreversible."""
        ...

    async def list(
        self,
        filters: SearchFilters | None = None,
        limit: int = 100,
    ) -> tuple[list[SearchResult], int]:
        """Enumerate records, returning a page and the total matching count."""
        ...

    async def get_user_id(self) -> str | None:
        """Return the tenant the store is scoped to."""
        ...

    async def set_user_id(self, user_id: str | None) -> None:
        """Scope subsequent operations to a tenant."""
        ...

    async def initialize(self) -> None:
        """Create the index if absent, verify it if present. Idempotent."""
        ...

    async def close(self) -> None:
        """Release the underlying client."""
        ...
