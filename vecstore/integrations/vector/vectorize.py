from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from vecstore.core.config import StoreConfig
from vecstore.core.exceptions import (
    DimensionMismatchError,
    MalformedResponseError,
    RemoteFailureError,
    UnsupportedOperationError,
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

# Returned by _request for a tolerated 404, distinct from an empty body.
MISSING = object()

NDJSON = "application/x-ndjson"


class VectorizeVectorStore(VectorStore):
    """Cloudflare Vectorize REST client implementing VectorStore protocol.

    With ``insert_mode="insert"`` the backend keeps existing ids unchanged
    instead of overwriting them; use ``insert_mode="upsert"`` for overwrite
    semantics. ``upsert_on_insert`` reports which one is active.

    Update, list and tenancy are not exposed by the Vectorize API and raise
    UnsupportedOperationError.
    """

    backend = "vectorize"

    def __init__(
        self,
        config: StoreConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Vectorize client.

        Args:
            config: Connection settings. Defaults to the application settings.
            transport: Optional httpx transport, e.g. a MockTransport in tests.
        """
        self.config = config or StoreConfig.from_settings()
        self.index_path = f"/{self.config.index_name}"

        # One AsyncClient per instance so connections are pooled across calls
        self.client = httpx.AsyncClient(
            base_url=self.config.indexes_url,
            headers={"Authorization": f"Bearer {self.config.api_token.get_secret_value()}"},
            timeout=httpx.Timeout(self.config.timeout),
            transport=transport,
        )

    @property
    def upsert_on_insert(self) -> bool:
        return self.config.insert_mode == "upsert"

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        json: dict[str, Any] | None = None,
        content: str | None = None,
        headers: dict[str, str] | None = None,
        context: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> Any:
        """Make a request and return the unwrapped ``result`` of the envelope.

        No retries here: a failed mutation may still have been applied remotely.
        """
        details = {"index": self.config.index_name, **(context or {})}
        logger.debug("Vectorize %s %s (%s)", method, url, operation)
        started = time.perf_counter()

        try:
            response = await self.client.request(
                method=method,
                url=url,
                json=json,
                content=content,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise RemoteFailureError(
                f"request to Vectorize failed: {e!r}",
                operation=operation,
                details=details,
            ) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug("Vectorize %s completed with %d in %.1f ms", operation, response.status_code, elapsed_ms)

        if allow_missing and response.status_code == 404:
            return MISSING

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteFailureError(
                f"Vectorize returned HTTP {response.status_code}",
                operation=operation,
                status_code=response.status_code,
                payload=_body(response),
                details=details,
            ) from e

        if not response.content:
            return None

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "response body is not JSON",
                operation=operation,
                payload=response.text,
                details=details,
            ) from e

        if not isinstance(data, dict) or "success" not in data:
            raise MalformedResponseError(
                "response is not a Cloudflare API envelope",
                operation=operation,
                payload=data,
                details=details,
            )
        if not data["success"]:
            raise RemoteFailureError(
                "Vectorize reported an unsuccessful request",
                operation=operation,
                status_code=response.status_code,
                payload=data.get("errors"),
                details=details,
            )
        return data.get("result")

    async def insert(
        self,
        vectors: Sequence[Sequence[float]],
        ids: Sequence[str],
        payloads: Sequence[Mapping[str, Any] | None],
    ) -> None:
        """Insert a batch as a single NDJSON request.

        If the request fails the whole batch is reported as failed; whether the
        backend applied part of it is not inspected.
        """
        records = build_records(vectors, ids, payloads, self.config.dimension)
        if not records:
            return

        # One encoded record per line
        body = "\n".join(record.model_dump_json() for record in records)

        logger.info(
            "Inserting %d vector(s) into index '%s'...",
            len(records),
            self.config.index_name,
        )
        result = await self._request(
            "POST",
            f"{self.index_path}/{self.config.insert_mode}",
            operation="insert",
            content=body,
            headers={"Content-Type": NDJSON},
            context={"batch_size": len(records), "ids": [r.id for r in records]},
        )
        if isinstance(result, dict) and result.get("mutationId"):
            logger.debug("Vectorize insert mutation %s", result["mutationId"])

    async def search(
        self,
        query: Sequence[float],
        limit: int = 5,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        vector = check_query(query, limit, self.config.dimension)

        payload: dict[str, Any] = {
            "vector": vector,
            "topK": limit,
            "returnMetadata": "all",
            "returnValues": False,
        }
        if filters is not None:
            # Filtering on a field requires a metadata index on the Vectorize side
            payload["filter"] = filters

        started = time.perf_counter()
        result = await self._request(
            "POST",
            f"{self.index_path}/query",
            operation="search",
            json=payload,
            context={"limit": limit},
        )
        logger.info(
            "Query on index '%s' executed in %.1f ms",
            self.config.index_name,
            (time.perf_counter() - started) * 1000,
        )
        return normalize_matches(result, limit)

    async def get(self, vector_id: str) -> SearchResult | None:
        result = await self._request(
            "POST",
            f"{self.index_path}/get_by_ids",
            operation="get",
            json={"ids": [vector_id]},
            context={"id": vector_id},
        )
        vectors = normalize_vectors(result)
        if not vectors:
            return None
        return vectors[0]

    async def update(
        self,
        vector_id: str,
        vector: Sequence[float],
        payload: Mapping[str, Any] | None,
    ) -> None:
        # Get-then-upsert would not be atomic and could resurrect a deleted id
        raise UnsupportedOperationError("update", self.backend)

    async def delete(self, vector_id: str) -> None:
        # Vectorize ignores ids it does not hold, so a missing id is a no-op
        await self._request(
            "POST",
            f"{self.index_path}/delete_by_ids",
            operation="delete",
            json={"ids": [vector_id]},
            context={"id": vector_id},
        )

    async def delete_collection(self) -> None:
        logger.warning("Deleting Vectorize index '%s'", self.config.index_name)
        await self._request("DELETE", self.index_path, operation="delete_collection")

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
        """Create the index if it does not exist, otherwise verify its dimensions."""
        existing = await self._request("GET", self.index_path, operation="initialize", allow_missing=True)

        if existing is MISSING:
            logger.info(
                "Creating Vectorize index '%s' (dimensions=%d, metric=%s)",
                self.config.index_name,
                self.config.dimension,
                self.config.metric,
            )
            try:
                await self._request(
                    "POST",
                    self.config.indexes_url,
                    operation="initialize",
                    json={
                        "name": self.config.index_name,
                        "description": self.config.description,
                        "config": {
                            "dimensions": self.config.dimension,
                            "metric": self.config.metric,
                        },
                    },
                )
                return
            except RemoteFailureError as e:
                # Another caller created it first
                if e.status_code != 409:
                    raise
            existing = await self._request("GET", self.index_path, operation="initialize")

        dimensions = index_dimensions(existing)
        if dimensions != self.config.dimension:
            raise DimensionMismatchError(self.config.dimension, dimensions, operation="initialize")

    async def __aenter__(self) -> VectorizeVectorStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
