from __future__ import annotations

import os

os.environ.setdefault("VECTORIZE_ACCOUNT_ID", "test-account")
os.environ.setdefault("VECTORIZE_API_TOKEN", "test-token")

import json
import uuid
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest

from vecstore.core.config import Settings, StoreConfig
from vecstore.integrations.vector.base import VectorStore
from vecstore.integrations.vector.factory import create_vector_store
from vecstore.integrations.vector.memory import _SCORERS, matches_filters


def _envelope(result: Any = None, status_code: int = 200, errors: list[dict[str, Any]] | None = None) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={
            "success": not errors,
            "errors": errors or [],
            "messages": [],
            "result": result,
        },
    )


def _error(status_code: int, code: int, message: str) -> httpx.Response:
    return _envelope(status_code=status_code, errors=[{"code": code, "message": message}])


class FakeVectorizeAPI:
    """In-memory stand-in for the Vectorize v2 REST API, served via MockTransport."""

    def __init__(self, config: StoreConfig) -> None:
        self.prefix = httpx.URL(config.indexes_url).path
        self.token = config.api_token.get_secret_value()
        self.indexes: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return _error(401, 10000, "Authentication error")

        parts = request.url.path[len(self.prefix):].strip("/").split("/")
        parts = [p for p in parts if p]

        if not parts and request.method == "POST":
            return self._create(json.loads(request.content))

        name = parts[0]
        index = self.indexes.get(name)
        if index is None:
            return _error(404, 3000, f"vectorize.index.not_found: {name}")

        if len(parts) == 1:
            if request.method == "GET":
                return _envelope({"name": name, "config": {"dimensions": index["dimensions"], "metric": index["metric"]}})
            if request.method == "DELETE":
                del self.indexes[name]
                return _envelope()

        op = parts[1]
        if op in ("insert", "upsert"):
            assert request.headers["Content-Type"] == "application/x-ndjson"
            for line in request.content.decode().splitlines():
                vector = json.loads(line)
                if op == "upsert" or vector["id"] not in index["vectors"]:
                    index["vectors"][vector["id"]] = vector
            return _envelope({"mutationId": str(uuid.uuid4())})

        body = json.loads(request.content)
        if op == "query":
            return _envelope(self._query(index, body))
        if op == "get_by_ids":
            return _envelope([index["vectors"][i] for i in body["ids"] if i in index["vectors"]])
        if op == "delete_by_ids":
            for vector_id in body["ids"]:
                index["vectors"].pop(vector_id, None)
            return _envelope({"mutationId": str(uuid.uuid4())})

        return _error(404, 7000, "No route for that URI")

    def _create(self, body: dict[str, Any]) -> httpx.Response:
        if body["name"] in self.indexes:
            return _error(409, 3002, "vectorize.index.duplicate_name")
        self.indexes[body["name"]] = {
            "dimensions": body["config"]["dimensions"],
            "metric": body["config"]["metric"],
            "vectors": {},
        }
        return _envelope({"name": body["name"], "config": body["config"]})

    def _query(self, index: dict[str, Any], body: dict[str, Any]) -> dict[str, Any]:
        scorer = _SCORERS[index["metric"]]
        matches = [
            {
                "id": v["id"],
                "score": scorer(body["vector"], v["values"]),
                "metadata": v.get("metadata", {}) if body.get("returnMetadata") == "all" else None,
                "namespace": None,
            }
            for v in index["vectors"].values()
            if matches_filters(v.get("metadata", {}), body.get("filter"))
        ]
        matches.sort(key=lambda m: m["score"], reverse=index["metric"] != "euclidean")
        matches = matches[: body["topK"]]
        return {"count": len(matches), "matches": matches}


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(
        account_id="test-account",
        api_token="test-token",
        index_name="contract-index",
        dimension=2,
    )


@pytest.fixture
def fake_api(store_config: StoreConfig) -> FakeVectorizeAPI:
    return FakeVectorizeAPI(store_config)


@pytest.fixture(params=["memory", "vectorize"])
async def store(
    request: pytest.FixtureRequest,
    store_config: StoreConfig,
    fake_api: FakeVectorizeAPI,
) -> AsyncGenerator[VectorStore, None]:
    """A fresh, initialized store for each backend."""
    vector_store = create_vector_store(
        store_config,
        backend=request.param,
        transport=fake_api.transport(),
        app_settings=Settings(_env_file=None, vector_retry_attempts=0),
    )
    await vector_store.initialize()
    yield vector_store
    await vector_store.close()
