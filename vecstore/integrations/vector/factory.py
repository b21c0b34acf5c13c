from __future__ import annotations

import logging

import httpx

from vecstore.core.config import Settings, StoreConfig, settings
from vecstore.integrations.vector.base import VectorStore
from vecstore.integrations.vector.binding import VectorizeBinding, VectorizeBindingStore
from vecstore.integrations.vector.memory import InMemoryVectorStore
from vecstore.integrations.vector.retrying import RetryingVectorStore
from vecstore.integrations.vector.vectorize import VectorizeVectorStore

logger = logging.getLogger(__name__)


def create_vector_store(
    config: StoreConfig | None = None,
    *,
    backend: str | None = None,
    binding: VectorizeBinding | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    app_settings: Settings | None = None,
) -> VectorStore:
    """Build the configured VectorStore.

    Args:
        config: Connection settings. Defaults to ones derived from the settings.
        backend: ``"vectorize"`` or ``"memory"``; overrides ``vector_backend``.
        binding: In-process Vectorize binding. When given, the binding variant
            is used instead of the HTTP client.
        transport: Optional httpx transport for the HTTP client.
        app_settings: Settings to read defaults from.
    """
    app_settings = app_settings or settings
    config = config or StoreConfig.from_settings(app_settings)
    backend = backend or app_settings.vector_backend

    store: VectorStore
    if binding is not None:
        store = VectorizeBindingStore(binding, config)
    elif backend == "memory":
        store = InMemoryVectorStore(config)
    elif backend == "vectorize":
        store = VectorizeVectorStore(config, transport=transport)
    else:
        raise ValueError(f"Unknown vector backend: {backend!r}")

    logger.info("Using %s vector store for index '%s'", type(store).__name__, config.index_name)

    if app_settings.vector_retry_attempts > 0:
        return RetryingVectorStore(
            store,
            max_retries=app_settings.vector_retry_attempts,
            base_delay=app_settings.vector_retry_base_delay,
        )
    return store
