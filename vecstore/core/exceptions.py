from __future__ import annotations

from typing import Any


class VectorStoreError(Exception):
    """Base exception for vector store errors."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class InvalidInputError(VectorStoreError, ValueError):
    """Caller-supplied arguments were rejected before any backend call."""


class ArityMismatchError(InvalidInputError):
    """Parallel insert sequences (vectors, ids, payloads) differ in length."""

    def __init__(self, vectors: int, ids: int, payloads: int, operation: str = "insert") -> None:
        super().__init__(
            f"vectors, ids and payloads must have equal length "
            f"(got {vectors}, {ids}, {payloads})",
            operation=operation,
            details={"vectors": vectors, "ids": ids, "payloads": payloads},
        )


class DimensionMismatchError(InvalidInputError):
    """A vector's length does not match the index dimensionality."""

    def __init__(
        self,
        expected: int,
        actual: int,
        operation: str | None = None,
        vector_id: str | None = None,
    ) -> None:
        target = f" for id {vector_id!r}" if vector_id is not None else ""
        super().__init__(
            f"expected vector of dimension {expected}, got {actual}{target}",
            operation=operation,
            details={"expected": expected, "actual": actual, "id": vector_id},
        )
        self.expected = expected
        self.actual = actual


class NotFoundError(VectorStoreError, LookupError):
    """A targeted operation referenced an id that does not exist."""

    def __init__(self, vector_id: str, operation: str | None = None) -> None:
        super().__init__(f"vector {vector_id!r} not found", operation=operation, details={"id": vector_id})
        self.vector_id = vector_id


class UnsupportedOperationError(VectorStoreError, NotImplementedError):
    """The active backend does not expose this operation."""

    def __init__(self, operation: str, backend: str) -> None:
        super().__init__(
            f"not supported by the {backend} backend",
            operation=operation,
            details={"backend": backend},
        )
        self.backend = backend


class RemoteFailureError(VectorStoreError):
    """Network failure or non-2xx / unsuccessful backend response."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status_code: int | None = None,
        payload: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, operation=operation, details=details)
        self.status_code = status_code
        self.payload = payload

    @property
    def is_transient(self) -> bool:
        """Rate limiting, server errors and transport failures may succeed later."""
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class MalformedResponseError(VectorStoreError):
    """A backend response could not be normalized into the data model."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        payload: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, operation=operation, details=details)
        self.payload = payload
