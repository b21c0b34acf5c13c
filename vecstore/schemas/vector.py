from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Backend-defined predicate over metadata, forwarded untranslated.
SearchFilters = dict[str, Any]

# NaN and infinities cannot be sent as JSON numbers.
FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]


class VectorRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    values: list[FiniteFloat]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def missing_metadata_is_empty(cls, value: Any) -> Any:
        # A missing payload is stored as empty metadata; other non-mappings are rejected.
        return {} if value is None else value


class SearchResult(BaseModel):
    """A record as returned to callers.

    ``score`` is only set for results of a similarity query.
    """

    id: str
    score: float | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
