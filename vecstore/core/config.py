from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Metric = Literal["cosine", "euclidean", "dot-product"]
InsertMode = Literal["insert", "upsert"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "vecstore"
    app_env: str = "development"
    app_log_level: str = "INFO"

    # Backend selection
    vector_backend: Literal["vectorize", "memory"] = "vectorize"
    vector_retry_attempts: int = 0  # 0 disables the retry layer
    vector_retry_base_delay: float = 1.0

    # Cloudflare Vectorize
    vectorize_api_url: str = "https://api.cloudflare.com/client/v4"
    vectorize_account_id: str = ""
    vectorize_api_token: SecretStr = SecretStr("")
    vectorize_index_name: str = "vecstore-index"
    vectorize_index_description: str = ""
    vectorize_dimension: int = 1536
    vectorize_metric: Metric = "cosine"
    vectorize_timeout: float = 30.0
    vectorize_insert_mode: InsertMode = "insert"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @model_validator(mode="after")
    def validate_production_secrets(self) -> Settings:
        if self.is_production and self.vector_backend == "vectorize":
            if not self.vectorize_api_token.get_secret_value():
                raise ValueError("vectorize_api_token must be set in production")
            if not self.vectorize_account_id:
                raise ValueError("vectorize_account_id must be set in production")
        return self


class StoreConfig(BaseModel):
    """Connection settings owned by a single adapter.

    Frozen: an adapter reads its config at construction and never mutates it.
    """

    model_config = ConfigDict(frozen=True)

    api_url: str = "https://api.cloudflare.com/client/v4"
    account_id: str = ""
    api_token: SecretStr = SecretStr("")
    index_name: str
    description: str = ""
    dimension: int = Field(default=1536, gt=0)
    metric: Metric = "cosine"
    timeout: float = Field(default=30.0, gt=0)
    insert_mode: InsertMode = "insert"

    @property
    def index_url(self) -> str:
        """URL of the index resource, without a trailing slash."""
        return f"{self.indexes_url}/{self.index_name}"

    @property
    def indexes_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/accounts/{self.account_id}/vectorize/v2/indexes"

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> StoreConfig:
        source = source or settings
        return cls(
            api_url=source.vectorize_api_url,
            account_id=source.vectorize_account_id,
            api_token=source.vectorize_api_token,
            index_name=source.vectorize_index_name,
            description=source.vectorize_index_description,
            dimension=source.vectorize_dimension,
            metric=source.vectorize_metric,
            timeout=source.vectorize_timeout,
            insert_mode=source.vectorize_insert_mode,
        )


settings = Settings()
