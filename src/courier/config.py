"""Configuration management for Courier."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Courier configuration.

    All settings can be overridden with ``COURIER_``-prefixed environment
    variables (e.g. ``COURIER_QDRANT_URL``) or a ``.env`` file.
    """

    # Storage
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL (use ':memory:' for local in-process mode)",
    )
    qdrant_api_key: str | None = Field(default=None, description="Qdrant API key")
    collection_prefix: str = Field(
        default="courier",
        min_length=1,
        description="Prefix for Qdrant collection names",
    )
    storage_max_scroll_limit: int = Field(
        default=10000,
        ge=100,
        le=100000,
        description=(
            "Records fetched per scroll request when paging through a collection. "
            "Bounds the size of each Qdrant response, not the size of a result."
        ),
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json for production, text for development",
    )

    # Delivery
    user_agent: str = Field(
        default="Courier-Webhooks/1.0",
        description="User-Agent header sent with every webhook delivery",
    )
    response_body_limit: int = Field(
        default=1000,
        ge=0,
        le=100000,
        description="Characters of response body kept on a delivery attempt",
    )

    # Retry worker
    retry_worker_enabled: bool = Field(
        default=True,
        description="Run the retry worker inside the API process",
    )
    retry_poll_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=3600.0,
        description="Seconds between retry queue polls",
    )
    retry_batch_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum due retry entries processed per poll",
    )

    # CORS Configuration
    cors_enabled: bool = Field(default=True, description="Enable CORS middleware")
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins. Use ['*'] for permissive mode (dev only).",
    )
    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        description="Allowed HTTP methods for CORS requests",
    )
    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed headers for CORS requests",
    )
    cors_allow_credentials: bool = Field(
        default=False,
        description=(
            "Allow credentials in CORS requests. "
            "Cannot be True when cors_allow_origins is ['*']."
        ),
    )
    cors_max_age: int = Field(
        default=600,
        ge=0,
        le=86400,
        description="Max age (seconds) for CORS preflight cache",
    )

    model_config = {
        "env_prefix": "COURIER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def validate_cors_settings(self) -> "Settings":
        """Reject credentialed CORS with a wildcard origin."""
        if self.cors_allow_credentials and "*" in self.cors_allow_origins:
            raise ValueError(
                "cors_allow_credentials cannot be True when cors_allow_origins contains '*'"
            )
        return self


# Global settings instance
settings = Settings()
