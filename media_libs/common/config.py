"""Configuration management for the media search gateway.

Centralizes environment-driven configuration for the search service and its
two upstreams (the Meilisearch primary index and the backend API used as a
fallback). It builds on ``pydantic_settings.BaseSettings`` so configuration
can be provided via environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- Field names match the environment variable names (case-insensitive)
- A small service-specific subclass keeps search concerns together

Usage
- Inject the config in the service entrypoint: ``config = SearchConfig()``
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration shared by every process of the gateway.

    Parameters are read from the process environment. Defaults keep local
    development convenient while still being explicit.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Outbound HTTP
    http_timeout: float = Field(default=30.0, gt=0)


class SearchConfig(BaseConfig):
    """Configuration for the search service.

    ``use_meilisearch`` selects whether the primary index is attempted at all;
    the backend API is always available as the fallback.
    """

    search_port: int = Field(default=9007)

    # Primary index (Meilisearch)
    use_meilisearch: bool = Field(default=False)
    meilisearch_url: str = Field(default="http://localhost:7700")
    meilisearch_key: str = Field(default="")

    # Secondary backend
    backend_url: str = Field(default="http://localhost:3060")
    api_key: str = Field(default="")
    backend_token: Optional[str] = Field(default=None)

    # Fallback policy
    fallback_on_empty: bool = Field(default=True)
    primary_failure_threshold: int = Field(default=5, ge=1)
    primary_recovery_timeout: float = Field(default=30.0, ge=0)

    @field_validator("meilisearch_url", "backend_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def backend_bearer_token(self) -> str:
        """Bearer token sent to the backend API.

        Deployments historically reused the Meilisearch key here, so that is
        the default when ``BACKEND_TOKEN`` is unset.
        """
        if self.backend_token:
            return self.backend_token
        return self.meilisearch_key

