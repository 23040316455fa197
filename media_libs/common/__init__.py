"""Common utilities shared across the gateway.

Includes:
- ``config``: pydantic-settings service configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from media_libs.common.config import SearchConfig
- from media_libs.common.logging import configure_logging
"""
