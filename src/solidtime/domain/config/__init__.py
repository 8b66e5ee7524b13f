"""Configuration models with Pydantic validation."""

from solidtime.domain.config.client import DEFAULT_BASE_URL, ClientOptions
from solidtime.domain.config.retry import RetryConfig

__all__ = [
    "ClientOptions",
    "RetryConfig",
    "DEFAULT_BASE_URL",
]
