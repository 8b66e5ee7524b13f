"""Retry configuration model."""

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Configuration for rate-limit retries.

    Attributes:
        max_retries: Retries after the first attempt (total sends = max_retries + 1)
        initial_backoff: Fallback delay in seconds for the first retry, doubled per retry
    """

    max_retries: int = Field(3, ge=0, le=10)
    initial_backoff: float = Field(1.0, ge=0.0)  # Allow 0 for tests
