"""Client options model."""

import logging
from typing import Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from solidtime.domain.config.retry import RetryConfig

DEFAULT_BASE_URL = "https://app.solidtime.io/api"


class ClientOptions(BaseModel):
    """Options for the Solidtime API client.

    Validation runs at construction so a misconfigured client fails before
    any request is attempted.

    Attributes:
        api_token: Personal access token sent as a bearer credential
        base_url: Absolute http(s) URL of the API root
        timeout_seconds: Budget for a whole call, retries and backoff included
        verbose: Log request/response lines and bodies at DEBUG level
        unmapped_members: "disallow" makes unknown response fields fail parsing
        retry: Rate-limit retry configuration
        logger: Logger receiving transport diagnostics (None = "solidtime.http")
    """

    api_token: str
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = Field(30.0, gt=0)
    verbose: bool = False
    unmapped_members: Literal["skip", "disallow"] = "skip"
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logger: Optional[logging.Logger] = Field(None, exclude=True)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    @field_validator("api_token")
    @classmethod
    def _token_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("api_token is required")
        return value

    @field_validator("base_url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("base_url is required")
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"base_url '{value}' is not a valid absolute URL")
        if parts.scheme not in ("http", "https"):
            raise ValueError("base_url must use http or https scheme")
        return value

    def get_logger(self) -> logging.Logger:
        """Return the diagnostics logger, falling back to the package default."""
        return self.logger or logging.getLogger("solidtime.http")
