"""Solidtime API client"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import requests
from requests.adapters import BaseAdapter

from solidtime.domain.config.client import ClientOptions
from solidtime.domain.exceptions import SolidtimeApiException
from solidtime.domain.models.user import User
from solidtime.infrastructure.http_client import build_session

logger = logging.getLogger(__name__)


class MeApi:
    """Information about the currently authenticated user"""

    def __init__(self, client: "SolidtimeClient"):
        self._client = client

    def get(self, cancel: Optional[threading.Event] = None) -> User:
        """Get the user the API token belongs to

        Args:
            cancel: Optional cancellation signal

        Returns:
            The current user

        Raises:
            SolidtimeApiException: If the API returns an error or an unexpected payload
        """
        payload = self._client.request_json("GET", "/v1/me", cancel=cancel)
        return User.from_envelope(payload, disallow_unmapped=self._client.disallow_unmapped)


class SolidtimeClient:
    """Client for the Solidtime API

    All calls share one ``requests.Session`` whose transport adds bearer
    auth, diagnostics and rate-limit retries. Use as a context manager or
    call ``close()`` when done.
    """

    def __init__(self, options: ClientOptions, transport: Optional[BaseAdapter] = None):
        """Initialize client

        Args:
            options: Validated client options
            transport: Adapter performing the network send (default: urllib3 via requests)
        """
        if options is None:
            raise ValueError("options are required")
        self.options = options
        self.base_url = options.base_url.rstrip("/")
        self.session = build_session(options, inner=transport)
        self.me = MeApi(self)
        logger.debug(f"Solidtime client initialized for {self.base_url}")

    @property
    def disallow_unmapped(self) -> bool:
        return self.options.unmapped_members == "disallow"

    def url_for(self, path: str) -> str:
        """Build an absolute URL for an API path (e.g. "/v1/me")."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        cancel: Optional[threading.Event] = None,
    ) -> requests.Response:
        """Send a request and return the raw response, whatever its status.

        Args:
            method: HTTP method
            path: API path relative to the base URL, or an absolute URL
            params: Query string parameters
            json: JSON body
            cancel: Optional cancellation signal

        Returns:
            The HTTP response (a 429 once retries are exhausted)

        Raises:
            RequestCancelledError: If ``cancel`` is set during the call
            requests.exceptions.RequestException: On timeouts and transport failures
        """
        prepared = self.session.prepare_request(
            requests.Request(method.upper(), self.url_for(path), params=params, json=json)
        )
        settings = self.session.merge_environment_settings(prepared.url, {}, None, None, None)
        return self.session.send(
            prepared,
            timeout=self.options.timeout_seconds,
            cancel=cancel,
            **settings,
        )

    def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and decode the JSON body of a successful response.

        Raises:
            SolidtimeApiException: On non-2xx statuses or a non-JSON body
        """
        response = self.request(method, path, **kwargs)
        if not response.ok:
            raise SolidtimeApiException(
                f"Solidtime API {method.upper()} {path} failed: "
                f"{response.status_code} {response.reason or ''}".rstrip(),
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SolidtimeApiException(
                f"Solidtime API {method.upper()} {path} returned invalid JSON: {e}",
                status_code=response.status_code,
            ) from e

    def close(self) -> None:
        """Close the underlying session and release pooled connections"""
        self.session.close()

    def __enter__(self) -> "SolidtimeClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
