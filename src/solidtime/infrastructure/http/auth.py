"""Bearer token authentication for outgoing requests"""

from typing import Optional, Tuple

from requests import PreparedRequest
from requests.auth import AuthBase
from urllib3.util import parse_url

DEFAULT_PORTS = {"http": 80, "https": 443}

Origin = Tuple[str, str, Optional[int]]


def origin_of(url: str) -> Origin:
    """Return ``(scheme, host, port)`` of ``url``, lower-cased, default port filled in."""
    parsed = parse_url(url)
    scheme = (parsed.scheme or "").lower()
    host = (parsed.host or "").lower()
    return scheme, host, parsed.port or DEFAULT_PORTS.get(scheme)


class BearerAuth(AuthBase):
    """Stamps ``Authorization: Bearer <token>`` onto a request.

    Any existing Authorization value is overwritten. When ``base_url`` is
    given, only requests to that scheme, host and port get the token;
    requests elsewhere (redirect targets, absolute URLs) go out without it.
    """

    def __init__(self, token: str, base_url: Optional[str] = None):
        if not token:
            raise ValueError("API token is required")
        self._token = token
        self._origin = origin_of(base_url) if base_url else None

    def applies_to(self, url: str) -> bool:
        return self._origin is None or origin_of(url) == self._origin

    def __call__(self, request: PreparedRequest) -> PreparedRequest:
        if request is None:
            raise ValueError("request is required")
        if self.applies_to(request.url):
            request.headers["Authorization"] = f"Bearer {self._token}"
        return request

    def __eq__(self, other):
        return (
            isinstance(other, BearerAuth)
            and self._token == other._token
            and self._origin == other._origin
        )

    def __ne__(self, other):
        return not self == other

    def __repr__(self) -> str:
        return "BearerAuth(token=***)"
