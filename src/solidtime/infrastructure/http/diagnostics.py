"""Request/response diagnostics for the Solidtime transport.

Bodies are read once for logging and then re-exposed from memory, so the
network layer (for requests) and the caller's JSON decoding (for responses)
still see the full original bytes.
"""

from __future__ import annotations

import io
import logging
from email.message import Message
from typing import Optional, Tuple

import requests
from requests import PreparedRequest

from solidtime.infrastructure.http.replicate import read_body

REDACTED_AUTHORIZATION = "Bearer ***REDACTED***"
DEFAULT_MEDIA_TYPE = "application/json"
DEFAULT_CHARSET = "utf-8"


def parse_content_type(value: Optional[str]) -> Tuple[str, str]:
    """Return ``(media_type, charset)`` from a Content-Type header value.

    Missing parts fall back to ``application/json`` and ``utf-8``.
    """
    if not value:
        return DEFAULT_MEDIA_TYPE, DEFAULT_CHARSET
    msg = Message()
    msg["Content-Type"] = value
    charset = msg.get_content_charset()
    media_type = value.split(";", 1)[0].strip().lower() or DEFAULT_MEDIA_TYPE
    return media_type, charset or DEFAULT_CHARSET


def safe_log(logger: logging.Logger, level: int, msg: str, *args) -> None:
    """Log without ever failing the caller.

    A sink whose stream was closed underneath us (e.g. a test runner that
    stopped capturing before a background call finished) raises
    ``ValueError``; that line is dropped.
    """
    try:
        logger.log(level, msg, *args)
    except ValueError:
        pass


def _decode(body: bytes, charset: str) -> str:
    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        return body.decode(DEFAULT_CHARSET, errors="replace")


class DiagnosticRecorder:
    """Logs outgoing requests and incoming responses at DEBUG level.

    The Authorization header is never written out; its value is replaced
    with ``REDACTED_AUTHORIZATION``.
    """

    def __init__(self, logger: logging.Logger, enabled: bool = True):
        self.logger = logger
        self.enabled = enabled

    def is_enabled(self) -> bool:
        """True when diagnostics are switched on and DEBUG output is wanted"""
        return self.enabled and self.logger.isEnabledFor(logging.DEBUG)

    def _emit(self, msg: str, *args) -> None:
        safe_log(self.logger, logging.DEBUG, msg, *args)

    def record_request(self, request: PreparedRequest) -> None:
        """Log ``request`` and re-expose its body as in-memory bytes."""
        self._emit("HTTP request: %s %s", request.method, request.url)
        for name, value in (request.headers or {}).items():
            if name.lower() == "authorization":
                self._emit("  %s: %s", name, REDACTED_AUTHORIZATION)
            else:
                self._emit("  %s: %s", name, value)

        if request.body is None:
            return

        content_type = request.headers.get("Content-Type")
        media_type, charset = parse_content_type(content_type)
        body = read_body(request.body)
        if isinstance(body, str):
            body = body.encode(charset, errors="replace")
        self._emit("  Body: %s", _decode(body, charset))

        request.body = body
        if content_type is None:
            request.headers["Content-Type"] = f"{media_type}; charset={charset}"

    def record_response(self, response: requests.Response) -> None:
        """Log ``response`` and replace its consumed stream with a fresh one."""
        self._emit("HTTP response: %s %s", response.status_code, response.reason or "")
        for name, value in response.headers.items():
            self._emit("  %s: %s", name, value)

        if response.raw is None:
            return

        original = response.raw
        body = response.content or b""
        replay = io.BytesIO(body)
        # Session.send extracts cookies from raw._original_response
        replay._original_response = getattr(original, "_original_response", None)
        response.raw = replay
        release = getattr(original, "release_conn", None)
        if release is not None:
            release()
        # the replayed bytes are already decoded
        if response.headers.pop("Content-Encoding", None) is not None:
            response.headers["Content-Length"] = str(len(body))

        content_type = response.headers.get("Content-Type")
        media_type, charset = parse_content_type(content_type)
        text = _decode(body, charset)
        if text.strip():
            self._emit("  Body: %s", text)
        if body and content_type is None:
            response.headers["Content-Type"] = f"{media_type}; charset={charset}"
