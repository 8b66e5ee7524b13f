"""Request replication for retries.

A ``PreparedRequest`` handed to urllib3 cannot be trusted to be sent again:
streaming bodies (files, generators) are consumed by the first send. Retries
therefore always go out as an independent clone built from buffered bytes.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from requests import PreparedRequest
from requests.structures import CaseInsensitiveDict

Body = Optional[Union[bytes, str]]


def read_body(body: Any) -> Body:
    """Read a request body fully into memory.

    ``bytes`` and ``str`` bodies are returned unchanged. File-like bodies are
    read to the end, other iterables are joined chunk by chunk.
    """
    if body is None or isinstance(body, (bytes, str)):
        return body
    if isinstance(body, (bytearray, memoryview)):
        return bytes(body)
    if hasattr(body, "read"):
        data = body.read()
        return data.encode("utf-8") if isinstance(data, str) else data
    return b"".join(
        chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk) for chunk in body
    )


def buffer_request_body(request: PreparedRequest) -> PreparedRequest:
    """Replace a streaming body with its bytes, in place.

    Must run before the first send; headers (Content-Length or
    Transfer-Encoding) are left as requests prepared them.
    """
    if request.body is not None and not isinstance(request.body, (bytes, str)):
        request.body = read_body(request.body)
    return request


def clone_request(request: PreparedRequest) -> PreparedRequest:
    """Return an independent copy of ``request`` that is safe to send.

    Method, URL, hooks and cookies are shared by value, headers are copied
    item by item without revalidation, and the body is fully buffered. A
    request without a body yields a clone without a body.
    """
    clone = request.copy()
    clone.headers = CaseInsensitiveDict()
    if request.headers is not None:
        for name, value in request.headers.items():
            clone.headers[name] = value

    body = request.body
    if hasattr(body, "seek") and isinstance(getattr(request, "_body_position", None), int):
        body.seek(request._body_position)
    clone.body = read_body(body)
    return clone
