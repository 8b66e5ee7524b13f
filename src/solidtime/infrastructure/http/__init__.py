"""Building blocks of the Solidtime HTTP transport"""

from solidtime.infrastructure.http.auth import BearerAuth
from solidtime.infrastructure.http.diagnostics import REDACTED_AUTHORIZATION, DiagnosticRecorder
from solidtime.infrastructure.http.replicate import buffer_request_body, clone_request

__all__ = [
    "BearerAuth",
    "DiagnosticRecorder",
    "REDACTED_AUTHORIZATION",
    "buffer_request_body",
    "clone_request",
]
