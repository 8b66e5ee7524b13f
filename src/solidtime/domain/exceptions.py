"""Errors raised by the Solidtime client"""

from typing import Optional


class SolidtimeApiException(Exception):
    """The Solidtime API returned an error or a payload that could not be parsed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequestCancelledError(Exception):
    """The caller cancelled an in-progress call"""

    pass
