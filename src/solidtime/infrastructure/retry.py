"""Rate-limit backoff and retry utilities using tenacity.

The server's own hints about when capacity returns are preferred over a
blind exponential guess, but they are validated first: a hint that resolves
to a zero or negative wait falls through to the next rule.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt

from solidtime.domain.config.retry import RetryConfig

TOO_MANY_REQUESTS = 429


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_rate_limited(response: Any) -> bool:
    """Check if a response is an HTTP 429."""
    return getattr(response, "status_code", None) == TOO_MANY_REQUESTS


def _parse_delta_seconds(value: str) -> Optional[float]:
    try:
        seconds = float(value)
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _parse_http_date(value: str) -> Optional[datetime]:
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class BackoffPolicy:
    """Derives the wait before retrying a rate-limited response.

    Precedence, first match wins:

    1. ``Retry-After`` as delta-seconds
    2. ``Retry-After`` as an HTTP-date, if it lies in the future
    3. ``X-RateLimit-Reset`` as a Unix timestamp, if it lies in the future
    4. ``initial_backoff * 2 ** attempt``
    """

    def __init__(self, initial_backoff: float = 1.0, clock: Callable[[], datetime] = utc_now):
        self.initial_backoff = initial_backoff
        self.clock = clock

    def compute_delay(self, response: requests.Response, attempt: int) -> float:
        """Return the delay in seconds before the next attempt.

        Args:
            response: The rate-limited response
            attempt: Zero-based index of the attempt that produced it

        Returns:
            Delay in seconds
        """
        headers = response.headers
        retry_after = headers.get("Retry-After")
        if retry_after:
            retry_after = retry_after.strip()
            seconds = _parse_delta_seconds(retry_after)
            if seconds is not None:
                return seconds
            retry_at = _parse_http_date(retry_after)
            if retry_at is not None:
                delay = (retry_at - self.clock()).total_seconds()
                if delay > 0:
                    return delay

        reset = headers.get("X-RateLimit-Reset")
        if reset:
            try:
                reset_at = int(reset.strip())
            except ValueError:
                reset_at = None
            if reset_at is not None:
                delay = reset_at - self.clock().timestamp()
                if delay > 0:
                    return delay

        return self.initial_backoff * (2**attempt)

    def __call__(self, retry_state: RetryCallState) -> float:
        """tenacity ``wait`` hook: delay for the outcome of the last attempt."""
        if retry_state.outcome is None:
            raise RuntimeError("wait computed before any attempt finished")
        return self.compute_delay(retry_state.outcome.result(), retry_state.attempt_number - 1)


def create_rate_limit_retrying(
    retry_config: RetryConfig,
    *,
    wait: Callable[[RetryCallState], float],
    sleep: Callable[[float], None],
    before_sleep: Optional[Callable[[RetryCallState], None]] = None,
    retry_error_callback: Optional[Callable[[RetryCallState], Any]] = None,
) -> Retrying:
    """Create a tenacity controller that retries HTTP 429 results only.

    Args:
        retry_config: Retry configuration (total attempts = max_retries + 1)
        wait: Delay strategy, usually a ``BackoffPolicy``
        sleep: Wait function; may raise to abort the call
        before_sleep: Optional callback before each wait
        retry_error_callback: Optional callback when retries are exhausted;
            its return value becomes the call's result

    Returns:
        Retrying controller
    """
    return Retrying(
        stop=stop_after_attempt(retry_config.max_retries + 1),
        wait=wait,
        retry=retry_if_result(is_rate_limited),
        sleep=sleep,
        before_sleep=before_sleep,
        retry_error_callback=retry_error_callback,
        reraise=True,
    )
