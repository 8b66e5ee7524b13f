"""Shared HTTP transport for the Solidtime API (requests + tenacity).

Every API call goes through ``SolidtimeAdapter``: it stamps the bearer
token, records diagnostics, and retries HTTP 429 responses with a backoff
derived from the server's rate-limit headers. All other statuses and all
exceptions are passed through untouched.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Any, Optional

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from tenacity import RetryCallState

from solidtime.domain.config.client import ClientOptions
from solidtime.domain.config.retry import RetryConfig
from solidtime.domain.exceptions import RequestCancelledError
from solidtime.infrastructure.http.auth import BearerAuth
from solidtime.infrastructure.http.diagnostics import DiagnosticRecorder, safe_log
from solidtime.infrastructure.http.replicate import buffer_request_body, clone_request
from solidtime.infrastructure.retry import BackoffPolicy, create_rate_limit_retrying

logger = logging.getLogger(__name__)

USER_AGENT = "solidtime-python/0.1.0"


def _wait(seconds: float, cancel: Optional[threading.Event]) -> bool:
    """Block for ``seconds``; return True if ``cancel`` was set meanwhile."""
    if cancel is None:
        time.sleep(seconds)
        return False
    return cancel.wait(seconds)


def _raise_if_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise RequestCancelledError("Request was cancelled")


class SolidtimeAdapter(HTTPAdapter):
    """Transport adapter with bearer auth, diagnostics and 429 retries.

    Mount it on a ``requests.Session`` (see ``build_session``). A
    ``threading.Event`` passed as ``cancel=`` to ``Session.send`` reaches
    ``send`` and aborts the call before a send, after a receive, or during
    a backoff wait.
    """

    def __init__(
        self,
        auth: BearerAuth,
        *,
        retry_config: Optional[RetryConfig] = None,
        recorder: Optional[DiagnosticRecorder] = None,
        backoff: Optional[BackoffPolicy] = None,
        inner: Optional[BaseAdapter] = None,
        log: Optional[logging.Logger] = None,
        **kwargs: Any,
    ):
        """Initialize the adapter

        Args:
            auth: Credential stamped onto every attempt to the API origin
            retry_config: Retry ceiling and fallback backoff (default: RetryConfig())
            recorder: Diagnostics recorder (None = no diagnostics)
            backoff: Delay policy (default: BackoffPolicy(retry_config.initial_backoff))
            inner: Adapter performing the actual send (default: HTTPAdapter itself)
            log: Logger for retry warnings (default: the recorder's logger)
            **kwargs: Passed to HTTPAdapter (pool sizes etc.)
        """
        super().__init__(**kwargs)
        self.auth = auth
        self.retry_config = retry_config or RetryConfig()
        self.recorder = recorder
        self.backoff = backoff or BackoffPolicy(self.retry_config.initial_backoff)
        self.inner = inner
        if log is None:
            log = recorder.logger if recorder is not None else logger
        self.log = log

    def send(
        self,
        request: requests.PreparedRequest,
        stream: bool = False,
        timeout: Any = None,
        verify: Any = True,
        cert: Any = None,
        proxies: Any = None,
        cancel: Optional[threading.Event] = None,
    ) -> requests.Response:
        """Send ``request``, retrying while the server answers HTTP 429.

        A numeric ``timeout`` is a budget for the whole call: attempts get
        what is left of it and backoff waits never run past it.

        Returns:
            The first non-429 response, or the last 429 once retries are exhausted

        Raises:
            RequestCancelledError: If ``cancel`` is set
            requests.exceptions.Timeout: If the call budget runs out
            requests.exceptions.RequestException: Transport failures, unretried
        """
        deadline = None
        if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
            deadline = time.monotonic() + timeout

        def remaining() -> Any:
            if deadline is None:
                return timeout
            left = deadline - time.monotonic()
            if left <= 0:
                raise requests.exceptions.Timeout(
                    f"{request.method} {request.url} exceeded the {timeout}s call timeout"
                )
            return left

        diagnostics = self.recorder is not None and self.recorder.is_enabled()
        if self.retry_config.max_retries > 0:
            buffer_request_body(request)
        attempts = itertools.count()

        def attempt() -> requests.Response:
            _raise_if_cancelled(cancel)
            index = next(attempts)
            outgoing = request if index == 0 else clone_request(request)
            self.auth(outgoing)
            if diagnostics:
                self.recorder.record_request(outgoing)

            response = self._dispatch(
                outgoing,
                stream=stream,
                timeout=remaining(),
                verify=verify,
                cert=cert,
                proxies=proxies,
            )

            if diagnostics:
                self.recorder.record_response(response)
            if cancel is not None and cancel.is_set():
                response.close()
                raise RequestCancelledError("Request was cancelled")
            return response

        def sleep(seconds: float) -> None:
            budget = None if deadline is None else deadline - time.monotonic()
            if budget is not None and seconds > budget:
                if _wait(max(budget, 0.0), cancel):
                    raise RequestCancelledError("Request was cancelled during backoff")
                raise requests.exceptions.Timeout(
                    f"{request.method} {request.url} exceeded the {timeout}s call timeout"
                )
            if _wait(seconds, cancel):
                raise RequestCancelledError("Request was cancelled during backoff")

        def before_sleep(retry_state: RetryCallState) -> None:
            failed = retry_state.outcome.result()
            safe_log(
                self.log,
                logging.WARNING,
                "Rate limited on %s %s (attempt %d/%d), retrying in %.2fs",
                request.method,
                request.url,
                retry_state.attempt_number,
                self.retry_config.max_retries + 1,
                retry_state.next_action.sleep,
            )
            failed.close()

        def give_up(retry_state: RetryCallState) -> requests.Response:
            safe_log(
                self.log,
                logging.WARNING,
                "Rate limited on %s %s, giving up after %d retries",
                request.method,
                request.url,
                self.retry_config.max_retries,
            )
            return retry_state.outcome.result()

        retrying = create_rate_limit_retrying(
            self.retry_config,
            wait=self.backoff,
            sleep=sleep,
            before_sleep=before_sleep,
            retry_error_callback=give_up,
        )
        response = retrying(attempt)
        if response is None:
            raise RuntimeError(f"Retry loop for {request.method} {request.url} ended without a response")
        return response

    def _dispatch(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        if self.inner is not None:
            return self.inner.send(request, **kwargs)
        return super().send(request, **kwargs)

    def close(self) -> None:
        if self.inner is not None:
            self.inner.close()
        super().close()


def build_adapter(options: ClientOptions, inner: Optional[BaseAdapter] = None) -> SolidtimeAdapter:
    """Create the transport adapter described by ``options``."""
    recorder = DiagnosticRecorder(options.get_logger(), enabled=options.verbose)
    return SolidtimeAdapter(
        BearerAuth(options.api_token, base_url=options.base_url),
        retry_config=options.retry,
        recorder=recorder,
        backoff=BackoffPolicy(options.retry.initial_backoff),
        inner=inner,
    )


def build_session(options: ClientOptions, inner: Optional[BaseAdapter] = None) -> requests.Session:
    """Create a ``requests.Session`` routing http(s) traffic through ``SolidtimeAdapter``.

    Args:
        options: Validated client options
        inner: Optional adapter performing the network send (tests use a fake)

    Returns:
        Configured session
    """
    session = requests.Session()
    adapter = build_adapter(options, inner)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["Accept"] = "application/json"
    session.headers["User-Agent"] = USER_AGENT
    return session
