"""Retry policy for transient request failures."""

import logging
import time
from typing import Callable, Optional

import requests
from urllib3.exceptions import InvalidHeader
from urllib3.util.retry import RequestHistory, Retry

from .constants import DEFAULT_BACKOFF_FACTOR, DEFAULT_MAX_RETRIES, HTTP_SERVER_ERRORS
from .models import Outcome, OutgoingRequest

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Decides whether a failed attempt is retried, using urllib3's Retry.

    A failure is retryable when it is a connection-level error (any method),
    or a read timeout or 5xx response on an idempotent method. The attempt
    budget is owned by the ``Retry`` object: each failed attempt decrements
    ``total`` and the sequence stops once it is exhausted.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        retry: Optional[Retry] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize policy with an attempt budget or a prepared Retry."""
        self.retry = retry or Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=HTTP_SERVER_ERRORS,
            allowed_methods=Retry.DEFAULT_ALLOWED_METHODS,
            raise_on_status=False,
        )
        self.sleep = sleep

    @property
    def max_retries(self) -> int:
        return self.retry.total

    def start(self) -> Retry:
        """Fresh retry state for one logical request."""
        return self.retry.new()

    def _is_idempotent(self, method: str) -> bool:
        allowed = self.retry.allowed_methods
        return not allowed or method.upper() in allowed

    def is_retryable(self, request: OutgoingRequest, outcome: Outcome) -> bool:
        """Whether the failure in outcome qualifies for an automatic retry."""
        error = outcome.error
        if error is None:
            return False
        if isinstance(error, requests.ConnectionError):
            return True
        if isinstance(error, requests.Timeout):
            return self._is_idempotent(request.method)
        if outcome.status_code is not None:
            return bool(self.retry.is_retry(request.method, outcome.status_code))
        return False

    def next_attempt(self, state: Retry, request: OutgoingRequest, outcome: Outcome) -> Optional[Retry]:
        """Advance retry state after a failed attempt.

        Returns the new state, or None when the failure is not retryable or
        the budget is spent.
        """
        if not self.is_retryable(request, outcome):
            return None
        history = state.history + (
            RequestHistory(request.method, request.path, outcome.error, outcome.status_code, None),
        )
        new_state = state.new(total=state.total - 1, history=history)
        if new_state.is_exhausted():
            logger.debug(f"Retry budget exhausted for {request.method} {request.path}")
            return None
        return new_state

    def retry_after(self, state: Retry, outcome: Optional[Outcome]) -> Optional[float]:
        """Seconds requested by the server's Retry-After header, if honoured."""
        if outcome is None or outcome.response is None or not state.respect_retry_after_header:
            return None
        if outcome.status_code not in Retry.RETRY_AFTER_STATUS_CODES:
            return None
        value = outcome.response.headers.get("Retry-After")
        if not value:
            return None
        try:
            return state.parse_retry_after(value)
        except InvalidHeader:
            logger.debug(f"Ignoring malformed Retry-After header: {value!r}")
            return None

    def backoff(self, state: Retry, outcome: Optional[Outcome] = None) -> None:
        """Sleep before the next attempt.

        A Retry-After header on the failed response takes precedence over the
        exponential schedule, as in urllib3's own ``Retry.sleep``.
        """
        delay = self.retry_after(state, outcome)
        if delay is None:
            delay = state.get_backoff_time()
        if delay > 0:
            self.sleep(delay)
