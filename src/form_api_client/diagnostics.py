"""Diagnostic logging for requests, responses and failures."""

import logging
from typing import Any, Optional

import requests

from .constants import AUTHORIZATION_HEADER, BEARER_PREFIX
from .models import Outcome, OutgoingRequest

logger = logging.getLogger(__name__)


def _masked_headers(headers: dict[str, str]) -> dict[str, str]:
    """Hide credential values."""
    masked = {}
    for name, value in headers.items():
        if name.lower() == AUTHORIZATION_HEADER:
            value = f"{BEARER_PREFIX} ***"
        masked[name] = value
    return masked


class DiagnosticLogger:
    """Passive observer of the request pipeline.

    Each hook writes one entry. A failure in the logging backend is swallowed
    so it can never fail the request being observed.
    """

    def __init__(self, log: Optional[logging.Logger] = None, capture: bool = False):
        self.log = log or logger
        self.records: Optional[list[tuple[str, Any]]] = [] if capture else None

    def _emit(self, event: str, level: int, payload: Any) -> None:
        try:
            if self.records is not None:
                self.records.append((event, payload))
            self.log.log(level, f"{event} {payload}")
        except Exception:  # noqa: BLE001
            pass

    def request(self, request: OutgoingRequest) -> None:
        """Outgoing request, after credential attachment."""
        self._emit(
            "REQUEST",
            logging.DEBUG,
            {
                "method": request.method,
                "path": request.path,
                "headers": _masked_headers(request.headers),
                "params": request.params,
            },
        )

    def response(self, response: requests.Response) -> None:
        """Successful response."""
        self._emit(
            "RESPONSE",
            logging.DEBUG,
            {"status": response.status_code, "url": response.url},
        )

    def retry(self, request: OutgoingRequest, outcome: Outcome, attempt: int) -> None:
        """Failed attempt that is about to be retried."""
        self._emit(
            "RETRY",
            logging.WARNING,
            {
                "method": request.method,
                "path": request.path,
                "attempt": attempt,
                "status": outcome.status_code,
                "error": type(outcome.error).__name__,
            },
        )

    def error(self, message: Optional[str]) -> None:
        """Classified failure; message is the error body's ``message`` field."""
        self._emit("ERROR", logging.ERROR, message)

    def entries(self, event: str) -> list[Any]:
        """Captured payloads for one event type."""
        if self.records is None:
            return []
        return [payload for name, payload in self.records if name == event]
