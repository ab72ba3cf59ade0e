"""Request pipeline stages.

A request passes through these stages in order::

    attach-credential -> log-outbound -> dispatch-with-retry -> classify-failure -> log-result

The first two run again for every physical attempt, so a retried request
re-reads the credential and is logged once per attempt. Classification runs
once, on the final settled outcome.
"""

import logging
from typing import Any, Callable

import requests

from .constants import AUTHORIZATION_HEADER, BEARER_PREFIX
from .diagnostics import DiagnosticLogger
from .models import ApiResult, Outcome, OutgoingRequest
from .retry import RetryPolicy
from .session_guard import SessionGuard, classify
from .storage import KeyValueStore, get_access_token

logger = logging.getLogger(__name__)

STAGES = (
    "attach-credential",
    "log-outbound",
    "dispatch-with-retry",
    "classify-failure",
    "log-result",
)

Transport = Callable[[OutgoingRequest], Outcome]


def attach_credential(request: OutgoingRequest, store: KeyValueStore) -> OutgoingRequest:
    """Set the bearer header from the persisted credential, if there is one.

    A storage read failure counts as no credential; the request still goes out.
    """
    try:
        token = get_access_token(store)
    except Exception as e:  # noqa: BLE001
        logger.warning(f"Could not read access token, sending unauthenticated: {e}")
        token = None

    if not token:
        return request
    return request.with_header(AUTHORIZATION_HEADER, f"{BEARER_PREFIX} {token}")


def dispatch_with_retry(
    request: OutgoingRequest,
    *,
    store: KeyValueStore,
    transport: Transport,
    policy: RetryPolicy,
    diagnostics: DiagnosticLogger,
) -> tuple[OutgoingRequest, Outcome, int]:
    """Send request, retrying qualifying failures sequentially.

    Returns the last prepared request, its outcome and the attempt count.
    """
    state = policy.start()
    attempts = 0
    while True:
        attempts += 1
        prepared = attach_credential(request, store)
        diagnostics.request(prepared)
        outcome = transport(prepared)
        if outcome.ok:
            return prepared, outcome, attempts

        next_state = policy.next_attempt(state, prepared, outcome)
        if next_state is None:
            return prepared, outcome, attempts

        diagnostics.retry(prepared, outcome, attempts)
        state = next_state
        policy.backoff(state, outcome)


def decode_payload(response: requests.Response) -> Any:
    """JSON payload of a response, or its text when it is not JSON."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def settle(
    prepared: OutgoingRequest,
    outcome: Outcome,
    attempts: int,
    *,
    policy: RetryPolicy,
    guard: SessionGuard,
    diagnostics: DiagnosticLogger,
) -> ApiResult:
    """Classify the final outcome and log it."""
    if outcome.ok:
        diagnostics.response(outcome.response)
        return ApiResult(value=decode_payload(outcome.response), response=outcome.response)

    failure = classify(outcome, attempts=attempts, retryable=policy.is_retryable(prepared, outcome))
    guard.handle(failure)
    return ApiResult(response=outcome.response, failure=failure)
