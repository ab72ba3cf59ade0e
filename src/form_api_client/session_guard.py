"""Failure classification and session-level reactions."""

import logging
import threading
from typing import Callable, Optional

from .constants import (
    INVALID_TOKEN_DETAIL,
    SESSION_EXPIRED_ACTION,
    SESSION_EXPIRED_MESSAGE,
    SESSION_EXPIRED_TITLE,
    UNAUTHORIZED_MESSAGE,
)
from .diagnostics import DiagnosticLogger
from .models import ApiFailure, FailureKind, Outcome, SessionState
from .prompt import Prompt, PromptAction
from .storage import KeyValueStore, get_access_token, invalidate_session

logger = logging.getLogger(__name__)


def classify(outcome: Outcome, attempts: int = 1, retryable: bool = False) -> ApiFailure:
    """Tag a settled failed outcome.

    The invalid-token and unauthorized checks look at different fields of the
    error body and are evaluated independently; both flags can be set. The
    primary kind prefers invalid_token, then unauthorized, then transient.
    """
    if outcome.error is None:
        raise ValueError("classify() needs a failed outcome")

    body = outcome.error_body
    invalid_token = body.detail == INVALID_TOKEN_DETAIL
    unauthorized = body.message == UNAUTHORIZED_MESSAGE

    if invalid_token:
        kind = FailureKind.INVALID_TOKEN
    elif unauthorized:
        kind = FailureKind.UNAUTHORIZED
    elif retryable:
        kind = FailureKind.TRANSIENT
    else:
        kind = FailureKind.UNCLASSIFIED

    return ApiFailure(
        kind=kind,
        cause=outcome.error,
        error_body=body,
        status_code=outcome.status_code,
        attempts=attempts,
        invalid_token=invalid_token,
        unauthorized=unauthorized,
    )


def session_state(store: KeyValueStore) -> SessionState:
    """Session state derived from the persisted credential."""
    try:
        token = get_access_token(store)
    except Exception as e:  # noqa: BLE001
        logger.warning(f"Could not read session credential: {e}")
        return SessionState.UNAUTHENTICATED
    return SessionState.AUTHENTICATED if token else SessionState.UNAUTHENTICATED


class SessionGuard:
    """Runs session side effects for classified failures.

    Never raises for the failure it handles: the caller re-raises the original
    error after ``handle`` returns.
    """

    def __init__(
        self,
        store: KeyValueStore,
        diagnostics: DiagnosticLogger,
        prompt: Optional[Prompt] = None,
        logout: Optional[Callable[[], None]] = None,
        cancelable: bool = False,
    ):
        self.store = store
        self.diagnostics = diagnostics
        self.prompt = prompt
        self.logout = logout
        self.cancelable = cancelable
        self._invalidations = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        with self._lock:
            if self._invalidations:
                return SessionState.INVALIDATING
        return session_state(self.store)

    def invalidate(self) -> None:
        """Clear persisted session state; storage failures are logged only."""
        with self._lock:
            self._invalidations += 1
        try:
            invalidate_session(self.store)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Failed to invalidate session: {e}")
        finally:
            with self._lock:
                self._invalidations -= 1

    def _run_logout(self) -> None:
        if self.logout is None:
            logger.warning("Session expired prompt acknowledged but no logout action is configured")
            return
        try:
            self.logout()
        except Exception as e:  # noqa: BLE001
            logger.error(f"Logout action failed: {e}")

    def prompt_session_expired(self) -> None:
        """Show the blocking session expired prompt.

        Failures of the prompt or of the logout action are logged and never
        reach the caller.
        """
        if self.prompt is None:
            logger.warning("Session expired but no prompt is configured")
            return

        try:
            self.prompt.alert(
                SESSION_EXPIRED_TITLE,
                SESSION_EXPIRED_MESSAGE,
                [PromptAction(label=SESSION_EXPIRED_ACTION, on_press=self._run_logout)],
                cancelable=self.cancelable,
                on_dismiss=lambda: None,
            )
        except Exception as e:  # noqa: BLE001
            logger.error(f"Session expired prompt failed: {e}")

    def handle(self, failure: ApiFailure) -> None:
        """Apply session side effects, then record one error entry."""
        try:
            if failure.invalid_token:
                logger.warning("Invalid token reported by API, clearing session")
                self.invalidate()

            if failure.unauthorized:
                logger.warning("Unauthorized response from API, prompting for login")
                self.prompt_session_expired()
        finally:
            self.diagnostics.error(failure.error_body.message)
