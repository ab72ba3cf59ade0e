"""Tests for failure classification and session invalidation."""

import pytest
import requests

from form_api_client.constants import StorageKey
from form_api_client.exceptions import StorageError
from form_api_client.models import FailureKind, Outcome, SessionState
from form_api_client.session_guard import SessionGuard, classify, session_state
from form_api_client.storage import MemoryStore, invalidate_session, set_access_token

from conftest import RecordingPrompt, make_response


def _failure(status, body):
    return Outcome.from_response(make_response(status, body))


def test_classify_invalid_token():
    failure = classify(_failure(401, {"detail": "Invalid Token"}))

    assert failure.kind == FailureKind.INVALID_TOKEN
    assert failure.invalid_token
    assert not failure.unauthorized
    assert failure.error_body.message is None


def test_classify_unauthorized():
    failure = classify(_failure(401, {"message": "Unauthorized"}))

    assert failure.kind == FailureKind.UNAUTHORIZED
    assert failure.unauthorized
    assert not failure.invalid_token


def test_classify_signatures_are_exact():
    """Test near-miss values do not trigger session handling."""
    failure = classify(_failure(401, {"detail": "invalid token", "message": "unauthorized"}))

    assert failure.kind == FailureKind.UNCLASSIFIED
    assert not failure.invalid_token
    assert not failure.unauthorized


def test_classify_ignores_non_string_fields():
    failure = classify(_failure(422, {"detail": [{"loc": ["body"], "msg": "missing"}]}))

    assert failure.kind == FailureKind.UNCLASSIFIED
    assert failure.error_body.detail is None


def test_classify_non_json_body():
    failure = classify(_failure(502, "<html>Bad Gateway</html>"), retryable=True)

    assert failure.kind == FailureKind.TRANSIENT
    assert failure.status_code == 502


def test_classify_network_error():
    failure = classify(Outcome.from_error(requests.ConnectionError("down")), attempts=3, retryable=True)

    assert failure.kind == FailureKind.TRANSIENT
    assert failure.status_code is None
    assert failure.attempts == 3


def test_classify_requires_failure():
    with pytest.raises(ValueError):
        classify(Outcome.from_response(make_response(200, {})))


def test_invalidation_is_idempotent():
    once = MemoryStore({StorageKey.ACCESS_TOKEN.value: "t", "other": "x"})
    twice = MemoryStore({StorageKey.ACCESS_TOKEN.value: "t", "other": "x"})

    invalidate_session(once)
    invalidate_session(twice)
    invalidate_session(twice)

    assert once._data == twice._data == {StorageKey.FIRST_OPENED.value: "true"}


def test_guard_logs_storage_failure_without_raising(diagnostics, caplog):
    """Test a failing clear does not replace the original error."""

    class BrokenStore(MemoryStore):
        def clear(self):
            raise StorageError("clear", reason="read-only")

    guard = SessionGuard(BrokenStore(), diagnostics)

    guard.handle(classify(_failure(401, {"detail": "Invalid Token"})))

    assert "Failed to invalidate session" in caplog.text
    assert diagnostics.entries("ERROR") == [None]


def test_guard_reports_invalidating_state(diagnostics):
    """Test the guard is in the invalidating state while storage is cleared."""
    seen = []

    class ObservedStore(MemoryStore):
        def clear(self):
            seen.append(guard.state)
            super().clear()

    store = ObservedStore()
    set_access_token(store, "t")
    guard = SessionGuard(store, diagnostics)

    assert guard.state == SessionState.AUTHENTICATED
    guard.invalidate()

    assert seen == [SessionState.INVALIDATING]
    assert guard.state == SessionState.UNAUTHENTICATED


def test_unauthorized_without_prompt_only_logs(diagnostics, caplog):
    guard = SessionGuard(MemoryStore(), diagnostics)

    guard.handle(classify(_failure(401, {"message": "Unauthorized"})))

    assert "no prompt is configured" in caplog.text
    assert diagnostics.entries("ERROR") == ["Unauthorized"]


def test_prompt_is_cancelable_when_configured(diagnostics):
    prompt = RecordingPrompt(press=False)
    guard = SessionGuard(MemoryStore(), diagnostics, prompt=prompt, cancelable=True)

    guard.prompt_session_expired()

    assert prompt.alerts[0]["cancelable"] is True


def test_session_state_from_store():
    store = MemoryStore()
    assert session_state(store) == SessionState.UNAUTHENTICATED

    set_access_token(store, "t")
    assert session_state(store) == SessionState.AUTHENTICATED


def test_session_state_unreadable_store(caplog):
    class LockedStore(MemoryStore):
        def get_item(self, key):
            raise OSError("keychain locked")

    assert session_state(LockedStore()) == SessionState.UNAUTHENTICATED
    assert "keychain locked" in caplog.text
