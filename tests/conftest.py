"""Shared fixtures: a stub transport mounted on a real requests.Session."""

import json

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from form_api_client.client import ApiClient
from form_api_client.config import ClientConfig
from form_api_client.diagnostics import DiagnosticLogger
from form_api_client.storage import MemoryStore

BASE_URL = "https://api.example.com"


def make_response(status, body=None, request=None, url=BASE_URL, headers=None):
    """Build a requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status
    response.reason = "OK" if status < 400 else "Error"
    response.headers = CaseInsensitiveDict({"Content-Type": "application/json", **(headers or {})})
    if body is None:
        response._content = b""
    elif isinstance(body, (bytes, str)):
        response._content = body.encode() if isinstance(body, str) else body
    else:
        response._content = json.dumps(body).encode()
    response.encoding = "utf-8"
    response.url = request.url if request is not None else url
    response.request = request
    return response


class StubAdapter(BaseAdapter):
    """Replays scripted replies; the last reply repeats.

    A reply is an exception instance (raised), a ``(status, body[, headers])``
    tuple, or a callable taking the prepared request and returning one of those.
    """

    def __init__(self, *replies):
        super().__init__()
        self.replies = list(replies)
        self.requests = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if callable(reply) and not isinstance(reply, Exception):
            reply = reply(request)
        if isinstance(reply, Exception):
            raise reply
        status, body, *extra = reply
        return make_response(status, body, request=request, headers=extra[0] if extra else None)

    def close(self):
        pass

    @property
    def calls(self) -> int:
        return len(self.requests)


class RecordingPrompt:
    """Prompt that records alerts and optionally presses the first action."""

    def __init__(self, press: bool = True):
        self.press = press
        self.alerts = []

    def alert(self, title, message, actions, *, cancelable=True, on_dismiss=None):
        self.alerts.append(
            {
                "title": title,
                "message": message,
                "actions": list(actions),
                "cancelable": cancelable,
                "on_dismiss": on_dismiss,
            }
        )
        if self.press:
            actions[0].on_press()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def diagnostics():
    return DiagnosticLogger(capture=True)


@pytest.fixture()
def prompt():
    return RecordingPrompt()


@pytest.fixture()
def make_client(store, diagnostics, prompt):
    """Factory: build a client whose transport replays the given replies."""
    logouts = []

    def factory(*replies, **config_overrides):
        adapter = StubAdapter(*replies)
        session = requests.Session()
        session.mount("https://", adapter)
        config = ClientConfig(base_url=BASE_URL, backoff_factor=0, **config_overrides)
        client = ApiClient(
            config,
            store,
            session=session,
            prompt=prompt,
            logout=lambda: logouts.append(True),
            diagnostics=diagnostics,
            sleep=lambda _: None,
        )
        client.adapter = adapter
        client.logouts = logouts
        return client

    return factory
