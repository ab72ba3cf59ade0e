"""API client with credential attachment, retries and session guarding."""

import logging
import time
from typing import Any, Callable, Optional

import requests

from .config import ClientConfig, Settings
from .diagnostics import DiagnosticLogger
from .models import ApiResult, Outcome, OutgoingRequest
from .pipeline import dispatch_with_retry, settle
from .prompt import Prompt
from .retry import RetryPolicy
from .session_guard import SessionGuard
from .storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


class ApiClient:
    """Shared client for every API call in the app.

    Construct one instance at startup and pass it to callers. The instance
    holds no per-request state, so concurrent calls from several threads are
    safe; the persisted store is the only shared mutable resource.
    """

    def __init__(
        self,
        config: ClientConfig,
        store: KeyValueStore,
        *,
        session: Optional[requests.Session] = None,
        prompt: Optional[Prompt] = None,
        logout: Optional[Callable[[], None]] = None,
        diagnostics: Optional[DiagnosticLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize client; ``session`` is the pluggable transport."""
        self.config = config
        self.store = store
        self.session = session or requests.Session()
        self._owns_session = session is None
        self.session.headers.update(
            {
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            }
        )
        self.diagnostics = diagnostics or DiagnosticLogger()
        self.retry_policy = RetryPolicy(
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
            sleep=sleep,
        )
        self.guard = SessionGuard(
            store,
            self.diagnostics,
            prompt=prompt,
            logout=logout,
            cancelable=config.prompt_cancelable,
        )

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _send(self, request: OutgoingRequest) -> Outcome:
        """One physical attempt over the transport."""
        try:
            response = self.session.request(
                request.method,
                self.config.url_for(request.path),
                headers=request.headers,
                params=request.params,
                json=request.body,
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.debug(f"{request.method} {request.path} failed: {e}")
            return Outcome.from_error(e)
        return Outcome.from_response(response)

    def execute(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> ApiResult:
        """Run a request through the pipeline and return a tagged result."""
        request = OutgoingRequest(
            method=method,
            path=path,
            headers=dict(headers or {}),
            body=body,
            params=params,
        )
        prepared, outcome, attempts = dispatch_with_retry(
            request,
            store=self.store,
            transport=self._send,
            policy=self.retry_policy,
            diagnostics=self.diagnostics,
        )
        return settle(
            prepared,
            outcome,
            attempts,
            policy=self.retry_policy,
            guard=self.guard,
            diagnostics=self.diagnostics,
        )

    def request(self, method: str, path: str, **kwargs) -> Any:
        """Run a request and return its payload, re-raising the original error."""
        return self.execute(method, path, **kwargs).unwrap()

    def get(self, path: str, **kwargs) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("POST", path, body=body, **kwargs)

    def put(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("PUT", path, body=body, **kwargs)

    def patch(self, path: str, body: Any = None, **kwargs) -> Any:
        return self.request("PATCH", path, body=body, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()


def build_api_client(
    settings: Settings,
    *,
    store: Optional[KeyValueStore] = None,
    session: Optional[requests.Session] = None,
    prompt: Optional[Prompt] = None,
    logout: Optional[Callable[[], None]] = None,
) -> ApiClient:
    """Build the process-wide client from settings."""
    store = store or JsonFileStore(settings.storage_path)
    logger.info(f"API client configured for {settings.client.base_url}")
    return ApiClient(
        settings.client,
        store,
        session=session,
        prompt=prompt,
        logout=logout,
    )
