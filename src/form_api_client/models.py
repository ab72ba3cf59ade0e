"""Data models for requests, outcomes and results."""

from enum import Enum
from typing import Any, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionState(str, Enum):
    """Session validity as seen by the client."""

    AUTHENTICATED = "authenticated"
    INVALIDATING = "invalidating"
    UNAUTHENTICATED = "unauthenticated"


class FailureKind(str, Enum):
    """Tag carried by a failed result."""

    TRANSIENT = "transient"
    INVALID_TOKEN = "invalid_token"
    UNAUTHORIZED = "unauthorized"
    UNCLASSIFIED = "unclassified"


class OutgoingRequest(BaseModel):
    """Request descriptor before dispatch."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    params: Optional[dict[str, Any]] = None

    @field_validator("method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        """HTTP methods are compared upper-case."""
        return v.upper()

    def with_header(self, name: str, value: str) -> "OutgoingRequest":
        """Return a copy with one header set."""
        headers = dict(self.headers)
        headers[name] = value
        return self.model_copy(update={"headers": headers})

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return None


class ErrorBody(BaseModel):
    """Structured error body returned by the API."""

    model_config = ConfigDict(extra="ignore")

    detail: Optional[str] = None
    message: Optional[str] = None

    @field_validator("detail", "message", mode="before")
    @classmethod
    def only_strings(cls, v):
        """Non-string fields (e.g. validation error lists) never match a signature."""
        return v if isinstance(v, str) else None

    @classmethod
    def from_response(cls, response: Optional[requests.Response]) -> "ErrorBody":
        """Parse a response body, falling back to an empty body."""
        if response is None:
            return cls()
        try:
            payload = response.json()
        except ValueError:
            return cls()
        if not isinstance(payload, dict):
            return cls()
        return cls.model_validate(payload)


class Outcome(BaseModel):
    """Settled result of one physical attempt."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    response: Optional[requests.Response] = None
    error: Optional[requests.RequestException] = None
    error_body: ErrorBody = Field(default_factory=ErrorBody)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    @classmethod
    def from_response(cls, response: requests.Response) -> "Outcome":
        """Build an outcome from a response, treating non-2xx as failure."""
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            return cls(response=response, error=e, error_body=ErrorBody.from_response(response))
        return cls(response=response)

    @classmethod
    def from_error(cls, error: requests.RequestException) -> "Outcome":
        """Build an outcome from a transport-level error."""
        response = error.response
        return cls(response=response, error=error, error_body=ErrorBody.from_response(response))


class ApiFailure(BaseModel):
    """Tagged failure: kind plus the original cause."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    kind: FailureKind
    cause: requests.RequestException
    error_body: ErrorBody = Field(default_factory=ErrorBody)
    status_code: Optional[int] = None
    attempts: int = 1
    invalid_token: bool = False
    unauthorized: bool = False


class ApiResult(BaseModel):
    """Successful payload or tagged failure."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    value: Any = None
    response: Optional[requests.Response] = None
    failure: Optional[ApiFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> Any:
        """Return the payload, or re-raise the original error unmodified."""
        if self.failure is not None:
            raise self.failure.cause
        return self.value
