"""Constants used throughout the client."""

from enum import Enum


class StorageKey(str, Enum):
    """Keys the client reads and writes in persisted storage."""

    ACCESS_TOKEN = "accessToken"
    FIRST_OPENED = "firstOpened"


# HTTP
AUTHORIZATION_HEADER = "authorization"
BEARER_PREFIX = "Bearer"
HTTP_SERVER_ERRORS = tuple(range(500, 600))

# Error body signatures
INVALID_TOKEN_DETAIL = "Invalid Token"
UNAUTHORIZED_MESSAGE = "Unauthorized"

# Session expired prompt
SESSION_EXPIRED_TITLE = "Session Expired"
SESSION_EXPIRED_MESSAGE = "Your session has expired. Please login again."
SESSION_EXPIRED_ACTION = "OK"

# Default values
DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_CONFIG_PATH = "data/config.yaml"
DEFAULT_STORAGE_PATH = "data/session.json"
