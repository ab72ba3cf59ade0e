"""Application-wide session actions."""

import logging
from typing import Callable, Optional

from .storage import KeyValueStore, invalidate_session, set_access_token

logger = logging.getLogger(__name__)


def login(store: KeyValueStore, token: str) -> None:
    """Persist a credential obtained by the login flow."""
    if not token:
        raise ValueError("token must not be empty")
    set_access_token(store, token)
    logger.info("Session credential stored")


def logout_action(
    store: KeyValueStore, on_logged_out: Optional[Callable[[], None]] = None
) -> Callable[[], None]:
    """Build the logout callback: reset session state, then navigate."""

    def logout() -> None:
        invalidate_session(store)
        logger.info("Logged out")
        if on_logged_out is not None:
            on_logged_out()

    return logout
