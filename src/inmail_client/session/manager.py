"""Session ownership: the bearer token and the current user.

One SessionManager is created per client and handed to every component that
issues requests. Components read the token through ``current_token()`` at the
moment they build a request, so a clear made anywhere is visible to every
request built afterwards.
"""

from __future__ import annotations

import structlog

from inmail_client.config import Settings
from inmail_client.models import User
from inmail_client.session.store import SessionStore, StoredSession

logger = structlog.get_logger()


class SessionManager:
    """Holds the authenticated session and keeps it persisted."""

    def __init__(
        self,
        settings: Settings | None = None,
        store: SessionStore | None = None,
    ) -> None:
        """Initialize the session manager and restore any persisted session.

        Args:
            settings: Application settings. If None, uses default settings.
            store: Session persistence. If None, uses ``settings.session_path``.
        """
        from inmail_client.config import get_settings

        self.settings = settings or get_settings()
        self._store = store or SessionStore(self.settings.session_path)

        restored = self._store.load()
        self._token: str | None = restored.token if restored else None
        self._user: User | None = restored.user if restored else None
        logger.debug("session_manager_initialized", restored=restored is not None)

    def set_session(self, token: str, user: User) -> None:
        """Store a new session in memory and on disk.

        Raises:
            ValueError: If the token is empty.
        """

        if not token:
            raise ValueError("token must not be empty")

        self._store.save(StoredSession(token=token, user=user))
        self._token = token
        self._user = user
        logger.info("session_started", username=user.username, role=user.role.value)

    def current_token(self) -> str | None:
        return self._token

    def current_user(self) -> User | None:
        return self._user

    def is_authenticated(self) -> bool:
        return bool(self._token)

    def clear_session(self, reason: str | None = None) -> None:
        """Forget the session. Safe to call any number of times."""

        had_session = self._token is not None
        self._token = None
        self._user = None
        self._store.clear()
        if had_session:
            logger.info("session_cleared", reason=reason)
