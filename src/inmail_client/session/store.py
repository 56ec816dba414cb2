"""File-backed persistence for the client session.

The session outlives a single process the same way the browser client keeps
its token in local storage: it is written as JSON next to the user's other
client state and read back on start-up.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from inmail_client.models import User

logger = structlog.get_logger()


class StoredSession(BaseModel):
    """Token and user as persisted on disk."""

    token: str = Field(description="Bearer token")
    user: User | None = Field(default=None, description="Current user")


class SessionStore:
    """Reads and writes the session file."""

    def __init__(self, path: Path) -> None:
        """Create a store.

        Args:
            path: Location of the session JSON file.
        """

        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredSession | None:
        """Return the persisted session, or None if there is none.

        An unreadable or malformed file counts as no session.
        """

        if not self._path.exists():
            return None
        try:
            return StoredSession.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as exc:
            logger.warning("session_file_unreadable", path=str(self._path), error=str(exc))
            return None

    def save(self, session: StoredSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(session.model_dump_json(), encoding="utf-8")
        # The file holds a bearer token.
        os.chmod(self._path, 0o600)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
