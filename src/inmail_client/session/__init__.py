"""Session handling.

The session is an explicit object constructed once and passed to the API
client, the attachment fetcher and the coordinator.
"""

from .manager import SessionManager
from .store import SessionStore, StoredSession

__all__ = ["SessionManager", "SessionStore", "StoredSession"]
