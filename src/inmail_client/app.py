"""Top-level coordinator.

``InMailApp`` wires the session, API client, message browser, dashboard
loader and attachment fetcher together. It is the one place that reacts to an
expired session: components raise ``AuthExpiredError`` and the coordinator
clears the session, resets page state and routes back to login.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path
from typing import TypeVar

import httpx
import structlog

from inmail_client.api import InMailClient
from inmail_client.browser import AttachmentFetcher, MessageBrowser
from inmail_client.config import Settings
from inmail_client.dashboard import DashboardData, DashboardLoader
from inmail_client.exceptions import AuthExpiredError, RequestFailedError, ValidationError
from inmail_client.models import User
from inmail_client.session import SessionManager

logger = structlog.get_logger()

T = TypeVar("T")


class Route(str, Enum):
    LOGIN = "login"
    DASHBOARD = "dashboard"
    MESSAGES = "messages"


class InMailApp:
    """Owns the client-side components and the current route."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: SessionManager | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        on_navigate: Callable[[Route], None] | None = None,
    ) -> None:
        """Initialize the application.

        Args:
            settings: Application settings. If None, uses default settings.
            session: Session manager. If None, restores one from settings.
            transport: Optional httpx transport shared by all HTTP clients.
            on_navigate: Called with the new route on every navigation.
        """
        from inmail_client.config import get_settings

        self.settings = settings or get_settings()
        self.session = session or SessionManager(self.settings)
        self.client = InMailClient(self.session, self.settings, transport=transport)
        self.browser = MessageBrowser(self.client)
        self.dashboard = DashboardLoader(self.client, self.settings)
        self.fetcher = AttachmentFetcher(
            self.session,
            self.settings,
            transport=transport,
            on_notice=self.notify,
        )
        self.notices: list[str] = []
        self._on_navigate = on_navigate
        self.route = Route.DASHBOARD if self.session.is_authenticated() else Route.LOGIN

    async def __aenter__(self) -> InMailApp:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.fetcher.aclose()

    def navigate(self, route: Route) -> None:
        self.route = route
        logger.debug("navigated", route=route.value)
        if self._on_navigate is not None:
            self._on_navigate(route)

    def notify(self, text: str) -> None:
        self.notices.append(text)

    async def guard(self, operation: Awaitable[T]) -> T:
        """Await an operation, handling an expired session on the way out.

        On ``AuthExpiredError`` the session is cleared, page state is reset
        and the app routes to login before the error is re-raised.
        """

        try:
            return await operation
        except AuthExpiredError:
            self.handle_auth_expired()
            raise

    def handle_auth_expired(self) -> None:
        logger.info("session_expired_redirect")
        self.session.clear_session(reason="auth_expired")
        self.browser.reset()
        self.navigate(Route.LOGIN)

    async def login(self, username: str, password: str) -> User:
        """Log in and start a session.

        Raises:
            AuthenticationError: If the credentials are rejected.
            RequestFailedError: If the server cannot be reached or the user
                profile cannot be loaded.
        """

        response = await self.client.login(username, password)

        # The profile fetch needs the token, so start with what login returned.
        self.session.set_session(
            response.token,
            User(id=response.user_id, username=response.username, role=response.role),
        )
        try:
            user = await self.client.get_current_user()
        except (AuthExpiredError, RequestFailedError, ValidationError):
            self.session.clear_session(reason="profile_unavailable")
            raise

        self.session.set_session(response.token, user)
        self.navigate(Route.DASHBOARD)
        return user

    def logout(self) -> None:
        self.session.clear_session(reason="logout")
        self.browser.reset()
        self.navigate(Route.LOGIN)

    async def open_dashboard(self) -> DashboardData | None:
        """Load the dashboard, or route to login when there is no session."""

        if not self.session.is_authenticated():
            self.navigate(Route.LOGIN)
            return None
        self.navigate(Route.DASHBOARD)
        return await self.guard(self.dashboard.load())

    async def open_messages(self) -> bool:
        """Load the first view of the messages page, or route to login."""

        if not self.session.is_authenticated():
            self.navigate(Route.LOGIN)
            return False
        self.navigate(Route.MESSAGES)
        return await self.guard(self.browser.refresh())

    async def download_attachment(
        self,
        message_id: str,
        attachment_id: str,
        filename: str,
        directory: Path | None = None,
    ) -> Path | None:
        return await self.fetcher.download(message_id, attachment_id, filename, directory)
