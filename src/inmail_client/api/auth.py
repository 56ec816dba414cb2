"""Bearer authentication bound to the client session."""

from __future__ import annotations

from collections.abc import Generator
from http import HTTPStatus

import httpx
import structlog

from inmail_client.session import SessionManager

logger = structlog.get_logger()


class SessionBearerAuth(httpx.Auth):
    """Attach the session token to each request and drop the session on 401.

    The token is read when the request is built, never cached. Any 401 seen
    through this flow clears the session, whichever call received it.
    """

    def __init__(self, session: SessionManager) -> None:
        self._session = session

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._session.current_token()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

        response = yield request

        if response.status_code == HTTPStatus.UNAUTHORIZED:
            logger.warning(
                "authorization_rejected",
                method=request.method,
                path=request.url.path,
            )
            self._session.clear_session(reason="unauthorized")
