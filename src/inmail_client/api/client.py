"""In-Mail REST API client.

This module provides an async client for the In-Mail server's JSON API.

Notes:
    Every response body is wrapped as ``{status, message?, data}``. The client
    unwraps ``data`` and validates it into the models in
    ``inmail_client.models``. A 401 on any authenticated call has already
    cleared the session (see ``SessionBearerAuth``) when ``AuthExpiredError``
    is raised here.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from inmail_client.api.auth import SessionBearerAuth
from inmail_client.config import Settings
from inmail_client.exceptions import (
    AuthenticationError,
    AuthExpiredError,
    ConfigurationError,
    RequestFailedError,
    ValidationError,
)
from inmail_client.models import (
    AdminConfig,
    ApiEnvelope,
    LoginResponse,
    MessageFilter,
    MessageFull,
    MessagePage,
    User,
    parse_full_message,
    parse_listed_message,
)
from inmail_client.session import SessionManager

logger = structlog.get_logger()

T = TypeVar("T")


class InMailClient:
    """Async client for the In-Mail REST API.

    One instance shares a single ``httpx.AsyncClient`` (and its connection
    pool) across all calls. Use it as an async context manager or call
    ``aclose()`` when done.
    """

    def __init__(
        self,
        session: SessionManager,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            session: Session whose token authenticates requests.
            settings: Application settings. If None, uses default settings.
            transport: Optional httpx transport, mainly for tests.

        Raises:
            ConfigurationError: If the server URL is not an http(s) URL.
        """
        from inmail_client.config import get_settings

        self.settings = settings or get_settings()
        if not self.settings.api_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Invalid In-Mail server URL: {self.settings.api_url!r}. "
                "Set INMAIL_API_URL to an http(s) URL."
            )
        self.session = session
        self._http = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            auth=SessionBearerAuth(session),
            transport=transport,
        )
        logger.debug("inmail_client_initialized", base_url=self.settings.api_base_url)

    async def __aenter__(self) -> InMailClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # Auth

    async def login(self, username: str, password: str) -> LoginResponse:
        """Exchange credentials for a bearer token.

        The returned token is not stored; the caller decides when to start a
        session with it.

        Raises:
            AuthenticationError: If the credentials are rejected. Any existing
                session is cleared.
            RequestFailedError: For any other failure.
        """

        logger.info("login_started", username=username)
        body = await self._request(
            "POST",
            "/auth/login",
            json={"username": username, "password": password},
            authenticated=False,
        )
        return self._unwrap(ApiEnvelope[LoginResponse], body, "login")

    # Users

    async def list_mailboxes(self) -> list[User]:
        """List mailboxes visible to the current user (own mailbox first)."""

        body = await self._request("GET", "/mailboxes")
        return self._unwrap(ApiEnvelope[list[User]], body, "mailboxes")

    async def get_current_user(self) -> User:
        """Return the current user, i.e. the first mailbox."""

        mailboxes = await self.list_mailboxes()
        if not mailboxes:
            raise RequestFailedError("Server returned no mailbox for the current user")
        return mailboxes[0]

    async def list_users(self) -> list[User]:
        """List all users. Root only."""

        body = await self._request("GET", "/admin/users")
        return self._unwrap(ApiEnvelope[list[User]], body, "users")

    async def get_admin_config(self) -> AdminConfig:
        """Fetch the server configuration. Root only."""

        body = await self._request("GET", "/admin/config")
        return self._unwrap(ApiEnvelope[AdminConfig], body, "config")

    # Messages

    async def list_messages(
        self,
        limit: int = 50,
        offset: int = 0,
        filters: MessageFilter | None = None,
    ) -> MessagePage:
        """List one page of captured messages.

        Args:
            limit: Page size.
            offset: Number of messages to skip.
            filters: Optional server-side filters.

        Returns:
            MessagePage with listing records and the server's total.
        """

        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if filters is not None:
            params.update(filters.to_params())

        logger.info("listing_messages", limit=limit, offset=offset, filtered=len(params) > 2)
        body = await self._request("GET", "/messages", params=params)
        data = self._unwrap(ApiEnvelope[dict[str, Any]], body, "messages")

        try:
            return MessagePage(
                messages=[parse_listed_message(m) for m in data.get("messages") or []],
                total=data.get("total", 0),
                limit=data.get("limit", limit),
                offset=data.get("offset", offset),
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"Unexpected messages payload: {exc}") from exc

    async def get_message(self, message_id: str) -> MessageFull:
        """Fetch a single message with bodies, headers, raw source and attachments."""

        logger.info("getting_message", message_id=message_id)
        body = await self._request("GET", f"/messages/{message_id}")
        data = self._unwrap(ApiEnvelope[dict[str, Any]], body, "message")
        try:
            return parse_full_message(data)
        except PydanticValidationError as exc:
            raise ValidationError(f"Unexpected message payload: {exc}") from exc

    async def delete_message(self, message_id: str) -> None:
        logger.info("deleting_message", message_id=message_id)
        await self._request("DELETE", f"/messages/{message_id}")

    async def bulk_delete_messages(self, message_ids: list[str]) -> None:
        logger.info("bulk_deleting_messages", count=len(message_ids))
        await self._request("DELETE", "/messages", json={"ids": list(message_ids)})

    # Internals

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        authenticated: bool = True,
    ) -> Any:
        if authenticated and not self.session.is_authenticated():
            raise AuthExpiredError("Not logged in")

        auth = httpx.USE_CLIENT_DEFAULT if authenticated else None
        try:
            response = await self._http.request(method, path, params=params, json=json, auth=auth)
        except httpx.HTTPError as exc:
            logger.warning("api_request_failed", method=method, path=path, error=str(exc))
            raise RequestFailedError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == HTTPStatus.UNAUTHORIZED:
            server_message = _server_message(response)
            if authenticated:
                raise AuthExpiredError(server_message or "Session expired")
            # The shared auth flow is bypassed here, so apply its 401 policy.
            self.session.clear_session(reason="unauthorized")
            raise AuthenticationError(
                server_message or "Invalid credentials",
                status_code=response.status_code,
                server_message=server_message,
            )

        if response.is_error:
            server_message = _server_message(response)
            logger.warning(
                "api_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                server_message=server_message,
            )
            raise RequestFailedError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                server_message=server_message,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ValidationError(f"{method} {path} returned a non-JSON body") from exc

    @staticmethod
    def _unwrap(envelope_type: type[ApiEnvelope[T]], body: Any, what: str) -> T:
        try:
            envelope = envelope_type.model_validate(body)
        except PydanticValidationError as exc:
            raise ValidationError(f"Unexpected {what} payload: {exc}") from exc
        if envelope.data is None:
            raise ValidationError(f"The {what} response carried no data")
        return envelope.data


def _server_message(response: httpx.Response) -> str | None:
    """Extract the ``message`` field of an error body, if any."""

    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def attachment_path(message_id: str, attachment_id: str) -> str:
    """API-relative path of an attachment's binary payload."""

    return f"/messages/{message_id}/attachments/{attachment_id}"
