"""Custom exceptions for the In-Mail client."""

from __future__ import annotations


class InMailError(Exception):
    """Base exception for all In-Mail client errors."""


class AuthExpiredError(InMailError):
    """Raised when the server rejects the session or no session exists.

    The session has already been cleared by the time this propagates.
    """


class RequestFailedError(InMailError):
    """Exception raised for any other failed API request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class AuthenticationError(RequestFailedError):
    """Exception raised when login credentials are rejected."""


class DownloadFailedError(InMailError):
    """Exception raised when an attachment cannot be retrieved or saved."""


class ConfigurationError(InMailError):
    """Exception raised for configuration related errors."""


class ValidationError(InMailError):
    """Exception raised when a server payload does not match the expected shape."""
