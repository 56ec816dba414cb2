"""REST API access for the In-Mail server."""

from .auth import SessionBearerAuth
from .client import InMailClient, attachment_path

__all__ = ["InMailClient", "SessionBearerAuth", "attachment_path"]
