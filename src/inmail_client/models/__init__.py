"""Data models for the In-Mail client.

This module contains Pydantic models for the payloads exchanged with the
In-Mail REST API.
"""

from datetime import datetime
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from inmail_client.models.message import (
    FULL,
    SUMMARY,
    Attachment,
    DeliveryStatus,
    Message,
    MessageFilter,
    MessageFull,
    MessagePage,
    MessageSummary,
    parse_full_message,
    parse_listed_message,
)

T = TypeVar("T")


class UserRole(str, Enum):
    """User role enumeration."""

    ROOT = "root"
    USER = "user"


class User(BaseModel):
    """Mailbox user."""

    id: str = Field(description="User ID")
    username: str = Field(description="Login name")
    email: str = Field(default="", description="Contact email")
    role: UserRole = Field(default=UserRole.USER, description="Access role")
    mailbox_name: str = Field(default="", description="Mailbox name used as SMTP credential")
    active: bool = Field(default=True, description="Whether the account is active")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    @property
    def is_root(self) -> bool:
        return self.role == UserRole.ROOT


class LoginResponse(BaseModel):
    """Payload returned by a successful login."""

    token: str = Field(description="Bearer token")
    user_id: str = Field(description="Authenticated user ID")
    username: str = Field(description="Authenticated username")
    role: UserRole = Field(description="Authenticated user role")


class AdminConfig(BaseModel):
    """Server configuration visible to root users.

    Every field is optional; older servers omit some of them.
    """

    smtp_port: Optional[int] = Field(default=None, description="SMTP listener port")
    api_port: Optional[int] = Field(default=None, description="REST API port")
    version: Optional[str] = Field(default=None, description="Server version")
    max_attachment_size: Optional[int] = Field(default=None, description="Max attachment bytes")
    simulation_mode: Optional[str] = Field(default=None, description="success, failure or random")
    database_type: Optional[str] = Field(default=None, description="Storage backend")
    environment: Optional[str] = Field(default=None, description="Deployment environment")
    root_username: Optional[str] = Field(default=None, description="Root account name")
    root_password: Optional[str] = Field(default=None, description="Root account password")


class ApiEnvelope(BaseModel, Generic[T]):
    """Standard ``{status, message?, data}`` response wrapper."""

    status: str = Field(default="success")
    message: Optional[str] = Field(default=None)
    data: Optional[T] = Field(default=None)


__all__ = [
    "FULL",
    "SUMMARY",
    "AdminConfig",
    "ApiEnvelope",
    "Attachment",
    "DeliveryStatus",
    "LoginResponse",
    "Message",
    "MessageFilter",
    "MessageFull",
    "MessagePage",
    "MessageSummary",
    "User",
    "UserRole",
    "parse_full_message",
    "parse_listed_message",
]
