"""Captured message models.

A message exists in two variants: the summary returned by the listing
endpoint and the full record returned by a single-message fetch. The variant
is recorded in the ``kind`` field when the payload is parsed and is never
inferred afterwards.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

SUMMARY = "summary"
FULL = "full"

# Fields only a single-message fetch populates.
_FULL_ONLY_FIELDS = ("raw_content", "headers")


class DeliveryStatus(str, Enum):
    """Delivery outcome recorded by the trap server."""

    SUCCESS = "success"
    FAILED = "failed"
    TEMPORARY = "temporary"
    PERMANENT = "permanent"
    SIMULATED = "simulated"


class Attachment(BaseModel):
    """Attachment metadata. The binary payload is fetched separately."""

    id: str = Field(description="Attachment ID")
    message_id: str = Field(description="Owning message ID")
    filename: str = Field(description="Original filename")
    content_type: str = Field(default="application/octet-stream", description="MIME type")
    size: int = Field(default=0, ge=0, description="Size in bytes")
    file_path: str | None = Field(default=None, description="Server-side storage path")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")


class _MessageBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(description="Message ID")
    user_id: str = Field(default="", description="Owning mailbox user ID")
    from_: str = Field(default="", alias="from", description="From address")
    to: str = Field(default="", description="To address(es)")
    cc: str | None = Field(default=None, description="Cc address(es)")
    bcc: str | None = Field(default=None, description="Bcc address(es)")
    subject: str = Field(default="", description="Subject header")
    status: DeliveryStatus = Field(default=DeliveryStatus.SUCCESS, description="Delivery status")
    failure_reason: str | None = Field(default=None, description="Reason for a failed delivery")
    received_at: datetime = Field(description="When the trap server received the message")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")
    attachments: list[Attachment] = Field(default_factory=list, description="Attachment metadata")


class MessageSummary(_MessageBase):
    """Listing representation of a message, without bodies or headers."""

    kind: Literal["summary"] = SUMMARY


class MessageFull(_MessageBase):
    """Complete message as returned by a single-message fetch."""

    kind: Literal["full"] = FULL
    text_body: str | None = Field(default=None, description="Plain-text body")
    html_body: str | None = Field(default=None, description="HTML body")
    raw_content: str | None = Field(default=None, description="Raw RFC 5322 source")
    headers: str | None = Field(default=None, description="Header block as text")


Message = Annotated[Union[MessageSummary, MessageFull], Field(discriminator="kind")]


class MessageFilter(BaseModel):
    """Server-side listing filters. Matching is substring for addresses and subject."""

    to: str | None = Field(default=None, description="To address contains")
    from_: str | None = Field(default=None, alias="from", description="From address contains")
    subject: str | None = Field(default=None, description="Subject contains")
    status: DeliveryStatus | None = Field(default=None, description="Exact delivery status")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.to:
            params["to"] = self.to
        if self.from_:
            params["from"] = self.from_
        if self.subject:
            params["subject"] = self.subject
        if self.status is not None:
            params["status"] = self.status.value
        return params


class MessagePage(BaseModel):
    """One page of the message listing."""

    messages: list[Message] = Field(default_factory=list)
    total: int = Field(default=0, ge=0, description="Total matching messages on the server")
    limit: int = Field(default=50, description="Page size used by the server")
    offset: int = Field(default=0, ge=0, description="Offset used by the server")


def parse_listed_message(payload: dict[str, Any]) -> MessageSummary | MessageFull:
    """Build a message from a listing payload.

    A listing record that already carries ``raw_content`` or ``headers``
    (present and not null, even when empty) is classified as full.

    Args:
        payload: One element of the listing's ``messages`` array.

    Returns:
        MessageSummary or MessageFull with ``kind`` set accordingly.
    """

    if any(payload.get(name) is not None for name in _FULL_ONLY_FIELDS):
        return MessageFull.model_validate({**payload, "kind": FULL})
    return MessageSummary.model_validate({**payload, "kind": SUMMARY})


def parse_full_message(payload: dict[str, Any]) -> MessageFull:
    """Build a full message from a single-message fetch payload."""

    return MessageFull.model_validate({**payload, "kind": FULL})
