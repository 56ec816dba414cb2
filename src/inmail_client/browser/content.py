"""Deciding what to display for a message.

``resolve`` picks one representation (HTML, text, raw source or a
placeholder) for a full message. ``DetailView`` holds the two display toggles
of the detail pane.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from inmail_client.models import MessageFull, MessageSummary

NO_RAW_CONTENT = "(No raw content)"
NO_CONTENT = "No content available"

# An empty body field sometimes arrives serialised as a lone double quote.
_QUOTE_ARTIFACT = '"'

# Characters removed by JavaScript's String.prototype.trim().
_JS_WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
    "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_TAG_RE = re.compile(r"<[^>]*>")

PREVIEW_LENGTH = 60


class DisplayMode(str, Enum):
    NORMAL = "normal"
    RAW = "raw"


class ContentKind(str, Enum):
    HTML = "html"
    TEXT = "text"
    RAW = "raw"
    EMPTY = "empty"


@dataclass(frozen=True)
class ResolvedContent:
    """The representation chosen for display."""

    kind: ContentKind
    content: str


def _has_body(value: str | None) -> bool:
    return bool(value) and bool(value.strip(_JS_WHITESPACE)) and value != _QUOTE_ARTIFACT


def resolve(message: MessageFull, mode: DisplayMode = DisplayMode.NORMAL) -> ResolvedContent:
    """Choose the content to show for a message.

    In raw mode the raw source is returned verbatim. Otherwise the HTML body
    wins over the text body; a body counts only if it is not blank and is not
    the single character ``"``.

    Args:
        message: A hydrated message.
        mode: Normal or raw display.

    Returns:
        ResolvedContent with the chosen kind and text.
    """

    if mode == DisplayMode.RAW:
        return ResolvedContent(ContentKind.RAW, message.raw_content or NO_RAW_CONTENT)

    if _has_body(message.html_body):
        return ResolvedContent(ContentKind.HTML, message.html_body)  # type: ignore[arg-type]
    if _has_body(message.text_body):
        return ResolvedContent(ContentKind.TEXT, message.text_body)  # type: ignore[arg-type]
    return ResolvedContent(ContentKind.EMPTY, NO_CONTENT)


@dataclass
class DetailView:
    """Display toggles for the selected message.

    Raw view replaces the body; the header overlay sits above the body and is
    hidden while raw view is on, but keeps its own state.
    """

    show_raw: bool = False
    show_headers: bool = False

    @property
    def mode(self) -> DisplayMode:
        return DisplayMode.RAW if self.show_raw else DisplayMode.NORMAL

    def toggle_raw(self) -> None:
        self.show_raw = not self.show_raw

    def toggle_headers(self) -> None:
        self.show_headers = not self.show_headers

    def reset(self) -> None:
        self.show_raw = False
        self.show_headers = False


def visible_headers(message: MessageFull, view: DetailView) -> str | None:
    """Header block to overlay, or None when it should not be shown."""

    if view.show_raw or not view.show_headers or not message.headers:
        return None
    return message.headers


def preview(message: MessageSummary | MessageFull, length: int = PREVIEW_LENGTH) -> str:
    """Short body snippet for a list row.

    Summaries have no body, so they get a prompt instead.
    """

    if not isinstance(message, MessageFull) or not (message.text_body or message.html_body):
        return "Click to view message"

    source = message.text_body or _TAG_RE.sub("", message.html_body or "")
    snippet = source[:length] or "No preview"
    full_length = len(message.text_body or message.html_body or "")
    return snippet + ("..." if full_length > length else "")


def sender_label(message: MessageSummary | MessageFull) -> str:
    """Local part of the From address, for compact list rows."""

    return message.from_.split("@")[0] or message.from_
