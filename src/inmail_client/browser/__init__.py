"""Message browsing: listing, hydration, content resolution and attachments."""

from .attachments import AttachmentFetcher
from .content import ContentKind, DetailView, DisplayMode, ResolvedContent, resolve
from .message_browser import PAGE_LIMIT, HydrationState, ListState, MessageBrowser

__all__ = [
    "PAGE_LIMIT",
    "AttachmentFetcher",
    "ContentKind",
    "DetailView",
    "DisplayMode",
    "HydrationState",
    "ListState",
    "MessageBrowser",
    "ResolvedContent",
    "resolve",
]
