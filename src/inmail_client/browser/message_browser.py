"""Paginated message browsing with on-demand hydration.

The browser keeps two independent state machines: one for the current page
of the listing and one for the selected message's detail fetch. Each load
takes a generation number; a response that arrives after a newer load of the
same kind was started is dropped instead of overwriting newer state.
"""

from __future__ import annotations

import math
from enum import Enum

import structlog

from inmail_client.api import InMailClient
from inmail_client.browser.content import DetailView, ResolvedContent, resolve, visible_headers
from inmail_client.exceptions import AuthExpiredError, RequestFailedError, ValidationError
from inmail_client.models import FULL, MessageFilter, MessageFull, MessageSummary

logger = structlog.get_logger()

PAGE_LIMIT = 50

LIST_FAILED = "Failed to load messages"
DETAIL_FAILED = "Failed to load message details"
DELETE_FAILED = "Failed to delete message"
BULK_DELETE_FAILED = "Failed to delete messages"

MessageRecord = MessageSummary | MessageFull


class ListState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class HydrationState(str, Enum):
    UNHYDRATED = "unhydrated"
    LOADING = "loading"
    HYDRATED = "hydrated"
    ERROR = "error"


def _error_text(exc: Exception, default: str) -> str:
    if isinstance(exc, RequestFailedError) and exc.server_message:
        return exc.server_message
    return default


class MessageBrowser:
    """State holder for the messages page.

    ``AuthExpiredError`` is never converted into ``error`` text; it propagates
    to the caller, which is expected to hand it to the coordinator. The list or
    hydration state it interrupted drops back to idle or unhydrated.
    """

    def __init__(self, client: InMailClient, limit: int = PAGE_LIMIT) -> None:
        """Create a browser.

        Args:
            client: API client used for listing, fetching and deleting.
            limit: Page size.
        """

        self._client = client
        self.limit = limit
        self._hydrated: dict[str, MessageFull] = {}
        self._list_generation = 0
        self._selection_generation = 0
        self._init_state()

    def _init_state(self) -> None:
        self.page = 1
        self.total = 0
        self.filters = MessageFilter()
        self.messages: list[MessageRecord] = []
        self.list_state = ListState.IDLE
        self.error: str | None = None
        self.selected: MessageRecord | None = None
        self.hydration_state = HydrationState.UNHYDRATED
        self.view = DetailView()

    # Pagination

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    def clamp_page(self, page: int) -> int:
        return min(max(page, 1), max(self.total_pages, 1))

    async def go_to_page(self, page: int) -> bool:
        """Move to ``page`` (clamped) and load it.

        Returns:
            True if a new page was loaded, False if the clamped target is the
            current page or the load failed.
        """

        target = self.clamp_page(page)
        if target == self.page:
            return False
        self.page = target
        return await self._load()

    async def next_page(self) -> bool:
        return await self.go_to_page(self.page + 1)

    async def previous_page(self) -> bool:
        return await self.go_to_page(self.page - 1)

    async def set_filter(self, filters: MessageFilter) -> bool:
        """Apply new listing filters and reload from the first page."""

        self.filters = filters
        self.page = 1
        return await self._load()

    async def refresh(self) -> bool:
        """Reload the current page."""

        return await self._load()

    async def _load(self) -> bool:
        self._list_generation += 1
        generation = self._list_generation
        page = self.page
        self.list_state = ListState.LOADING

        try:
            result = await self._client.list_messages(
                limit=self.limit,
                offset=(page - 1) * self.limit,
                filters=self.filters,
            )
        except AuthExpiredError:
            if generation == self._list_generation:
                self.list_state = ListState.IDLE
            raise
        except (RequestFailedError, ValidationError) as exc:
            if generation != self._list_generation:
                return False
            self.error = _error_text(exc, LIST_FAILED)
            self.list_state = ListState.ERROR
            logger.warning("message_list_failed", page=page, error=str(exc))
            return False

        if generation != self._list_generation:
            logger.debug("stale_message_list_discarded", page=page)
            return False

        self.messages = [self._hydrated.get(m.id, m) for m in result.messages]
        self.total = result.total
        self.error = None
        self.list_state = ListState.LOADED
        logger.info("messages_loaded", page=page, count=len(self.messages), total=self.total)
        return True

    # Selection

    async def select(self, message: MessageRecord) -> bool:
        """Show a message, fetching its full record first if needed.

        Args:
            message: A record from ``messages``.

        Returns:
            True once the selected message is hydrated, False if the fetch
            failed or a newer selection superseded it.
        """

        generation = self._begin_selection()

        if message.kind == FULL:
            self._show(message)
            return True

        cached = self._hydrated.get(message.id)
        if cached is not None:
            self._show(cached)
            return True

        self.selected = message
        return await self._hydrate(message.id, generation)

    async def select_id(self, message_id: str) -> bool:
        """Select by ID, from the current page or the hydrated cache, else fetch."""

        for record in self.messages:
            if record.id == message_id:
                return await self.select(record)

        generation = self._begin_selection()
        cached = self._hydrated.get(message_id)
        if cached is not None:
            self._show(cached)
            return True

        self.selected = None
        return await self._hydrate(message_id, generation)

    def clear_selection(self) -> None:
        self._selection_generation += 1
        self.selected = None
        self.hydration_state = HydrationState.UNHYDRATED
        self.view.reset()

    def _begin_selection(self) -> int:
        self._selection_generation += 1
        self.view.reset()
        return self._selection_generation

    def _show(self, message: MessageFull) -> None:
        self.selected = message
        self.hydration_state = HydrationState.HYDRATED

    async def _hydrate(self, message_id: str, generation: int) -> bool:
        self.hydration_state = HydrationState.LOADING
        try:
            full = await self._client.get_message(message_id)
        except AuthExpiredError:
            if generation == self._selection_generation:
                self.hydration_state = HydrationState.UNHYDRATED
            raise
        except (RequestFailedError, ValidationError) as exc:
            if generation != self._selection_generation:
                return False
            self.error = _error_text(exc, DETAIL_FAILED)
            self.hydration_state = HydrationState.ERROR
            logger.warning("message_hydration_failed", message_id=message_id, error=str(exc))
            return False

        if generation != self._selection_generation:
            logger.debug("stale_hydration_discarded", message_id=message_id)
            return False

        self._hydrated[full.id] = full
        self.messages = [full if m.id == full.id else m for m in self.messages]
        self._show(full)
        logger.info("message_hydrated", message_id=message_id)
        return True

    # Detail

    def content(self) -> ResolvedContent | None:
        """Content for the selected message under the current view, if hydrated."""

        if not isinstance(self.selected, MessageFull):
            return None
        return resolve(self.selected, self.view.mode)

    def headers(self) -> str | None:
        if not isinstance(self.selected, MessageFull):
            return None
        return visible_headers(self.selected, self.view)

    # Deletion

    async def remove(self, message_id: str) -> bool:
        """Delete a message, then reload the current page."""

        try:
            await self._client.delete_message(message_id)
        except (RequestFailedError, ValidationError) as exc:
            self.error = _error_text(exc, DELETE_FAILED)
            logger.warning("message_delete_failed", message_id=message_id, error=str(exc))
            return False

        self._forget([message_id])
        await self._reload_after_delete()
        return True

    async def remove_many(self, message_ids: list[str]) -> bool:
        """Delete several messages in one request, then reload the current page."""

        if not message_ids:
            return False

        try:
            await self._client.bulk_delete_messages(message_ids)
        except (RequestFailedError, ValidationError) as exc:
            self.error = _error_text(exc, BULK_DELETE_FAILED)
            logger.warning("message_bulk_delete_failed", count=len(message_ids), error=str(exc))
            return False

        self._forget(message_ids)
        await self._reload_after_delete()
        return True

    def _forget(self, message_ids: list[str]) -> None:
        for message_id in message_ids:
            self._hydrated.pop(message_id, None)
        if self.selected is not None and self.selected.id in message_ids:
            self.clear_selection()

    async def _reload_after_delete(self) -> None:
        if not await self._load():
            return
        # The last page may have emptied out.
        last_page = self.clamp_page(self.page)
        if last_page != self.page:
            self.page = last_page
            await self._load()

    def reset(self) -> None:
        """Drop all state, e.g. after logout. In-flight responses are discarded."""

        self._list_generation += 1
        self._selection_generation += 1
        self._hydrated.clear()
        self._init_state()
