"""Unit tests for the message browser."""

import asyncio

import httpx
import pytest

from inmail_client.api import InMailClient
from inmail_client.browser import HydrationState, ListState, MessageBrowser
from inmail_client.browser.content import ContentKind
from inmail_client.exceptions import AuthExpiredError
from inmail_client.models import FULL, SUMMARY, MessageFilter, MessageFull


def _gated_transport(server, should_block, started: asyncio.Event, release: asyncio.Event):
    """Transport that holds matching requests until ``release`` is set."""

    async def handler(request: httpx.Request) -> httpx.Response:
        if should_block(request):
            started.set()
            await release.wait()
        return server.handle(request)

    return httpx.MockTransport(handler)


class TestPagination:
    """Test suite for page navigation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page,offset", [(1, 0), (2, 50), (3, 100)])
    async def test_page_offset(self, browser, server, page, offset) -> None:
        server.add_messages(120)
        await browser.refresh()

        await browser.go_to_page(page)

        assert browser.offset == offset
        assert server.requests_to("GET", "/api/messages")[-1].url.params["offset"] == str(offset)
        assert browser.total_pages == 3

    @pytest.mark.asyncio
    async def test_page_is_clamped(self, browser, server) -> None:
        server.add_messages(120)
        await browser.refresh()

        assert await browser.go_to_page(99) is True
        assert browser.page == 3
        assert len(browser.messages) == 20
        assert browser.has_next is False
        assert browser.has_previous is True

    @pytest.mark.asyncio
    async def test_moving_past_first_page_is_a_no_op(self, browser, server) -> None:
        server.add_messages(10)
        await browser.refresh()
        sent = len(server.requests)

        assert await browser.previous_page() is False
        assert await browser.next_page() is False
        assert len(server.requests) == sent
        assert browser.page == 1

    @pytest.mark.asyncio
    async def test_empty_listing_has_one_page(self, browser) -> None:
        await browser.refresh()

        assert browser.list_state == ListState.LOADED
        assert browser.total_pages == 0
        assert browser.clamp_page(5) == 1

    @pytest.mark.asyncio
    async def test_set_filter_returns_to_first_page(self, browser, server) -> None:
        server.add_messages(60)
        await browser.refresh()
        await browser.next_page()

        await browser.set_filter(MessageFilter(subject="m2"))

        assert browser.page == 1
        assert server.requests_to("GET", "/api/messages")[-1].url.params["subject"] == "m2"
        assert {m.id for m in browser.messages} == {"m2"} | {f"m{i}" for i in range(20, 30)}

    @pytest.mark.asyncio
    async def test_list_failure_sets_error(self, browser, server) -> None:
        server.fail("GET", "/api/messages", 500)

        assert await browser.refresh() is False

        assert browser.list_state == ListState.ERROR
        assert browser.error == "Injected failure"

    @pytest.mark.asyncio
    async def test_successful_load_clears_error(self, browser, server) -> None:
        server.fail("GET", "/api/messages", 500)
        await browser.refresh()
        server.failures.clear()

        await browser.refresh()

        assert browser.error is None
        assert browser.list_state == ListState.LOADED


class TestSelection:
    """Test suite for selecting and hydrating messages."""

    @pytest.mark.asyncio
    async def test_summary_is_fetched_once(self, browser, server) -> None:
        server.add_messages(2)
        await browser.refresh()
        assert browser.messages[0].kind == SUMMARY

        assert await browser.select(browser.messages[0]) is True

        assert isinstance(browser.selected, MessageFull)
        assert browser.hydration_state == HydrationState.HYDRATED
        assert browser.messages[0].kind == FULL
        assert browser.content().kind == ContentKind.HTML
        assert len(server.requests_to("GET", "/api/messages/m1")) == 1

    @pytest.mark.asyncio
    async def test_listing_with_raw_content_is_not_fetched(self, browser, server) -> None:
        server.add_messages(1)
        server.list_extra_fields = {"raw_content": ""}
        await browser.refresh()

        assert await browser.select(browser.messages[0]) is True

        assert server.requests_to("GET", "/api/messages/m1") == []
        assert browser.content().kind == ContentKind.EMPTY

    @pytest.mark.asyncio
    async def test_hydrated_record_survives_reload(self, browser, server) -> None:
        server.add_messages(2)
        await browser.refresh()
        await browser.select(browser.messages[0])

        await browser.refresh()
        await browser.select(browser.messages[0])

        assert browser.messages[0].kind == FULL
        assert len(server.requests_to("GET", "/api/messages/m1")) == 1

    @pytest.mark.asyncio
    async def test_select_id_off_page_fetches(self, browser, server) -> None:
        server.add_messages(1)

        assert await browser.select_id("m1") is True

        assert browser.selected.id == "m1"
        assert browser.messages == []

    @pytest.mark.asyncio
    async def test_hydration_failure_keeps_list(self, browser, server) -> None:
        server.add_messages(2)
        await browser.refresh()
        server.fail("GET", "/api/messages/m1", 500)

        assert await browser.select(browser.messages[0]) is False

        assert browser.hydration_state == HydrationState.ERROR
        assert browser.error == "Injected failure"
        assert browser.list_state == ListState.LOADED
        assert len(browser.messages) == 2
        assert browser.selected.kind == SUMMARY
        assert browser.content() is None

    @pytest.mark.asyncio
    async def test_selection_resets_view(self, browser, server) -> None:
        server.add_messages(2)
        await browser.refresh()
        await browser.select(browser.messages[0])
        browser.view.toggle_raw()
        browser.view.toggle_headers()

        await browser.select(browser.messages[1])

        assert browser.view.show_raw is False
        assert browser.view.show_headers is False

    @pytest.mark.asyncio
    async def test_headers_follow_view(self, browser, server) -> None:
        server.add_messages(1)
        await browser.refresh()
        await browser.select(browser.messages[0])

        assert browser.headers() is None
        browser.view.toggle_headers()
        assert browser.headers().startswith("Subject: Subject m1")


class TestStaleResponses:
    """Late responses must not overwrite newer state."""

    @pytest.mark.asyncio
    async def test_stale_hydration_is_discarded(self, session, mock_settings, server) -> None:
        server.add_messages(2)
        started, release = asyncio.Event(), asyncio.Event()
        transport = _gated_transport(
            server, lambda r: r.url.path == "/api/messages/m1", started, release
        )
        browser = MessageBrowser(InMailClient(session, mock_settings, transport=transport))
        await browser.refresh()
        first, second = browser.messages

        slow = asyncio.create_task(browser.select(first))
        await started.wait()
        assert await browser.select(second) is True
        release.set()

        assert await slow is False
        assert browser.selected.id == "m2"
        assert browser.hydration_state == HydrationState.HYDRATED
        assert browser.messages[0].kind == SUMMARY

    @pytest.mark.asyncio
    async def test_stale_list_is_discarded(self, session, mock_settings, server) -> None:
        server.add_messages(60)
        started, release = asyncio.Event(), asyncio.Event()
        transport = _gated_transport(
            server, lambda r: r.url.params.get("offset") == "50", started, release
        )
        browser = MessageBrowser(InMailClient(session, mock_settings, transport=transport))
        await browser.refresh()

        slow = asyncio.create_task(browser.next_page())
        await started.wait()
        assert await browser.set_filter(MessageFilter(subject="m1")) is True
        release.set()

        assert await slow is False
        assert browser.page == 1
        assert {m.id for m in browser.messages} == {"m1"} | {f"m{i}" for i in range(10, 20)}


class TestDeletion:
    """Test suite for single and bulk deletion."""

    @pytest.mark.asyncio
    async def test_remove_selected_message(self, browser, server) -> None:
        server.add_messages(3)
        await browser.refresh()
        await browser.select(browser.messages[0])

        assert await browser.remove("m1") is True

        assert browser.selected is None
        assert browser.hydration_state == HydrationState.UNHYDRATED
        assert [m.id for m in browser.messages] == ["m2", "m3"]
        assert browser.total == 2

    @pytest.mark.asyncio
    async def test_remove_failure_keeps_message(self, browser, server) -> None:
        server.add_messages(2)
        await browser.refresh()
        server.fail("DELETE", "/api/messages/m1", 500)

        assert await browser.remove("m1") is False

        assert browser.error == "Injected failure"
        assert [m.id for m in browser.messages] == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_remove_many(self, browser, server) -> None:
        server.add_messages(4)
        await browser.refresh()

        assert await browser.remove_many(["m1", "m3"]) is True

        assert [m.id for m in browser.messages] == ["m2", "m4"]
        assert len(server.requests_to("DELETE", "/api/messages")) == 1

    @pytest.mark.asyncio
    async def test_remove_many_with_nothing_selected(self, browser, server) -> None:
        assert await browser.remove_many([]) is False
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_emptied_last_page_moves_back(self, browser, server) -> None:
        server.add_messages(51)
        await browser.refresh()
        await browser.next_page()
        assert [m.id for m in browser.messages] == ["m51"]

        await browser.remove("m51")

        assert browser.page == 1
        assert browser.total == 50
        assert len(browser.messages) == 50


class TestSessionExpiry:
    """Expired sessions propagate instead of becoming error text."""

    @pytest.mark.asyncio
    async def test_list_propagates_auth_expired(self, browser, server, session) -> None:
        server.token = "rotated"

        with pytest.raises(AuthExpiredError):
            await browser.refresh()

        assert browser.error is None
        assert browser.list_state == ListState.IDLE
        assert session.is_authenticated() is False

    @pytest.mark.asyncio
    async def test_hydration_does_not_stay_loading_on_expiry(self, browser, server) -> None:
        server.add_messages(1)
        await browser.refresh()
        server.token = "rotated"

        with pytest.raises(AuthExpiredError):
            await browser.select(browser.messages[0])

        assert browser.hydration_state == HydrationState.UNHYDRATED
        assert browser.error is None

    @pytest.mark.asyncio
    async def test_reset_drops_state(self, browser, server) -> None:
        server.add_messages(2)
        await browser.refresh()
        await browser.select(browser.messages[0])

        browser.reset()

        assert browser.messages == []
        assert browser.selected is None
        assert browser.list_state == ListState.IDLE
