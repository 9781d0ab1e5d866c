"""Tests for binding a session to a table (QR token and PIN)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from qrmenu.api.table_service import TableServiceClient
from qrmenu.errors import NotFoundError, TransportError, ValidationError
from qrmenu.notifications import NotificationCenter
from qrmenu import session as session_module
from qrmenu.session import PageLocation, SessionState, TableSessionManager, extract_token


def make_manager(url="https://venue.example/menu", tables=None):
    if tables is None:
        tables = MagicMock()
        tables.validate_token = AsyncMock()
        tables.validate_pin = AsyncMock()
    notifier = NotificationCenter()
    manager = TableSessionManager(tables, notifier, location=PageLocation(url))
    return manager, tables, notifier


class TestExtractToken:

    def test_url_with_token_param(self):
        assert extract_token("https://venue.example/menu?t=abc123&x=1") == "abc123"

    def test_plain_text_is_the_token(self):
        assert extract_token("  abc123 ") == "abc123"

    def test_url_without_param_is_taken_verbatim(self):
        assert extract_token("https://venue.example/menu?x=1") == "https://venue.example/menu?x=1"

    def test_empty_payload_rejected(self):
        with pytest.raises(ValidationError):
            extract_token("   ")


class TestPageLocation:

    def test_take_param_strips_only_that_param(self):
        replaced = []
        location = PageLocation("https://venue.example/menu?lang=en&t=abc#top", on_replace=replaced.append)
        assert location.take_param("t") == "abc"
        assert location.url == "https://venue.example/menu?lang=en#top"
        assert replaced == [location.url]

    def test_take_param_absent_leaves_url(self):
        location = PageLocation("https://venue.example/menu?lang=en")
        assert location.take_param("t") is None
        assert location.history == []


class TestBootstrap:

    @pytest.mark.asyncio
    async def test_token_scrubbed_before_validation_is_awaited(self):
        manager, tables, notifier = make_manager("https://venue.example/menu?t=tok&lang=en")
        seen_urls = []

        async def validate(token):
            seen_urls.append(manager.location.url)
            return 7

        tables.validate_token = AsyncMock(side_effect=validate)

        assert await manager.bootstrap() is True
        assert seen_urls == ["https://venue.example/menu?lang=en"]
        assert manager.state == SessionState.BOUND
        assert manager.table_number == 7
        assert manager.table.method == "token"
        # ambient binding is silent
        assert notifier.current is None

    @pytest.mark.asyncio
    async def test_no_token_asks_for_scan(self):
        manager, tables, _ = make_manager()
        assert await manager.bootstrap() is False
        assert manager.error == session_module.MSG_NO_CREDENTIAL
        tables.validate_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bound_session_ignores_ambient_token(self):
        manager, tables, _ = make_manager()
        tables.validate_pin = AsyncMock(return_value=2)
        await manager.present_pin("1234")

        manager.location.replace("https://venue.example/menu?t=other")
        assert await manager.bootstrap() is True

        tables.validate_token.assert_not_awaited()
        assert manager.table_number == 2
        assert "t=" not in manager.location.url

    @pytest.mark.asyncio
    async def test_invalid_token(self):
        manager, tables, notifier = make_manager("https://venue.example/menu?t=bad")
        tables.validate_token = AsyncMock(side_effect=NotFoundError("nope"))

        assert await manager.bootstrap() is False
        assert manager.state == SessionState.ERROR
        assert manager.error == session_module.MSG_INVALID_TOKEN
        assert notifier.current.text == session_module.MSG_INVALID_TOKEN


class TestPin:

    @pytest.mark.asyncio
    async def test_malformed_pin_never_reaches_the_network(self):
        manager, tables, notifier = make_manager()
        tables.validate_pin = AsyncMock()

        assert await manager.present_pin("12a4") is False

        tables.validate_pin.assert_not_awaited()
        assert manager.state == SessionState.ERROR
        assert notifier.current.text == session_module.MSG_PIN_FORMAT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, message",
        [
            (NotFoundError("unknown pin"), session_module.MSG_PIN_NOT_FOUND),
            (TransportError("timed out"), session_module.MSG_NETWORK_ERROR),
            (TransportError("bad gateway", status_code=503), session_module.MSG_SERVER_ERROR),
            (TransportError("bad request", status_code=400), session_module.MSG_UNKNOWN_ERROR),
        ],
    )
    async def test_failures_map_to_distinct_messages(self, error, message):
        manager, tables, notifier = make_manager()
        tables.validate_pin = AsyncMock(side_effect=error)

        assert await manager.present_pin("9999") is False
        assert manager.error == message
        assert notifier.current.text == message

    @pytest.mark.asyncio
    async def test_valid_pin_binds(self):
        manager, tables, notifier = make_manager()
        tables.validate_pin = AsyncMock(return_value=4)

        assert await manager.present_pin(" 0042 ") is True
        tables.validate_pin.assert_awaited_once_with("0042")
        assert manager.table.credential == "0042"
        assert manager.table.method == "pin"
        assert notifier.current.text == session_module.MSG_PIN_OK


class TestRebinding:

    @pytest.mark.asyncio
    async def test_failed_replacement_keeps_prior_binding(self):
        manager, tables, _ = make_manager()
        tables.validate_pin = AsyncMock(return_value=3)
        await manager.present_pin("1111")

        tables.validate_token = AsyncMock(side_effect=NotFoundError("nope"))
        assert await manager.present_token("bogus") is False

        assert manager.table_number == 3
        assert manager.state == SessionState.BOUND
        assert manager.error == session_module.MSG_INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_superseded_resolution_is_discarded(self):
        manager, tables, _ = make_manager()
        slow_gate = asyncio.Event()

        async def validate(token):
            if token == "slow":
                await slow_gate.wait()
                return 1
            return 5

        tables.validate_token = AsyncMock(side_effect=validate)

        slow = asyncio.create_task(manager.present_token("slow"))
        await asyncio.sleep(0)
        assert await manager.present_token("fast") is True

        slow_gate.set()
        assert await slow is False
        assert manager.table_number == 5


class TestAgainstOrderService:

    @pytest.mark.asyncio
    async def test_scanned_table_url_binds(self, ctx, tables):
        info = await ctx.tables.qr_codes_info()
        url = info["tables"][1]["url"]

        assert await ctx.table_session.present_scanned(url) is True
        assert ctx.table_session.table_number == 2

    @pytest.mark.asyncio
    async def test_pin_lookup(self, ctx, tables, unused_pin):
        assert await ctx.table_session.present_pin(tables[2]["pin"]) is True
        assert ctx.table_session.table_number == 3

        assert await ctx.table_session.present_pin(unused_pin) is False
        assert ctx.table_session.error == session_module.MSG_PIN_NOT_FOUND
        assert ctx.table_session.table_number == 3

    @pytest.mark.asyncio
    async def test_token_with_path_characters_is_not_found(self, ctx, tables):
        assert await ctx.table_session.present_token("../admin/tables") is False
        assert ctx.table_session.error == session_module.MSG_INVALID_TOKEN


class TestMalformedLookupReplies:

    @staticmethod
    def manager_over(body):
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
            base_url="http://svc/api/qr-menu",
        )
        notifier = NotificationCenter()
        return TableSessionManager(TableServiceClient(http), notifier, location=PageLocation("/menu")), http

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"table_number": 1.5}, [1], {"n": 1}, {"table_number": True}, {"table_number": ""}])
    async def test_token_reply_without_a_table_number(self, body):
        manager, http = self.manager_over(body)
        async with http:
            assert await manager.present_token("abc") is False
        assert manager.state == SessionState.ERROR
        assert manager.table is None
        assert manager.error == session_module.MSG_INVALID_TOKEN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"table_number": 1.5}, [1], {"n": 1}])
    async def test_pin_reply_without_a_table_number(self, body):
        manager, http = self.manager_over(body)
        async with http:
            assert await manager.present_pin("1234") is False
        assert manager.state == SessionState.ERROR
        assert manager.error == session_module.MSG_UNKNOWN_ERROR

    @pytest.mark.asyncio
    async def test_string_table_numbers_are_accepted(self):
        manager, http = self.manager_over({"table_number": "T4"})
        async with http:
            assert await manager.present_token("abc") is True
        assert manager.table_number == "T4"
