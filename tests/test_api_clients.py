"""Tests for the order service clients and HTTP error mapping."""

import io
import zipfile

import httpx
import pytest

from qrmenu.api import AnalyticsServiceClient, OrderServiceClient, TableServiceClient, path_segment
from qrmenu.errors import NotFoundError, TransportError, ValidationError
from qrmenu.models import OrderStatus


def mock_http(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://svc/api/qr-menu")


class TestErrorMapping:

    @pytest.mark.asyncio
    async def test_connection_error_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_http(handler) as http:
            with pytest.raises(TransportError) as exc_info:
                await TableServiceClient(http).validate_pin("1234")
        assert exc_info.value.status_code is None
        assert exc_info.value.is_network_error

    @pytest.mark.asyncio
    async def test_timeout_has_no_status(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with mock_http(handler) as http:
            with pytest.raises(TransportError) as exc_info:
                await OrderServiceClient(http).fetch_orders()
        assert exc_info.value.is_network_error

    @pytest.mark.asyncio
    async def test_404_is_not_found(self):
        async with mock_http(lambda request: httpx.Response(404, json={"detail": "nope"})) as http:
            with pytest.raises(NotFoundError):
                await TableServiceClient(http).validate_token("abc")

    @pytest.mark.asyncio
    async def test_5xx_keeps_status(self):
        async with mock_http(lambda request: httpx.Response(503, text="unavailable")) as http:
            with pytest.raises(TransportError) as exc_info:
                await OrderServiceClient(http).fetch_ready_orders()
        assert exc_info.value.status_code == 503
        assert exc_info.value.is_server_error

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        async with mock_http(lambda request: httpx.Response(200, text="<html>")) as http:
            with pytest.raises(TransportError):
                await OrderServiceClient(http).fetch_orders()

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        async with mock_http(lambda request: httpx.Response(200, json={"orders": []})) as http:
            with pytest.raises(TransportError):
                await OrderServiceClient(http).fetch_orders()


class TestRequests:

    @pytest.mark.asyncio
    async def test_untrusted_credentials_are_encoded_as_one_segment(self):
        seen = []

        def handler(request):
            seen.append(request.url.raw_path)
            return httpx.Response(200, json={"table_number": 1})

        async with mock_http(handler) as http:
            await TableServiceClient(http).validate_token("a/b?c")
        assert seen == [b"/api/qr-menu/table/a%2Fb%3Fc"]
        assert path_segment("a b") == "a%20b"

    @pytest.mark.asyncio
    async def test_fetch_orders_query(self):
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return httpx.Response(200, json=[])

        async with mock_http(handler) as http:
            await OrderServiceClient(http).fetch_orders(OrderStatus.READY, 4)
            await OrderServiceClient(http).fetch_orders()
        assert seen == [{"status": "ready", "table": "4"}, {}]

    @pytest.mark.asyncio
    async def test_analytics_nulls_become_defaults(self):
        body = {"ordersPerHour": 3, "successRate": None, "hourlyOrders": None, "peakBusyHour": 13}
        async with mock_http(lambda request: httpx.Response(200, json=body)) as http:
            summary = await AnalyticsServiceClient(http).fetch_robot_logs_summary()
        assert summary.orders_per_hour == 3
        assert summary.success_rate == 0
        assert summary.hourly_orders == []
        assert summary.peak_busy_hour == 13


class TestTableAdmin:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("total", [0, 101, True, "5"])
    async def test_configure_rejects_bad_counts_locally(self, total):
        def handler(request):
            raise AssertionError("no request expected")

        async with mock_http(handler) as http:
            with pytest.raises(ValidationError) as exc_info:
                await TableServiceClient(http).configure_tables(total)
        assert exc_info.value.user_message == "Please enter a number between 1 and 100"

    @pytest.mark.asyncio
    async def test_provision_and_download(self, service_http):
        client = TableServiceClient(service_http)
        await client.configure_tables(2)

        tables = await client.list_tables()
        assert [t.table_number for t in tables] == [1, 2]
        assert all(t.token and t.pin and t.url for t in tables)

        assert (await client.download_qr_code(2)).startswith(b"\x89PNG")

        archive = zipfile.ZipFile(io.BytesIO(await client.download_all_qr_codes()))
        assert len(archive.namelist()) == 2

        assert await client.validate_token(tables[0].token) == 1
        assert await client.validate_pin(tables[1].pin) == 2
