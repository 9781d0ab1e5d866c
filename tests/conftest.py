import pytest
import pytest_asyncio
from typing import Any, Dict, List

import httpx
from httpx import ASGITransport

from qrmenu.config import Settings
from qrmenu.context import SessionContext
from qrmenu.devserver.main import API_PREFIX, create_app
from qrmenu.devserver.storage import InMemoryOrderStore
from qrmenu.menu import DEFAULT_MENU
from qrmenu.notifications import NotificationCenter
from qrmenu.utils.time_utils import iso_utc


@pytest.fixture
def settings():
    """Settings pointing at the in-process order service."""
    return Settings(
        api_url=f"http://test{API_PREFIX}",
        admin_password="999999",
        frontend_url="http://localhost:9111",
        poll_interval=5,
        summary_poll_interval=30,
    )


@pytest.fixture
def store():
    store = InMemoryOrderStore()
    yield store
    store.clear()


@pytest.fixture
def tables(store) -> List[Dict[str, Any]]:
    """Three provisioned tables with tokens and PINs."""
    return store.configure_tables(3)


@pytest.fixture
def app(store, settings):
    return create_app(store, settings)


@pytest_asyncio.fixture
async def async_client(app):
    """Raw HTTP client against the local order service (host root)."""
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def service_http(app, settings):
    """HTTP client the qrmenu service clients use (base includes the API prefix)."""
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url=settings.api_base) as client:
        yield client


@pytest_asyncio.fixture
async def ctx(settings, service_http):
    async with SessionContext.create(settings, landing_url="http://localhost:9111/menu", http=service_http) as context:
        yield context


@pytest.fixture
def notifier():
    return NotificationCenter()


@pytest.fixture
def menu():
    return list(DEFAULT_MENU)


@pytest.fixture
def unused_pin(tables) -> str:
    used = {t["pin"] for t in tables}
    return next(f"{n:04d}" for n in range(10000) if f"{n:04d}" not in used)


@pytest.fixture
def make_order(store):
    """Put an order straight into the store, bypassing the API."""

    def _make(table_number=1, status="pending", items=None) -> str:
        items = items or [
            {"id": 1, "name": "Margherita Pizza", "price": 1499, "quantity": 1},
        ]
        return store.add_order(
            {
                "table_number": table_number,
                "items": items,
                "total": sum(i["price"] * i["quantity"] for i in items),
                "timestamp": iso_utc(),
                "status": status,
            }
        )

    return _make
