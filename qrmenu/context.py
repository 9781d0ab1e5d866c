"""
SessionContext: everything one browser session owns.

Replaces page-global session flags with an explicit object that is built
once per session, handed to whatever drives the UI, and torn down with
close() (or `async with`). Teardown stops every feed and scan the context
started and closes the HTTP client it created.

    async with SessionContext.create(landing_url=url) as ctx:
        await ctx.table_session.bootstrap()
        ctx.cart.add_item(menu[0])
        await ctx.checkout.place_order()
        async with ctx.customer_orders() as feed:
            ...
"""

import logging
from typing import Callable, List, Optional

import httpx

from qrmenu.api import AnalyticsServiceClient, OrderServiceClient, TableServiceClient, build_http_client
from qrmenu.auth import AdminGate
from qrmenu.cart import CartModel
from qrmenu.checkout import Checkout
from qrmenu.config import Settings, get_settings
from qrmenu.feed import DashboardView, OrderFeed, PollingFeed, SummaryFeed
from qrmenu.lifecycle import OrderLifecycleClient
from qrmenu.menu import load_menu
from qrmenu.models import MenuItem, OrderStatus
from qrmenu.notifications import NotificationCenter
from qrmenu.scanner import QrDecoder, ScanCapabilityAdapter
from qrmenu.session import PageLocation, TableSessionManager

logger = logging.getLogger(__name__)


class AdminRequiredError(PermissionError):
    """A staff-only view was requested without a dashboard login."""


class SessionContext:

    def __init__(
        self,
        settings: Settings,
        http: httpx.AsyncClient,
        location: Optional[PageLocation] = None,
        menu: Optional[List[MenuItem]] = None,
        decoder_factory: Optional[Callable[[], QrDecoder]] = None,
        owns_http: bool = False,
    ):
        self.settings = settings
        self.http = http
        self._owns_http = owns_http

        self.notifier = NotificationCenter(dwell=settings.notification_dwell)
        self.tables = TableServiceClient(http)
        self.orders = OrderServiceClient(http)
        self.analytics = AnalyticsServiceClient(http)

        self.menu = menu if menu is not None else load_menu()
        self.cart = CartModel()
        self.table_session = TableSessionManager(
            self.tables, self.notifier, location=location, credential_param=settings.credential_param
        )
        self.lifecycle = OrderLifecycleClient(self.orders)
        self.checkout = Checkout(self.cart, self.table_session, self.lifecycle, self.notifier)
        self.admin = AdminGate(settings.admin_password, self.notifier)
        self.scanner = (
            ScanCapabilityAdapter(decoder_factory, self.notifier) if decoder_factory is not None else None
        )

        self._feeds: List[PollingFeed] = []
        self.closed = False

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        landing_url: str = "/",
        http: Optional[httpx.AsyncClient] = None,
        **kwargs,
    ) -> "SessionContext":
        """Build a context; an HTTP client is created (and later closed) unless one is given."""
        settings = settings or get_settings()
        owns_http = http is None
        if http is None:
            http = build_http_client(settings)
        return cls(settings, http, location=PageLocation(landing_url), owns_http=owns_http, **kwargs)

    # ---------- Views ----------

    def customer_orders(self, status_filter: Optional[OrderStatus] = None) -> OrderFeed:
        """Orders of the bound table (all tables if none is bound yet)."""
        return self._track(
            OrderFeed(
                self.orders,
                self.lifecycle,
                self.notifier,
                table_number=self.table_session.table_number,
                status_filter=status_filter,
                interval=self.settings.poll_interval,
                name=f"table-{self.table_session.table_number}-orders",
            )
        )

    def dashboard(self, status_filter: Optional[OrderStatus] = None) -> DashboardView:
        self._require_admin()
        listing = OrderFeed(
            self.orders,
            self.lifecycle,
            self.notifier,
            status_filter=status_filter,
            interval=self.settings.poll_interval,
            name="dashboard-orders",
        )
        everything = OrderFeed(
            self.orders,
            self.lifecycle,
            self.notifier,
            interval=self.settings.poll_interval,
            name="dashboard-stats",
        )
        self._track(listing)
        self._track(everything)
        return DashboardView(listing, everything)

    def summary(self) -> SummaryFeed:
        self._require_admin()
        return self._track(
            SummaryFeed(self.analytics, self.notifier, interval=self.settings.summary_poll_interval)
        )

    async def scan_table(self) -> bool:
        """Scan a table QR code and bind the session to it."""
        if self.scanner is None:
            raise RuntimeError("no QR decoder configured for this session")
        text = await self.scanner.scan()
        if text is None:
            return False
        return await self.table_session.present_scanned(text)

    # ---------- Lifetime ----------

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            for feed in self._feeds:
                await feed.stop()
            self._feeds.clear()
            if self.scanner is not None:
                self.scanner.cancel()
        finally:
            self.notifier.close()
            if self._owns_http:
                await self.http.aclose()
        logger.info("session context closed")

    async def __aenter__(self) -> "SessionContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _track(self, feed):
        self._feeds.append(feed)
        return feed

    def _require_admin(self) -> None:
        if not self.admin.is_authenticated:
            raise AdminRequiredError("dashboard login required")
