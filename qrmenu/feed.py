"""
Polled views over the order service.

There is no push channel. A feed keeps a cached copy of what the service
returned, refreshes it on a fixed interval while it is active, and on
explicit triggers (filter change, status request, manual retry).

Rules every feed follows:
  - only the first, non-silent refresh raises `is_loading`; later refreshes
    (timer ticks, filter changes) are silent
  - a result replaces the cache wholesale
  - a result or failure is discarded if a newer refresh already completed,
    so a slow stale response never clobbers fresher data
  - a failure sets `error` and keeps the last good cache
  - the polling task is cancelled on stop() / context exit, on every path
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from qrmenu.api.analytics_service import AnalyticsServiceClient
from qrmenu.api.order_service import OrderServiceClient
from qrmenu.errors import QrMenuError, StateError
from qrmenu.lifecycle import OrderLifecycleClient
from qrmenu.models import Order, OrderStats, OrderStatus, RobotLogsSummary, TableNumber
from qrmenu.notifications import NotificationCenter

logger = logging.getLogger(__name__)

T = TypeVar("T")

ORDER_POLL_SECONDS = 5.0
SUMMARY_POLL_SECONDS = 30.0

MSG_LOAD_FAILED = "Failed to load orders. Please try again."
MSG_SUMMARY_FAILED = "Failed to load dashboard data. Please try again."
MSG_UPDATE_FAILED = "Failed to update order status. Please try again."
MSG_MARKED_READY = "Order marked as ready for delivery!"
MSG_MARKED_DELIVERED = "Order marked as delivered!"


class PollingTask:
    """
    A cancellable repeating task: await `callback()` every `interval` seconds.

    Use as an async context manager (or start()/stop()) so the task is
    released on every exit path. Errors raised by the callback are logged
    and the loop keeps going.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]], interval: float, name: str = "poll"):
        self._callback = callback
        self.interval = interval
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"{self.name}: poll callback failed")

    async def __aenter__(self) -> "PollingTask":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class PollingFeed(Generic[T]):
    """Base class: cached data of type T, refreshed by polling."""

    failure_message = MSG_LOAD_FAILED

    def __init__(self, notifier: NotificationCenter, interval: float, initial: T, name: str = "feed"):
        self._notifier = notifier
        self.name = name
        self.data: T = initial
        self.is_loading = False
        self.error: Optional[str] = None
        self.last_refreshed_seq = 0

        self._initial_load = True
        self._issued = 0     # sequence number of the latest refresh started
        self._completed = 0  # highest sequence number that completed (ok or failed)
        self._poller = PollingTask(lambda: self.refresh(silent=True), interval, name=f"{name}-poll")

    async def _fetch(self) -> T:
        raise NotImplementedError

    def _apply(self, data: T) -> None:
        self.data = data

    @property
    def active(self) -> bool:
        return self._poller.running

    async def refresh(self, silent: bool = False) -> bool:
        """
        Fetch and replace the cache. Returns True if this call's result was applied.

        Never raises for service errors; they set `error` (and show a
        notification unless silent).
        """
        self._issued += 1
        seq = self._issued
        show_spinner = not silent and self._initial_load
        if show_spinner:
            self.is_loading = True

        try:
            data = await self._fetch()
        except QrMenuError as exc:
            if seq <= self._completed:
                logger.debug(f"{self.name}: dropping stale failure #{seq}")
                return False
            self._completed = seq
            self.error = self.failure_message
            logger.error(f"{self.name}: refresh #{seq} failed: {exc}", exc_info=True)
            if not silent:
                self._notifier.error(self.failure_message)
            return False
        finally:
            self._initial_load = False
            if show_spinner:
                self.is_loading = False

        if seq <= self._completed:
            logger.debug(f"{self.name}: dropping stale result #{seq} (#{self._completed} already applied)")
            return False
        self._completed = seq
        self.last_refreshed_seq = seq
        self.error = None
        self._apply(data)
        return True

    async def retry(self) -> bool:
        """Manual retry after a failure (shows a notification on failure)."""
        return await self.refresh(silent=False)

    async def start(self) -> None:
        """Initial (non-silent) load, then periodic silent refreshes."""
        await self.refresh(silent=False)
        self._poller.start()

    async def stop(self) -> None:
        await self._poller.stop()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


class OrderFeed(PollingFeed[List[Order]]):
    """
    Orders for a scope (one table, or all tables) and an optional status filter.

    Also the entry point for staff status requests, which go through the
    lifecycle client and are always followed by a silent refresh.
    """

    def __init__(
        self,
        orders: OrderServiceClient,
        lifecycle: OrderLifecycleClient,
        notifier: NotificationCenter,
        table_number: Optional[TableNumber] = None,
        status_filter: Optional[OrderStatus] = None,
        interval: float = ORDER_POLL_SECONDS,
        name: str = "orders",
    ):
        super().__init__(notifier, interval, initial=[], name=name)
        self._orders = orders
        self._lifecycle = lifecycle
        self.table_number = table_number
        self.status_filter = OrderStatus(status_filter) if status_filter else None

    @property
    def orders(self) -> List[Order]:
        return self.data

    async def _fetch(self) -> List[Order]:
        return await self._orders.fetch_orders(self.status_filter, self.table_number)

    def _apply(self, data: List[Order]) -> None:
        self.data = list(data)
        self._lifecycle.observe(self.data)

    def get(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.data if o.order_id == str(order_id)), None)

    def stats(self) -> OrderStats:
        return OrderStats.from_orders(self.data)

    async def set_filter(self, status: Optional[OrderStatus]) -> bool:
        self.status_filter = OrderStatus(status) if status else None
        return await self.refresh(silent=True)

    async def set_table(self, table_number: Optional[TableNumber]) -> bool:
        self.table_number = table_number
        return await self.refresh(silent=True)

    async def request_ready(self, order_id: str) -> bool:
        return await self._request(order_id, OrderStatus.READY, MSG_MARKED_READY)

    async def request_delivered(self, order_id: str) -> bool:
        return await self._request(order_id, OrderStatus.DELIVERED, MSG_MARKED_DELIVERED)

    async def _request(self, order_id: str, target: OrderStatus, success_message: str) -> bool:
        cached = self.get(order_id)
        current = cached.status if cached is not None else None
        ok = False
        try:
            await self._lifecycle.advance_status(order_id, target, current=current)
        except StateError as exc:
            logger.warning(f"{self.name}: rejected transition for {order_id}: {exc}")
            self._notifier.error(exc.user_message)
        except QrMenuError as exc:
            logger.error(f"{self.name}: status update for {order_id} failed: {exc}", exc_info=True)
            self._notifier.error(MSG_UPDATE_FAILED)
        else:
            ok = True
            self._notifier.success(success_message)
        # The failure may be a false negative, so re-read either way
        await self.refresh(silent=True)
        return ok


class SummaryFeed(PollingFeed[Optional[RobotLogsSummary]]):
    """Analytics summary for the staff dashboard, polled every 30 seconds."""

    failure_message = MSG_SUMMARY_FAILED

    def __init__(
        self,
        analytics: AnalyticsServiceClient,
        notifier: NotificationCenter,
        interval: float = SUMMARY_POLL_SECONDS,
        name: str = "summary",
    ):
        super().__init__(notifier, interval, initial=None, name=name)
        self._analytics = analytics

    @property
    def summary(self) -> Optional[RobotLogsSummary]:
        return self.data

    async def _fetch(self) -> RobotLogsSummary:
        return await self._analytics.fetch_robot_logs_summary()


class DashboardView:
    """
    Staff dashboard: a filtered order list plus an unfiltered feed for the
    statistics header. Both feeds poll independently and stop together.
    """

    def __init__(self, listing: OrderFeed, everything: OrderFeed):
        self.listing = listing
        self.everything = everything

    @property
    def orders(self) -> List[Order]:
        return self.listing.orders

    def stats(self) -> OrderStats:
        return self.everything.stats()

    async def set_filter(self, status: Optional[OrderStatus]) -> bool:
        return await self.listing.set_filter(status)

    async def request_ready(self, order_id: str) -> bool:
        ok = await self.listing.request_ready(order_id)
        await self.everything.refresh(silent=True)
        return ok

    async def request_delivered(self, order_id: str) -> bool:
        ok = await self.listing.request_delivered(order_id)
        await self.everything.refresh(silent=True)
        return ok

    async def start(self) -> None:
        try:
            await asyncio.gather(self.listing.start(), self.everything.start())
        except BaseException:
            await self.stop()
            raise

    async def stop(self) -> None:
        await asyncio.gather(self.listing.stop(), self.everything.stop())

    async def __aenter__(self) -> "DashboardView":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
