"""
Order submission and status transitions.

The order service owns order state. This client builds new orders from a
cart snapshot and guards status requests locally so an out-of-sequence
transition is never sent; the service still enforces the same rules.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from qrmenu.api.order_service import OrderServiceClient
from qrmenu.errors import StateError, ValidationError
from qrmenu.models import (
    INITIAL_STATUS,
    CartLine,
    NewOrder,
    Order,
    OrderItem,
    OrderStatus,
    ReadyOrder,
    TableIdentity,
    TableNumber,
    check_transition,
    next_status,
    snapshot_total,
)
from qrmenu.utils.time_utils import iso_utc

logger = logging.getLogger(__name__)

MSG_NO_TABLE = "Table number not found. Please scan a valid QR code."
MSG_EMPTY_CART = "Your cart is empty!"
MSG_TOTAL_MISMATCH = "Your order total changed. Please review your cart and try again."


class OrderLifecycleClient:
    """Creates orders and requests pending -> ready -> delivered transitions."""

    def __init__(self, orders: OrderServiceClient, clock=iso_utc):
        self._orders = orders
        self._clock = clock
        # Last status known for each live order id (from submissions, feeds,
        # transitions). Delivered orders are dropped: no transition leaves them.
        self._known: Dict[str, OrderStatus] = {}

    def known_status(self, order_id: str) -> Optional[OrderStatus]:
        return self._known.get(str(order_id))

    def _remember(self, order_id: str, status: OrderStatus) -> None:
        if next_status(status) is None:
            self._known.pop(order_id, None)
        else:
            self._known[order_id] = status

    def observe(self, orders: Iterable[Order]) -> None:
        """Record the statuses reported by the order service."""
        for order in orders:
            self._remember(order.order_id, order.status)

    def build_order(
        self,
        table: Optional[Union[TableIdentity, TableNumber]],
        snapshot: Sequence[CartLine],
        total: Optional[int] = None,
    ) -> NewOrder:
        """
        Turn a table and a cart snapshot into a pending order.

        The total is always recomputed from the snapshot. A caller-supplied
        total that disagrees is rejected rather than trusted.
        """
        table_number = table.table_number if isinstance(table, TableIdentity) else table
        if table_number is None or table_number == "":
            raise ValidationError("order has no table", user_message=MSG_NO_TABLE)
        if not snapshot:
            raise ValidationError("order has no items", user_message=MSG_EMPTY_CART)

        items = [OrderItem.from_cart_line(line) for line in snapshot]
        computed = snapshot_total(items)
        if total is not None and total != computed:
            raise ValidationError(
                f"supplied total {total} != recomputed {computed}",
                user_message=MSG_TOTAL_MISMATCH,
            )

        try:
            return NewOrder(
                table_number=table_number,
                items=items,
                total=computed,
                timestamp=self._clock(),
                status=INITIAL_STATUS,
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"invalid order: {exc}", user_message=MSG_TOTAL_MISMATCH) from exc

    async def submit(
        self,
        table: Optional[Union[TableIdentity, TableNumber]],
        snapshot: Sequence[CartLine],
        total: Optional[int] = None,
    ) -> str:
        """
        Submit a new order and return its id.

        Raises ValidationError before any request for a missing table, an
        empty snapshot or a total mismatch, and TransportError when the
        service rejects the write. Creates are never retried here: a retry
        could duplicate the order.
        """
        order = self.build_order(table, snapshot, total)
        order_id = await self._orders.create_order(order)
        self._remember(order_id, order.status)
        logger.info(f"order {order_id} submitted for table {order.table_number} total={order.total}")
        return order_id

    async def advance_status(
        self,
        order_id: str,
        target: OrderStatus,
        current: Optional[OrderStatus] = None,
    ) -> Optional[Order]:
        """
        Request the transition of `order_id` to `target`.

        `current` defaults to the last known status. The request is only sent
        when `target` is the immediate successor; otherwise StateError is
        raised and nothing leaves the client.
        """
        order_id = str(order_id)
        target = OrderStatus(target)
        if current is None:
            current = self._known.get(order_id)
        if current is None:
            raise StateError(
                f"no known status for order {order_id}",
                user_message="This order's status is unknown. Please refresh and try again.",
            )
        check_transition(current, target)

        updated = await self._orders.update_order_status(order_id, target)
        self._remember(order_id, updated.status if updated is not None else target)
        logger.info(f"order {order_id} advanced {OrderStatus(current).value} -> {target.value}")
        return updated

    async def fetch_ready_orders(self) -> List[ReadyOrder]:
        return await self._orders.fetch_ready_orders()
