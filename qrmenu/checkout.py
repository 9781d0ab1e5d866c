"""Checkout: the boundary where a cart becomes a submitted order."""

import logging
from typing import Optional

from qrmenu.cart import CartModel
from qrmenu.errors import QrMenuError, ValidationError
from qrmenu.lifecycle import OrderLifecycleClient
from qrmenu.notifications import NotificationCenter
from qrmenu.session import TableSessionManager

logger = logging.getLogger(__name__)

MSG_ORDER_PLACED = "Order placed successfully!"
MSG_ORDER_FAILED = "Failed to place order. Please check your connection and try again."


class Checkout:
    """Submits the cart for the bound table and reports the outcome."""

    def __init__(
        self,
        cart: CartModel,
        table_session: TableSessionManager,
        lifecycle: OrderLifecycleClient,
        notifier: NotificationCenter,
    ):
        self._cart = cart
        self._table_session = table_session
        self._lifecycle = lifecycle
        self._notifier = notifier

        self.is_submitting = False
        self.order_error: Optional[str] = None
        self.last_order_id: Optional[str] = None
        self.last_order_total: Optional[int] = None

    async def place_order(self) -> Optional[str]:
        """
        Submit the current cart. Returns the new order id, or None on failure.

        The ordered lines leave the cart only after the service acknowledged
        the order; on failure the cart is left as it was so the diner can retry
        by hand. Items added while the request was in flight stay in the cart.
        """
        if self.is_submitting:
            logger.info("order submission already in flight, ignoring")
            return None

        snapshot = self._cart.snapshot()
        self.is_submitting = True
        self.order_error = None
        try:
            order_id = await self._lifecycle.submit(self._table_session.table, snapshot)
        except ValidationError as exc:
            logger.info(f"order rejected locally: {exc}")
            self._fail(exc.user_message)
            return None
        except QrMenuError as exc:
            logger.error(f"order submission failed: {exc}", exc_info=True)
            self._fail(MSG_ORDER_FAILED)
            return None
        finally:
            self.is_submitting = False

        self.last_order_id = order_id
        self.last_order_total = sum(line.subtotal for line in snapshot)
        self._cart.remove_ordered(snapshot)
        self._notifier.success(MSG_ORDER_PLACED)
        return order_id

    def _fail(self, message: str) -> None:
        self.order_error = message
        self._notifier.error(message)
