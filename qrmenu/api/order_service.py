"""Order endpoints of the order service."""

import logging
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError

from qrmenu.api.http import ServiceClient, path_segment
from qrmenu.models import NewOrder, Order, OrderStatus, ReadyOrder, TableNumber

logger = logging.getLogger(__name__)


class OrderServiceClient(ServiceClient):
    """Client for /orders* endpoints. Never retries a write."""

    async def fetch_orders(
        self,
        status: Optional[OrderStatus] = None,
        table_number: Optional[TableNumber] = None,
    ) -> List[Order]:
        """
        List orders, optionally filtered.

        Args:
            status: only orders in this status (None for all)
            table_number: only orders for this table (None for all tables)
        """
        params = {}
        if status is not None:
            params["status"] = OrderStatus(status).value
        if table_number is not None:
            params["table"] = str(table_number)

        data = await self._get("/orders", params=params or None)
        if not isinstance(data, list):
            raise self._malformed("order list")
        try:
            return [Order.model_validate(record) for record in data]
        except PydanticValidationError as exc:
            raise self._malformed("order record", exc)

    async def create_order(self, order: NewOrder) -> str:
        """POST a new order and return the id the service assigned."""
        data = await self._post("/orders", order.model_dump(mode="json"))
        order_id = data.get("order_id") if isinstance(data, dict) else None
        if not order_id:
            raise self._malformed("create-order response")
        return str(order_id)

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        """PATCH an order's status; returns the updated record when the service sends one."""
        data = await self._patch(
            f"/orders/{path_segment(order_id)}",
            {"status": OrderStatus(status).value},
        )
        if isinstance(data, dict) and "order_id" in data:
            try:
                return Order.model_validate(data)
            except PydanticValidationError as exc:
                logger.warning(f"ignoring malformed order record in PATCH response: {exc}")
        return None

    async def fetch_ready_orders(self) -> List[ReadyOrder]:
        data: Any = await self._get("/orders/ready")
        if not isinstance(data, list):
            raise self._malformed("ready-order list")
        try:
            return [ReadyOrder.model_validate(entry) for entry in data]
        except PydanticValidationError as exc:
            raise self._malformed("ready-order entry", exc)
