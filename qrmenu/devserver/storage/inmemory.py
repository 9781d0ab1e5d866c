"""
In-memory store for the local order service.

Orders live in a dict keyed by order_id; tables in a dict keyed by table
number with token/PIN indexes. State is lost on restart.
"""

import secrets
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .base import OrderStore


class InMemoryOrderStore(OrderStore):
    """In-memory store using dictionaries."""

    def __init__(self):
        self._tables: Dict[int, Dict[str, Any]] = {}
        self._orders: Dict[str, Dict[str, Any]] = {}

    def _new_pin(self) -> str:
        used = {t["pin"] for t in self._tables.values()}
        while True:
            pin = f"{secrets.randbelow(10000):04d}"
            if pin not in used:
                return pin

    def configure_tables(self, total_tables: int) -> List[Dict[str, Any]]:
        for number in list(self._tables):
            if number > total_tables:
                del self._tables[number]
        for number in range(1, total_tables + 1):
            if number not in self._tables:
                self._tables[number] = {
                    "table_number": number,
                    "token": secrets.token_urlsafe(16),
                    "pin": self._new_pin(),
                }
        return self.list_tables()

    def list_tables(self) -> List[Dict[str, Any]]:
        return [dict(self._tables[n]) for n in sorted(self._tables)]

    def table_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        for table in self._tables.values():
            if secrets.compare_digest(table["token"], token):
                return dict(table)
        return None

    def table_by_pin(self, pin: str) -> Optional[Dict[str, Any]]:
        for table in self._tables.values():
            if table["pin"] == pin:
                return dict(table)
        return None

    def add_order(self, order: Dict[str, Any]) -> str:
        order_id = str(uuid4())
        self._orders[order_id] = {**order, "order_id": order_id}
        return order_id

    def get_orders(
        self, status: Optional[str] = None, table_number: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        orders = list(self._orders.values())
        if status is not None:
            orders = [o for o in orders if o.get("status") == status]
        if table_number is not None:
            orders = [o for o in orders if str(o.get("table_number")) == str(table_number)]
        orders.sort(key=lambda o: o.get("timestamp") or "", reverse=True)
        return [dict(o) for o in orders]

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        order = self._orders.get(order_id)
        return dict(order) if order else None

    def update_order_status(self, order_id: str, status: str) -> Optional[Dict[str, Any]]:
        order = self._orders.get(order_id)
        if order is None:
            return None
        order["status"] = status
        return dict(order)

    def clear(self) -> None:
        self._tables.clear()
        self._orders.clear()
