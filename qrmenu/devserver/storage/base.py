"""
Abstract store interface for the local order service.

Defines the contract for table credentials and order records.
Only an in-memory implementation ships; the venue's real order service is
an external system.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class OrderStore(ABC):
    """Abstract base class for order service stores."""

    @abstractmethod
    def configure_tables(self, total_tables: int) -> List[Dict[str, Any]]:
        """
        Provision tables 1..total_tables.

        Existing tables keep their token and PIN; tables beyond
        total_tables are removed. Returns the table records.
        """
        ...

    @abstractmethod
    def list_tables(self) -> List[Dict[str, Any]]:
        """List table records ({table_number, token, pin}) by table number."""
        ...

    @abstractmethod
    def table_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Return the table for a QR token, or None."""
        ...

    @abstractmethod
    def table_by_pin(self, pin: str) -> Optional[Dict[str, Any]]:
        """Return the table for a 4-digit PIN, or None."""
        ...

    @abstractmethod
    def add_order(self, order: Dict[str, Any]) -> str:
        """Store a new order and return the assigned order_id."""
        ...

    @abstractmethod
    def get_orders(
        self, status: Optional[str] = None, table_number: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        List orders, newest first.

        Returns all orders when status/table_number are None.
        """
        ...

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Get a single order by order_id. Returns None if not found."""
        ...

    @abstractmethod
    def update_order_status(self, order_id: str, status: str) -> Optional[Dict[str, Any]]:
        """
        Set an order's status (no transition checks here).

        Returns the updated order, or None if not found.
        """
        ...

    @abstractmethod
    def clear(self) -> None:
        """Clear all state (tables and orders)."""
        ...
