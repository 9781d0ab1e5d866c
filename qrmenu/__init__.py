"""qrmenu: session, cart and order lifecycle core for QR table ordering."""

from .cart import CartModel
from .context import SessionContext
from .errors import NotFoundError, QrMenuError, StateError, TransportError, ValidationError
from .models import MenuItem, Order, OrderStatus, TableIdentity
from .notifications import NotificationCenter

__all__ = [
    "CartModel",
    "SessionContext",
    "NotificationCenter",
    "MenuItem",
    "Order",
    "OrderStatus",
    "TableIdentity",
    "QrMenuError",
    "ValidationError",
    "TransportError",
    "NotFoundError",
    "StateError",
]
