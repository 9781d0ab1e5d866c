"""
Domain and wire models for the ordering core.

Shapes follow the order service contract (snake_case JSON), except the
analytics summary which the service returns in camelCase.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from qrmenu.errors import StateError

ItemId = Union[int, str]
TableNumber = Union[int, str]


class OrderStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    DELIVERED = "delivered"


# pending -> ready -> delivered; delivered is terminal
NEXT_STATUS: Dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.DELIVERED,
}

INITIAL_STATUS = OrderStatus.PENDING


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """Return the only legal successor of `current`, or None if terminal."""
    return NEXT_STATUS.get(OrderStatus(current))


def check_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise StateError unless `target` immediately follows `current`."""
    current = OrderStatus(current)
    target = OrderStatus(target)
    if next_status(current) != target:
        raise StateError(
            f"illegal status transition {current.value} -> {target.value}",
            user_message=f"This order is {current.value} and cannot be marked {target.value}.",
        )


class MenuItem(BaseModel):
    """A catalog entry. Price is an integer amount in the catalog currency unit."""

    model_config = ConfigDict(frozen=True)

    id: ItemId
    name: str
    description: str = ""
    price: int = Field(ge=0)
    category: str = ""
    image: str = ""


class CartLine(BaseModel):
    """One cart entry: a menu item and a positive quantity."""

    model_config = ConfigDict(frozen=True)

    item: MenuItem
    quantity: int = Field(ge=1)

    @property
    def item_id(self) -> ItemId:
        return self.item.id

    @property
    def subtotal(self) -> int:
        return self.item.price * self.quantity


class TableIdentity(BaseModel):
    """The table a session is bound to, and the credential that resolved it."""

    model_config = ConfigDict(frozen=True)

    table_number: TableNumber
    credential: str
    method: str = "token"  # token | pin


class OrderItem(BaseModel):
    """An item as captured in an order snapshot (decoupled from the catalog)."""

    model_config = ConfigDict(frozen=True)

    id: ItemId
    name: str
    description: str = ""
    price: int = Field(ge=0)
    quantity: int = Field(ge=1)
    category: str = ""
    image: str = ""

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "OrderItem":
        item = line.item
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=item.price,
            quantity=line.quantity,
            category=item.category,
            image=item.image,
        )

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


def snapshot_total(items: Sequence[OrderItem]) -> int:
    return sum(item.subtotal for item in items)


class NewOrder(BaseModel):
    """
    Body of POST /orders.

    The total must equal the sum of the line subtotals; this is checked here,
    at construction, and never re-derived afterwards.
    """

    model_config = ConfigDict(frozen=True)

    table_number: TableNumber
    items: List[OrderItem] = Field(min_length=1)
    total: int
    timestamp: str
    status: OrderStatus = INITIAL_STATUS

    @field_validator("status")
    @classmethod
    def _must_start_pending(cls, value: OrderStatus) -> OrderStatus:
        if value != INITIAL_STATUS:
            raise ValueError("new orders must start as pending")
        return value

    @model_validator(mode="after")
    def _total_matches_items(self) -> "NewOrder":
        expected = snapshot_total(self.items)
        if self.total != expected:
            raise ValueError(f"total {self.total} does not match item sum {expected}")
        return self


class Order(BaseModel):
    """An order record as returned by the order service."""

    model_config = ConfigDict(extra="ignore")

    order_id: str
    table_number: TableNumber
    items: List[OrderItem] = Field(default_factory=list)
    total: int = 0
    timestamp: Optional[str] = None
    status: OrderStatus = INITIAL_STATUS

    @field_validator("order_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)


class ReadyOrder(BaseModel):
    """Entry of GET /orders/ready."""

    model_config = ConfigDict(extra="ignore")

    table_number: TableNumber
    order_id: str


class OrderStats(BaseModel):
    """Dashboard statistics over a set of orders."""

    total: int = 0
    pending: int = 0
    ready: int = 0
    delivered: int = 0
    revenue: int = 0  # sum of delivered order totals

    @classmethod
    def from_orders(cls, orders: Sequence[Order]) -> "OrderStats":
        counts = {status: 0 for status in OrderStatus}
        revenue = 0
        for order in orders:
            counts[order.status] += 1
            if order.status == OrderStatus.DELIVERED:
                revenue += order.total or 0
        return cls(
            total=len(orders),
            pending=counts[OrderStatus.PENDING],
            ready=counts[OrderStatus.READY],
            delivered=counts[OrderStatus.DELIVERED],
            revenue=revenue,
        )


class TableInfo(BaseModel):
    """Admin view of a provisioned table."""

    model_config = ConfigDict(extra="ignore")

    table_number: TableNumber
    token: Optional[str] = None
    pin: Optional[str] = None
    url: Optional[str] = None


class RobotLogsSummary(BaseModel):
    """Analytics summary for the delivery dashboard (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    orders_per_hour: float = Field(0, alias="ordersPerHour")
    trips_per_day: float = Field(0, alias="tripsPerDay")
    robot_utilization: float = Field(0, alias="robotUtilization")
    success_rate: float = Field(0, alias="successRate")
    distance_covered: float = Field(0, alias="distanceCovered")
    avg_robot_speed: float = Field(0, alias="avgRobotSpeed")
    peak_busy_hour: int = Field(0, alias="peakBusyHour")
    hourly_orders: List[dict] = Field(default_factory=list, alias="hourlyOrders")
    daily_trips: List[dict] = Field(default_factory=list, alias="dailyTrips")
    error_logs: List[dict] = Field(default_factory=list, alias="errorLogs")

    @field_validator("*", mode="before")
    @classmethod
    def _null_is_default(cls, value, info):
        # The service sends null for metrics it has no data for yet
        if value is None:
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return value


class Severity(str, Enum):
    ERROR = "error"
    SUCCESS = "success"
    INFO = "info"


class NotificationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    severity: Severity = Severity.INFO
