"""
Cart model: menu item id -> quantity.

Pure in-memory state, no I/O. Invariants:
  - at most one line per item id
  - every line has quantity >= 1 (a quantity reaching 0 removes the line)
  - totals are exact integer sums
"""

import logging
from typing import Dict, Iterable, Tuple

from qrmenu.errors import ValidationError
from qrmenu.models import CartLine, ItemId, MenuItem

logger = logging.getLogger(__name__)


class CartModel:
    """Cart lines keyed by item id, in the order items were first added."""

    def __init__(self):
        self._lines: Dict[ItemId, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, item_id: ItemId) -> bool:
        return item_id in self._lines

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def add_item(self, item: MenuItem) -> CartLine:
        """Add one unit of `item`, creating its line on first add."""
        line = self._lines.get(item.id)
        if line is None:
            line = CartLine(item=item, quantity=1)
        else:
            line = line.model_copy(update={"quantity": line.quantity + 1})
        self._lines[item.id] = line
        return line

    def set_quantity(self, item_id: ItemId, qty: int) -> None:
        """
        Set the quantity of an existing line.

        qty == 0 removes the line, qty > 0 sets it exactly. Unknown ids are
        ignored. Negative or non-integer quantities raise ValidationError and
        leave the cart untouched.
        """
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise ValidationError(f"quantity must be an integer, got {qty!r}")
        if qty < 0:
            raise ValidationError(f"quantity must not be negative, got {qty}")

        if qty == 0:
            self._lines.pop(item_id, None)
            return

        line = self._lines.get(item_id)
        if line is None:
            logger.debug(f"set_quantity ignored for item {item_id!r} not in cart")
            return
        self._lines[item_id] = line.model_copy(update={"quantity": qty})

    def remove_item(self, item_id: ItemId) -> None:
        self._lines.pop(item_id, None)

    def quantity_of(self, item_id: ItemId) -> int:
        line = self._lines.get(item_id)
        return line.quantity if line else 0

    def total_price(self) -> int:
        return sum(line.subtotal for line in self._lines.values())

    def total_item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def snapshot(self) -> Tuple[CartLine, ...]:
        """Immutable copy of the current lines (lines are frozen models)."""
        return self.lines

    def remove_ordered(self, ordered: Iterable[CartLine]) -> None:
        """
        Take the quantities of an acknowledged order out of the cart.

        Units added after the snapshot was taken stay in the cart.
        """
        for ordered_line in ordered:
            line = self._lines.get(ordered_line.item_id)
            if line is None:
                continue
            remaining = line.quantity - ordered_line.quantity
            if remaining > 0:
                self._lines[line.item_id] = line.model_copy(update={"quantity": remaining})
            else:
                del self._lines[line.item_id]

    def clear(self) -> None:
        self._lines.clear()
