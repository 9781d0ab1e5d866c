"""Display formatting for prices and order references."""

from datetime import tzinfo
from typing import Optional, Union

from qrmenu.config import get_settings
from qrmenu.utils.time_utils import parse_timestamp, to_venue


def _group_indian(digits: str) -> str:
    """
    Group an integer digit string the en-IN way.

    The last three digits form one group, the rest are grouped in pairs:
      "1499"    -> "1,499"
      "1234567" -> "12,34,567"
    """
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_price(amount: int, symbol: Optional[str] = None, decimals: Optional[int] = None) -> str:
    """
    Render an integer amount as a localized currency string.

    Amounts are integers in the catalog's currency unit. With `decimals`
    greater than zero the last `decimals` digits are shown as the fractional
    part (minor units), otherwise the amount is shown as a whole number.
    Integer arithmetic only.

    Example:
      format_price(1499)              -> "₹1,499"
      format_price(149900, decimals=2) -> "₹1,499.00"
      format_price(-50)               -> "-₹50"
    """
    settings = get_settings()
    if symbol is None:
        symbol = settings.currency_symbol
    if decimals is None:
        decimals = settings.currency_decimals

    sign = "-" if amount < 0 else ""
    amount = abs(int(amount))

    if decimals > 0:
        whole, fraction = divmod(amount, 10 ** decimals)
        return f"{sign}{symbol}{_group_indian(str(whole))}.{fraction:0{decimals}d}"
    return f"{sign}{symbol}{_group_indian(str(amount))}"


def short_order_id(order_id: str) -> str:
    """First eight characters of an order id, as shown on order cards."""
    return str(order_id)[:8]


def format_order_time(timestamp: Optional[str], tz: Optional[Union[tzinfo, str]] = None) -> str:
    """Venue-local "HH:MM" for an order timestamp; empty when it is missing or unparseable."""
    try:
        dt = parse_timestamp(timestamp)
    except ValueError:
        return ""
    if dt is None:
        return ""
    return to_venue(dt, tz).strftime("%H:%M")
