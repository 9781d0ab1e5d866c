from zoneinfo import ZoneInfo

import pytest

from qrmenu.config import Settings
from qrmenu.utils.formatters import format_order_time, format_price, short_order_id


@pytest.mark.parametrize(
    "amount, expected",
    [
        (0, "₹0"),
        (149, "₹149"),
        (1499, "₹1,499"),
        (100000, "₹1,00,000"),
        (1234567, "₹12,34,567"),
        (-50, "-₹50"),
    ],
)
def test_whole_amounts(amount, expected):
    assert format_price(amount, symbol="₹", decimals=0) == expected


def test_minor_units():
    assert format_price(149900, symbol="₹", decimals=2) == "₹1,499.00"
    assert format_price(5, symbol="₹", decimals=2) == "₹0.05"


def test_symbol_from_environment(monkeypatch):
    monkeypatch.setenv("QRMENU_CURRENCY_SYMBOL", "$")
    monkeypatch.setenv("QRMENU_CURRENCY_DECIMALS", "0")
    assert format_price(999) == "$999"


def test_short_order_id():
    assert short_order_id("0f8fad5b-d9cb-469f-a165-70867728950e") == "0f8fad5b"
    assert short_order_id(42) == "42"


def test_order_time_in_venue_timezone():
    kolkata = ZoneInfo("Asia/Kolkata")
    assert format_order_time("2024-05-01T10:00:00Z", kolkata) == "15:30"
    assert format_order_time("2024-05-01T10:00:00.123456+00:00", kolkata) == "15:30"
    assert format_order_time(None) == ""
    assert format_order_time("yesterday") == ""


def test_order_time_follows_timezone_changes(monkeypatch):
    monkeypatch.setenv("QRMENU_TIMEZONE", "UTC")
    assert format_order_time("2024-05-01T10:00:00Z") == "10:00"

    monkeypatch.setenv("QRMENU_TIMEZONE", "Asia/Kolkata")
    assert format_order_time("2024-05-01T10:00:00Z") == "15:30"


def test_order_time_with_a_zone_name_from_settings():
    settings = Settings(timezone="Europe/Athens")
    assert format_order_time("2024-05-01T10:00:00Z", settings.timezone) == "13:00"
