"""
Runtime configuration for the qrmenu client.

Defaults come from environment variables so the same code runs against a
local order service in development and the venue's service in production.
A SessionContext can be built with an explicit Settings instance instead.
"""

import os

from pydantic import BaseModel, Field


def _env(name: str, default: str):
    return Field(default_factory=lambda: os.getenv(name, default))


class Settings(BaseModel):
    """Env-driven settings; the environment is read on each construction."""

    # Base of the order service contract, including any path prefix
    api_url: str = _env("QRMENU_API_URL", "http://localhost:8000/api/qr-menu")
    # Applies to every request; a hung request surfaces as a TransportError
    http_timeout: float = _env("QRMENU_HTTP_TIMEOUT", "10")

    poll_interval: float = _env("QRMENU_POLL_INTERVAL", "5")
    summary_poll_interval: float = _env("QRMENU_SUMMARY_POLL_INTERVAL", "30")
    notification_dwell: float = _env("QRMENU_NOTIFICATION_DWELL", "5")

    admin_password: str = _env("QRMENU_ADMIN_PASSWORD", "999999")

    currency_symbol: str = _env("QRMENU_CURRENCY_SYMBOL", "₹")
    # Number of minor-unit digits shown; 0 renders prices as whole amounts
    currency_decimals: int = _env("QRMENU_CURRENCY_DECIMALS", "0")
    timezone: str = _env("QRMENU_TIMEZONE", "Asia/Kolkata")

    # Where table QR codes point (used by the local order service)
    frontend_url: str = _env("QRMENU_FRONTEND_URL", "http://localhost:9111")

    # Query parameter that carries the table token on the landing URL
    credential_param: str = "t"

    model_config = {"validate_default": True}

    @property
    def api_base(self) -> str:
        return self.api_url.rstrip("/")


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
