"""
Error taxonomy for the ordering core.

Every operation boundary (session binding, checkout, feed refresh, status
requests, scanning) catches QrMenuError subclasses and turns them into a
notification plus a local error flag. Lower layers (service clients, the
lifecycle client, the cart) raise them.
"""

from typing import Optional


class QrMenuError(Exception):
    """Base class for all errors raised by qrmenu."""

    def __init__(self, message: str = "", *, user_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        # Text safe to show to a diner or staff member
        self.user_message = user_message or message


class ValidationError(QrMenuError):
    """Malformed local input. Never sent over the network."""


class StateError(QrMenuError):
    """An illegal order status transition was requested."""


class TransportError(QrMenuError):
    """
    Network failure, non-2xx response or malformed response body.

    `status_code` is None when no HTTP response was received at all
    (connection refused, DNS failure, timeout).
    """

    def __init__(
        self,
        message: str = "",
        *,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message, user_message=user_message)
        self.status_code = status_code

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500

    @property
    def is_network_error(self) -> bool:
        return self.status_code is None


class NotFoundError(TransportError):
    """A credential or record did not resolve (HTTP 404)."""

    def __init__(self, message: str = "", *, user_message: Optional[str] = None):
        super().__init__(message, status_code=404, user_message=user_message)


__all__ = [
    "QrMenuError",
    "ValidationError",
    "StateError",
    "TransportError",
    "NotFoundError",
]
