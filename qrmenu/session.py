"""
Binding a session to a table.

A session starts UNBOUND. A credential (QR token or 4-digit PIN) moves it to
LOADING while the order service validates it, then to BOUND with the
resolved TableIdentity, or to ERROR with a user-facing message.

The landing URL may carry the token as a query parameter. It is removed from
the page location synchronously, before validation is awaited, so a reload
or a shared link never re-sends it.
"""

import logging
import re
from enum import Enum
from typing import Callable, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from qrmenu.api.table_service import TableServiceClient
from qrmenu.errors import NotFoundError, QrMenuError, TransportError, ValidationError
from qrmenu.models import TableIdentity, TableNumber
from qrmenu.notifications import NotificationCenter

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"[0-9]{4}")

MSG_NO_CREDENTIAL = "Please scan the QR code to access the menu"
MSG_INVALID_TOKEN = "Invalid QR code. Please scan a valid QR code to access the menu."
MSG_TOKEN_OK = "QR code validated successfully!"
MSG_PIN_FORMAT = "Please enter a 4-digit PIN"
MSG_PIN_NOT_FOUND = "Invalid PIN. Please check the 4-digit PIN below the QR code on your table and try again."
MSG_PIN_OK = "Table PIN validated successfully! Welcome to the menu!"
MSG_SERVER_ERROR = "Server error. Please try again in a moment."
MSG_NETWORK_ERROR = "Network error. Please check your connection and try again."
MSG_UNKNOWN_ERROR = "Unable to validate PIN. Please try again."


class SessionState(str, Enum):
    UNBOUND = "unbound"
    LOADING = "loading"
    BOUND = "bound"
    ERROR = "error"


class PageLocation:
    """
    The current page URL, as seen by the session.

    `on_replace` is called with the new URL whenever the location is
    rewritten (a browser bridge would forward it to history.replaceState).
    """

    def __init__(self, url: str = "/", on_replace: Optional[Callable[[str], None]] = None):
        self.url = url
        self._on_replace = on_replace
        self.history: List[str] = []

    def query_param(self, name: str) -> Optional[str]:
        for key, value in parse_qsl(urlsplit(self.url).query, keep_blank_values=True):
            if key == name:
                return value
        return None

    def take_param(self, name: str) -> Optional[str]:
        """Return the value of `name` and strip it from the location immediately."""
        parts = urlsplit(self.url)
        pairs = parse_qsl(parts.query, keep_blank_values=True)
        value = next((v for k, v in pairs if k == name), None)
        if any(k == name for k, _ in pairs):
            remaining = urlencode([(k, v) for k, v in pairs if k != name])
            self.replace(urlunsplit((parts.scheme, parts.netloc, parts.path, remaining, parts.fragment)))
        return value

    def replace(self, url: str) -> None:
        self.history.append(self.url)
        self.url = url
        if self._on_replace is not None:
            self._on_replace(url)


def extract_token(payload: str, param: str = "t") -> str:
    """
    Get the table token out of a scanned QR payload.

    The payload is untrusted text. An absolute URL carrying a `param` query
    parameter yields that parameter; anything else is taken as the token.
    """
    text = (payload or "").strip()
    if not text:
        raise ValidationError("empty QR payload", user_message=MSG_INVALID_TOKEN)
    try:
        parts = urlsplit(text)
    except ValueError:
        return text
    if parts.scheme and parts.netloc:
        for key, value in parse_qsl(parts.query):
            if key == param and value:
                return value
    return text


def validate_pin_format(pin: str) -> str:
    pin = (pin or "").strip()
    if not PIN_PATTERN.fullmatch(pin):
        raise ValidationError(f"malformed PIN {pin!r}", user_message=MSG_PIN_FORMAT)
    return pin


class TableSessionManager:
    """Owns the session -> table binding for one SessionContext."""

    def __init__(
        self,
        tables: TableServiceClient,
        notifier: NotificationCenter,
        location: Optional[PageLocation] = None,
        credential_param: str = "t",
    ):
        self._tables = tables
        self._notifier = notifier
        self.location = location or PageLocation()
        self.credential_param = credential_param

        self.state = SessionState.UNBOUND
        self.table: Optional[TableIdentity] = None
        self.error: Optional[str] = None
        # Only the latest started resolution may change state
        self._attempt = 0

    @property
    def table_number(self) -> Optional[TableNumber]:
        return self.table.table_number if self.table else None

    @property
    def is_bound(self) -> bool:
        return self.table is not None

    @property
    def is_loading(self) -> bool:
        return self.state == SessionState.LOADING

    def _scrub_location(self) -> Optional[str]:
        return self.location.take_param(self.credential_param)

    async def bootstrap(self) -> bool:
        """
        Ambient discovery: bind from a token on the landing URL.

        The token is stripped from the location before anything is awaited.
        Once a table is bound, ambient tokens are scrubbed but never used.
        """
        token = self._scrub_location()
        if self.is_bound:
            if token:
                logger.info("ignoring ambient table token, session already bound")
            return True
        if not token:
            self.error = MSG_NO_CREDENTIAL
            return False
        return await self._resolve_token(token, announce=False)

    async def present_token(self, token: str) -> bool:
        self._scrub_location()
        token = (token or "").strip()
        if not token:
            return self._reject(ValidationError("empty token", user_message=MSG_INVALID_TOKEN))
        return await self._resolve_token(token, announce=True)

    async def present_scanned(self, payload: str) -> bool:
        """Bind from the decoded text of a scanned QR code."""
        self._scrub_location()
        try:
            token = extract_token(payload, self.credential_param)
        except ValidationError as exc:
            return self._reject(exc)
        return await self._resolve_token(token, announce=True)

    async def present_pin(self, pin: str) -> bool:
        self._scrub_location()
        try:
            pin = validate_pin_format(pin)
        except ValidationError as exc:
            # Rejected locally, no request is made
            return self._reject(exc)

        attempt = self._begin()
        try:
            table_number = await self._tables.validate_pin(pin)
        except QrMenuError as exc:
            return self._fail(attempt, exc, self._pin_error_message(exc))
        return self._bind(attempt, TableIdentity(table_number=table_number, credential=pin, method="pin"), MSG_PIN_OK)

    async def _resolve_token(self, token: str, announce: bool) -> bool:
        attempt = self._begin()
        try:
            table_number = await self._tables.validate_token(token)
        except QrMenuError as exc:
            return self._fail(attempt, exc, self._token_error_message(exc))
        identity = TableIdentity(table_number=table_number, credential=token, method="token")
        return self._bind(attempt, identity, MSG_TOKEN_OK if announce else None)

    def _begin(self) -> int:
        self._attempt += 1
        self.state = SessionState.LOADING
        self.error = None
        return self._attempt

    def _bind(self, attempt: int, identity: TableIdentity, message: Optional[str]) -> bool:
        if attempt != self._attempt:
            logger.info(f"discarding superseded table resolution for table {identity.table_number}")
            return False
        self.table = identity
        self.state = SessionState.BOUND
        self.error = None
        logger.info(f"session bound to table {identity.table_number} via {identity.method}")
        if message:
            self._notifier.success(message)
        return True

    def _fail(self, attempt: int, exc: QrMenuError, message: str) -> bool:
        if attempt != self._attempt:
            logger.info(f"discarding superseded table resolution failure: {exc}")
            return False
        logger.warning(f"table validation failed: {exc}")
        return self._reject_with(message)

    def _reject(self, exc: ValidationError) -> bool:
        logger.info(f"credential rejected locally: {exc}")
        return self._reject_with(exc.user_message)

    def _reject_with(self, message: str) -> bool:
        # A previously bound table stays bound; only its error text changes
        self.state = SessionState.BOUND if self.is_bound else SessionState.ERROR
        self.error = message
        self._notifier.error(message)
        return False

    @staticmethod
    def _token_error_message(exc: QrMenuError) -> str:
        if isinstance(exc, TransportError) and (exc.is_server_error or exc.is_network_error):
            return MSG_SERVER_ERROR if exc.is_server_error else MSG_NETWORK_ERROR
        return MSG_INVALID_TOKEN

    @staticmethod
    def _pin_error_message(exc: QrMenuError) -> str:
        if isinstance(exc, NotFoundError):
            return MSG_PIN_NOT_FOUND
        if isinstance(exc, TransportError):
            if exc.is_server_error:
                return MSG_SERVER_ERROR
            if exc.is_network_error:
                return MSG_NETWORK_ERROR
        return MSG_UNKNOWN_ERROR
