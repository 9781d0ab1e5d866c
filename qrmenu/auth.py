"""Staff access to the dashboard: a single shared secret, per session."""

import hmac
import logging

from qrmenu.notifications import NotificationCenter

logger = logging.getLogger(__name__)

MSG_INVALID_PASSWORD = "Invalid password. Please try again."


class AdminGate:
    """Holds the authenticated flag for one SessionContext (never global)."""

    def __init__(self, secret: str, notifier: NotificationCenter):
        self._secret = secret
        self._notifier = notifier
        self.is_authenticated = False
        self.error = ""

    def login(self, password: str) -> bool:
        self.error = ""
        if password and hmac.compare_digest(password.encode("utf-8"), self._secret.encode("utf-8")):
            self.is_authenticated = True
            logger.info("dashboard login succeeded")
            return True
        self.is_authenticated = False
        self.error = MSG_INVALID_PASSWORD
        logger.warning("dashboard login failed")
        self._notifier.error(MSG_INVALID_PASSWORD)
        return False

    def logout(self) -> None:
        self.is_authenticated = False
