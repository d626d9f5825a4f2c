"""
client/notifications.py
-----------------------
User-visible success/failure messages ("toasts"). Front-ends plug in
their own Notifier; the default writes them to the structured log.
"""

from typing import Protocol

from welo.core.logging import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    def success(self, message: str) -> None:
        logger.info("Notification", kind="success", message=message)

    def error(self, message: str) -> None:
        logger.warning("Notification", kind="error", message=message)
