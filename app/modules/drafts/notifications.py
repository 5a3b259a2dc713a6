"""
Human-readable status messages for draft actions (save, delete, migrate).
"""

import logging
from typing import List, NamedTuple, Protocol

logger = logging.getLogger(__name__)


class Notification(NamedTuple):
    title: str
    description: str
    variant: str = "default"  # "default" or "destructive"


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: str = "default") -> None:
        ...


class LoggingNotifier:
    """Writes notifications to the application log."""

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        if variant == "destructive":
            logger.warning(f"{title}: {description}")
        else:
            logger.info(f"{title}: {description}")


class RecordingNotifier(LoggingNotifier):
    """Keeps every notification so a caller can show or return them."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        super().notify(title, description, variant)
        self.notifications.append(Notification(title, description, variant))

    @property
    def last(self) -> Notification:
        return self.notifications[-1]
