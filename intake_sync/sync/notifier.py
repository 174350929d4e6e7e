"""User-visible notifications for run-level events."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notification:
    level: str  # info / success / warning / error
    message: str


class Notifier:
    """Collects notifications for the caller and mirrors them to the log."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, level: str, message: str) -> None:
        self.notifications.append(Notification(level=level, message=message))
        logger.log(_LEVELS.get(level, logging.INFO), "[%s] %s", level, message)

    def info(self, message: str) -> None:
        self.notify("info", message)

    def success(self, message: str) -> None:
        self.notify("success", message)

    def warning(self, message: str) -> None:
        self.notify("warning", message)

    def error(self, message: str) -> None:
        self.notify("error", message)
