"""
launchpad.integrations.notifications.mock - In-Memory Notifier
================================================================

Records every notification instead of sending it. Used by tests and dry
runs, and as the default provider so a zero-config pipeline never needs
network access.

Usage:
    >>> notifier = MockNotifier()
    >>> await notifier.send(notification)
    >>> notifier.sent_count
    1
    >>> notifier.set_should_fail(True)    # simulate a Slack outage
"""

from __future__ import annotations

from typing import Optional

import structlog

from launchpad.core.exceptions import NotificationError
from launchpad.integrations.notifications.base import BaseNotifier, Notification


logger = structlog.get_logger()


class MockNotifier(BaseNotifier):
    """Notifier that keeps messages in memory.

    Attributes:
        _sent: Delivered notifications, in order.
        _attempts: Every send() call, including failed ones.
        _should_fail: If True, send() raises NotificationError.
    """

    def __init__(self) -> None:
        self._sent: list[Notification] = []
        self._attempts = 0
        self._should_fail = False
        self._failure_message = "Mock notifier failure"

    @property
    def sent(self) -> list[Notification]:
        return self._sent

    @property
    def sent_count(self) -> int:
        return len(self._sent)

    @property
    def attempts(self) -> int:
        """Number of send() calls, successful or not."""
        return self._attempts

    @property
    def last(self) -> Optional[Notification]:
        return self._sent[-1] if self._sent else None

    def set_should_fail(self, should_fail: bool, message: str = "Mock notifier failure") -> None:
        """Make subsequent send() calls raise NotificationError."""
        self._should_fail = should_fail
        self._failure_message = message

    def clear(self) -> None:
        self._sent.clear()
        self._attempts = 0

    async def send(self, notification: Notification) -> None:
        self._attempts += 1
        if self._should_fail:
            raise NotificationError(message=self._failure_message)

        self._sent.append(notification)
        logger.debug(
            "mock_notification_recorded",
            outcome=notification.outcome.value,
            title=notification.title,
        )
