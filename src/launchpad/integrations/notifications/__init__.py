"""
launchpad.integrations.notifications - End-of-Run Notifiers
=============================================================

Available Notifiers:
    - BaseNotifier:  Abstract contract (send one Notification)
    - SlackNotifier: Slack incoming webhook (aiohttp)
    - MockNotifier:  In-memory recorder (tests, dry runs)

Usage:
    >>> from launchpad.integrations.notifications import create_notifier
    >>> notifier = create_notifier(config.notification)
"""

from launchpad.integrations.notifications.base import (
    FAILURE_COLOR,
    SUCCESS_COLOR,
    BaseNotifier,
    Notification,
)
from launchpad.integrations.notifications.factory import create_notifier
from launchpad.integrations.notifications.mock import MockNotifier
from launchpad.integrations.notifications.slack import SlackNotifier

__all__ = [
    "BaseNotifier",
    "Notification",
    "SlackNotifier",
    "MockNotifier",
    "create_notifier",
    "SUCCESS_COLOR",
    "FAILURE_COLOR",
]
