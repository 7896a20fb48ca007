"""
launchpad.integrations.notifications.factory - Notifier Factory
=================================================================

Maps ``notification.provider`` to a concrete notifier.

Usage:
    >>> notifier = create_notifier(NotificationConfig(provider="mock"))
    >>> type(notifier)  # MockNotifier
"""

from __future__ import annotations

from launchpad.core.config import NotificationConfig
from launchpad.core.exceptions import ConfigurationError
from launchpad.integrations.notifications.base import BaseNotifier


def create_notifier(config: NotificationConfig) -> BaseNotifier:
    """Create the notifier named by ``config.provider``.

    Providers:
        - "mock"  → MockNotifier
        - "slack" → SlackNotifier (requires ``webhook_url``)

    Raises:
        ConfigurationError: ``UNKNOWN_PROVIDER`` for an unrecognized name,
            ``MISSING_SETTING`` for slack without a webhook URL.
    """
    provider_name = config.provider.lower()

    if provider_name == "mock":
        from launchpad.integrations.notifications.mock import MockNotifier
        return MockNotifier()

    if provider_name == "slack":
        if not config.webhook_url:
            raise ConfigurationError(
                message="Slack notifier requires notification.webhook_url",
                error_code="MISSING_SETTING",
                details={"key": "notification.webhook_url"},
            )
        from launchpad.integrations.notifications.slack import SlackNotifier
        return SlackNotifier(config)

    raise ConfigurationError(
        message=f"Unknown notification provider: '{provider_name}'. Available providers: 'mock', 'slack'.",
        error_code="UNKNOWN_PROVIDER",
        details={"provider": provider_name},
    )
