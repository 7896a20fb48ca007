"""
launchpad.integrations.notifications.slack - Slack Webhook Notifier
=====================================================================

Posts the end-of-run message to a Slack incoming webhook as a single
colored attachment:

    {
        "channel": "#deployments",
        "username": "launchpad",
        "attachments": [{
            "color": "good",
            "title": "SUCCESS: Job backend-deploy [42]",
            "text": "Build 42 deployed to production (acme/backend:42).",
            "fields": [...]
        }]
    }

One POST per notification, no retry. Anything but HTTP 200 raises
NotificationError.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import structlog

from launchpad.core.config import NotificationConfig
from launchpad.core.exceptions import NotificationError
from launchpad.integrations.notifications.base import BaseNotifier, Notification


logger = structlog.get_logger()


class SlackNotifier(BaseNotifier):
    """Notifier backed by a Slack incoming webhook."""

    def __init__(self, config: NotificationConfig) -> None:
        self._config = config
        self._logger = logger.bind(component="slack_notifier", channel=config.channel)

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        """Render ``notification`` as a webhook payload."""
        fields = [
            {"title": "Job", "value": notification.job_name, "short": True},
            {"title": "Build", "value": str(notification.build_number), "short": True},
            {"title": "Environment", "value": notification.environment, "short": True},
        ]
        if notification.image:
            fields.append({"title": "Image", "value": notification.image, "short": True})
        if notification.failed_stage:
            fields.append({"title": "Failed stage", "value": notification.failed_stage, "short": True})

        return {
            "channel": self._config.channel,
            "username": self._config.username,
            "attachments": [
                {
                    "color": notification.color,
                    "title": notification.title,
                    "text": notification.text,
                    "fields": fields,
                }
            ],
        }

    async def send(self, notification: Notification) -> None:
        payload = self.build_payload(notification)
        timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self._config.webhook_url, json=payload) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise NotificationError(
                            message=f"Slack webhook answered HTTP {response.status}",
                            details={"status": response.status, "response": body[:500]},
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationError(
                message=f"Could not reach Slack webhook: {e}",
                details={"exception": type(e).__name__},
            ) from e

        self._logger.info(
            "slack_notification_sent",
            outcome=notification.outcome.value,
            build_number=notification.build_number,
        )
