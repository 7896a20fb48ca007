"""
launchpad.integrations.notifications.base - Notifier Interface
================================================================

The contract every notifier implements, and the Notification message the
pipeline sends exactly once at the end of every run.

    ┌────────────────┐     send(notification)    ┌──────────────┐
    │ PipelineEngine │ ────────────────────────→ │ BaseNotifier │
    └────────────────┘                           └──────┬───────┘
                                                        │
                                              ┌─────────┴────────┐
                                              │                  │
                                        ┌─────▼──────┐    ┌──────▼──────┐
                                        │   Slack    │    │    Mock     │
                                        │ (aiohttp)  │    │ (in-memory) │
                                        └────────────┘    └─────────────┘

Delivery is best-effort: a notifier raises NotificationError when the
message could not be delivered, and the engine logs it and moves on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict

from launchpad.core.enums import NotificationOutcome


# Slack attachment colors.
SUCCESS_COLOR = "good"
FAILURE_COLOR = "danger"


class Notification(BaseModel):
    """End-of-run message.

    Attributes:
        outcome: SUCCESS or FAILURE.
        job_name: Pipeline job name.
        build_number: Build number of the run.
        environment: Target environment.
        run_id: Pipeline run id.
        failed_stage: Stage that failed (failure only).
        error_message: Human-readable cause (failure only).
        image: Published image reference, if the run got that far.

    Example:
        >>> Notification(
        ...     outcome=NotificationOutcome.SUCCESS,
        ...     job_name="backend-deploy",
        ...     build_number=42,
        ...     environment="production",
        ... ).title
        'SUCCESS: Job backend-deploy [42]'
    """

    model_config = ConfigDict(frozen=True)

    outcome: NotificationOutcome
    job_name: str
    build_number: int
    environment: str
    run_id: Optional[str] = None
    failed_stage: Optional[str] = None
    error_message: Optional[str] = None
    image: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == NotificationOutcome.SUCCESS

    @property
    def color(self) -> str:
        return SUCCESS_COLOR if self.succeeded else FAILURE_COLOR

    @property
    def title(self) -> str:
        return f"{self.outcome.value.upper()}: Job {self.job_name} [{self.build_number}]"

    @property
    def text(self) -> str:
        if self.succeeded:
            deployed = f" ({self.image})" if self.image else ""
            return f"Build {self.build_number} deployed to {self.environment}{deployed}."

        stage = self.failed_stage or "pipeline"
        reason = f": {self.error_message}" if self.error_message else ""
        return (
            f"Build {self.build_number} for {self.environment} "
            f"failed at stage '{stage}'{reason}"
        )


class BaseNotifier(ABC):
    """Abstract notifier."""

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver one notification.

        Raises:
            NotificationError: If the message could not be delivered.
        """

    async def close(self) -> None:
        """Release any held resources. Default: nothing to release."""
