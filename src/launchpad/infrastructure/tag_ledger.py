"""
launchpad.infrastructure.tag_ledger - Image Tag Ledger
======================================================

Records which image tags belong to a pipeline run so that a build number
is built and published at most once. The ImageBuilder claims the tag right
before ``docker build``; the ImagePublisher claims it again before pushing,
which succeeds only for the run that already holds it. The engine checks
the ledger before the first stage, so a reused build number fails the run
before anything executes.

    ┌────────────────┐  claim(acme/api:42)   ┌──────────────────┐
    │  ImageBuilder  │ ────────────────────→ │    TagLedger     │
    │ ImagePublisher │ ←── PublishError ──── │  acme/api: 41,42 │
    └────────────────┘ (held by another run) └──────────────────┘

Storage Implementations:
    - InMemoryTagLedger: Dict-based, for development/testing and single
      long-lived processes.

Note:
    The ledger does not coordinate concurrent pipelines (none is promised);
    it only guards against one process reusing a build number.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from launchpad.core.exceptions import PublishError
from launchpad.core.models import ImageReference


logger = structlog.get_logger()


class TagClaim(BaseModel):
    """One claimed tag and who claimed it."""

    model_config = ConfigDict(frozen=True)

    image: ImageReference
    run_id: Optional[str] = None
    claimed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TagLedger(ABC):
    """Abstract ledger of image tags taken by pipeline runs."""

    @abstractmethod
    async def claim(self, image: ImageReference, run_id: Optional[str] = None) -> TagClaim:
        """Record ``image`` as taken by ``run_id``.

        Claiming a tag again with the ``run_id`` that holds it returns the
        existing claim.

        Raises:
            PublishError: ``DUPLICATE_TAG`` if another run holds the tag.
        """

    @abstractmethod
    async def is_claimed(self, image: ImageReference) -> bool:
        """Whether ``image``'s tag has already been claimed."""

    @abstractmethod
    async def list_tags(self, repository: str) -> list[str]:
        """Claimed tags of one repository, in claim order."""


class InMemoryTagLedger(TagLedger):
    """Dict-backed TagLedger.

    Example:
        >>> ledger = InMemoryTagLedger()
        >>> await ledger.claim(ImageReference(namespace="acme", name="api", tag="42"))
        >>> await ledger.claim(ImageReference(namespace="acme", name="api", tag="42"))
        Traceback (most recent call last):
        ...
        PublishError: Image tag acme/api:42 is already taken by another run
    """

    def __init__(self) -> None:
        # repository → {tag: claim}, insertion-ordered
        self._claims: dict[str, dict[str, TagClaim]] = {}

    async def claim(self, image: ImageReference, run_id: Optional[str] = None) -> TagClaim:
        tags = self._claims.setdefault(image.repository, {})
        if image.tag in tags:
            previous = tags[image.tag]
            if run_id is not None and previous.run_id == run_id:
                return previous
            logger.warning(
                "tag_already_claimed",
                image=str(image),
                previous_run_id=previous.run_id,
            )
            raise PublishError(
                message=f"Image tag {image} is already taken by another run",
                error_code="DUPLICATE_TAG",
                details={"image": str(image), "previous_run_id": previous.run_id},
            )

        claim = TagClaim(image=image, run_id=run_id)
        tags[image.tag] = claim
        logger.debug("tag_claimed", image=str(image), run_id=run_id)
        return claim

    async def is_claimed(self, image: ImageReference) -> bool:
        return image.tag in self._claims.get(image.repository, {})

    async def list_tags(self, repository: str) -> list[str]:
        return list(self._claims.get(repository, {}))
