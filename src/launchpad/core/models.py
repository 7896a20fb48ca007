"""
launchpad.core.models - Core Data Models
==========================================

The typed records that flow between pipeline stages. Each stage reads the
outputs of the stages before it from a PipelineContext and returns a new
context with its own output added.

Data Flow Through the Pipeline:

    PipelineRequest
         │
         ▼
    TestRunner ──→ TestReport
         │
    ImageBuilder ──→ BuildArtifact (ImageReference)
         │
    ImagePublisher ──→ PublishedImage
         │
    InfrastructureProvisioner ──→ InfrastructureDescriptor (public_ip)
         │
    ConfigurationApplier ──→ ApplyReport

Design Principles:
    1. Immutable: every model is frozen; stages return new contexts
    2. Self-validating: Pydantic enforces constraints at creation
    3. Serializable: every model dumps to JSON for logs and state
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from launchpad.core.exceptions import ProvisioningError


def _generate_id() -> str:
    """Generate a unique identifier using UUID4."""
    return str(uuid4())


def _now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# Image Reference
# =============================================================================
# Format: [<registry>/]<namespace>/<name>:<tag>
# The tag is the build number, so one build number names exactly one image.
# =============================================================================
_IMAGE_REFERENCE = re.compile(
    r"^(?:(?P<registry>[^/]+[.:][^/]*)/)?"
    r"(?P<namespace>[^/:]+)/(?P<name>[^/:]+):(?P<tag>[\w][\w.-]*)$"
)


class ImageReference(BaseModel):
    """Reference to one versioned container image.

    Attributes:
        namespace: Registry namespace (user or organization).
        name: Image repository name.
        tag: Image tag; the pipeline uses the build number.
        registry: Optional registry host ('' means Docker Hub).

    Example:
        >>> ref = ImageReference(namespace="acme", name="api", tag="42")
        >>> str(ref)
        'acme/api:42'
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(min_length=1)
    name: str = Field(min_length=1)
    tag: str = Field(min_length=1)
    registry: str = ""

    @property
    def repository(self) -> str:
        """Everything before the tag."""
        prefix = f"{self.registry}/" if self.registry else ""
        return f"{prefix}{self.namespace}/{self.name}"

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}"

    @classmethod
    def parse(cls, reference: str) -> ImageReference:
        """Parse a reference string back into an ImageReference.

        Raises:
            ValueError: If the string is not ``[registry/]namespace/name:tag``.
        """
        match = _IMAGE_REFERENCE.match(reference)
        if match is None:
            raise ValueError(f"Not an image reference: {reference!r}")
        return cls(
            namespace=match.group("namespace"),
            name=match.group("name"),
            tag=match.group("tag"),
            registry=match.group("registry") or "",
        )


# =============================================================================
# Stage Outputs
# =============================================================================
class CommandResult(BaseModel):
    """Outcome of one external tool invocation.

    Attributes:
        command: The argv that was executed (secrets redacted).
        exit_code: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration_seconds: Wall-clock run time.
    """

    model_config = ConfigDict(frozen=True)

    command: list[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = Field(default=0.0, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class TestReport(BaseModel):
    """Result of the test stage.

    Attributes:
        passed: Whether the suite exited zero.
        exit_code: Exit status of the test command.
        output: Tail of the suite output.
        teardown_completed: Whether the ephemeral containers were removed.
        duration_seconds: Time from first compose call to teardown.
    """

    # Keep pytest from collecting this class as a test case.
    __test__ = False

    model_config = ConfigDict(frozen=True)

    passed: bool
    exit_code: int
    output: str = ""
    teardown_completed: bool = False
    duration_seconds: float = Field(default=0.0, ge=0)


class BuildArtifact(BaseModel):
    """A built, versioned, immutable container image.

    Created by the ImageBuilder and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    image: ImageReference
    environment: str
    build_number: int = Field(ge=1)
    created_at: datetime = Field(default_factory=_now)


class PublishedImage(BaseModel):
    """An artifact that has been pushed to a registry."""

    model_config = ConfigDict(frozen=True)

    image: ImageReference
    registry: str = Field(default="", description="Registry host ('' = Docker Hub)")
    pushed_at: datetime = Field(default_factory=_now)


class InfrastructureDescriptor(BaseModel):
    """Logical resource names mapped to provider-assigned values.

    Built from ``terraform output -json`` after apply. Replaced wholesale
    on re-provisioning.

    Example:
        >>> infra = InfrastructureDescriptor(outputs={"public_ip": "1.2.3.4"})
        >>> infra.address("public_ip")
        '1.2.3.4'
    """

    model_config = ConfigDict(frozen=True)

    outputs: dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)

    def address(self, name: str) -> str:
        """Return one output value.

        Raises:
            ProvisioningError: If the output is absent or empty.
        """
        value = self.outputs.get(name, "")
        if not value:
            raise ProvisioningError(
                message=f"Infrastructure output '{name}' is missing",
                error_code="MISSING_OUTPUT",
                details={"output": name, "available": sorted(self.outputs)},
            )
        return value

    @property
    def public_ip(self) -> str:
        return self.address("public_ip")


class ApplyReport(BaseModel):
    """Result of applying configuration to the target host."""

    model_config = ConfigDict(frozen=True)

    target_host: str
    image: ImageReference
    exit_code: int = 0
    output: str = ""


# =============================================================================
# Pipeline Request & Context
# =============================================================================
class PipelineRequest(BaseModel):
    """What to run: which build, for which environment.

    Attributes:
        build_number: Monotonically increasing CI build number. Becomes the
            image tag, so it must be unique per run.
        environment: Target environment name (must exist in the store).
        job_name: Pipeline job name, shown in the notification.
        source_dir: Directory holding the application source.
    """

    model_config = ConfigDict(frozen=True)

    build_number: int = Field(ge=1)
    environment: str = Field(min_length=1)
    job_name: str = Field(default="backend-deploy", min_length=1)
    source_dir: str = "."


class PipelineContext(BaseModel):
    """Accumulated stage outputs for one run.

    Starts with only the request; each stage returns a copy with its own
    field filled in. A stage that needs an earlier output and finds it
    missing fails with ConfigurationError (see BaseStage.requires).
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=_generate_id)
    request: PipelineRequest
    test_report: Optional[TestReport] = None
    artifact: Optional[BuildArtifact] = None
    published: Optional[PublishedImage] = None
    infrastructure: Optional[InfrastructureDescriptor] = None
    apply_report: Optional[ApplyReport] = None
