"""
launchpad.core.enums - Type-Safe Enumerations
===============================================

This module defines the enumeration types used throughout Launchpad.
All enums inherit from both `str` and `Enum`, which means:
    - They serialize to strings in JSON/YAML (Pydantic-friendly)
    - They can be compared with plain strings: StageName.BUILD == "build"

Architecture Mapping:

    ┌─────────────────────────────────────────────────────────────────┐
    │  PIPELINE                                                       │
    │    PipelineStatus: the run state machine (PENDING → NOTIFIED)   │
    │    StageName: the five work stages, in execution order         │
    ├─────────────────────────────────────────────────────────────────┤
    │  NOTIFICATION                                                   │
    │    NotificationOutcome: what the single final message reports  │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Pipeline Status Enumeration
# =============================================================================
# The lifecycle of one pipeline run:
#
#   PENDING → TESTING → BUILDING → PUBLISHING → PROVISIONING → CONFIGURING
#                                                                  │
#                                                              SUCCEEDED
#   (any non-terminal state) ────────────────────────────────→ FAILED
#
#   SUCCEEDED | FAILED → NOTIFIED   (terminal)
#
# Transitions are enforced by launchpad.core.state.advance().
# =============================================================================
class PipelineStatus(str, Enum):
    """Lifecycle states of a pipeline run.

    Usage:
        >>> status = PipelineStatus.TESTING
        >>> status == "testing"  # True
    """

    PENDING = "pending"             # Run accepted, no stage started yet
    TESTING = "testing"             # Test suite running against ephemeral DB
    BUILDING = "building"           # Versioned image being built
    PUBLISHING = "publishing"       # Image being tagged and pushed
    PROVISIONING = "provisioning"   # Terraform reconciling infrastructure
    CONFIGURING = "configuring"     # Ansible bringing the host to desired state
    SUCCEEDED = "succeeded"         # Every stage completed
    FAILED = "failed"               # A stage raised; later stages were skipped
    NOTIFIED = "notified"           # Final outcome reported (terminal)


# =============================================================================
# Stage Name Enumeration
# =============================================================================
# Declaration order is the default execution order of the pipeline.
# =============================================================================
class StageName(str, Enum):
    """The discrete work stages of the deployment pipeline."""

    TEST = "test"
    BUILD = "build"
    PUBLISH = "publish"
    PROVISION = "provision"
    CONFIGURE = "configure"


class NotificationOutcome(str, Enum):
    """Outcome carried by the final pipeline notification."""

    SUCCESS = "success"
    FAILURE = "failure"
