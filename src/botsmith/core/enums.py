"""
botsmith.core.enums - Type-Safe Enumerations
==============================================

This module defines all enumeration types used throughout botsmith.

All enums inherit from both `str` and `Enum`, which means:
    - They serialize to strings in JSON/YAML (Pydantic-friendly)
    - They can be compared with plain strings: ArtifactStatus.BUILT == "built"
    - They have human-readable representations

Architecture Mapping:

    ┌─────────────────────────────────────────────────────────────────┐
    │  ARTIFACT                                                       │
    │    ArtifactStatus: Bot lifecycle (pending → in-progress → ...)  │
    ├─────────────────────────────────────────────────────────────────┤
    │  PLATFORM                                                       │
    │    ResourceType: slot type, slot, intent                        │
    │    OperationKind: create or update                              │
    │    PlatformErrorKind: closed set of platform failure kinds      │
    ├─────────────────────────────────────────────────────────────────┤
    │  ORCHESTRATION                                                  │
    │    WorkflowStage: states of the build-and-repair machine        │
    │    ConversationRole: roles in a repair conversation             │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Artifact Status Enumeration
# =============================================================================
# The lifecycle status of the composite bot artifact. The same values are
# used for individual status log entries:
#
#   PENDING ──→ IN_PROGRESS ──→ BUILT
#                    │
#                    └──→ ERROR
# =============================================================================
class ArtifactStatus(str, Enum):
    """Lifecycle status of a bot artifact and of its status log entries.

    Usage:
        >>> ArtifactStatus.IN_PROGRESS.value  # "in-progress"
        >>> ArtifactStatus("built") is ArtifactStatus.BUILT  # True
    """

    PENDING = "pending"             # Created, no workflow stage has run yet
    IN_PROGRESS = "in-progress"     # A workflow stage is working on it
    BUILT = "built"                 # The platform compiled the bot locale
    SUCCESS = "success"             # A single step finished (log entries)
    ERROR = "error"                 # A step or the whole run failed
    STOPPED = "stopped"             # Halted by an operator


# =============================================================================
# Resource Type Enumeration
# =============================================================================
# The three kinds of sub-resource this pipeline creates on the platform.
# Dependency order: SLOT_TYPE ← SLOT ← INTENT
# =============================================================================
class ResourceType(str, Enum):
    """Kind of platform sub-resource."""

    SLOT_TYPE = "slotType"
    SLOT = "slot"
    INTENT = "intent"

    @property
    def id_field(self) -> str:
        """Name of the payload field that carries this resource's id."""
        return f"{self.value}Id"

    @property
    def command_noun(self) -> str:
        """CamelCase name used in command names ("SlotType")."""
        return self.value[0].upper() + self.value[1:]


class OperationKind(str, Enum):
    """Whether a mutation creates a new resource or updates an existing one."""

    CREATE = "create"
    UPDATE = "update"


# =============================================================================
# Platform Error Kind
# =============================================================================
# The closed set of failure kinds the Resource Mutator branches on. Only the
# first two are repairable by the AI oracle; everything else is fatal.
# =============================================================================
class PlatformErrorKind(str, Enum):
    """Classification of a failed platform call."""

    VALIDATION = "validation"           # Payload violates the resource schema
    SERIALIZATION = "serialization"     # Payload could not be deserialized
    OTHER = "other"                     # Throttling, not found, network, ...

    @property
    def is_repairable(self) -> bool:
        """True when the oracle may be asked to correct the payload."""
        return self in (PlatformErrorKind.VALIDATION, PlatformErrorKind.SERIALIZATION)


# =============================================================================
# Workflow Stage Enumeration
# =============================================================================
# States of the build-and-repair machine:
#
#   PARAMETER_COLLECTION → CREATE_SLOT_TYPE ⟲ → CREATE_INTENT ⟲ → BUILD_ARTIFACT
#                                                                    │    ↑
#                                                        SUCCEEDED ←─┤    │
#                                                                    ↓    │
#                                                           FIX_RESOURCE ⟲┘
#
# An error raised by any stage goes to the error handler and ends the run.
# =============================================================================
class WorkflowStage(str, Enum):
    """A state of the orchestrator's finite-state machine."""

    PARAMETER_COLLECTION = "parameter_collection"
    CREATE_SLOT_TYPE = "create_slot_type"
    CREATE_INTENT = "create_intent"
    BUILD_ARTIFACT = "build_artifact"
    FIX_RESOURCE = "fix_resource"
    SUCCEEDED = "succeeded"

    @property
    def is_terminal(self) -> bool:
        """True for the stage that ends a successful run."""
        return self == WorkflowStage.SUCCEEDED


class ConversationRole(str, Enum):
    """Speaker of a message in a repair conversation."""

    USER = "user"
    ASSISTANT = "assistant"
