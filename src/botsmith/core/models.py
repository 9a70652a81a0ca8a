"""
botsmith.core.models - Core Data Models
=========================================

Pydantic models for the data that flows between workflow stages:

    Artifact            - The composite bot, owned by the artifact repository
    StatusMessage       - One entry of the artifact's append-only status log
    StorageLocation     - A bucket/key pair in object storage
    SecurityContext     - Caller identity, passed explicitly to the repository
    BotLocator          - botId/botVersion/localeId triple for platform calls
    ResourceBundle      - Generated slot types, slots and intents to create
    ResourceOperation   - {SlotType, Slot, Intent} x {Create, Update}
    ResourceSummary     - id/name pair returned by platform listings
    ResourceInventory   - Everything currently registered on the platform
    ResourceReference   - One resource named by a failure classification
    FailureClassification - Oracle answer: which resources a reason refers to

Wire Format:
    Models that cross the stage boundary serialize to camelCase JSON so an
    external scheduler can chain stage outputs directly:

        >>> bundle = ResourceBundle(slot_types={"Size": {...}})
        >>> bundle.model_dump(by_alias=True)
        {'slots': {}, 'slotTypes': {'Size': {...}}, 'intents': {}}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from botsmith.core.enums import ArtifactStatus, OperationKind, ResourceType


# =============================================================================
# Helpers
# =============================================================================
def _now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(timezone.utc)


def _generate_artifact_id() -> str:
    """Generate a unique artifact ID with a 'bot-' prefix."""
    return f"bot-{uuid4().hex[:12]}"


# Prefix of platform built-in types (AMAZON.Number, AMAZON.FallbackIntent...).
BUILT_IN_PREFIX = "AMAZON"
FALLBACK_INTENT_NAME = "FallbackIntent"
DRAFT_VERSION = "DRAFT"


def is_built_in(name: Optional[str]) -> bool:
    """Check whether a type name refers to a platform built-in."""
    return bool(name) and name.startswith(BUILT_IN_PREFIX)


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Artifact and Status Log
# =============================================================================
class StatusMessage(CamelModel):
    """One entry of an artifact's status log.

    Attributes:
        status: Outcome of the step this entry describes.
        message: Human-readable step description, e.g. "Building bot.".
            Message text is the dedupe key: a new entry replaces any older
            entry with the same text.
    """

    status: ArtifactStatus = Field(description="Step outcome")
    message: str = Field(description="Step description (dedupe key)")


class StorageLocation(CamelModel):
    """Location of an object in durable storage."""

    bucket: str = Field(description="Bucket name")
    key: str = Field(description="Object key")


class Artifact(CamelModel):
    """The composite conversational bot being built.

    Only the artifact repository creates and stores these. Workflow stages
    read the current copy with ``repository.get()`` and write partial
    updates with ``repository.update()``.

    Attributes:
        id: Unique artifact identifier, also used as the platform bot id.
        name: Human-readable bot name (used in export object keys).
        locale: Platform locale id, e.g. "en_US".
        version: Platform bot version. Always "DRAFT" while building.
        status: Lifecycle status of the whole artifact.
        status_messages: Ordered, append-only log of step outcomes.
        definition_raw_location: Where the generated resource bundle lives.
        definition_location: Where the exported built definition was stored.

    Example:
        >>> artifact = Artifact(
        ...     id="BOT12345",
        ...     name="PizzaBot",
        ...     definition_raw_location=StorageLocation(
        ...         bucket="bots", key="raw/BOT12345/bundle.json",
        ...     ),
        ... )
    """

    id: str = Field(default_factory=_generate_artifact_id)
    name: str = Field(description="Bot name")
    locale: str = Field(default="en_US", description="Platform locale id")
    version: str = Field(default=DRAFT_VERSION, description="Platform bot version")
    status: ArtifactStatus = Field(default=ArtifactStatus.PENDING)
    status_messages: list[StatusMessage] = Field(default_factory=list)
    definition_raw_location: Optional[StorageLocation] = Field(
        default=None,
        description="Location of the generated resource bundle (JSON)",
    )
    definition_location: Optional[StorageLocation] = Field(
        default=None,
        description="Location of the exported, built bot definition (zip)",
    )
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def locator(self) -> BotLocator:
        """Platform coordinates of this bot's locale."""
        return BotLocator(bot_id=self.id, bot_version=self.version, locale_id=self.locale)


# =============================================================================
# Security Context
# =============================================================================
# Every repository call carries the caller identity explicitly. Workflow
# stages use SecurityContext.system(); API callers pass their own.
# =============================================================================
class SecurityContext(CamelModel):
    """Identity on whose behalf a repository call is made."""

    email: str
    role: str = Field(default="contributor")
    sub: str

    @classmethod
    def system(cls, name: str = "botsmith-workflow") -> SecurityContext:
        """Context used by workflow stages acting on their own behalf."""
        return cls(email=name, role="contributor", sub=name)


# =============================================================================
# Platform Coordinates and Operations
# =============================================================================
class BotLocator(CamelModel):
    """botId / botVersion / localeId triple shared by every platform call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    bot_id: str
    bot_version: str = DRAFT_VERSION
    locale_id: str

    def as_params(self) -> dict[str, str]:
        """Render as the common parameters of a platform request."""
        return self.model_dump(by_alias=True)


class ResourceOperation(BaseModel):
    """A create or update of one resource type.

    Replaces command-name strings: dispatch happens on the
    (resource_type, kind) pair.

    Example:
        >>> op = ResourceOperation(resource_type=ResourceType.INTENT, kind=OperationKind.UPDATE)
        >>> op.command_name
        'UpdateIntent'
    """

    model_config = ConfigDict(frozen=True)

    resource_type: ResourceType
    kind: OperationKind

    @property
    def command_name(self) -> str:
        """Platform command name, e.g. "CreateSlotType"."""
        return f"{self.kind.value.capitalize()}{self.resource_type.command_noun}"

    @classmethod
    def create(cls, resource_type: ResourceType) -> ResourceOperation:
        return cls(resource_type=resource_type, kind=OperationKind.CREATE)

    @classmethod
    def update(cls, resource_type: ResourceType) -> ResourceOperation:
        return cls(resource_type=resource_type, kind=OperationKind.UPDATE)


class ResourceSummary(BaseModel):
    """id/name pair returned by platform list calls."""

    id: str
    name: str


# =============================================================================
# Resource Bundle
# =============================================================================
# The generated definitions produced upstream from the legacy dialog format.
# Definitions stay as plain dicts: they are platform payload fragments and
# the oracle may rewrite them freely.
# =============================================================================
class ResourceBundle(CamelModel):
    """Generated resources to create, keyed by resource name.

    Attributes:
        slots: Slot definitions that are not attached to an intent.
        slot_types: Slot type definitions (``slotTypeName``,
            ``slotTypeValues``, ``valueSelectionSetting``, ...).
        intents: Intent definitions. Each carries ``intentName``,
            ``sampleUtterances`` ([{"utterance": ...}]), ``slots`` (dict of
            slot definitions keyed by slot name) and ``slotPriorities``.
    """

    slots: dict[str, dict[str, Any]] = Field(default_factory=dict)
    slot_types: dict[str, dict[str, Any]] = Field(default_factory=dict)
    intents: dict[str, dict[str, Any]] = Field(default_factory=dict)


# =============================================================================
# Inventory and Failure Classification
# =============================================================================
class ResourceInventory(CamelModel):
    """Every resource currently registered for a bot locale.

    Computed once per failed build so the fixer has full context without
    re-querying the platform per failure reason.

    Attributes:
        intents: Intent name → names of its slots.
        slot_types: Names of all slot types.
    """

    intents: dict[str, list[str]] = Field(default_factory=dict)
    slot_types: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no intents and no slot types are registered."""
        return not self.intents and not self.slot_types


class ResourceReference(CamelModel):
    """One resource named by a failure classification.

    Fields the oracle could not extract from the failure reason stay None.
    """

    intent_name: Optional[str] = None
    slot_name: Optional[str] = None
    slot_type_name: Optional[str] = None


class FailureClassification(CamelModel):
    """Which resources a build failure reason refers to."""

    type: ResourceType
    resources: list[ResourceReference] = Field(default_factory=list)
