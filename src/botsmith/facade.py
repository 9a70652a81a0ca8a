"""
botsmith.facade - Botsmith Top-Level Facade
=============================================

The single entry point that wires every layer together from a
BotsmithConfig and exposes the build pipeline as a small API.

Architecture Context:

    ┌──────────────────────────────────────────────────┐
    │                Botsmith (Facade)                  │
    │                                                   │
    │  ┌─────────────────────────────────────────────┐ │
    │  │         Orchestration Layer                   │ │
    │  │  WorkflowEngine, stages, ResourceMutator,     │ │
    │  │  RepairOracle, StatusLog, ErrorHandler        │ │
    │  └─────────────────────┬───────────────────────┘ │
    │                        │                          │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │         Infrastructure Layer                  │ │
    │  │  ArtifactRepository                           │ │
    │  └─────────────────────┬───────────────────────┘ │
    │                        │                          │
    │  ┌─────────────────────▼───────────────────────┐ │
    │  │         Integration Layer                     │ │
    │  │  LLM provider, conversational platform,       │ │
    │  │  object store                                 │ │
    │  └─────────────────────────────────────────────┘ │
    └──────────────────────────────────────────────────┘

Usage:
    >>> async with Botsmith(config) as botsmith:
    ...     artifact = await botsmith.register_bot("PizzaBot", bundle)
    ...     built = await botsmith.run(artifact.id)
    ...     print(built.status)  # ArtifactStatus.BUILT

    Or one step at a time, the way an external scheduler would:
    >>> transition = await botsmith.start_build(artifact.id)
    >>> while not transition.stage.is_terminal:
    ...     transition = await botsmith.step(transition)
"""

from __future__ import annotations

import json
from typing import Any, Optional

import structlog

from botsmith.core.config import BotsmithConfig
from botsmith.core.enums import ArtifactStatus, WorkflowStage
from botsmith.core.log import configure_logging
from botsmith.core.models import Artifact, ResourceBundle, SecurityContext, StorageLocation
from botsmith.core.state import StageEvent, StageTransition
from botsmith.infrastructure.artifact_repository import (
    ArtifactRepository,
    InMemoryArtifactRepository,
)
from botsmith.integrations.llm.base import BaseLLMProvider
from botsmith.integrations.llm.factory import create_llm_provider
from botsmith.integrations.platform.base import ConversationalPlatform
from botsmith.integrations.platform.factory import create_platform
from botsmith.integrations.storage.base import ObjectStore
from botsmith.integrations.storage.factory import create_object_store
from botsmith.orchestration.build_invoker import BuildInvoker
from botsmith.orchestration.error_handler import WorkflowErrorHandler
from botsmith.orchestration.mutator import ResourceMutator
from botsmith.orchestration.parameter_collector import ParameterCollector
from botsmith.orchestration.repair_oracle import RepairOracle
from botsmith.orchestration.resource_creators import IntentCreator, SlotTypeCreator
from botsmith.orchestration.resource_fixer import ResourceFixer
from botsmith.orchestration.status_log import StatusLog
from botsmith.orchestration.workflow_engine import WorkflowEngine


logger = structlog.get_logger()

DEFAULT_BUCKET = "botsmith-artifacts"


def bundle_key(artifact_id: str) -> str:
    """Object key under which a bot's resource bundle is stored."""
    return f"input/{artifact_id}/resources.json"


class Botsmith:
    """Top-level facade for the bot build-and-repair pipeline.

    Every collaborator is built from ``config`` through the provider
    factories unless an instance is passed in explicitly.

    Lifecycle:
        1. ``Botsmith(config)`` - wire the components
        2. ``await initialize()`` - configure logging
        3. ``await register_bot(...)`` / ``await run(...)``
        4. ``await shutdown()``

    Args:
        config: Configuration. Defaults to BotsmithConfig() (environment).
        llm_provider: Overrides the configured LLM provider.
        platform: Overrides the configured conversational platform.
        object_store: Overrides the configured object store.
        repository: Artifact repository. Defaults to in-memory.
        context: Identity used for repository calls. Defaults to
            SecurityContext.system().
        bucket: Bucket for bundles and exports.
    """

    def __init__(
        self,
        config: Optional[BotsmithConfig] = None,
        *,
        llm_provider: Optional[BaseLLMProvider] = None,
        platform: Optional[ConversationalPlatform] = None,
        object_store: Optional[ObjectStore] = None,
        repository: Optional[ArtifactRepository] = None,
        context: Optional[SecurityContext] = None,
        bucket: str = DEFAULT_BUCKET,
    ) -> None:
        self._config = config or BotsmithConfig()
        self._context = context or SecurityContext.system()
        self._bucket = bucket

        # --- Integration Layer ---
        self._llm_provider = llm_provider or create_llm_provider(self._config.llm)
        self._platform = platform or create_platform(self._config.platform)
        self._object_store = object_store or create_object_store(self._config.storage)

        # --- Infrastructure Layer ---
        self._repository = repository or InMemoryArtifactRepository()

        # --- Orchestration Layer ---
        retry = self._config.retry
        platform_config = self._config.platform
        self._status_log = StatusLog(self._repository)
        self._oracle = RepairOracle(self._llm_provider)
        self._mutator = ResourceMutator(
            self._platform,
            self._oracle,
            max_attempts=retry.max_mutation_attempts,
        )
        self._engine = WorkflowEngine(
            repository=self._repository,
            collector=ParameterCollector(self._platform, self._object_store, self._status_log),
            slot_type_creator=SlotTypeCreator(self._mutator, self._status_log),
            intent_creator=IntentCreator(self._platform, self._mutator, self._status_log),
            build_invoker=BuildInvoker(
                self._platform,
                self._object_store,
                self._status_log,
                max_build_retries=retry.max_build_retries,
                build_timeout=platform_config.build_timeout_seconds,
                export_timeout=platform_config.export_timeout_seconds,
                poll_interval=platform_config.poll_interval_seconds,
            ),
            fixer=ResourceFixer(self._platform, self._oracle, self._mutator, self._status_log),
            error_handler=WorkflowErrorHandler(self._status_log),
        )

        self._initialized = False
        self._logger = logger.bind(component="botsmith")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> BotsmithConfig:
        return self._config

    @property
    def platform(self) -> ConversationalPlatform:
        return self._platform

    @property
    def object_store(self) -> ObjectStore:
        return self._object_store

    @property
    def repository(self) -> ArtifactRepository:
        return self._repository

    @property
    def llm_provider(self) -> BaseLLMProvider:
        return self._llm_provider

    @property
    def workflow_engine(self) -> WorkflowEngine:
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def initialize(self) -> None:
        """Configure logging. Idempotent."""
        if self._initialized:
            self._logger.debug("botsmith_already_initialized")
            return

        configure_logging(self._config.log_level)
        self._initialized = True
        self._logger.info(
            "botsmith_initialized",
            environment=self._config.environment,
            llm=self._llm_provider.provider_name,
            platform=self._config.platform.provider,
        )

    async def shutdown(self) -> None:
        """Mark the facade stopped. Idempotent."""
        if not self._initialized:
            self._logger.debug("botsmith_not_initialized_skipping_shutdown")
            return

        self._initialized = False
        self._logger.info("botsmith_shutdown_complete")

    async def __aenter__(self) -> Botsmith:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # =========================================================================
    # Artifacts
    # =========================================================================

    async def register_bot(
        self,
        name: str,
        bundle: ResourceBundle,
        *,
        locale: str = "en_US",
        artifact_id: Optional[str] = None,
    ) -> Artifact:
        """Store a generated resource bundle and create its artifact.

        Returns:
            The new artifact, in status "pending".
        """
        self._ensure_initialized()
        fields: dict[str, Any] = {"name": name, "locale": locale}
        if artifact_id is not None:
            fields["id"] = artifact_id
        artifact = Artifact(**fields)

        location = StorageLocation(bucket=self._bucket, key=bundle_key(artifact.id))
        await self._object_store.put_object(
            location.bucket,
            location.key,
            json.dumps(bundle.model_dump(by_alias=True)).encode("utf-8"),
            content_type="application/json",
        )
        artifact = artifact.model_copy(update={"definition_raw_location": location})
        created = await self._repository.create(self._context, artifact)

        self._logger.info("bot_registered", artifact_id=created.id, name=name, bucket=location.bucket)
        return created

    async def get_artifact(self, artifact_id: str) -> Artifact:
        """Current state of an artifact."""
        return await self._repository.get(self._context, artifact_id)

    # =========================================================================
    # Build Workflow
    # =========================================================================

    async def start_build(self, artifact_id: str) -> StageTransition:
        """First transition of a build, for callers that drive ``step``."""
        self._ensure_initialized()
        artifact = await self._repository.get(self._context, artifact_id)
        await self._repository.update(
            self._context,
            artifact_id,
            {"status": ArtifactStatus.IN_PROGRESS},
        )
        self._logger.info("build_started", artifact_id=artifact_id)
        return StageTransition(
            stage=WorkflowStage.PARAMETER_COLLECTION,
            event=StageEvent(bot=artifact),
        )

    async def step(self, transition: StageTransition) -> StageTransition:
        """Run one workflow stage."""
        self._ensure_initialized()
        return await self._engine.step(transition.stage, transition.event, self._context)

    async def run(self, artifact_id: str) -> Artifact:
        """Build an artifact end to end.

        Returns:
            The artifact as stored after the build.

        Raises:
            Exception: The first error a stage raised; it is also recorded
                on the artifact.
        """
        self._ensure_initialized()
        await self._engine.run(artifact_id, self._context)
        return await self._repository.get(self._context, artifact_id)

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "Botsmith has not been initialized. "
                "Call await botsmith.initialize() or use 'async with Botsmith() as botsmith:'"
            )

    def __repr__(self) -> str:
        return (
            f"Botsmith(initialized={self._initialized}, "
            f"llm={self._llm_provider.provider_name!r}, "
            f"platform={self._config.platform.provider!r})"
        )
