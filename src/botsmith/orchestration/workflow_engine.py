"""
botsmith.orchestration.workflow_engine - Build-and-Repair State Machine
=========================================================================

The engine sequences the stages of one bot build. Each call to ``step``
runs exactly one stage on exactly one item and returns where to go next:

    ┌──────────────────────┐
    │ PARAMETER_COLLECTION │
    └──────────┬───────────┘
               │  slot types pending?  ──no──┐
               ▼                             │
    ┌──────────────────────┐                 │
    │   CREATE_SLOT_TYPE   │⟲ while pending  │
    └──────────┬───────────┘                 │
               ▼                             ▼
    ┌──────────────────────┐    intents pending? ──no──┐
    │    CREATE_INTENT     │⟲ while pending            │
    └──────────┬───────────┘                           │
               ▼                                       ▼
    ┌──────────────────────┐   built   ┌───────────┐
    │    BUILD_ARTIFACT    │ ────────→ │ SUCCEEDED │
    └──────────┬───────────┘           └───────────┘
               │ failure reasons           ↑
               ▼                           │
    ┌──────────────────────┐   none left   │
    │     FIX_RESOURCE     │⟲ ──→ BUILD_ARTIFACT
    └──────────────────────┘

``step`` is a trampoline: an external scheduler can persist the returned
StageTransition and invoke the next step later, in another process.
``run`` is the in-process driver that keeps stepping until SUCCEEDED.

Any error raised by a stage is recorded on the artifact by the shared
WorkflowErrorHandler and then re-raised unchanged.
"""

from __future__ import annotations

from typing import Awaitable, Callable

import structlog

from botsmith.core.enums import WorkflowStage
from botsmith.core.exceptions import WorkflowError
from botsmith.core.models import SecurityContext
from botsmith.core.state import StageEvent, StageTransition
from botsmith.infrastructure.artifact_repository import ArtifactRepository
from botsmith.orchestration.build_invoker import BuildInvoker
from botsmith.orchestration.error_handler import WorkflowErrorHandler
from botsmith.orchestration.parameter_collector import ParameterCollector
from botsmith.orchestration.resource_creators import IntentCreator, SlotTypeCreator
from botsmith.orchestration.resource_fixer import ResourceFixer


logger = structlog.get_logger()

StageHandler = Callable[[StageEvent, SecurityContext], Awaitable[StageTransition]]


def after_creation(event: StageEvent) -> WorkflowStage:
    """Next stage once a work-list item has been handled."""
    if event.input.slot_types_to_process > 0:
        return WorkflowStage.CREATE_SLOT_TYPE
    if event.input.intents_to_process > 0:
        return WorkflowStage.CREATE_INTENT
    return WorkflowStage.BUILD_ARTIFACT


class WorkflowEngine:
    """Drives an artifact through the build-and-repair stages.

    Args:
        repository: Where artifacts are read from when a run starts.
        collector: PARAMETER_COLLECTION stage.
        slot_type_creator: CREATE_SLOT_TYPE stage.
        intent_creator: CREATE_INTENT stage.
        build_invoker: BUILD_ARTIFACT stage.
        fixer: FIX_RESOURCE stage.
        error_handler: Records errors raised by any stage.

    Example:
        >>> transition = StageTransition(
        ...     stage=WorkflowStage.PARAMETER_COLLECTION,
        ...     event=StageEvent(bot=artifact),
        ... )
        >>> while not transition.stage.is_terminal:
        ...     transition = await engine.step(transition.stage, transition.event, context)
    """

    def __init__(
        self,
        repository: ArtifactRepository,
        collector: ParameterCollector,
        slot_type_creator: SlotTypeCreator,
        intent_creator: IntentCreator,
        build_invoker: BuildInvoker,
        fixer: ResourceFixer,
        error_handler: WorkflowErrorHandler,
    ) -> None:
        self._repository = repository
        self._collector = collector
        self._slot_type_creator = slot_type_creator
        self._intent_creator = intent_creator
        self._build_invoker = build_invoker
        self._fixer = fixer
        self._error_handler = error_handler
        self._handlers: dict[WorkflowStage, StageHandler] = {
            WorkflowStage.PARAMETER_COLLECTION: self._collect,
            WorkflowStage.CREATE_SLOT_TYPE: self._create_slot_type,
            WorkflowStage.CREATE_INTENT: self._create_intent,
            WorkflowStage.BUILD_ARTIFACT: self._build,
            WorkflowStage.FIX_RESOURCE: self._fix,
        }
        self._logger = logger.bind(component="workflow_engine")

    # =========================================================================
    # Public Methods
    # =========================================================================

    async def step(
        self,
        stage: WorkflowStage,
        event: StageEvent,
        context: SecurityContext,
    ) -> StageTransition:
        """Run one stage and decide the next one.

        Raises:
            WorkflowError: If ``stage`` is terminal.
            Exception: Whatever the stage raised, after it was recorded on
                the artifact.
        """
        if stage.is_terminal:
            raise WorkflowError(
                f"Stage {stage.value} is terminal and cannot be stepped",
                artifact_id=event.bot.id,
                error_code="TERMINAL_STAGE",
            )

        self._logger.debug("stage_starting", artifact_id=event.bot.id, stage=stage.value)
        try:
            transition = await self._handlers[stage](event, context)
        except Exception as e:
            await self._record_failure(context, event.bot.id, stage, e)
            raise

        self._logger.info(
            "stage_completed",
            artifact_id=event.bot.id,
            stage=stage.value,
            next_stage=transition.stage.value,
        )
        return transition

    async def run(self, artifact_id: str, context: SecurityContext) -> StageEvent:
        """Step an artifact from PARAMETER_COLLECTION until SUCCEEDED.

        Returns:
            The final event; its ``bot`` is the built artifact.

        Raises:
            ArtifactNotFoundError: If the artifact does not exist.
            Exception: The first error any stage raised.
        """
        artifact = await self._repository.get(context, artifact_id)
        transition = StageTransition(
            stage=WorkflowStage.PARAMETER_COLLECTION,
            event=StageEvent(bot=artifact),
        )
        steps = 0

        self._logger.info("workflow_starting", artifact_id=artifact_id, name=artifact.name)
        while not transition.stage.is_terminal:
            transition = await self.step(transition.stage, transition.event, context)
            steps += 1

        self._logger.info(
            "workflow_completed",
            artifact_id=artifact_id,
            steps=steps,
            num_of_retry=transition.event.num_of_retry,
        )
        return transition.event

    # =========================================================================
    # Stage Handlers
    # =========================================================================

    async def _collect(self, event: StageEvent, context: SecurityContext) -> StageTransition:
        event = await self._collector.collect(event, context)
        return StageTransition(stage=after_creation(event), event=event)

    async def _create_slot_type(self, event: StageEvent, context: SecurityContext) -> StageTransition:
        event = await self._slot_type_creator.create_next(event, context)
        return StageTransition(stage=after_creation(event), event=event)

    async def _create_intent(self, event: StageEvent, context: SecurityContext) -> StageTransition:
        event = await self._intent_creator.create_next(event, context)
        return StageTransition(stage=after_creation(event), event=event)

    async def _build(self, event: StageEvent, context: SecurityContext) -> StageTransition:
        event = await self._build_invoker.build(event, context)
        if event.built:
            return StageTransition(stage=WorkflowStage.SUCCEEDED, event=event)
        if event.failure_reasons_to_fix > 0:
            return StageTransition(stage=WorkflowStage.FIX_RESOURCE, event=event)
        raise WorkflowError(
            "Build failed with no failure reasons to fix",
            artifact_id=event.bot.id,
            error_code="NO_FAILURE_REASONS",
        )

    async def _fix(self, event: StageEvent, context: SecurityContext) -> StageTransition:
        event = await self._fixer.fix_next(event, context)
        if event.failure_reasons_to_fix > 0:
            return StageTransition(stage=WorkflowStage.FIX_RESOURCE, event=event)
        return StageTransition(stage=WorkflowStage.BUILD_ARTIFACT, event=event)

    async def _record_failure(
        self,
        context: SecurityContext,
        artifact_id: str,
        stage: WorkflowStage,
        error: Exception,
    ) -> None:
        try:
            await self._error_handler.handle(context, artifact_id, error)
        except Exception as handler_error:
            self._logger.error(
                "error_handler_failed",
                artifact_id=artifact_id,
                stage=stage.value,
                error=str(error),
                handler_error=str(handler_error),
            )
