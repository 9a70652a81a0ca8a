"""
Tests for botsmith.facade - Botsmith Top-Level Facade
=======================================================

These tests verify the Botsmith facade, the main entry point that ties
together all layers.

What's Being Tested:
    - Initialization and shutdown lifecycle
    - Async context manager (async with)
    - Bot registration (bundle stored, artifact created)
    - Building through run() and through start_build()/step()
    - Property access to internal components
    - Error handling (uninitialized access)

All tests use in-memory implementations; no external dependencies.
"""

import json

import pytest

from botsmith import Botsmith, __version__
from botsmith.core.config import BotsmithConfig
from botsmith.core.enums import ArtifactStatus, WorkflowStage
from botsmith.core.exceptions import ArtifactNotFoundError
from botsmith.core.state import StageTransition
from botsmith.facade import DEFAULT_BUCKET, bundle_key
from botsmith.infrastructure.artifact_repository import InMemoryArtifactRepository
from botsmith.integrations.llm.mock import MockLLMProvider
from botsmith.integrations.platform.memory import InMemoryPlatform
from botsmith.integrations.storage.memory import InMemoryObjectStore
from botsmith.orchestration.workflow_engine import WorkflowEngine


# =============================================================================
# Tests: Initialization
# =============================================================================
class TestBotsmithInit:
    """Tests for Botsmith initialization."""

    def test_creates_with_defaults(self) -> None:
        """The default configuration wires in-memory backends and the mock LLM."""
        botsmith = Botsmith()
        assert botsmith.is_initialized is False
        assert isinstance(botsmith.llm_provider, MockLLMProvider)
        assert isinstance(botsmith.platform, InMemoryPlatform)
        assert isinstance(botsmith.object_store, InMemoryObjectStore)
        assert isinstance(botsmith.repository, InMemoryArtifactRepository)

    def test_creates_with_custom_config(self, config: BotsmithConfig) -> None:
        botsmith = Botsmith(config)
        assert botsmith.config is config

    def test_overrides_are_used(self, config: BotsmithConfig) -> None:
        provider = MockLLMProvider()
        platform = InMemoryPlatform()
        botsmith = Botsmith(config, llm_provider=provider, platform=platform)
        assert botsmith.llm_provider is provider
        assert botsmith.platform is platform

    async def test_initialize(self, config: BotsmithConfig) -> None:
        botsmith = Botsmith(config)
        await botsmith.initialize()
        assert botsmith.is_initialized is True
        await botsmith.shutdown()

    async def test_initialize_is_idempotent(self, config: BotsmithConfig) -> None:
        """Calling initialize() twice should be safe."""
        botsmith = Botsmith(config)
        await botsmith.initialize()
        await botsmith.initialize()
        assert botsmith.is_initialized is True
        await botsmith.shutdown()

    async def test_shutdown_is_idempotent(self, config: BotsmithConfig) -> None:
        botsmith = Botsmith(config)
        await botsmith.initialize()
        await botsmith.shutdown()
        await botsmith.shutdown()
        assert botsmith.is_initialized is False

    async def test_context_manager(self, config: BotsmithConfig) -> None:
        async with Botsmith(config) as botsmith:
            assert botsmith.is_initialized is True
        assert botsmith.is_initialized is False

    def test_repr(self, config: BotsmithConfig) -> None:
        assert repr(Botsmith(config)) == "Botsmith(initialized=False, llm='mock', platform='memory')"

    def test_version(self) -> None:
        assert __version__ == "0.1.0"


# =============================================================================
# Tests: Uninitialized Access
# =============================================================================
class TestUninitialized:
    """Operations require initialize() first."""

    async def test_register_bot(self, config: BotsmithConfig, bundle) -> None:
        with pytest.raises(RuntimeError, match="not been initialized"):
            await Botsmith(config).register_bot("PizzaBot", bundle)

    async def test_run(self, config: BotsmithConfig) -> None:
        with pytest.raises(RuntimeError):
            await Botsmith(config).run("BOT00001")

    async def test_start_build(self, config: BotsmithConfig) -> None:
        with pytest.raises(RuntimeError):
            await Botsmith(config).start_build("BOT00001")


# =============================================================================
# Tests: Registration
# =============================================================================
class TestRegisterBot:
    """Tests for Botsmith.register_bot()."""

    async def test_bundle_stored(self, config: BotsmithConfig, bundle) -> None:
        async with Botsmith(config) as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle, artifact_id="BOT00001")

            location = artifact.definition_raw_location
            assert location.bucket == DEFAULT_BUCKET
            assert location.key == bundle_key("BOT00001") == "input/BOT00001/resources.json"
            stored = json.loads(await botsmith.object_store.get_object(location.bucket, location.key))
            assert set(stored["intents"]) == {"OrderPizza", "CheckStatus", "Greeting"}
            assert botsmith.object_store.content_type(location.bucket, location.key) == "application/json"

    async def test_artifact_created(self, config: BotsmithConfig, bundle) -> None:
        async with Botsmith(config) as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle, locale="en_GB")

            stored = await botsmith.get_artifact(artifact.id)
            assert stored.name == "PizzaBot"
            assert stored.locale == "en_GB"
            assert stored.status == ArtifactStatus.PENDING

    async def test_custom_bucket(self, config: BotsmithConfig, bundle) -> None:
        async with Botsmith(config, bucket="my-bots") as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle)
            assert artifact.definition_raw_location.bucket == "my-bots"

    async def test_get_unknown_artifact(self, config: BotsmithConfig) -> None:
        async with Botsmith(config) as botsmith:
            with pytest.raises(ArtifactNotFoundError):
                await botsmith.get_artifact("missing")


# =============================================================================
# Tests: Building
# =============================================================================
class TestBuild:
    """run(), start_build() and step()."""

    async def test_run(self, config: BotsmithConfig, bundle) -> None:
        async with Botsmith(config) as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle)

            built = await botsmith.run(artifact.id)

            assert built.status == ArtifactStatus.BUILT
            assert built.definition_location.bucket == DEFAULT_BUCKET
            assert built.definition_location.key in botsmith.object_store.keys(DEFAULT_BUCKET)

    async def test_start_build(self, config: BotsmithConfig, bundle) -> None:
        async with Botsmith(config) as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle)

            transition = await botsmith.start_build(artifact.id)

            assert transition.stage == WorkflowStage.PARAMETER_COLLECTION
            assert transition.event.bot.id == artifact.id
            assert (await botsmith.get_artifact(artifact.id)).status == ArtifactStatus.IN_PROGRESS

    async def test_stepping_to_completion(self, config: BotsmithConfig, bundle) -> None:
        async with Botsmith(config) as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle)

            transition = await botsmith.start_build(artifact.id)
            steps = 0
            while not transition.stage.is_terminal:
                transition = await botsmith.step(transition)
                steps += 1

            assert transition.stage == WorkflowStage.SUCCEEDED
            assert steps == 7
            assert (await botsmith.get_artifact(artifact.id)).status == ArtifactStatus.BUILT

    async def test_transition_survives_serialization(self, config: BotsmithConfig, bundle) -> None:
        """A scheduler can persist a transition as JSON and resume from it."""
        async with Botsmith(config) as botsmith:
            artifact = await botsmith.register_bot("PizzaBot", bundle)
            transition = await botsmith.step(await botsmith.start_build(artifact.id))

            restored = StageTransition.model_validate_json(transition.model_dump_json(by_alias=True))
            resumed = await botsmith.step(restored)

            assert resumed.stage == WorkflowStage.CREATE_SLOT_TYPE
            assert resumed.event.input.slot_types_to_process == 1


# =============================================================================
# Tests: Properties
# =============================================================================
class TestProperties:
    def test_workflow_engine(self, config: BotsmithConfig) -> None:
        assert isinstance(Botsmith(config).workflow_engine, WorkflowEngine)

    def test_repository_override(self, config: BotsmithConfig) -> None:
        repository = InMemoryArtifactRepository()
        assert Botsmith(config, repository=repository).repository is repository
