"""
Shared Test Fixtures for botsmith
===================================

Reusable pytest fixtures used across the test suite, organized by layer:

    1. Configuration and identity
    2. Integrations (mock LLM, in-memory platform, in-memory object store)
    3. Infrastructure (artifact repository)
    4. Orchestration (status log, oracle, mutator, stages, engine)
    5. Sample data (a pizza-ordering resource bundle and its artifact)

Everything runs in-process: no AWS access and no real LLM calls.
"""

from __future__ import annotations

import json

import pytest

from botsmith.core.config import BotsmithConfig, PlatformConfig
from botsmith.core.models import Artifact, ResourceBundle, SecurityContext, StorageLocation
from botsmith.infrastructure.artifact_repository import InMemoryArtifactRepository
from botsmith.integrations.llm.mock import MockLLMProvider
from botsmith.integrations.platform.memory import InMemoryPlatform
from botsmith.integrations.storage.memory import InMemoryObjectStore
from botsmith.orchestration.build_invoker import BuildInvoker
from botsmith.orchestration.error_handler import WorkflowErrorHandler
from botsmith.orchestration.mutator import ResourceMutator
from botsmith.orchestration.parameter_collector import ParameterCollector
from botsmith.orchestration.repair_oracle import RepairOracle
from botsmith.orchestration.resource_creators import IntentCreator, SlotTypeCreator
from botsmith.orchestration.resource_fixer import ResourceFixer
from botsmith.orchestration.status_log import StatusLog
from botsmith.orchestration.workflow_engine import WorkflowEngine


BUCKET = "bots"


# =============================================================================
# Configuration and Identity
# =============================================================================

@pytest.fixture
def config():
    """Default configuration with polling delays removed."""
    return BotsmithConfig(platform=PlatformConfig(poll_interval_seconds=0))


@pytest.fixture
def context():
    """Security context used for every repository call."""
    return SecurityContext(email="builder@example.com", sub="user-1")


# =============================================================================
# Integrations
# =============================================================================

@pytest.fixture
def mock_llm_provider():
    """Fresh MockLLMProvider with no queued responses."""
    return MockLLMProvider()


@pytest.fixture
def platform():
    """Fresh InMemoryPlatform."""
    return InMemoryPlatform()


@pytest.fixture
def object_store():
    """Fresh InMemoryObjectStore."""
    return InMemoryObjectStore()


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def repository():
    """Fresh InMemoryArtifactRepository."""
    return InMemoryArtifactRepository()


# =============================================================================
# Orchestration
# =============================================================================

@pytest.fixture
def status_log(repository):
    """StatusLog over the shared repository."""
    return StatusLog(repository)


@pytest.fixture
def oracle(mock_llm_provider):
    """RepairOracle backed by the mock LLM."""
    return RepairOracle(mock_llm_provider)


@pytest.fixture
def mutator(platform, oracle):
    """ResourceMutator with the default budget of 5 attempts."""
    return ResourceMutator(platform, oracle)


@pytest.fixture
def collector(platform, object_store, status_log):
    return ParameterCollector(platform, object_store, status_log)


@pytest.fixture
def slot_type_creator(mutator, status_log):
    return SlotTypeCreator(mutator, status_log)


@pytest.fixture
def intent_creator(platform, mutator, status_log):
    return IntentCreator(platform, mutator, status_log)


@pytest.fixture
def build_invoker(platform, object_store, status_log):
    """BuildInvoker that polls without delay."""
    return BuildInvoker(platform, object_store, status_log, poll_interval=0)


@pytest.fixture
def fixer(platform, oracle, mutator, status_log):
    return ResourceFixer(platform, oracle, mutator, status_log)


@pytest.fixture
def error_handler(status_log):
    return WorkflowErrorHandler(status_log)


@pytest.fixture
def engine(
    repository,
    collector,
    slot_type_creator,
    intent_creator,
    build_invoker,
    fixer,
    error_handler,
):
    """WorkflowEngine wired to the in-memory backends."""
    return WorkflowEngine(
        repository=repository,
        collector=collector,
        slot_type_creator=slot_type_creator,
        intent_creator=intent_creator,
        build_invoker=build_invoker,
        fixer=fixer,
        error_handler=error_handler,
    )


# =============================================================================
# Sample Data
# =============================================================================

@pytest.fixture
def bundle():
    """Two custom slot types and three intents; one utterance is duplicated."""
    return ResourceBundle.model_validate({
        "slots": {},
        "slotTypes": {
            "PizzaSize": {
                "slotTypeName": "PizzaSize",
                "slotTypeValues": [
                    {"sampleValue": {"value": "small"}},
                    {"sampleValue": {"value": "large"}},
                ],
                "valueSelectionSetting": {"resolutionStrategy": "OriginalValue"},
            },
            "Crust": {
                "slotTypeName": "Crust",
                "slotTypeValues": [
                    {"sampleValue": {"value": "thin"}},
                    {"sampleValue": {"value": "deep dish"}},
                ],
                "valueSelectionSetting": {"resolutionStrategy": "OriginalValue"},
            },
        },
        "intents": {
            "OrderPizza": {
                "intentName": "OrderPizza",
                "sampleUtterances": [
                    {"utterance": "I want a pizza"},
                    {"utterance": "order a {size} pizza"},
                ],
                "dialogCodeHook": {"enabled": True},
                "slots": {
                    "size": {
                        "slotName": "size",
                        "slotTypeName": "PizzaSize",
                        "valueElicitationSetting": {"slotConstraint": "Required"},
                    },
                    "crust": {
                        "slotName": "crust",
                        "slotTypeName": "Crust",
                        "valueElicitationSetting": {"slotConstraint": "Optional"},
                    },
                    "count": {
                        "slotName": "count",
                        "slotTypeName": "AMAZON.Number",
                        "valueElicitationSetting": {"slotConstraint": "Optional"},
                    },
                },
                "slotPriorities": [
                    {"priority": 1, "slotName": "size"},
                    {"priority": 2, "slotName": "crust"},
                    {"priority": 3, "slotName": "count"},
                ],
            },
            "CheckStatus": {
                "intentName": "CheckStatus",
                "sampleUtterances": [
                    {"utterance": "where is my order"},
                    {"utterance": "I want a pizza"},
                ],
            },
            "Greeting": {
                "intentName": "Greeting",
                "sampleUtterances": [{"utterance": "hello"}],
            },
        },
    })


@pytest.fixture
async def artifact(repository, object_store, context, bundle):
    """A stored artifact whose bundle lives in the object store."""
    location = StorageLocation(bucket=BUCKET, key="input/BOT00001/resources.json")
    await object_store.put_object(
        location.bucket,
        location.key,
        json.dumps(bundle.model_dump(by_alias=True)).encode("utf-8"),
    )
    return await repository.create(
        context,
        Artifact(id="BOT00001", name="PizzaBot", definition_raw_location=location),
    )
