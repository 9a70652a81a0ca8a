"""
botsmith.orchestration - Build-and-Repair Pipeline
====================================================

    - status_log:          deduplicated progress entries on the artifact
    - prompts:             oracle prompts, guidelines and schemas
    - repair_oracle:       LLM client for corrections, classifications, fixes
    - mutator:             create/update with bounded AI repair
    - parameter_collector: reset the locale and load the resource bundle
    - resource_creators:   one slot type / one intent per step
    - build_invoker:       build, export, capture failures
    - resource_fixer:      repair resources named by a build failure
    - error_handler:       record fatal errors on the artifact
    - workflow_engine:     the state machine tying the stages together
"""

from botsmith.orchestration.build_invoker import BuildInvoker
from botsmith.orchestration.error_handler import WorkflowErrorHandler
from botsmith.orchestration.mutator import ResourceMutator
from botsmith.orchestration.parameter_collector import ParameterCollector
from botsmith.orchestration.repair_oracle import RepairOracle
from botsmith.orchestration.resource_creators import IntentCreator, SlotTypeCreator
from botsmith.orchestration.resource_fixer import ResourceFixer
from botsmith.orchestration.status_log import StatusLog
from botsmith.orchestration.workflow_engine import WorkflowEngine

__all__ = [
    "BuildInvoker",
    "IntentCreator",
    "ParameterCollector",
    "RepairOracle",
    "ResourceFixer",
    "ResourceMutator",
    "SlotTypeCreator",
    "StatusLog",
    "WorkflowEngine",
    "WorkflowErrorHandler",
]
