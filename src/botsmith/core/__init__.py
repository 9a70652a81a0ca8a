"""
botsmith.core - Foundation Layer
==================================

Plain data structures and configuration shared by every other package:

    - config:      BotsmithConfig and its sections, load_config()
    - enums:       ArtifactStatus, ResourceType, WorkflowStage, ...
    - exceptions:  BotsmithError hierarchy
    - log:         configure_logging()
    - models:      Artifact, ResourceBundle, ResourceInventory, ...
    - messages:    RepairConversation
    - state:       StageEvent, WorkList, StageTransition

Dependency Rule:
    core/ depends on nothing else in the botsmith package.
"""

from botsmith.core.config import (
    BotsmithConfig,
    LLMConfig,
    PlatformConfig,
    RetryConfig,
    StorageConfig,
    load_config,
)
from botsmith.core.enums import (
    ArtifactStatus,
    OperationKind,
    PlatformErrorKind,
    ResourceType,
    WorkflowStage,
)
from botsmith.core.exceptions import (
    ArtifactNotFoundError,
    BotsmithError,
    BuildFailedError,
    BuildRetriesExceededError,
    ConfigurationError,
    OracleError,
    PlatformError,
    RepairBudgetExceededError,
    StorageError,
    WaiterTimeoutError,
    WorkflowError,
)
from botsmith.core.models import (
    Artifact,
    FailureClassification,
    ResourceBundle,
    ResourceInventory,
    ResourceOperation,
    ResourceReference,
    SecurityContext,
    StatusMessage,
    StorageLocation,
)
from botsmith.core.state import StageEvent, StageTransition, WorkList

__all__ = [
    # Config
    "BotsmithConfig",
    "LLMConfig",
    "PlatformConfig",
    "RetryConfig",
    "StorageConfig",
    "load_config",
    # Enums
    "ArtifactStatus",
    "OperationKind",
    "PlatformErrorKind",
    "ResourceType",
    "WorkflowStage",
    # Models
    "Artifact",
    "FailureClassification",
    "ResourceBundle",
    "ResourceInventory",
    "ResourceOperation",
    "ResourceReference",
    "SecurityContext",
    "StatusMessage",
    "StorageLocation",
    # State
    "StageEvent",
    "StageTransition",
    "WorkList",
    # Exceptions
    "ArtifactNotFoundError",
    "BotsmithError",
    "BuildFailedError",
    "BuildRetriesExceededError",
    "ConfigurationError",
    "OracleError",
    "PlatformError",
    "RepairBudgetExceededError",
    "StorageError",
    "WaiterTimeoutError",
    "WorkflowError",
]
