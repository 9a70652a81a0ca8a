"""
botsmith.core.exceptions - Custom Exception Hierarchy
=======================================================

This module defines a structured exception hierarchy for botsmith.
Components raise and catch specific exception types that carry contextual
information instead of bare strings.

Exception Hierarchy:
    BotsmithError (base)
        ├── ConfigurationError          - Invalid config, unknown provider names
        ├── PlatformError               - A conversational platform call failed
        │     └── BuildFailedError      - The platform rejected a build
        ├── WaiterTimeoutError          - Bounded polling ran out of time
        ├── RepairBudgetExceededError   - Mutation repair loop hit its limit
        ├── BuildRetriesExceededError   - Outer build loop hit its limit
        ├── OracleError                 - The AI oracle failed or answered badly
        ├── ArtifactNotFoundError       - Unknown artifact id
        ├── StorageError                - Object storage read/write failed
        └── WorkflowError               - Invalid stage or transition

Error Taxonomy:
    PlatformError(kind=VALIDATION|SERIALIZATION)
        → ResourceMutator asks the oracle for a corrected payload, retries
    BuildFailedError
        → BuildInvoker extracts failure reasons, ResourceFixer repairs them
    Everything else
        → propagates to the WorkflowErrorHandler, recorded on the artifact

Usage:
    >>> from botsmith.core.exceptions import PlatformError
    >>> from botsmith.core.enums import PlatformErrorKind
    >>> raise PlatformError(
    ...     message="slotTypeValues must not be empty",
    ...     kind=PlatformErrorKind.VALIDATION,
    ...     details={"operation": "CreateSlotType"},
    ... )
"""

from __future__ import annotations

from typing import Any, Optional

from botsmith.core.enums import PlatformErrorKind


# =============================================================================
# Base Exception
# =============================================================================
# All botsmith exceptions inherit from this base class, so callers can catch
# every framework error with a single except clause:
#
#   try:
#       await engine.step(stage, event, context)
#   except BotsmithError as e:
#       logger.error(e.message, error_code=e.error_code, details=e.details)
# =============================================================================
class BotsmithError(Exception):
    """Base exception for all botsmith errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code. Convention: UPPER_SNAKE_CASE
            (e.g., "PLATFORM_ERROR", "REPAIR_BUDGET_EXCEEDED").
        details: Arbitrary dict with additional debugging context.

    Example:
        >>> try:
        ...     await mutator.apply(operation, payload, context=context)
        ... except BotsmithError as e:
        ...     print(f"[{e.error_code}] {e.message}")
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary.

        Used for structured logging and for the error entry the workflow
        error handler writes onto the artifact.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
class ConfigurationError(BotsmithError):
    """Raised when botsmith configuration is invalid or missing.

    Common Causes:
        - Malformed YAML in botsmith.yaml
        - Unknown provider name for the LLM, platform, or object store
        - Missing bucket name when the S3 store is selected
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Platform Errors
# =============================================================================
# Raised by ConversationalPlatform implementations. The `kind` attribute is
# the only thing the ResourceMutator inspects; it never looks at exception
# class names or AWS error codes.
# =============================================================================
class PlatformError(BotsmithError):
    """Raised when a call to the conversational platform fails.

    Attributes:
        kind: Closed classification of the failure. VALIDATION and
            SERIALIZATION are repairable, OTHER is fatal.
        operation: Name of the platform call (e.g., "CreateIntent").

    Example:
        >>> raise PlatformError(
        ...     message="Slot type not found",
        ...     kind=PlatformErrorKind.OTHER,
        ...     operation="DescribeSlotType",
        ... )
    """

    def __init__(
        self,
        message: str,
        kind: PlatformErrorKind = PlatformErrorKind.OTHER,
        operation: Optional[str] = None,
        error_code: str = "PLATFORM_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["kind"] = kind.value
        if operation:
            enriched_details["operation"] = operation

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.kind = kind
        self.operation = operation


class BuildFailedError(PlatformError):
    """Raised when the platform reports that a locale build failed.

    The message is the JSON document the platform's waiter reported, e.g.
    ``{"state": "FAILURE", "reason": {"failureReasons": ["..."]}}``. The
    BuildInvoker parses it to recover the failure reasons.
    """

    def __init__(
        self,
        message: str,
        operation: str = "BuildBotLocale",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            kind=PlatformErrorKind.OTHER,
            operation=operation,
            error_code="BUILD_FAILED",
            details=details,
        )


class WaiterTimeoutError(BotsmithError):
    """Raised when bounded polling for a build or export exceeds its timeout."""

    def __init__(
        self,
        message: str,
        waiter: str,
        timeout_seconds: float,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["waiter"] = waiter
        enriched_details["timeout_seconds"] = timeout_seconds

        super().__init__(message=message, error_code="WAITER_TIMEOUT", details=enriched_details)

        self.waiter = waiter
        self.timeout_seconds = timeout_seconds


# =============================================================================
# Retry Budget Errors
# =============================================================================
# Both budgets end in a descriptive fatal error, never a degraded result.
# =============================================================================
class RepairBudgetExceededError(BotsmithError):
    """Raised when a single mutation is still rejected after the last attempt.

    Attributes:
        attempts: Number of platform calls that were made.
    """

    def __init__(
        self,
        message: str = "Retry too many times.",
        attempts: int = 0,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["attempts"] = attempts

        super().__init__(
            message=message,
            error_code="REPAIR_BUDGET_EXCEEDED",
            details=enriched_details,
        )

        self.attempts = attempts


class BuildRetriesExceededError(BotsmithError):
    """Raised when the build has been retried more times than allowed.

    Example:
        >>> raise BuildRetriesExceededError(num_of_retry=3)
        BuildRetriesExceededError: Failed to build bot after 3 retries.
    """

    def __init__(
        self,
        num_of_retry: int,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["num_of_retry"] = num_of_retry

        super().__init__(
            message=f"Failed to build bot after {num_of_retry} retries.",
            error_code="BUILD_RETRIES_EXCEEDED",
            details=enriched_details,
        )

        self.num_of_retry = num_of_retry


# =============================================================================
# Oracle Error
# =============================================================================
class OracleError(BotsmithError):
    """Raised when the AI oracle call fails or its answer cannot be used.

    Common Causes:
        - The LLM provider raised (throttling, credentials, network)
        - The answer contained no ```json fenced block
        - The fenced block was not valid JSON
    """

    def __init__(
        self,
        message: str,
        error_code: str = "ORACLE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Repository and Storage Errors
# =============================================================================
class ArtifactNotFoundError(BotsmithError):
    """Raised when the artifact repository has no artifact with the given id."""

    def __init__(
        self,
        artifact_id: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["artifact_id"] = artifact_id

        super().__init__(
            message=f"Artifact not found: {artifact_id}",
            error_code="ARTIFACT_NOT_FOUND",
            details=enriched_details,
        )

        self.artifact_id = artifact_id


class StorageError(BotsmithError):
    """Raised when an object storage read or write fails."""

    def __init__(
        self,
        message: str,
        bucket: str,
        key: str,
        error_code: str = "STORAGE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["bucket"] = bucket
        enriched_details["key"] = key

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.bucket = bucket
        self.key = key


# =============================================================================
# Workflow Error
# =============================================================================
class WorkflowError(BotsmithError):
    """Raised when the state machine is driven incorrectly.

    This covers orchestration-level issues, not platform failures:
        - Stepping a terminal stage
        - A stage invoked with an empty work-list
        - A failed build that carried no failure reasons to repair

    Attributes:
        artifact_id: ID of the artifact whose workflow failed.
    """

    def __init__(
        self,
        message: str,
        artifact_id: str,
        error_code: str = "WORKFLOW_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["artifact_id"] = artifact_id

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.artifact_id = artifact_id
