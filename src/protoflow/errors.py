"""Error taxonomy for the generation workflow.

Every failure the engine can meet is represented here. None of them is fatal:

- Validation-class errors (InputValidationError, EmptyFeedbackError,
  StepLockedError) are raised synchronously to the caller, which keeps the
  user on the same screen with an inline message or warning.
- Generation-class errors (MissingCredentialError, GenerationFailedError)
  are raised by the gateway and converted by the engine into a transient
  error notification; the step stays ungenerated.
- StorageUnavailableError is raised by storage media and swallowed (logged)
  at the SessionStore boundary so storage failure never blocks the workflow.

The module also provides ErrorContext, a context manager that logs the
duration and outcome of an operation.
"""

import time
from typing import Any, Optional

from protoflow.utils.logging_config import get_logger, log_fields


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class WorkflowError(Exception):
    """Base exception for workflow-related errors."""

    def __init__(self, message: str, step_id: Optional[str] = None, **context: Any):
        """Initialize workflow error with context.

        Args:
            message: Error message
            step_id: Step the error relates to, if any
            **context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.step_id = step_id
        self.context = context
        self.timestamp = time.time()

    def __str__(self) -> str:
        """String representation with step id if available."""
        base = super().__str__()
        if self.step_id:
            return f"[{self.step_id}] {base}"
        return base


class InputValidationError(WorkflowError):
    """Bad user input when starting a project."""

    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        """Initialize input validation error.

        Args:
            message: User-facing explanation
            field: Input that failed validation ("credential" or "project_prompt")
            **context: Additional context
        """
        super().__init__(message, None, **context)
        self.field = field


class EmptyFeedbackError(WorkflowError):
    """Feedback text was blank."""


class StepLockedError(WorkflowError):
    """Navigation target is not accessible under the navigation policy."""


class MissingCredentialError(WorkflowError):
    """A generation call was attempted without a credential."""


class GenerationFailedError(WorkflowError):
    """The generation call failed (transport, remote error, or malformed response)."""

    def __init__(
        self,
        reason: str,
        step_id: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """Initialize generation failure.

        Args:
            reason: Human-readable reason surfaced to the user
            step_id: Step whose generation failed
            status_code: HTTP status code if the provider reported one
            **context: Additional context
        """
        super().__init__(reason, step_id, **context)
        self.reason = reason
        self.status_code = status_code


class StorageUnavailableError(WorkflowError):
    """The storage medium is missing, disabled, full, or returned an error."""

    def __init__(self, message: str, key: Optional[str] = None, **context: Any):
        """Initialize storage error.

        Args:
            message: Error message
            key: Storage key involved, if any
            **context: Additional context
        """
        super().__init__(message, None, **context)
        self.key = key


class ErrorContext:
    """Context manager for tracking error information during execution.

    Usage:
        with ErrorContext("generate", step_id="design_docs") as ctx:
            # Code that might fail
            ctx.add_info("prompt_length", 1200)
    """

    def __init__(self, operation: str, step_id: Optional[str] = None):
        """Initialize error context.

        Args:
            operation: Name of operation being performed
            step_id: Step the operation works on
        """
        self.operation = operation
        self.step_id = step_id
        self.info: dict[str, Any] = {}
        self.start_time: Optional[float] = None

    def __enter__(self) -> "ErrorContext":
        """Enter context, recording start time."""
        self.start_time = time.time()
        _get_logger().debug("Starting operation: %s", self.operation)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit context, logging duration and any errors."""
        duration = time.time() - self.start_time if self.start_time else 0
        fields = log_fields(step_id=self.step_id, duration=round(duration, 3), **self.info)

        if exc_type is None:
            _get_logger().debug(
                "Operation '%s' completed in %.2fs", self.operation, duration, extra=fields
            )
        else:
            _get_logger().error(
                "Operation '%s' failed after %.2fs: %s",
                self.operation,
                duration,
                exc_val,
                extra=fields,
            )

        # Don't suppress the exception
        return False

    def add_info(self, key: str, value: Any) -> None:
        """Add contextual information.

        Args:
            key: Information key
            value: Information value
        """
        self.info[key] = value


__all__ = [
    "WorkflowError",
    "InputValidationError",
    "EmptyFeedbackError",
    "StepLockedError",
    "MissingCredentialError",
    "GenerationFailedError",
    "StorageUnavailableError",
    "ErrorContext",
]
