"""Workflow state definitions.

This module defines the data structures for tracking workflow state without
implementing any transition logic, generation calls, or persistence.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from protoflow.workflow.steps import ENTRY_STEP_ID


class NotificationType(str, Enum):
    """Severity of a transient user notification.

    Attributes:
        ERROR: An operation failed (e.g. generation failure)
        SUCCESS: An intent completed (approval, navigation)
        WARNING: An intent was refused (locked step)
        INFO: Informational (feedback received)
    """

    ERROR = "error"
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"


class Notification(BaseModel):
    """Transient message for the presentation layer."""

    message: str
    type: NotificationType = NotificationType.INFO
    step_id: Optional[str] = None


class WorkflowState(BaseModel):
    """Complete state of one generation workflow session.

    Attributes:
        credential: Generation API key; empty means not configured
        project_prompt: Project description supplied at entry
        current_step_id: Active step id or sentinel
        content_by_step: Generated (or user-edited) text per step
        approved_by_step: Approval flag per step; absent means not approved
        feedback_by_step: Pending feedback per step; a non-null entry means
            "regenerate incorporating this text" and is consumed by the next
            generation pass
        in_flight: True while a generation call is outstanding
    """

    credential: str = Field(default="", repr=False)
    project_prompt: str = ""
    current_step_id: str = ENTRY_STEP_ID
    content_by_step: Dict[str, str] = Field(default_factory=dict)
    approved_by_step: Dict[str, bool] = Field(default_factory=dict)
    feedback_by_step: Dict[str, Optional[str]] = Field(default_factory=dict)
    in_flight: bool = False

    def has_content(self, step_id: str) -> bool:
        """Whether non-blank content exists for step_id."""
        content = self.content_by_step.get(step_id)
        return bool(content and content.strip())

    def is_approved(self, step_id: str) -> bool:
        return self.approved_by_step.get(step_id, False)

    def pending_feedback(self, step_id: str) -> Optional[str]:
        return self.feedback_by_step.get(step_id)
