"""Workflow state, step catalog, navigation and orchestration.

This module provides:
- The static step catalog
- State definitions for the session
- The navigation policy
- The workflow engine (generation, review, feedback, navigation)
- Export document builders
"""

from protoflow.workflow.steps import (
    ENTRY_STEP_ID,
    TERMINAL_STEP_ID,
    WORKFLOW_STEPS,
    Step,
    get_step,
)
from protoflow.workflow.state import Notification, NotificationType, WorkflowState
from protoflow.workflow.navigation import accessible_steps, is_accessible, progress
from protoflow.workflow.engine import WorkflowEngine
from protoflow.workflow.export import (
    WorkflowExport,
    build_step_download,
    build_workflow_export,
    get_download_filename,
)

__all__ = [
    "ENTRY_STEP_ID",
    "TERMINAL_STEP_ID",
    "WORKFLOW_STEPS",
    "Step",
    "get_step",
    "Notification",
    "NotificationType",
    "WorkflowState",
    "accessible_steps",
    "is_accessible",
    "progress",
    "WorkflowEngine",
    "WorkflowExport",
    "build_step_download",
    "build_workflow_export",
    "get_download_filename",
]
