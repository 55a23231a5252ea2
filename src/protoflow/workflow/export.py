"""Export snapshots of a workflow session.

Builds the documents the presentation layer offers for download: the full
workflow (every step with content, plus the project description and a
timestamp) and single-step files. Nothing here touches the filesystem.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, Field

from protoflow.workflow.state import WorkflowState
from protoflow.workflow.steps import WORKFLOW_STEPS, get_step


class StepExport(BaseModel):
    """Exported content of one step."""

    label: str
    content: str
    is_approved: bool = False


class WorkflowExport(BaseModel):
    """Exported workflow document."""

    project: str
    download_date: str
    steps: Dict[str, StepExport] = Field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize as indented JSON."""
        return self.model_dump_json(indent=2)


@dataclass(frozen=True)
class StepDownload:
    """A single step prepared for download."""

    content: str
    mime_type: str
    filename: str


def _timestamp(now: datetime) -> str:
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_download_filename(
    prefix: str, project_prompt: Optional[str], now: Optional[datetime] = None
) -> str:
    """Build a download filename (without extension).

    Format: ``<prefix>_<first 20 chars of the prompt, whitespace as _>_<timestamp>``
    with ``:`` and ``.`` in the timestamp replaced by ``-``.

    Examples:
        >>> get_download_filename("user_stories", "Todo app", datetime(2024, 1, 2, tzinfo=timezone.utc))
        'user_stories_Todo_app_2024-01-02T00-00-00-000Z'
    """
    now = now or datetime.now(timezone.utc)
    project_name = (
        "".join("_" if ch.isspace() else ch for ch in project_prompt[:20])
        if project_prompt
        else "project"
    )
    date_str = _timestamp(now).replace(":", "-").replace(".", "-")
    return f"{prefix}_{project_name}_{date_str}"


def build_workflow_export(
    state: WorkflowState, now: Optional[datetime] = None
) -> WorkflowExport:
    """Collect every step with content into one export document."""
    now = now or datetime.now(timezone.utc)
    steps = {
        step.id: StepExport(
            label=step.label,
            content=state.content_by_step[step.id],
            is_approved=state.is_approved(step.id),
        )
        for step in WORKFLOW_STEPS
        if state.content_by_step.get(step.id)
    }
    return WorkflowExport(project=state.project_prompt, download_date=_timestamp(now), steps=steps)


def build_step_download(
    state: WorkflowState, step_id: str, now: Optional[datetime] = None
) -> Optional[StepDownload]:
    """Prepare one step's content for download, or None if it has no content.

    The code artifact is exported as HTML, every other step as Markdown.
    """
    content = state.content_by_step.get(step_id)
    if not content:
        return None

    if get_step(step_id).is_code_artifact:
        mime_type, extension = "text/html", ".html"
    else:
        mime_type, extension = "text/markdown", ".md"
    filename = get_download_filename(step_id, state.project_prompt, now) + extension
    return StepDownload(content=content, mime_type=mime_type, filename=filename)
