"""Tests for workflow and step export builders."""

import json
from datetime import datetime, timezone

from protoflow.workflow.export import (
    build_step_download,
    build_workflow_export,
    get_download_filename,
)
from protoflow.workflow.state import WorkflowState

NOW = datetime(2024, 5, 17, 9, 30, 15, 123000, tzinfo=timezone.utc)


def _state():
    return WorkflowState(
        project_prompt="A todo app with tags and due dates",
        current_step_id="code_review",
        content_by_step={
            "user_stories": "# Stories",
            "design_docs": "# Design",
            "code_generation": "<html></html>",
        },
        approved_by_step={"user_stories": True, "design_docs": True},
    )


class TestDownloadFilename:
    """Tests for get_download_filename."""

    def test_format(self):
        filename = get_download_filename("sdlc_workflow", "A todo app with tags and due dates", NOW)
        assert filename == "sdlc_workflow_A_todo_app_with_tags_2024-05-17T09-30-15-123Z"

    def test_missing_prompt_uses_project(self):
        assert get_download_filename("user_stories", "", NOW).startswith("user_stories_project_")


class TestWorkflowExport:
    """Tests for build_workflow_export."""

    def test_includes_only_steps_with_content(self):
        export = build_workflow_export(_state(), NOW)

        assert export.project == "A todo app with tags and due dates"
        assert export.download_date == "2024-05-17T09:30:15.123Z"
        assert list(export.steps) == ["user_stories", "design_docs", "code_generation"]
        assert export.steps["user_stories"].label == "User Stories"
        assert export.steps["user_stories"].is_approved is True
        assert export.steps["code_generation"].is_approved is False

    def test_to_json(self):
        data = json.loads(build_workflow_export(_state(), NOW).to_json())

        assert set(data) == {"project", "download_date", "steps"}
        assert data["steps"]["design_docs"] == {
            "label": "Design Docs",
            "content": "# Design",
            "is_approved": True,
        }

    def test_credential_is_never_exported(self):
        state = _state()
        state.credential = "AIzaSySecretKey12345678"

        assert "AIzaSySecretKey12345678" not in build_workflow_export(state, NOW).to_json()


class TestStepDownload:
    """Tests for build_step_download."""

    def test_markdown_step(self):
        download = build_step_download(_state(), "design_docs", NOW)

        assert download.content == "# Design"
        assert download.mime_type == "text/markdown"
        assert download.filename.startswith("design_docs_A_todo_app")
        assert download.filename.endswith(".md")

    def test_code_step_is_html(self):
        download = build_step_download(_state(), "code_generation", NOW)

        assert download.mime_type == "text/html"
        assert download.filename.endswith(".html")

    def test_step_without_content(self):
        assert build_step_download(_state(), "test_cases", NOW) is None
