"""Tests for the navigation policy."""

import pytest

from protoflow.workflow.navigation import accessible_steps, is_accessible, locked_message, progress
from protoflow.workflow.state import WorkflowState


class TestIsAccessible:
    """Tests for is_accessible."""

    def test_entry_always_accessible(self):
        assert is_accessible(WorkflowState(current_step_id="deployment"), "api_input")
        assert is_accessible(WorkflowState(), "api_input")

    def test_current_step_accessible(self):
        assert is_accessible(WorkflowState(current_step_id="design_docs"), "design_docs")

    def test_earlier_steps_accessible(self):
        state = WorkflowState(current_step_id="code_review")

        assert is_accessible(state, "user_stories")
        assert is_accessible(state, "code_generation")

    def test_later_step_locked_without_content(self):
        state = WorkflowState(current_step_id="user_stories")

        assert not is_accessible(state, "design_docs")
        assert not is_accessible(state, "completion")

    def test_later_step_with_content_accessible(self):
        state = WorkflowState(
            current_step_id="user_stories",
            content_by_step={"code_generation": "<html></html>"},
        )
        assert is_accessible(state, "code_generation")

    def test_later_step_with_approval_accessible(self):
        state = WorkflowState(current_step_id="user_stories", approved_by_step={"test_cases": True})
        assert is_accessible(state, "test_cases")

    def test_completion_accessible_from_completion(self):
        assert is_accessible(WorkflowState(current_step_id="completion"), "deployment")
        assert is_accessible(WorkflowState(current_step_id="completion"), "completion")

    @pytest.mark.parametrize("step_id", ["nonexistent", "", "USER_STORIES"])
    def test_unknown_steps_never_accessible(self, step_id):
        assert not is_accessible(WorkflowState(current_step_id="completion"), step_id)


class TestHelpers:
    """Tests for accessible_steps, progress and locked_message."""

    def test_accessible_steps(self):
        state = WorkflowState(current_step_id="design_docs")
        assert [step.id for step in accessible_steps(state)] == [
            "api_input",
            "user_stories",
            "design_docs",
        ]

    def test_progress(self):
        assert progress(WorkflowState()) == 0.0
        half = WorkflowState(
            approved_by_step={"user_stories": True, "design_docs": True, "code_generation": True}
        )
        assert progress(half) == 50.0

    def test_locked_message_uses_label(self):
        message = locked_message("code_review")
        assert message.startswith("🔒")
        assert '"Code Review"' in message
