"""Navigation policy: which steps the user may jump to directly.

A step is accessible when it is the entry step, the current step, any step
earlier in the sequence than the current one, or any step that already has
content or an approval. Forward jumps into unvisited, ungenerated steps are
blocked so the generation pipeline cannot be skipped.

All functions are pure and read a WorkflowState snapshot.
"""

from protoflow.workflow.state import WorkflowState
from protoflow.workflow.steps import (
    ENTRY_STEP_ID,
    WORKFLOW_STEPS,
    Step,
    generating_steps,
    get_step,
    is_known_step,
)


def is_accessible(state: WorkflowState, step_id: str) -> bool:
    """Return True if step_id may be navigated to from the given state.

    Unknown step ids are never accessible.

    Examples:
        >>> state = WorkflowState(current_step_id="design_docs")
        >>> is_accessible(state, "user_stories")
        True
        >>> is_accessible(state, "test_cases")
        False
    """
    if not is_known_step(step_id):
        return False
    if step_id == ENTRY_STEP_ID or step_id == state.current_step_id:
        return True
    if get_step(step_id).ordinal < get_step(state.current_step_id).ordinal:
        return True
    return state.has_content(step_id) or state.is_approved(step_id)


def accessible_steps(state: WorkflowState) -> list[Step]:
    """Return the workflow steps (entry included) currently accessible, in order."""
    return [step for step in WORKFLOW_STEPS if is_accessible(state, step.id)]


def progress(state: WorkflowState) -> float:
    """Percentage (0-100) of generating steps approved."""
    steps = generating_steps()
    approved = sum(1 for step in steps if state.is_approved(step.id))
    return approved / len(steps) * 100 if steps else 0.0


def locked_message(step_id: str) -> str:
    """User-facing warning shown when navigation to step_id is refused."""
    label = get_step(step_id).label if is_known_step(step_id) else step_id
    return f'🔒 "{label}" isn\'t available yet. Please complete the previous steps first.'
