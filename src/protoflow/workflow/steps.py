"""Static catalog of workflow steps.

The workflow is a fixed, ordered sequence of phases bracketed by two
sentinels: the entry step (credential and project description input) and
the terminal step (completion screen). Neither sentinel generates content.

Each generating step owns a prompt source:

- TemplateSource: a template with a ``{prompt}`` placeholder for the project
  description.
- DerivedSource: a prompt synthesized from another step's generated content
  (the code review is built from the generated code).

The catalog is built at import time and never mutated.
"""

from dataclasses import dataclass
from typing import Final, Mapping, Optional, Union

from protoflow.integrations.prompts import (
    CODE_GENERATION_PROMPT_V1,
    CODE_REVIEW_PROMPT_V1,
    DEPLOYMENT_PROMPT_V1,
    DESIGN_DOCS_PROMPT_V1,
    NO_CODE_FOR_REVIEW_NOTICE,
    TEST_CASES_PROMPT_V1,
    USER_STORIES_PROMPT_V1,
)

ENTRY_STEP_ID: Final[str] = "api_input"
TERMINAL_STEP_ID: Final[str] = "completion"
CODE_ARTIFACT_STEP_ID: Final[str] = "code_generation"


@dataclass(frozen=True)
class TemplateSource:
    """Prompt rendered by substituting the project description into a template."""

    template: str

    def render(self, project_prompt: str, content_by_step: Mapping[str, str]) -> str:
        """Return the rendered prompt."""
        return self.template.format(prompt=project_prompt)


@dataclass(frozen=True)
class DerivedSource:
    """Prompt synthesized from another step's generated content.

    Attributes:
        from_step_id: Step whose content feeds the prompt
        template: Template with ``{prompt}`` and ``{code}`` placeholders
        placeholder: Content used instead of generating when the source
            step has no content yet
    """

    from_step_id: str
    template: str
    placeholder: str

    def render(self, project_prompt: str, content_by_step: Mapping[str, str]) -> Optional[str]:
        """Return the rendered prompt, or None when the source content is missing."""
        source_content = content_by_step.get(self.from_step_id)
        if not source_content or not source_content.strip():
            return None
        return self.template.format(prompt=project_prompt, code=source_content)


PromptSource = Union[TemplateSource, DerivedSource]


@dataclass(frozen=True)
class Step:
    """Immutable definition of one workflow phase.

    Attributes:
        id: Unique step key
        label: Display label, also sent to the generator as the phase name
        ordinal: Position in the fixed sequence (entry sentinel is 0)
        source: Prompt source, None for sentinels
        is_code_artifact: True for the step whose content is raw HTML that
            the user may edit directly
    """

    id: str
    label: str
    ordinal: int
    source: Optional[PromptSource] = None
    is_code_artifact: bool = False

    @property
    def is_sentinel(self) -> bool:
        """Whether this step is the entry or terminal marker."""
        return self.source is None


WORKFLOW_STEPS: Final[tuple[Step, ...]] = (
    Step(ENTRY_STEP_ID, "Getting Started", 0),
    Step("user_stories", "User Stories", 1, TemplateSource(USER_STORIES_PROMPT_V1)),
    Step("design_docs", "Design Docs", 2, TemplateSource(DESIGN_DOCS_PROMPT_V1)),
    Step(
        CODE_ARTIFACT_STEP_ID,
        "Code Generation",
        3,
        TemplateSource(CODE_GENERATION_PROMPT_V1),
        is_code_artifact=True,
    ),
    Step(
        "code_review",
        "Code Review",
        4,
        DerivedSource(CODE_ARTIFACT_STEP_ID, CODE_REVIEW_PROMPT_V1, NO_CODE_FOR_REVIEW_NOTICE),
    ),
    Step("test_cases", "Test Cases", 5, TemplateSource(TEST_CASES_PROMPT_V1)),
    Step("deployment", "Deployment Plan", 6, TemplateSource(DEPLOYMENT_PROMPT_V1)),
)

TERMINAL_STEP: Final[Step] = Step(TERMINAL_STEP_ID, "Completion", len(WORKFLOW_STEPS))

_STEPS_BY_ID: Final[dict[str, Step]] = {
    step.id: step for step in (*WORKFLOW_STEPS, TERMINAL_STEP)
}

FIRST_STEP_ID: Final[str] = WORKFLOW_STEPS[1].id


def is_known_step(step_id: str) -> bool:
    """Return True if step_id is a declared step or a sentinel."""
    return step_id in _STEPS_BY_ID


def is_sentinel(step_id: str) -> bool:
    """Return True for the entry and terminal markers."""
    return step_id in (ENTRY_STEP_ID, TERMINAL_STEP_ID)


def get_step(step_id: str) -> Step:
    """Look up a step by id.

    Raises:
        KeyError: If no step with the given id exists
    """
    if step_id not in _STEPS_BY_ID:
        available = ", ".join(_STEPS_BY_ID)
        raise KeyError(f"Step '{step_id}' not defined. Available steps: {available}")
    return _STEPS_BY_ID[step_id]


def ordinal_of(step_id: str) -> int:
    """Return the position of a step in the sequence."""
    return get_step(step_id).ordinal


def next_step_id(step_id: str) -> str:
    """Return the id following step_id, or the terminal id after the last step."""
    ordinal = ordinal_of(step_id)
    if ordinal + 1 < len(WORKFLOW_STEPS):
        return WORKFLOW_STEPS[ordinal + 1].id
    return TERMINAL_STEP_ID


def generating_steps() -> tuple[Step, ...]:
    """Return the steps that produce content, in order."""
    return tuple(step for step in WORKFLOW_STEPS if not step.is_sentinel)
