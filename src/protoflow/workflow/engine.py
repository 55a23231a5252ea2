"""Workflow engine: the state machine driving step generation and review.

The engine owns the authoritative WorkflowState and is the only component
allowed to mutate it. Every mutation is mirrored synchronously into the
SessionStore so a new engine built on the same store reconstructs an
equivalent state.

Transitions:
    api_input --start--> first step --approve--> next step ... --approve--> completion
    any accessible step <--navigate--> any accessible step
    any state --reset--> api_input (store cleared)

Generation is never triggered implicitly. The presentation layer calls
``maybe_generate()`` after every intent; the call is idempotent and issues
at most one generation request per step unless feedback invalidates the
step's content.

Concurrency:
    A single global ``in_flight`` flag is checked and set before the first
    await, so concurrent reconciliation triggers on one event loop never
    overlap. The flag survives reset until the outstanding call returns.
    Requests are tagged with the session epoch (bumped by reset) and
    the target step's revision (bumped by feedback and direct edits); a
    response whose tag is stale is discarded.
"""

from typing import TYPE_CHECKING, Callable, Optional

from protoflow.errors import (
    EmptyFeedbackError,
    ErrorContext,
    GenerationFailedError,
    InputValidationError,
    MissingCredentialError,
    StepLockedError,
)
from protoflow.integrations.prompts import FEEDBACK_SUFFIX_V1
from protoflow.storage.store import SessionStore
from protoflow.utils.config import get_settings
from protoflow.utils.logging_config import get_logger, log_fields
from protoflow.workflow.navigation import is_accessible, locked_message
from protoflow.workflow.state import Notification, NotificationType, WorkflowState
from protoflow.workflow.steps import (
    ENTRY_STEP_ID,
    FIRST_STEP_ID,
    DerivedSource,
    Step,
    get_step,
    is_known_step,
    is_sentinel,
    next_step_id,
)

if TYPE_CHECKING:
    from protoflow.integrations.llm_client import GenerationGateway

NotificationListener = Callable[[Notification], None]


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class WorkflowEngine:
    """Orchestrates generation, review, feedback and navigation for one session.

    Example:
        >>> engine = WorkflowEngine(LiteLLMGateway(), SessionStore(InMemoryMedium()))
        >>> engine.start("a-valid-api-key-of-20+chars", "Build a todo app with tags")
        >>> await engine.maybe_generate()
        True
        >>> engine.approve("user_stories").message
        '✅ User Stories approved!'
    """

    def __init__(
        self,
        gateway: "GenerationGateway",
        store: SessionStore,
        *,
        min_credential_length: Optional[int] = None,
        min_prompt_length: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self._gateway = gateway
        self._store = store
        self.min_credential_length = (
            settings.MIN_CREDENTIAL_LENGTH
            if min_credential_length is None
            else min_credential_length
        )
        self.min_prompt_length = (
            settings.MIN_PROMPT_LENGTH if min_prompt_length is None else min_prompt_length
        )
        self._listeners: list[NotificationListener] = []
        self._epoch = 0
        self._step_revisions: dict[str, int] = {}
        self._inflight_token: Optional[object] = None
        self._state = self._load_state()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------
    def _load_state(self) -> WorkflowState:
        """Rebuild state from the store, falling back to defaults."""
        current_step_id = self._store.get_current_step()
        if not is_known_step(current_step_id):
            _get_logger().warning(
                "Stored current step '%s' is unknown, defaulting to %s",
                current_step_id,
                ENTRY_STEP_ID,
            )
            current_step_id = ENTRY_STEP_ID

        state = WorkflowState(
            credential=self._store.get_credential(),
            project_prompt=self._store.get_project_prompt(),
            current_step_id=current_step_id,
            content_by_step=self._store.get_generated_content(),
            approved_by_step=self._store.get_approved_states(),
            feedback_by_step=self._store.get_feedback_states(),
        )

        # Pending feedback means the step's content is stale and unapproved
        for step_id, feedback in state.feedback_by_step.items():
            if feedback is not None:
                state.content_by_step.pop(step_id, None)
                state.approved_by_step[step_id] = False

        _get_logger().info(
            "Workflow state loaded",
            extra=log_fields(
                current_step=state.current_step_id,
                steps_with_content=len(state.content_by_step),
            ),
        )
        return state

    @property
    def state(self) -> WorkflowState:
        """Deep-copied snapshot of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def current_step_id(self) -> str:
        return self._state.current_step_id

    @property
    def in_flight(self) -> bool:
        return self._state.in_flight

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a notification listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(
        self, message: str, type: NotificationType, step_id: Optional[str] = None
    ) -> Notification:
        notification = Notification(message=message, type=type, step_id=step_id)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                _get_logger().exception("Notification listener failed")
        return notification

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------
    def start(self, credential: str, project_prompt: str) -> None:
        """Store credential and project description and enter the first step.

        Raises:
            InputValidationError: If not at the entry step, or if the
                credential or description fails the sanity checks. State is
                left unchanged.
        """
        if self._state.current_step_id != ENTRY_STEP_ID:
            raise InputValidationError(
                "A project can only be started from the Getting Started step."
            )

        credential = (credential or "").strip()
        project_prompt = (project_prompt or "").strip()

        if not credential:
            raise InputValidationError(
                "🔑 Please enter your Google AI API key to continue.", field="credential"
            )
        if len(credential) < self.min_credential_length:
            raise InputValidationError(
                "⚠️ API key seems too short. Please check your Google AI Studio key.",
                field="credential",
            )
        if not project_prompt:
            raise InputValidationError(
                "📝 Please describe your project so we can generate the right SDLC workflow.",
                field="project_prompt",
            )
        if len(project_prompt) < self.min_prompt_length:
            raise InputValidationError(
                "💡 Please provide a more detailed project description "
                f"(at least {self.min_prompt_length} characters).",
                field="project_prompt",
            )

        self._state.credential = credential
        self._state.project_prompt = project_prompt
        self._state.current_step_id = FIRST_STEP_ID
        self._store.save_credential(credential)
        self._store.save_project_prompt(project_prompt)
        self._store.save_current_step(FIRST_STEP_ID)

        _get_logger().info(
            "Starting workflow",
            extra=log_fields(prompt_length=len(project_prompt), first_step=FIRST_STEP_ID),
        )

    async def maybe_generate(self) -> bool:
        """Generate content for the current step if, and only if, it is needed.

        Generation is needed when the current step has no content (neither
        in memory nor in the store) or has pending feedback. Pending feedback
        is appended to the prompt and consumed before the call.

        Returns:
            True if a generation pass ran (including one that failed or was
            satisfied by a placeholder), False if nothing needed doing.

        Notes:
            - Never raises for generation failures; they become error
              notifications and the step stays ungenerated
            - ``in_flight`` is always cleared when the pass ends
        """
        state = self._state
        step_id = state.current_step_id

        if is_sentinel(step_id) or state.in_flight:
            return False
        if not state.credential or not state.project_prompt:
            return False

        feedback = state.pending_feedback(step_id)
        has_content = state.has_content(step_id) or self._store.has_content_for_step(step_id)
        if has_content and feedback is None:
            return False

        step = get_step(step_id)
        token = object()
        self._inflight_token = token
        state.in_flight = True
        epoch = self._epoch
        revision = self._step_revisions.get(step_id, 0)

        try:
            prompt = step.source.render(state.project_prompt, state.content_by_step)
            if feedback is not None:
                self._consume_feedback(step_id)

            if prompt is None:
                # Only a DerivedSource renders nothing: its source step has no content yet
                derived: DerivedSource = step.source
                _get_logger().info(
                    "No %s content for %s, storing placeholder", derived.from_step_id, step_id
                )
                self._apply_content(step, derived.placeholder, epoch, revision)
                return True

            if feedback is not None:
                prompt += FEEDBACK_SUFFIX_V1.format(feedback=feedback)

            try:
                with ErrorContext("generate", step_id=step_id) as ctx:
                    ctx.add_info("prompt_length", len(prompt))
                    ctx.add_info("with_feedback", feedback is not None)
                    text = await self._gateway.generate(prompt, step.label, state.credential)
            except (MissingCredentialError, GenerationFailedError) as e:
                self._report_failure(step, e.message, epoch)
                return True
            except Exception as e:
                _get_logger().exception("Unexpected generation error for %s", step_id)
                self._report_failure(step, f"{type(e).__name__}: {e}", epoch)
                return True

            if not text or not text.strip():
                _get_logger().warning("Generated content is empty for %s", step_id)
                return True

            self._apply_content(step, text, epoch, revision)
            return True
        finally:
            if self._inflight_token is token:
                self._inflight_token = None
                self._state.in_flight = False

    def approve(self, step_id: str) -> Notification:
        """Approve a step and advance to the one after it.

        Raises:
            StepLockedError: If step_id is a sentinel, unknown, or a later
                step that has never been reached
        """
        step = self._require_generating_step(step_id, "approved")
        if not is_accessible(self._state, step_id):
            raise StepLockedError(locked_message(step_id), step_id=step_id)

        self._state.approved_by_step[step_id] = True
        self._store.save_approved_states(self._state.approved_by_step)

        following = next_step_id(step_id)
        self._state.current_step_id = following
        self._store.save_current_step(following)

        _get_logger().info("Step approved: %s, advancing to %s", step_id, following)
        return self._notify(f"✅ {step.label} approved!", NotificationType.SUCCESS, step_id)

    def submit_feedback(self, step_id: str, text: str) -> Notification:
        """Invalidate a step's content and queue regeneration with feedback.

        The current step does not move; the next ``maybe_generate()`` on this
        step regenerates it.

        Raises:
            EmptyFeedbackError: If text is blank (state unchanged)
            StepLockedError: If step_id is a sentinel or unknown
        """
        if not text or not text.strip():
            raise EmptyFeedbackError("Feedback cannot be empty", step_id=step_id)
        self._require_generating_step(step_id, "given feedback")

        self._state.feedback_by_step[step_id] = text
        self._state.approved_by_step[step_id] = False
        self._state.content_by_step.pop(step_id, None)
        self._bump_revision(step_id)

        self._store.save_feedback_states(self._state.feedback_by_step)
        self._store.save_approved_states(self._state.approved_by_step)
        self._store.remove_generated_content(step_id)

        _get_logger().info(
            "Feedback received for %s", step_id, extra=log_fields(feedback_length=len(text))
        )
        return self._notify(
            "📝 Feedback received! Regenerating content...", NotificationType.INFO, step_id
        )

    def navigate(self, step_id: str) -> Optional[Notification]:
        """Move to an accessible step.

        Returns:
            A success notification when the target has content (and is not
            the entry step), otherwise None.

        Raises:
            StepLockedError: If the navigation policy refuses the target
                (state unchanged)
        """
        if not is_accessible(self._state, step_id):
            _get_logger().warning("Navigation to locked step refused: %s", step_id)
            raise StepLockedError(locked_message(step_id), step_id=step_id)

        self._state.current_step_id = step_id
        self._store.save_current_step(step_id)
        _get_logger().info("Navigated to %s", step_id)

        if step_id != ENTRY_STEP_ID and self._state.has_content(step_id):
            label = get_step(step_id).label
            return self._notify(f"Navigated to {label}", NotificationType.SUCCESS, step_id)
        return None

    def reset(self) -> None:
        """Discard the session: defaults in memory and an empty store.

        An outstanding generation call is orphaned: its response is dropped,
        but it keeps holding the in-flight guard until its own pass ends.
        """
        self._epoch += 1
        self._step_revisions.clear()
        self._state = WorkflowState(in_flight=self._inflight_token is not None)
        self._store.clear()
        _get_logger().info("Workflow reset, starting a new project")

    def update_step_content(self, step_id: str, text: str) -> None:
        """Overwrite a step's content with a user edit.

        Approval and feedback are left untouched.

        Raises:
            StepLockedError: If step_id is a sentinel or unknown
        """
        self._require_generating_step(step_id, "edited")
        self._state.content_by_step[step_id] = text
        self._bump_revision(step_id)
        self._store.save_generated_content(step_id, text)
        _get_logger().info(
            "Content updated for %s", step_id, extra=log_fields(content_length=len(text))
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _require_generating_step(self, step_id: str, action: str) -> Step:
        if not is_known_step(step_id) or is_sentinel(step_id):
            raise StepLockedError(f"Step '{step_id}' cannot be {action}", step_id=step_id)
        return get_step(step_id)

    def _bump_revision(self, step_id: str) -> None:
        self._step_revisions[step_id] = self._step_revisions.get(step_id, 0) + 1

    def _consume_feedback(self, step_id: str) -> None:
        """One-shot transition: pending feedback is cleared once it is in a prompt."""
        self._state.feedback_by_step[step_id] = None
        self._store.save_feedback_states(self._state.feedback_by_step)

    def _apply_content(self, step: Step, text: str, epoch: int, revision: int) -> None:
        """Store a generation result unless the request it answers is stale."""
        if epoch != self._epoch or revision != self._step_revisions.get(step.id, 0):
            _get_logger().info("Discarding stale generation result for %s", step.id)
            return

        self._state.content_by_step[step.id] = text
        self._store.save_generated_content(step.id, text)
        _get_logger().info(
            "Content saved for %s", step.id, extra=log_fields(content_length=len(text))
        )

    def _report_failure(self, step: Step, reason: str, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._notify(
            f"Failed to generate content for {step.label}. Please check your API key "
            f"and network connection. Error: {reason}",
            NotificationType.ERROR,
            step.id,
        )
