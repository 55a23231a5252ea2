"""Session store for workflow state persistence.

SessionStore maps the six logical workflow fields onto a raw key/value
medium. Per-step maps (generated content, approvals, feedback) are each
stored as a single JSON blob to bound the number of keys.

The store never raises on storage failure. A missing, disabled or full
medium is logged and the operation returns its default (reads) or False
(writes), so the workflow keeps running on its in-memory state.
"""

import json
from enum import Enum
from typing import Any, Optional

from protoflow.errors import StorageUnavailableError
from protoflow.storage.media import StorageMedium
from protoflow.utils.logging_config import get_logger, log_fields

_PROBE_KEY = "__storage_test__"


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class StoreField(str, Enum):
    """Logical fields persisted for a workflow session (values are storage keys)."""

    GENERATED_CONTENT = "sdlc_generated_content"
    APPROVED_STATES = "sdlc_approved_states"
    FEEDBACK_STATES = "sdlc_feedback_states"
    PROJECT_PROMPT = "sdlc_project_prompt"
    CREDENTIAL = "sdlc_api_key"
    CURRENT_STEP = "sdlc_current_step"


_MAP_FIELDS = frozenset(
    {StoreField.GENERATED_CONTENT, StoreField.APPROVED_STATES, StoreField.FEEDBACK_STATES}
)


def _default_for(field: StoreField) -> Any:
    if field in _MAP_FIELDS:
        return {}
    if field is StoreField.CURRENT_STEP:
        return "api_input"
    return ""


def _sanitize_map(field: StoreField, raw: dict) -> dict:
    """Coerce a decoded blob to the value type of its field."""
    if field is StoreField.GENERATED_CONTENT:
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}
    if field is StoreField.APPROVED_STATES:
        return {str(k): bool(v) for k, v in raw.items()}
    return {str(k): v if isinstance(v, str) else None for k, v in raw.items()}


class SessionStore:
    """Failure-tolerant persistence of workflow session fields.

    Example:
        >>> store = SessionStore(InMemoryMedium())
        >>> store.save_current_step("user_stories")
        True
        >>> store.get_current_step()
        'user_stories'
    """

    def __init__(self, medium: StorageMedium) -> None:
        self.medium = medium

    # ------------------------------------------------------------------
    # Generic contract
    # ------------------------------------------------------------------
    def is_available(self) -> bool:
        """Probe the medium by writing and removing a test key."""
        try:
            self.medium.set_item(_PROBE_KEY, "test")
            self.medium.remove_item(_PROBE_KEY)
            return True
        except StorageUnavailableError as e:
            _get_logger().warning("Session storage is not available: %s", e)
            return False

    def get(self, field: StoreField) -> Any:
        """Read a field, returning its default when absent, unreadable or corrupt."""
        default = _default_for(field)
        if not self.is_available():
            return default

        try:
            raw = self.medium.get_item(field.value)
        except StorageUnavailableError as e:
            _get_logger().error("Failed to load %s: %s", field.value, e)
            return default

        if raw is None:
            return default
        if field not in _MAP_FIELDS:
            return raw or default

        try:
            decoded = json.loads(raw)
        except ValueError:
            _get_logger().error("Corrupt blob in %s, returning empty mapping", field.value)
            return {}
        if not isinstance(decoded, dict):
            _get_logger().error("Blob in %s is not a mapping, returning empty mapping", field.value)
            return {}
        return _sanitize_map(field, decoded)

    def set(self, field: StoreField, value: Any) -> bool:
        """Write a field. Maps are JSON encoded. Returns False on failure."""
        if not self.is_available():
            return False

        try:
            encoded = json.dumps(value) if field in _MAP_FIELDS else str(value)
            self.medium.set_item(field.value, encoded)
        except (StorageUnavailableError, TypeError, ValueError) as e:
            _get_logger().error("Failed to save %s: %s", field.value, e)
            return False
        return True

    def clear(self) -> bool:
        """Remove all six fields. Returns False if any removal failed."""
        if not self.is_available():
            return False

        cleared = True
        for field in StoreField:
            try:
                self.medium.remove_item(field.value)
            except StorageUnavailableError as e:
                _get_logger().error("Failed to clear %s: %s", field.value, e)
                cleared = False
        if cleared:
            _get_logger().info("Cleared all workflow session data")
        return cleared

    # ------------------------------------------------------------------
    # Generated content
    # ------------------------------------------------------------------
    def get_generated_content(self) -> dict[str, str]:
        content = self.get(StoreField.GENERATED_CONTENT)
        _get_logger().debug("Loaded content for %d steps", len(content))
        return content

    def save_generated_content(self, step_id: str, content: str) -> bool:
        """Merge one step's content into the stored blob."""
        updated = {**self.get_generated_content(), step_id: content}
        saved = self.set(StoreField.GENERATED_CONTENT, updated)
        if saved:
            _get_logger().debug(
                "Saved content for step %s",
                step_id,
                extra=log_fields(step_id=step_id, content_length=len(content)),
            )
        return saved

    def remove_generated_content(self, step_id: str) -> bool:
        """Drop one step's content from the stored blob."""
        content = self.get_generated_content()
        content.pop(step_id, None)
        return self.set(StoreField.GENERATED_CONTENT, content)

    def has_content_for_step(self, step_id: str) -> bool:
        """Whether non-blank content is stored for step_id."""
        content = self.get_generated_content().get(step_id)
        return bool(content and content.strip())

    # ------------------------------------------------------------------
    # Approvals and feedback
    # ------------------------------------------------------------------
    def get_approved_states(self) -> dict[str, bool]:
        return self.get(StoreField.APPROVED_STATES)

    def save_approved_states(self, approved: dict[str, bool]) -> bool:
        saved = self.set(StoreField.APPROVED_STATES, approved)
        if saved:
            _get_logger().debug(
                "Saved approval states: %d steps approved", sum(1 for v in approved.values() if v)
            )
        return saved

    def get_feedback_states(self) -> dict[str, Optional[str]]:
        return self.get(StoreField.FEEDBACK_STATES)

    def save_feedback_states(self, feedback: dict[str, Optional[str]]) -> bool:
        saved = self.set(StoreField.FEEDBACK_STATES, feedback)
        if saved:
            _get_logger().debug(
                "Saved feedback for %d steps", sum(1 for v in feedback.values() if v)
            )
        return saved

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------
    def get_project_prompt(self) -> str:
        return self.get(StoreField.PROJECT_PROMPT)

    def save_project_prompt(self, prompt: str) -> bool:
        return self.set(StoreField.PROJECT_PROMPT, prompt)

    def get_credential(self) -> str:
        return self.get(StoreField.CREDENTIAL)

    def save_credential(self, credential: str) -> bool:
        return self.set(StoreField.CREDENTIAL, credential)

    def get_current_step(self) -> str:
        return self.get(StoreField.CURRENT_STEP)

    def save_current_step(self, step_id: str) -> bool:
        saved = self.set(StoreField.CURRENT_STEP, step_id)
        if saved:
            _get_logger().debug("Current step saved: %s", step_id)
        return saved
