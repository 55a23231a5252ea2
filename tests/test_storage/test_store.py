"""Tests for the session store and in-memory medium."""

import json

import pytest

from protoflow.errors import StorageUnavailableError
from protoflow.storage import InMemoryMedium, SessionStore, StoreField


class TestInMemoryMedium:
    """Tests for InMemoryMedium."""

    def test_set_get_remove(self):
        medium = InMemoryMedium()
        medium.set_item("k", "v")
        assert medium.get_item("k") == "v"

        medium.remove_item("k")
        assert medium.get_item("k") is None

    def test_remove_absent_key_is_not_an_error(self):
        InMemoryMedium().remove_item("missing")

    def test_disabled_medium_raises(self):
        """Test that every operation on a disabled medium raises."""
        medium = InMemoryMedium(available=False)

        with pytest.raises(StorageUnavailableError):
            medium.get_item("k")
        with pytest.raises(StorageUnavailableError):
            medium.set_item("k", "v")

    def test_quota_exceeded_raises(self):
        """Test that writes beyond the byte quota are refused."""
        medium = InMemoryMedium(quota_bytes=10)

        with pytest.raises(StorageUnavailableError) as exc_info:
            medium.set_item("key", "a value that is too long")

        assert exc_info.value.key == "key"
        assert medium.keys() == []


class TestSessionStoreDefaults:
    """Reads on an empty store return defaults."""

    def test_defaults(self, store):
        assert store.get_generated_content() == {}
        assert store.get_approved_states() == {}
        assert store.get_feedback_states() == {}
        assert store.get_project_prompt() == ""
        assert store.get_credential() == ""
        assert store.get_current_step() == "api_input"

    def test_is_available_leaves_no_probe_key(self, store, medium):
        assert store.is_available() is True
        assert "__storage_test__" not in medium.keys()


class TestSessionStoreRoundTrip:
    """Writes are visible to later reads and use the fixed keys."""

    def test_scalar_fields(self, store, medium):
        assert store.save_project_prompt("A todo app") is True
        assert store.save_credential("secret-key") is True
        assert store.save_current_step("design_docs") is True

        assert store.get_project_prompt() == "A todo app"
        assert store.get_credential() == "secret-key"
        assert store.get_current_step() == "design_docs"
        assert medium.get_item("sdlc_current_step") == "design_docs"
        assert medium.get_item("sdlc_api_key") == "secret-key"

    def test_maps_are_stored_as_json_blobs(self, store, medium):
        store.save_approved_states({"user_stories": True})
        store.save_feedback_states({"design_docs": "more diagrams", "user_stories": None})

        assert json.loads(medium.get_item("sdlc_approved_states")) == {"user_stories": True}
        assert store.get_feedback_states() == {"design_docs": "more diagrams", "user_stories": None}

    def test_generated_content_merges_per_step(self, store):
        store.save_generated_content("user_stories", "stories")
        store.save_generated_content("design_docs", "design")

        assert store.get_generated_content() == {"user_stories": "stories", "design_docs": "design"}
        assert store.has_content_for_step("design_docs") is True

    def test_remove_generated_content(self, store):
        store.save_generated_content("user_stories", "stories")
        store.save_generated_content("design_docs", "design")

        store.remove_generated_content("user_stories")

        assert store.get_generated_content() == {"design_docs": "design"}
        assert store.has_content_for_step("user_stories") is False

    def test_blank_content_does_not_count(self, store):
        store.save_generated_content("user_stories", "   ")
        assert store.has_content_for_step("user_stories") is False

    def test_clear_removes_all_fields(self, store, medium):
        store.save_credential("secret-key")
        store.save_current_step("design_docs")
        store.save_generated_content("user_stories", "stories")

        assert store.clear() is True

        assert medium.keys() == []
        assert store.get_current_step() == "api_input"


class TestSessionStoreFailureTolerance:
    """Storage failures never raise out of the store."""

    def test_corrupt_blob_reads_as_empty_mapping(self, store, medium):
        medium.set_item(StoreField.GENERATED_CONTENT.value, "{not json")
        assert store.get_generated_content() == {}

    def test_non_mapping_blob_reads_as_empty_mapping(self, store, medium):
        medium.set_item(StoreField.APPROVED_STATES.value, "[1, 2, 3]")
        assert store.get_approved_states() == {}

    def test_blob_values_are_coerced(self, store, medium):
        medium.set_item(
            StoreField.GENERATED_CONTENT.value, json.dumps({"user_stories": "ok", "design_docs": 5})
        )
        assert store.get_generated_content() == {"user_stories": "ok"}

    def test_unavailable_medium_returns_defaults(self):
        store = SessionStore(InMemoryMedium(available=False))

        assert store.is_available() is False
        assert store.get_current_step() == "api_input"
        assert store.get_generated_content() == {}
        assert store.save_current_step("design_docs") is False
        assert store.clear() is False

    def test_full_medium_fails_writes(self):
        """Test that a quota-exhausted medium is reported unavailable."""
        store = SessionStore(InMemoryMedium(quota_bytes=8))

        assert store.is_available() is False
        assert store.save_project_prompt("A todo app") is False
        assert store.get_project_prompt() == ""

    def test_write_over_quota_returns_false(self):
        """Test that a single oversized write fails without raising."""
        store = SessionStore(InMemoryMedium(quota_bytes=200))

        assert store.save_current_step("user_stories") is True
        assert store.save_generated_content("code_generation", "x" * 500) is False
        assert store.get_current_step() == "user_stories"
