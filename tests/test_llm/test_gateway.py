"""Tests for the LiteLLM generation gateway."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from protoflow.errors import GenerationFailedError, MissingCredentialError
from protoflow.integrations.llm_client import (
    LiteLLMGateway,
    strip_code_fences,
)

API_KEY = "AIzaSyTestKey1234567890abcdef"


def _response(text):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = text
    return response


@pytest.fixture
def env_vars_gemini(monkeypatch):
    """Set up environment variables for the Gemini provider."""
    monkeypatch.setenv("LLM_PROVIDER", "gemini")
    monkeypatch.setenv("LLM_DEFAULT_MODEL", "gemini-2.5-flash")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.3")


class TestStripCodeFences:
    """Tests for strip_code_fences."""

    def test_strips_html_fence(self):
        assert strip_code_fences("```html\n<html></html>\n```") == "<html></html>"

    def test_strips_uppercase_tag_and_bare_fence(self):
        assert strip_code_fences("```HTML\n<p>a</p>\n```") == "<p>a</p>"
        assert strip_code_fences("```\n<p>a</p>\n```") == "<p>a</p>"

    def test_surrounding_whitespace(self):
        assert strip_code_fences("\n\n  ```html\n<p>a</p>\n```  \n") == "<p>a</p>"

    def test_unfenced_text_unchanged(self):
        assert strip_code_fences("<!DOCTYPE html><html></html>") == "<!DOCTYPE html><html></html>"

    def test_inner_fences_untouched(self):
        text = "<pre>\n```js\nx()\n```\n</pre>"
        assert strip_code_fences(text) == text


class TestLiteLLMGateway:
    """Tests for LiteLLMGateway.generate."""

    @pytest.mark.asyncio
    async def test_returns_generated_text(self, env_vars_gemini):
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _response("# User Stories\n...")

            result = await LiteLLMGateway().generate("Write stories", "User Stories", API_KEY)

            assert result == "# User Stories\n..."
            mock_completion.assert_called_once()

    @pytest.mark.asyncio
    async def test_passes_credential_model_and_settings(self, env_vars_gemini):
        """Test that the call carries the user's key and configured model."""
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _response("ok")

            await LiteLLMGateway().generate("Write stories", "User Stories", API_KEY)

            kwargs = mock_completion.call_args.kwargs
            assert kwargs["api_key"] == API_KEY
            assert kwargs["model"] == "gemini-2.5-flash"
            assert kwargs["custom_llm_provider"] == "gemini"
            assert kwargs["temperature"] == 0.3
            messages = kwargs["messages"]
            assert messages[0]["role"] == "system"
            assert "'User Stories' phase" in messages[0]["content"]
            assert "Markdown" in messages[0]["content"]
            assert messages[1] == {"role": "user", "content": "Write stories"}

    @pytest.mark.asyncio
    async def test_code_phase_uses_code_system_prompt_and_strips_fences(self, env_vars_gemini):
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _response("```html\n<html><body></body></html>\n```")

            result = await LiteLLMGateway().generate("Build it", "Code Generation", API_KEY)

            assert result == "<html><body></body></html>"
            system = mock_completion.call_args.kwargs["messages"][0]["content"]
            assert "raw HTML" in system

    @pytest.mark.asyncio
    async def test_fences_kept_for_markdown_phases(self, env_vars_gemini):
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = _response("```python\nprint(1)\n```")

            result = await LiteLLMGateway().generate("Write tests", "Test Cases", API_KEY)

            assert result == "```python\nprint(1)\n```"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("credential", ["", "   "])
    async def test_missing_credential(self, env_vars_gemini, credential):
        """Test that no call is made without a credential."""
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            with pytest.raises(MissingCredentialError):
                await LiteLLMGateway().generate("Write stories", "User Stories", credential)

            mock_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_generation_failed(self, env_vars_gemini):
        error = Exception("API key not valid")
        error.status_code = 400
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.side_effect = error

            with pytest.raises(GenerationFailedError) as exc_info:
                await LiteLLMGateway().generate("Write stories", "User Stories", API_KEY)

            assert exc_info.value.status_code == 400
            assert "API key not valid" in exc_info.value.reason
            mock_completion.assert_called_once()

    @pytest.mark.asyncio
    async def test_malformed_response(self, env_vars_gemini):
        response = MagicMock()
        response.choices = []
        with patch("litellm.acompletion", new_callable=AsyncMock) as mock_completion:
            mock_completion.return_value = response

            with pytest.raises(GenerationFailedError) as exc_info:
                await LiteLLMGateway().generate("Write stories", "User Stories", API_KEY)

            assert exc_info.value.reason == "Invalid response structure from the generation API"
