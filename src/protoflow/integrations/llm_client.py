"""Generation gateway over LiteLLM.

This module wraps the external text-generation call with one uniform
contract used by the workflow engine:

    generate(rendered_prompt, phase_label, credential) -> text

Exactly one outbound call is made per invocation. There is no retry and no
caching: deciding when to (re)generate is the engine's job.

Public API:
    GenerationGateway: Protocol implemented by every gateway
    LiteLLMGateway: Production gateway calling ``litellm.acompletion``
    strip_code_fences: Remove surrounding triple-backtick fences

Example:
    >>> gateway = LiteLLMGateway()
    >>> text = await gateway.generate(prompt, "User Stories", api_key)
"""

import re
from typing import Any, Optional, Protocol

import litellm

from protoflow.errors import GenerationFailedError, MissingCredentialError
from protoflow.integrations.prompts import CODE_SYSTEM_PROMPT_V1, SYSTEM_PROMPT_V1
from protoflow.utils.config import get_settings
from protoflow.utils.logging_config import get_logger, log_fields
from protoflow.workflow.steps import CODE_ARTIFACT_STEP_ID, get_step

_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```$")


def _get_logger():
    """Get logger instance lazily to avoid module-level import issues."""
    return get_logger(__name__)


class GenerationGateway(Protocol):
    """Contract for the external content-generation call."""

    async def generate(self, rendered_prompt: str, phase_label: str, credential: str) -> str:
        """Generate text for a phase.

        Raises:
            MissingCredentialError: If credential is empty
            GenerationFailedError: On any transport or remote failure
        """
        ...


def strip_code_fences(text: str) -> str:
    """Remove a leading and trailing triple-backtick fence.

    The opening fence may carry a language tag (```html, ```HTML, ```).

    Examples:
        >>> strip_code_fences("```html\\n<html></html>\\n```")
        '<html></html>'
        >>> strip_code_fences("<html></html>")
        '<html></html>'
    """
    stripped = text.strip()
    stripped = _OPENING_FENCE.sub("", stripped, count=1)
    stripped = _CLOSING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def _extract_text(response: Any) -> str:
    """Pull the generated text out of a LiteLLM response.

    Raises:
        GenerationFailedError: If the response has no choices or no text
    """
    try:
        text = response.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError) as e:
        raise GenerationFailedError("Invalid response structure from the generation API") from e

    if text is None:
        raise GenerationFailedError("Invalid response structure from the generation API")
    return text


class LiteLLMGateway:
    """Gateway sending each phase prompt to the configured LiteLLM provider.

    Attributes:
        model: Model id (defaults to LLM_DEFAULT_MODEL)
        provider: LiteLLM provider name (defaults to LLM_PROVIDER)
        temperature: Sampling temperature (defaults to LLM_TEMPERATURE)
        raw_markup_phases: Phase labels whose output is raw HTML; fences are
            stripped from their responses
    """

    def __init__(
        self,
        *,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        temperature: Optional[float] = None,
        raw_markup_phases: Optional[frozenset[str]] = None,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.LLM_DEFAULT_MODEL
        self.provider = provider or settings.LLM_PROVIDER
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.timeout = settings.LLM_TIMEOUT
        if raw_markup_phases is None:
            raw_markup_phases = frozenset({get_step(CODE_ARTIFACT_STEP_ID).label})
        self.raw_markup_phases = raw_markup_phases

    def _build_messages(self, rendered_prompt: str, phase_label: str) -> list[dict[str, str]]:
        template = (
            CODE_SYSTEM_PROMPT_V1 if phase_label in self.raw_markup_phases else SYSTEM_PROMPT_V1
        )
        return [
            {"role": "system", "content": template.format(label=phase_label)},
            {"role": "user", "content": rendered_prompt},
        ]

    async def generate(self, rendered_prompt: str, phase_label: str, credential: str) -> str:
        """Generate content for one phase.

        Args:
            rendered_prompt: Fully rendered step prompt
            phase_label: Display label of the phase (selects the system prompt)
            credential: Provider API key supplied by the user

        Returns:
            Generated text. For raw markup phases, code fences are removed.

        Raises:
            MissingCredentialError: If credential is empty or blank
            GenerationFailedError: If the call fails or the response is malformed

        Notes:
            - Logs phase, model and lengths only (never prompt, text or key)
        """
        if not credential or not credential.strip():
            raise MissingCredentialError("API key is required but not provided")

        logger = _get_logger()
        logger.debug(
            "Generation request for phase '%s'",
            phase_label,
            extra=log_fields(
                provider=self.provider,
                model=self.model,
                prompt_length=len(rendered_prompt),
            ),
        )

        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=self._build_messages(rendered_prompt, phase_label),
                temperature=self.temperature,
                api_key=credential,
                timeout=self.timeout,
                custom_llm_provider=self.provider,
            )
        except Exception as e:
            logger.error(
                "Generation request failed for phase '%s': %s",
                phase_label,
                type(e).__name__,
                extra=log_fields(provider=self.provider, model=self.model),
            )
            raise GenerationFailedError(
                f"{type(e).__name__}: {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

        text = _extract_text(response)
        if phase_label in self.raw_markup_phases:
            text = strip_code_fences(text)

        logger.info(
            "Generation request successful for phase '%s'",
            phase_label,
            extra=log_fields(provider=self.provider, model=self.model, content_length=len(text)),
        )
        return text
