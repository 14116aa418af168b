"""LLM provider access (Anthropic primary, OpenAI-compatible secondary)."""
import logging
from typing import Any, Callable, Dict, List, Optional

import anthropic
import openai

from ..config import settings
from ..core.exceptions import ProviderBusyError, ProviderError

logger = logging.getLogger(__name__)

# Anthropic answers 529 when overloaded
BUSY_STATUS_CODES = {429, 529}


def model_supports_json_format(model_name: str) -> bool:
    """
    Whether an OpenAI-compatible model accepts response_format={"type": "json_object"}.

    Only the GPT family is assumed to; other models served through the same
    API get plain completions.
    """
    if not model_name:
        return False

    name = model_name.lower()
    return name.startswith("gpt-") or "gpt-4o" in name or "gpt-4.1" in name


def _translate_error(exc: Exception, provider: str) -> ProviderError:
    status_code = getattr(exc, "status_code", None)
    if isinstance(exc, (anthropic.RateLimitError, openai.RateLimitError)) or (
        status_code in BUSY_STATUS_CODES
    ):
        return ProviderBusyError(f"{provider} is busy: {exc}", provider=provider)
    return ProviderError(f"{provider} call failed: {exc}", provider=provider)


class LLMClient:
    """
    Sends one system/user prompt pair to a provider and returns content blocks.

    Whatever the provider, the result is a list of blocks whose first entry
    is ``{"type": "text", "text": ...}`` (or the SDK object with the same
    attributes). SDK clients are created on first use.
    """

    def __init__(self, provider: Optional[str] = None, fallback_provider: Optional[str] = None):
        self.provider = (provider or settings.llm_provider).lower()
        fallback = fallback_provider if fallback_provider is not None else settings.llm_fallback_provider
        self.fallback_provider = fallback.lower() if fallback else None
        self._anthropic: Optional[anthropic.Anthropic] = None
        self._openai: Optional[openai.OpenAI] = None

    @property
    def anthropic_client(self) -> anthropic.Anthropic:
        if self._anthropic is None:
            self._anthropic = anthropic.Anthropic(api_key=settings.anthropic_api_key)
        return self._anthropic

    @property
    def openai_client(self) -> openai.OpenAI:
        if self._openai is None:
            self._openai = openai.OpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
            )
        return self._openai

    def _complete_anthropic(self, system: str, user: str, max_tokens: int) -> List[Any]:
        response = self.anthropic_client.messages.create(
            model=settings.anthropic_model,
            max_tokens=max_tokens,
            temperature=settings.llm_temperature,
            system=system,
            messages=[{"role": "user", "content": user}],
        )
        usage = getattr(response, "usage", None)
        if usage:
            logger.info(
                "LLM usage (anthropic): input_tokens=%d, output_tokens=%d",
                usage.input_tokens,
                usage.output_tokens,
            )
        return list(response.content or [])

    def _complete_openai(self, system: str, user: str, max_tokens: int) -> List[Any]:
        params: Dict[str, Any] = {
            "model": settings.openai_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": settings.llm_temperature,
            "max_tokens": max_tokens,
        }
        if model_supports_json_format(settings.openai_model):
            params["response_format"] = {"type": "json_object"}

        completion = self.openai_client.chat.completions.create(**params)

        usage = getattr(completion, "usage", None)
        if usage:
            logger.info(
                "LLM usage (openai): prompt_tokens=%d, completion_tokens=%d, total_tokens=%d",
                usage.prompt_tokens,
                usage.completion_tokens,
                usage.total_tokens,
            )

        if not completion.choices:
            return []
        content = completion.choices[0].message.content
        if content is None:
            return []
        return [{"type": "text", "text": content}]

    def _call(self, provider: str, system: str, user: str, max_tokens: int) -> List[Any]:
        handlers: Dict[str, Callable[[str, str, int], List[Any]]] = {
            "anthropic": self._complete_anthropic,
            "openai": self._complete_openai,
        }
        handler = handlers.get(provider)
        if handler is None:
            raise ProviderError(f"Unknown LLM provider: {provider}", provider=provider)

        try:
            content = handler(system, user, max_tokens)
        except (anthropic.APIError, openai.APIError) as exc:
            raise _translate_error(exc, provider) from exc

        logger.info("LLM call served by %s (%d content blocks)", provider, len(content))
        return content

    def complete(self, system: str, user: str, max_tokens: int) -> List[Any]:
        """
        Run the prompt on the primary provider, retrying once on the fallback.

        Raises ProviderBusyError / ProviderError when every configured
        provider failed; the error of the last attempt is raised.
        """
        try:
            return self._call(self.provider, system, user, max_tokens)
        except ProviderError as exc:
            if not self.fallback_provider or self.fallback_provider == self.provider:
                raise
            logger.warning(
                "Primary provider %s failed (%s), retrying on %s",
                self.provider,
                exc,
                self.fallback_provider,
            )
            return self._call(self.fallback_provider, system, user, max_tokens)


# Global client instance
llm_client = LLMClient()
