"""OpenAI-compatible chat provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``openai_base_url`` is configured the client talks to that endpoint
instead of api.openai.com, so any OpenAI-compatible server works.
"""

from __future__ import annotations

import openai
import structlog

from ragcast.config.settings import Settings
from ragcast.interfaces.llm_provider import ILLMProvider
from ragcast.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TEXT_MODEL = "gpt-4o-mini"


class OpenAILLMProvider(ILLMProvider):
    """Chat completions backed by an OpenAI-compatible API.

    Uses ``gpt-4o-mini`` unless ``openai_text_model`` overrides it.  The
    request timeout follows ``capability_timeout_seconds`` so a stalled
    answer fails the same way a stalled transcription does.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._timeout = settings.capability_timeout_seconds

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(self._timeout, connect=10.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._text_model = settings.openai_text_model or _DEFAULT_TEXT_MODEL
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 1500,
    ) -> str:
        """Send one system + user exchange and return the reply text."""
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} timed out after {self._timeout:g}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._text_model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._provider_label
