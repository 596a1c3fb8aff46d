"""Abstract base class for LLM service providers.

Defines the contract for the chat-model backend used to answer questions
about a transcript and to summarize it.  Implementations may wrap OpenAI,
an OpenAI-compatible endpoint, or a local model server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider
# Located in: ragcast/providers/llm/
class ILLMProvider(ABC):
    """Contract for chat-completion services."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.2,
        max_tokens: int = 1500,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the question and context.
        temperature:
            Sampling temperature (0.0 = deterministic).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        ragcast.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has credentials configured."""
