"""Abstract base class for answer-generation LLM providers.

The public contract is :meth:`ILLMProvider.complete`: system prompt, user
question, and retrieved context chunks in; answer string out.  It never
raises.  A missing credential yields :data:`SERVICE_UNAVAILABLE_MESSAGE`
and an upstream failure yields :data:`SERVICE_ERROR_MESSAGE`, so a chat
turn always has something to show the user.

Concrete adapters implement only :meth:`ILLMProvider._generate`, which
may raise :class:`~gemshop.utils.errors.LLMError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from gemshop.utils.errors import LLMError
from gemshop.utils.logging import get_logger

logger = get_logger(__name__)

# User-facing strings are localized (French) to match the product UI.
SERVICE_UNAVAILABLE_MESSAGE = (
    "Je ne peux pas répondre pour le moment car ma connexion aux services "
    "d'IA n'est pas configurée (clé API manquante)."
)
SERVICE_ERROR_MESSAGE = "Une erreur est survenue en contactant le service d'IA."
NO_ANSWER_MESSAGE = "Je n'ai pas pu générer de réponse."

CONTEXT_SEPARATOR = "\n\n---\n\n"

DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_TOKENS = 1000


def build_user_prompt(user_question: str, context_chunks: list[str]) -> str:
    """Render the user message: retrieved excerpts first, then the question."""
    context = CONTEXT_SEPARATOR.join(context_chunks)
    return (
        "Voici des extraits de documents pertinents pour ma question:\n\n"
        f"{context}\n\n"
        f'Ma question est: "{user_question}"'
    )


# Concrete implementations: OpenAILLMProvider, AnthropicLLMProvider
# Located in: gemshop/providers/llm/
class ILLMProvider(ABC):
    """Contract for answer generation used by the chat orchestrator."""

    async def complete(
        self,
        system_prompt: str,
        user_question: str,
        context_chunks: list[str],
    ) -> str:
        """Answer *user_question* using only *context_chunks* as grounding.

        Returns
        -------
        str
            The model's answer, or one of the fixed fallback messages.
        """
        if not self.is_available():
            logger.error(
                "llm_provider_not_configured",
                provider=self.get_provider_name(),
            )
            return SERVICE_UNAVAILABLE_MESSAGE

        user_prompt = build_user_prompt(user_question, context_chunks)
        try:
            content = await self._generate(system_prompt, user_prompt)
        except LLMError as exc:
            logger.error(
                "llm_completion_failed",
                provider=self.get_provider_name(),
                error=str(exc),
            )
            return SERVICE_ERROR_MESSAGE
        except Exception as exc:  # noqa: BLE001 -- transport faults outside the SDK hierarchy
            logger.exception(
                "llm_completion_unexpected_error",
                provider=self.get_provider_name(),
                error=str(exc),
            )
            return SERVICE_ERROR_MESSAGE

        if not content or not content.strip():
            return NO_ANSWER_MESSAGE
        return content

    @abstractmethod
    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """Send one system + user exchange upstream and return the raw text.

        Raises
        ------
        gemshop.utils.errors.LLMError
            If the API call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if a credential is configured (no network call)."""
