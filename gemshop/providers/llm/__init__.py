"""LLM provider adapters."""

from gemshop.providers.llm.anthropic_provider import AnthropicLLMProvider
from gemshop.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
