"""LLM module exports."""

from .client import (
    LLMClient,
    LLMResponse,
    GroqClient,
    OpenAIClient,
    OllamaClient,
    OpenRouterClient,
    create_llm_client
)
from .prompt import BASE_SYSTEM_MESSAGE, PromptAssembler

__all__ = [
    "LLMClient",
    "LLMResponse",
    "GroqClient",
    "OpenAIClient",
    "OllamaClient",
    "OpenRouterClient",
    "create_llm_client",
    "BASE_SYSTEM_MESSAGE",
    "PromptAssembler"
]
