"""
LLM Client - Unified interface for Groq, OpenAI, Ollama and OpenRouter.

Ollama is the DEFAULT provider (runs locally, no API key). Ollama and
OpenRouter both expose OpenAI-compatible endpoints, so they reuse the
openai SDK with a different base URL.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @property
    def usage(self) -> Dict[str, int]:
        return {
            "input": self.input_tokens,
            "output": self.output_tokens,
            "total": self.total_tokens,
        }


def _to_response(response) -> LLMResponse:
    """Convert a chat completion from either SDK into an LLMResponse."""
    usage = response.usage
    return LLMResponse(
        content=response.choices[0].message.content or "",
        input_tokens=usage.prompt_tokens if usage else 0,
        output_tokens=usage.completion_tokens if usage else 0,
        total_tokens=usage.total_tokens if usage else 0
    )


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    def chat(self, messages: List[Dict[str, str]]) -> LLMResponse:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass


class GroqClient(LLMClient):
    """
    Groq API client - free tier and fast inference.

    Available models:
    - llama-3.3-70b-versatile (recommended)
    - llama-3.1-8b-instant (faster)
    """

    def __init__(
        self,
        api_key: str,
        model: str = "llama-3.3-70b-versatile",
        temperature: float = 0.1,
        max_tokens: int = 1024
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from groq import Groq
            self._client = Groq(api_key=self.api_key)
        return self._client

    def chat(self, messages: List[Dict[str, str]]) -> LLMResponse:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )
        return _to_response(response)

    def is_available(self) -> bool:
        try:
            self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"Groq availability check failed: {e}")
            return False


class OpenAIClient(LLMClient):
    """OpenAI API client. Also the transport for OpenAI-compatible servers."""

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str = "",
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        base_url: Optional[str] = None
    ):
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.base_url = base_url
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI
            kwargs = {"api_key": self.api_key}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = OpenAI(**kwargs)
        return self._client

    def chat(self, messages: List[Dict[str, str]]) -> LLMResponse:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )
        return _to_response(response)

    def is_available(self) -> bool:
        try:
            self.client.models.list()
            return True
        except Exception as e:
            logger.warning(f"{type(self).__name__} availability check failed: {e}")
            return False


class OllamaClient(OpenAIClient):
    """Local Ollama server through its OpenAI-compatible /v1 endpoint."""

    DEFAULT_MODEL = "llama3"

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        base_url: str = "http://localhost:11434/v1",
        api_key: str = "ollama"
    ):
        # Ollama ignores the key but the SDK refuses an empty one
        super().__init__(
            api_key=api_key or "ollama",
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            base_url=base_url
        )


class OpenRouterClient(OpenAIClient):
    """OpenRouter gateway client."""

    DEFAULT_MODEL = "meta-llama/llama-3.3-70b-instruct"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 1024,
        base_url: str = "https://openrouter.ai/api/v1"
    ):
        super().__init__(
            api_key=api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            base_url=base_url
        )


PROVIDERS = {
    "groq": GroqClient,
    "openai": OpenAIClient,
    "ollama": OllamaClient,
    "openrouter": OpenRouterClient,
}


def create_llm_client(provider: str = "ollama", **kwargs) -> LLMClient:
    """
    Factory function to create LLM client.

    Args:
        provider: "ollama" (default, local), "groq", "openai" or "openrouter"
        **kwargs: Provider-specific arguments

    Returns:
        Configured LLMClient instance
    """
    name = getattr(provider, "value", provider)
    client_cls = PROVIDERS.get(str(name).lower())
    if client_cls is None:
        raise ValueError(
            f"Unknown provider: {provider}. Use one of: {', '.join(PROVIDERS)}"
        )
    if client_cls is GroqClient:
        # The Groq SDK has no custom endpoint setting
        kwargs.pop("base_url", None)
    return client_cls(**kwargs)
