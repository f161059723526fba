"""LLM provider module for snapsolve.

Provides a provider-agnostic interface for turning problem screenshots
into problem statements, solutions and debug revisions.

Public API:
    LLMProvider -- Abstract base class
    ProviderError, InvalidInput -- Contract errors
    ProviderRegistry, ConfigurationError, default_registry -- Selection
    FakeProvider -- Offline deterministic implementation
    AnthropicProvider -- Claude API implementation
    OpenAIProvider -- OpenAI / OpenRouter implementation
"""

from snapsolve.providers.base import InvalidInput, LLMProvider, ProviderError
from snapsolve.providers.fake import FakeProvider
from snapsolve.providers.registry import ConfigurationError, ProviderRegistry, default_registry

__all__ = [
    "AnthropicProvider",
    "ConfigurationError",
    "FakeProvider",
    "InvalidInput",
    "LLMProvider",
    "OpenAIProvider",
    "ProviderError",
    "ProviderRegistry",
    "default_registry",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "AnthropicProvider":
        from snapsolve.providers.anthropic import AnthropicProvider
        return AnthropicProvider
    if name == "OpenAIProvider":
        from snapsolve.providers.openai import OpenAIProvider
        return OpenAIProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
