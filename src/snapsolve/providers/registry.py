"""Provider registry and selector.

Maps provider names to adapter factories. Selection reads
``LLM_PROVIDER``, ``<PROVIDER>_MODEL``, ``<PROVIDER>_API_KEY`` and
``<PROVIDER>_BASE_URL`` from a name -> value lookup (the process
environment by default) and fails with ConfigurationError before any
adapter is built when a required credential is missing.

Adding a provider means writing the adapter and registering it::

    registry.register("mistral", make_mistral, default_model="pixtral-large-latest")
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping

from pydantic import SecretStr

from snapsolve.config.settings import LLMConfig
from snapsolve.domain.models import ProviderConfig
from snapsolve.providers.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"

ProviderFactory = Callable[[ProviderConfig, LLMConfig], LLMProvider]


@dataclass(frozen=True)
class ProviderEntry:
    name: str
    factory: ProviderFactory
    default_model: str
    credential_env: str | None


class ProviderRegistry:
    """Registry of provider adapters keyed by provider name."""

    def __init__(self) -> None:
        self._entries: dict[str, ProviderEntry] = {}

    @property
    def names(self) -> list[str]:
        return sorted(self._entries)

    def register(
        self,
        name: str,
        factory: ProviderFactory,
        default_model: str,
        requires_credential: bool = True,
        credential_env: str | None = None,
    ) -> None:
        """Register an adapter factory under ``name``.

        Args:
            name: Provider name used in ``LLM_PROVIDER``.
            factory: Builds the adapter from a resolved config.
            default_model: Model used when ``<PROVIDER>_MODEL`` is unset.
            requires_credential: Whether selection must find a credential.
            credential_env: Credential variable name. Defaults to
                ``<PROVIDER>_API_KEY``.
        """
        key = name.lower()
        if requires_credential and credential_env is None:
            credential_env = f"{_env_prefix(key)}_API_KEY"
        if key in self._entries:
            logger.warning("Replacing registered provider %r", key)
        self._entries[key] = ProviderEntry(
            name=key,
            factory=factory,
            default_model=default_model,
            credential_env=credential_env if requires_credential else None,
        )

    def resolve(self, lookup: Mapping[str, str] | None = None) -> ProviderConfig:
        """Resolve the provider selection from configuration.

        Raises:
            ConfigurationError: If the provider is unknown or its
                credential is absent.
        """
        env = os.environ if lookup is None else lookup
        name = (env.get("LLM_PROVIDER") or DEFAULT_PROVIDER).strip().lower()
        entry = self._entries.get(name)
        if entry is None:
            raise ConfigurationError(
                f"Unknown LLM provider {name!r}",
                hint=f"Set LLM_PROVIDER to one of: {', '.join(self.names)}",
            )

        prefix = _env_prefix(name)
        model = (env.get(f"{prefix}_MODEL") or "").strip() or entry.default_model
        base_url = (env.get(f"{prefix}_BASE_URL") or "").strip() or None

        api_key = None
        if entry.credential_env is not None:
            credential = (env.get(entry.credential_env) or "").strip()
            if not credential:
                raise ConfigurationError(
                    f"No credential configured for provider {name!r}",
                    hint=f"Set {entry.credential_env} in the environment or .env file",
                )
            api_key = SecretStr(credential)

        config = ProviderConfig(provider=name, model=model, api_key=api_key, base_url=base_url)
        logger.info("Resolved provider %s (model=%s)", name, model)
        return config

    def create(self, config: ProviderConfig, llm: LLMConfig | None = None) -> LLMProvider:
        """Instantiate the adapter for a resolved config. No network I/O."""
        entry = self._entries.get(config.provider)
        if entry is None:
            raise ConfigurationError(
                f"Unknown LLM provider {config.provider!r}",
                hint=f"Register it or choose one of: {', '.join(self.names)}",
            )
        return entry.factory(config, llm or LLMConfig())


class ConfigurationError(Exception):
    """Raised when provider selection or credentials are missing or invalid."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


def _env_prefix(name: str) -> str:
    return name.upper().replace("-", "_")


def _secret(config: ProviderConfig) -> str:
    return config.api_key.get_secret_value() if config.api_key else ""


def _chat_options(llm: LLMConfig) -> dict:
    return {
        "language": llm.language,
        "system_prompt": llm.system_prompt_override,
        "max_tokens": llm.max_tokens,
        "temperature": llm.temperature,
        "image_max_dimension": llm.image_max_dimension,
    }


def _make_openai(config: ProviderConfig, llm: LLMConfig) -> LLMProvider:
    from snapsolve.providers.openai import OpenAIProvider

    return OpenAIProvider(
        api_key=_secret(config),
        model=config.model,
        base_url=config.base_url,
        **_chat_options(llm),
    )


def _make_anthropic(config: ProviderConfig, llm: LLMConfig) -> LLMProvider:
    from snapsolve.providers.anthropic import AnthropicProvider

    return AnthropicProvider(
        api_key=_secret(config),
        model=config.model,
        base_url=config.base_url,
        **_chat_options(llm),
    )


def _make_fake(config: ProviderConfig, llm: LLMConfig) -> LLMProvider:
    from snapsolve.providers.fake import FakeProvider

    return FakeProvider(model=config.model, language=llm.language)


def default_registry() -> ProviderRegistry:
    """A registry with the built-in providers."""
    registry = ProviderRegistry()
    registry.register("openai", _make_openai, default_model="gpt-4o")
    registry.register("anthropic", _make_anthropic, default_model="claude-sonnet-4-20250514")
    registry.register("fake", _make_fake, default_model="test-1", requires_credential=False)
    return registry
