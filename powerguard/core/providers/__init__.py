"""Model-name routing to the inference backends PowerGuard can talk to."""

from __future__ import annotations

import importlib
from typing import Type

from powerguard.core.providers.base import BaseLLMProvider

# Model-name prefix -> backend. Anything unmatched goes to Anthropic.
_MODEL_PREFIXES = (
    (("gpt-", "o1-", "o3-", "o4-"), "openai"),
    (("gemini-", "gemma-"), "google"),
)

# Backend -> (module, class, pip extra). Anthropic ships with the base install.
_BACKENDS = {
    "anthropic": ("powerguard.core.providers.anthropic", "AnthropicProvider", None),
    "openai": ("powerguard.core.providers.openai", "OpenAIProvider", "openai"),
    "google": ("powerguard.core.providers.google", "GoogleProvider", "google"),
}


def detect_provider(model: str) -> str:
    """Name the backend that serves ``model``, matching prefixes case-insensitively."""
    name = model.lower()
    for prefixes, backend in _MODEL_PREFIXES:
        if name.startswith(prefixes):
            return backend
    return "anthropic"


def get_provider_class(name: str) -> Type[BaseLLMProvider]:
    """Import and return the provider class registered under ``name``.

    The OpenAI and Google backends are only importable when their optional
    extra is installed; asking for one without it raises ImportError naming
    the extra. Unregistered names raise ValueError.
    """
    if name not in _BACKENDS:
        raise ValueError(f"Unknown provider: {name!r}")
    module_name, class_name, extra = _BACKENDS[name]
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        if extra is None:
            raise
        raise ImportError(
            f"{name} models need the powerguard[{extra}] extra: "
            f"pip install 'powerguard[{extra}]'"
        )
    return getattr(module, class_name)


def create_provider(model: str) -> BaseLLMProvider:
    """Build the provider for ``model``.

    Raises:
        ImportError: If the provider SDK is missing.
        RuntimeError: If the provider's API key is not set.
    """
    provider_class = get_provider_class(detect_provider(model))
    has_key, key_name = provider_class.check_api_key()
    if not has_key:
        raise RuntimeError(f"{key_name} environment variable not set")
    return provider_class(model)
