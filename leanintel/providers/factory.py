"""Provider lookup keyed on the configured provider type."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from ..errors import UnsupportedProviderError
from .anthropic_provider import AnthropicProvider
from .base import DEFAULT_MODELS, CompletionProvider, ProviderConfig
from .openai_compat import GoogleProvider, OpenAIProvider, XAIProvider

ProviderConstructor = Callable[[str, Optional[str]], CompletionProvider]

PROVIDERS: Dict[str, ProviderConstructor] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google": GoogleProvider,
    "xai": XAIProvider,
}


def create_provider(config: ProviderConfig) -> CompletionProvider:
    constructor = PROVIDERS.get(config.type)
    if constructor is None:
        raise UnsupportedProviderError(f"Unsupported provider type: {config.type}")
    return constructor(config.api_key, config.model)


def default_model(provider: str) -> str:
    try:
        return DEFAULT_MODELS[provider]
    except KeyError:
        raise UnsupportedProviderError(f"Unsupported provider type: {provider}") from None


def validate_api_key(provider: str, api_key: Optional[str]) -> bool:
    """Cheap shape check before any network call; says nothing about validity upstream."""
    if not api_key or not api_key.strip():
        return False
    if provider == "anthropic":
        return api_key.startswith("sk-ant-") and len(api_key) > 20
    if provider == "openai":
        return api_key.startswith("sk-") and len(api_key) > 20
    if provider == "xai":
        return api_key.startswith("xai-") and len(api_key) > 20
    return len(api_key) >= 20


__all__ = [
    "PROVIDERS",
    "create_provider",
    "default_model",
    "validate_api_key",
]
