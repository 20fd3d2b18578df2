"""Uniform completion provider capability and shared pricing data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping, Optional, Protocol, Tuple

from ..errors import (
    AuthenticationError,
    InvalidRequestError,
    ProviderError,
    RateLimitError,
    ServerError,
)

ProviderType = Literal["anthropic", "openai", "google", "xai"]
SUPPORTED_PROVIDERS: Tuple[str, ...] = ("anthropic", "openai", "google", "xai")


@dataclass(frozen=True)
class CompletionOptions:
    max_tokens: int
    temperature: float


@dataclass(frozen=True)
class CompletionResult:
    content: str
    input_tokens: int
    output_tokens: int
    cost: float

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ProviderConfig:
    type: str
    api_key: str
    model: Optional[str] = None


class CompletionProvider(Protocol):
    """Capability consumed by the orchestrator; one implementation per vendor."""

    async def generate_completion(
        self, prompt: str, options: CompletionOptions
    ) -> CompletionResult:
        """Send ``prompt`` and return the text with token usage and cost."""

    def get_name(self) -> str:
        ...

    def get_model(self) -> str:
        ...

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        ...


@dataclass(frozen=True)
class ModelPricing:
    """USD per million tokens."""

    input: float
    output: float


DEFAULT_PRICING_KEY = "_default"

# Substring keys, most specific first.
MODEL_PRICING: Mapping[str, Tuple[Tuple[str, ModelPricing], ...]] = {
    "anthropic": (
        ("opus", ModelPricing(5.0, 25.0)),
        ("haiku", ModelPricing(1.0, 5.0)),
        ("sonnet", ModelPricing(3.0, 15.0)),
        (DEFAULT_PRICING_KEY, ModelPricing(3.0, 15.0)),
    ),
    "openai": (
        ("gpt-4.1-nano", ModelPricing(0.10, 0.40)),
        ("gpt-4.1-mini", ModelPricing(0.40, 1.60)),
        ("gpt-4.1", ModelPricing(2.0, 8.0)),
        ("o4-mini", ModelPricing(1.10, 4.40)),
        ("o3", ModelPricing(2.0, 8.0)),
        ("gpt-4o-mini", ModelPricing(0.15, 0.60)),
        ("gpt-4o", ModelPricing(2.50, 10.0)),
        (DEFAULT_PRICING_KEY, ModelPricing(2.0, 8.0)),
    ),
    "google": (
        ("2.5-flash-lite", ModelPricing(0.10, 0.40)),
        ("2.5-pro", ModelPricing(1.25, 10.0)),
        ("2.5-flash", ModelPricing(0.30, 2.50)),
        ("2.0-flash", ModelPricing(0.075, 0.30)),
        ("1.5-pro", ModelPricing(1.25, 5.0)),
        ("1.5-flash", ModelPricing(0.075, 0.30)),
        (DEFAULT_PRICING_KEY, ModelPricing(0.30, 2.50)),
    ),
    "xai": (
        ("grok-3-mini", ModelPricing(0.30, 0.50)),
        ("grok-3", ModelPricing(3.0, 15.0)),
        (DEFAULT_PRICING_KEY, ModelPricing(3.0, 15.0)),
    ),
}

DEFAULT_MODELS: Mapping[str, str] = {
    "anthropic": "claude-sonnet-4-6",
    "openai": "gpt-4.1",
    "google": "gemini-2.5-flash",
    "xai": "grok-3",
}


def model_pricing(provider: str, model: Optional[str]) -> ModelPricing:
    table = MODEL_PRICING.get(provider, MODEL_PRICING["anthropic"])
    fallback = dict(table)[DEFAULT_PRICING_KEY]
    if not model:
        return fallback
    lowered = model.lower()
    for key, pricing in table:
        if key != DEFAULT_PRICING_KEY and key in lowered:
            return pricing
    return fallback


def calculate_model_cost(
    provider: str, model: Optional[str], input_tokens: int, output_tokens: int
) -> float:
    pricing = model_pricing(provider, model)
    cost = input_tokens / 1_000_000 * pricing.input + output_tokens / 1_000_000 * pricing.output
    return round(cost, 4)


def error_for_status(
    message: str, status: Optional[int], *, retry_after: Optional[float] = None
) -> ProviderError:
    """Map a vendor HTTP status onto the provider error taxonomy."""
    if status == 429:
        return RateLimitError(message, status=status, retry_after=retry_after)
    if status in (401, 403):
        return AuthenticationError(message, status=status)
    if status is not None and 500 <= status < 600:
        return ServerError(message, status=status, retry_after=retry_after)
    if status is not None and 400 <= status < 500:
        return InvalidRequestError(message, status=status)
    return ProviderError(message, status=status, retry_after=retry_after)


def parse_retry_after(headers: object) -> Optional[float]:
    getter = getattr(headers, "get", None)
    if getter is None:
        return None
    raw = getter("retry-after")
    if raw is None:
        return None
    try:
        seconds = float(raw)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


__all__ = [
    "CompletionOptions",
    "CompletionProvider",
    "CompletionResult",
    "DEFAULT_MODELS",
    "MODEL_PRICING",
    "ModelPricing",
    "ProviderConfig",
    "ProviderType",
    "SUPPORTED_PROVIDERS",
    "calculate_model_cost",
    "error_for_status",
    "model_pricing",
    "parse_retry_after",
]
