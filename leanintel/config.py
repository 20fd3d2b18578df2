"""Runtime settings for lean-intel (.lean-intel.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

SETTINGS_FILENAME = ".lean-intel.yml"


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be parsed."""


@dataclass
class LLMSettings:
    """Completion provider settings."""

    provider: str = "anthropic"
    model: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class GenerationSettings:
    concurrency: int = 3
    size_mode: Optional[str] = None
    documentation_tier: Optional[str] = None


@dataclass
class CacheSettings:
    enabled: bool = True
    ttl_hours: float = 24.0


@dataclass
class RetrySettings:
    """Backoff budget applied to every completion call."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0


@dataclass
class RedactionSettings:
    secrets: bool = True
    pii: bool = True


@dataclass
class Settings:
    """Represents the high-level settings defined in .lean-intel.yml."""

    root: Path
    llm: LLMSettings = field(default_factory=LLMSettings)
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    redaction: RedactionSettings = field(default_factory=RedactionSettings)
    exclude_paths: List[str] = field(default_factory=list)


_ENV_API_KEYS: Mapping[str, Sequence[str]] = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "google": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "xai": ("XAI_API_KEY",),
}


def load_settings(
    config_path: Path, *, environ: Mapping[str, str] | None = None
) -> Settings:
    """Load settings from disk and apply environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{SETTINGS_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = LLMSettings(
        provider=(_as_str(llm_data.get("provider")) or "anthropic").lower(),
        model=_as_str(llm_data.get("model")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
    )

    generation_data = _as_dict(data.get("generation"))
    generation = GenerationSettings()
    if generation_data:
        concurrency = _as_int(generation_data.get("concurrency"))
        if concurrency is not None:
            if concurrency < 1:
                raise ConfigError("generation.concurrency must be at least 1")
            generation.concurrency = concurrency
        generation.size_mode = _as_choice(
            generation_data.get("size_mode"), {"compact", "standard", "max"}, "generation.size_mode"
        )
        generation.documentation_tier = _as_choice(
            generation_data.get("documentation_tier"),
            {"minimal", "standard", "comprehensive"},
            "generation.documentation_tier",
        )

    cache_data = _as_dict(data.get("cache"))
    cache = CacheSettings()
    if cache_data:
        enabled = _as_bool(cache_data.get("enabled"))
        if enabled is not None:
            cache.enabled = enabled
        ttl = _as_float(cache_data.get("ttl_hours"))
        if ttl is not None:
            cache.ttl_hours = ttl

    retry_data = _as_dict(data.get("retry"))
    retry = RetrySettings()
    if retry_data:
        retry.max_retries = _first_int(retry_data.get("max_retries"), retry.max_retries)
        retry.initial_delay = _first_float(retry_data.get("initial_delay"), retry.initial_delay)
        retry.max_delay = _first_float(retry_data.get("max_delay"), retry.max_delay)
        retry.multiplier = _first_float(retry_data.get("multiplier"), retry.multiplier)

    redaction_data = _as_dict(data.get("redaction"))
    redaction = RedactionSettings()
    if redaction_data:
        secrets = _as_bool(redaction_data.get("secrets"))
        pii = _as_bool(redaction_data.get("pii"))
        if secrets is not None:
            redaction.secrets = secrets
        if pii is not None:
            redaction.pii = pii

    settings = Settings(
        root=root,
        llm=llm,
        generation=generation,
        cache=cache,
        retry=retry,
        redaction=redaction,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )
    _apply_env_overrides(settings, env)
    return settings


def resolve_api_key(provider: str, settings: LLMSettings, environ: Mapping[str, str]) -> Optional[str]:
    """Return the first API key found in settings or the provider's env variables."""
    if settings.api_key:
        return settings.api_key
    for key in _ENV_API_KEYS.get(provider, ()):
        value = environ.get(key)
        if value:
            return value
    return None


def _apply_env_overrides(settings: Settings, env: Mapping[str, str]) -> None:
    provider = env.get("LEAN_INTEL_PROVIDER")
    if provider:
        settings.llm.provider = provider.lower()
    model = env.get("LEAN_INTEL_MODEL")
    if model:
        settings.llm.model = model
    api_key = resolve_api_key(settings.llm.provider, settings.llm, env)
    if api_key:
        settings.llm.api_key = api_key


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / SETTINGS_FILENAME).resolve()
    if config_path.name != SETTINGS_FILENAME:
        return (config_path.parent / SETTINGS_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_choice(value: Any, allowed: set[str], label: str) -> Optional[str]:
    text = _as_str(value)
    if text is None:
        return None
    lowered = text.lower()
    if lowered not in allowed:
        raise ConfigError(f"{label} must be one of {', '.join(sorted(allowed))}")
    return lowered


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _first_int(value: Any, default: int) -> int:
    parsed = _as_int(value)
    return default if parsed is None else parsed


def _first_float(value: Any, default: float) -> float:
    parsed = _as_float(value)
    return default if parsed is None else parsed


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CacheSettings",
    "ConfigError",
    "GenerationSettings",
    "LLMSettings",
    "RedactionSettings",
    "RetrySettings",
    "SETTINGS_FILENAME",
    "Settings",
    "load_settings",
    "resolve_api_key",
]
