"""Project-level state persisted in .lean-intel.json."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from .config import ConfigError
from .ignore import LEANIGNORE_FILENAME
from .logging import get_logger
from .models import GenerationMetadata

PROJECT_CONFIG_FILENAME = ".lean-intel.json"
IGNORE_ENTRY = ".lean-intel*"
# Re-includes the settings file so it can be committed while caches and state stay out.
SETTINGS_NEGATION = "!.lean-intel.yml"

_STRING_KEYS = (
    "projectName",
    "projectDescription",
    "industry",
    "defaultAssistant",
    "llmProvider",
    "llmModel",
    "apiKey",
)

logger = get_logger("project_config")


class ProjectConfig:
    """Explicit configuration object constructed once per CLI invocation."""

    def __init__(self, project_root: Path | str, *, strict: bool = False) -> None:
        self.root = Path(project_root).expanduser().resolve()
        self.path = self.root / PROJECT_CONFIG_FILENAME
        self._data: Dict[str, Any] = {}
        self._strict = strict
        self.load()

    def load(self) -> None:
        if not self.path.exists():
            self._data = {}
            return
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            if self._strict:
                raise ConfigError(f"Failed to parse {PROJECT_CONFIG_FILENAME}: {exc}") from exc
            logger.warning("Ignoring unreadable %s: %s", PROJECT_CONFIG_FILENAME, exc)
            payload = {}
        self._data = payload if isinstance(payload, dict) else {}

    def save(self) -> None:
        """Rewrite the config file wholesale and keep lean-intel state out of git and scans."""
        self.path.write_text(json.dumps(self._data, indent=2) + "\n", encoding="utf-8")
        _ensure_lines(self.root / ".gitignore", (IGNORE_ENTRY, SETTINGS_NEGATION))
        _ensure_lines(self.root / LEANIGNORE_FILENAME, (IGNORE_ENTRY,))

    def exists(self) -> bool:
        return self.path.exists()

    def get(self, key: str) -> Optional[str]:
        value = self._data.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        if key not in _STRING_KEYS:
            raise KeyError(f"Unknown project config key: {key}")
        self._data[key] = value

    def has(self, key: str) -> bool:
        value = self._data.get(key)
        return value is not None and value != ""

    def get_all(self) -> Dict[str, Any]:
        return dict(self._data)

    def update(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            if key == "lastGeneration":
                continue
            self.set(key, value)

    def get_last_generation(self) -> Optional[GenerationMetadata]:
        payload = self._data.get("lastGeneration")
        if not isinstance(payload, dict):
            return None
        return GenerationMetadata.from_dict(payload)

    def set_last_generation(self, metadata: GenerationMetadata) -> None:
        self._data["lastGeneration"] = metadata.to_dict()

    def clear_last_generation(self) -> None:
        self._data.pop("lastGeneration", None)


def _ensure_lines(path: Path, entries: Sequence[str]) -> None:
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    present = {line.strip() for line in content.splitlines()}
    missing = [entry for entry in entries if entry not in present]
    if not missing:
        return
    if content and not content.endswith("\n"):
        content += "\n"
    content += "\n".join(missing) + "\n"
    path.write_text(content, encoding="utf-8")
    logger.debug("Added %s to %s", ", ".join(missing), path.name)


__all__ = [
    "IGNORE_ENTRY",
    "PROJECT_CONFIG_FILENAME",
    "ProjectConfig",
    "SETTINGS_NEGATION",
]
