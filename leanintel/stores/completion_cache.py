"""On-disk cache of completion results keyed by request fingerprint."""

from __future__ import annotations

import hashlib
import json
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

from ..logging import get_logger
from ..providers.base import CompletionResult

_CACHE_VERSION = 1
_KEY_LENGTH = 16

logger = get_logger("stores.completion_cache")


@dataclass(frozen=True)
class CacheStats:
    entries: int
    bytes: int


def fingerprint(
    prompt: str,
    *,
    provider: str,
    model: str,
    max_tokens: int,
    temperature: float,
) -> str:
    """Deterministic key over everything that shapes a completion."""
    canonical = json.dumps(
        {
            "prompt": prompt,
            "provider": provider,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:_KEY_LENGTH]


class CompletionCache:
    """One JSON file per fingerprint; expired or stale entries are dropped on read."""

    def __init__(
        self,
        directory: Path | None,
        *,
        ttl_hours: float = 24.0,
        commit: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._directory = directory
        self._ttl_seconds = ttl_hours * 3600
        self._commit = commit
        self._clock = clock
        self._written: Set[str] = set()

    @property
    def enabled(self) -> bool:
        return self._directory is not None

    def get(self, key: str) -> Optional[CompletionResult]:
        path = self._entry_path(key)
        if path is None or not path.exists():
            return None
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(entry, dict) or entry.get("version") != _CACHE_VERSION:
            return None

        created_at = entry.get("created_at")
        if not isinstance(created_at, (int, float)):
            return None
        age = self._clock() - created_at
        if age > self._ttl_seconds:
            logger.debug("Cache expired for %s (%.0fh old)", key, age / 3600)
            self._discard(path)
            return None

        stored_commit = entry.get("commit")
        if stored_commit and self._commit and stored_commit != self._commit:
            logger.debug("Cache invalidated for %s (commit changed)", key)
            self._discard(path)
            return None

        result = _result_from_dict(entry.get("result"))
        if result is not None:
            logger.debug("Cache hit for %s", key)
        return result

    def set(self, key: str, result: CompletionResult, *, inputs: Dict[str, Any]) -> bool:
        """Write ``result`` under ``key``; a second write for the same key in one run is ignored."""
        path = self._entry_path(key)
        if path is None or key in self._written:
            return False
        payload = {
            "version": _CACHE_VERSION,
            "fingerprint": key,
            "inputs": inputs,
            "result": {
                "content": result.content,
                "input_tokens": result.input_tokens,
                "output_tokens": result.output_tokens,
                "cost": result.cost,
            },
            "created_at": self._clock(),
            "commit": self._commit,
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write completion cache entry %s: %s", key, exc)
            return False
        self._written.add(key)
        logger.debug("Cached response for %s", key)
        return True

    def clear(self) -> None:
        if self._directory is not None and self._directory.exists():
            shutil.rmtree(self._directory)
            logger.debug("Completion cache cleared")
        self._written.clear()

    def stats(self) -> CacheStats:
        if self._directory is None or not self._directory.exists():
            return CacheStats(entries=0, bytes=0)
        files = list(self._directory.glob("*.json"))
        return CacheStats(entries=len(files), bytes=sum(f.stat().st_size for f in files))

    def _entry_path(self, key: str) -> Optional[Path]:
        if self._directory is None:
            return None
        return self._directory / f"{key}.json"

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            return


def _result_from_dict(payload: object) -> Optional[CompletionResult]:
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if not isinstance(content, str):
        return None
    try:
        return CompletionResult(
            content=content,
            input_tokens=int(payload.get("input_tokens", 0)),
            output_tokens=int(payload.get("output_tokens", 0)),
            cost=float(payload.get("cost", 0.0)),
        )
    except (TypeError, ValueError):
        return None


__all__ = ["CacheStats", "CompletionCache", "fingerprint"]
