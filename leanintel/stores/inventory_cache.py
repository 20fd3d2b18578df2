"""Persistent cache for the codebase inventory, keyed by a tree signature."""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from ..logging import get_logger
from ..models import AntiPattern, InventorySnapshot, InventoryStats, PatternMatch, UtilityInfo

_CACHE_VERSION = 1

logger = get_logger("stores.inventory_cache")


def tree_signature(root: Path, files: Iterable[str]) -> str:
    """Hash sorted ``path:size:mtime_ns`` triples; any file change alters it."""
    digest = hashlib.sha256()
    for rel_path in sorted(files):
        try:
            stat = (root / rel_path).stat()
        except OSError:
            digest.update(f"{rel_path}:missing\n".encode("utf-8"))
            continue
        digest.update(f"{rel_path}:{stat.st_size}:{stat.st_mtime_ns}\n".encode("utf-8"))
    return digest.hexdigest()


class InventoryCache:
    """Stores one inventory snapshot alongside the signature it was built from."""

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entry: Optional[Dict[str, Any]] = None
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    def load(self, *, signature: str, industry: Optional[str]) -> Optional[InventorySnapshot]:
        entry = self._entry
        if not entry:
            return None
        if entry.get("signature") != signature:
            logger.debug("Inventory cache invalidated (tree changed)")
            return None
        if entry.get("industry") != industry:
            return None
        return snapshot_from_dict(entry.get("snapshot"))

    def store(
        self, *, signature: str, industry: Optional[str], snapshot: InventorySnapshot
    ) -> None:
        self._entry = {
            "signature": signature,
            "industry": industry,
            "snapshot": snapshot_to_dict(snapshot),
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None or self._entry is None:
            return
        payload = {"version": _CACHE_VERSION, **self._entry}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write inventory cache %s: %s", self._path, exc)
            return
        self._dirty = False

    def clear(self) -> None:
        self._entry = None
        self._dirty = False
        if self._path is not None and self._path.exists():
            self._path.unlink()

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError):
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        if not isinstance(data.get("signature"), str) or not isinstance(data.get("snapshot"), dict):
            return
        self._entry = data
        self._dirty = False


def snapshot_to_dict(snapshot: InventorySnapshot) -> Dict[str, Any]:
    return {
        "utilities": {
            key: {"path": info.path, "exports": list(info.exports), "verified": info.verified}
            for key, info in snapshot.utilities.items()
        },
        "patterns": [
            {"category": p.category, "file": p.file, "evidence": p.evidence}
            for p in snapshot.patterns
        ],
        "antiPatterns": [
            {"commitHash": a.commit_hash, "message": a.message, "category": a.category}
            for a in snapshot.anti_patterns
        ],
        "stats": {
            "totalFiles": snapshot.stats.total_files,
            "utilityFiles": snapshot.stats.utility_files,
            "exportedFunctions": snapshot.stats.exported_functions,
            "patternsFound": snapshot.stats.patterns_found,
            "antiPatternsFound": snapshot.stats.anti_patterns_found,
            "unreadableFiles": snapshot.stats.unreadable_files,
        },
        "complianceGaps": list(snapshot.compliance_gaps),
        "industry": snapshot.industry,
    }


def snapshot_from_dict(payload: object) -> Optional[InventorySnapshot]:
    """Rebuild a snapshot; returns ``None`` for any malformed payload."""
    if not isinstance(payload, dict):
        return None
    raw_utilities = payload.get("utilities")
    if not isinstance(raw_utilities, dict):
        return None
    utilities: Dict[str, UtilityInfo] = {}
    for key, raw in raw_utilities.items():
        if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
            return None
        exports = raw.get("exports")
        if not isinstance(exports, list):
            return None
        utilities[str(key)] = UtilityInfo(
            path=raw["path"], exports=tuple(str(name) for name in exports), verified=True
        )

    patterns = []
    for raw in payload.get("patterns") or []:
        if isinstance(raw, dict):
            patterns.append(
                PatternMatch(
                    category=str(raw.get("category", "")),
                    file=str(raw.get("file", "")),
                    evidence=str(raw.get("evidence", "")),
                )
            )
    anti_patterns = []
    for raw in payload.get("antiPatterns") or []:
        if isinstance(raw, dict):
            anti_patterns.append(
                AntiPattern(
                    commit_hash=str(raw.get("commitHash", "")),
                    message=str(raw.get("message", "")),
                    category=str(raw.get("category", "general")),
                )
            )
    raw_stats = payload.get("stats") if isinstance(payload.get("stats"), dict) else {}
    try:
        stats = InventoryStats(
            total_files=int(raw_stats.get("totalFiles", 0)),
            utility_files=int(raw_stats.get("utilityFiles", len(utilities))),
            exported_functions=int(raw_stats.get("exportedFunctions", 0)),
            patterns_found=int(raw_stats.get("patternsFound", len(patterns))),
            anti_patterns_found=int(raw_stats.get("antiPatternsFound", len(anti_patterns))),
            unreadable_files=int(raw_stats.get("unreadableFiles", 0)),
        )
    except (TypeError, ValueError):
        return None
    gaps = payload.get("complianceGaps")
    industry = payload.get("industry")
    return InventorySnapshot(
        utilities=utilities,
        patterns=tuple(patterns),
        anti_patterns=tuple(anti_patterns),
        stats=stats,
        compliance_gaps=tuple(str(g) for g in gaps) if isinstance(gaps, list) else (),
        industry=industry if isinstance(industry, str) else None,
    )


__all__ = ["InventoryCache", "snapshot_from_dict", "snapshot_to_dict", "tree_signature"]
