"""Ground-truth scan of a codebase: exported symbols, file roles, commit history."""

from __future__ import annotations

import dataclasses
import re
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..errors import GitError, InventoryError
from ..git.client import GitClient, Runner
from ..ignore import LeanIgnore
from ..logging import get_logger
from ..models import AntiPattern, InventorySnapshot, InventoryStats, PatternMatch, UtilityInfo
from ..stores.inventory_cache import InventoryCache, tree_signature
from .industries import IndustryProfile, resolve_industry

logger = get_logger("inventory")

EXPORT_SUFFIXES = frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"})
SOURCE_SUFFIXES = frozenset(
    {
        ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".vue", ".svelte",
        ".py", ".go", ".java", ".rb", ".php", ".kt", ".swift", ".dart",
        ".css", ".scss", ".sass", ".less",
    }
)
COUNTED_SUFFIXES = frozenset({".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".java", ".rb", ".php"})

UTILITY_DIRS: Tuple[str, ...] = (
    "src/utils",
    "src/lib",
    "src/helpers",
    "src/core",
    "src/common",
    "src/shared",
    "utils",
    "lib",
    "helpers",
    "common",
    "shared",
    "src/services",
    "src/api",
    "src/auth",
    "src/guards",
    "src/middleware",
    "src/repositories",
    "src/database",
    "services",
    "api/services",
)
UTILITY_KEYWORDS: Tuple[str, ...] = ("util", "helper", "service", "lib", "shared", "common")

ANTI_PATTERN_SIGNALS: Tuple[str, ...] = ("fix", "revert", "bug", "error", "security", "perf")
ANTI_PATTERN_CATEGORIES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("style", "css"), "styling"),
    (("type", "typescript"), "types"),
    (("import",), "imports"),
    (("error", "exception"), "error-handling"),
    (("security", "auth", "vulnerab"), "security"),
    (("performance", "perf", "slow"), "performance"),
)
COMMIT_HISTORY_DEPTH = 100

_MODULE_SUFFIX = re.compile(r"\.(ts|tsx|js|jsx|mjs|cjs)$")

_DECLARATION_EXPORTS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\bexport\s+(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)"),
    re.compile(r"\bexport\s+(?:const|let|var)\s+(?!enum\b)([A-Za-z_$][\w$]*)"),
    re.compile(r"\bexport\s+(?:default\s+)?(?:abstract\s+)?class\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"\bexport\s+interface\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"\bexport\s+type\s+([A-Za-z_$][\w$]*)\s*[=<]"),
    re.compile(r"\bexport\s+(?:const\s+)?enum\s+([A-Za-z_$][\w$]*)"),
    re.compile(r"\bexport\s+\*\s+as\s+([A-Za-z_$][\w$]*)\s+from"),
    re.compile(r"\bexport\s+default\s+(?!function\b|class\b|async\b|abstract\b)([A-Za-z_$][\w$]*)\s*;?\s*$", re.MULTILINE),
)
_EXPORT_LIST = re.compile(r"\bexport\s+(?:type\s+)?\{([^}]*)\}")
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")
_PASCAL_CASE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_HOOK_NAME = re.compile(r"^use[A-Z0-9]")


def extract_exports(content: str) -> List[str]:
    """Exported symbol names in declaration order, without duplicates.

    Pattern based: declarations, ``export { a, b as c }`` lists (the public
    name is kept), ``export * as ns`` and named default exports. Exports
    produced by metaprogramming are not seen.
    """
    found: List[Tuple[int, str]] = []
    for pattern in _DECLARATION_EXPORTS:
        for match in pattern.finditer(content):
            found.append((match.start(1), match.group(1)))
    for match in _EXPORT_LIST.finditer(content):
        offset = match.start(1)
        for item in match.group(1).split(","):
            name = item.strip()
            if name.startswith("type "):
                name = name[5:].strip()
            if " as " in name:
                name = name.split(" as ", 1)[1].strip()
            if name and name != "default" and _IDENTIFIER.match(name):
                found.append((offset, name))
    ordered: List[str] = []
    for _, name in sorted(found, key=lambda item: item[0]):
        if name not in ordered:
            ordered.append(name)
    return ordered


def module_key(rel_path: str) -> str:
    return _MODULE_SUFFIX.sub("", rel_path)


def normalize_module_path(path: str) -> str:
    """Reduce an import source or file key to a comparable tree-relative form."""
    normalized = path.replace("\\", "/").strip()
    while normalized.startswith(("./", "../")):
        normalized = normalized[2:] if normalized.startswith("./") else normalized[3:]
    for prefix in ("@/", "~/", "/"):
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]
            break
    if normalized.startswith("src/"):
        normalized = normalized[4:]
    return _MODULE_SUFFIX.sub("", normalized).rstrip("/")


def path_matches(candidate_key: str, import_source: str) -> bool:
    target = normalize_module_path(import_source)
    if not target:
        return False
    key = normalize_module_path(candidate_key)
    for variant in (target, f"{target}/index"):
        if key == variant or key.endswith(f"/{variant}"):
            return True
    return False


class ExportIndex:
    """Exports keyed by every trailing sub-path of each normalized module key.

    Build it once per snapshot; ``has`` is then two dictionary lookups, and
    agrees with ``path_matches`` on which files an import source names.
    """

    def __init__(self, utilities: Mapping[str, UtilityInfo]) -> None:
        self._exports: Dict[str, Set[str]] = {}
        for key, info in utilities.items():
            parts = normalize_module_path(key).split("/")
            for start in range(len(parts)):
                self._exports.setdefault("/".join(parts[start:]), set()).update(info.exports)

    def has(self, symbol: str, from_path: str) -> bool:
        target = normalize_module_path(from_path)
        if not target:
            return False
        return any(symbol in self._exports.get(variant, ()) for variant in (target, f"{target}/index"))


def has_export(snapshot: InventorySnapshot, symbol: str, from_path: str) -> bool:
    """True when some scanned file matching ``from_path`` exports ``symbol``.

    One-off check; callers testing many imports should hold an ``ExportIndex``.
    """
    return ExportIndex(snapshot.utilities).has(symbol, from_path)


def is_utility_path(rel_path: str, extra_dirs: Iterable[str] = ()) -> bool:
    if PurePosixPath(rel_path).suffix not in EXPORT_SUFFIXES:
        return False
    for directory in (*UTILITY_DIRS, *extra_dirs):
        if rel_path.startswith(f"{directory}/"):
            return True
    pure = PurePosixPath(rel_path)
    segments = [part.lower() for part in pure.parent.parts] + [pure.stem.lower()]
    return any(keyword in segment for segment in segments for keyword in UTILITY_KEYWORDS)


def classify_pattern(rel_path: str) -> Optional[PatternMatch]:
    """Assign a source file to at most one structural role."""
    pure = PurePosixPath(rel_path)
    suffix = pure.suffix.lower()
    if suffix not in SOURCE_SUFFIXES:
        return None
    stem = pure.name.split(".", 1)[0]
    slashed = f"/{rel_path.lower()}"

    def match(category: str, evidence: str) -> PatternMatch:
        return PatternMatch(category=category, file=rel_path, evidence=evidence)

    for marker in ("/__tests__/", "/tests/", "/test/"):
        if marker in slashed:
            return match("test", f"directory {marker}")
    if ".test." in pure.name or ".spec." in pure.name or stem.startswith("test_"):
        return match("test", "test filename")
    if suffix in {".css", ".scss", ".sass", ".less"} or "/styles/" in slashed:
        return match("style", f"stylesheet {pure.name}")
    if "/hooks/" in slashed or _HOOK_NAME.match(stem):
        return match("hook", "hook naming" if _HOOK_NAME.match(stem) else "directory /hooks/")
    for marker in ("/routes/", "/router/", "/pages/", "/navigation/"):
        if marker in slashed:
            return match("route", f"directory {marker}")
    if stem.lower() in {"routes", "route", "router", "urls"}:
        return match("route", f"filename {pure.name}")
    for marker in ("/models/", "/entities/", "/schema/", "/schemas/"):
        if marker in slashed:
            return match("model", f"directory {marker}")
    if "/components/" in slashed:
        return match("component", "directory /components/")
    if suffix in {".tsx", ".jsx", ".vue", ".svelte"}:
        return match("component", f"{suffix} file")
    for ending in ("Component", "Page", "Screen", "View"):
        if stem.endswith(ending):
            return match("component", f"filename suffix {ending}")
    if suffix in EXPORT_SUFFIXES and _PASCAL_CASE.match(stem):
        return match("component", "PascalCase filename")
    for marker in ("/api/", "/services/", "/controllers/"):
        if marker in slashed:
            return match("api", f"directory {marker}")
    for ending in ("Api", "Service", "Client", "Controller"):
        if stem.endswith(ending):
            return match("api", f"filename suffix {ending}")
    for marker in ("/utils/", "/lib/", "/helpers/"):
        if marker in slashed:
            return match("util", f"directory {marker}")
    if stem.endswith(("Utils", "Helper")):
        return match("util", "helper naming")
    if "/config/" in slashed or stem.startswith("config") or stem.endswith("Config") or stem == "constants":
        return match("config", "configuration naming")
    for marker in (
        "/security/", "/compliance/", "/phi/", "/mappers/", "/fhir/", "/validators/",
        "/validation/", "/auth/", "/guards/", "/middleware/", "/payments/",
        "/transactions/", "/billing/", "/repositories/", "/cart/", "/checkout/", "/inventory/",
    ):
        if marker in slashed:
            return match("util", f"domain directory {marker}")
    return None


def categorize_anti_pattern(message: str) -> str:
    lowered = message.lower()
    for keywords, category in ANTI_PATTERN_CATEGORIES:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "general"


class CodebaseInventory:
    """Builds and serves the verified inventory for one project root."""

    def __init__(
        self,
        root: Path | str,
        *,
        industry: Optional[str] = None,
        ignore: Optional[LeanIgnore] = None,
        runner: Runner | None = None,
        cache: Optional[InventoryCache] = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise InventoryError(f"Project root is not a readable directory: {self.root}")
        self.industry = industry
        self.profile: Optional[IndustryProfile] = resolve_industry(industry)
        self.ignore = ignore or LeanIgnore(self.root)
        self.git = GitClient(self.root, runner=runner)
        self.cache = cache
        self._snapshot: Optional[InventorySnapshot] = None
        self._index: Optional[ExportIndex] = None

    @property
    def snapshot(self) -> InventorySnapshot:
        if self._snapshot is None:
            raise InventoryError("Inventory has not been scanned yet")
        return self._snapshot

    def scan(self) -> InventorySnapshot:
        files = list(self.ignore.walk_files())
        signature = tree_signature(self.root, files)

        if self.cache is not None:
            cached = self.cache.load(signature=signature, industry=self.industry)
            if cached is not None:
                logger.info("Using cached inventory (tree unchanged)")
                self._snapshot = cached
                self._index = None
                return cached

        label = f" ({self.profile.name})" if self.profile else ""
        logger.info("Building codebase inventory%s...", label)

        utilities, unreadable = self._scan_utilities(files)
        patterns = tuple(p for p in (classify_pattern(f) for f in files) if p is not None)
        anti_patterns = tuple(self._extract_anti_patterns())

        stats = InventoryStats(
            total_files=sum(1 for f in files if PurePosixPath(f).suffix in COUNTED_SUFFIXES),
            utility_files=len(utilities),
            exported_functions=sum(len(info.exports) for info in utilities.values()),
            patterns_found=len(patterns),
            anti_patterns_found=len(anti_patterns),
            unreadable_files=unreadable,
        )
        snapshot = InventorySnapshot(
            utilities=utilities,
            patterns=patterns,
            anti_patterns=anti_patterns,
            stats=stats,
            industry=self.profile.name if self.profile else None,
        )
        if self.profile is not None:
            gaps = self.profile.compliance_checks(snapshot)
            if gaps:
                logger.warning("%s compliance gaps found: %d", self.profile.name, len(gaps))
                for gap in gaps:
                    logger.warning("  - %s", gap)
                snapshot = dataclasses.replace(snapshot, compliance_gaps=tuple(gaps))

        logger.info(
            "Inventory complete: %d utility files, %d exports, %d patterns, %d anti-patterns",
            stats.utility_files,
            stats.exported_functions,
            stats.patterns_found,
            stats.anti_patterns_found,
        )
        if unreadable:
            logger.warning("Skipped %d unreadable files", unreadable)

        if self.cache is not None:
            self.cache.store(signature=signature, industry=self.industry, snapshot=snapshot)
            self.cache.persist()
        self._snapshot = snapshot
        self._index = None
        return snapshot

    def has_export(self, symbol: str, from_path: str) -> bool:
        if self._index is None:
            self._index = ExportIndex(self.snapshot.utilities)
        return self._index.has(symbol, from_path)

    def _scan_utilities(self, files: Sequence[str]) -> Tuple[Dict[str, UtilityInfo], int]:
        extra_dirs = self.profile.utility_dirs if self.profile else ()
        utilities: Dict[str, UtilityInfo] = {}
        unreadable = 0
        for rel_path in files:
            if not is_utility_path(rel_path, extra_dirs):
                continue
            try:
                content = (self.root / rel_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Could not read %s: %s", rel_path, exc)
                unreadable += 1
                continue
            exports = extract_exports(content)
            if exports:
                utilities[module_key(rel_path)] = UtilityInfo(
                    path=rel_path, exports=tuple(exports), verified=True
                )
        return utilities, unreadable

    def _extract_anti_patterns(self) -> List[AntiPattern]:
        """Best-effort mining of regret-signal commits; never fails the scan."""
        try:
            commits = self.git.log(COMMIT_HISTORY_DEPTH)
        except GitError as exc:
            logger.debug("Could not read git history for anti-patterns: %s", exc)
            return []
        found: List[AntiPattern] = []
        for commit in commits:
            subject = commit.message.splitlines()[0] if commit.message else ""
            lowered = commit.message.lower()
            if not any(signal in lowered for signal in ANTI_PATTERN_SIGNALS):
                continue
            found.append(
                AntiPattern(
                    commit_hash=commit.hash[:7],
                    message=subject,
                    category=categorize_anti_pattern(commit.message),
                )
            )
        return found


__all__ = [
    "CodebaseInventory",
    "ExportIndex",
    "UTILITY_DIRS",
    "categorize_anti_pattern",
    "classify_pattern",
    "extract_exports",
    "has_export",
    "is_utility_path",
    "module_key",
    "normalize_module_path",
    "path_matches",
]
