"""Heuristic repair of fabricated imports using fuzzy matching against the inventory.

Scores are empirical: exact (case-insensitive) 100, prefix 70, substring 50,
camelCase keyword overlap 30 per shared keyword. Candidates scoring below
``MATCH_THRESHOLD`` are never used.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import InventorySnapshot
from .base import ValidationIssue
from .output import NAMED_IMPORT, imported_symbols

logger = get_logger("validators.repair")

EXACT_SCORE = 100
PREFIX_SCORE = 70
CONTAINS_SCORE = 50
KEYWORD_SCORE = 30
MATCH_THRESHOLD = 30
EXAMPLE_COUNT = 2
EXAMPLE_EXPORTS = 3

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_MODULE_SUFFIX = re.compile(r"\.(ts|tsx|js|jsx)$")


@dataclass(frozen=True)
class Replacement:
    key: str
    path: str
    export: str
    score: int


def extract_keywords(name: str) -> List[str]:
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", name).lower()
    return [word for word in re.split(r"[\s_-]+", spaced) if len(word) > 2]


def score_match(fabricated: str, candidate: str) -> int:
    wanted = fabricated.lower()
    actual = candidate.lower()
    if wanted == actual:
        return EXACT_SCORE
    if actual.startswith(wanted) or wanted.startswith(actual):
        return PREFIX_SCORE
    if wanted in actual or actual in wanted:
        return CONTAINS_SCORE
    wanted_keywords = extract_keywords(fabricated)
    actual_keywords = extract_keywords(candidate)
    overlap = [word for word in wanted_keywords if word in actual_keywords]
    return KEYWORD_SCORE * len(overlap)


def find_best_match(symbol: str, snapshot: InventorySnapshot) -> Optional[Replacement]:
    """Highest-scoring real export; ties go to the first one in scan order."""
    best: Optional[Replacement] = None
    for key, info in snapshot.utilities.items():
        for export in info.exports:
            score = score_match(symbol, export)
            if score > 0 and (best is None or score > best.score):
                best = Replacement(key=key, path=info.path, export=export, score=score)
    if best is not None and best.score >= MATCH_THRESHOLD:
        return best
    return None


def format_import_path(file_path: str) -> str:
    formatted = _MODULE_SUFFIX.sub("", file_path)
    if formatted.startswith("src/"):
        return "@/" + formatted[4:]
    if not formatted.startswith((".", "@")):
        return "./" + formatted
    return formatted


def import_examples(snapshot: InventorySnapshot, count: int = EXAMPLE_COUNT) -> List[str]:
    examples: List[str] = []
    for info in list(snapshot.utilities.values())[:count]:
        if info.exports:
            names = ", ".join(info.exports[:EXAMPLE_EXPORTS])
            examples.append(f"import {{ {names} }} from '{format_import_path(info.path)}';")
    return examples


def replacement_for_line(
    issues: Sequence[ValidationIssue], snapshot: InventorySnapshot
) -> Optional[str]:
    symbols = [issue.symbol for issue in issues if issue.symbol]
    if not symbols:
        return None

    by_path: Dict[str, List[str]] = {}
    for symbol in symbols:
        match = find_best_match(symbol, snapshot)
        if match is None:
            continue
        logger.debug("Repairing %s with %s from %s (score %d)", symbol, match.export, match.path, match.score)
        exports = by_path.setdefault(match.path, [])
        if match.export not in exports:
            exports.append(match.export)

    if not by_path:
        examples = import_examples(snapshot)
        if not examples:
            return None
        lines = ["// REPLACED: Original import not found. Actual utilities available:"]
        lines.extend(f"// {example}" for example in examples)
        return "\n".join(lines)

    return "\n".join(
        f"import {{ {', '.join(exports)} }} from '{format_import_path(path)}'; // Source: {path}"
        for path, exports in by_path.items()
    )


def surviving_import(line: str, issues: Sequence[ValidationIssue]) -> Optional[str]:
    """The verified part of a partly fabricated import line, if any."""
    match = NAMED_IMPORT.search(line)
    if match is None:
        return None
    flagged = {issue.symbol for issue in issues}
    kept = [
        part.strip()
        for part in match.group(1).split(",")
        if imported_symbols(part) and imported_symbols(part)[0] not in flagged
    ]
    if not kept:
        return None
    return f"import {{ {', '.join(kept)} }} from '{match.group(2)}';"


def auto_fix(
    text: str,
    issues: Sequence[ValidationIssue],
    snapshot: Optional[InventorySnapshot] = None,
) -> str:
    """Rewrite every line carrying a fixable fabricated import."""
    by_line: Dict[int, List[ValidationIssue]] = {}
    for issue in issues:
        if issue.fixable and issue.line and issue.kind == "fabricated_import":
            by_line.setdefault(issue.line - 1, []).append(issue)
    if not by_line:
        return text

    lines = text.split("\n")
    fixed: List[str] = []
    for index, line in enumerate(lines):
        line_issues = by_line.get(index)
        if not line_issues:
            fixed.append(line)
            continue
        replacement = replacement_for_line(line_issues, snapshot) if snapshot is not None else None
        if replacement is None:
            replacement = f"// REMOVED: {line} // Reason: Import not found in codebase"
        kept = surviving_import(line, line_issues)
        if kept is not None:
            replacement = f"{kept}\n{replacement}"
        fixed.append(replacement)
    logger.info("Auto-fixed %d line(s) with fabricated imports", len(by_line))
    return "\n".join(fixed)


__all__ = [
    "MATCH_THRESHOLD",
    "Replacement",
    "auto_fix",
    "extract_keywords",
    "find_best_match",
    "format_import_path",
    "import_examples",
    "replacement_for_line",
    "score_match",
    "surviving_import",
]
