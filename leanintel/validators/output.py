"""Checks generated assistant files against the scanned inventory."""

from __future__ import annotations

import re
from typing import List, Sequence

from ..inventory.core import ExportIndex
from ..logging import get_logger
from ..models import InventorySnapshot
from .base import (
    SIZE_LIMITS,
    ValidationIssue,
    ValidationResult,
    ValidationStats,
    Validator,
    line_number,
)

logger = get_logger("validators.output")

NAMED_IMPORT = re.compile(r"""import\s+(?:type\s+)?{([^}]+)}\s+from\s+['"]([^'"]+)['"]""")
INTERNAL_PREFIXES = (".", "@/", "~/", "src/")

PLACEHOLDER_PATTERNS: Sequence[re.Pattern[str]] = (
    re.compile(r"\[Actual line count\]"),
    re.compile(r"\[Actual character count\]"),
    re.compile(r"\[Date\]"),
    re.compile(r"\[Current date YYYY-MM-DD\]"),
    re.compile(r"\[TODO:?[^\]]+\]"),
    re.compile(r"\[FIXME:?[^\]]+\]"),
    re.compile(r"\[Replace with[^\]]+\]"),
    re.compile(r"\[Your[^\]]+\]"),
    re.compile(r"\[Example[^\]]+\]"),
)

GENERIC_NAME_PATTERNS: Sequence[re.Pattern[str]] = (
    re.compile(r"\byour-app\b", re.IGNORECASE),
    re.compile(r"\bYourComponent\b"),
    re.compile(r"\bYourClass\b"),
    re.compile(r"\bYourService\b"),
    re.compile(r"\bexample-service\b", re.IGNORECASE),
    re.compile(r"\bSampleClass\b"),
    re.compile(r"\bmyApp\b"),
    re.compile(r"\[project-name\]", re.IGNORECASE),
    re.compile(r"\[app-name\]", re.IGNORECASE),
)

_IMPORT_LINE = re.compile(r"^import\s+")
_ALIAS = re.compile(r"\s+as\s+")


def imported_symbols(clause: str) -> List[str]:
    """Names a ``{ ... }`` import clause asks for, with ``as`` aliases dropped."""
    symbols: List[str] = []
    for part in clause.split(","):
        name = _ALIAS.split(part.strip())[0].strip()
        if name.startswith("type "):
            name = name[5:].strip()
        if name:
            symbols.append(name)
    return symbols


def is_internal_source(source: str) -> bool:
    return source.startswith(INTERNAL_PREFIXES)


class OutputValidator(Validator):
    """Flags fabricated imports, oversized output, placeholders and boilerplate names."""

    def validate(
        self, text: str, snapshot: InventorySnapshot, size_mode: str
    ) -> ValidationResult:
        issues: List[ValidationIssue] = []
        issues.extend(self.check_imports(text, snapshot))
        issues.extend(self.check_size(text, size_mode))
        issues.extend(self.check_placeholders(text))
        issues.extend(self.check_generic_names(text))
        stats = self._gather_stats(text, issues)
        if issues:
            logger.debug(
                "Validation found %d issue(s), %d fabricated import(s)",
                len(issues),
                stats.fabricated_imports,
            )
        return ValidationResult(issues=tuple(issues), stats=stats)

    def check_imports(self, text: str, snapshot: InventorySnapshot) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        index = ExportIndex(snapshot.utilities)
        for match in NAMED_IMPORT.finditer(text):
            source = match.group(2)
            if not is_internal_source(source):
                continue
            line = line_number(text, match.start())
            for symbol in imported_symbols(match.group(1)):
                if index.has(symbol, source):
                    continue
                issues.append(
                    ValidationIssue(
                        kind="fabricated_import",
                        severity="error",
                        line=line,
                        symbol=symbol,
                        source_path=source,
                        message=f'Import "{symbol}" from "{source}" not found in codebase',
                        suggestion="Remove this import or verify it exists",
                        fixable=True,
                    )
                )
        return issues

    def check_size(self, text: str, size_mode: str) -> List[ValidationIssue]:
        limits = SIZE_LIMITS.get(size_mode)
        if limits is None:
            raise ValueError(f"Unknown size mode: {size_mode}")
        lines = len(text.split("\n"))
        chars = len(text)
        if lines <= limits.max_lines and chars <= limits.max_chars:
            return []
        return [
            ValidationIssue(
                kind="oversized",
                severity="warning",
                message=(
                    f"File exceeds {limits.name} mode limits: "
                    f"{lines}/{limits.max_lines} lines, {chars}/{limits.max_chars} chars"
                ),
                suggestion="Consider reducing content or switching to larger size mode",
            )
        ]

    def check_placeholders(self, text: str) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for pattern in PLACEHOLDER_PATTERNS:
            for match in pattern.finditer(text):
                issues.append(
                    ValidationIssue(
                        kind="placeholder",
                        severity="error",
                        line=line_number(text, match.start()),
                        message=f"Unfilled placeholder found: {match.group(0)}",
                        suggestion="Replace with actual value or remove",
                    )
                )
        return issues

    def check_generic_names(self, text: str) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for pattern in GENERIC_NAME_PATTERNS:
            for match in pattern.finditer(text):
                issues.append(
                    ValidationIssue(
                        kind="generic_name",
                        severity="warning",
                        line=line_number(text, match.start()),
                        message=f"Generic placeholder name found: {match.group(0)}",
                        suggestion="Replace with actual project-specific name",
                    )
                )
        return issues

    @staticmethod
    def _gather_stats(text: str, issues: Sequence[ValidationIssue]) -> ValidationStats:
        lines = text.split("\n")
        return ValidationStats(
            total_lines=len(lines),
            total_chars=len(text),
            imports=sum(1 for line in lines if _IMPORT_LINE.match(line.strip())),
            fabricated_imports=sum(1 for issue in issues if issue.kind == "fabricated_import"),
            placeholders=sum(1 for issue in issues if issue.kind == "placeholder"),
        )


__all__ = [
    "GENERIC_NAME_PATTERNS",
    "INTERNAL_PREFIXES",
    "NAMED_IMPORT",
    "OutputValidator",
    "PLACEHOLDER_PATTERNS",
    "imported_symbols",
    "is_internal_source",
]
