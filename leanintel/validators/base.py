"""Core validation data structures for generated assistant files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Mapping, Optional, Protocol, Sequence

from ..models import InventorySnapshot

IssueKind = Literal[
    "fabricated_import",
    "fabricated_function",
    "oversized",
    "placeholder",
    "generic_name",
]
Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class SizeLimit:
    name: str
    max_lines: int
    max_chars: int


SIZE_LIMITS: Mapping[str, SizeLimit] = {
    "compact": SizeLimit(name="Compact", max_lines=350, max_chars=15000),
    "standard": SizeLimit(name="Standard", max_lines=600, max_chars=35000),
    "max": SizeLimit(name="Maximum", max_lines=800, max_chars=64000),
}


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found in generated output."""

    kind: IssueKind
    severity: Severity
    message: str
    line: Optional[int] = None
    symbol: Optional[str] = None
    source_path: Optional[str] = None
    suggestion: Optional[str] = None
    fixable: bool = False


@dataclass(frozen=True)
class ValidationStats:
    total_lines: int = 0
    total_chars: int = 0
    imports: int = 0
    fabricated_imports: int = 0
    placeholders: int = 0


@dataclass(frozen=True)
class ValidationResult:
    """Issues plus stats; validity is derived from the issues, never stored."""

    issues: Sequence[ValidationIssue] = ()
    stats: ValidationStats = field(default_factory=ValidationStats)

    @property
    def valid(self) -> bool:
        return not any(issue.severity == "error" for issue in self.issues)

    @property
    def fixable_count(self) -> int:
        return sum(1 for issue in self.issues if issue.fixable)

    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]


class ValidationError(RuntimeError):
    """Raised when a caller requires output to pass validation and it does not."""

    def __init__(self, message: str, issues: Sequence[ValidationIssue]) -> None:
        super().__init__(message)
        self.issues = list(issues)


class Validator(Protocol):
    """Protocol implemented by generated-output validators."""

    def validate(
        self, text: str, snapshot: InventorySnapshot, size_mode: str
    ) -> ValidationResult:
        """Run every check and return the combined result."""


def line_number(text: str, index: int) -> int:
    """1-based line number of the character at ``index``."""
    return text.count("\n", 0, index) + 1


__all__ = [
    "IssueKind",
    "SIZE_LIMITS",
    "Severity",
    "SizeLimit",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
    "ValidationStats",
    "Validator",
    "line_number",
]
