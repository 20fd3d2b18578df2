"""Validation package for generated assistant files."""

from .base import (
    SIZE_LIMITS,
    SizeLimit,
    ValidationError,
    ValidationIssue,
    ValidationResult,
    ValidationStats,
    Validator,
)
from .output import OutputValidator
from .repair import auto_fix, find_best_match, score_match

__all__ = [
    "OutputValidator",
    "SIZE_LIMITS",
    "SizeLimit",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
    "ValidationStats",
    "Validator",
    "auto_fix",
    "find_best_match",
    "score_match",
]
