"""Codebase inventory: the verified facts generated text is checked against."""

from .core import (
    CodebaseInventory,
    ExportIndex,
    classify_pattern,
    extract_exports,
    has_export,
    normalize_module_path,
)
from .industries import INDUSTRY_PROFILES, IndustryProfile, resolve_industry

__all__ = [
    "CodebaseInventory",
    "ExportIndex",
    "INDUSTRY_PROFILES",
    "IndustryProfile",
    "classify_pattern",
    "extract_exports",
    "has_export",
    "normalize_module_path",
    "resolve_industry",
]
