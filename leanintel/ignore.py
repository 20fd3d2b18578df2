"""Ignore rules shared by every component that walks the project tree."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

DEFAULT_EXCLUDED_DIRS = frozenset(
    {
        "node_modules",
        "dist",
        "build",
        ".git",
        "coverage",
        ".next",
        "out",
        "__pycache__",
        ".terraform",
        "Pods",
        ".gradle",
        "vendor",
        ".venv",
        ".lean-intel",
    }
)

BINARY_SUFFIXES = frozenset(
    {
        # images
        ".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".ico", ".svg",
        # fonts
        ".woff", ".woff2", ".ttf", ".eot", ".otf",
        # media
        ".mp3", ".mp4", ".webm", ".mov", ".avi", ".wav", ".ogg", ".flac",
        # archives
        ".zip", ".tar", ".gz", ".bz2", ".7z", ".rar",
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
        # compiled
        ".exe", ".dll", ".so", ".dylib", ".o", ".a", ".lib",
        ".class", ".jar", ".war", ".pyc", ".pyo", ".wasm",
    }
)

SENSITIVE_PATTERNS: Sequence[str] = (
    ".env",
    ".env.*",
    "!.env.example",
    "*.pem",
    "*.key",
    "*.p12",
    "*.pfx",
    "credentials.*",
    "serviceAccountKey.json",
    "secrets/",
    ".htpasswd",
    "id_rsa*",
    "*.jks",
    "*.keystore",
)

LEANIGNORE_FILENAME = ".leanignore"
_STATE_PREFIX = ".lean-intel"


@dataclass
class IgnoreRule:
    """A single gitignore-style pattern."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            if self.directory_only and rel_path.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in rel_path.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def build_rule(raw: str) -> IgnoreRule | None:
    pattern = raw.strip()
    if not pattern or pattern.startswith("#"):
        return None

    negate = pattern.startswith("!")
    if negate:
        pattern = pattern[1:]

    if pattern.startswith("**/"):
        pattern = pattern[3:]
    if pattern.endswith("/**"):
        pattern = pattern[:-3] + "/"

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    if not pattern:
        return None
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def parse_rules(lines: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for line in lines:
        rule = build_rule(line)
        if rule is not None:
            rules.append(rule)
    return rules


def _read_rule_file(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []
    return parse_rules(text.splitlines())


class LeanIgnore:
    """Decides which project files may be read and sent to a completion provider."""

    def __init__(
        self,
        root: Path | str,
        *,
        include_sensitive: bool = False,
        extra_patterns: Sequence[str] = (),
    ) -> None:
        self.root = Path(root)
        self.include_sensitive = include_sensitive
        rules: List[IgnoreRule] = []
        if not include_sensitive:
            rules.extend(parse_rules(SENSITIVE_PATTERNS))
        rules.extend(_read_rule_file(self.root / ".gitignore"))
        rules.extend(_read_rule_file(self.root / LEANIGNORE_FILENAME))
        rules.extend(parse_rules(extra_patterns))
        self.rules = rules

    def is_ignored(self, rel_path: str, *, is_dir: bool = False) -> bool:
        normalized = rel_path.replace("\\", "/").strip("/")
        parts = normalized.split("/")
        name = parts[-1]
        if name.startswith(_STATE_PREFIX):
            return True
        if any(part in DEFAULT_EXCLUDED_DIRS for part in (parts if is_dir else parts[:-1])):
            return True
        if not is_dir and Path(name).suffix.lower() in BINARY_SUFFIXES:
            return True
        ignored = False
        for rule in self.rules:
            if rule.matches(normalized, is_dir):
                ignored = not rule.negate
        return ignored

    def walk_files(self, start: Path | None = None) -> Iterator[str]:
        """Yield POSIX paths relative to the root for every readable candidate file."""
        base = start or self.root
        for dirpath, dirnames, filenames in os.walk(base):
            current = Path(dirpath)
            rel_dir = current.relative_to(self.root).as_posix() if current != self.root else ""

            kept = []
            for name in sorted(dirnames):
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if name in DEFAULT_EXCLUDED_DIRS or self.is_ignored(rel_path, is_dir=True):
                    continue
                kept.append(name)
            dirnames[:] = kept

            for filename in sorted(filenames):
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if self.is_ignored(rel_path):
                    continue
                yield rel_path


__all__ = [
    "BINARY_SUFFIXES",
    "DEFAULT_EXCLUDED_DIRS",
    "IgnoreRule",
    "LEANIGNORE_FILENAME",
    "LeanIgnore",
    "SENSITIVE_PATTERNS",
    "build_rule",
    "parse_rules",
]
