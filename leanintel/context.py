"""Collects the project facts that get rendered into completion prompts."""

from __future__ import annotations

import re
from dataclasses import asdict
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence

from .errors import GitError
from .git.client import GitClient, Runner
from .ignore import LeanIgnore
from .logging import get_logger
from .models import ProjectContext
from .redaction import ContentRedactor

logger = get_logger("context")

MANIFEST_FILES: Sequence[str] = (
    "package.json",
    "requirements.txt",
    "pyproject.toml",
    "go.mod",
    "Cargo.toml",
    "Gemfile",
    "composer.json",
    "pubspec.yaml",
    "build.gradle",
    "Podfile",
)

ENTRY_POINTS: Sequence[str] = (
    "src/index.ts",
    "src/index.tsx",
    "src/main.ts",
    "src/main.tsx",
    "src/App.tsx",
    "src/app.ts",
    "index.ts",
    "index.js",
    "main.ts",
    "main.js",
    "app.py",
    "main.py",
    "main.go",
    "lib/main.dart",
)

FILE_GROUPS: Mapping[str, Pattern[str]] = {
    "components": re.compile(r"(^|/)components?/|\.(tsx|jsx|vue|svelte)$"),
    "routes": re.compile(r"(^|/)(routes?|pages|app|screens)/|router|routes?\.(ts|js)$"),
    "state": re.compile(r"(^|/)(store|stores|redux|state|contexts?)/|(slice|store)\.(ts|js)$"),
    "api": re.compile(r"(^|/)(api|services?|controllers?|handlers?)/"),
    "models": re.compile(r"(^|/)(models?|entities|schemas?)/|\.prisma$"),
    "middleware": re.compile(r"middlewares?"),
    "styling": re.compile(r"\.(css|scss|sass|less)$|tailwind\.config"),
    "auth": re.compile(r"auth|login|session|jwt|oauth", re.IGNORECASE),
    "infra": re.compile(
        r"\.tf$|\.tfvars$|(^|/)(k8s|kubernetes|helm|charts)/|Dockerfile|docker-compose|\.github/workflows/"
    ),
    "config": re.compile(r"(^|/)[^/]*(config|rc)\.(js|ts|json|cjs|mjs)$|\.(ya?ml|toml|ini)$"),
    "database": re.compile(r"migrations?/|(^|/)(db|database|prisma)/|\.sql$"),
    "tests": re.compile(r"\.(test|spec)\.|(^|/)(tests?|__tests__)/"),
    "license": re.compile(r"(^|/)(LICENSE|LICENCE|COPYING)[^/]*$", re.IGNORECASE),
}

_SOURCE_SUFFIXES = frozenset(
    {".ts", ".tsx", ".js", ".jsx", ".py", ".go", ".java", ".kt", ".swift", ".dart", ".rb", ".php", ".rs"}
)
_ENV_NAME = re.compile(r"^\s*([A-Z][A-Z0-9_]+)\s*=", re.MULTILINE)

DEFAULT_TREE_DEPTH = 4
DEFAULT_TREE_ENTRIES = 200
MAX_FILE_BYTES = 100_000
MAX_MANIFEST_CHARS = 20_000
COMMIT_COUNT = 30


class ContextGatherer:
    """Reads the project tree once and hands out redacted prompt context."""

    def __init__(
        self,
        root: Path | str,
        *,
        ignore: Optional[LeanIgnore] = None,
        redactor: Optional[ContentRedactor] = None,
        runner: Runner | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.ignore = ignore or LeanIgnore(self.root)
        self.redactor = redactor or ContentRedactor()
        self._git = GitClient(self.root, runner=runner)
        self._files: Optional[List[str]] = None

    # ------------------------------------------------------------------
    # Raw facts

    def files(self) -> List[str]:
        if self._files is None:
            self._files = list(self.ignore.walk_files())
        return self._files

    def find(self, group: str) -> List[str]:
        pattern = FILE_GROUPS[group]
        return [path for path in self.files() if pattern.search(path)]

    def file_tree(
        self, max_depth: int = DEFAULT_TREE_DEPTH, max_entries: int = DEFAULT_TREE_ENTRIES
    ) -> str:
        entries: List[str] = []
        seen_dirs: set[str] = set()
        for path in self.files():
            parts = path.split("/")
            for depth in range(min(len(parts) - 1, max_depth)):
                directory = "/".join(parts[: depth + 1])
                if directory not in seen_dirs:
                    seen_dirs.add(directory)
                    entries.append("  " * depth + parts[depth] + "/")
            if len(parts) <= max_depth:
                entries.append("  " * (len(parts) - 1) + parts[-1])
        lines = entries[:max_entries]
        if len(entries) > max_entries:
            lines.append(f"... and {len(entries) - max_entries} more entries")
        return "\n".join(lines)

    def read_file(self, rel_path: str, max_bytes: int = MAX_FILE_BYTES) -> Optional[str]:
        """Redacted content, or None for missing, ignored, oversized or binary files."""
        if self.ignore.is_ignored(rel_path):
            return None
        path = self.root / rel_path
        try:
            if path.stat().st_size > max_bytes:
                logger.debug("Skipping oversized file %s", rel_path)
                return None
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        return self.redactor.redact(text).content

    def manifests(self) -> Dict[str, str]:
        found: Dict[str, str] = {}
        for name in MANIFEST_FILES:
            content = self.read_file(name)
            if content is not None:
                found[name] = content[:MAX_MANIFEST_CHARS]
        return found

    def entry_point(self) -> Optional[Dict[str, str]]:
        for candidate in ENTRY_POINTS:
            content = self.read_file(candidate)
            if content is not None:
                return {"path": candidate, "content": content}
        return None

    def sample_files(
        self, files: Sequence[str], *, max_files: int = 30, budget: int = 60_000
    ) -> Dict[str, str]:
        """Read the highest-priority files until ``max_files`` or ``budget`` characters."""
        contents: Dict[str, str] = {}
        used = 0
        for rel_path in prioritize(files)[:max_files]:
            if used >= budget:
                break
            content = self.read_file(rel_path)
            if not content:
                continue
            remaining = budget - used
            contents[rel_path] = content[:remaining]
            used += len(contents[rel_path])
        logger.debug("Sampled %d file(s), %d chars", len(contents), used)
        return contents

    def recent_commits(self, count: int = COMMIT_COUNT) -> List[str]:
        try:
            entries = self._git.log(count)
        except GitError as exc:
            logger.debug("No commit history available: %s", exc)
            return []
        return [f"{entry.hash[:7]} {entry.message.splitlines()[0] if entry.message else ''}" for entry in entries]

    def env_variable_names(self) -> List[str]:
        names: List[str] = []
        for candidate in (".env.example", ".env.sample", ".env.template"):
            content = self.read_file(candidate)
            if content:
                names.extend(name for name in _ENV_NAME.findall(content) if name not in names)
        return names

    def source_files(self) -> List[str]:
        return [path for path in self.files() if PurePosixPath(path).suffix in _SOURCE_SUFFIXES]

    # ------------------------------------------------------------------
    # Prompt contexts

    def base_context(self, project: ProjectContext) -> Dict[str, Any]:
        return {
            "project": asdict(project),
            "file_tree": self.file_tree(),
            "manifests": self.manifests(),
            "recent_commits": self.recent_commits(),
            "entry_point": self.entry_point(),
        }

    def documentation_context(self, project: ProjectContext) -> Dict[str, Any]:
        logger.info("Gathering project context...")
        context = self.base_context(project)
        groups = _DOCUMENTATION_GROUPS.get(project.project_type, _DOCUMENTATION_GROUPS["frontend"])
        file_lists = {group: self.find(group) for group in groups}
        context["file_lists"] = file_lists
        samples: Dict[str, str] = {}
        for group in groups:
            samples.update(self.sample_files(file_lists[group], max_files=15, budget=30_000))
        context["samples"] = samples
        context["env_variables"] = self.env_variable_names()
        return context

    def summary_context(self, project: ProjectContext) -> Dict[str, Any]:
        context = self.base_context(project)
        context["file_lists"] = {group: self.find(group) for group in ("api", "models", "infra", "tests")}
        context["samples"] = self.sample_files(self.source_files(), max_files=10, budget=30_000)
        context["existing_docs"] = [path for path in self.files() if path.startswith("docs/") and path.endswith(".md")]
        return context

    def assistant_context(self, project: ProjectContext) -> Dict[str, Any]:
        context = self.base_context(project)
        context["file_lists"] = {group: self.find(group) for group in ("components", "api", "models", "tests")}
        context["samples"] = self.sample_files(self.source_files(), max_files=20, budget=40_000)
        context["env_variables"] = self.env_variable_names()
        return context

    def analyzer_context(self, kind: str, project: ProjectContext) -> Dict[str, Any]:
        context = self.base_context(project)
        groups = _ANALYZER_GROUPS.get(kind, ("config",))
        file_lists = {group: self.find(group) for group in groups}
        context["file_lists"] = file_lists
        samples: Dict[str, str] = {}
        for group in groups:
            samples.update(self.sample_files(file_lists[group], max_files=10, budget=25_000))
        if kind == "quality":
            samples.update(self.sample_files(self.source_files(), max_files=15, budget=40_000))
        context["samples"] = samples
        context["env_variables"] = self.env_variable_names()
        return context


_DOCUMENTATION_GROUPS: Mapping[str, Sequence[str]] = {
    "frontend": ("components", "routes", "state", "api", "styling"),
    "backend": ("api", "routes", "models", "middleware", "database", "auth"),
    "mobile": ("components", "routes", "state", "api"),
    "devops": ("infra", "config"),
    "unknown": ("api", "models", "config"),
}

_ANALYZER_GROUPS: Mapping[str, Sequence[str]] = {
    "security": ("auth", "config", "api", "middleware"),
    "license": ("license",),
    "quality": ("tests",),
    "cost": ("infra", "database", "config"),
    "hipaa": ("auth", "models", "api", "database"),
}


def prioritize(files: Sequence[str]) -> List[str]:
    """Entry points and shallow core files first, deep leaves last."""

    def score(path: str) -> int:
        lower = path.lower()
        value = 0
        if "index." in lower or "main." in lower:
            value += 100
        if "app." in lower:
            value += 90
        if re.match(r"^src/[^/]+\.(ts|tsx|js|jsx)$", path):
            value += 80
        if any(marker in lower for marker in ("/core/", "/common/", "/shared/")):
            value += 50
        if "provider" in lower or "context" in lower:
            value += 40
        if "hook" in lower or "util" in lower:
            value += 30
        return value - path.count("/") * 5

    return sorted(files, key=lambda path: (-score(path), path))


__all__ = ["ContextGatherer", "FILE_GROUPS", "MANIFEST_FILES", "prioritize"]
