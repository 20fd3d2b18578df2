"""Changed-file discovery and role classification between two revisions."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

from ..errors import GitError
from ..logging import get_logger
from ..models import CATEGORY_ORDER, ChangeCategories, ChangedFile, ChangeSummary
from .client import DiffStat, GitClient, Runner

logger = get_logger("git.diff")

_RENAME_BRACES = re.compile(r"^(?P<prefix>.*)\{(?P<old>[^{}]*) => (?P<new>[^{}]*)\}(?P<suffix>.*)$")

_COMPONENT_SUFFIX = re.compile(r"\.(tsx|jsx|vue|svelte)$")
_ROUTE_FILE = re.compile(r"routes?\.(ts|js|tsx|jsx)$")
_CONFIG_SUFFIX = re.compile(r"\.(json|yaml|yml|toml|env)$")
_STYLE_SUFFIX = re.compile(r"\.(css|scss|sass|less|styled)")
_TEST_FILE = re.compile(r"\.(test|spec)\.(ts|js|tsx|jsx)$")


def _is_component(path: str) -> bool:
    return "/components/" in path or "/component/" in path or bool(_COMPONENT_SUFFIX.search(path))


def _is_route(path: str) -> bool:
    markers = ("/routes/", "/router/", "/pages/", "app-routing")
    return any(marker in path for marker in markers) or bool(_ROUTE_FILE.search(path))


def _is_api(path: str) -> bool:
    markers = ("/api/", "/services/", "/controllers/", "/endpoints/", "/handlers/")
    return any(marker in path for marker in markers)


def _is_config(path: str) -> bool:
    markers = ("config", "package.json", "tsconfig", "webpack", "vite.config", "next.config")
    return any(marker in path for marker in markers) or bool(_CONFIG_SUFFIX.search(path))


def _is_database(path: str) -> bool:
    markers = ("/models/", "/entities/", "/schema/", "/migrations/", "/prisma/", "/drizzle/")
    return any(marker in path for marker in markers)


def _is_styling(path: str) -> bool:
    return (
        "/styles/" in path
        or "/css/" in path
        or "tailwind" in path
        or bool(_STYLE_SUFFIX.search(path))
    )


def _is_test(path: str) -> bool:
    markers = ("/test/", "/tests/", "__tests__")
    return any(marker in path for marker in markers) or bool(_TEST_FILE.search(path))


# First match wins; "other" catches everything else.
_CATEGORY_RULES: Sequence[Tuple[str, Callable[[str], bool]]] = (
    ("components", _is_component),
    ("routes", _is_route),
    ("api", _is_api),
    ("config", _is_config),
    ("database", _is_database),
    ("styling", _is_styling),
    ("tests", _is_test),
)


def categorize_path(path: str) -> str:
    """Return the single category a surviving changed file belongs to."""
    # Leading slash lets directory markers match top-level folders too.
    normalized = "/" + path.replace("\\", "/").lower().lstrip("/")
    for category, predicate in _CATEGORY_RULES:
        if predicate(normalized):
            return category
    return "other"


def categorize_changes(files: Sequence[ChangedFile]) -> ChangeCategories:
    """Partition changed files by role; deleted files are dropped."""
    buckets: Dict[str, List[str]] = {name: [] for name in CATEGORY_ORDER}
    for changed in files:
        if changed.status == "deleted":
            continue
        buckets[categorize_path(changed.path)].append(changed.path)
    return ChangeCategories(**{name: tuple(paths) for name, paths in buckets.items()})


def change_summary(files: Sequence[ChangedFile]) -> ChangeSummary:
    counts = {"added": 0, "modified": 0, "deleted": 0, "renamed": 0}
    for changed in files:
        counts[changed.status] += 1
    return ChangeSummary(total=len(files), **counts)


def split_rename(raw: str) -> Tuple[str, str]:
    """Expand git's ``a/{old => new}/b`` rename notation into both full paths."""
    match = _RENAME_BRACES.match(raw)
    if match:
        prefix, suffix = match.group("prefix"), match.group("suffix")
        old = _join_rename(prefix, match.group("old"), suffix)
        new = _join_rename(prefix, match.group("new"), suffix)
        return old, new
    old, new = raw.split(" => ", 1)
    return old.strip(), new.strip()


def _join_rename(prefix: str, middle: str, suffix: str) -> str:
    joined = f"{prefix}{middle}{suffix}"
    while "//" in joined:
        joined = joined.replace("//", "/")
    return joined.lstrip("/")


class DiffManager:
    """Answers "what changed since revision X" for incremental updates."""

    def __init__(self, repo: Path | str, runner: Runner | None = None) -> None:
        self.repo = Path(repo)
        self.git = GitClient(self.repo, runner=runner)

    def get_changed_files_since(self, base_revision: str) -> List[ChangedFile]:
        try:
            stats = self.git.diff_summary(base_revision, "HEAD")
            changed = [self._classify(base_revision, stat) for stat in stats]
        except GitError as exc:
            raise GitError(f"Failed to get changed files: {exc}") from exc
        logger.debug("%d files changed since %s", len(changed), self.short_hash(base_revision))
        return changed

    def current_commit(self) -> str:
        return self.git.rev_parse("HEAD") or ""

    def is_valid_commit(self, revision: str) -> bool:
        return self.git.rev_parse(revision) is not None

    @staticmethod
    def short_hash(revision: str) -> str:
        return revision[:7]

    categorize_changes = staticmethod(categorize_changes)
    change_summary = staticmethod(change_summary)

    def _classify(self, base_revision: str, stat: DiffStat) -> ChangedFile:
        if " => " in stat.file:
            old_path, new_path = split_rename(stat.file)
            return ChangedFile(path=new_path, status="renamed", old_path=old_path)
        if stat.insertions > 0 and stat.deletions == 0:
            existed = self.git.show(base_revision, stat.file) is not None
            return ChangedFile(path=stat.file, status="modified" if existed else "added")
        if stat.insertions == 0 and stat.deletions > 0:
            survives = self.git.show("HEAD", stat.file) is not None
            return ChangedFile(path=stat.file, status="modified" if survives else "deleted")
        return ChangedFile(path=stat.file, status="modified")


__all__ = [
    "DiffManager",
    "categorize_changes",
    "categorize_path",
    "change_summary",
    "split_rename",
]
