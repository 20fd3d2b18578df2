"""Decide which generated documents a change-set makes stale.

Every rule is a pure function from categories (or file names) to a frozenset
of document names; ``map_changes_to_docs`` unions them and narrows the result
to documents that were actually generated before.
"""

from __future__ import annotations

from typing import Callable, FrozenSet, Iterable, List, Mapping, Sequence, Tuple

from .models import ChangeCategories, RegenerationAdvice

DocSet = FrozenSet[str]

IMPACT_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (2, "minimal"),
    (5, "moderate"),
    (15, "significant"),
)
CONFIG_WEIGHT = 2

CRITICAL_CONFIG_MARKERS: Tuple[str, ...] = (
    "package.json",
    "tsconfig",
    "webpack.config",
    "vite.config",
    "next.config",
    "pubspec.yaml",
    "build.gradle",
)
DIFFUSE_CATEGORIES: Tuple[str, ...] = ("components", "routes", "api", "database", "styling")
DIFFUSE_THRESHOLD = 4
DEVOPS_CONFIG_LIMIT = 3

CATEGORY_DOCS: Mapping[str, Mapping[str, Tuple[str, ...]]] = {
    "frontend": {
        "components": ("COMPONENTS.md", "ARCHITECTURE.md"),
        "routes": ("ROUTING.md",),
        "api": ("API_LAYER.md",),
        "styling": ("STYLING.md",),
        "config": ("ARCHITECTURE.md", "DEVELOPMENT_PATTERNS.md"),
    },
    "backend": {
        "api": ("API.md", "ARCHITECTURE.md"),
        "database": ("DATABASE.md",),
        "config": ("ARCHITECTURE.md", "DEVELOPMENT_PATTERNS.md"),
        "tests": ("TESTING.md",),
    },
    "mobile": {
        "components": ("SCREENS.md", "ARCHITECTURE.md"),
        "routes": ("NAVIGATION.md",),
        "api": ("API_INTEGRATION.md",),
        "styling": ("STYLING.md",),
        "config": ("ARCHITECTURE.md", "DEVELOPMENT_PATTERNS.md", "BUILD_DEPLOYMENT.md"),
    },
    "devops": {
        "config": ("ARCHITECTURE.md", "DEVELOPMENT_PATTERNS.md"),
    },
    "generic": {
        "components": ("CODEBASE.md",),
        "routes": ("CODEBASE.md",),
        "api": ("CODEBASE.md",),
        "database": ("CODEBASE.md",),
        "config": ("ARCHITECTURE.md", "DEPENDENCIES.md"),
        "tests": ("TESTING.md",),
    },
}

# (categories scanned, ((keywords, docs), ...)) per project type.
KeywordRules = Tuple[Tuple[str, ...], Tuple[Tuple[Tuple[str, ...], Tuple[str, ...]], ...]]

KEYWORD_DOCS: Mapping[str, KeywordRules] = {
    "frontend": (
        ("components", "api", "other"),
        (
            (("form", "input", "validation"), ("FORMS.md",)),
            (("auth", "login", "session"), ("AUTHENTICATION.md",)),
            (("store", "redux", "zustand", "context"), ("STATE_MANAGEMENT.md",)),
        ),
    ),
    "backend": (
        ("api", "database", "other"),
        (
            (("middleware",), ("MIDDLEWARE.md",)),
            (("auth",), ("AUTHENTICATION.md", "AUTHORIZATION.md")),
            (("valid",), ("VALIDATION.md",)),
            (("error", "exception"), ("ERROR_HANDLING.md",)),
            (("security", "crypto", "encrypt"), ("SECURITY.md",)),
        ),
    ),
    "mobile": (
        ("components", "other"),
        (
            (("native", "bridge"), ("NATIVE_MODULES.md",)),
            (("store", "redux", "mobx"), ("STATE_MANAGEMENT.md",)),
            (("style", "theme"), ("STYLING.md",)),
            (("auth", "login", "session"), ("AUTHENTICATION.md",)),
            (("build", "deploy", "release", "fastlane", "codepush"), ("BUILD_DEPLOYMENT.md",)),
            (("pattern", "convention", "util", "helper"), ("DEVELOPMENT_PATTERNS.md",)),
        ),
    ),
    "devops": (
        ("config", "other"),
        (
            ((".tf", "terraform"), ("INFRASTRUCTURE.md",)),
            (("k8s", "kubernetes", "helm"), ("COMPUTE.md", "NETWORKING.md")),
            (("docker", "container"), ("COMPUTE.md", "DEPLOYMENT.md")),
            (("ci", "pipeline", "workflow", "github/workflows"), ("CI_CD.md",)),
            (("monitor", "alert", "prometheus", "grafana"), ("MONITORING.md",)),
            (("security", "vault", "secret"), ("SECURITY.md",)),
            (("storage", "s3", "bucket", "database"), ("STORAGE.md",)),
            (("deploy", "release"), ("DEPLOYMENT.md",)),
            (("scale", "autoscal", "replica"), ("SCALING.md",)),
            (("disaster", "backup", "recovery"), ("DISASTER_RECOVERY.md",)),
            (("cost", "budget"), ("COST_OPTIMIZATION.md",)),
            (("env", "staging", "production"), ("ENVIRONMENTS.md",)),
            (("runbook", "playbook", "procedure"), ("RUNBOOKS.md",)),
            (("pattern", "convention", "util", "helper", "script"), ("DEVELOPMENT_PATTERNS.md",)),
        ),
    ),
    "generic": (
        ("components", "api", "other"),
        (
            (("auth", "login", "session"), ("AUTHENTICATION.md",)),
            (("error", "exception"), ("ERROR_HANDLING.md",)),
            (("security", "crypto", "encrypt"), ("SECURITY.md",)),
        ),
    ),
}


def _mapping_key(project_type: str) -> str:
    return project_type if project_type in CATEGORY_DOCS else "generic"


def architecture_docs(categories: ChangeCategories) -> DocSet:
    """Structural changes always touch the architecture overview."""
    structural = (
        len(categories.components)
        + len(categories.routes)
        + len(categories.api)
        + len(categories.database)
    )
    return frozenset({"ARCHITECTURE.md"}) if structural else frozenset()


def category_docs(categories: ChangeCategories, project_type: str) -> DocSet:
    table = CATEGORY_DOCS[_mapping_key(project_type)]
    docs: set[str] = set()
    for category, targets in table.items():
        if getattr(categories, category):
            docs.update(targets)
    return frozenset(docs)


def keyword_docs(categories: ChangeCategories, project_type: str) -> DocSet:
    """Cross-cutting documents triggered by words in changed file paths."""
    scanned, rules = KEYWORD_DOCS[_mapping_key(project_type)]
    files = [path.lower() for name in scanned for path in getattr(categories, name)]
    docs: set[str] = set()
    for keywords, targets in rules:
        if any(keyword in path for path in files for keyword in keywords):
            docs.update(targets)
    return frozenset(docs)


DOC_RULES: Tuple[Callable[[ChangeCategories, str], DocSet], ...] = (
    lambda categories, _project_type: architecture_docs(categories),
    category_docs,
    keyword_docs,
)


def affected_docs(categories: ChangeCategories, project_type: str) -> DocSet:
    """Every document name the change-set could affect, before filtering."""
    result: DocSet = frozenset()
    for rule in DOC_RULES:
        result = result | rule(categories, project_type)
    return result


def filter_existing(candidates: Iterable[str], existing_docs: Sequence[str]) -> List[str]:
    """Return the entries of ``existing_docs`` that name one of ``candidates``."""
    names = frozenset(candidates)
    matched: List[str] = []
    for existing in existing_docs:
        basename = existing.replace("\\", "/").rsplit("/", 1)[-1]
        if basename in names and existing not in matched:
            matched.append(existing)
    return matched


def map_changes_to_docs(
    categories: ChangeCategories, project_type: str, existing_docs: Sequence[str]
) -> List[str]:
    """Stale documents, always drawn from ``existing_docs`` and in its order."""
    return filter_existing(affected_docs(categories, project_type), existing_docs)


def weighted_change_count(categories: ChangeCategories) -> int:
    # Tests are excluded.
    counted = (
        len(categories.components)
        + len(categories.routes)
        + len(categories.api)
        + len(categories.database)
        + len(categories.styling)
        + len(categories.other)
    )
    return counted + len(categories.config) * CONFIG_WEIGHT


def estimate_impact_level(categories: ChangeCategories) -> str:
    weighted = weighted_change_count(categories)
    for ceiling, level in IMPACT_THRESHOLDS:
        if weighted <= ceiling:
            return level
    return "major"


def should_full_regenerate(categories: ChangeCategories, project_type: str) -> RegenerationAdvice:
    critical = [
        path
        for path in categories.config
        if any(marker in path.lower() for marker in CRITICAL_CONFIG_MARKERS)
    ]
    if critical:
        return RegenerationAdvice(True, f"Critical config file changed: {critical[0]}")

    active = sum(1 for name in DIFFUSE_CATEGORIES if getattr(categories, name))
    if active >= DIFFUSE_THRESHOLD:
        return RegenerationAdvice(True, "Changes span too many areas of the codebase")

    if project_type == "devops" and len(categories.config) > DEVOPS_CONFIG_LIMIT:
        return RegenerationAdvice(True, "Multiple infrastructure configuration changes")

    return RegenerationAdvice(False)


__all__ = [
    "CATEGORY_DOCS",
    "KEYWORD_DOCS",
    "affected_docs",
    "architecture_docs",
    "category_docs",
    "estimate_impact_level",
    "filter_existing",
    "keyword_docs",
    "map_changes_to_docs",
    "should_full_regenerate",
    "weighted_change_count",
]
