"""Core data models shared across lean-intel components."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

ChangeStatus = Literal["added", "modified", "deleted", "renamed"]
ProjectType = Literal["frontend", "backend", "mobile", "devops", "unknown"]
DocumentationTier = Literal["minimal", "standard", "comprehensive"]
SizeMode = Literal["compact", "standard", "max"]
ImpactLevel = Literal["minimal", "moderate", "significant", "major"]
ResultStatus = Literal["success", "error", "skipped"]

CATEGORY_ORDER: Tuple[str, ...] = (
    "components",
    "routes",
    "api",
    "config",
    "database",
    "styling",
    "tests",
    "other",
)


@dataclass(frozen=True)
class UtilityInfo:
    """Exported symbols found in one scanned file."""

    path: str
    exports: Tuple[str, ...]
    verified: bool = True


@dataclass(frozen=True)
class PatternMatch:
    """Structural role assigned to a source file."""

    category: str
    file: str
    evidence: str


@dataclass(frozen=True)
class AntiPattern:
    """Recurring mistake category mined from a commit message."""

    commit_hash: str
    message: str
    category: str


@dataclass(frozen=True)
class InventoryStats:
    total_files: int = 0
    utility_files: int = 0
    exported_functions: int = 0
    patterns_found: int = 0
    anti_patterns_found: int = 0
    unreadable_files: int = 0


@dataclass(frozen=True)
class InventorySnapshot:
    """Ground-truth view of the scanned codebase for a single run."""

    utilities: Mapping[str, UtilityInfo]
    patterns: Tuple[PatternMatch, ...] = ()
    anti_patterns: Tuple[AntiPattern, ...] = ()
    stats: InventoryStats = field(default_factory=InventoryStats)
    compliance_gaps: Tuple[str, ...] = ()
    industry: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.utilities, MappingProxyType):
            object.__setattr__(self, "utilities", MappingProxyType(dict(self.utilities)))

    def all_exports(self) -> List[Tuple[str, UtilityInfo]]:
        """Return ``(symbol, utility)`` pairs in scan order."""
        pairs: List[Tuple[str, UtilityInfo]] = []
        for info in self.utilities.values():
            for symbol in info.exports:
                pairs.append((symbol, info))
        return pairs


@dataclass(frozen=True)
class ChangedFile:
    """A file touched between two revisions."""

    path: str
    status: ChangeStatus
    old_path: Optional[str] = None


@dataclass(frozen=True)
class ChangeCategories:
    """Partition of surviving changed files by role."""

    components: Tuple[str, ...] = ()
    routes: Tuple[str, ...] = ()
    api: Tuple[str, ...] = ()
    config: Tuple[str, ...] = ()
    database: Tuple[str, ...] = ()
    styling: Tuple[str, ...] = ()
    tests: Tuple[str, ...] = ()
    other: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Tuple[str, ...]]:
        return {name: getattr(self, name) for name in CATEGORY_ORDER}

    def non_empty(self) -> List[str]:
        return [name for name in CATEGORY_ORDER if getattr(self, name)]

    def total(self) -> int:
        return sum(len(getattr(self, name)) for name in CATEGORY_ORDER)


@dataclass(frozen=True)
class ChangeSummary:
    added: int
    modified: int
    deleted: int
    renamed: int
    total: int


@dataclass(frozen=True)
class RegenerationAdvice:
    """Whether an incremental update should give way to a full regeneration."""

    should: bool
    reason: Optional[str] = None


@dataclass
class GenerationMetadata:
    """Record of the last successful documentation run."""

    commit_hash: str
    timestamp: str
    documentation_tier: str
    generated_files: List[str]
    project_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commitHash": self.commit_hash,
            "timestamp": self.timestamp,
            "documentationTier": self.documentation_tier,
            "generatedFiles": list(self.generated_files),
            "projectType": self.project_type,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Optional["GenerationMetadata"]:
        commit_hash = payload.get("commitHash")
        if not isinstance(commit_hash, str) or not commit_hash:
            return None
        files = payload.get("generatedFiles")
        return cls(
            commit_hash=commit_hash,
            timestamp=str(payload.get("timestamp") or ""),
            documentation_tier=str(payload.get("documentationTier") or "standard"),
            generated_files=[str(item) for item in files] if isinstance(files, list) else [],
            project_type=str(payload.get("projectType") or "unknown"),
        )


@dataclass
class ProjectContext:
    """Facts about the target project produced by detection."""

    project_type: str
    root_path: str
    package_manager: Optional[str] = None
    frameworks: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    has_database: bool = False
    has_tests: bool = False
    has_cicd: bool = False
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    file_count: int = 0
    line_count: int = 0
    is_monorepo: bool = False
    documentation_tier: str = "standard"


@dataclass(frozen=True)
class ProjectIdentity:
    name: str
    description: str = ""
    industry: str = ""


@dataclass(frozen=True)
class GeneratedFile:
    filename: str
    content: str


@dataclass
class GenerationResult:
    """Outcome of one orchestrated request."""

    name: str
    status: ResultStatus
    output: Optional[str] = None
    cost: float = 0.0
    tokens_used: int = 0
    duration: float = 0.0
    error: Optional[str] = None
    files: List[GeneratedFile] = field(default_factory=list)
    requested: Sequence[str] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)
