"""Command-level flows: detect, docs, update, summary, ai-helper and full."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from .change_mapper import estimate_impact_level, map_changes_to_docs, should_full_regenerate
from .config import ConfigError, SETTINGS_FILENAME, Settings, load_settings, resolve_api_key
from .cost_estimator import CostEstimate, estimate_cost
from .context import ContextGatherer
from .detector import ProjectDetector
from .errors import GitError
from .git.client import Runner
from .git.diff import DiffManager, categorize_changes, change_summary
from .ignore import LeanIgnore
from .inventory import CodebaseInventory
from .logging import get_logger
from .models import (
    ChangeCategories,
    ChangedFile,
    ChangeSummary,
    GeneratedFile,
    GenerationMetadata,
    GenerationResult,
    InventorySnapshot,
    ProjectContext,
    ProjectIdentity,
    RegenerationAdvice,
)
from .orchestrator import ARCHITECTURE_DOC, DEFAULT_ANALYZERS, GenerationRequest, Orchestrator
from .project_config import ProjectConfig
from .providers import CompletionProvider, ProviderConfig, create_provider, default_model, validate_api_key
from .redaction import ContentRedactor
from .retry import RetryOptions
from .stores.completion_cache import CompletionCache
from .stores.inventory_cache import InventoryCache
from .tiers import size_mode_for

STATE_DIR = ".lean-intel"
DOCS_DIR = "docs"
REPORTS_DIR = "reports"


@dataclass
class RunOutcome:
    """What a generation command produced and where it was written."""

    result: GenerationResult
    written: List[Path] = field(default_factory=list)


@dataclass
class UpdateOutcome:
    """Result of an incremental update, including the advice that was reported."""

    base_commit: str
    changed_files: List[ChangedFile]
    summary: ChangeSummary
    categories: ChangeCategories
    impact: str
    advice: RegenerationAdvice
    docs_to_update: List[str]
    outcome: Optional[RunOutcome] = None
    full_regenerated: bool = False


@dataclass
class FullOutcome:
    docs: RunOutcome
    assistant: RunOutcome
    summary: RunOutcome
    analyzers: List[RunOutcome] = field(default_factory=list)

    @property
    def results(self) -> List[GenerationResult]:
        runs = [self.docs, self.assistant, self.summary, *self.analyzers]
        return [run.result for run in runs]


class Pipeline:
    """Wires settings, inventory, context and the orchestrator for one project."""

    def __init__(
        self,
        path: Path | str = ".",
        *,
        provider: CompletionProvider | None = None,
        provider_name: Optional[str] = None,
        model: Optional[str] = None,
        tier: Optional[str] = None,
        concurrency: Optional[int] = None,
        skip_cache: bool = False,
        runner: Runner | None = None,
        environ: Mapping[str, str] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.root = Path(path).expanduser().resolve()
        self.environ = os.environ if environ is None else environ
        self.settings = settings or load_settings(self.root / SETTINGS_FILENAME, environ=self.environ)
        self.project_config = ProjectConfig(self.root)
        self.ignore = LeanIgnore(self.root, extra_patterns=self.settings.exclude_paths)
        self.detector = ProjectDetector(self.root, ignore=self.ignore)
        self.diff_manager = DiffManager(self.root, runner=runner)
        self.gatherer = ContextGatherer(
            self.root,
            ignore=self.ignore,
            redactor=ContentRedactor(
                secrets=self.settings.redaction.secrets, pii=self.settings.redaction.pii
            ),
            runner=runner,
        )
        self.logger = get_logger("pipeline")
        self._runner = runner
        self._provider = provider
        self._provider_name = provider_name
        self._model = model
        self._tier = tier
        self._concurrency = concurrency
        self._skip_cache = skip_cache
        self._project: Optional[ProjectContext] = None
        self._snapshot: Optional[InventorySnapshot] = None
        self._estimate_logged = False

    # ------------------------------------------------------------------
    # Commands

    def detect(self) -> ProjectContext:
        if self._project is None:
            self._project = self.detector.detect(industry=self.project_config.get("industry"))
            self.logger.info(
                "Detected %s project (%d files, tier=%s)",
                self._project.project_type,
                self._project.file_count,
                self._project.documentation_tier,
            )
        return self._project

    def run_docs(self) -> RunOutcome:
        """Generate the tier's documentation set into docs/."""
        project = self.detect()
        tier = self.tier_for(project)
        request = GenerationRequest(
            kind="documentation",
            tier=tier,
            project_type=project.project_type,
            concurrency=self.concurrency,
        )
        self.log_estimate(self.estimate(project, ["documentation"]))
        self.logger.info("Generating %s documentation for %s", tier, self.root)
        result = self._execute(request, self.gatherer.documentation_context(project))
        written = self._write_files(self.root / DOCS_DIR, result.files)
        if result.status == "success":
            self._record_generation(project, tier, written, replace=True)
        return RunOutcome(result=result, written=written)

    def run_update(self, *, since: Optional[str] = None, force: bool = False) -> UpdateOutcome:
        """Regenerate the documents made stale by commits since the last generation."""
        last = self.project_config.get_last_generation()
        base = since or (last.commit_hash if last else None)
        if not base:
            raise ConfigError("No previous generation found. Run `lean-intel docs` first.")
        if not self.diff_manager.is_valid_commit(base):
            raise GitError(
                f"Baseline commit {DiffManager.short_hash(base)} is not a valid revision in this repository"
            )

        project = self.detect()
        changed = self.diff_manager.get_changed_files_since(base)
        categories = categorize_changes(changed)
        impact = estimate_impact_level(categories)
        advice = should_full_regenerate(categories, project.project_type)
        existing = self.existing_docs(last)
        docs_to_update = map_changes_to_docs(categories, project.project_type, existing)
        update = UpdateOutcome(
            base_commit=base,
            changed_files=changed,
            summary=change_summary(changed),
            categories=categories,
            impact=impact,
            advice=advice,
            docs_to_update=docs_to_update,
        )
        self.logger.info(
            "%d file(s) changed since %s (impact: %s)",
            len(changed),
            DiffManager.short_hash(base),
            impact,
        )

        if advice.should:
            if force:
                self.logger.warning("Full regeneration: %s", advice.reason)
                update.outcome = self.run_docs()
                update.full_regenerated = True
                return update
            self.logger.warning(
                "Full regeneration recommended: %s (re-run with --force to regenerate everything)",
                advice.reason,
            )
            return update

        if not changed:
            self.logger.info("No changes since last generation")
            return update
        if not docs_to_update:
            self.logger.info("No existing documentation is affected by these changes")
            return update

        self.logger.info("Updating %d document(s): %s", len(docs_to_update), ", ".join(docs_to_update))
        total = len(last.generated_files) if last and last.generated_files else len(docs_to_update)
        self.log_estimate(
            self.estimate(project, ["documentation"]).scaled(len(docs_to_update) / total),
            label="Update",
        )
        tier = self.tier_for(project, last)
        request = GenerationRequest(
            kind="incremental",
            tier=tier,
            project_type=project.project_type,
            target_files=docs_to_update,
            concurrency=self.concurrency,
            existing_architecture=self._existing_architecture(docs_to_update),
        )
        result = self._execute(request, self.gatherer.documentation_context(project))
        written = self._write_files(self.root / DOCS_DIR, result.files)
        if result.status == "success":
            self._record_generation(project, tier, written, replace=False)
        update.outcome = RunOutcome(result=result, written=written)
        return update

    def run_summary(self) -> RunOutcome:
        project = self.detect()
        request = GenerationRequest(kind="summary", tier=self.tier_for(project))
        result = self._execute(request, self.gatherer.summary_context(project))
        return RunOutcome(result=result, written=self._write_files(self.root, result.files))

    def run_ai_helper(
        self, *, assistant: Optional[str] = None, size_mode: Optional[str] = None
    ) -> RunOutcome:
        """Generate an AI assistant context file at the project root."""
        project = self.detect()
        tier = self.tier_for(project)
        assistant = assistant or self.project_config.get("defaultAssistant") or "claude-code"
        size_mode = size_mode_for(tier, assistant, size_mode or self.settings.generation.size_mode)
        request = GenerationRequest(
            kind="ai_assistant",
            tier=tier,
            project_type=project.project_type,
            assistant=assistant,
            size_mode=size_mode,
        )
        self.logger.info("Generating %s context (%s mode)", assistant, size_mode)
        result = self._execute(request, self.gatherer.assistant_context(project))
        return RunOutcome(result=result, written=self._write_files(self.root, result.files))

    def run_analyzers(self, analyzers: Sequence[str] = DEFAULT_ANALYZERS) -> List[RunOutcome]:
        """Run the selected analyzers and write each report to .lean-intel/reports/."""
        project = self.detect()
        self.log_estimate(self.estimate(project, analyzers))
        request = GenerationRequest(
            kind="analyzers",
            tier=self.tier_for(project),
            project_type=project.project_type,
            analyzers=tuple(analyzers),
            concurrency=self.concurrency,
        )
        aggregate = self._execute(
            request,
            {},
            context_for=lambda kind: self.gatherer.analyzer_context(kind, project),
        )
        reports_dir = self.root / STATE_DIR / REPORTS_DIR
        outcomes: List[RunOutcome] = []
        for result in aggregate.metadata.get("results", []):
            outcomes.append(RunOutcome(result=result, written=self._write_files(reports_dir, result.files)))
        return outcomes

    def run_full(self, analyzers: Sequence[str] = DEFAULT_ANALYZERS) -> FullOutcome:
        self.log_estimate(self.estimate(self.detect(), ["documentation", *analyzers]))
        self._estimate_logged = True
        try:
            docs = self.run_docs()
            assistant = self.run_ai_helper()
            summary = self.run_summary()
            reports = self.run_analyzers(analyzers) if analyzers else []
        finally:
            self._estimate_logged = False
        return FullOutcome(docs=docs, assistant=assistant, summary=summary, analyzers=reports)

    # ------------------------------------------------------------------
    # Collaborators

    @property
    def concurrency(self) -> int:
        return max(1, self._concurrency or self.settings.generation.concurrency)

    def tier_for(self, project: ProjectContext, last: Optional[GenerationMetadata] = None) -> str:
        if self._tier:
            return self._tier
        if self.settings.generation.documentation_tier:
            return self.settings.generation.documentation_tier
        if last is not None:
            return last.documentation_tier
        return project.documentation_tier

    def identity(self) -> ProjectIdentity:
        return ProjectIdentity(
            name=self.project_config.get("projectName") or self.root.name,
            description=self.project_config.get("projectDescription") or "",
            industry=self.project_config.get("industry") or "",
        )

    def inventory(self) -> InventorySnapshot:
        if self._snapshot is None:
            cache = None if self._skip_cache else InventoryCache(self.root / STATE_DIR / "inventory-cache.json")
            inventory = CodebaseInventory(
                self.root,
                industry=self.project_config.get("industry"),
                ignore=self.ignore,
                runner=self._runner,
                cache=cache,
            )
            self._snapshot = inventory.scan()
        return self._snapshot

    def provider_name(self) -> str:
        return (
            self._provider_name
            or self.project_config.get("llmProvider")
            or self.settings.llm.provider
        ).lower()

    def model_name(self) -> Optional[str]:
        return self._model or self.project_config.get("llmModel") or self.settings.llm.model

    def estimate(self, project: ProjectContext, tasks: Sequence[str]) -> CostEstimate:
        return estimate_cost(project, tasks, self.provider_name(), self.model_name())

    def log_estimate(self, estimate: CostEstimate, *, label: str = "Estimate") -> None:
        """Log the projected usage once per command; ``run_full`` logs one combined figure."""
        if self._estimate_logged:
            return
        self.logger.info("%s (%s project): %s", label, estimate.size, estimate.describe())

    def provider(self) -> CompletionProvider:
        if self._provider is not None:
            return self._provider
        name = self.provider_name()
        model = self.model_name()
        api_key = (
            resolve_api_key(name, self.settings.llm, self.environ)
            or self.project_config.get("apiKey")
        )
        if not validate_api_key(name, api_key):
            raise ConfigError(
                f"No valid API key configured for provider '{name}'. "
                f"Set it in {SETTINGS_FILENAME} or the provider's environment variable."
            )
        self._provider = create_provider(
            ProviderConfig(type=name, api_key=api_key or "", model=model or default_model(name))
        )
        self.logger.debug("Using %s (%s)", self._provider.get_name(), self._provider.get_model())
        return self._provider

    def orchestrator(self) -> Orchestrator:
        cache_settings = self.settings.cache
        directory = self.root / STATE_DIR / "llm-cache" if cache_settings.enabled else None
        retry = self.settings.retry
        return Orchestrator(
            self.provider(),
            cache=CompletionCache(directory, ttl_hours=cache_settings.ttl_hours, commit=self._current_commit()),
            retry=RetryOptions(
                max_retries=retry.max_retries,
                initial_delay=retry.initial_delay,
                max_delay=retry.max_delay,
                multiplier=retry.multiplier,
            ),
            snapshot=self.inventory(),
            skip_cache=self._skip_cache,
        )

    def existing_docs(self, last: Optional[GenerationMetadata] = None) -> List[str]:
        """Recorded generated documents that are still on disk; hand-written docs are never candidates."""
        last = last or self.project_config.get_last_generation()
        if last is None:
            return []
        return [name for name in last.generated_files if (self.root / name).is_file()]

    # ------------------------------------------------------------------

    def _execute(self, request: GenerationRequest, context: Mapping[str, object], **kwargs) -> GenerationResult:
        orchestrator = self.orchestrator()
        result = asyncio.run(
            orchestrator.execute(
                request,
                context,
                self.identity(),
                on_progress=self._log_progress,
                **kwargs,
            )
        )
        stats = orchestrator.stats
        self.logger.info(
            "%s: %s (%d call(s), %d cached, %d tokens, $%.4f)",
            request.kind,
            result.status,
            stats.completions,
            stats.cache_hits,
            result.tokens_used,
            result.cost,
        )
        return result

    def _log_progress(self, filename: str, status: str) -> None:
        if status == "success":
            self.logger.info("  generated %s", filename)
        else:
            self.logger.warning("  failed %s", filename)

    def _write_files(self, directory: Path, files: Sequence[GeneratedFile]) -> List[Path]:
        written: List[Path] = []
        for generated in files:
            target = directory / generated.filename
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(generated.content.rstrip("\n") + "\n", encoding="utf-8")
            written.append(target)
            self.logger.debug("Wrote %s", target)
        return written

    def _existing_architecture(self, docs_to_update: Sequence[str]) -> Optional[str]:
        if any(name.endswith(ARCHITECTURE_DOC) for name in docs_to_update):
            return None
        path = self.root / DOCS_DIR / ARCHITECTURE_DOC
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _current_commit(self) -> Optional[str]:
        try:
            return self.diff_manager.current_commit() or None
        except GitError as exc:
            self.logger.debug("Not a git repository: %s", exc)
            return None

    def _record_generation(
        self, project: ProjectContext, tier: str, written: Sequence[Path], *, replace: bool
    ) -> None:
        commit = self._current_commit()
        if commit is None:
            self.logger.warning("Not a git repository; incremental updates will be unavailable")
            return
        files = [path.relative_to(self.root).as_posix() for path in written]
        previous = self.project_config.get_last_generation()
        if not replace and previous is not None:
            files = list(dict.fromkeys([*previous.generated_files, *files]))
        metadata = GenerationMetadata(
            commit_hash=commit,
            timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            documentation_tier=tier,
            generated_files=files,
            project_type=project.project_type,
        )
        self.project_config.set_last_generation(metadata)
        self.project_config.save()
        self.logger.debug("Recorded generation at %s", DiffManager.short_hash(commit))


__all__ = [
    "DOCS_DIR",
    "FullOutcome",
    "Pipeline",
    "RunOutcome",
    "STATE_DIR",
    "UpdateOutcome",
]
