"""Turns generation requests into cached, retried, bounded-concurrency completion calls."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from .concurrency import parallel_limit
from .logging import get_logger
from .models import (
    GeneratedFile,
    GenerationResult,
    InventorySnapshot,
    ProjectIdentity,
)
from .prompting.builder import ASSISTANT_FILES, PromptBuilder
from .providers.base import CompletionOptions, CompletionProvider, CompletionResult
from .response_parser import parse_with_retry_prompt
from .retry import RetryOptions, with_retry
from .schemas import ANALYZER_SCHEMAS
from .stores.completion_cache import CompletionCache, fingerprint
from .tiers import DocFile, catalog_for, files_for_tier, size_mode_for
from .validators.base import ValidationResult
from .validators.output import OutputValidator
from .validators.repair import auto_fix

ARCHITECTURE_DOC = "ARCHITECTURE.md"
SUMMARY_DOC = "SUMMARY.md"
NO_MATCHING_DOCS = "No matching documentation files found for the requested update"
DEFAULT_ANALYZERS = ("security", "license", "quality", "cost")

CALL_SETTINGS: Mapping[str, CompletionOptions] = {
    "documentation": CompletionOptions(max_tokens=8000, temperature=0.3),
    "summary": CompletionOptions(max_tokens=8000, temperature=0.3),
    "ai_assistant": CompletionOptions(max_tokens=20000, temperature=0.3),
    "security": CompletionOptions(max_tokens=12000, temperature=0.1),
    "analyzer": CompletionOptions(max_tokens=12000, temperature=0.2),
}

ContextFactory = Callable[[str], Mapping[str, Any]]
ProgressCallback = Callable[[str, str], None]

REQUEST_KINDS = ("documentation", "incremental", "summary", "ai_assistant", "analyzers")


@dataclass
class GenerationRequest:
    """One unit of work handed to the orchestrator by a CLI command."""

    kind: str
    tier: str = "standard"
    project_type: str = "unknown"
    target_files: Sequence[str] = ()
    assistant: Optional[str] = None
    size_mode: Optional[str] = None
    analyzers: Sequence[str] = DEFAULT_ANALYZERS
    concurrency: int = 3
    existing_architecture: Optional[str] = None


@dataclass
class CallStats:
    """Network calls versus cache hits for one orchestrator instance."""

    completions: int = 0
    cache_hits: int = 0
    cost: float = 0.0
    tokens: int = 0


@dataclass
class _Piece:
    """One successfully generated artifact plus what it cost."""

    file: GeneratedFile
    cost: float
    tokens: int


def extract_markdown(text: str) -> str:
    """Unwrap a markdown document from a completion, tolerating a fenced reply."""
    stripped = text.strip()
    if stripped.startswith("#"):
        return stripped
    if stripped.startswith("```"):
        lines = stripped.split("\n")[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        return "\n".join(lines).strip()
    return stripped


def has_markdown(result: CompletionResult) -> bool:
    return bool(extract_markdown(result.content))


def options_for(call: str) -> CompletionOptions:
    return CALL_SETTINGS.get(call, CALL_SETTINGS["analyzer"])


def match_requested_docs(catalog: Sequence[DocFile], requested: Sequence[str]) -> List[DocFile]:
    """Catalog entries named by ``requested``, by exact name or path suffix."""
    matched: List[DocFile] = []
    for doc in catalog:
        for name in requested:
            if name == doc.filename or name.endswith(f"/{doc.filename}"):
                matched.append(doc)
                break
    return matched


class Orchestrator:
    """Coordinates prompt rendering, completion calls and output validation."""

    def __init__(
        self,
        provider: CompletionProvider,
        *,
        cache: CompletionCache | None = None,
        retry: RetryOptions | None = None,
        prompt_builder: PromptBuilder | None = None,
        validator: OutputValidator | None = None,
        snapshot: InventorySnapshot | None = None,
        skip_cache: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.retry = retry or RetryOptions()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.validator = validator or OutputValidator()
        self.snapshot = snapshot
        self.skip_cache = skip_cache
        self.stats = CallStats()
        self.logger = get_logger("orchestrator")
        self._sleep = sleep
        self._in_flight: Dict[str, asyncio.Future[CompletionResult]] = {}

    async def cached_completion(
        self,
        prompt: str,
        options: CompletionOptions,
        *,
        accept: Callable[[CompletionResult], bool] | None = None,
    ) -> CompletionResult:
        """Serve from cache when possible; otherwise call the provider with retries.

        Only successful calls are cached, and only when ``accept`` (if given)
        approves the result. ``skip_cache`` bypasses reads and writes. Concurrent
        callers asking for the same key share one provider call.
        """
        inputs = {
            "provider": self.provider.get_name(),
            "model": self.provider.get_model(),
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
        }
        key = fingerprint(prompt, **inputs)
        use_cache = self.cache is not None and not self.skip_cache
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                self.logger.debug("Using cached completion %s", key)
                self._record(cached, hit=True)
                return cached

        pending = self._in_flight.get(key)
        if pending is not None:
            self.logger.debug("Joining in-flight completion %s", key)
            result = await asyncio.shield(pending)
            self._record(result, hit=True)
            return result

        future: asyncio.Future[CompletionResult] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await with_retry(
                lambda: self.provider.generate_completion(prompt, options),
                self.retry,
                sleep=self._sleep,
            )
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Joined callers re-raise it; mark it retrieved for the case with none.
            future.exception()
            raise
        finally:
            self._in_flight.pop(key, None)

        future.set_result(result)
        self._record(result, hit=False)
        if use_cache and (accept is None or accept(result)):
            self.cache.set(key, result, inputs=inputs)
        return result

    async def execute(
        self,
        request: GenerationRequest,
        context: Mapping[str, Any],
        identity: ProjectIdentity,
        *,
        context_for: Optional[ContextFactory] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        """Dispatch ``request`` to the matching generator."""
        self.logger.debug("Executing %s request (tier=%s)", request.kind, request.tier)
        if request.kind == "documentation":
            return await self.generate_documentation(
                context,
                identity,
                tier=request.tier,
                project_type=request.project_type,
                concurrency=request.concurrency,
                on_progress=on_progress,
            )
        if request.kind == "incremental":
            return await self.generate_incremental_documentation(
                context,
                identity,
                request.target_files,
                tier=request.tier,
                project_type=request.project_type,
                concurrency=request.concurrency,
                existing_architecture=request.existing_architecture,
                on_progress=on_progress,
            )
        if request.kind == "summary":
            return await self.generate_summary(context, identity)
        if request.kind == "ai_assistant":
            assistant = request.assistant or "claude-code"
            size_mode = request.size_mode or size_mode_for(request.tier, assistant)
            return await self.generate_ai_assistant(context, identity, assistant, size_mode)
        if request.kind == "analyzers":
            results = await self.run_all_analyzers(
                context_for or (lambda kind: context),
                identity,
                request.analyzers,
                concurrency=request.concurrency,
            )
            return aggregate_results("analyzers", results)
        raise ValueError(f"Unknown request kind: {request.kind}")

    # ------------------------------------------------------------------
    # Documentation

    async def generate_documentation(
        self,
        context: Mapping[str, Any],
        identity: ProjectIdentity,
        *,
        tier: str,
        project_type: str,
        concurrency: int = 3,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        """Generate every documentation file the tier calls for."""
        docs = files_for_tier(project_type, tier)
        return await self._generate_docs(
            "documentation",
            docs,
            context,
            identity,
            tier=tier,
            concurrency=concurrency,
            on_progress=on_progress,
        )

    async def generate_incremental_documentation(
        self,
        context: Mapping[str, Any],
        identity: ProjectIdentity,
        files_to_update: Sequence[str],
        *,
        tier: str,
        project_type: str,
        concurrency: int = 3,
        existing_architecture: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        """Regenerate only the named documentation files."""
        docs = match_requested_docs(catalog_for(project_type), files_to_update)
        if not docs:
            self.logger.info(NO_MATCHING_DOCS)
            return GenerationResult(
                name="documentation",
                status="skipped",
                error=NO_MATCHING_DOCS,
                requested=tuple(files_to_update),
            )
        return await self._generate_docs(
            "documentation",
            docs,
            context,
            identity,
            tier=tier,
            concurrency=concurrency,
            architecture=existing_architecture,
            on_progress=on_progress,
        )

    async def _generate_docs(
        self,
        name: str,
        docs: Sequence[DocFile],
        context: Mapping[str, Any],
        identity: ProjectIdentity,
        *,
        tier: str,
        concurrency: int,
        architecture: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        started = time.monotonic()
        related = [doc.filename for doc in docs]
        pieces: List[_Piece] = []
        errors: List[str] = []

        async def generate(doc: DocFile, architecture_text: Optional[str]) -> _Piece:
            prompt = self.prompt_builder.documentation(
                identity=identity,
                doc=doc,
                tier=tier,
                context=context,
                snapshot=self.snapshot,
                related_docs=related,
                architecture=architecture_text,
            )
            result = await self.cached_completion(prompt, options_for("documentation"), accept=has_markdown)
            content = extract_markdown(result.content)
            if not content:
                raise ValueError(f"Empty response for {doc.filename}")
            return _Piece(GeneratedFile(doc.filename, content), result.cost, result.tokens)

        remaining = list(docs)
        first = next((doc for doc in remaining if doc.filename == ARCHITECTURE_DOC), None)
        if first is not None:
            remaining.remove(first)
            self.logger.info("Generating %s first", ARCHITECTURE_DOC)
            try:
                piece = await generate(first, None)
            except Exception as exc:
                self.logger.error("Failed to generate %s: %s", first.filename, exc)
                errors.append(f"{first.filename}: {exc}")
                self._notify(on_progress, first.filename, "error")
            else:
                pieces.append(piece)
                architecture = piece.file.content
                self._notify(on_progress, first.filename, "success")

        def task(doc: DocFile) -> Callable[[], Awaitable[_Piece]]:
            return lambda: generate(doc, architecture)

        outcomes = await parallel_limit([task(doc) for doc in remaining], limit=concurrency)
        for doc, outcome in zip(remaining, outcomes):
            if outcome.ok and outcome.value is not None:
                pieces.append(outcome.value)
                self._notify(on_progress, doc.filename, "success")
            else:
                self.logger.error("Failed to generate %s: %s", doc.filename, outcome.error)
                errors.append(f"{doc.filename}: {outcome.error}")
                self._notify(on_progress, doc.filename, "error")

        files = [piece.file for piece in pieces]
        status = "success" if files else "error"
        self.logger.info("Generated %d of %d documentation file(s)", len(files), len(docs))
        return GenerationResult(
            name=name,
            status=status,
            output=json.dumps(
                {"files": [{"filename": f.filename, "content": f.content} for f in files]}
            ),
            cost=sum(piece.cost for piece in pieces),
            tokens_used=sum(piece.tokens for piece in pieces),
            duration=time.monotonic() - started,
            error="; ".join(errors) or None,
            files=files,
            requested=tuple(doc.filename for doc in docs),
        )

    # ------------------------------------------------------------------
    # Single-file generators

    async def generate_summary(
        self, context: Mapping[str, Any], identity: ProjectIdentity
    ) -> GenerationResult:
        started = time.monotonic()
        prompt = self.prompt_builder.summary(identity=identity, context=context)
        try:
            result = await self.cached_completion(prompt, options_for("summary"), accept=has_markdown)
        except Exception as exc:
            self.logger.error("Summary generation failed: %s", exc)
            return _failure("summary", exc, started, requested=(SUMMARY_DOC,))
        content = extract_markdown(result.content)
        if not content:
            self.logger.error("Summary generation returned an empty response")
            return _failure(
                "summary",
                ValueError(f"Empty response for {SUMMARY_DOC}"),
                started,
                requested=(SUMMARY_DOC,),
                cost=result.cost,
                tokens=result.tokens,
            )
        return GenerationResult(
            name="summary",
            status="success",
            output=content,
            cost=result.cost,
            tokens_used=result.tokens,
            duration=time.monotonic() - started,
            files=[GeneratedFile(SUMMARY_DOC, content)],
            requested=(SUMMARY_DOC,),
        )

    async def generate_ai_assistant(
        self,
        context: Mapping[str, Any],
        identity: ProjectIdentity,
        assistant: str,
        size_mode: str,
    ) -> GenerationResult:
        """Generate an assistant context file, then validate and repair it against the inventory."""
        started = time.monotonic()
        filename = ASSISTANT_FILES.get(assistant)
        if filename is None:
            raise ValueError(f"Unknown assistant: {assistant}")
        prompt = self.prompt_builder.ai_assistant(
            identity=identity,
            assistant=assistant,
            size_mode=size_mode,
            context=context,
            snapshot=self.snapshot,
        )
        try:
            result = await self.cached_completion(prompt, options_for("ai_assistant"), accept=has_markdown)
        except Exception as exc:
            self.logger.error("%s generation failed: %s", filename, exc)
            return _failure("ai_assistant", exc, started, requested=(filename,))

        content = extract_markdown(result.content)
        if not content:
            self.logger.error("%s generation returned an empty response", filename)
            return _failure(
                "ai_assistant",
                ValueError(f"Empty response for {filename}"),
                started,
                requested=(filename,),
                cost=result.cost,
                tokens=result.tokens,
            )
        snapshot = self.snapshot or InventorySnapshot(utilities={})
        validation = self.validator.validate(content, snapshot, size_mode)
        auto_fixed = False
        if validation.fixable_count:
            self.logger.info(
                "Repairing %d fabricated import(s) in %s", validation.fixable_count, filename
            )
            content = auto_fix(content, validation.issues, self.snapshot)
            validation = self.validator.validate(content, snapshot, size_mode)
            auto_fixed = True
        _log_validation(self.logger, filename, validation)

        return GenerationResult(
            name="ai_assistant",
            status="success",
            output=content,
            cost=result.cost,
            tokens_used=result.tokens,
            duration=time.monotonic() - started,
            files=[GeneratedFile(filename, content)],
            requested=(filename,),
            metadata={"validation": validation, "auto_fixed": auto_fixed, "size_mode": size_mode},
        )

    # ------------------------------------------------------------------
    # Analyzers

    async def run_analyzer(
        self, kind: str, context: Mapping[str, Any], identity: ProjectIdentity
    ) -> GenerationResult:
        """Render, call and parse one analyzer; one corrective re-prompt on bad JSON."""
        schema = ANALYZER_SCHEMAS.get(kind)
        if schema is None:
            raise ValueError(f"Unknown analyzer: {kind}")
        started = time.monotonic()
        options = options_for(kind if kind == "security" else "analyzer")
        prompt = self.prompt_builder.analyzer(
            kind, identity=identity, context=context, snapshot=self.snapshot
        )

        def parses(result: CompletionResult) -> bool:
            return parse_with_retry_prompt(result.content, schema).data is not None

        cost = 0.0
        tokens = 0
        try:
            result = await self.cached_completion(prompt, options, accept=parses)
            cost += result.cost
            tokens += result.tokens
            outcome = parse_with_retry_prompt(result.content, schema)
            if outcome.data is None:
                self.logger.warning("%s analyzer returned invalid JSON; re-prompting once", kind)
                corrective = f"{prompt}\n\n{outcome.retry_prompt}"
                result = await self.cached_completion(corrective, options, accept=parses)
                cost += result.cost
                tokens += result.tokens
                outcome = parse_with_retry_prompt(result.content, schema)
        except Exception as exc:
            self.logger.error("%s analyzer failed: %s", kind, exc)
            return _failure(kind, exc, started, cost=cost, tokens=tokens)

        if outcome.data is None:
            self.logger.error("%s analyzer output failed validation: %s", kind, outcome.error)
            return GenerationResult(
                name=kind,
                status="error",
                cost=cost,
                tokens_used=tokens,
                duration=time.monotonic() - started,
                error=outcome.error,
            )

        report = outcome.data.model_dump(by_alias=True)
        return GenerationResult(
            name=kind,
            status="success",
            output=json.dumps(report, indent=2),
            cost=cost,
            tokens_used=tokens,
            duration=time.monotonic() - started,
            files=[GeneratedFile(f"{kind}.json", json.dumps(report, indent=2))],
            requested=(f"{kind}.json",),
            metadata={"report": outcome.data},
        )

    async def run_all_analyzers(
        self,
        context_for: ContextFactory,
        identity: ProjectIdentity,
        selection: Sequence[str] = DEFAULT_ANALYZERS,
        *,
        concurrency: int = 3,
    ) -> List[GenerationResult]:
        """Run the selected analyzers concurrently; results come back in selection order."""

        def task(kind: str) -> Callable[[], Awaitable[GenerationResult]]:
            return lambda: self.run_analyzer(kind, context_for(kind), identity)

        outcomes = await parallel_limit([task(kind) for kind in selection], limit=concurrency)
        results: List[GenerationResult] = []
        for kind, outcome in zip(selection, outcomes):
            if outcome.ok and outcome.value is not None:
                results.append(outcome.value)
            else:
                results.append(_failure(kind, outcome.error, time.monotonic()))
        return results

    # ------------------------------------------------------------------

    def _record(self, result: CompletionResult, *, hit: bool) -> None:
        if hit:
            self.stats.cache_hits += 1
        else:
            self.stats.completions += 1
        self.stats.cost += result.cost
        self.stats.tokens += result.tokens

    @staticmethod
    def _notify(callback: Optional[ProgressCallback], filename: str, status: str) -> None:
        if callback is not None:
            callback(filename, status)


def aggregate_results(name: str, results: Sequence[GenerationResult]) -> GenerationResult:
    """Combine task results: error only when every task failed, skipped when all were skipped."""
    attempted = [result for result in results if result.status != "skipped"]
    if not attempted:
        status = "skipped"
    elif all(result.status == "error" for result in attempted):
        status = "error"
    else:
        status = "success"
    errors = [f"{result.name}: {result.error}" for result in results if result.error]
    files = [file for result in results for file in result.files]
    return GenerationResult(
        name=name,
        status=status,
        output="\n\n".join(result.output for result in results if result.status == "success" and result.output),
        cost=sum(result.cost for result in results),
        tokens_used=sum(result.tokens_used for result in results),
        duration=sum(result.duration for result in results),
        error="; ".join(errors) or None,
        files=files,
        requested=tuple(item for result in results for item in result.requested),
        metadata={"results": list(results)},
    )


def _failure(
    name: str,
    error: Optional[BaseException],
    started: float,
    *,
    requested: Sequence[str] = (),
    cost: float = 0.0,
    tokens: int = 0,
) -> GenerationResult:
    return GenerationResult(
        name=name,
        status="error",
        cost=cost,
        tokens_used=tokens,
        duration=max(0.0, time.monotonic() - started),
        error=str(error) if error is not None else "Unknown error",
        requested=tuple(requested),
    )


def _log_validation(logger: Any, filename: str, validation: ValidationResult) -> None:
    if validation.valid and not validation.issues:
        logger.info("%s passed validation", filename)
        return
    for issue in validation.issues:
        location = f" (line {issue.line})" if issue.line else ""
        logger.warning("%s: %s%s", filename, issue.message, location)


__all__ = [
    "ARCHITECTURE_DOC",
    "CALL_SETTINGS",
    "CallStats",
    "DEFAULT_ANALYZERS",
    "GenerationRequest",
    "NO_MATCHING_DOCS",
    "Orchestrator",
    "REQUEST_KINDS",
    "aggregate_results",
    "extract_markdown",
    "has_markdown",
    "match_requested_docs",
    "options_for",
]
