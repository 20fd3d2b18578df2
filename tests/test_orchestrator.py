"""Tests for the generation orchestrator."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Dict

import pytest

from leanintel.errors import InvalidRequestError, RateLimitError
from leanintel.models import (
    GenerationResult,
    InventorySnapshot,
    ProjectContext,
    ProjectIdentity,
    UtilityInfo,
)
from leanintel.orchestrator import (
    NO_MATCHING_DOCS,
    GenerationRequest,
    Orchestrator,
    aggregate_results,
    extract_markdown,
    match_requested_docs,
)
from leanintel.providers.base import CompletionOptions
from leanintel.retry import RetryOptions
from leanintel.stores.completion_cache import CompletionCache
from leanintel.tiers import catalog_for
from tests._fixtures.providers import FakeProvider, no_sleep

IDENTITY = ProjectIdentity(name="shopfront")
VALID_REPORT = json.dumps({"overallGrade": "B+", "score": 82, "summary": "Mostly sound."})


@pytest.fixture
def context(tmp_path: Path) -> Dict[str, Any]:
    return {
        "project": ProjectContext(project_type="frontend", root_path=str(tmp_path), languages=["TypeScript"]),
        "file_tree": "src/\n  components/\n  utils/",
    }


def _orchestrator(provider: FakeProvider, **kwargs: Any) -> Orchestrator:
    kwargs.setdefault("sleep", no_sleep)
    return Orchestrator(provider, **kwargs)


def _doc_name(prompt: str) -> str:
    return prompt.split("Write `", 1)[1].split("`", 1)[0]


def _documentation(orchestrator: Orchestrator, context: Dict[str, Any], **kwargs: Any) -> GenerationResult:
    kwargs.setdefault("tier", "standard")
    kwargs.setdefault("project_type", "frontend")
    return asyncio.run(orchestrator.generate_documentation(context, IDENTITY, **kwargs))


# ---------------------------------------------------------------------------
# Documentation


def test_architecture_is_generated_first_and_shared(context: Dict[str, Any]) -> None:
    provider = FakeProvider(lambda prompt: f"# {_doc_name(prompt)}\n\nBody for {_doc_name(prompt)}.")
    result = _documentation(_orchestrator(provider), context)

    assert result.status == "success"
    assert _doc_name(provider.calls[0][0]) == "ARCHITECTURE.md"
    for prompt, _ in provider.calls[1:]:
        assert "## Existing ARCHITECTURE.md" in prompt
        assert "Body for ARCHITECTURE.md." in prompt
    assert [f.filename for f in result.files][0] == "ARCHITECTURE.md"
    assert len(result.files) == 7
    payload = json.loads(result.output or "")
    assert [item["filename"] for item in payload["files"]] == [f.filename for f in result.files]


def test_fenced_replies_are_unwrapped(context: Dict[str, Any]) -> None:
    provider = FakeProvider("```markdown\n# Architecture\n\nText\n```")
    result = _documentation(_orchestrator(provider), context, tier="minimal")
    assert result.files[0].content == "# Architecture\n\nText"


def test_partial_failure_is_still_success(context: Dict[str, Any]) -> None:
    def respond(prompt: str) -> str:
        if _doc_name(prompt) == "ROUTING.md":
            raise InvalidRequestError("prompt rejected", status=400)
        return "# Doc\n\nBody"

    progress: list[tuple[str, str]] = []
    result = _documentation(_orchestrator(FakeProvider(respond)), context, on_progress=lambda f, s: progress.append((f, s)))

    assert result.status == "success"
    assert "ROUTING.md" not in [f.filename for f in result.files]
    assert "ROUTING.md" in result.requested
    assert result.error is not None and result.error.startswith("ROUTING.md: prompt rejected")
    assert ("ROUTING.md", "error") in progress
    assert progress[0] == ("ARCHITECTURE.md", "success")


def test_all_failures_is_an_error(context: Dict[str, Any]) -> None:
    provider = FakeProvider(failures=[InvalidRequestError("bad request")] * 7)
    result = _documentation(_orchestrator(provider), context)
    assert result.status == "error"
    assert result.files == []
    assert result.cost == 0


def test_transient_failures_are_retried(context: Dict[str, Any]) -> None:
    provider = FakeProvider(failures=[RateLimitError("slow down", retry_after=2)])
    result = _documentation(_orchestrator(provider), context, tier="minimal")
    assert result.status == "success"
    assert len(provider.calls) == 2


def test_fatal_failures_are_not_retried(context: Dict[str, Any]) -> None:
    provider = FakeProvider(failures=[InvalidRequestError("bad request")])
    orchestrator = _orchestrator(provider, retry=RetryOptions(max_retries=5))
    result = _documentation(orchestrator, context, tier="minimal")
    assert result.status == "error"
    assert len(provider.calls) == 1


def test_second_run_is_served_from_cache(tmp_path: Path, context: Dict[str, Any]) -> None:
    cache_dir = tmp_path / "llm-cache"
    first_provider = FakeProvider(lambda prompt: f"# {_doc_name(prompt)}\n\nBody")
    first = _orchestrator(first_provider, cache=CompletionCache(cache_dir))
    first_result = _documentation(first, context)

    second_provider = FakeProvider(lambda prompt: f"# {_doc_name(prompt)}\n\nBody")
    second = _orchestrator(second_provider, cache=CompletionCache(cache_dir))
    second_result = _documentation(second, context)

    assert second_provider.calls == []
    assert second.stats.cache_hits == len(first_provider.calls)
    assert second.stats.completions == 0
    assert second_result.cost == pytest.approx(first_result.cost)
    assert second_result.tokens_used == first_result.tokens_used
    assert [f.content for f in second_result.files] == [f.content for f in first_result.files]


def test_skip_cache_bypasses_reads_and_writes(tmp_path: Path, context: Dict[str, Any]) -> None:
    cache = CompletionCache(tmp_path / "llm-cache")
    provider = FakeProvider()
    _documentation(_orchestrator(provider, cache=cache, skip_cache=True), context, tier="minimal")
    assert cache.stats().entries == 0
    assert len(provider.calls) == 1


def test_failed_calls_are_never_cached(tmp_path: Path, context: Dict[str, Any]) -> None:
    cache = CompletionCache(tmp_path / "llm-cache")
    provider = FakeProvider(failures=[InvalidRequestError("bad request")])
    _documentation(_orchestrator(provider, cache=cache), context, tier="minimal")
    assert cache.stats().entries == 0


def test_empty_replies_are_not_cached(tmp_path: Path, context: Dict[str, Any]) -> None:
    cache_dir = tmp_path / "llm-cache"
    empty = FakeProvider("  \n")
    first = _documentation(_orchestrator(empty, cache=CompletionCache(cache_dir)), context, tier="minimal")

    assert first.status == "error"
    assert "Empty response for ARCHITECTURE.md" in (first.error or "")
    assert CompletionCache(cache_dir).stats().entries == 0

    provider = FakeProvider("# Architecture\n\nRecovered.")
    second = _documentation(_orchestrator(provider, cache=CompletionCache(cache_dir)), context, tier="minimal")

    assert len(provider.calls) == 1
    assert second.status == "success"
    assert second.files[0].content == "# Architecture\n\nRecovered."


def test_concurrent_identical_prompts_share_one_call() -> None:
    provider = FakeProvider("# Shared\n\nBody")
    orchestrator = _orchestrator(provider)
    options = CompletionOptions(max_tokens=100, temperature=0.3)

    async def both() -> list:
        return await asyncio.gather(
            orchestrator.cached_completion("same prompt", options),
            orchestrator.cached_completion("same prompt", options),
        )

    first, second = asyncio.run(both())

    assert len(provider.calls) == 1
    assert first.content == second.content == "# Shared\n\nBody"
    assert orchestrator.stats.completions == 1
    assert orchestrator.stats.cache_hits == 1


def test_shared_call_failure_reaches_every_waiter() -> None:
    provider = FakeProvider(failures=[InvalidRequestError("bad request")])
    orchestrator = _orchestrator(provider)
    options = CompletionOptions(max_tokens=100, temperature=0.3)

    async def both() -> list:
        return await asyncio.gather(
            orchestrator.cached_completion("same prompt", options),
            orchestrator.cached_completion("same prompt", options),
            return_exceptions=True,
        )

    outcomes = asyncio.run(both())

    assert len(provider.calls) == 1
    assert all(isinstance(outcome, InvalidRequestError) for outcome in outcomes)


# ---------------------------------------------------------------------------
# Incremental documentation


def test_incremental_without_matches_is_skipped(context: Dict[str, Any]) -> None:
    provider = FakeProvider()
    result = asyncio.run(
        _orchestrator(provider).generate_incremental_documentation(
            context, IDENTITY, ["docs/NOTES.md"], tier="standard", project_type="frontend"
        )
    )
    assert result.status == "skipped"
    assert result.error == NO_MATCHING_DOCS
    assert provider.calls == []


def test_incremental_uses_existing_architecture(context: Dict[str, Any]) -> None:
    provider = FakeProvider("# Components\n\nUpdated")
    request = GenerationRequest(
        kind="incremental",
        project_type="frontend",
        target_files=["docs/COMPONENTS.md"],
        existing_architecture="# Architecture\n\nPreviously written overview.",
    )
    result = asyncio.run(_orchestrator(provider).execute(request, context, IDENTITY))

    assert [f.filename for f in result.files] == ["COMPONENTS.md"]
    assert len(provider.calls) == 1
    assert "Previously written overview." in provider.calls[0][0]


def test_requested_docs_match_by_name_or_suffix() -> None:
    catalog = catalog_for("backend")
    matched = match_requested_docs(catalog, ["API.md", "docs/DATABASE.md", "docs/OTHERAPI.md"])
    assert [doc.filename for doc in matched] == ["API.md", "DATABASE.md"]


# ---------------------------------------------------------------------------
# Summary and assistant files


def test_summary_produces_summary_file(context: Dict[str, Any]) -> None:
    provider = FakeProvider("# Shopfront\n\nOverview")
    result = asyncio.run(_orchestrator(provider).execute(GenerationRequest(kind="summary"), context, IDENTITY))
    assert result.status == "success"
    assert result.files[0].filename == "SUMMARY.md"
    assert provider.calls[0][1].max_tokens == 8000


def test_summary_failure_is_reported(context: Dict[str, Any]) -> None:
    provider = FakeProvider(failures=[InvalidRequestError("bad request")])
    result = asyncio.run(_orchestrator(provider).generate_summary(context, IDENTITY))
    assert result.status == "error"
    assert result.error == "bad request"


def test_empty_summary_is_an_error_and_not_cached(tmp_path: Path, context: Dict[str, Any]) -> None:
    cache = CompletionCache(tmp_path / "llm-cache")
    result = asyncio.run(_orchestrator(FakeProvider(""), cache=cache).generate_summary(context, IDENTITY))

    assert result.status == "error"
    assert result.error == "Empty response for SUMMARY.md"
    assert result.files == []
    assert cache.stats().entries == 0


def test_empty_assistant_reply_is_an_error(context: Dict[str, Any]) -> None:
    result = asyncio.run(
        _orchestrator(FakeProvider("```\n```")).generate_ai_assistant(context, IDENTITY, "claude-code", "compact")
    )

    assert result.status == "error"
    assert result.error == "Empty response for CLAUDE.md"


def test_assistant_output_is_validated_and_repaired(context: Dict[str, Any]) -> None:
    snapshot = InventorySnapshot(
        utilities={"src/utils/helpers": UtilityInfo(path="src/utils/helpers.ts", exports=("formatDate",))}
    )
    provider = FakeProvider("# CLAUDE.md\n\nimport { formatDateTime } from './utils/helpers'\n")
    orchestrator = _orchestrator(provider, snapshot=snapshot)

    result = asyncio.run(orchestrator.generate_ai_assistant(context, IDENTITY, "claude-code", "standard"))

    assert result.files[0].filename == "CLAUDE.md"
    assert "formatDateTime" not in result.files[0].content
    assert "import { formatDate } from '@/utils/helpers';" in result.files[0].content
    assert result.metadata["auto_fixed"] is True
    assert result.metadata["validation"].valid is True
    assert provider.calls[0][1].max_tokens == 20000


def test_assistant_size_mode_follows_tier_and_assistant(context: Dict[str, Any]) -> None:
    request = GenerationRequest(kind="ai_assistant", tier="minimal", assistant="copilot")
    result = asyncio.run(_orchestrator(FakeProvider("# Copilot\n")).execute(request, context, IDENTITY))
    assert result.files[0].filename == "COPILOT.md"
    assert result.metadata["size_mode"] == "compact"
    assert result.metadata["auto_fixed"] is False


def test_unknown_assistant_is_rejected(context: Dict[str, Any]) -> None:
    with pytest.raises(ValueError, match="Unknown assistant"):
        asyncio.run(_orchestrator(FakeProvider()).generate_ai_assistant(context, IDENTITY, "emacs", "standard"))


# ---------------------------------------------------------------------------
# Analyzers


def test_invalid_analyzer_json_gets_one_corrective_prompt(tmp_path: Path, context: Dict[str, Any]) -> None:
    def respond(prompt: str) -> str:
        return VALID_REPORT if "previous response was not valid JSON" in prompt else "Sorry, here you go"

    cache = CompletionCache(tmp_path / "llm-cache")
    provider = FakeProvider(respond)
    result = asyncio.run(_orchestrator(provider, cache=cache).run_analyzer("security", context, IDENTITY))

    assert result.status == "success"
    assert len(provider.calls) == 2
    assert provider.calls[1][0].startswith(provider.calls[0][0])
    assert provider.calls[0][1].temperature == 0.1
    assert result.metadata["report"].overall_grade == "B"
    assert result.files[0].filename == "security.json"
    assert json.loads(result.output or "")["overallGrade"] == "B"
    assert result.cost == pytest.approx(2 * provider.calculate_cost(100, 50))
    # Only the response that parsed is cached.
    assert cache.stats().entries == 1


def test_analyzer_failing_twice_is_an_error(context: Dict[str, Any]) -> None:
    provider = FakeProvider("still not json")
    result = asyncio.run(_orchestrator(provider).run_analyzer("license", context, IDENTITY))
    assert result.status == "error"
    assert len(provider.calls) == 2
    assert result.error is not None and result.error.startswith("Invalid JSON")


def test_analyzers_run_in_selection_order(context: Dict[str, Any]) -> None:
    def respond(prompt: str) -> str:
        return "garbage" if "license compliance review" in prompt else VALID_REPORT

    request = GenerationRequest(kind="analyzers", analyzers=("quality", "license", "cost"))
    result = asyncio.run(_orchestrator(FakeProvider(respond)).execute(request, context, IDENTITY))

    assert result.status == "success"
    names = [item.name for item in result.metadata["results"]]
    assert names == ["quality", "license", "cost"]
    assert [item.status for item in result.metadata["results"]] == ["success", "error", "success"]
    assert [f.filename for f in result.files] == ["quality.json", "cost.json"]


def test_unknown_analyzer_is_rejected(context: Dict[str, Any]) -> None:
    with pytest.raises(ValueError):
        asyncio.run(_orchestrator(FakeProvider()).run_analyzer("vibes", context, IDENTITY))


def test_unknown_request_kind_is_rejected(context: Dict[str, Any]) -> None:
    with pytest.raises(ValueError, match="Unknown request kind"):
        asyncio.run(_orchestrator(FakeProvider()).execute(GenerationRequest(kind="poem"), context, IDENTITY))


# ---------------------------------------------------------------------------
# Helpers


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([], "skipped"),
        (["skipped", "skipped"], "skipped"),
        (["error", "error"], "error"),
        (["error", "skipped"], "error"),
        (["error", "success"], "success"),
    ],
)
def test_aggregate_status(statuses: list[str], expected: str) -> None:
    results = [
        GenerationResult(name=f"r{i}", status=status, cost=0.5, error="x" if status == "error" else None)  # type: ignore[arg-type]
        for i, status in enumerate(statuses)
    ]
    combined = aggregate_results("all", results)
    assert combined.status == expected
    assert combined.cost == pytest.approx(0.5 * len(statuses))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("# Title\nbody", "# Title\nbody"),
        ("  # Title  ", "# Title"),
        ("```markdown\n# Title\n```", "# Title"),
        ("```\n# Title\nbody", "# Title\nbody"),
        ("Plain text", "Plain text"),
    ],
)
def test_extract_markdown(raw: str, expected: str) -> None:
    assert extract_markdown(raw) == expected
