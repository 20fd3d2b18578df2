"""Tests for the codebase inventory scan."""

from __future__ import annotations

from pathlib import Path

import pytest

from leanintel.errors import InventoryError
from leanintel.inventory import CodebaseInventory, classify_pattern, extract_exports, has_export
from leanintel.inventory.core import (
    ExportIndex,
    categorize_anti_pattern,
    is_utility_path,
    normalize_module_path,
    path_matches,
)
from leanintel.models import InventorySnapshot, UtilityInfo
from leanintel.stores.inventory_cache import InventoryCache
from tests._fixtures.repo_builder import FakeGit, RepoBuilder, log_output

SOURCE_FILES = {
    "src/utils/format.ts": """
        export function formatDate(value: Date): string {
          return value.toISOString();
        }
        export const formatMoney = (cents: number) => `$${cents / 100}`;
    """,
    "src/services/userService.ts": "export async function fetchUser(id: string) {}\n",
    "src/components/Button.tsx": "export function Button() { return null; }\n",
    "src/hooks/useAuth.ts": "export function useAuth() {}\n",
    "styles/main.css": "body { margin: 0; }\n",
    "README.md": "# Shop\n",
}


def _history() -> FakeGit:
    return FakeGit(
        [
            (
                ["git", "log"],
                log_output(
                    {
                        "a" * 40: "fix: resolve type error in checkout\n\nDetails here",
                        "b" * 40: "feat: add product page",
                        "c" * 40: "perf: slow list rendering",
                    }
                ),
            )
        ]
    )


def test_scan_collects_utilities_patterns_and_history(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SOURCE_FILES)

    snapshot = repo_builder.scan(runner=_history())

    assert list(snapshot.utilities) == ["src/services/userService", "src/utils/format"]
    assert snapshot.utilities["src/utils/format"].exports == ("formatDate", "formatMoney")
    assert snapshot.utilities["src/utils/format"].path == "src/utils/format.ts"
    categories = {p.file: p.category for p in snapshot.patterns}
    assert categories["src/components/Button.tsx"] == "component"
    assert categories["src/hooks/useAuth.ts"] == "hook"
    assert categories["styles/main.css"] == "style"
    assert "README.md" not in categories
    assert [(a.commit_hash, a.category) for a in snapshot.anti_patterns] == [
        ("aaaaaaa", "types"),
        ("ccccccc", "performance"),
    ]
    assert snapshot.anti_patterns[0].message == "fix: resolve type error in checkout"
    assert snapshot.stats.total_files == 4
    assert snapshot.stats.utility_files == 2
    assert snapshot.stats.exported_functions == 3
    assert snapshot.industry is None
    assert snapshot.compliance_gaps == ()


def test_scan_without_git_history_still_succeeds(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SOURCE_FILES)
    snapshot = repo_builder.scan()
    assert snapshot.anti_patterns == ()
    assert snapshot.stats.anti_patterns_found == 0


def test_has_export_checks_symbol_and_path(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SOURCE_FILES)
    inventory = CodebaseInventory(repo_builder.path(), runner=FakeGit())
    inventory.scan()

    assert inventory.has_export("formatDate", "@/utils/format")
    assert inventory.has_export("formatDate", "./utils/format.ts")
    assert inventory.has_export("fetchUser", "src/services/userService")
    assert not inventory.has_export("formatDate", "./utils/other")
    assert not inventory.has_export("parseDate", "@/utils/format")


def test_snapshot_is_unavailable_before_scanning(repo_builder: RepoBuilder) -> None:
    inventory = CodebaseInventory(repo_builder.path(), runner=FakeGit())
    with pytest.raises(InventoryError):
        _ = inventory.snapshot


def test_missing_root_is_an_inventory_error(tmp_path: Path) -> None:
    with pytest.raises(InventoryError):
        CodebaseInventory(tmp_path / "missing")


def test_unreadable_files_are_counted(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/utils/ok.ts": "export const ok = 1;\n"})
    (repo_builder.path() / "src/utils/garbled.ts").write_bytes(b"\xff\xfe\xfa export")

    snapshot = repo_builder.scan()

    assert snapshot.stats.unreadable_files == 1
    assert list(snapshot.utilities) == ["src/utils/ok"]


def test_healthcare_profile_adds_directories_and_gaps(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/phi/mask.ts": "export function maskRecord() {}\n"})

    snapshot = repo_builder.scan(industry="medical")

    assert snapshot.industry == "Healthcare"
    assert "src/phi/mask" in snapshot.utilities
    assert snapshot.compliance_gaps == (
        "No security utilities found for PHI handling",
        "No FHIR mappers found for healthcare data transformation",
        "No exported encryption helper found for patient data",
    )


def test_cached_inventory_is_reused_until_the_tree_changes(tmp_path: Path, repo_builder: RepoBuilder) -> None:
    repo_builder.write(SOURCE_FILES)
    cache_path = tmp_path / "inventory-cache.json"

    first = CodebaseInventory(repo_builder.path(), runner=_history(), cache=InventoryCache(cache_path)).scan()
    assert cache_path.exists()

    git = _history()
    second = CodebaseInventory(repo_builder.path(), runner=git, cache=InventoryCache(cache_path)).scan()
    assert git.calls == []
    assert dict(second.utilities) == dict(first.utilities)
    assert second.anti_patterns == first.anti_patterns
    assert second.stats == first.stats

    repo_builder.write({"src/utils/format.ts": "export function formatDate() {}\n"})
    git = _history()
    third = CodebaseInventory(repo_builder.path(), runner=git, cache=InventoryCache(cache_path)).scan()
    assert git.calls != []
    assert third.utilities["src/utils/format"].exports == ("formatDate",)


def test_cache_is_keyed_by_industry(tmp_path: Path, repo_builder: RepoBuilder) -> None:
    repo_builder.write(SOURCE_FILES)
    cache_path = tmp_path / "inventory-cache.json"
    CodebaseInventory(repo_builder.path(), runner=FakeGit(), cache=InventoryCache(cache_path)).scan()

    snapshot = CodebaseInventory(
        repo_builder.path(), industry="fintech", runner=FakeGit(), cache=InventoryCache(cache_path)
    ).scan()

    assert snapshot.industry == "Fintech"


def test_extract_exports_covers_declaration_forms() -> None:
    content = "\n".join(
        [
            "export function formatDate() {}",
            "export const API_URL = 'x';",
            "export default class Client {}",
            "export interface Options {}",
            "export type Id = string;",
            "export enum Color { Red }",
            "const a = 1, b = 2;",
            "export { a, b as beta, type Shape };",
            "export * as helpers from './helpers';",
            "export function formatDate() {}",
        ]
    )
    assert extract_exports(content) == [
        "formatDate",
        "API_URL",
        "Client",
        "Options",
        "Id",
        "Color",
        "a",
        "beta",
        "Shape",
        "helpers",
    ]


def test_default_export_of_identifier() -> None:
    assert extract_exports("const router = make();\nexport default router;\n") == ["router"]


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("src/utils/date.ts", True),
        ("lib/http.js", True),
        ("src/features/cartHelper.ts", True),
        ("src/features/cart.ts", False),
        ("src/utils/readme.md", False),
    ],
)
def test_is_utility_path(path: str, expected: bool) -> None:
    assert is_utility_path(path) is expected


@pytest.mark.parametrize(
    ("path", "category"),
    [
        ("src/__tests__/app.ts", "test"),
        ("src/app.spec.ts", "test"),
        ("src/theme.scss", "style"),
        ("src/useCart.ts", "hook"),
        ("src/pages/index.ts", "route"),
        ("src/models/order.ts", "model"),
        ("src/ProductCard.ts", "component"),
        ("src/api/orders.ts", "api"),
        ("src/paymentClient.ts", "api"),
        ("src/lib/money.ts", "util"),
        ("src/config/env.ts", "config"),
        ("src/billing/invoice.ts", "util"),
    ],
)
def test_classify_pattern(path: str, category: str) -> None:
    match = classify_pattern(path)
    assert match is not None
    assert match.category == category


def test_unclassified_files() -> None:
    assert classify_pattern("README.md") is None
    assert classify_pattern("src/index.ts") is None


@pytest.mark.parametrize(
    ("message", "category"),
    [
        ("fix: css overflow", "styling"),
        ("fix: wrong import path", "imports"),
        ("fix: unhandled exception", "error-handling"),
        ("security: rotate auth token", "security"),
        ("revert: bad merge", "general"),
    ],
)
def test_categorize_anti_pattern(message: str, category: str) -> None:
    assert categorize_anti_pattern(message) == category


def test_normalize_module_path() -> None:
    assert normalize_module_path("../../src/utils/date.ts") == "utils/date"
    assert normalize_module_path("~/lib/api/") == "lib/api"


def test_index_files_satisfy_directory_imports() -> None:
    snapshot = InventorySnapshot(
        utilities={"src/lib/api/index": UtilityInfo(path="src/lib/api/index.ts", exports=("client",))}
    )
    assert has_export(snapshot, "client", "@/lib/api")
    assert not has_export(snapshot, "client", "@/lib")


@pytest.mark.parametrize(
    "source",
    ["@/lib/api", "./lib/api/index", "api", "~/lib/api", "lib", "@/lib", "i", "other/api", "src/lib/api.ts", ""],
)
def test_export_index_agrees_with_path_matching(source: str) -> None:
    utilities = {
        "src/lib/api/index": UtilityInfo(path="src/lib/api/index.ts", exports=("client",)),
        "src/utils/date": UtilityInfo(path="src/utils/date.ts", exports=("formatDate",)),
    }
    expected = any(path_matches(key, source) and "client" in info.exports for key, info in utilities.items())

    assert ExportIndex(utilities).has("client", source) is expected


def test_export_index_is_built_once_per_scan(repo_builder: RepoBuilder, monkeypatch: pytest.MonkeyPatch) -> None:
    repo_builder.write(SOURCE_FILES)
    inventory = CodebaseInventory(repo_builder.path(), runner=FakeGit())
    inventory.scan()
    built: list[int] = []
    original = ExportIndex.__init__

    def counting_init(self: ExportIndex, utilities) -> None:
        built.append(len(utilities))
        original(self, utilities)

    monkeypatch.setattr(ExportIndex, "__init__", counting_init)

    assert inventory.has_export("formatDate", "@/utils/format")
    assert not inventory.has_export("parseDate", "@/utils/format")
    assert inventory.has_export("fetchUser", "src/services/userService")
    assert len(built) == 1
