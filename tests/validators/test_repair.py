"""Tests for fuzzy repair of fabricated imports."""

from __future__ import annotations

import pytest

from leanintel.models import InventorySnapshot, UtilityInfo
from leanintel.validators import OutputValidator
from leanintel.validators.repair import (
    MATCH_THRESHOLD,
    auto_fix,
    extract_keywords,
    find_best_match,
    format_import_path,
    score_match,
)


def _snapshot(**files: tuple[str, ...]) -> InventorySnapshot:
    return InventorySnapshot(
        utilities={
            key.replace("__", "/"): UtilityInfo(path=key.replace("__", "/") + ".ts", exports=exports)
            for key, exports in files.items()
        }
    )


def _repair(text: str, snapshot: InventorySnapshot | None) -> str:
    validator_snapshot = snapshot or InventorySnapshot(utilities={})
    result = OutputValidator().validate(text, validator_snapshot, "standard")
    return auto_fix(text, result.issues, snapshot)


def test_fabricated_validator_is_replaced_with_a_real_one() -> None:
    snapshot = _snapshot(src__utils__validators=("validateEmail", "validatePhone"))

    fixed = _repair("import { validateUser } from './utils/validation'", snapshot)

    assert "validateUser" not in fixed
    assert "validateEmail" in fixed or "validatePhone" in fixed
    assert fixed.startswith("import {")
    assert "from '@/utils/validators'" in fixed
    assert "// Source: src/utils/validators.ts" in fixed


def test_symbols_repaired_from_one_file_share_an_import() -> None:
    snapshot = _snapshot(src__utils__helpers=("formatDate", "validateEmail"))

    fixed = _repair("import { formatDateTime, validateUser } from './utils/format'", snapshot)

    assert fixed == "import { formatDate, validateEmail } from '@/utils/helpers'; // Source: src/utils/helpers.ts"


def test_unmatched_symbols_become_an_explanatory_comment() -> None:
    snapshot = _snapshot(
        src__utils__helpers=("formatDate",),
        src__lib__http=("request", "retry"),
        src__lib__unused=("skipMe",),
    )

    fixed = _repair("import { qqq } from './utils/nothing'", snapshot)

    lines = fixed.split("\n")
    assert lines[0] == "// REPLACED: Original import not found. Actual utilities available:"
    assert lines[1:] == [
        "// import { formatDate } from '@/utils/helpers';",
        "// import { request, retry } from '@/lib/http';",
    ]


def test_without_inventory_the_line_is_commented_out() -> None:
    fixed = _repair("text\nimport { fake } from './utils/x'\nmore", None)
    assert fixed.split("\n") == [
        "text",
        "// REMOVED: import { fake } from './utils/x' // Reason: Import not found in codebase",
        "more",
    ]


def test_verified_symbols_on_a_repaired_line_are_kept() -> None:
    snapshot = _snapshot(src__utils__helpers=("real", "formatDate"))

    fixed = _repair("import { real, formatDateTime } from './utils/helpers'", snapshot)

    assert fixed.split("\n") == [
        "import { real } from './utils/helpers';",
        "import { formatDate } from '@/utils/helpers'; // Source: src/utils/helpers.ts",
    ]


def test_text_without_fixable_issues_is_untouched() -> None:
    text = "# Title\n\nNothing to fix [Date]"
    assert _repair(text, _snapshot(src__utils__a=("x",))) == text


@pytest.mark.parametrize(
    ("fabricated", "candidate", "score"),
    [
        ("formatDate", "FORMATDATE", 100),
        ("getUser", "getUserById", 70),
        ("getUserById", "getUser", 70),
        ("validateUser", "validateEmail", 30),
        ("parseDate", "safeParseDate", 50),
        ("parseDate", "parseJson", 30),
        ("fetch", "prefetchData", 50),
        ("formatCurrencyValue", "parseCurrencyAmount", 30),
        ("loadUserProfileData", "saveUserProfileData", 90),
        ("zzz", "validateEmail", 0),
    ],
)
def test_score_match(fabricated: str, candidate: str, score: int) -> None:
    assert score_match(fabricated, candidate) == score


def test_best_match_respects_threshold_and_scan_order() -> None:
    snapshot = _snapshot(
        src__a=("validateEmail",),
        src__b=("validatePhone",),
        src__c=("unrelated",),
    )
    match = find_best_match("validateUser", snapshot)
    assert match is not None
    assert (match.export, match.score) == ("validateEmail", 30)
    assert match.score >= MATCH_THRESHOLD
    assert find_best_match("qqq", snapshot) is None


def test_containment_outranks_a_shared_leading_word() -> None:
    snapshot = _snapshot(src__utils__json=("parseJson",), src__utils__dates=("safeParseDate",))

    match = find_best_match("parseDate", snapshot)

    assert match is not None
    assert (match.export, match.score) == ("safeParseDate", 50)
    assert match.path == "src/utils/dates.ts"


def test_keyword_extraction_and_paths() -> None:
    assert extract_keywords("getUserById") == ["get", "user"]
    assert extract_keywords("load_api-config") == ["load", "api", "config"]
    assert format_import_path("src/utils/a.ts") == "@/utils/a"
    assert format_import_path("lib/b.js") == "./lib/b"
    assert format_import_path("@scope/c") == "@scope/c"
