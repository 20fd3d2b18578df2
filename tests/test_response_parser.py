"""Tests for extracting JSON reports from completion text."""

from __future__ import annotations

import json

import pytest

from leanintel.response_parser import (
    candidate_payloads,
    first_balanced_object,
    load_json,
    parse_response,
    parse_with_retry_prompt,
)
from leanintel.schemas import LicenseReport, SecurityReport

REPORT = {"overallGrade": "A", "score": 91, "summary": "Clean."}


@pytest.mark.parametrize(
    "text",
    [
        json.dumps(REPORT),
        f"```json\n{json.dumps(REPORT)}\n```",
        f"```\n{json.dumps(REPORT, indent=2)}\n```",
        f"Here is the report:\n{json.dumps(REPORT)}\nThanks!",
        f"```\njson\n{json.dumps(REPORT)}\n```",
    ],
)
def test_reports_are_found_in_common_wrappers(text: str) -> None:
    result = parse_response(text, SecurityReport)
    assert result.success is True
    assert result.data is not None
    assert result.data.score == 91


def test_braces_inside_strings_do_not_confuse_the_scanner() -> None:
    text = 'prefix {"summary": "use {curly} braces \\" here", "n": 1} suffix {"x": 2}'
    span = first_balanced_object(text)
    assert span is not None
    assert json.loads(span)["n"] == 1


def test_candidates_are_unique_and_ordered() -> None:
    text = '```json\n{"a": 1}\n```'
    assert candidate_payloads(text) == [text, '{"a": 1}']


def test_load_json_raises_when_nothing_decodes() -> None:
    with pytest.raises(json.JSONDecodeError):
        load_json("no json at all")


def test_schema_failures_name_the_field() -> None:
    result = parse_response(json.dumps({"overallGrade": "A", "score": 150}), LicenseReport)
    assert result.success is False
    assert result.error is not None
    assert result.error.startswith("Schema validation failed")
    assert "score" in result.error
    assert "summary" in result.error


def test_retry_prompt_carries_the_error() -> None:
    outcome = parse_with_retry_prompt("not json", SecurityReport)
    assert outcome.data is None
    assert outcome.error is not None and outcome.error.startswith("Invalid JSON")
    assert outcome.retry_prompt is not None
    assert outcome.error in outcome.retry_prompt
    assert "Start directly with { and end with }" in outcome.retry_prompt


def test_success_has_no_retry_prompt() -> None:
    outcome = parse_with_retry_prompt(json.dumps(REPORT), SecurityReport)
    assert outcome.data is not None
    assert outcome.retry_prompt is None
