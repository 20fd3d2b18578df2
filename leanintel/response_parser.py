"""Extract and validate JSON payloads from raw completion text."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .logging import get_logger

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = get_logger("response_parser")

_FENCE_PATTERN = re.compile(r"```[ \t]*([A-Za-z0-9_-]*)[ \t]*\r?\n?(.*?)\r?\n?```", re.DOTALL)
_LANGUAGE_PREFIX = re.compile(r"^(json|javascript|js)\s*(\r?\n|(?=\{))", re.IGNORECASE)
_RAW_PREVIEW = 500

RETRY_PROMPT_TEMPLATE = """Your previous response was not valid JSON or failed schema validation.

Error: {error}

Please provide a valid JSON response that matches the required schema.
Remember:
- Start directly with {{ and end with }}
- Do not wrap in markdown code blocks
- Ensure all required fields are present
- Use the exact field names and types specified"""


@dataclass
class ParseResult(Generic[ModelT]):
    success: bool
    data: Optional[ModelT] = None
    error: Optional[str] = None
    raw: Optional[str] = None


@dataclass
class ParseOutcome(Generic[ModelT]):
    """Either parsed data or a corrective prompt to re-send, never both."""

    data: Optional[ModelT] = None
    retry_prompt: Optional[str] = None
    error: Optional[str] = None


def candidate_payloads(text: str) -> List[str]:
    """Return JSON candidates in priority order: whole text, fenced blocks, brace span."""
    stripped = text.strip()
    candidates: List[str] = [stripped]

    for match in _FENCE_PATTERN.finditer(stripped):
        body = match.group(2).strip()
        body = _LANGUAGE_PREFIX.sub("", body, count=1).strip()
        if body:
            candidates.append(body)

    span = first_balanced_object(stripped)
    if span:
        candidates.append(span)

    unique: List[str] = []
    for candidate in candidates:
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def first_balanced_object(text: str) -> Optional[str]:
    """Locate the first balanced ``{...}`` span, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find("{", start + 1)
    return None


def load_json(text: str) -> Any:
    """Decode the first candidate payload that is valid JSON.

    Raises ``json.JSONDecodeError`` from the last attempt when none decode.
    """
    last_error: Optional[json.JSONDecodeError] = None
    for candidate in candidate_payloads(text):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
    if last_error is None:
        raise json.JSONDecodeError("Empty response", text, 0)
    raise last_error


def parse_response(text: str, schema: Type[ModelT]) -> ParseResult[ModelT]:
    """Parse raw completion text into ``schema``; never raises on bad input."""
    try:
        payload = load_json(text)
    except json.JSONDecodeError as exc:
        logger.debug("JSON parse failed: %s", exc)
        return ParseResult(success=False, error=f"Invalid JSON: {exc}", raw=text[:_RAW_PREVIEW])

    try:
        data = schema.model_validate(payload)
    except ValidationError as exc:
        issues = "; ".join(_format_issue(error) for error in exc.errors())
        logger.debug("Schema validation failed: %s", issues)
        return ParseResult(
            success=False,
            error=f"Schema validation failed: {issues}",
            raw=json.dumps(payload)[:_RAW_PREVIEW],
        )
    return ParseResult(success=True, data=data)


def parse_with_retry_prompt(text: str, schema: Type[ModelT]) -> ParseOutcome[ModelT]:
    result = parse_response(text, schema)
    if result.success and result.data is not None:
        return ParseOutcome(data=result.data)
    return ParseOutcome(
        retry_prompt=RETRY_PROMPT_TEMPLATE.format(error=result.error),
        error=result.error,
    )


def json_schema_for(schema: Type[BaseModel]) -> Dict[str, Any]:
    """JSON Schema for embedding in prompts."""
    return schema.model_json_schema(by_alias=True)


def _format_issue(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else str(message)


__all__ = [
    "ParseOutcome",
    "ParseResult",
    "RETRY_PROMPT_TEMPLATE",
    "candidate_payloads",
    "first_balanced_object",
    "json_schema_for",
    "load_json",
    "parse_response",
    "parse_with_retry_prompt",
]
