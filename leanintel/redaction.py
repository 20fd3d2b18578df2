"""Strip secrets and personal data from file content before it reaches a provider."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Pattern, Tuple


@dataclass(frozen=True)
class RedactionPattern:
    name: str
    pattern: Pattern[str]

    @property
    def replacement(self) -> str:
        return f"[REDACTED:{self.name}]"


@dataclass(frozen=True)
class RedactionResult:
    content: str
    count: int


@dataclass
class RedactionStats:
    total_redactions: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    files_processed: int = 0


SECRET_PATTERNS: Tuple[RedactionPattern, ...] = (
    RedactionPattern("AWS_KEY", re.compile(r"(?:AKIA|ABIA|ACCA|ASIA)[0-9A-Z]{16}")),
    RedactionPattern(
        "AWS_SECRET",
        re.compile(
            r"(?:aws_secret_access_key)\s*[=:]\s*['\"]?[A-Za-z0-9/+=]{40}['\"]?",
            re.IGNORECASE,
        ),
    ),
    RedactionPattern("GITHUB_TOKEN", re.compile(r"(?:ghp|gho|ghu|ghs|ghr)_[A-Za-z0-9_]{36,255}")),
    RedactionPattern("SLACK_TOKEN", re.compile(r"xox[bpors]-[A-Za-z0-9-]{10,250}")),
    RedactionPattern(
        "JWT",
        re.compile(r"eyJ[A-Za-z0-9_-]{10,}\.eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}"),
    ),
    RedactionPattern(
        "PRIVATE_KEY",
        re.compile(
            r"-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----[\s\S]*?"
            r"-----END (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----"
        ),
    ),
    RedactionPattern("BEARER_TOKEN", re.compile(r"Bearer\s+[A-Za-z0-9_\-.~+/]+=*")),
    RedactionPattern(
        "CONNECTION_STRING",
        re.compile(
            r"(?:mongodb(?:\+srv)?|postgres(?:ql)?|mysql|redis|amqp)s?://[^\s'\"`,)}\]]+",
            re.IGNORECASE,
        ),
    ),
    RedactionPattern(
        "GENERIC_SECRET",
        re.compile(
            r"(?:api_?key|api_?secret|auth_?token|access_?token|secret_?key|password|passwd"
            r"|private_?key|client_?secret)\s*[=:]\s*['\"]?[A-Za-z0-9_\-./+=]{8,128}['\"]?",
            re.IGNORECASE,
        ),
    ),
)

PII_PATTERNS: Tuple[RedactionPattern, ...] = (
    RedactionPattern("EMAIL", re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")),
    RedactionPattern(
        "PHONE",
        re.compile(r"(?<!\w)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]\d{3}[-.\s]\d{4}\b"),
    ),
    RedactionPattern("SSN", re.compile(r"\b\d{3}-\d{2}-\d{4}\b")),
    # Loopback, broadcast and RFC 1918 ranges are left alone.
    RedactionPattern(
        "IP_ADDRESS",
        re.compile(
            r"\b(?!0\.0\.0\.0|127\.\d{1,3}\.\d{1,3}\.\d{1,3}|255\.255\.255\.\d{1,3}"
            r"|10\.\d{1,3}\.\d{1,3}\.\d{1,3}|172\.(?:1[6-9]|2\d|3[01])\.\d{1,3}\.\d{1,3}"
            r"|192\.168\.\d{1,3}\.\d{1,3})\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"
        ),
    ),
)


class ContentRedactor:
    """Applies secret and PII patterns in a fixed order and keeps running totals."""

    def __init__(self, *, secrets: bool = True, pii: bool = True) -> None:
        patterns: List[RedactionPattern] = []
        if secrets:
            patterns.extend(SECRET_PATTERNS)
        if pii:
            patterns.extend(PII_PATTERNS)
        self._patterns = patterns
        self._stats = RedactionStats()

    def redact(self, content: str) -> RedactionResult:
        redacted = content
        count = 0
        for entry in self._patterns:
            redacted, hits = entry.pattern.subn(entry.replacement, redacted)
            if hits:
                count += hits
                self._stats.total_redactions += hits
                self._stats.by_type[entry.name] = self._stats.by_type.get(entry.name, 0) + hits
        self._stats.files_processed += 1
        return RedactionResult(content=redacted, count=count)

    @property
    def stats(self) -> RedactionStats:
        return RedactionStats(
            total_redactions=self._stats.total_redactions,
            by_type=dict(self._stats.by_type),
            files_processed=self._stats.files_processed,
        )


__all__ = [
    "ContentRedactor",
    "PII_PATTERNS",
    "RedactionResult",
    "RedactionStats",
    "SECRET_PATTERNS",
]
