"""Renders completion prompts from Jinja2 templates and gathered context."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from ..models import InventorySnapshot, ProjectIdentity
from ..response_parser import json_schema_for
from ..schemas import ANALYZER_SCHEMAS
from ..tiers import TIER_DESCRIPTIONS, DocFile
from ..validators.base import SIZE_LIMITS
from ..validators.repair import format_import_path

ASSISTANT_FILES: Mapping[str, str] = {
    "claude-code": "CLAUDE.md",
    "cursor": "CURSOR.md",
    "copilot": "COPILOT.md",
    "chatgpt": "CHATGPT.md",
    "gemini": "GEMINI.md",
}

ASSISTANT_LABELS: Mapping[str, str] = {
    "claude-code": "Claude Code",
    "cursor": "Cursor",
    "copilot": "GitHub Copilot",
    "chatgpt": "ChatGPT",
    "gemini": "Gemini",
}

ANALYZER_TITLES: Mapping[str, str] = {
    "security": "security review",
    "license": "license compliance review",
    "quality": "code quality and technical debt review",
    "cost": "infrastructure cost and scalability review",
    "hipaa": "HIPAA compliance review",
}

ANALYZER_FOCUS: Mapping[str, str] = {
    "security": (
        "Look for hardcoded secrets, injection risks, broken authentication or authorization, "
        "insecure configuration and vulnerable dependencies."
    ),
    "license": (
        "Classify every dependency license as permissive, weak copyleft, strong copyleft or unknown, "
        "and flag anything that would block a commercial closed-source distribution."
    ),
    "quality": (
        "Assess maintainability: test coverage, complexity, duplication, error handling and the "
        "cost of paying down the technical debt you find."
    ),
    "cost": (
        "Estimate unit economics and how infrastructure cost grows with users. Identify the "
        "bottlenecks that will dominate cost at 10x and 100x scale."
    ),
    "hipaa": (
        "Trace protected health information through the code. Check access control, audit logging, "
        "encryption in transit and at rest, and cite the HIPAA section for each gap."
    ),
}

INVENTORY_EXCERPT = 60
ANTI_PATTERN_EXCERPT = 15


class PromptBuilder:
    """Assembles prompts for documentation, summaries, assistant files and analyzers."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def documentation(
        self,
        *,
        identity: ProjectIdentity,
        doc: DocFile,
        tier: str,
        context: Mapping[str, Any],
        snapshot: Optional[InventorySnapshot] = None,
        related_docs: Sequence[str] = (),
        architecture: Optional[str] = None,
    ) -> str:
        return self._render(
            "documentation.j2",
            identity=identity,
            doc=doc,
            tier=tier,
            tier_description=TIER_DESCRIPTIONS.get(tier, ""),
            context=context,
            related_docs=[name for name in related_docs if name != doc.filename],
            architecture=architecture,
            **inventory_excerpt(snapshot),
        )

    def summary(self, *, identity: ProjectIdentity, context: Mapping[str, Any]) -> str:
        return self._render("summary.j2", identity=identity, context=context)

    def ai_assistant(
        self,
        *,
        identity: ProjectIdentity,
        assistant: str,
        size_mode: str,
        context: Mapping[str, Any],
        snapshot: Optional[InventorySnapshot] = None,
    ) -> str:
        if assistant not in ASSISTANT_FILES:
            raise ValueError(f"Unknown assistant: {assistant}")
        return self._render(
            "ai_assistant.j2",
            identity=identity,
            filename=ASSISTANT_FILES[assistant],
            assistant_label=ASSISTANT_LABELS[assistant],
            limits=SIZE_LIMITS[size_mode],
            context=context,
            **inventory_excerpt(snapshot),
        )

    def analyzer(
        self,
        kind: str,
        *,
        identity: ProjectIdentity,
        context: Mapping[str, Any],
        snapshot: Optional[InventorySnapshot] = None,
    ) -> str:
        schema = ANALYZER_SCHEMAS.get(kind)
        if schema is None:
            raise ValueError(f"Unknown analyzer: {kind}")
        gaps = list(snapshot.compliance_gaps) if snapshot is not None else []
        return self._render(
            "analyzer.j2",
            identity=identity,
            title=ANALYZER_TITLES[kind],
            focus=ANALYZER_FOCUS[kind],
            context=context,
            compliance_gaps=gaps,
            schema=json.dumps(json_schema_for(schema), indent=2),
        )

    def _render(self, template_name: str, **values: Any) -> str:
        template = self._env.get_template(template_name)
        return template.render(**values).strip() + "\n"


def inventory_excerpt(snapshot: Optional[InventorySnapshot]) -> Dict[str, List[Any]]:
    """Template variables describing verified exports and mined anti-patterns."""
    if snapshot is None:
        return {"utilities": [], "anti_patterns": [], "compliance_gaps": []}
    utilities = [
        {"path": info.path, "import_path": format_import_path(info.path), "exports": list(info.exports)}
        for info in list(snapshot.utilities.values())[:INVENTORY_EXCERPT]
        if info.exports
    ]
    return {
        "utilities": utilities,
        "anti_patterns": list(snapshot.anti_patterns[:ANTI_PATTERN_EXCERPT]),
        "compliance_gaps": list(snapshot.compliance_gaps),
    }


__all__ = [
    "ANALYZER_FOCUS",
    "ANALYZER_TITLES",
    "ASSISTANT_FILES",
    "ASSISTANT_LABELS",
    "PromptBuilder",
    "inventory_excerpt",
]
