"""Up-front token, cost and duration estimates shown before a generation run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Tuple

from .models import ProjectContext
from .providers.base import ModelPricing, model_pricing

PROJECT_SIZES: tuple[str, ...] = ("small", "medium", "large")

# (input tokens, output tokens) per task and project size.
TOKEN_ESTIMATES: Mapping[str, Mapping[str, Tuple[int, int]]] = {
    "documentation": {"small": (50_000, 20_000), "medium": (97_000, 45_000), "large": (180_000, 80_000)},
    "security": {"small": (40_000, 2_000), "medium": (62_000, 3_500), "large": (100_000, 5_000)},
    "license": {"small": (50_000, 2_500), "medium": (75_000, 4_000), "large": (120_000, 6_000)},
    "quality": {"small": (50_000, 3_000), "medium": (78_000, 5_000), "large": (130_000, 8_000)},
    "cost": {"small": (55_000, 3_000), "medium": (87_000, 5_000), "large": (140_000, 8_000)},
    "hipaa": {"small": (45_000, 3_000), "medium": (71_000, 5_000), "large": (110_000, 8_000)},
}

# Wall-clock minutes; tasks run in parallel, so a run takes as long as its slowest task.
TIME_ESTIMATES: Mapping[str, Mapping[str, int]] = {
    "documentation": {"small": 30, "medium": 60, "large": 120},
    "security": {"small": 15, "medium": 25, "large": 45},
    "license": {"small": 15, "medium": 30, "large": 60},
    "quality": {"small": 20, "medium": 35, "large": 60},
    "cost": {"small": 20, "medium": 40, "large": 70},
    "hipaa": {"small": 20, "medium": 35, "large": 60},
}


@dataclass(frozen=True)
class CostEstimate:
    """Projected usage for a set of tasks against one provider's pricing."""

    input_tokens: int
    output_tokens: int
    estimated_cost: float
    estimated_minutes: int
    pricing: ModelPricing
    size: str

    @property
    def pricing_display(self) -> str:
        return f"${self.pricing.input:g}/${self.pricing.output:g} per M"

    def scaled(self, ratio: float) -> "CostEstimate":
        """The share of this estimate a partial run (e.g. an incremental update) costs."""
        ratio = min(max(ratio, 0.0), 1.0)
        return CostEstimate(
            input_tokens=round(self.input_tokens * ratio),
            output_tokens=round(self.output_tokens * ratio),
            estimated_cost=round(self.estimated_cost * ratio, 2),
            estimated_minutes=self.estimated_minutes,
            pricing=self.pricing,
            size=self.size,
        )

    def describe(self) -> str:
        return (
            f"{self.input_tokens:,} input + {self.output_tokens:,} output tokens, "
            f"~{format_cost(self.estimated_cost)} at {self.pricing_display}, "
            f"up to {format_duration(self.estimated_minutes)}"
        )


def project_size(project: ProjectContext) -> str:
    if project.file_count < 100 and project.line_count < 10_000:
        return "small"
    if project.file_count < 400 and project.line_count < 50_000:
        return "medium"
    return "large"


def estimate_cost(
    project: ProjectContext,
    tasks: Sequence[str],
    provider: str = "anthropic",
    model: Optional[str] = None,
) -> CostEstimate:
    """Sum the token budgets of ``tasks`` and price them for ``provider``/``model``.

    Unknown task names are ignored; an unknown provider is priced like Anthropic.
    """
    size = project_size(project)
    input_tokens = output_tokens = minutes = 0
    for task in dict.fromkeys(tasks):
        budget = TOKEN_ESTIMATES.get(task)
        if budget is None:
            continue
        task_input, task_output = budget[size]
        input_tokens += task_input
        output_tokens += task_output
        minutes = max(minutes, TIME_ESTIMATES[task][size])
    pricing = model_pricing(provider, model)
    cost = input_tokens / 1_000_000 * pricing.input + output_tokens / 1_000_000 * pricing.output
    return CostEstimate(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        estimated_cost=round(cost, 2),
        estimated_minutes=minutes,
        pricing=pricing,
        size=size,
    )


def format_cost(cost: float) -> str:
    return f"${cost:.2f}"


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


__all__ = [
    "CostEstimate",
    "PROJECT_SIZES",
    "TIME_ESTIMATES",
    "TOKEN_ESTIMATES",
    "estimate_cost",
    "format_cost",
    "format_duration",
    "project_size",
]
