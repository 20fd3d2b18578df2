"""Tests for mapping change-sets onto stale documentation."""

from __future__ import annotations

import pytest

from leanintel.change_mapper import (
    affected_docs,
    estimate_impact_level,
    map_changes_to_docs,
    should_full_regenerate,
    weighted_change_count,
)
from leanintel.models import ChangeCategories

ALL_DOCS = [
    "docs/ARCHITECTURE.md",
    "docs/COMPONENTS.md",
    "docs/ROUTING.md",
    "docs/FORMS.md",
    "docs/API.md",
    "docs/DATABASE.md",
]


def test_frontend_component_changes_map_to_component_docs() -> None:
    categories = ChangeCategories(components=("src/components/LoginForm.tsx",))

    docs = map_changes_to_docs(categories, "frontend", ALL_DOCS)

    assert docs == ["docs/ARCHITECTURE.md", "docs/COMPONENTS.md", "docs/FORMS.md"]


def test_backend_keyword_pass_adds_cross_cutting_docs() -> None:
    categories = ChangeCategories(api=("src/api/auth/middleware.ts",))
    affected = affected_docs(categories, "backend")
    assert {"API.md", "ARCHITECTURE.md", "MIDDLEWARE.md", "AUTHENTICATION.md", "AUTHORIZATION.md"} <= affected


def test_devops_uses_path_keywords() -> None:
    categories = ChangeCategories(other=("infra/main.tf", "k8s/deployment.yaml"))
    affected = affected_docs(categories, "devops")
    assert {"INFRASTRUCTURE.md", "COMPUTE.md", "NETWORKING.md", "DEPLOYMENT.md"} <= affected


def test_unknown_project_types_use_generic_docs() -> None:
    categories = ChangeCategories(api=("src/api/users.ts",))
    assert "CODEBASE.md" in affected_docs(categories, "unknown")


@pytest.mark.parametrize("project_type", ["frontend", "backend", "mobile", "devops", "unknown"])
@pytest.mark.parametrize(
    "existing",
    [[], ["docs/ARCHITECTURE.md"], ["README.md", "docs/NOTES.md"], ALL_DOCS],
)
def test_mapped_docs_are_always_drawn_from_existing_docs(project_type: str, existing: list[str]) -> None:
    categories = ChangeCategories(
        components=("src/components/Form.tsx",),
        routes=("src/routes/index.ts",),
        api=("src/api/auth.ts",),
        config=("package.json", "infra/terraform.tfvars.json"),
        database=("src/models/user.ts",),
        styling=("src/styles/theme.css",),
        other=("scripts/deploy.sh",),
    )

    docs = map_changes_to_docs(categories, project_type, existing)

    assert set(docs) <= set(existing)


def test_package_json_alone_triggers_full_regeneration() -> None:
    advice = should_full_regenerate(ChangeCategories(config=("package.json",)), "frontend")
    assert advice.should is True
    assert advice.reason is not None and "package.json" in advice.reason


def test_two_component_changes_do_not_trigger_full_regeneration() -> None:
    categories = ChangeCategories(components=("src/components/A.tsx", "src/components/B.tsx"))
    advice = should_full_regenerate(categories, "frontend")
    assert advice.should is False
    assert advice.reason is None


def test_diffuse_changes_trigger_full_regeneration() -> None:
    categories = ChangeCategories(
        components=("src/components/A.tsx",),
        routes=("src/routes/a.ts",),
        api=("src/api/a.ts",),
        styling=("src/styles/a.css",),
    )
    advice = should_full_regenerate(categories, "frontend")
    assert advice.should is True
    assert "too many areas" in (advice.reason or "")


def test_three_diffuse_categories_are_not_enough() -> None:
    categories = ChangeCategories(
        components=("src/components/A.tsx",),
        routes=("src/routes/a.ts",),
        api=("src/api/a.ts",),
    )
    assert should_full_regenerate(categories, "frontend").should is False


def test_devops_config_limit() -> None:
    four = ChangeCategories(config=("a.yaml", "b.yaml", "c.yaml", "d.yaml"))
    three = ChangeCategories(config=("a.yaml", "b.yaml", "c.yaml"))
    assert should_full_regenerate(four, "devops").should is True
    assert should_full_regenerate(three, "devops").should is False
    assert should_full_regenerate(four, "backend").should is False


def test_three_config_files_are_significant() -> None:
    categories = ChangeCategories(config=("a.json", "b.json", "c.json"))
    assert weighted_change_count(categories) == 6
    assert estimate_impact_level(categories) == "significant"


@pytest.mark.parametrize(
    ("count", "level"),
    [(0, "minimal"), (2, "minimal"), (3, "moderate"), (5, "moderate"), (6, "significant"), (15, "significant"), (16, "major")],
)
def test_impact_thresholds(count: int, level: str) -> None:
    categories = ChangeCategories(other=tuple(f"file{i}.md" for i in range(count)))
    assert estimate_impact_level(categories) == level


def test_test_changes_carry_no_weight() -> None:
    categories = ChangeCategories(tests=tuple(f"tests/t{i}.test.ts" for i in range(20)))
    assert estimate_impact_level(categories) == "minimal"
