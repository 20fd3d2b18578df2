"""Project type detection: frontend, backend, mobile, devops or unknown."""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .errors import InventoryError
from .ignore import LeanIgnore
from .logging import get_logger
from .models import ProjectContext
from .tiers import determine_documentation_tier

logger = get_logger("detector")

CODE_SUFFIXES = frozenset(
    {".ts", ".tsx", ".js", ".jsx", ".dart", ".swift", ".kt", ".py", ".java", ".go", ".rb", ".php", ".tf"}
)

LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".dart": "Dart",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".py": "Python",
    ".java": "Java",
    ".go": "Go",
    ".rb": "Ruby",
    ".php": "PHP",
    ".rs": "Rust",
    ".tf": "HCL",
}

LOCKFILES: Sequence[tuple[str, str]] = (
    ("bun.lockb", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)

_LINE_SAMPLE = 100

_BACKEND_MANIFESTS = frozenset(
    {"requirements.txt", "pyproject.toml", "pom.xml", "build.gradle", "composer.json", "go.mod", "Cargo.toml", "Gemfile"}
)


class ProjectDetector:
    """Scores indicator lists to classify a project tree."""

    def __init__(self, root: Path | str, ignore: Optional[LeanIgnore] = None) -> None:
        self.root = Path(root).expanduser().resolve()
        if not self.root.is_dir():
            raise InventoryError(f"Project root is not a readable directory: {self.root}")
        self.ignore = ignore or LeanIgnore(self.root)

    def detect(self, *, industry: Optional[str] = None) -> ProjectContext:
        package_json = self._read_package_json()
        files = list(self.ignore.walk_files())

        project_type = detect_project_type(package_json, files)
        frameworks = detect_frameworks(package_json, files)
        has_database = _has_database(package_json, files)
        file_count, line_count = self._count_files_and_lines(files)
        is_monorepo = any("packages/" in f or "apps/" in f for f in files)

        tier = determine_documentation_tier(
            file_count,
            project_type=project_type,
            is_monorepo=is_monorepo,
            has_complex_domain=len(frameworks) > 2 or has_database,
            industry=industry,
        )
        logger.debug(
            "Detected %s project (%d code files, tier=%s)", project_type, file_count, tier
        )
        return ProjectContext(
            project_type=project_type,
            root_path=str(self.root),
            package_manager=self._detect_package_manager(),
            frameworks=frameworks,
            languages=detect_languages(files),
            has_database=has_database,
            has_tests=_has_tests(package_json, files),
            has_cicd=_has_cicd(files),
            dependencies=_string_map(package_json.get("dependencies")),
            dev_dependencies=_string_map(package_json.get("devDependencies")),
            file_count=file_count,
            line_count=line_count,
            is_monorepo=is_monorepo,
            documentation_tier=tier,
        )

    def _read_package_json(self) -> Dict[str, Any]:
        path = self.root / "package.json"
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable package.json: %s", exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _detect_package_manager(self) -> Optional[str]:
        for filename, manager in LOCKFILES:
            if (self.root / filename).exists():
                return manager
        return None

    def _count_files_and_lines(self, files: Sequence[str]) -> tuple[int, int]:
        """Count code files and extrapolate a line total from a sample."""
        code_files = [f for f in files if PurePosixPath(f).suffix in CODE_SUFFIXES]
        sample = code_files[:_LINE_SAMPLE]
        if not sample:
            return 0, 0
        lines = 0
        for rel_path in sample:
            try:
                lines += (self.root / rel_path).read_text(encoding="utf-8").count("\n") + 1
            except (OSError, UnicodeDecodeError):
                continue
        average = lines / len(sample)
        return len(code_files), round(average * len(code_files))


def detect_project_type(package_json: Mapping[str, Any], files: Sequence[str]) -> str:
    deps = _string_map(package_json.get("dependencies"))
    dev = _string_map(package_json.get("devDependencies"))
    peer = _string_map(package_json.get("peerDependencies"))
    names = [PurePosixPath(f).name for f in files]

    def any_file(predicate) -> bool:
        return any(predicate(f) for f in files)

    mobile = [
        "react-native" in deps,
        any(n in {"metro.config.js", "metro.config.ts"} for n in files),
        "app.json" in files,
        any_file(lambda f: "ios/" in f or "android/" in f),
        "pubspec.yaml" in files,
        any_file(lambda f: "lib/" in f and f.endswith(".dart")),
        any_file(lambda f: ".xcodeproj" in f or ".xcworkspace" in f),
        any_file(lambda f: f.endswith(".swift")),
        "Info.plist" in files,
        "build.gradle" in files and any_file(lambda f: "android" in f),
        "AndroidManifest.xml" in files,
        any_file(lambda f: f.endswith(".kt") or (f.endswith(".java") and "app/src/" in f)),
    ]

    has_react = ("react" in deps or "react" in dev or "react" in peer) and "react-native" not in deps
    has_vue = "vue" in deps or "vue" in dev or "vue" in peer
    has_angular = "@angular/core" in deps or "@angular/core" in dev
    has_framework = has_react or has_vue or has_angular
    ui_suffixes = (".jsx", ".tsx", ".vue")

    frontend = [
        has_react,
        has_vue,
        has_angular,
        "svelte" in deps,
        "next" in deps,
        "nuxt" in deps,
        "rollup" in dev and has_framework,
        "webpack" in dev and has_framework,
        "vite" in dev and has_framework,
        any_file(lambda f: "components/" in f and f.endswith(ui_suffixes)),
        any_file(lambda f: f.endswith((".jsx", ".tsx"))),
        any_file(lambda f: f.endswith(".vue")),
        any_file(lambda f: "pages/" in f and f.endswith(ui_suffixes)),
        any(k in dev for k in ("css-loader", "style-loader", "sass-loader")),
        any(k in dev for k in ("html-webpack-plugin", "html-bundler-webpack-plugin")),
        any(k in deps for k in ("gsap", "swiper", "jquery", "bootstrap", "three")),
        any(
            n in files
            for n in (
                "tailwind.config.js",
                "tailwind.config.ts",
                "postcss.config.js",
                "postcss.config.ts",
                "postcss.config.mjs",
            )
        ),
        any_file(
            lambda f: (f.startswith("src/") or "styles/" in f) and f.endswith((".scss", ".sass", ".less"))
        ),
        any_file(lambda f: (f.startswith("src/") or "views/" in f) and f.endswith(".html")),
    ]

    backend = [
        "express" in deps,
        "@nestjs/core" in deps,
        "fastify" in deps,
        "koa" in deps,
        any(k in deps for k in ("hono", "elysia", "h3", "hapi", "@hapi/hapi")),
        *(manifest in files for manifest in sorted(_BACKEND_MANIFESTS)),
        any(name == "manage.py" for name in names),
        any_file(lambda f: f.endswith((".csproj", ".sln"))),
        any_file(lambda f: "controllers/" in f or "routes/" in f),
        any_file(lambda f: "models/" in f and "components/" not in f),
        any_file(lambda f: "middleware/" in f),
        any(k in deps for k in ("pg", "mysql2", "mongodb", "mongoose")),
        any(k in deps for k in ("prisma", "@prisma/client", "typeorm", "sequelize", "drizzle-orm")),
        any(k in deps for k in ("redis", "ioredis", "bullmq")),
        any(k in deps for k in ("cors", "helmet", "morgan", "compression")),
        any(k in deps for k in ("jsonwebtoken", "bcrypt", "bcryptjs", "passport")),
        any(k in deps for k in ("nodemailer", "socket.io", "ws")),
        any(k in deps for k in ("graphql", "@apollo/server", "type-graphql")),
    ]

    has_terraform = any_file(lambda f: f.endswith(".tf"))
    has_k8s = any_file(lambda f: "kubernetes/" in f or (f.endswith(".yaml") and "k8s" in f))
    has_helm = any_file(lambda f: "helm/" in f)
    has_iac_files = has_terraform or any_file(lambda f: "kubernetes/" in f or "k8s" in f)

    devops = [
        has_terraform,
        any_file(lambda f: "terraform/" in f),
        any_file(lambda f: f.endswith(".yaml") and "k8s" in f),
        any_file(lambda f: "kubernetes/" in f),
        has_helm,
        any_file(lambda f: f.endswith(("cloudformation.yml", "cloudformation.yaml"))),
        # Container files only count alongside real infrastructure code.
        "Dockerfile" in files and has_iac_files,
        "docker-compose.yml" in files and has_iac_files,
    ]

    mobile_score = sum(1 for hit in mobile if hit)
    frontend_score = sum(1 for hit in frontend if hit)
    backend_score = sum(1 for hit in backend if hit)
    devops_score = sum(1 for hit in devops if hit)
    strong_iac = has_terraform or has_k8s or has_helm

    if mobile_score >= 2:
        return "mobile"
    if (strong_iac and devops_score >= 1) or (
        devops_score >= 2 and devops_score >= frontend_score and devops_score >= backend_score
    ):
        return "devops"
    if backend_score > frontend_score:
        return "backend"
    if frontend_score > 0:
        return "frontend"
    return "unknown"


def detect_frameworks(package_json: Mapping[str, Any], files: Sequence[str]) -> List[str]:
    deps = _string_map(package_json.get("dependencies"))
    frameworks: List[str] = []

    checks = (
        ("React Native", "react-native" in deps),
        ("Expo", "expo" in deps),
        ("Flutter", "pubspec.yaml" in files),
        ("iOS (Swift/Objective-C)", any(".xcodeproj" in f or ".xcworkspace" in f for f in files)),
        ("Android (Kotlin/Java)", "AndroidManifest.xml" in files),
        ("React", "react" in deps and "react-native" not in deps),
        ("Vue", "vue" in deps),
        ("Angular", "@angular/core" in deps),
        ("Svelte", "svelte" in deps),
        ("Next.js", "next" in deps),
        ("Nuxt", "nuxt" in deps),
        ("Express", "express" in deps),
        ("NestJS", "@nestjs/core" in deps),
        ("Fastify", "fastify" in deps),
        ("Koa", "koa" in deps),
        ("Redux", "redux" in deps),
        ("Redux Toolkit", "@reduxjs/toolkit" in deps),
        ("Zustand", "zustand" in deps),
        ("MobX", "mobx" in deps),
        ("Django", any("django" in f for f in files)),
        ("Flask", any("flask" in f for f in files)),
        ("FastAPI", any("fastapi" in f for f in files)),
        ("Terraform", any(f.endswith(".tf") for f in files)),
        ("Kubernetes", any("kubernetes/" in f for f in files)),
    )
    for name, hit in checks:
        if hit:
            frameworks.append(name)
    return frameworks


def detect_languages(files: Sequence[str]) -> List[str]:
    languages: List[str] = []
    for rel_path in files:
        language = LANGUAGE_BY_SUFFIX.get(PurePosixPath(rel_path).suffix)
        if language and language not in languages:
            languages.append(language)
    return languages


def _has_database(package_json: Mapping[str, Any], files: Sequence[str]) -> bool:
    deps = _string_map(package_json.get("dependencies"))
    if any(k in deps for k in ("pg", "mysql2", "mongodb", "mongoose", "sequelize", "typeorm", "prisma")):
        return True
    return any("prisma/schema.prisma" in f or "migrations/" in f for f in files)


def _has_tests(package_json: Mapping[str, Any], files: Sequence[str]) -> bool:
    dev = _string_map(package_json.get("devDependencies"))
    runners = ("jest", "vitest", "mocha", "@testing-library/react", "cypress", "playwright")
    if any(k in dev for k in runners):
        return True
    return any(
        "test/" in f or "tests/" in f or ".test." in f or ".spec." in f for f in files
    )


def _has_cicd(files: Sequence[str]) -> bool:
    markers = (".github/workflows/", ".gitlab-ci.yml", ".circleci/", "Jenkinsfile")
    return any(marker in f for f in files for marker in markers)


def _string_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(item) for key, item in value.items()}


__all__ = ["ProjectDetector", "detect_frameworks", "detect_languages", "detect_project_type"]
