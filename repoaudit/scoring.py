"""
Criterion scoring for Repoaudit.

Five criteria, each a table of ScoringRule(label, predicate, points):
1. code_quality: template structure, main-file practices, security and
   performance, modern tooling
2. documentation: README presence and content
3. functionality: server wiring, routes, models, configuration
4. innovation: advanced dependencies, project organization, testing
5. user_experience: API docs, usage examples, error handling, CORS

Raw points are scaled to 0-10 by a fixed divisor. The ScoreReport combines
sub-scores with criterion weights into the final score.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .classifier import ClassificationSummary, manifest_dependencies, parse_package_json
from .config import CRITERIA_WEIGHTS, ProjectTemplate
from .crawler import RepositoryInventory


CRITERIA = ("code_quality", "documentation", "functionality", "innovation", "user_experience")

POINTS_DIVISOR = 10
MAX_SUBSCORE = 10

MAIN_FILES = ("index.js", "index.ts", "App.js", "App.tsx", "main.js", "main.ts")
SECURITY_FILES = (".env", ".env.local", ".env.example", "middleware", "middleware.ts", "middleware.js")
MODERN_FEATURES = (
    "const ", "let ", "=>", "async", "await", "import ", "export ",
    "interface ", "type ", "enum ", "class ", "extends ",
)
SECURITY_PACKAGES = ("helmet", "cors", "express-rate-limit", "bcrypt", "jsonwebtoken")
PERFORMANCE_PACKAGES = ("compression", "cache-manager", "redis", "pm2")
TESTING_CONFIGS = ("jest.config", "cypress.config", "playwright.config")
MODERN_TOOLS = (
    "vite.config", "webpack.config", "tailwind.config", "postcss.config",
    "tsconfig.json", "eslint.config", "prettier.config",
)
CICD_MARKERS = (".github/workflows", "gitlab-ci.yml", "azure-pipelines.yml")
CONTAINER_MARKERS = ("dockerfile", "docker-compose.yml")
DATABASE_MARKERS = ("prisma/schema.prisma", "supabase", "mongodb", "postgresql")
ADVANCED_PACKAGES = (
    "socket.io", "redis", "elasticsearch", "graphql", "prisma",
    "swagger", "jest", "cypress", "docker", "kubernetes",
)
ORGANIZED_DIRS = ("controllers", "routes", "models", "middleware", "utils", "config")


@dataclass(frozen=True)
class ScoringContext:
    """Everything a scoring rule may look at."""
    inventory: RepositoryInventory
    summary: ClassificationSummary | None
    project_type: str
    template: ProjectTemplate
    manifest: dict[str, Any] | None
    manifest_text: str  # "" when package.json is absent or malformed
    readme: str | None

    @classmethod
    def build(
        cls,
        inventory: RepositoryInventory,
        template: ProjectTemplate,
        summary: ClassificationSummary | None = None,
        project_type: str | None = None,
    ) -> "ScoringContext":
        raw_manifest = inventory.content("package.json")
        manifest = parse_package_json(raw_manifest)
        readme = inventory.content("README.md")
        if readme is None:
            readme = inventory.content("README")
        return cls(
            inventory=inventory,
            summary=summary,
            project_type=project_type or detect_project_type(inventory),
            template=template,
            manifest=manifest,
            manifest_text=raw_manifest if manifest is not None else "",
            readme=readme,
        )

    def root_content(self, name: str) -> str:
        return self.inventory.content(name) or ""

    def has_dir(self, name: str) -> bool:
        return self.inventory.has_directory_named(name)

    def any_path(self, *needles: str) -> bool:
        paths = self.inventory.files + self.inventory.directories
        return any(n in p.lower() for p in paths for n in needles)


@dataclass(frozen=True)
class ScoringRule:
    label: str
    predicate: Callable[[ScoringContext], bool]
    points: int


@dataclass(frozen=True)
class RuleSection:
    """Rules whose combined points are capped."""
    name: str
    rules: tuple[ScoringRule, ...]
    cap: int | None = None


@dataclass(frozen=True)
class SubScore:
    """A criterion's bounded score plus the rules that produced it."""
    criterion: str
    score: float
    raw_points: int = 0
    matched: tuple[str, ...] = ()
    missed: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()

    @property
    def rationale(self) -> str:
        lines = [f"✅ {label}" for label in self.matched]
        lines.extend(f"❌ {label}" for label in self.missed)
        lines.extend(self.notes)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "raw_points": self.raw_points,
            "matched": list(self.matched),
            "missed": list(self.missed),
            "notes": list(self.notes),
        }


def scale_points(raw: int) -> int:
    """Raw points to 0-10, rounding halves up."""
    return min(MAX_SUBSCORE, math.floor(raw / POINTS_DIVISOR + 0.5))


def evaluate_sections(
    criterion: str,
    sections: tuple[RuleSection, ...],
    ctx: ScoringContext,
) -> SubScore:
    raw = 0
    matched: list[str] = []
    missed: list[str] = []
    for section in sections:
        section_points = 0
        for rule in section.rules:
            if rule.predicate(ctx):
                section_points += rule.points
                matched.append(f"{rule.label} (+{rule.points})")
            else:
                missed.append(rule.label)
        if section.cap is not None:
            section_points = min(section.cap, section_points)
        raw += section_points
    return SubScore(
        criterion=criterion,
        score=scale_points(raw),
        raw_points=raw,
        matched=tuple(matched),
        missed=tuple(missed),
    )


# =============================================================================
# Project type
# =============================================================================

def detect_project_type(inventory: RepositoryInventory) -> str:
    """nextjs, react, nodejs or custom, from root entries and package.json."""
    root_files = {f for f in inventory.files if "/" not in f}
    root_dirs = {d for d in inventory.directories if "/" not in d}

    if root_files & {"next.config.js", "next.config.mjs"}:
        return "nextjs"

    if "package.json" in root_files:
        deps = manifest_dependencies(parse_package_json(inventory.content("package.json")))
        if "next" in deps:
            return "nextjs"
        if "react-scripts" in deps or "react" in deps:
            return "react"

    if "src" in root_dirs and root_files & {"App.js", "App.jsx", "App.tsx"}:
        return "react"

    if "package.json" in root_files and root_files & {"index.js", "server.js", "app.js"}:
        return "nodejs"

    return "custom"


# =============================================================================
# Code quality
# =============================================================================

def template_path_present(inventory: RepositoryInventory, expected: str) -> bool:
    """Exact or prefix match; "dir/*" matches any file under dir/."""
    if "*" in expected:
        pattern = expected.replace("*", "")
        return any(pattern in f for f in inventory.files)
    return any(f == expected or f.startswith(expected) for f in inventory.files)


def structure_rules(template: ProjectTemplate) -> tuple[ScoringRule, ...]:
    """2 points per expected file found, 3 more when a category is complete."""
    rules: list[ScoringRule] = []
    for category, expected_files in template.file_structure.items():
        for expected in expected_files:
            rules.append(ScoringRule(
                f"{category}: {expected}",
                lambda ctx, e=expected: template_path_present(ctx.inventory, e),
                2,
            ))
        rules.append(ScoringRule(
            f"Complete {category} structure",
            lambda ctx, files=expected_files: all(
                template_path_present(ctx.inventory, e) for e in files
            ),
            3,
        ))
    return tuple(rules)


def comment_ratio(content: str) -> float:
    lines = content.split("\n")
    comments = [
        line for line in lines
        if line.strip().startswith(("//", "/*", "*", "<!--"))
    ]
    return len(comments) / len(lines)


def consistent_indentation(content: str) -> bool:
    return not any(line.startswith((" \t", "\t ")) for line in content.split("\n"))


def main_file_rules(name: str) -> tuple[ScoringRule, ...]:
    def when_present(check: Callable[[str], bool]) -> Callable[[ScoringContext], bool]:
        def predicate(ctx: ScoringContext) -> bool:
            text = ctx.inventory.content(name)
            return text is not None and check(text)
        return predicate

    return (
        ScoringRule(f"{name}: high comment ratio", when_present(lambda t: comment_ratio(t) > 0.1), 5),
        ScoringRule(
            f"{name}: good comment ratio",
            when_present(lambda t: 0.05 < comment_ratio(t) <= 0.1),
            3,
        ),
        ScoringRule(f"{name}: consistent indentation", when_present(consistent_indentation), 5),
        ScoringRule(
            f"{name}: modern language features",
            when_present(lambda t: sum(1 for f in MODERN_FEATURES if f in t) >= 5),
            5,
        ),
        ScoringRule(
            f"{name}: error handling",
            when_present(lambda t: ("try" in t and "catch" in t) or "error" in t or "Error" in t),
            5,
        ),
        ScoringRule(
            f"{name}: type annotations",
            when_present(lambda t: any(m in t for m in ("interface", "type ", ": ", "as "))),
            5,
        ),
    )


def security_file_rules(name: str) -> tuple[ScoringRule, ...]:
    return (
        ScoringRule(
            f"Environment variables in {name}",
            lambda ctx: any(m in ctx.root_content(name) for m in ("process.env", "NEXT_PUBLIC_")),
            5,
        ),
        ScoringRule(
            f"Security middleware in {name}",
            lambda ctx: any(
                m in ctx.root_content(name) for m in ("helmet", "cors", "rate-limit", "csrf")
            ),
            5,
        ),
    )


SECURITY_PERFORMANCE_RULES: tuple[ScoringRule, ...] = (
    *(rule for name in SECURITY_FILES for rule in security_file_rules(name)),
    ScoringRule(
        "Security packages (2+)",
        lambda ctx: sum(1 for p in SECURITY_PACKAGES if p in ctx.manifest_text) >= 2,
        5,
    ),
    ScoringRule(
        "Performance packages",
        lambda ctx: any(p in ctx.manifest_text for p in PERFORMANCE_PACKAGES),
        5,
    ),
    ScoringRule(
        "Testing framework configured",
        lambda ctx: ctx.has_dir("tests") or any(
            f.startswith(TESTING_CONFIGS) for f in ctx.inventory.files if "/" not in f
        ),
        5,
    ),
)

MODERN_PRACTICE_RULES: tuple[ScoringRule, ...] = (
    ScoringRule(
        "Modern build tools (3+)",
        lambda ctx: sum(1 for t in MODERN_TOOLS if any(t in f for f in ctx.inventory.files)) >= 3,
        5,
    ),
    ScoringRule("CI/CD pipeline", lambda ctx: ctx.any_path(*CICD_MARKERS), 5),
    ScoringRule("Containerization", lambda ctx: ctx.any_path(*CONTAINER_MARKERS), 5),
    ScoringRule("Database integration", lambda ctx: ctx.any_path(*DATABASE_MARKERS), 5),
)


def code_quality_sections(template: ProjectTemplate) -> tuple[RuleSection, ...]:
    return (
        RuleSection("Project structure", structure_rules(template), cap=30),
        RuleSection(
            "Code quality",
            tuple(rule for name in MAIN_FILES for rule in main_file_rules(name)),
            cap=25,
        ),
        RuleSection("Security and performance", SECURITY_PERFORMANCE_RULES, cap=25),
        RuleSection("Modern practices", MODERN_PRACTICE_RULES, cap=20),
    )


def score_code_quality(ctx: ScoringContext) -> SubScore:
    return evaluate_sections("code_quality", code_quality_sections(ctx.template), ctx)


# =============================================================================
# Documentation, functionality, innovation, user experience
# =============================================================================

def _readme_has(*needles: str) -> Callable[[ScoringContext], bool]:
    return lambda ctx: ctx.readme is not None and any(n in ctx.readme.lower() for n in needles)


def _index_has(*needles: str) -> Callable[[ScoringContext], bool]:
    return lambda ctx: any(n in ctx.root_content("index.js") for n in needles)


def _manifest_has(*needles: str) -> Callable[[ScoringContext], bool]:
    return lambda ctx: any(n in ctx.manifest_text for n in needles)


DOCUMENTATION_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("README file present", lambda ctx: ctx.readme is not None, 40),
    ScoringRule("README has headings", lambda ctx: ctx.readme is not None and "#" in ctx.readme, 20),
    ScoringRule("Installation instructions", _readme_has("install", "setup"), 20),
    ScoringRule("API documentation", _readme_has("api", "endpoint"), 20),
)

FUNCTIONALITY_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("Database connection configured", _index_has("mongoose", "connect", "database"), 10),
    ScoringRule("API routes defined", _index_has("router", "app.get", "app.post"), 10),
    ScoringRule("Authentication system", _index_has("auth", "jwt", "passport"), 10),
    ScoringRule("Route files", lambda ctx: any("route" in f for f in ctx.inventory.files), 10),
    ScoringRule("Routes directory", lambda ctx: ctx.has_dir("routes"), 10),
    ScoringRule("Controllers directory", lambda ctx: ctx.has_dir("controllers"), 5),
    ScoringRule("Models directory", lambda ctx: ctx.has_dir("models"), 10),
    ScoringRule("Database ORM included", _manifest_has("mongoose", "sequelize"), 10),
    ScoringRule("Express.js framework", _manifest_has("express"), 5),
    ScoringRule("Environment configuration", _index_has("dotenv", "process.env"), 10),
    ScoringRule("Server configuration", _index_has("PORT", "listen"), 10),
)

INNOVATION_RULES: tuple[ScoringRule, ...] = (
    *(
        ScoringRule(f"Advanced feature: {package}", _manifest_has(package), 15)
        for package in ADVANCED_PACKAGES
    ),
    *(
        ScoringRule(f"Well-organized: {name} directory", lambda ctx, n=name: ctx.has_dir(n), 10)
        for name in ORGANIZED_DIRS
    ),
    ScoringRule("Testing framework configured", _manifest_has("test", "jest", "mocha"), 20),
)

USER_EXPERIENCE_RULES: tuple[ScoringRule, ...] = (
    ScoringRule("API documentation available", _readme_has("api", "endpoint"), 30),
    ScoringRule("Usage examples provided", _readme_has("example", "usage"), 20),
    ScoringRule("Error handling for better UX", _index_has("error", "catch"), 25),
    ScoringRule("CORS configured for frontend integration", _index_has("cors"), 25),
)


def score_documentation(ctx: ScoringContext) -> SubScore:
    return evaluate_sections("documentation", (RuleSection("README", DOCUMENTATION_RULES),), ctx)


def score_functionality(ctx: ScoringContext) -> SubScore:
    return evaluate_sections(
        "functionality", (RuleSection("Functionality", FUNCTIONALITY_RULES),), ctx
    )


def score_innovation(ctx: ScoringContext) -> SubScore:
    return evaluate_sections("innovation", (RuleSection("Innovation", INNOVATION_RULES),), ctx)


def score_user_experience(ctx: ScoringContext) -> SubScore:
    return evaluate_sections(
        "user_experience", (RuleSection("User experience", USER_EXPERIENCE_RULES),), ctx
    )


CRITERION_SCORERS: dict[str, Callable[[ScoringContext], SubScore]] = {
    "code_quality": score_code_quality,
    "documentation": score_documentation,
    "functionality": score_functionality,
    "innovation": score_innovation,
    "user_experience": score_user_experience,
}


# =============================================================================
# Aggregation
# =============================================================================

@dataclass(frozen=True)
class ScoreReport:
    """Weighted combination of criterion sub-scores."""
    subscores: Mapping[str, float]
    weights: Mapping[str, float]
    details: Mapping[str, SubScore] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if set(self.subscores) != set(self.weights):
            raise ValueError(
                f"Sub-score criteria {sorted(self.subscores)} do not match "
                f"weight criteria {sorted(self.weights)}"
            )
        negative = [k for k, w in self.weights.items() if w < 0]
        if negative:
            raise ValueError(f"Negative weights: {', '.join(sorted(negative))}")
        object.__setattr__(self, "subscores", MappingProxyType(dict(self.subscores)))
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def final_score(self) -> float:
        total_weight = sum(self.weights.values())
        if total_weight == 0:
            return 0.0
        weighted = sum(self.subscores[k] * self.weights[k] for k in self.subscores)
        return min(10.0, max(0.0, weighted / total_weight))

    def to_dict(self) -> dict[str, Any]:
        return {
            "final_score": round(self.final_score, 1),
            "subscores": dict(self.subscores),
            "weights": dict(self.weights),
            "details": {k: v.to_dict() for k, v in self.details.items()},
        }


def blend_subscore(heuristic: SubScore, llm_score: float, feedback: str | None = None) -> SubScore:
    """Average a heuristic sub-score with an LLM judgment."""
    notes = heuristic.notes + (f"🤖 LLM judgment: {llm_score}/10",)
    if feedback:
        notes += (feedback,)
    return replace(
        heuristic,
        score=(heuristic.score + llm_score) / 2,
        notes=notes,
    )


def score_repository(
    ctx: ScoringContext,
    weights: Mapping[str, float] | None = None,
    llm_scores: Mapping[str, tuple[float, str | None]] | None = None,
) -> ScoreReport:
    """
    Score every criterion and aggregate.

    Args:
        ctx: Scoring context for one inventory
        weights: Criterion weights (defaults to CRITERIA_WEIGHTS)
        llm_scores: Optional criterion -> (score, feedback) to blend in

    Returns:
        ScoreReport with per-criterion details
    """
    weights = dict(weights or CRITERIA_WEIGHTS)
    details: dict[str, SubScore] = {}
    for criterion in CRITERIA:
        subscore = CRITERION_SCORERS[criterion](ctx)
        if llm_scores and criterion in llm_scores:
            llm_score, feedback = llm_scores[criterion]
            subscore = blend_subscore(subscore, llm_score, feedback)
        details[criterion] = subscore

    return ScoreReport(
        subscores={k: v.score for k, v in details.items()},
        weights=weights,
        details=details,
    )
