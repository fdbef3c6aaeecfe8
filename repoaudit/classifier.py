"""
Structural classification for Repoaudit.

Turns a RepositoryInventory into a ClassificationSummary using only path
and substring matching:
- file type counts and directory depth statistics
- structural layers, architecture pattern and design patterns
- coherence (naming, structure, patterns) and quality sub-scores
- project purpose (domain, features, technologies, key files)

Detectors are plain tables of (name, predicate) so each rule can be read
and tested on its own. All matching is case-insensitive.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .crawler import RepositoryInventory


class Layer(str, Enum):
    PRESENTATION = "Presentation"
    BUSINESS_LOGIC = "Business Logic"
    DATA_ACCESS = "Data Access"
    UTILITIES = "Utilities"
    CONFIGURATION = "Configuration"
    MIDDLEWARE = "Middleware"
    MONOLITHIC = "Monolithic"


CODE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")


def extension_of(path: str) -> str:
    """Lowercased extension of the base name without the dot, "" if none."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def parse_package_json(content: str | None) -> dict[str, Any] | None:
    """Parse package.json text, returning None when absent or malformed."""
    if not content:
        return None
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def manifest_dependencies(manifest: dict[str, Any] | None) -> dict[str, Any]:
    """dependencies and devDependencies merged."""
    if not manifest:
        return {}
    deps: dict[str, Any] = {}
    for key in ("dependencies", "devDependencies"):
        section = manifest.get(key)
        if isinstance(section, dict):
            deps.update(section)
    return deps


def clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return min(high, max(low, value))


class PathView:
    """Lowercased paths of an inventory with substring helpers."""

    def __init__(self, inventory: RepositoryInventory):
        self.inventory = inventory
        self.dirs = tuple(d.lower() for d in inventory.directories)
        self.files = tuple(f.lower() for f in inventory.files)
        self.manifest = parse_package_json(inventory.content("package.json"))
        self.deps = manifest_dependencies(self.manifest)

    def dirs_with(self, *needles: str) -> list[str]:
        return [d for d in self.dirs if any(n in d for n in needles)]

    def files_with(self, *needles: str) -> list[str]:
        return [f for f in self.files if any(n in f for n in needles)]

    def any_dir(self, *needles: str) -> bool:
        return bool(self.dirs_with(*needles))

    def any_file(self, *needles: str) -> bool:
        return bool(self.files_with(*needles))

    def has_dep(self, *names: str) -> bool:
        return any(name in self.deps for name in names)


Predicate = Callable[[PathView], bool]

# First match wins; framework conventions outrank generic layouts.
ARCHITECTURE_RULES: tuple[tuple[str, Predicate], ...] = (
    ("App Router (Next.js 13+)", lambda p: p.any_dir("app")),
    ("Pages Router (Next.js)", lambda p: p.any_dir("pages")),
    ("React Component-Based", lambda p: p.any_dir("src") and p.any_file("react")),
    ("MVC (Model-View-Controller)", lambda p: p.any_dir("controllers", "models", "views")),
    ("Layered Architecture", lambda p: p.any_dir("services") and p.any_dir("controllers")),
    ("Express.js REST API", lambda p: p.any_file("express") and p.any_file("route")),
    ("Microservices Architecture", lambda p: p.any_dir("services") and p.any_file("docker")),
)
DEFAULT_ARCHITECTURE = "Custom Architecture"

LAYER_RULES: tuple[tuple[Layer, tuple[str, ...]], ...] = (
    (Layer.PRESENTATION, ("components", "pages", "views")),
    (Layer.BUSINESS_LOGIC, ("services", "business", "logic")),
    (Layer.DATA_ACCESS, ("models", "repositories", "dao")),
    (Layer.UTILITIES, ("utils", "helpers", "common")),
    (Layer.CONFIGURATION, ("config", "settings")),
    (Layer.MIDDLEWARE, ("middleware", "interceptors")),
)

DESIGN_PATTERN_RULES: tuple[tuple[str, Predicate], ...] = (
    ("Singleton (Configuration)", lambda p: any("config" in f and ".js" in f for f in p.files)),
    ("Factory", lambda p: p.any_dir("factory") or p.any_file("factory")),
    ("Repository", lambda p: p.any_dir("repository") or p.any_file("repository")),
    ("Observer", lambda p: p.any_file("event", "observer", "listener")),
    ("Middleware", lambda p: p.any_dir("middleware") or p.any_file("middleware")),
    ("MVC", lambda p: p.any_dir("models") and p.any_dir("controllers")),
    ("Service Layer", lambda p: p.any_dir("services")),
    ("Component", lambda p: p.any_dir("components")),
)

CONFIG_MARKERS = ("config", "env", "settings")
DOC_MARKERS = ("readme", "docs", "api")
TEST_MARKERS = ("test", "spec", "jest")
ORGANIZED_DIR_MARKERS = ("components", "services", "utils", "config")


@dataclass(frozen=True)
class DepthStats:
    mean: float = 0.0
    variance: float = 0.0


@dataclass(frozen=True)
class ArchitectureQuality:
    score: float
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()


@dataclass(frozen=True)
class Coherence:
    naming: float
    structure: float
    patterns: float

    @property
    def consistency(self) -> float:
        return (self.naming + self.structure + self.patterns) / 3


@dataclass(frozen=True)
class QualityScores:
    maintainability: float
    readability: float
    performance: float
    security: float
    testability: float

    @property
    def overall(self) -> float:
        return (
            self.maintainability + self.readability + self.performance
            + self.security + self.testability
        ) / 5


@dataclass(frozen=True)
class PurposeAnalysis:
    """What the project appears to be for."""
    domain: str
    kind: str
    complexity: str
    target: str
    confidence: float
    conclusion: str
    description: str | None = None
    features: tuple[str, ...] = ()
    technologies: tuple[str, ...] = ()


@dataclass(frozen=True)
class FileOrganization:
    """Paths grouped by role. A path may belong to several categories."""
    root_files: tuple[str, ...] = ()
    categories: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    src_structure: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))
        object.__setattr__(self, "src_structure", MappingProxyType(dict(self.src_structure)))

    def files_in(self, category: str) -> tuple[str, ...]:
        return self.categories.get(category, ())

    def to_dict(self) -> dict[str, Any]:
        return {
            "root_files": list(self.root_files),
            "categories": {k: list(v) for k, v in self.categories.items()},
            "src_structure": {k: list(v) for k, v in self.src_structure.items()},
        }


@dataclass(frozen=True)
class ClassificationSummary:
    """Read-only structural facts derived from one inventory."""
    file_type_counts: Mapping[str, int]
    directory_depth_stats: DepthStats
    detected_layers: tuple[Layer, ...]
    key_files: tuple[str, ...]
    file_organization: FileOrganization
    architecture_pattern: str
    design_patterns: tuple[str, ...]
    dominant_extension: str | None
    complexity: str
    coherence: Coherence
    quality: QualityScores
    architecture_quality: ArchitectureQuality
    purpose: PurposeAnalysis
    total_files: int = 0
    total_directories: int = 0
    files_with_content: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.file_type_counts, MappingProxyType):
            object.__setattr__(
                self, "file_type_counts", MappingProxyType(dict(self.file_type_counts))
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_type_counts": dict(self.file_type_counts),
            "directory_depth_stats": {
                "mean": self.directory_depth_stats.mean,
                "variance": self.directory_depth_stats.variance,
            },
            "detected_layers": [layer.value for layer in self.detected_layers],
            "key_files": list(self.key_files),
            "file_organization": self.file_organization.to_dict(),
            "architecture": {
                "pattern": self.architecture_pattern,
                "design_patterns": list(self.design_patterns),
                "quality": self.architecture_quality.score,
                "strengths": list(self.architecture_quality.strengths),
                "weaknesses": list(self.architecture_quality.weaknesses),
            },
            "dominant_extension": self.dominant_extension,
            "complexity": self.complexity,
            "coherence": {
                "consistency": round(self.coherence.consistency, 2),
                "naming": self.coherence.naming,
                "structure": self.coherence.structure,
                "patterns": self.coherence.patterns,
            },
            "quality": {
                "overall": round(self.quality.overall, 2),
                "maintainability": self.quality.maintainability,
                "readability": self.quality.readability,
                "performance": self.quality.performance,
                "security": self.quality.security,
                "testability": self.quality.testability,
            },
            "purpose": {
                "domain": self.purpose.domain,
                "type": self.purpose.kind,
                "complexity": self.purpose.complexity,
                "target": self.purpose.target,
                "confidence": self.purpose.confidence,
                "description": self.purpose.description,
                "features": list(self.purpose.features),
                "technologies": list(self.purpose.technologies),
                "conclusion": self.purpose.conclusion,
            },
            "totals": {
                "files": self.total_files,
                "directories": self.total_directories,
                "files_with_content": self.files_with_content,
            },
        }


# =============================================================================
# Structure statistics
# =============================================================================

def count_file_types(inventory: RepositoryInventory) -> dict[str, int]:
    counts: dict[str, int] = {}
    for path in inventory.files:
        ext = extension_of(path)
        counts[ext] = counts.get(ext, 0) + 1
    return counts


def directory_depth_stats(inventory: RepositoryInventory) -> DepthStats:
    depths = [len(d.split("/")) for d in inventory.directories]
    if not depths:
        return DepthStats()
    mean = sum(depths) / len(depths)
    variance = sum((d - mean) ** 2 for d in depths) / len(depths)
    return DepthStats(mean=mean, variance=variance)


def dominant_extension(counts: Mapping[str, int]) -> str | None:
    if not counts:
        return None
    return max(counts, key=lambda ext: counts[ext])


def determine_complexity(inventory: RepositoryInventory) -> str:
    total_files = len(inventory.files)
    total_dirs = len(inventory.directories)
    if total_files > 50 or total_dirs > 15:
        return "complex"
    if total_files > 20 or total_dirs > 8:
        return "moderate"
    return "simple"


KEY_FILE_GROUPS: tuple[tuple[str, ...], ...] = (
    ("package.json", "config", "env"),  # configuration
    ("index.js", "app.js", "server.js", "main.js", "app.jsx", "app.tsx"),  # entry points
    ("readme", "docs"),  # documentation
)


def identify_key_files(inventory: RepositoryInventory) -> tuple[str, ...]:
    """Configuration files, then entry points, then documentation."""
    key_files: list[str] = []
    for markers in KEY_FILE_GROUPS:
        key_files.extend(
            path for path in inventory.files if any(m in path.lower() for m in markers)
        )
    return tuple(dict.fromkeys(key_files))


FILE_CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("config", ("config", "env", "docker")),
    ("documentation", ("readme", "docs", "license")),
    ("testing", ("test", "spec", "jest")),
    ("deployment", ("docker", "deploy", "workflow")),
    ("entry_point", ("index.js", "app.js", "server.js", "main.js", "app.jsx", "app.tsx")),
)

SRC_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("components", "component"),
    ("services", "service"),
    ("utils", "util"),
    ("types", "type"),
    ("hooks", "hook"),
    ("pages", "page"),
    ("assets", "asset"),
)


def file_categories(path: str) -> tuple[str, ...]:
    """Every category whose markers appear in path."""
    lowered = path.lower()
    return tuple(
        category for category, markers in FILE_CATEGORIES
        if any(m in lowered for m in markers)
    )


def organize_files(inventory: RepositoryInventory) -> FileOrganization:
    categories: dict[str, list[str]] = {category: [] for category, _ in FILE_CATEGORIES}
    for path in inventory.files:
        for category in file_categories(path):
            categories[category].append(path)

    src_structure: dict[str, tuple[str, ...]] = {}
    src_dirs = [d for d in inventory.directories if d.lower().startswith("src/")]
    if src_dirs:
        src_structure = {
            name: tuple(d for d in src_dirs if marker in d.lower())
            for name, marker in SRC_CATEGORIES
        }

    return FileOrganization(
        root_files=tuple(f for f in inventory.files if "/" not in f),
        categories={k: tuple(v) for k, v in categories.items()},
        src_structure=src_structure,
    )


# =============================================================================
# Architecture
# =============================================================================

def detect_architecture_pattern(view: PathView) -> str:
    for name, predicate in ARCHITECTURE_RULES:
        if predicate(view):
            return name
    return DEFAULT_ARCHITECTURE


def detect_layers(view: PathView) -> tuple[Layer, ...]:
    layers = tuple(layer for layer, needles in LAYER_RULES if view.any_dir(*needles))
    return layers or (Layer.MONOLITHIC,)


def detect_design_patterns(view: PathView) -> tuple[str, ...]:
    return tuple(name for name, predicate in DESIGN_PATTERN_RULES if predicate(view))


def architecture_quality(
    view: PathView,
    layers: tuple[Layer, ...],
    patterns: tuple[str, ...],
) -> ArchitectureQuality:
    score = 5
    strengths: list[str] = []
    weaknesses: list[str] = []

    checks = (
        (len(layers) >= 3, 2, "Good separation of concerns", "Limited layer separation"),
        (len(patterns) >= 2, 2, "Good use of design patterns", "Limited use of design patterns"),
        (
            len(view.dirs_with(*ORGANIZED_DIR_MARKERS)) >= 3, 1,
            "Well-organized directory structure", "Basic directory organization",
        ),
        (
            len(view.files_with(*CONFIG_MARKERS)) >= 2, 1,
            "Proper configuration management", "Limited configuration management",
        ),
        (view.any_file(*DOC_MARKERS), 1, "Documentation present", "Missing documentation"),
        (view.any_file(*TEST_MARKERS), 1, "Testing structure present", "No testing structure found"),
    )
    for passed, points, strength, weakness in checks:
        if passed:
            score += points
            strengths.append(strength)
        else:
            weaknesses.append(weakness)

    return ArchitectureQuality(
        score=clamp(score),
        strengths=tuple(strengths),
        weaknesses=tuple(weaknesses),
    )


# =============================================================================
# Coherence
# =============================================================================

_CAMEL_FILE = re.compile(r"^[a-z][a-zA-Z0-9]*\.(js|ts|jsx|tsx)$")
_KEBAB_FILE = re.compile(r"^[a-z][a-z0-9-]*\.(js|ts|jsx|tsx)$")
_SNAKE_FILE = re.compile(r"^[a-z][a-z0-9_]*\.(js|ts|jsx|tsx)$")
_CAMEL_DIR = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_KEBAB_DIR = re.compile(r"^[a-z][a-z0-9-]*$")
_SNAKE_DIR = re.compile(r"^[a-z][a-z0-9_]*$")


def _best_ratio(names: list[str], patterns: tuple[re.Pattern[str], ...], total: int) -> float:
    best = max(sum(1 for n in names if p.match(n)) for p in patterns)
    return best / total


def naming_consistency(view: PathView) -> float:
    score = 5
    # Names judged on original case
    file_names = [f.rsplit("/", 1)[-1] for f in view.inventory.files]
    dir_names = [d.rsplit("/", 1)[-1] for d in view.inventory.directories]

    code_names = [n for n in file_names if n.endswith(CODE_EXTENSIONS)]
    if code_names:
        ratio = _best_ratio(code_names, (_CAMEL_FILE, _KEBAB_FILE, _SNAKE_FILE), len(code_names))
        if ratio >= 0.8:
            score += 3
        elif ratio >= 0.6:
            score += 2
        elif ratio >= 0.4:
            score += 1

    if dir_names:
        ratio = _best_ratio(dir_names, (_CAMEL_DIR, _KEBAB_DIR, _SNAKE_DIR), len(dir_names))
        if ratio >= 0.8:
            score += 2
        elif ratio >= 0.6:
            score += 1

    return clamp(score)


def structural_consistency(view: PathView, depth: DepthStats) -> float:
    score = 5

    if view.dirs:
        if depth.variance < 1:
            score += 2
        elif depth.variance < 2:
            score += 1

    groups = sum(1 for marker in ("components", "services", "utils", "config") if view.any_dir(marker))
    if groups >= 3:
        score += 2
    elif groups >= 2:
        score += 1

    populated = [d for d in view.dirs if any(f.startswith(d + "/") for f in view.files)]
    if len(populated) >= 3:
        score += 1

    return clamp(score)


def pattern_consistency(view: PathView, counts: Mapping[str, int]) -> float:
    score = 5
    total = len(view.files)

    dominant = dominant_extension(counts)
    if dominant is not None and total:
        ratio = counts[dominant] / total
        if ratio >= 0.7:
            score += 2
        elif ratio >= 0.5:
            score += 1

    js = sum(1 for f in view.files if f.endswith(".js"))
    ts = sum(1 for f in view.files if f.endswith(".ts"))
    if (js and not ts) or (ts and not js) or (js and ts and abs(js - ts) < 3):
        score += 2

    if view.any_file("config", "env"):
        score += 1

    return clamp(score)


# =============================================================================
# Quality
# =============================================================================

QUALITY_BASE = 5


@dataclass(frozen=True)
class QualityRule:
    label: str
    predicate: Predicate
    points: int


def score_quality(view: PathView, rules: tuple[QualityRule, ...]) -> float:
    """Base score plus the points of every matching rule, clamped to 0..10."""
    return clamp(QUALITY_BASE + sum(rule.points for rule in rules if rule.predicate(view)))


def _modular_count(view: PathView) -> int:
    return len(view.dirs_with("components", "services", "utils", "modules"))


def _clear_dir_ratio(view: PathView) -> float:
    # Directory names judged on original case
    names = [d.rsplit("/", 1)[-1] for d in view.inventory.directories]
    if not names:
        return 1.0
    clear = [n for n in names if len(n) <= 15 and "_" not in n and "-" not in n]
    return len(clear) / len(names)


def _nested_ratio(view: PathView) -> float:
    if not view.files:
        return 1.0
    return sum(1 for f in view.files if "/" in f) / len(view.files)


def _commented_ratio(view: PathView) -> float:
    contents = view.inventory.file_contents
    if not contents:
        return 0.0
    commented = sum(
        1 for text in contents.values() if "//" in text or "/*" in text or "#" in text
    )
    return commented / len(contents)


MAINTAINABILITY_RULES: tuple[QualityRule, ...] = (
    QualityRule("Three or more modular directories", lambda p: _modular_count(p) >= 3, 2),
    QualityRule("Some modular directories", lambda p: 0 < _modular_count(p) < 3, 1),
    QualityRule("Components and services separated", lambda p: p.any_dir("components") and p.any_dir("services"), 2),
    QualityRule("Utils directory", lambda p: p.any_dir("utils"), 1),
    QualityRule("Configuration files", lambda p: len(p.files_with(*CONFIG_MARKERS)) >= 2, 1),
    QualityRule("Documentation files", lambda p: p.any_file(*DOC_MARKERS), 1),
)

READABILITY_RULES: tuple[QualityRule, ...] = (
    QualityRule("Documentation present", lambda p: p.any_file("readme", "docs", "license"), 2),
    QualityRule("Clear directory names", lambda p: _clear_dir_ratio(p) >= 0.8, 2),
    QualityRule("Mostly clear directory names", lambda p: 0.6 <= _clear_dir_ratio(p) < 0.8, 1),
    QualityRule("Files organized in directories", lambda p: _nested_ratio(p) >= 0.8, 1),
    QualityRule("Commented code", lambda p: _commented_ratio(p) >= 0.5, 1),
)

PERFORMANCE_RULES: tuple[QualityRule, ...] = (
    QualityRule("Build or caching files", lambda p: p.any_file("webpack", "vite", "babel", "compression", "cache"), 2),
    QualityRule("Bundler dependency", lambda p: p.has_dep("webpack", "vite"), 2),
    QualityRule("Compression dependency", lambda p: p.has_dep("compression", "gzip"), 1),
    QualityRule("Cache dependency", lambda p: p.has_dep("cache-manager", "redis"), 1),
)

SECURITY_RULES: tuple[QualityRule, ...] = (
    QualityRule("Security-related files", lambda p: p.any_file("helmet", "cors", "bcrypt", "jwt", "auth", "rate-limit"), 2),
    QualityRule("Helmet or CORS dependency", lambda p: p.has_dep("helmet", "cors"), 2),
    QualityRule("Hashing or token dependency", lambda p: p.has_dep("bcrypt", "jsonwebtoken"), 1),
    QualityRule("Rate limiting dependency", lambda p: p.has_dep("express-rate-limit"), 1),
)

TESTABILITY_RULES: tuple[QualityRule, ...] = (
    QualityRule("Test files", lambda p: p.any_file("test", "spec", "jest", "mocha", "cypress", "playwright"), 2),
    QualityRule("Test directory", lambda p: p.any_dir("test", "spec", "__tests__"), 1),
    QualityRule("Unit test framework", lambda p: p.has_dep("jest", "mocha"), 2),
    QualityRule("End-to-end framework", lambda p: p.has_dep("cypress", "playwright"), 1),
    QualityRule("Testing Library", lambda p: any(name.startswith("@testing-library") for name in p.deps), 1),
)

QUALITY_RULES: Mapping[str, tuple[QualityRule, ...]] = MappingProxyType({
    "maintainability": MAINTAINABILITY_RULES,
    "readability": READABILITY_RULES,
    "performance": PERFORMANCE_RULES,
    "security": SECURITY_RULES,
    "testability": TESTABILITY_RULES,
})


def quality_scores(view: PathView) -> QualityScores:
    return QualityScores(**{name: score_quality(view, rules) for name, rules in QUALITY_RULES.items()})


# =============================================================================
# Purpose
# =============================================================================

MANIFEST_TECHNOLOGIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("express", ("Express.js", "Node.js")),
    ("react", ("React",)),
    ("next", ("Next.js",)),
    ("mongoose", ("MongoDB",)),
    ("prisma", ("Prisma",)),
    ("typescript", ("TypeScript",)),
    ("tailwindcss", ("Tailwind CSS",)),
    ("jest", ("Jest",)),
    ("cypress", ("Cypress",)),
)

NAME_PURPOSES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("budget", "finance", "money"), "Financial Management Application"),
    (("shop", "store", "ecommerce"), "E-commerce Application"),
    (("social", "chat"), "Social/Communication Application"),
    (("task", "todo"), "Task Management Application"),
    (("api", "backend"), "Backend API Service"),
)

# Later matches override earlier ones within a single README
README_PURPOSES: tuple[tuple[tuple[str, ...], str, tuple[str, ...]], ...] = (
    (("budget", "finance", "money"), "Financial Management Application",
     ("Budget Tracking", "Financial Planning")),
    (("e-commerce", "shop", "store"), "E-commerce Application",
     ("Online Shopping", "Product Management")),
    (("social", "chat", "messaging"), "Social/Communication Application",
     ("Social Networking", "Messaging")),
    (("task", "todo", "project"), "Task/Project Management Application",
     ("Task Management", "Project Tracking")),
    (("api", "backend", "server"), "Backend API Service",
     ("REST API", "Backend Services")),
)

CODE_CONTENT_FEATURES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("mongoose", "mongodb"), "MongoDB Database"),
    (("budget", "finance"), "Budget Tracking"),
    (("transaction",), "Transaction Management"),
    (("scheduled", "cron"), "Scheduled Tasks"),
    (("auth", "login"), "User Authentication"),
    (("route", "api"), "API Endpoints"),
)

CODE_NAME_FEATURES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("auth", "user"), "User Management"),
    (("transaction",), "Transaction Processing"),
)

CONFIG_SIGNALS: tuple[tuple[tuple[str, ...], str | None, str], ...] = (
    (("mongodb", "mongo"), "MongoDB", "Database Configuration"),
    (("express", "cors"), "Express.js", "Server Configuration"),
    (("auth", "jwt"), None, "Authentication Configuration"),
)

TARGET_AUDIENCES: tuple[tuple[str, str], ...] = (
    ("API", "Developers"),
    ("Admin", "Administrators"),
    ("E-commerce", "Consumers"),
    ("Mobile", "Mobile Users"),
)


def purpose_from_name(name: str) -> str | None:
    lowered = name.lower()
    for needles, purpose in NAME_PURPOSES:
        if any(n in lowered for n in needles):
            return purpose
    return None


def readme_description(content: str) -> str | None:
    """First line that is not a heading or a badge/link."""
    for line in content.split("\n"):
        if line.strip() and not line.startswith("#") and not line.startswith("["):
            return line.strip()
    return None


def target_audience(domain: str) -> str:
    for marker, audience in TARGET_AUDIENCES:
        if marker in domain:
            return audience
    return "General Users"


def analyze_purpose(view: PathView, complexity: str) -> PurposeAnalysis:
    inventory = view.inventory
    purpose: str | None = None
    kind: str | None = None
    description: str | None = None
    features: list[str] = []
    technologies: list[str] = []

    manifest = view.manifest
    if manifest is not None:
        raw_description = manifest.get("description")
        description = raw_description if isinstance(raw_description, str) and raw_description else None
        for dep, techs in MANIFEST_TECHNOLOGIES:
            if dep in view.deps:
                technologies.extend(techs)
        name = manifest.get("name")
        if isinstance(name, str):
            purpose = purpose_from_name(name)

    content_paths = [p for p in inventory.files if p in inventory.file_contents]

    for path in content_paths:
        lowered_path = path.lower()
        if "readme" not in lowered_path and "docs" not in lowered_path:
            continue
        text = inventory.file_contents[path]
        lowered = text.lower()
        file_purpose = None
        for needles, readme_purpose, readme_features in README_PURPOSES:
            if any(n in lowered for n in needles):
                file_purpose = readme_purpose
                features.extend(readme_features)
        if file_purpose and not purpose:
            purpose = file_purpose
        if not description:
            description = readme_description(text)

    for path in content_paths:
        lowered_path = path.lower()
        if not lowered_path.endswith(CODE_EXTENSIONS):
            continue
        lowered = inventory.file_contents[path].lower()
        file_purpose = None
        file_kind = None
        if "express" in lowered and "app" in lowered:
            file_kind = "Express.js Backend"
        if "react" in lowered or "jsx" in lowered:
            file_kind = "React Frontend"
        for needles, feature in CODE_CONTENT_FEATURES:
            if any(n in lowered for n in needles):
                features.append(feature)
        if "budget" in lowered or "finance" in lowered:
            file_purpose = "Financial Management"
        if "budget" in lowered_path or "finance" in lowered_path:
            file_purpose = "Financial Management"
        for needles, feature in CODE_NAME_FEATURES:
            if any(n in lowered_path for n in needles):
                features.append(feature)
        if file_purpose and not purpose:
            purpose = file_purpose
        if file_kind and not kind:
            kind = file_kind

    for path in content_paths:
        lowered_path = path.lower()
        if not any(m in lowered_path for m in CONFIG_MARKERS):
            continue
        lowered = inventory.file_contents[path].lower()
        for needles, technology, feature in CONFIG_SIGNALS:
            if any(n in lowered for n in needles):
                if technology:
                    technologies.append(technology)
                features.append(feature)

    features = list(dict.fromkeys(f for f in features if f))
    technologies = list(dict.fromkeys(t for t in technologies if t))

    confidence = 0.3
    if purpose:
        confidence += 0.3
    if description:
        confidence += 0.2
    if features:
        confidence += 0.1
    if technologies:
        confidence += 0.1
    confidence = round(min(1.0, confidence), 2)

    if purpose:
        conclusion = f"This is a {purpose.lower()}"
    elif kind:
        conclusion = f"This is a {kind.lower()}"
    else:
        conclusion = "This is a custom application"
    if features:
        conclusion += f" that provides {', '.join(features[:3])}"
    if technologies:
        conclusion += f". Built with {', '.join(technologies)}"
    conclusion += f". The project has {complexity} complexity."

    domain = purpose or "Unknown Application"
    return PurposeAnalysis(
        domain=domain,
        kind=kind or "Custom Application",
        complexity=complexity,
        target=target_audience(domain),
        confidence=confidence,
        conclusion=conclusion,
        description=description,
        features=tuple(features),
        technologies=tuple(technologies),
    )


# =============================================================================
# Entry point
# =============================================================================

def classify(inventory: RepositoryInventory) -> ClassificationSummary:
    """Derive the classification summary. Pure: same inventory, same summary."""
    view = PathView(inventory)
    counts = count_file_types(inventory)
    depth = directory_depth_stats(inventory)
    layers = detect_layers(view)
    patterns = detect_design_patterns(view)
    complexity = determine_complexity(inventory)

    return ClassificationSummary(
        file_type_counts=counts,
        directory_depth_stats=depth,
        detected_layers=layers,
        key_files=identify_key_files(inventory),
        file_organization=organize_files(inventory),
        architecture_pattern=detect_architecture_pattern(view),
        design_patterns=patterns,
        dominant_extension=dominant_extension(counts),
        complexity=complexity,
        coherence=Coherence(
            naming=naming_consistency(view),
            structure=structural_consistency(view, depth),
            patterns=pattern_consistency(view, counts),
        ),
        quality=quality_scores(view),
        architecture_quality=architecture_quality(view, layers, patterns),
        purpose=analyze_purpose(view, complexity),
        total_files=len(inventory.files),
        total_directories=len(inventory.directories),
        files_with_content=len(inventory.file_contents),
    )
