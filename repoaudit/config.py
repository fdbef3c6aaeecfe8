"""
Configuration management for Repoaudit.

Loads and validates repoaudit.yml:
- crawl: skip rules and crawl fan-out
- scoring: criterion weights
- llm: LiteLLM model and timeout settings
- templates: project templates used for structure scoring
- hackathons: named eligibility rule sets

Every section falls back to built-in defaults, so a missing file is valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml


CONFIG_FILENAME = "repoaudit.yml"

DEFAULT_SKIP_DIRS = (
    "node_modules", ".git", "build", "dist", "out", ".next",
    "coverage", ".nyc_output", ".cache", "tmp", "temp",
    "vendor", "bower_components", ".pnp",
)

DEFAULT_SKIP_EXTENSIONS = (
    ".min.js", ".min.css", ".map", ".lock", ".log",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico",
    ".woff", ".woff2", ".ttf", ".eot",
    ".zip", ".tar", ".gz", ".rar",
    ".exe", ".dll", ".so", ".dylib",
)

DEFAULT_IMPORTANT_EXTENSIONS = (
    ".js", ".jsx", ".ts", ".tsx", ".json", ".md", ".txt", ".yml", ".yaml", ".env",
)

DEFAULT_IMPORTANT_FILENAMES = (
    "package.json", "README.md", "Dockerfile", "docker-compose.yml", ".gitignore",
)

MAX_FILE_SIZE = 1024 * 1024  # 1 MiB

CRITERIA_WEIGHTS = {
    "code_quality": 30,
    "innovation": 25,
    "functionality": 20,
    "documentation": 15,
    "user_experience": 10,
}

DEFAULT_LLM_MODEL = "together_ai/deepseek-ai/DeepSeek-V3"


class ConfigError(Exception):
    """Invalid repoaudit.yml contents."""


@dataclass(frozen=True)
class SkipRules:
    """Which directories and files the crawler skips, and which it reads."""
    skip_dirs: tuple[str, ...] = DEFAULT_SKIP_DIRS
    skip_extensions: tuple[str, ...] = DEFAULT_SKIP_EXTENSIONS
    max_file_size: int = MAX_FILE_SIZE
    important_extensions: tuple[str, ...] = DEFAULT_IMPORTANT_EXTENSIONS
    important_filenames: tuple[str, ...] = DEFAULT_IMPORTANT_FILENAMES

    def skip_directory(self, path: str) -> bool:
        """True if path contains any skipped directory name."""
        lowered = path.lower()
        return any(name.lower() in lowered for name in self.skip_dirs)

    def skip_file(self, path: str, size: int | None) -> bool:
        if size is not None and size > self.max_file_size:
            return True
        return path.endswith(self.skip_extensions)

    def is_important(self, path: str) -> bool:
        name = path.rsplit("/", 1)[-1]
        if name in self.important_filenames:
            return True
        if "." not in name:
            return False
        extension = "." + name.rsplit(".", 1)[-1].lower()
        return extension in self.important_extensions


@dataclass(frozen=True)
class CrawlConfig:
    """Crawler settings."""
    rules: SkipRules = field(default_factory=SkipRules)
    max_workers: int = 1  # >1 walks top-level subtrees in a thread pool


@dataclass(frozen=True)
class ScoringConfig:
    """Criterion weights for the final score."""
    weights: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(CRITERIA_WEIGHTS))
    )

    def __post_init__(self) -> None:
        if not isinstance(self.weights, MappingProxyType):
            object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))


@dataclass(frozen=True)
class LLMConfig:
    """LLM configuration using LiteLLM."""
    enabled: bool = False
    model: str = DEFAULT_LLM_MODEL  # LiteLLM model string
    temperature: float = 0.3
    max_tokens: int = 1000
    timeout: float = 30.0  # seconds per call
    blend: bool = True  # average LLM judgments into heuristic sub-scores
    # API keys are read from environment (TOGETHER_API_KEY, OPENAI_API_KEY, etc.)


@dataclass(frozen=True)
class ProjectTemplate:
    """Expected layout for a project type."""
    name: str
    description: str = ""
    files: tuple[str, ...] = ()
    # category -> expected paths; "dir/*" matches any file under dir/
    file_structure: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not isinstance(self.file_structure, MappingProxyType):
            object.__setattr__(
                self,
                "file_structure",
                MappingProxyType({k: tuple(v) for k, v in self.file_structure.items()}),
            )


@dataclass(frozen=True)
class HackathonRules:
    """Eligibility rules for one hackathon. None means the rule is not configured."""
    name: str
    start_date: str | None = None  # ISO date or datetime
    deadline: str | None = None
    max_team_size: int | None = None
    must_be_original: bool | None = None
    demo_required: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date,
            "deadline": self.deadline,
            "max_team_size": self.max_team_size,
            "must_be_original": self.must_be_original,
            "demo_required": self.demo_required,
        }


DEFAULT_TEMPLATES: dict[str, ProjectTemplate] = {
    "nextjs": ProjectTemplate(
        name="nextjs",
        description="Next.js React framework with pages, API routes, and components",
        files=(
            "package.json", "next.config.js", "pages/index.js", "pages/_app.js",
            "pages/api/*", "components/*", "styles/*", "README.md",
        ),
        file_structure={
            "config": ("package.json", "next.config.js"),
            "pages": ("pages/index.js", "pages/_app.js"),
            "api": ("pages/api/*",),
            "components": ("components/*",),
            "documentation": ("README.md",),
        },
    ),
    "react": ProjectTemplate(
        name="react",
        description="React application with components and source files",
        files=(
            "package.json", "src/index.js", "src/App.js", "src/components/*",
            "public/index.html", "README.md",
        ),
        file_structure={
            "config": ("package.json",),
            "source": ("src/index.js", "src/App.js"),
            "components": ("src/components/*",),
            "public": ("public/index.html",),
            "documentation": ("README.md",),
        },
    ),
    "nodejs": ProjectTemplate(
        name="nodejs",
        description="Node.js/Express backend with controllers, routes, and models",
        files=(
            "package.json", "index.js", "routes/*", "controllers/*", "models/*",
            "middleware/*", "config/*", "README.md",
        ),
        file_structure={
            "config": ("package.json", ".env.example"),
            "entry": ("index.js",),
            "routes": ("routes/*",),
            "controllers": ("controllers/*",),
            "models": ("models/*",),
            "documentation": ("README.md",),
        },
    ),
    "custom": ProjectTemplate(
        name="custom",
        description="Generic project structure with main files and components",
        files=("README.md", "package.json", "index.js", "main.js", "src/*"),
        file_structure={
            "documentation": ("README.md",),
            "entry": ("index.js", "main.js"),
            "source": ("src/*",),
        },
    ),
}


@dataclass(frozen=True)
class AuditConfig:
    """Complete Repoaudit configuration."""
    crawl: CrawlConfig = field(default_factory=CrawlConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    templates: Mapping[str, ProjectTemplate] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_TEMPLATES))
    )
    hackathons: Mapping[str, HackathonRules] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def get_template(self, name: str) -> ProjectTemplate:
        """Get a template by name, falling back to the custom template."""
        return self.templates.get(name) or self.templates.get("custom") or DEFAULT_TEMPLATES["custom"]

    def with_llm(self, **changes: Any) -> "AuditConfig":
        """Copy of this config with LLM settings replaced."""
        return replace(self, llm=replace(self.llm, **changes))

    @classmethod
    def load(cls, root: Path) -> "AuditConfig":
        """Load configuration from a directory containing repoaudit.yml."""
        config_path = root / CONFIG_FILENAME
        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level")

        return cls._parse(data)

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> "AuditConfig":
        """Parse main configuration dictionary."""
        return cls(
            crawl=cls._parse_crawl(data.get("crawl") or {}),
            scoring=cls._parse_scoring(data.get("scoring") or {}),
            llm=cls._parse_llm(data.get("llm") or {}),
            templates=MappingProxyType(cls._parse_templates(data.get("templates") or {})),
            hackathons=MappingProxyType(cls._parse_hackathons(data.get("hackathons") or {})),
        )

    @classmethod
    def _parse_crawl(cls, data: dict[str, Any]) -> CrawlConfig:
        defaults = SkipRules()
        rules = SkipRules(
            skip_dirs=tuple(data.get("skip_dirs", defaults.skip_dirs)),
            skip_extensions=tuple(data.get("skip_extensions", defaults.skip_extensions)),
            max_file_size=int(data.get("max_file_size", defaults.max_file_size)),
            important_extensions=tuple(
                data.get("important_extensions", defaults.important_extensions)
            ),
            important_filenames=tuple(
                data.get("important_filenames", defaults.important_filenames)
            ),
        )
        return CrawlConfig(rules=rules, max_workers=int(data.get("max_workers", 1)))

    @classmethod
    def _parse_scoring(cls, data: dict[str, Any]) -> ScoringConfig:
        weights = dict(CRITERIA_WEIGHTS)
        for name, value in (data.get("weights") or {}).items():
            if name not in weights:
                raise ConfigError(f"Unknown scoring criterion: {name}")
            if float(value) < 0:
                raise ConfigError(f"Weight for {name} must be non-negative")
            weights[name] = float(value)
        return ScoringConfig(weights=weights)

    @classmethod
    def _parse_llm(cls, data: dict[str, Any]) -> LLMConfig:
        return LLMConfig(
            enabled=data.get("enabled", False),
            model=data.get("model", DEFAULT_LLM_MODEL),
            temperature=data.get("temperature", 0.3),
            max_tokens=data.get("max_tokens", 1000),
            timeout=float(data.get("timeout", 30.0)),
            blend=data.get("blend", True),
        )

    @classmethod
    def _parse_templates(cls, data: dict[str, Any]) -> dict[str, ProjectTemplate]:
        """Merge user templates over the built-in ones."""
        templates = dict(DEFAULT_TEMPLATES)
        for name, template_data in data.items():
            if not isinstance(template_data, dict):
                continue
            criteria = template_data.get("criteria") or {}
            structure = criteria.get("file_structure") or criteria.get("fileStructure") or {}
            templates[name] = ProjectTemplate(
                name=name,
                description=template_data.get("description", ""),
                files=tuple(template_data.get("files", [])),
                file_structure={k: tuple(v) for k, v in structure.items()},
            )
        return templates

    @classmethod
    def _parse_hackathons(cls, data: dict[str, Any]) -> dict[str, HackathonRules]:
        hackathons = {}
        for name, rules_data in data.items():
            if isinstance(rules_data, dict):
                hackathons[name] = parse_hackathon_rules(name, rules_data)
        return hackathons


def parse_hackathon_rules(name: str, data: dict[str, Any]) -> HackathonRules:
    """Build HackathonRules from a mapping; dates stay as strings."""
    max_team_size = data.get("max_team_size")
    return HackathonRules(
        name=data.get("name", name),
        start_date=_as_str(data.get("start_date")),
        deadline=_as_str(data.get("deadline")),
        max_team_size=int(max_team_size) if max_team_size is not None else None,
        must_be_original=data.get("must_be_original"),
        demo_required=data.get("demo_required"),
    )


def _as_str(value: Any) -> str | None:
    # YAML turns bare 2025-07-01 into a date object
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def save_hackathon_rules(root: Path, key: str, rules: HackathonRules) -> Path:
    """Add or replace a hackathon entry in repoaudit.yml, keeping other sections."""
    config_path = root / CONFIG_FILENAME
    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level")

    hackathons = data.setdefault("hackathons", {}) or {}
    entry = {"name": rules.name}
    entry.update({k: v for k, v in rules.to_dict().items() if v is not None})
    hackathons[key] = entry
    data["hackathons"] = hackathons

    with open(config_path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return config_path
