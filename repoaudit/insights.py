"""
Human-readable insights and recommendations derived from a classification.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from .classifier import ClassificationSummary, PathView
from .crawler import RepositoryInventory


@dataclass(frozen=True)
class Insight:
    kind: str  # purpose, technology, features, architecture, coherence, quality, structure
    title: str
    message: str
    confidence: float
    category: str  # understanding, information, strength, improvement

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Recommendation:
    kind: str
    title: str
    message: str
    priority: str  # high, medium, low
    category: str

    def to_dict(self) -> dict:
        return asdict(self)


def generate_insights(summary: ClassificationSummary) -> list[Insight]:
    purpose = summary.purpose
    arch = summary.architecture_quality
    consistency = summary.coherence.consistency
    overall = summary.quality.overall
    insights: list[Insight] = []

    if purpose.confidence >= 0.5 or purpose.domain != "Unknown Application":
        insights.append(Insight(
            "purpose", "Project Purpose Identified", purpose.conclusion,
            purpose.confidence, "understanding",
        ))
    else:
        insights.append(Insight(
            "purpose", "Project Purpose Unclear",
            "The project purpose is not clearly defined. "
            "Consider adding better documentation and project description.",
            0.3, "improvement",
        ))

    if purpose.technologies:
        insights.append(Insight(
            "technology", "Technology Stack Identified",
            f"Uses: {', '.join(purpose.technologies)}", 0.9, "information",
        ))

    if purpose.features:
        more = " and more..." if len(purpose.features) > 5 else ""
        insights.append(Insight(
            "features", "Main Features Identified",
            f"Provides: {', '.join(purpose.features[:5])}{more}", 0.8, "information",
        ))

    if arch.score >= 7:
        insights.append(Insight(
            "architecture", "Strong Architecture",
            f"The project uses {summary.architecture_pattern} with good separation "
            "of concerns and design patterns.",
            arch.score / 10, "strength",
        ))
    else:
        insights.append(Insight(
            "architecture", "Architecture Needs Improvement",
            f"Consider improving the {summary.architecture_pattern} with better "
            "separation of concerns.",
            arch.score / 10, "improvement",
        ))

    if consistency >= 7:
        insights.append(Insight(
            "coherence", "Consistent Codebase",
            "The codebase shows good consistency in naming, structure, and patterns.",
            consistency / 10, "strength",
        ))
    else:
        insights.append(Insight(
            "coherence", "Inconsistent Code Patterns",
            "The codebase has inconsistencies that could impact maintainability.",
            consistency / 10, "improvement",
        ))

    if overall >= 7:
        insights.append(Insight(
            "quality", "High Code Quality",
            "The codebase demonstrates good quality across maintainability, "
            "readability, and other dimensions.",
            overall / 10, "strength",
        ))
    else:
        insights.append(Insight(
            "quality", "Quality Improvements Needed",
            "Several quality dimensions need attention for better code maintainability.",
            overall / 10, "improvement",
        ))

    total_files = summary.total_files
    total_dirs = summary.total_directories
    if total_files > 20:
        insights.append(Insight(
            "structure", "Complex Project Structure",
            f"The project contains {total_files} files across {total_dirs} directories, "
            "indicating a substantial codebase.",
            0.8, "information",
        ))
    elif total_files > 5:
        insights.append(Insight(
            "structure", "Moderate Project Size",
            f"The project contains {total_files} files across {total_dirs} directories, "
            "suitable for a focused application.",
            0.7, "information",
        ))
    else:
        insights.append(Insight(
            "structure", "Simple Project Structure",
            f"The project contains {total_files} files, indicating a simple or "
            "early-stage application.",
            0.6, "information",
        ))

    if summary.key_files:
        more = "..." if len(summary.key_files) > 3 else ""
        insights.append(Insight(
            "structure", "Key Files Identified",
            f"Main files: {', '.join(summary.key_files[:3])}{more}", 0.8, "information",
        ))

    return insights


def generate_recommendations(
    inventory: RepositoryInventory,
    summary: ClassificationSummary,
) -> list[Recommendation]:
    view = PathView(inventory)
    purpose = summary.purpose
    quality = summary.quality
    recs: list[Recommendation] = []

    def add(kind: str, title: str, message: str, priority: str, category: str) -> None:
        recs.append(Recommendation(kind, title, message, priority, category))

    if purpose.confidence < 0.5:
        add("purpose", "Improve Project Documentation",
            "Add clear project description, purpose, and usage instructions in README.md",
            "high", "documentation")
    if not purpose.description:
        add("purpose", "Add Project Description",
            "Include a clear description in package.json and README.md",
            "medium", "documentation")

    if summary.architecture_quality.score < 7:
        add("architecture", "Improve Architecture",
            f"Consider implementing {summary.architecture_pattern} with better separation of concerns",
            "medium", "structure")
    if len(summary.detected_layers) < 3:
        add("architecture", "Add Layer Separation",
            "Implement proper separation between presentation, business logic, and data layers",
            "medium", "structure")

    if summary.coherence.consistency < 7:
        add("coherence", "Standardize Code Patterns",
            "Establish and follow consistent naming conventions and file organization",
            "medium", "consistency")
    if summary.coherence.naming < 7:
        add("coherence", "Improve Naming Consistency",
            "Use consistent naming conventions across files and directories",
            "low", "consistency")

    if quality.overall < 7:
        add("quality", "Enhance Code Quality",
            "Focus on improving maintainability, readability, and testing coverage",
            "high", "quality")
    if quality.maintainability < 7:
        add("quality", "Improve Maintainability",
            "Add more modular structure and separation of concerns",
            "medium", "quality")
    if quality.testability < 7:
        add("quality", "Add Testing",
            "Implement unit tests and integration tests for better code reliability",
            "medium", "testing")
    if quality.security < 7:
        add("quality", "Enhance Security",
            "Add security middleware and authentication mechanisms",
            "high", "security")

    if not view.any_file("readme", "docs"):
        add("structure", "Add Documentation",
            "Create README.md with project description, setup instructions, and API documentation",
            "high", "documentation")
    if not view.any_file("test", "spec"):
        add("structure", "Add Test Files",
            "Create test files and testing infrastructure",
            "medium", "testing")
    if len(view.files_with("config", "env")) < 2:
        add("structure", "Improve Configuration",
            "Add proper configuration files and environment management",
            "medium", "configuration")

    if view.manifest is not None:
        if view.has_dep("express") and not view.has_dep("helmet"):
            add("technology", "Add Security Middleware",
                "Consider adding helmet.js for enhanced security headers",
                "medium", "security")
        if view.has_dep("express") and not view.has_dep("express-rate-limit"):
            add("technology", "Add Rate Limiting",
                "Consider adding express-rate-limit for API protection",
                "low", "security")
        if not view.has_dep("jest", "mocha"):
            add("technology", "Add Testing Framework",
                "Consider adding Jest or Mocha for unit testing",
                "medium", "testing")

    return recs
