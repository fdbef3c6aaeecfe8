from __future__ import annotations

from repoaudit.classifier import (
    DEFAULT_ARCHITECTURE,
    READABILITY_RULES,
    SECURITY_RULES,
    Layer,
    PathView,
    classify,
    detect_architecture_pattern,
    determine_complexity,
    extension_of,
    naming_consistency,
    organize_files,
    parse_package_json,
    score_quality,
)
from repoaudit.crawler import RepositoryInventory


def inventory_of(*files: str, contents: dict | None = None) -> RepositoryInventory:
    return RepositoryInventory(files=files, file_contents=contents or {})


def test_classify_is_deterministic(crawl, express_app):
    inventory = crawl(express_app)

    assert classify(inventory) == classify(inventory)
    assert classify(inventory).to_dict() == classify(crawl(express_app)).to_dict()


def test_express_app_structure(crawl, express_app):
    summary = classify(crawl(express_app))

    assert summary.architecture_pattern == "MVC (Model-View-Controller)"
    assert summary.detected_layers == (Layer.DATA_ACCESS, Layer.CONFIGURATION, Layer.MIDDLEWARE)
    assert summary.design_patterns == ("Singleton (Configuration)", "Middleware", "MVC")
    assert summary.key_files == ("package.json", "config/db.js", "index.js", "README.md")
    assert summary.dominant_extension == "js"
    assert summary.complexity == "simple"


def test_express_app_purpose(crawl, express_app):
    purpose = classify(crawl(express_app)).purpose

    assert purpose.domain == "Financial Management Application"
    assert purpose.description == "Track your monthly budget"
    assert "Express.js" in purpose.technologies
    assert "MongoDB" in purpose.technologies
    assert "Budget Tracking" in purpose.features
    assert purpose.confidence == 1.0
    assert purpose.conclusion.startswith("This is a financial management application")


def test_empty_inventory_is_monolithic_custom():
    summary = classify(RepositoryInventory())

    assert summary.detected_layers == (Layer.MONOLITHIC,)
    assert summary.architecture_pattern == DEFAULT_ARCHITECTURE
    assert summary.dominant_extension is None
    assert summary.key_files == ()
    assert summary.total_files == 0
    assert summary.purpose.domain == "Unknown Application"


def test_architecture_priority_prefers_framework_conventions():
    app_router = PathView(inventory_of("app/page.tsx", "controllers/a.js", "models/b.js"))
    pages_router = PathView(inventory_of("pages/index.js", "controllers/a.js"))
    mvc = PathView(inventory_of("controllers/a.js", "services/b.js"))

    assert detect_architecture_pattern(app_router) == "App Router (Next.js 13+)"
    assert detect_architecture_pattern(pages_router) == "Pages Router (Next.js)"
    assert detect_architecture_pattern(mvc) == "MVC (Model-View-Controller)"


def test_matching_is_case_insensitive():
    summary = classify(inventory_of("Controllers/UserController.js", "Models/User.js"))

    assert summary.architecture_pattern == "MVC (Model-View-Controller)"
    assert "MVC" in summary.design_patterns


def test_sub_scores_are_clamped(crawl, express_app):
    summary = classify(crawl(express_app))
    values = (
        summary.coherence.naming,
        summary.coherence.structure,
        summary.coherence.patterns,
        summary.quality.maintainability,
        summary.quality.readability,
        summary.quality.performance,
        summary.quality.security,
        summary.quality.testability,
        summary.architecture_quality.score,
    )
    assert all(0 <= v <= 10 for v in values)


def test_malformed_package_json_treated_as_absent():
    summary = classify(inventory_of("package.json", contents={"package.json": "{not json"}))

    assert summary.purpose.technologies == ()
    assert summary.purpose.description is None
    assert parse_package_json("{not json") is None
    assert parse_package_json("[1, 2]") is None


def test_complexity_thresholds():
    assert determine_complexity(inventory_of(*[f"f{i}.js" for i in range(5)])) == "simple"
    assert determine_complexity(inventory_of(*[f"f{i}.js" for i in range(21)])) == "moderate"
    assert determine_complexity(inventory_of(*[f"f{i}.js" for i in range(51)])) == "complex"


def test_naming_consistency_rewards_uniform_names():
    uniform = PathView(inventory_of("src/app.js", "src/server.js", "src/utils.js"))
    mixed = PathView(inventory_of("src/App.js", "src/My_Server.js", "src/UTILS.js"))

    assert naming_consistency(uniform) > naming_consistency(mixed)


def test_extension_of():
    assert extension_of("src/App.TSX") == "tsx"
    assert extension_of("Dockerfile") == ""
    assert extension_of("a.b/c") == ""


def test_express_app_file_organization(crawl, express_app):
    organization = classify(crawl(express_app)).file_organization

    assert set(organization.root_files) == {"package.json", "README.md", "index.js"}
    assert organization.files_in("config") == ("config/db.js",)
    assert organization.files_in("documentation") == ("README.md",)
    assert organization.files_in("testing") == ("tests/expenses.test.js",)
    assert organization.files_in("deployment") == ()
    assert organization.files_in("entry_point") == ("index.js",)
    # No src/ directory, so no breakdown
    assert organization.src_structure == {}


def test_src_breakdown_and_overlapping_categories():
    organization = organize_files(inventory_of(
        "src/components/Button.jsx",
        "src/hooks/useBudget.js",
        "src/services/api.js",
        "Dockerfile",
        "deploy/prod.yml",
    ))

    assert organization.src_structure["components"] == ("src/components",)
    assert organization.src_structure["hooks"] == ("src/hooks",)
    assert organization.src_structure["services"] == ("src/services",)
    assert organization.src_structure["pages"] == ()
    # A Dockerfile is both configuration and deployment
    assert "Dockerfile" in organization.files_in("config")
    assert "Dockerfile" in organization.files_in("deployment")
    assert "deploy/prod.yml" in organization.files_in("deployment")
    assert organization.root_files == ("Dockerfile",)


def test_file_organization_in_summary_dict(crawl, express_app):
    data = classify(crawl(express_app)).to_dict()

    assert data["file_organization"]["categories"]["config"] == ["config/db.js"]
    assert data["file_organization"]["src_structure"] == {}


def test_security_rules_add_to_base(crawl, express_app):
    view = PathView(crawl(express_app))
    matched = [rule.label for rule in SECURITY_RULES if rule.predicate(view)]

    # auth middleware, helmet and cors, jsonwebtoken; no rate limiting
    assert matched == [
        "Security-related files",
        "Helmet or CORS dependency",
        "Hashing or token dependency",
    ]
    assert score_quality(view, SECURITY_RULES) == 10
    assert classify(crawl(express_app)).quality.security == 10


def test_readability_tiers_are_exclusive():
    view = PathView(inventory_of("a_b/x.js", "cd/y.js", "ef/z.js"))
    matched = [rule.label for rule in READABILITY_RULES if rule.predicate(view)]

    # Two of three directory names are clear
    assert "Mostly clear directory names" in matched
    assert "Clear directory names" not in matched
    assert score_quality(PathView(RepositoryInventory()), READABILITY_RULES) == 8
