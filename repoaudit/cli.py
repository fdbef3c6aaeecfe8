"""
Repoaudit CLI - Audit GitHub repositories and score them on five criteria.

Commands:
    init           - Write a sample repoaudit.yml
    audit          - Audit one repository
    interactive    - Menu-driven audits with retry
    templates      - List project templates
    hackathon-new  - Add hackathon rules to repoaudit.yml
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from datetime import date
from pathlib import Path

import click
from dotenv import load_dotenv

# Load .env file from current directory
load_dotenv()

from . import __version__
from .audit import AUTO_TEMPLATE, AuditResult, audit_repository
from .config import (
    CONFIG_FILENAME,
    AuditConfig,
    ConfigError,
    HackathonRules,
    ProjectTemplate,
    save_hackathon_rules,
)
from .crawler import CrawlError, RepositoryNotFoundError
from .eligibility import Outcome
from .github import GitHubAPIError, GitHubClient
from .llm import get_llm_client
from .report import save_report


SAMPLE_CONFIG = """\
# Repoaudit Configuration
# Credentials are read from the environment (or a .env file):
#   GITHUB_TOKEN      - GitHub API token (strongly recommended, avoids rate limits)
#   TOGETHER_API_KEY  - or OPENAI_API_KEY, ANTHROPIC_API_KEY, ... for LLM judgments

# Crawl settings
crawl:
  max_file_size: 1048576   # Files larger than this (bytes) are skipped
  max_workers: 1           # >1 walks top-level directories in parallel
  # skip_dirs: [node_modules, .git, build, dist, coverage]
  # skip_extensions: [.min.js, .map, .lock, .png, .jpg]

# Criterion weights (relative; the final score is a weighted average)
scoring:
  weights:
    code_quality: 30
    innovation: 25
    functionality: 20
    documentation: 15
    user_experience: 10

# LLM judgments (optional). Without an API key only heuristic scoring runs.
# See: https://docs.litellm.ai/docs/providers
llm:
  enabled: false
  model: together_ai/deepseek-ai/DeepSeek-V3
  # model: gpt-4o                # OpenAI
  # model: claude-3-5-sonnet     # Anthropic
  # model: ollama/llama3         # Local Ollama
  temperature: 0.3
  max_tokens: 1000
  timeout: 30                    # Seconds per call; on timeout the criterion scores 5
  blend: true                    # Average LLM judgments into heuristic scores

# Extra project templates (merged over nextjs, react, nodejs, custom)
# templates:
#   vite:
#     description: Vite + React single page app
#     files: [package.json, vite.config.js, src/main.jsx, src/App.jsx, README.md]
#     criteria:
#       fileStructure:
#         config: [package.json, vite.config.js]
#         source: [src/main.jsx, src/App.jsx]

# Hackathon eligibility rules (use: repoaudit audit OWNER REPO --hackathon summer2025)
# hackathons:
#   summer2025:
#     name: Summer Hack 2025
#     start_date: 2025-07-01
#     deadline: 2025-07-07
#     max_team_size: 4
#     must_be_original: true
#     demo_required: true
"""

CRITERION_LABELS = {
    "code_quality": "Code Quality",
    "documentation": "Documentation",
    "functionality": "Functionality",
    "innovation": "Innovation",
    "user_experience": "User Experience",
}

OUTCOME_ICONS = {
    Outcome.PASS: "✅",
    Outcome.FAIL: "❌",
    Outcome.ERROR: "⚠️",
    Outcome.NOT_APPLICABLE: "➖",
}

TEMPLATE_PREVIEW_FILES = 10


def score_icon(score: float) -> str:
    if score >= 8:
        return "🟢"
    if score >= 6:
        return "🟡"
    if score >= 4:
        return "🟠"
    return "🔴"


def load_config() -> AuditConfig:
    """Load repoaudit.yml from the working directory, exiting on errors."""
    try:
        return AuditConfig.load(Path.cwd())
    except ConfigError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


def display_templates(templates: dict[str, ProjectTemplate]) -> None:
    click.echo("\n📋 AVAILABLE PROJECT TEMPLATES:")
    click.echo("=" * 50)
    for name, template in templates.items():
        click.echo(f"\n🎯 {name.upper()}:")
        click.echo(f"   Description: {template.description}")
        click.echo(f"   Files to analyze: {len(template.files)}")
        click.echo("   Key Files:")
        for path in template.files[:TEMPLATE_PREVIEW_FILES]:
            click.echo(f"     - {path}")
        if len(template.files) > TEMPLATE_PREVIEW_FILES:
            click.echo(f"     ... and {len(template.files) - TEMPLATE_PREVIEW_FILES} more files")
    click.echo("\n" + "=" * 50)


def display_result(result: AuditResult, details: bool, duration: float | None = None) -> None:
    """Print an audit result for humans."""
    score = result.score
    click.echo(f"\n{'═' * 60}")
    click.echo("📊 ANALYSIS RESULTS")
    click.echo(f"{'═' * 60}")
    click.echo(f"\n🏷️  Project: {result.metadata.full_name}")
    if result.metadata.description:
        click.echo(f"📝 {result.metadata.description}")
    click.echo(f"🧩 Type: {result.project_type} (template: {result.template})")
    if duration is not None:
        click.echo(f"⏱️  Analysis Time: {duration:.1f}s")
    click.echo(f"🎯 Final Score: {score.final_score:.1f}/10")

    click.echo("\n📈 CRITERIA BREAKDOWN:")
    click.echo("─" * 40)
    for criterion, value in score.subscores.items():
        label = CRITERION_LABELS.get(criterion, criterion)
        click.echo(f"{score_icon(value)} {label}: {value:g}/10 (weight {score.weights[criterion]:g})")

    if details:
        click.echo("\n📋 DETAILED FEEDBACK:")
        click.echo("─" * 40)
        for criterion, subscore in score.details.items():
            click.echo(f"\n🔍 {CRITERION_LABELS.get(criterion, criterion)}:")
            click.echo(subscore.rationale or "  (no rules matched)")

        summary = result.summary
        click.echo(f"\n{'─' * 60}")
        click.echo("🧠 PROJECT UNDERSTANDING")
        click.echo(f"{'─' * 60}")
        click.echo(f"  {summary.purpose.conclusion}")
        click.echo(f"  Architecture: {summary.architecture_pattern} "
                   f"(quality {summary.architecture_quality.score}/10)")
        if summary.detected_layers:
            click.echo(f"  Layers: {', '.join(layer.value for layer in summary.detected_layers)}")
        if summary.design_patterns:
            click.echo(f"  Design patterns: {', '.join(summary.design_patterns)}")
        click.echo(f"  Complexity: {summary.complexity}")

        if result.insights:
            click.echo("\n💡 Insights:")
            for insight in result.insights:
                click.echo(f"  • {insight.title}: {insight.message}")
        if result.recommendations:
            click.echo("\n🛠️  Recommendations:")
            for rec in result.recommendations:
                click.echo(f"  [{rec.priority}] {rec.title}: {rec.message}")

    if result.judgments:
        click.echo("\n🤖 LLM judgments:")
        for criterion, judgment in result.judgments.items():
            suffix = " (fallback)" if judgment.fallback else ""
            click.echo(f"  {CRITERION_LABELS.get(criterion, criterion)}: {judgment.score:g}/10{suffix}")

    if result.eligibility is not None:
        verdict = result.eligibility
        click.echo(f"\n{'─' * 60}")
        status = "✅ ELIGIBLE" if verdict.eligible else "❌ NOT ELIGIBLE"
        click.echo(f"🏆 Hackathon: {verdict.hackathon} - {status}")
        click.echo(f"{'─' * 60}")
        for rule in verdict.results:
            detail = f" - {rule.detail}" if rule.detail else ""
            click.echo(f"  {OUTCOME_ICONS[rule.outcome]} {rule.rule}: {rule.outcome.value}{detail}")
        if result.feasibility:
            click.echo(f"\n  🤔 Feasibility: {result.feasibility}")

    if result.inventory.inaccessible:
        click.echo(f"\n⚠️  {len(result.inventory.inaccessible)} path(s) could not be read")

    click.echo(f"\n{'═' * 60}")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """Repoaudit - Audit GitHub repositories with objective metrics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Write a sample repoaudit.yml in the current directory."""
    config_path = Path.cwd() / CONFIG_FILENAME
    if config_path.exists() and not force:
        click.echo(f"  Skipped: {config_path} (already exists, use --force)")
        return

    config_path.write_text(SAMPLE_CONFIG)
    click.echo(f"  Created: {config_path}")
    click.echo("\nNext steps:")
    click.echo("  1. Set GITHUB_TOKEN (environment or .env)")
    click.echo("  2. Optionally set an LLM key and enable llm in repoaudit.yml")
    click.echo("  3. Run: repoaudit audit OWNER REPO")


@main.command()
@click.argument("owner")
@click.argument("repo")
@click.option("--template", default=AUTO_TEMPLATE, show_default=True,
              help="Project template name, or auto to detect it")
@click.option("--hackathon", "hackathon_key", default=None, help="Check eligibility against these hackathon rules")
@click.option("--no-llm", is_flag=True, help="Skip LLM judgments even if enabled in config")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--save", "save_dir", default=None, type=click.Path(file_okay=False, path_type=Path),
              help="Write the JSON report into this directory")
@click.option("--details/--no-details", default=True, help="Show the detailed scoring breakdown")
def audit(
    owner: str,
    repo: str,
    template: str,
    hackathon_key: str | None,
    no_llm: bool,
    as_json: bool,
    save_dir: Path | None,
    details: bool,
):
    """Audit one GitHub repository.

    Examples:

        repoaudit audit vercel next-learn
        repoaudit audit acme shop --template nodejs --no-llm
        repoaudit audit acme shop --hackathon summer2025 --save reports
    """
    config = load_config()
    if no_llm:
        config = config.with_llm(enabled=False)

    if template != AUTO_TEMPLATE and template not in config.templates:
        click.echo(f"❌ Unknown template: {template}", err=True)
        click.echo(f"   Available: {', '.join(config.templates)}", err=True)
        sys.exit(1)

    hackathon = None
    if hackathon_key:
        hackathon = config.hackathons.get(hackathon_key)
        if hackathon is None:
            click.echo(f"❌ Hackathon not found in {CONFIG_FILENAME}: {hackathon_key}", err=True)
            sys.exit(1)

    llm = get_llm_client(config.llm)
    if config.llm.enabled and not llm.enabled and not as_json:
        click.echo(f"⚠️  No API key for {config.llm.model}; skipping LLM judgments")

    if not as_json:
        click.echo(f"🔍 Auditing {owner}/{repo}...")

    started = time.monotonic()
    try:
        result = audit_repository(
            owner,
            repo,
            config=config,
            client=GitHubClient(),
            llm=llm,
            template=template,
            hackathon=hackathon,
        )
    except RepositoryNotFoundError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)
    except (CrawlError, GitHubAPIError) as e:
        click.echo(f"❌ Audit failed: {e}", err=True)
        sys.exit(1)
    duration = time.monotonic() - started

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        display_result(result, details=details, duration=duration)

    if save_dir is not None:
        path = save_report(result, save_dir)
        if not as_json:
            click.echo(f"\n💾 Results saved to: {path}")


@main.command()
def templates():
    """List available project templates."""
    config = load_config()
    display_templates(dict(config.templates))


def _not_empty(label: str):
    def check(value: str) -> str:
        value = value.strip()
        if not value:
            raise click.BadParameter(f"{label} cannot be empty!")
        return value
    return check


def _iso_date(value: str) -> str:
    value = value.strip()
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        raise click.BadParameter("Format must be YYYY-MM-DD")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(str(e))
    return value


def _optional_int(value: str) -> int | None:
    value = str(value).strip()
    if not value:
        return None
    try:
        number = int(value)
    except ValueError:
        raise click.BadParameter("Enter a whole number or leave blank")
    if number < 1:
        raise click.BadParameter("Team size must be at least 1")
    return number


def _choose_hackathon(config: AuditConfig) -> HackathonRules | None:
    keys = list(config.hackathons)
    if not keys:
        return None

    click.echo("\n🏆 Hackathon templates:")
    click.echo("  0. ❌ No hackathon (skip)")
    for i, key in enumerate(keys, 1):
        rules = config.hackathons[key]
        click.echo(f"  {i}. {rules.name} ({rules.start_date} to {rules.deadline})")
    choice = click.prompt("Select hackathon", type=click.IntRange(0, len(keys)), default=0)
    return config.hackathons[keys[choice - 1]] if choice else None


def _choose_template(config: AuditConfig) -> str:
    click.echo("\n🎯 Project templates:")
    click.echo(f"  {AUTO_TEMPLATE} - 🤖 Let the system detect project type")
    for name, template in config.templates.items():
        click.echo(f"  {name} - {template.description} ({len(template.files)} files)")
    click.echo("  view - 📋 View all available templates")
    click.echo("  exit - ❌ Exit")
    choices = [AUTO_TEMPLATE, *config.templates, "view", "exit"]
    return click.prompt("Select project template", type=click.Choice(choices), default=AUTO_TEMPLATE)


def _run_interactive_audit(config: AuditConfig) -> bool:
    """One round of prompts and an audit. False means the user chose to exit."""
    owner = click.prompt("📝 Enter GitHub repository owner (username)", value_proc=_not_empty("Owner"))
    repo = click.prompt("📁 Enter GitHub repository name", value_proc=_not_empty("Repository name"))
    hackathon = _choose_hackathon(config)

    template = _choose_template(config)
    while template == "view":
        display_templates(dict(config.templates))
        template = _choose_template(config)
    if template == "exit":
        return False

    details = click.confirm("📊 Show detailed scoring breakdown?", default=True)
    save = click.confirm("💾 Save results to file?", default=False)

    click.echo("\n🔍 STARTING REPOSITORY ANALYSIS...")
    click.echo("=" * 50)
    click.echo(f"Repository: {owner}/{repo}")
    click.echo(f"Template: {'Auto-detect' if template == AUTO_TEMPLATE else template}")
    click.echo("=" * 50)

    started = time.monotonic()
    result = audit_repository(
        owner,
        repo,
        config=config,
        client=GitHubClient(),
        template=template,
        hackathon=hackathon,
    )
    display_result(result, details=details, duration=time.monotonic() - started)

    if save:
        path = save_report(result, Path.cwd())
        click.echo(f"\n💾 Results saved to: {path}")
    return True


@main.command()
def interactive():
    """Menu-driven audits; failures offer a retry."""
    click.echo("\n" + "=" * 60)
    click.echo("🚀 GITHUB REPOSITORY EVALUATOR")
    click.echo("=" * 60)
    click.echo("Analyze your GitHub repositories with objective metrics!")
    click.echo("=" * 60 + "\n")

    config = load_config()

    while True:
        try:
            if not _run_interactive_audit(config):
                click.echo("\n👋 Goodbye!")
                return
        except (CrawlError, GitHubAPIError) as e:
            click.echo(f"❌ Error during analysis: {e}", err=True)
            if not click.confirm("Would you like to try again?", default=True):
                click.echo("\n👋 Goodbye!")
                return
            continue

        action = click.prompt(
            "What would you like to do next? (another / templates / exit)",
            type=click.Choice(["another", "templates", "exit"]),
            default="another",
        )
        if action == "exit":
            click.echo("\n👋 Thank you for using GitHub Repository Evaluator!")
            return
        if action == "templates":
            display_templates(dict(config.templates))


@main.command("hackathon-new")
def hackathon_new():
    """Prompt for hackathon rules and save them to repoaudit.yml."""
    start_date = click.prompt("📅 Enter hackathon start date (YYYY-MM-DD)", value_proc=_iso_date)
    deadline = click.prompt("⏰ Enter hackathon deadline (YYYY-MM-DD)", value_proc=_iso_date)
    if deadline < start_date:
        click.echo("❌ Deadline is before the start date", err=True)
        sys.exit(1)

    name = click.prompt("🏆 Enter the name of the hackathon", value_proc=_not_empty("Name"))
    max_team_size = click.prompt(
        "👥 Max team size (leave blank if not applicable)",
        default="",
        show_default=False,
        value_proc=_optional_int,
    )
    must_be_original = click.confirm("🆕 Must be original work?", default=True)
    demo_required = click.confirm("🎥 Demo required?", default=True)

    rules = HackathonRules(
        name=name,
        start_date=start_date,
        deadline=deadline,
        max_team_size=max_team_size,
        must_be_original=must_be_original,
        demo_required=demo_required,
    )
    key = re.sub(r"\W+", "_", name.strip().lower()).strip("_") or "hackathon"

    try:
        path = save_hackathon_rules(Path.cwd(), key, rules)
    except ConfigError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo(f"\n✅ Hackathon '{name}' saved to {path} as '{key}'")
    click.echo(f"   Use: repoaudit audit OWNER REPO --hackathon {key}")
