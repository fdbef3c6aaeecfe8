"""
One repository audit, end to end.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .classifier import ClassificationSummary, classify
from .config import AuditConfig, HackathonRules
from .crawler import Crawler, RepositoryInventory, RepositoryNotFoundError
from .eligibility import EligibilityVerdict, evaluate_eligibility, parse_timestamp
from .github import GitHubClient, NotFoundError, RepoContents, RepoMetadata
from .insights import Insight, Recommendation, generate_insights, generate_recommendations
from .llm import (
    Judgment,
    LLMClient,
    NoOpLLM,
    build_feasibility_prompt,
    get_llm_client,
    pick_code_sample,
)
from .scoring import ScoreReport, ScoringContext, detect_project_type, score_repository


logger = logging.getLogger(__name__)

AUTO_TEMPLATE = "auto"


@dataclass
class AuditResult:
    """Everything one audit produced."""
    owner: str
    repo: str
    metadata: RepoMetadata
    inventory: RepositoryInventory
    summary: ClassificationSummary
    project_type: str
    template: str
    score: ScoreReport
    insights: list[Insight] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    judgments: dict[str, Judgment] = field(default_factory=dict)
    feasibility: str | None = None
    eligibility: EligibilityVerdict | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository": self.metadata.to_dict(),
            "project_type": self.project_type,
            "template": self.template,
            "score": self.score.to_dict(),
            "classification": self.summary.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "llm": {
                "judgments": {k: v.to_dict() for k, v in self.judgments.items()},
                "feasibility": self.feasibility,
            },
            "eligibility": self.eligibility.to_dict() if self.eligibility else None,
            "inaccessible": dict(self.inventory.inaccessible),
        }


def hackathon_days(rules: HackathonRules) -> int | None:
    """Length of the hackathon window in days, both ends inclusive."""
    if not rules.start_date or not rules.deadline:
        return None
    try:
        span = parse_timestamp(rules.deadline) - parse_timestamp(rules.start_date)
    except ValueError:
        return None
    return math.ceil(span / timedelta(days=1)) + 1


def count_lines(inventory: RepositoryInventory) -> int:
    return sum(len(content.splitlines()) for content in inventory.file_contents.values())


def assess_feasibility(
    llm: LLMClient | NoOpLLM,
    rules: HackathonRules,
    metadata: RepoMetadata,
    inventory: RepositoryInventory,
    summary: ClassificationSummary,
    project_type: str,
) -> str | None:
    """Ask the LLM whether the team could plausibly build this in the window."""
    if not llm.enabled:
        return None
    days = hackathon_days(rules)
    if days is None:
        logger.warning(f"Skipping feasibility check for {rules.name}: hackathon dates missing or invalid")
        return None

    prompt = build_feasibility_prompt(
        contributors=len(metadata.contributors),
        commits=len(metadata.commits),
        start_date=rules.start_date or "",
        deadline=rules.deadline or "",
        days=days,
        project_type=project_type,
        features=list(summary.purpose.features),
        total_lines=count_lines(inventory),
        total_files=len(inventory.files),
    )
    return llm.assess_feasibility(prompt)


def audit_repository(
    owner: str,
    repo: str,
    *,
    config: AuditConfig | None = None,
    client: GitHubClient | None = None,
    llm: LLMClient | NoOpLLM | None = None,
    template: str = AUTO_TEMPLATE,
    hackathon: HackathonRules | None = None,
) -> AuditResult:
    """
    Audit one repository.

    Args:
        owner: Repository owner
        repo: Repository name
        config: Audit configuration (defaults when omitted)
        client: GitHub API client
        llm: LLM client (built from config.llm when omitted)
        template: Project template name, or "auto" to detect it
        hackathon: Optional eligibility rules to check

    Returns:
        AuditResult with scores, classification and optional verdicts

    Raises:
        RepositoryNotFoundError: the repository does not exist
        CrawlError: the repository root could not be listed
    """
    config = config or AuditConfig()
    client = client or GitHubClient()
    if llm is None:
        llm = get_llm_client(config.llm)

    try:
        metadata = client.get_repository(owner, repo)
    except NotFoundError as e:
        raise RepositoryNotFoundError(f"Repository not found: {owner}/{repo}") from e

    crawler = Crawler(
        RepoContents(client, owner, repo),
        rules=config.crawl.rules,
        max_workers=config.crawl.max_workers,
    )
    inventory = crawler.crawl()

    summary = classify(inventory)
    project_type = detect_project_type(inventory)
    template_name = project_type if template == AUTO_TEMPLATE else template
    project_template = config.get_template(template_name)
    logger.info(f"Auditing {owner}/{repo} as {project_type} with template {project_template.name}")

    ctx = ScoringContext.build(inventory, project_template, summary=summary, project_type=project_type)

    judgments: dict[str, Judgment] = {}
    if llm.enabled:
        judgments = llm.judge_all(pick_code_sample(inventory, project_template), ctx.readme)

    llm_scores = None
    if judgments and config.llm.blend:
        llm_scores = {k: (j.score, j.feedback) for k, j in judgments.items()}

    score = score_repository(ctx, weights=config.scoring.weights, llm_scores=llm_scores)

    result = AuditResult(
        owner=owner,
        repo=repo,
        metadata=metadata,
        inventory=inventory,
        summary=summary,
        project_type=project_type,
        template=project_template.name,
        score=score,
        insights=generate_insights(summary),
        recommendations=generate_recommendations(inventory, summary),
        judgments=judgments,
    )

    if hackathon is not None:
        result.eligibility = evaluate_eligibility(hackathon, metadata, inventory.files)
        result.feasibility = assess_feasibility(
            llm, hackathon, metadata, inventory, summary, project_type
        )

    return result
