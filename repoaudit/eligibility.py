"""
Hackathon eligibility checks.

Each rule is evaluated independently against repository metadata and the
crawled file list. A malformed date only turns its own rule into ERROR.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable

from .config import HackathonRules
from .github import RepoMetadata


class Outcome(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"
    NOT_APPLICABLE = "N/A"


@dataclass(frozen=True)
class RuleResult:
    rule: str
    outcome: Outcome
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"rule": self.rule, "outcome": self.outcome.value, "detail": self.detail}


@dataclass(frozen=True)
class EligibilityVerdict:
    hackathon: str
    results: tuple[RuleResult, ...]

    @property
    def eligible(self) -> bool:
        """No rule failed or errored."""
        return all(r.outcome not in (Outcome.FAIL, Outcome.ERROR) for r in self.results)

    def get(self, rule: str) -> RuleResult | None:
        for result in self.results:
            if result.rule == rule:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "hackathon": self.hackathon,
            "eligible": self.eligible,
            "rules": [r.to_dict() for r in self.results],
        }


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime.

    A trailing "Z" is accepted and naive values are taken as UTC.

    Raises:
        ValueError: value is not ISO-8601
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_date_only(value: str) -> bool:
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def _compare_points(repo_value: str, rule_value: str) -> tuple[Any, Any]:
    """Both sides as comparable values; whole days when the rule has no time."""
    repo_time = parse_timestamp(repo_value)
    if is_date_only(rule_value):
        return repo_time.astimezone(timezone.utc).date(), date.fromisoformat(rule_value.strip())
    return repo_time, parse_timestamp(rule_value)


def check_start_date(rules: HackathonRules, metadata: RepoMetadata) -> RuleResult:
    if rules.start_date is None:
        return RuleResult("start_date", Outcome.NOT_APPLICABLE)
    if not metadata.created_at:
        return RuleResult("start_date", Outcome.ERROR, "Repository creation date unknown")
    try:
        created, start = _compare_points(metadata.created_at, rules.start_date)
    except ValueError as e:
        return RuleResult("start_date", Outcome.ERROR, f"Invalid date: {e}")

    created_day = metadata.created_at[:10]
    if created < start:
        return RuleResult("start_date", Outcome.FAIL, f"Repo created before hackathon: {created_day}")
    return RuleResult("start_date", Outcome.PASS, f"Repo created on {created_day}")


def check_deadline(rules: HackathonRules, metadata: RepoMetadata) -> RuleResult:
    if rules.deadline is None:
        return RuleResult("deadline", Outcome.NOT_APPLICABLE)
    if not metadata.pushed_at:
        return RuleResult("deadline", Outcome.ERROR, "Last push date unknown")
    try:
        pushed, deadline = _compare_points(metadata.pushed_at, rules.deadline)
    except ValueError as e:
        return RuleResult("deadline", Outcome.ERROR, f"Invalid date: {e}")

    pushed_day = metadata.pushed_at[:10]
    if pushed > deadline:
        return RuleResult("deadline", Outcome.FAIL, f"Last commit after deadline: {pushed_day}")
    return RuleResult("deadline", Outcome.PASS, f"Last commit on {pushed_day}")


def check_team_size(rules: HackathonRules, metadata: RepoMetadata) -> RuleResult:
    if rules.max_team_size is None:
        return RuleResult("max_team_size", Outcome.NOT_APPLICABLE)
    count = len(metadata.contributors)
    detail = f"{count} contributors ({count}/{rules.max_team_size})"
    if count > rules.max_team_size:
        return RuleResult("max_team_size", Outcome.FAIL, detail)
    return RuleResult("max_team_size", Outcome.PASS, detail)


def check_originality(rules: HackathonRules, metadata: RepoMetadata) -> RuleResult:
    if rules.must_be_original is None:
        return RuleResult("must_be_original", Outcome.NOT_APPLICABLE)
    if rules.must_be_original and metadata.fork:
        return RuleResult("must_be_original", Outcome.FAIL, "Repository is a fork")
    if metadata.fork:
        return RuleResult("must_be_original", Outcome.PASS, "Fork allowed")
    return RuleResult("must_be_original", Outcome.PASS, "Original repository")


def check_demo(rules: HackathonRules, file_paths: Iterable[str]) -> RuleResult:
    if not rules.demo_required:
        return RuleResult("demo_required", Outcome.NOT_APPLICABLE)
    demos = [p for p in file_paths if "demo" in p.lower()]
    if demos:
        return RuleResult("demo_required", Outcome.PASS, f"Demo found: {demos[0]}")
    return RuleResult("demo_required", Outcome.FAIL, "No demo file found")


def evaluate_eligibility(
    rules: HackathonRules,
    metadata: RepoMetadata,
    file_paths: Iterable[str] = (),
) -> EligibilityVerdict:
    """Run every rule and collect the verdict."""
    paths = list(file_paths)
    return EligibilityVerdict(
        hackathon=rules.name,
        results=(
            check_start_date(rules, metadata),
            check_deadline(rules, metadata),
            check_team_size(rules, metadata),
            check_originality(rules, metadata),
            check_demo(rules, paths),
        ),
    )
