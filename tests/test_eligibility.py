from __future__ import annotations

import pytest

from repoaudit.config import HackathonRules
from repoaudit.eligibility import (
    Outcome,
    check_deadline,
    check_demo,
    check_originality,
    check_start_date,
    check_team_size,
    evaluate_eligibility,
    parse_timestamp,
)
from repoaudit.github import Contributor, RepoMetadata


def make_metadata(
    created_at: str | None = "2025-07-02T09:00:00Z",
    pushed_at: str | None = "2025-07-06T18:00:00Z",
    fork: bool = False,
    contributors: int = 3,
) -> RepoMetadata:
    return RepoMetadata(
        name="demo",
        full_name="acme/demo",
        description=None,
        default_branch="main",
        owner="acme",
        created_at=created_at,
        pushed_at=pushed_at,
        fork=fork,
        contributors=[Contributor(login=f"dev{i}", contributions=1) for i in range(contributors)],
    )


RULES = HackathonRules(
    name="Summer Hack",
    start_date="2025-07-01",
    deadline="2025-07-07",
    max_team_size=4,
    must_be_original=True,
    demo_required=True,
)


def test_created_before_start_fails():
    result = check_start_date(RULES, make_metadata(created_at="2025-06-30T12:00:00Z"))

    assert result.outcome == Outcome.FAIL
    assert result.detail == "Repo created before hackathon: 2025-06-30"


def test_created_after_start_passes():
    result = check_start_date(RULES, make_metadata(created_at="2025-07-02T00:00:00Z"))

    assert result.outcome == Outcome.PASS


def test_created_on_start_day_passes():
    result = check_start_date(RULES, make_metadata(created_at="2025-07-01T00:30:00Z"))

    assert result.outcome == Outcome.PASS


def test_deadline_day_is_inclusive():
    on_deadline = check_deadline(RULES, make_metadata(pushed_at="2025-07-07T23:59:00Z"))
    after = check_deadline(RULES, make_metadata(pushed_at="2025-07-08T00:01:00Z"))

    assert on_deadline.outcome == Outcome.PASS
    assert after.outcome == Outcome.FAIL
    assert after.detail.startswith("Last commit after deadline")


def test_deadline_with_time_component_compares_exactly():
    rules = HackathonRules(name="h", deadline="2025-07-07T12:00:00Z")

    late = check_deadline(rules, make_metadata(pushed_at="2025-07-07T12:00:01Z"))

    assert late.outcome == Outcome.FAIL


def test_invalid_date_only_errors_its_own_rule():
    rules = HackathonRules(name="h", start_date="not-a-date", deadline="2025-07-07", max_team_size=4)

    verdict = evaluate_eligibility(rules, make_metadata())

    assert verdict.get("start_date").outcome == Outcome.ERROR
    assert verdict.get("deadline").outcome == Outcome.PASS
    assert verdict.get("max_team_size").outcome == Outcome.PASS
    assert not verdict.eligible


def test_missing_repository_date_is_error():
    result = check_start_date(RULES, make_metadata(created_at=None))

    assert result.outcome == Outcome.ERROR


def test_team_size_over_cap_fails_with_both_counts():
    result = check_team_size(RULES, make_metadata(contributors=5))

    assert result.outcome == Outcome.FAIL
    assert "(5/4)" in result.detail


def test_team_size_at_cap_passes():
    result = check_team_size(RULES, make_metadata(contributors=4))

    assert result.outcome == Outcome.PASS
    assert "(4/4)" in result.detail


def test_fork_fails_when_originality_required():
    result = check_originality(RULES, make_metadata(fork=True))

    assert result.outcome == Outcome.FAIL
    assert result.detail == "Repository is a fork"


@pytest.mark.parametrize("flag", [True, False])
def test_original_repository_passes_regardless_of_flag(flag):
    rules = HackathonRules(name="h", must_be_original=flag)

    assert check_originality(rules, make_metadata(fork=False)).outcome == Outcome.PASS


def test_fork_allowed_when_originality_not_required():
    rules = HackathonRules(name="h", must_be_original=False)

    assert check_originality(rules, make_metadata(fork=True)).outcome == Outcome.PASS


def test_unset_originality_rule_is_not_applicable_even_for_forks():
    result = check_originality(HackathonRules(name="h"), make_metadata(fork=True))

    assert result.outcome == Outcome.NOT_APPLICABLE


def test_demo_rule():
    assert check_demo(RULES, ["README.md", "docs/Demo.mp4"]).outcome == Outcome.PASS
    assert check_demo(RULES, ["README.md"]).outcome == Outcome.FAIL
    no_demo = HackathonRules(name="h", demo_required=False)
    assert check_demo(no_demo, []).outcome == Outcome.NOT_APPLICABLE


def test_unconfigured_rules_are_not_applicable():
    verdict = evaluate_eligibility(HackathonRules(name="open"), make_metadata(), [])

    outcomes = {r.rule: r.outcome for r in verdict.results}
    assert outcomes == {
        "start_date": Outcome.NOT_APPLICABLE,
        "deadline": Outcome.NOT_APPLICABLE,
        "max_team_size": Outcome.NOT_APPLICABLE,
        "must_be_original": Outcome.NOT_APPLICABLE,
        "demo_required": Outcome.NOT_APPLICABLE,
    }
    assert verdict.eligible


def test_full_verdict_eligible():
    verdict = evaluate_eligibility(RULES, make_metadata(), ["demo/video.md", "index.js"])

    assert verdict.eligible
    assert verdict.to_dict()["eligible"] is True
    assert [r["rule"] for r in verdict.to_dict()["rules"]] == [
        "start_date", "deadline", "max_team_size", "must_be_original", "demo_required",
    ]


def test_any_failure_makes_ineligible():
    verdict = evaluate_eligibility(RULES, make_metadata(contributors=9), ["demo.md"])

    assert not verdict.eligible


def test_parse_timestamp_accepts_z_suffix_and_dates():
    assert parse_timestamp("2025-07-01T10:00:00Z").hour == 10
    assert parse_timestamp("2025-07-01").tzinfo is not None
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")
