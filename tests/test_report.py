from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from repoaudit.audit import audit_repository
from repoaudit.llm import NoOpLLM
from repoaudit.report import build_report, report_filename, save_report


WHEN = datetime(2025, 7, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)


@pytest.fixture
def result(make_client, express_app, metadata):
    client = make_client(express_app, metadata)
    return audit_repository("acme", "budget-tracker", client=client, llm=NoOpLLM())


def test_report_filename_is_path_safe():
    name = report_filename("acme", "shop", WHEN)

    assert name == "analysis_acme_shop_2025-07-01T12-30-45-123000+00-00.json"
    assert ":" not in name


def test_build_report(result):
    report = build_report(result, WHEN)

    assert report["analysisDate"] == "2025-07-01T12:30:45.123000+00:00"
    assert report["repository"] == "acme/budget-tracker"
    assert report["template"] == "nodejs"
    assert report["results"]["project_type"] == "nodejs"


def test_save_report_writes_json(tmp_path, result):
    path = save_report(result, tmp_path / "reports", WHEN)

    assert path.parent == tmp_path / "reports"
    assert path.name.startswith("analysis_acme_budget-tracker_")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["repository"] == "acme/budget-tracker"
    assert data["results"]["score"]["subscores"]["documentation"] == 10
