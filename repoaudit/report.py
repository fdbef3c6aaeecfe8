"""
JSON report files for finished audits.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .audit import AuditResult


def report_timestamp(when: datetime) -> str:
    """ISO timestamp safe for file names."""
    return when.isoformat().replace(":", "-").replace(".", "-")


def report_filename(owner: str, repo: str, when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"analysis_{owner}_{repo}_{report_timestamp(when)}.json"


def build_report(result: AuditResult, when: datetime | None = None) -> dict[str, Any]:
    when = when or datetime.now(timezone.utc)
    return {
        "analysisDate": when.isoformat(),
        "repository": result.full_name,
        "template": result.template,
        "results": result.to_dict(),
    }


def save_report(
    result: AuditResult,
    directory: Path | str = ".",
    when: datetime | None = None,
) -> Path:
    """Write the report as JSON and return its path."""
    when = when or datetime.now(timezone.utc)
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / report_filename(result.owner, result.repo, when)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(build_report(result, when), f, indent=2, ensure_ascii=False)
    return path
