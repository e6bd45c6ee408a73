"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from visualqa.models.report import Report


def generate_json_report(report: Report, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    data = report.model_dump()
    data["should_fail_build"] = report.should_fail_build
    data["regression"]["regressions_found"] = len(report.regression.regressions)

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
