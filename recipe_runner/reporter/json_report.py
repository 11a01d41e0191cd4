"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from recipe_runner.models.results import ExecutionResult


def generate_json_report(result: ExecutionResult, output_path: Path) -> None:
    """Write the machine-readable results.json for a run."""
    report = result.model_dump(mode="json")
    report["errors"] = result.errors
    report["pass_rate"] = result.pass_rate

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)


def load_json_report(path: Path) -> ExecutionResult:
    """Read a results.json written by generate_json_report."""
    with open(path) as f:
        data = json.load(f)
    data.pop("errors", None)
    data.pop("pass_rate", None)
    return ExecutionResult.model_validate(data)
