"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from teammap.common.constants import GEOCODE_RESULTS_PATH, REPORTS_DIR
from teammap.common.fs import read_json, write_json


def write_run_summary(data_dir: Path, run_id: str, stages: list[str]) -> Path:
    geocode_path = data_dir / GEOCODE_RESULTS_PATH
    merge_path = data_dir / REPORTS_DIR / "merge_report.json"

    geocode_summary: dict = {}
    merge_counts: dict = {}
    warning_count = 0
    error_count = 0
    missing: list[str] = []

    if geocode_path.exists():
        geocode_summary = read_json(geocode_path).get("summary", {})
        error_count += int(geocode_summary.get("failed", 0))
        warning_count += int(geocode_summary.get("verification_mismatches", 0))
    elif "geocode" in stages:
        missing.append("geocode")

    if merge_path.exists():
        merge_report = read_json(merge_path)
        merge_counts = merge_report.get("counts", {})
        warning_count += len(merge_report.get("warnings", []))
    elif "merge" in stages:
        missing.append("merge")

    error_count += len(missing)
    status = "success"
    if error_count > 0:
        status = "error"
    elif warning_count > 0:
        status = "partial"

    summary_path = data_dir / REPORTS_DIR / "run_summary.json"
    payload = {
        "run_id": run_id,
        "status": status,
        "stages": stages,
        "geocode": geocode_summary,
        "merge": merge_counts,
        "missing_reports": missing,
        "warning_count": warning_count,
        "error_count": error_count,
    }
    write_json(summary_path, payload)
    return summary_path
