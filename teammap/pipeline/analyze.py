"""Field completeness report for the raw scraped team file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from teammap.common.constants import REPORTS_DIR
from teammap.common.fs import read_json_input, write_json
from teammap.common.logging import log_event
from teammap.pipeline.source import extract_member_payloads, raw_team_path

_module_logger = logging.getLogger(__name__)


def _has_avatar(member: dict[str, Any]) -> bool:
    avatar = member.get("avatar")
    if isinstance(avatar, str) and avatar:
        return True
    if isinstance(avatar, dict) and avatar.get("url"):
        return True
    return bool(member.get("image") or member.get("photo"))


def _has_coordinates(member: dict[str, Any]) -> bool:
    if member.get("latitude") is not None and member.get("longitude") is not None:
        return True
    coordinates = member.get("coordinates") or {}
    return coordinates.get("lat") is not None and coordinates.get("lng") is not None


def _completeness(count: int, total: int) -> dict[str, Any]:
    percent = 0.0 if total == 0 else round((count / total) * 100, 1)
    if percent > 80:
        status = "good"
    elif percent > 50:
        status = "partial"
    else:
        status = "poor"
    return {"count": count, "percent": percent, "status": status}


def analyze_members(members: list[dict[str, Any]]) -> dict[str, Any]:
    total = len(members)
    with_location = [m for m in members if m.get("location") or m.get("country")]
    with_role = [m for m in members if m.get("role") or m.get("companyRole")]
    roles = sorted({str(m.get("role") or m.get("companyRole")) for m in with_role})
    with_coordinates = sum(1 for m in members if _has_coordinates(m))

    field_types: dict[str, str] = {}
    if members:
        for key, value in members[0].items():
            field_types[key] = "array" if isinstance(value, list) else type(value).__name__

    return {
        "total_members": total,
        "sample_fields": field_types,
        "with_location": len(with_location),
        "with_coordinates": with_coordinates,
        "locations_to_geocode": max(len(with_location) - with_coordinates, 0),
        "unique_roles": len(roles),
        "sample_roles": roles[:10],
        "completeness": {
            "name": _completeness(sum(1 for m in members if m.get("name") or m.get("firstName")), total),
            "location": _completeness(len(with_location), total),
            "role": _completeness(len(with_role), total),
            "avatar": _completeness(sum(1 for m in members if _has_avatar(m)), total),
            "biography": _completeness(sum(1 for m in members if m.get("bio") or m.get("biography")), total),
        },
    }


def run_analyze(cfg: dict, data_dir: Path, run_id: str, *, logger: logging.Logger | None = None) -> dict:
    logger = logger or _module_logger
    path = raw_team_path(data_dir, cfg)
    members = extract_member_payloads(read_json_input(path, "raw team file"))

    report = {"run_id": run_id, "source_path": str(path), **analyze_members(members)}
    write_json(data_dir / REPORTS_DIR / "source_analysis.json", report)
    log_event(
        logger,
        f"analyzed {report['total_members']} raw members, {report['locations_to_geocode']} need geocoding",
        run_id=run_id,
        stage="analyze",
        event="ANALYZE_COMPLETE",
        status="ok",
        rows_in=report["total_members"],
    )
    return report
