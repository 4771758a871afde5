"""Join geocoded coordinates onto team records and write the served dataset."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Iterable

from teammap.common.constants import GEOCODE_RESULTS_PATH, REPORTS_DIR, TEAM_DATASET_PATH
from teammap.common.fs import read_json_input, write_json
from teammap.common.logging import log_event
from teammap.common.models import GeocodeResult, LocationKey, RawTeamRecord
from teammap.common.time_utils import utc_timestamp_z
from teammap.pipeline.geocode import parse_artifact_results
from teammap.pipeline.source import load_raw_team, raw_team_path

_module_logger = logging.getLogger(__name__)


def _is_coordinate(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def has_valid_coordinates(result: GeocodeResult) -> bool:
    if not (_is_coordinate(result.lat) and _is_coordinate(result.lng)):
        return False
    return (result.lat, result.lng) != (0, 0)


def build_location_lookup(results: dict[LocationKey, GeocodeResult]) -> dict[LocationKey, GeocodeResult]:
    return {key: result for key, result in results.items() if result.success and has_valid_coordinates(result)}


def invalid_coordinate_keys(results: dict[LocationKey, GeocodeResult]) -> set[LocationKey]:
    """Keys that geocoded successfully but carry coordinates unfit for the map."""
    return {key for key, result in results.items() if result.success and not has_valid_coordinates(result)}


def _team_summaries(teams: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    summaries = []
    for team in teams:
        attributes = team.get("attributes") or {}
        summaries.append(
            {
                "id": team.get("id"),
                "name": attributes.get("name"),
                "slug": attributes.get("slug"),
            }
        )
    return summaries


def _lead_team_summaries(teams: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{"name": (team.get("attributes") or {}).get("name")} for team in teams]


def enrich_member(record: RawTeamRecord, result: GeocodeResult) -> dict[str, Any]:
    return {
        "id": record.squeak_id,
        "name": record.full_name,
        "firstName": record.first_name,
        "lastName": record.last_name,
        "role": record.company_role,
        "location": record.location,
        "country": record.country,
        "latitude": result.lat,
        "longitude": result.lng,
        "formattedAddress": result.formatted_address,
        "avatar": record.avatar_url,
        "biography": record.biography,
        "color": record.color,
        "pronouns": record.pronouns,
        "pineappleOnPizza": record.pineapple_on_pizza,
        "startDate": record.start_date,
        "teams": _team_summaries(record.teams),
        "leadTeams": _lead_team_summaries(record.lead_teams),
    }


def merge_records(
    records: Iterable[RawTeamRecord],
    lookup: dict[LocationKey, GeocodeResult],
    invalid: set[LocationKey] | None = None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    members: list[dict[str, Any]] = []
    warnings: list[dict[str, Any]] = []
    invalid = invalid or set()
    for record in records:
        result = lookup.get(record.key)
        if result is None:
            warnings.append(
                {
                    "name": record.full_name,
                    "location": record.location,
                    "country": record.country,
                    "reason": "INVALID_COORDINATES" if record.key in invalid else "NO_COORDINATES",
                }
            )
            continue
        members.append(enrich_member(record, result))
    return members, warnings


def _percent(part: int, total: int) -> float:
    return 0.0 if total == 0 else round((part / total) * 100, 1)


def dataset_statistics(members: list[dict[str, Any]], regions: dict[str, list[str]]) -> dict[str, Any]:
    total = len(members)
    with_avatar = sum(1 for member in members if member.get("avatar"))
    with_bio = sum(1 for member in members if member.get("biography"))

    known_codes: set[str] = set()
    by_region: dict[str, int] = {}
    for region, codes in regions.items():
        codes = {str(code) for code in codes}
        known_codes |= codes
        by_region[region] = sum(1 for member in members if member.get("country") in codes)
    by_region["Other"] = sum(1 for member in members if member.get("country") not in known_codes)

    return {
        "total_members": total,
        "countries": len({member.get("country") for member in members}),
        "unique_roles": len({member.get("role") for member in members}),
        "with_avatar": with_avatar,
        "with_avatar_percent": _percent(with_avatar, total),
        "with_biography": with_bio,
        "with_biography_percent": _percent(with_bio, total),
        "members_by_region": by_region,
    }


def run_merge(
    cfg: dict,
    data_dir: Path,
    run_id: str,
    *,
    logger: logging.Logger | None = None,
) -> dict:
    logger = logger or _module_logger
    records = load_raw_team(raw_team_path(data_dir, cfg))
    artifact_path = data_dir / GEOCODE_RESULTS_PATH
    artifact = read_json_input(artifact_path, "geocode results")
    results = parse_artifact_results(artifact)
    if not artifact.get("complete", True):
        log_event(
            logger,
            "geocode results come from an interrupted run",
            run_id=run_id,
            stage="merge",
            event="ARTIFACT_INCOMPLETE",
            status="warn",
            level=logging.WARNING,
        )

    lookup = build_location_lookup(results)
    members, warnings = merge_records(records, lookup, invalid_coordinate_keys(results))
    for warning in warnings:
        log_event(
            logger,
            f"skipped {warning['name']}: {warning['reason']} ({warning['location']}, {warning['country']})",
            run_id=run_id,
            stage="merge",
            event="MEMBER_SKIPPED",
            status="warn",
            level=logging.WARNING,
        )

    dataset = {
        "metadata": {
            "totalMembers": len(members),
            "lastUpdated": utc_timestamp_z(),
            "source": cfg["source"]["label"],
            "dataVersion": str(cfg["merge"]["data_version"]),
        },
        "team": members,
    }
    write_json(data_dir / TEAM_DATASET_PATH, dataset)

    report = {
        "run_id": run_id,
        "counts": {
            "raw_members": len(records),
            "geocoded_locations": len(lookup),
            "processed": len(members),
            "skipped": len(warnings),
        },
        "warnings": warnings,
        "statistics": dataset_statistics(members, cfg["merge"]["regions"]),
    }
    write_json(data_dir / REPORTS_DIR / "merge_report.json", report)

    log_event(
        logger,
        f"merged {len(members)} members, skipped {len(warnings)}",
        run_id=run_id,
        stage="merge",
        event="MERGE_COMPLETE",
        status="partial" if warnings else "ok",
        rows_in=len(records),
        rows_out=len(members),
    )
    return {"dataset": dataset, "report": report}
