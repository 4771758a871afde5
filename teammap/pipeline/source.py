"""Raw scraped team file loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from teammap.common.errors import InputError
from teammap.common.fs import read_json_input
from teammap.common.models import RawTeamRecord


def extract_member_payloads(payload: Any) -> list[dict]:
    if isinstance(payload, list):
        members = payload
    elif isinstance(payload, dict) and isinstance(payload.get("team"), dict):
        members = payload["team"].get("teamMembers")
    else:
        members = None

    if not isinstance(members, list):
        raise InputError("Raw team payload has no team.teamMembers list")
    for idx, member in enumerate(members):
        if not isinstance(member, dict):
            raise InputError(f"Raw team member {idx} is not an object")
    return members


def raw_team_path(data_dir: Path, cfg: dict) -> Path:
    return data_dir / cfg["source"]["raw_team_filename"]


def load_raw_team(path: Path) -> list[RawTeamRecord]:
    payload = read_json_input(path, "raw team file")
    records: list[RawTeamRecord] = []
    for idx, member in enumerate(extract_member_payloads(payload)):
        try:
            records.append(RawTeamRecord.from_dict(member))
        except (TypeError, ValueError) as exc:
            raise InputError(f"Malformed raw team member {idx}: {exc}") from exc
    return records
