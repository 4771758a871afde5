"""Unique location extraction and problematic location classification."""

from __future__ import annotations

from typing import Iterable, Sequence

from teammap.common.models import LocationEntry, LocationKey, RawTeamRecord

DEFAULT_NULL_MARKERS = ("null",)
DEFAULT_PROBLEMATIC_KEYWORDS = (
    "world",
    "earth",
    "remote",
    "nomad",
    "digital nomad",
    "everywhere",
    "nowhere",
    "n/a",
    "tbd",
    "various",
)


def is_blank_location(location: str | None, null_markers: Iterable[str] = DEFAULT_NULL_MARKERS) -> bool:
    if location is None:
        return True
    stripped = location.strip()
    if not stripped:
        return True
    return stripped.lower() in {marker.lower() for marker in null_markers}


def is_problematic(
    location: str | None,
    keywords: Sequence[str] = DEFAULT_PROBLEMATIC_KEYWORDS,
    null_markers: Iterable[str] = DEFAULT_NULL_MARKERS,
) -> bool:
    if is_blank_location(location, null_markers):
        return True
    lowered = location.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def collect_locations(
    records: Iterable[RawTeamRecord],
    keywords: Sequence[str] = DEFAULT_PROBLEMATIC_KEYWORDS,
    null_markers: Iterable[str] = DEFAULT_NULL_MARKERS,
) -> dict[LocationKey, LocationEntry]:
    entries: dict[LocationKey, LocationEntry] = {}
    for record in records:
        key = record.key
        entry = entries.get(key)
        if entry is None:
            entry = LocationEntry(key=key, problematic=is_problematic(key.location, keywords, null_markers))
            entries[key] = entry
        entry.count += 1
        entry.members.append(record.full_name)
    return entries


def order_for_geocoding(entries: Iterable[LocationEntry]) -> list[LocationEntry]:
    entries = list(entries)
    problematic = [entry for entry in entries if entry.problematic]
    normal = [entry for entry in entries if not entry.problematic]
    return problematic + normal


def collect_from_config(records: Iterable[RawTeamRecord], cfg: dict) -> dict[LocationKey, LocationEntry]:
    extract_cfg = cfg["extract"]
    return collect_locations(
        records,
        keywords=tuple(extract_cfg["problematic_keywords"]),
        null_markers=tuple(extract_cfg["null_markers"]),
    )
