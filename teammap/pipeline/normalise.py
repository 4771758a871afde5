"""Location string normalisation ahead of forward geocoding."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from teammap.pipeline.extract import DEFAULT_NULL_MARKERS, is_blank_location

_GREATER_AREA_RE = re.compile(r"\bgreater\s+(.+?)\s+area\b", re.IGNORECASE)

DEFAULT_COUNTRY_NAMES = {
    "PL": "Poland",
    "GB": "United Kingdom",
    "US": "United States",
    "CA": "Canada",
    "DE": "Germany",
    "FR": "France",
    "ES": "Spain",
    "IT": "Italy",
    "NL": "Netherlands",
    "BE": "Belgium",
}


@dataclass(frozen=True)
class NormalisationRules:
    fallback_location: str = "North Pole"
    null_markers: tuple[str, ...] = DEFAULT_NULL_MARKERS
    generic_locations: tuple[str, ...] = ("world",)
    strip_suffixes: dict[str, tuple[str, ...]] = field(default_factory=lambda: {"GB": (", UK",)})
    country_names: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COUNTRY_NAMES))

    @classmethod
    def from_config(cls, cfg: dict) -> "NormalisationRules":
        norm = cfg["normalisation"]
        return cls(
            fallback_location=norm["fallback_location"],
            null_markers=tuple(cfg["extract"]["null_markers"]),
            generic_locations=tuple(norm["generic_locations"]),
            strip_suffixes={code: tuple(values) for code, values in norm["strip_suffixes"].items()},
            country_names=dict(norm["country_names"]),
        )


def uses_fallback(location: str | None, rules: NormalisationRules) -> bool:
    if is_blank_location(location, rules.null_markers):
        return True
    return location.strip().lower() in {value.lower() for value in rules.generic_locations}


def strip_country_suffix(location: str, country: str | None, rules: NormalisationRules) -> str:
    suffixes = rules.strip_suffixes.get(country or "", ())
    stripped = True
    while stripped:
        stripped = False
        for suffix in suffixes:
            if suffix and location.endswith(suffix):
                location = location[: -len(suffix)].rstrip()
                stripped = True
    return location


def collapse_greater_area(location: str) -> str:
    return _GREATER_AREA_RE.sub(r"\1", location, count=1)


def drop_redundant_country_name(location: str, country: str | None, rules: NormalisationRules) -> str:
    if not country or "," not in location:
        return location
    country_name = rules.country_names.get(country)
    if country_name and country_name.lower() in location.lower():
        return location.split(",", 1)[0].strip()
    return location


def normalise_location(location: str | None, country: str | None, rules: NormalisationRules | None = None) -> str:
    rules = rules or NormalisationRules()
    if uses_fallback(location, rules):
        return rules.fallback_location

    normalised = location.strip()
    normalised = strip_country_suffix(normalised, country, rules)
    normalised = collapse_greater_area(normalised)
    normalised = drop_redundant_country_name(normalised, country, rules)
    return normalised or rules.fallback_location


def has_usable_country(country: str | None, rules: NormalisationRules) -> bool:
    if is_blank_location(country, rules.null_markers):
        return False
    return country.strip().lower() not in {value.lower() for value in rules.generic_locations}


def build_search_query(location: str | None, country: str | None, rules: NormalisationRules | None = None) -> str:
    rules = rules or NormalisationRules()
    normalised = normalise_location(location, country, rules)
    if has_usable_country(country, rules):
        return f"{normalised}, {country.strip()}"
    return normalised
