"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from teammap.common.errors import ConfigError

SECTIONS = {
    "source": {"raw_team_filename", "label"},
    "geocoder": {
        "provider",
        "endpoint",
        "min_interval_seconds",
        "timeout_seconds",
        "max_attempts",
        "result_limit",
        "verify_sample_size",
        "checkpoint_every",
    },
    "extract": {"null_markers", "problematic_keywords"},
    "normalisation": {"fallback_location", "generic_locations", "strip_suffixes", "country_names"},
    "merge": {"data_version", "regions"},
    "server": {"team_filename", "applicant_filename", "cors_origins", "environment", "host", "port"},
}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_mapping(value, ctx: str) -> None:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx} must be a mapping")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "pipeline config")
    _assert_required_keys(cfg, set(SECTIONS), "pipeline config")
    _assert_no_unknown_keys(cfg, set(SECTIONS), "pipeline config", allow_unknown)

    for section, keys in SECTIONS.items():
        _assert_mapping(cfg[section], section)
        _assert_required_keys(cfg[section], keys, section)
        _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    geocoder = cfg["geocoder"]
    if geocoder["provider"] != "nominatim":
        raise ConfigError(f"Unsupported geocoder provider: {geocoder['provider']}")
    if float(geocoder["min_interval_seconds"]) < 0:
        raise ConfigError("geocoder.min_interval_seconds must be non-negative")
    if int(geocoder["max_attempts"]) < 1:
        raise ConfigError("geocoder.max_attempts must be at least 1")
    if int(geocoder["verify_sample_size"]) < 0:
        raise ConfigError("geocoder.verify_sample_size must be non-negative")
    if int(geocoder["checkpoint_every"]) < 1:
        raise ConfigError("geocoder.checkpoint_every must be at least 1")

    if not cfg["normalisation"]["fallback_location"]:
        raise ConfigError("normalisation.fallback_location must be a non-empty string")
    _assert_mapping(cfg["normalisation"]["country_names"], "normalisation.country_names")
    _assert_mapping(cfg["normalisation"]["strip_suffixes"], "normalisation.strip_suffixes")
    _assert_mapping(cfg["merge"]["regions"], "merge.regions")

    if not isinstance(cfg["extract"]["problematic_keywords"], list):
        raise ConfigError("extract.problematic_keywords must be a list")

    return cfg
