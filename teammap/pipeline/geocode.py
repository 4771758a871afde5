"""Geocode unique team locations and spot-check them with reverse geocoding.

Locations are resolved strictly one at a time through a shared ``Throttle`` so
the free provider never sees bursts. A failed lookup is recorded and the run
carries on; rerunning the stage is the retry mechanism. The persisted artifact
doubles as a checkpoint: unless a full run is requested, keys that already
resolved successfully are reused without another request.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterable, Sequence

from teammap.common.constants import GEOCODE_RESULTS_PATH, NOT_FOUND_ERROR
from teammap.common.errors import InputError
from teammap.common.fs import read_json_input, write_json
from teammap.common.logging import log_event
from teammap.common.models import GeocodeResult, LocationEntry, LocationKey, Place, VerificationMismatch
from teammap.common.throttle import Throttle
from teammap.common.time_utils import utc_timestamp_iso
from teammap.geocoding.nominatim import Geocoder, NominatimGeocoder
from teammap.pipeline.extract import collect_from_config, order_for_geocoding
from teammap.pipeline.normalise import NormalisationRules, build_search_query, uses_fallback
from teammap.pipeline.source import load_raw_team, raw_team_path

_module_logger = logging.getLogger(__name__)


def _success(entry: LocationEntry, query: str, place: Place) -> GeocodeResult:
    return GeocodeResult(
        key=entry.key,
        count=entry.count,
        members=tuple(entry.members),
        problematic=entry.problematic,
        query=query,
        success=True,
        lat=place.latitude,
        lng=place.longitude,
        formatted_address=place.formatted_address,
        city=place.city,
        country_name=place.country,
        country_code=place.country_code,
    )


def _failure(entry: LocationEntry, query: str, error: str) -> GeocodeResult:
    return GeocodeResult(
        key=entry.key,
        count=entry.count,
        members=tuple(entry.members),
        problematic=entry.problematic,
        query=query,
        success=False,
        error=error,
    )


def _reuse(entry: LocationEntry, query: str, previous: GeocodeResult) -> GeocodeResult:
    return GeocodeResult(
        key=entry.key,
        count=entry.count,
        members=tuple(entry.members),
        problematic=entry.problematic,
        query=query,
        success=True,
        lat=previous.lat,
        lng=previous.lng,
        formatted_address=previous.formatted_address,
        city=previous.city,
        country_name=previous.country_name,
        country_code=previous.country_code,
    )


def geocode_entry(entry: LocationEntry, query: str, geocoder: Geocoder) -> GeocodeResult:
    try:
        places = geocoder.geocode(query)
    except Exception as exc:  # provider failures are recorded per location
        return _failure(entry, query, str(exc) or exc.__class__.__name__)
    if not places:
        return _failure(entry, query, NOT_FOUND_ERROR)
    return _success(entry, query, places[0])


def geocode_locations(
    entries: Sequence[LocationEntry],
    geocoder: Geocoder,
    throttle: Throttle,
    rules: NormalisationRules,
    *,
    previous: dict[LocationKey, GeocodeResult] | None = None,
    logger: logging.Logger | None = None,
    on_checkpoint: Callable[[dict[LocationKey, GeocodeResult]], None] | None = None,
    checkpoint_every: int = 25,
) -> tuple[dict[LocationKey, GeocodeResult], int]:
    """Resolve every entry in order; return results keyed like ``entries`` and the reuse count."""
    logger = logger or _module_logger
    previous = previous or {}
    resolved: dict[LocationKey, GeocodeResult] = {}
    pending: list[tuple[LocationEntry, str]] = []

    for entry in entries:
        query = build_search_query(entry.key.location, entry.key.country, rules)
        prior = previous.get(entry.key)
        if prior is not None and prior.success:
            resolved[entry.key] = _reuse(entry, query, prior)
        else:
            pending.append((entry, query))
    reused = len(resolved)

    def _ordered() -> dict[LocationKey, GeocodeResult]:
        return {entry.key: resolved[entry.key] for entry in entries if entry.key in resolved}

    for idx, (entry, query) in enumerate(throttle.iterate(pending), start=1):
        started = time.monotonic()
        result = geocode_entry(entry, query, geocoder)
        resolved[entry.key] = result
        log_event(
            logger,
            f"geocoded {idx}/{len(pending)}: {query}",
            stage="geocode",
            source="forward",
            event="GEOCODE_LOOKUP",
            status="ok" if result.success else "error",
            duration_ms=int((time.monotonic() - started) * 1000),
            level=logging.DEBUG if result.success else logging.WARNING,
        )
        if on_checkpoint is not None and idx % checkpoint_every == 0:
            on_checkpoint(_ordered())

    if on_checkpoint is not None and len(pending) % checkpoint_every:
        on_checkpoint(_ordered())
    return _ordered(), reused


def _contains(haystack: str | None, needle: str | None) -> bool:
    if not haystack or not needle:
        return False
    return needle.lower() in haystack.lower()


def location_matches(original: str, place: Place) -> bool:
    """True when the reverse address names the original, or the original names the reverse city.

    A reverse result without a city cannot contradict the original, so it counts as a match.
    """
    if not place.city:
        return True
    return _contains(place.formatted_address, original) or _contains(original, place.city)


def verify_sample(
    results: Iterable[GeocodeResult],
    geocoder: Geocoder,
    throttle: Throttle,
    rules: NormalisationRules,
    *,
    sample_size: int = 10,
    logger: logging.Logger | None = None,
) -> list[VerificationMismatch]:
    logger = logger or _module_logger
    sample = [result for result in results if result.success][:sample_size]
    mismatches: list[VerificationMismatch] = []

    for result in throttle.iterate(sample):
        try:
            places = geocoder.reverse(result.lat, result.lng)
        except Exception as exc:  # verification is best-effort diagnostics
            log_event(
                logger,
                f"reverse geocode failed for {result.key.as_string()}: {exc}",
                stage="geocode",
                source="reverse",
                event="VERIFY_SKIPPED",
                status="error",
                level=logging.DEBUG,
            )
            continue
        if not places:
            continue

        reverse = places[0]
        # Blank locations were resolved through the fallback pin, so check against that.
        original = result.key.location
        if uses_fallback(original, rules):
            original = rules.fallback_location

        if not location_matches(original, reverse):
            mismatches.append(
                VerificationMismatch(
                    original=result.key.location,
                    original_country=result.key.country,
                    coordinates=f"{result.lat}, {result.lng}",
                    reverse_geocoded_to=reverse.formatted_address,
                    members_affected=result.count,
                )
            )
    return mismatches


def build_artifact(
    entries: Sequence[LocationEntry],
    results: dict[LocationKey, GeocodeResult],
    mismatches: Sequence[VerificationMismatch],
    *,
    run_id: str,
    reused: int = 0,
    complete: bool = True,
) -> dict:
    all_results = [results[entry.key] for entry in entries if entry.key in results]
    problematic = [entry for entry in entries if entry.problematic]
    failed = [result for result in all_results if not result.success]

    return {
        "run_id": run_id,
        "generated_at": utc_timestamp_iso(),
        "complete": complete,
        "summary": {
            "total": len(entries),
            "successful": len(all_results) - len(failed),
            "failed": len(failed),
            "problematic": len(problematic),
            "verification_mismatches": len(mismatches),
            "reused": reused,
        },
        "problematic_locations": [
            {
                "location": entry.key.location,
                "country": entry.key.country,
                "count": entry.count,
                "members": list(entry.members),
            }
            for entry in problematic
        ],
        "failed_geocode": [
            {
                "location": result.key.location,
                "country": result.key.country,
                "error": result.error,
                "count": result.count,
                "members": list(result.members),
            }
            for result in failed
        ],
        "verification_mismatches": [mismatch.to_dict() for mismatch in mismatches],
        "all_results": [result.to_dict() for result in all_results],
    }


def parse_artifact_results(payload: dict) -> dict[LocationKey, GeocodeResult]:
    rows = payload.get("all_results") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        raise InputError("Geocode results artifact has no all_results list")
    results: dict[LocationKey, GeocodeResult] = {}
    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            raise InputError("Geocode results artifact contains a non-object result")
        try:
            result = GeocodeResult.from_dict(row)
        except (TypeError, ValueError) as exc:
            raise InputError(f"Malformed geocode result {idx}: {exc}") from exc
        results.setdefault(result.key, result)
    return results


def load_checkpoint(path: Path) -> dict[LocationKey, GeocodeResult]:
    if not path.exists():
        return {}
    return parse_artifact_results(read_json_input(path, "geocode checkpoint"))


def run_geocode(
    cfg: dict,
    data_dir: Path,
    run_id: str,
    *,
    geocoder: Geocoder | None = None,
    throttle: Throttle | None = None,
    resume: bool = True,
    logger: logging.Logger | None = None,
) -> dict:
    logger = logger or _module_logger
    geocoder_cfg = cfg["geocoder"]
    out_path = data_dir / GEOCODE_RESULTS_PATH

    records = load_raw_team(raw_team_path(data_dir, cfg))
    previous = load_checkpoint(out_path) if resume else {}

    rules = NormalisationRules.from_config(cfg)
    entries = order_for_geocoding(collect_from_config(records, cfg).values())
    problematic_count = sum(1 for entry in entries if entry.problematic)
    log_event(
        logger,
        f"{len(entries)} unique locations from {len(records)} members, {problematic_count} problematic",
        run_id=run_id,
        stage="geocode",
        event="LOCATIONS_EXTRACTED",
        status="ok",
        rows_in=len(records),
        rows_out=len(entries),
    )
    for entry in entries:
        if entry.problematic:
            log_event(
                logger,
                f"problematic location {entry.key.location!r} ({entry.key.country}) shared by {entry.count}",
                run_id=run_id,
                stage="geocode",
                event="LOCATION_PROBLEMATIC",
                status="warn",
                level=logging.WARNING,
            )

    throttle = throttle or Throttle(float(geocoder_cfg["min_interval_seconds"]))
    owns_geocoder = geocoder is None
    active_geocoder = geocoder or NominatimGeocoder.from_config(cfg)

    def _checkpoint(partial: dict[LocationKey, GeocodeResult]) -> None:
        write_json(out_path, build_artifact(entries, partial, [], run_id=run_id, complete=False))

    try:
        results, reused = geocode_locations(
            entries,
            active_geocoder,
            throttle,
            rules,
            previous=previous,
            logger=logger,
            on_checkpoint=_checkpoint,
            checkpoint_every=int(geocoder_cfg["checkpoint_every"]),
        )
        mismatches = verify_sample(
            results.values(),
            active_geocoder,
            throttle,
            rules,
            sample_size=int(geocoder_cfg["verify_sample_size"]),
            logger=logger,
        )
    finally:
        if owns_geocoder and isinstance(active_geocoder, NominatimGeocoder):
            active_geocoder.close()

    payload = build_artifact(entries, results, mismatches, run_id=run_id, reused=reused)
    write_json(out_path, payload)

    for failed in payload["failed_geocode"]:
        log_event(
            logger,
            f"failed to geocode {failed['location']!r} ({failed['country']}): {failed['error']}",
            run_id=run_id,
            stage="geocode",
            event="GEOCODE_FAILED",
            status="error",
            level=logging.WARNING,
        )
    for mismatch in mismatches:
        log_event(
            logger,
            f"verification mismatch {mismatch.original!r} -> {mismatch.reverse_geocoded_to!r}",
            run_id=run_id,
            stage="geocode",
            event="VERIFY_MISMATCH",
            status="warn",
            level=logging.WARNING,
        )
    summary = payload["summary"]
    log_event(
        logger,
        f"geocoding complete: {summary['successful']} successful, {summary['failed']} failed",
        run_id=run_id,
        stage="geocode",
        event="GEOCODE_COMPLETE",
        status="partial" if summary["failed"] else "ok",
        rows_in=summary["total"],
        rows_out=summary["successful"],
    )
    return payload

