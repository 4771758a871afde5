from __future__ import annotations

from teammap.common.errors import GeocodeError
from teammap.common.models import GeocodeResult, LocationEntry, LocationKey, Place
from teammap.common.throttle import Throttle
from teammap.pipeline.geocode import build_artifact, geocode_locations, location_matches, parse_artifact_results, verify_sample
from teammap.pipeline.normalise import NormalisationRules

RULES = NormalisationRules()


def _entry(location, country, *members, problematic=False) -> LocationEntry:
    return LocationEntry(
        key=LocationKey(location, country),
        count=len(members),
        members=list(members),
        problematic=problematic,
    )


class CountingThrottle(Throttle):
    def __init__(self):
        super().__init__(0)
        self.waits = 0

    def wait(self) -> float:
        self.waits += 1
        return super().wait()


def test_geocode_locations_takes_first_result(fake_geocoder):
    seattle = _entry("Greater Seattle Area", "US", "Ada Lovelace", "Grace Hopper")
    geocoder = fake_geocoder()

    results, reused = geocode_locations([seattle], geocoder, Throttle(0), RULES)

    result = results[seattle.key]
    assert reused == 0
    assert geocoder.queries == ["Seattle, US"]
    assert result.success
    assert (result.lat, result.lng) == (47.6038321, -122.330062)
    assert result.count == 2
    assert result.query == "Seattle, US"


def test_empty_results_and_errors_are_recorded_and_do_not_stop_the_run(fake_geocoder):
    atlantis = _entry("Atlantis", "GR", "Larry Lost")
    broken = _entry("Broken", "FR", "Bea Broken")
    london = _entry("London, UK", "GB", "Tom Brown")
    geocoder = fake_geocoder(errors={"Broken, FR": GeocodeError("HTTP status: 403")})
    throttle = CountingThrottle()

    results, _ = geocode_locations([atlantis, broken, london], geocoder, throttle, RULES)

    assert results[atlantis.key].success is False
    assert results[atlantis.key].error == "No results found"
    assert results[broken.key].success is False
    assert results[broken.key].error == "HTTP status: 403"
    assert results[london.key].success is True
    assert throttle.waits == 3


def test_one_request_per_unique_key_in_input_order(fake_geocoder):
    entries = [_entry(None, None, "Nia Nomad", problematic=True), _entry("Olsztyn, Poland", "PL", "Marek Nowak")]
    geocoder = fake_geocoder()

    results, _ = geocode_locations(entries, geocoder, Throttle(0), RULES)

    assert geocoder.queries == ["North Pole", "Olsztyn, PL"]
    assert list(results) == [entry.key for entry in entries]


def test_previous_successes_are_reused_without_requests(fake_geocoder):
    seattle = _entry("Greater Seattle Area", "US", "Ada Lovelace")
    atlantis = _entry("Atlantis", "GR", "Larry Lost")
    previous = {
        seattle.key: GeocodeResult(seattle.key, 1, ("Ada Lovelace",), False, "Seattle, US", True, lat=1.5, lng=2.5, formatted_address="Cached"),
        atlantis.key: GeocodeResult(atlantis.key, 1, ("Larry Lost",), False, "Atlantis, GR", False, error="No results found"),
    }
    geocoder = fake_geocoder()
    throttle = CountingThrottle()

    results, reused = geocode_locations([seattle, atlantis], geocoder, throttle, RULES, previous=previous)

    assert reused == 1
    assert geocoder.queries == ["Atlantis, GR"]
    assert throttle.waits == 1
    assert (results[seattle.key].lat, results[seattle.key].lng) == (1.5, 2.5)
    assert list(results) == [seattle.key, atlantis.key]


def test_checkpoint_callback_fires_every_n_lookups_and_after_last(fake_geocoder):
    entries = [_entry(f"Town {i}", "US", f"M {i}") for i in range(5)]
    snapshots = []

    geocode_locations(
        entries,
        fake_geocoder(),
        Throttle(0),
        RULES,
        on_checkpoint=lambda partial: snapshots.append(len(partial)),
        checkpoint_every=2,
    )

    assert snapshots == [2, 4, 5]


def test_checkpoint_written_before_verification_on_short_runs(fake_geocoder):
    entries = [_entry(f"Town {i}", "US", f"M {i}") for i in range(3)]
    snapshots = []

    geocode_locations(
        entries,
        fake_geocoder(),
        Throttle(0),
        RULES,
        on_checkpoint=lambda partial: snapshots.append(list(partial)),
        checkpoint_every=25,
    )

    assert snapshots == [[entry.key for entry in entries]]


def test_location_matches_both_directions_case_insensitive():
    seattle = Place(47.6, -122.3, "Seattle, King County, Washington, United States", "Seattle")
    assert location_matches("Greater Seattle Area", seattle)
    assert location_matches("seattle, king county", seattle)
    assert not location_matches("Portland", seattle)


def test_location_matches_treats_missing_city_as_match():
    ocean = Place(0.5, 0.5, "Atlantic Ocean", None)
    assert location_matches("Null Island", ocean)
    assert location_matches("Null Island", Place(0.5, 0.5, "Atlantic Ocean", ""))


def test_verify_sample_records_mismatches_and_skips_failures(fake_geocoder):
    entries = [
        _entry("Greater Seattle Area", "US", "Ada"),
        _entry("Olsztyn, Poland", "PL", "Marek", "Ola"),
        _entry("London, UK", "GB", "Tom"),
    ]
    wrong = Place(53.778422, 20.4801193, "Gdansk, Pomeranian Voivodeship, Poland", "Gdansk", "Poland", "PL")
    geocoder = fake_geocoder(reverse_places={"Olsztyn, Warmian-Masurian Voivodeship, Poland": wrong})
    results, _ = geocode_locations(entries, geocoder, Throttle(0), RULES)

    def reverse(lat, lon):
        if lat == 51.5074456:
            raise GeocodeError("reverse down")
        return type(geocoder).reverse(geocoder, lat, lon)

    geocoder.reverse = reverse
    mismatches = verify_sample(results.values(), geocoder, Throttle(0), RULES, sample_size=10)

    assert len(mismatches) == 1
    mismatch = mismatches[0]
    assert mismatch.original == "Olsztyn, Poland"
    assert mismatch.original_country == "PL"
    assert mismatch.coordinates == "53.778422, 20.4801193"
    assert mismatch.reverse_geocoded_to.startswith("Gdansk")
    assert mismatch.members_affected == 2


def test_verify_sample_is_bounded_and_uses_fallback_for_blank_locations(fake_geocoder):
    entries = [_entry(None, None, "Nia", problematic=True), _entry("Greater Seattle Area", "US", "Ada")]
    geocoder = fake_geocoder()
    results, _ = geocode_locations(entries, geocoder, Throttle(0), RULES)

    mismatches = verify_sample(results.values(), geocoder, Throttle(0), RULES, sample_size=1)

    assert len(geocoder.reverse_calls) == 1
    assert mismatches == []


def test_artifact_round_trips_results(fake_geocoder):
    entries = [_entry(None, None, "Nia", problematic=True), _entry("Atlantis", "GR", "Larry")]
    results, _ = geocode_locations(entries, fake_geocoder(), Throttle(0), RULES)

    artifact = build_artifact(entries, results, [], run_id="run-1")

    assert artifact["summary"] == {
        "total": 2,
        "successful": 1,
        "failed": 1,
        "problematic": 1,
        "verification_mismatches": 0,
        "reused": 0,
    }
    assert artifact["failed_geocode"][0]["members"] == ["Larry"]
    assert artifact["problematic_locations"][0]["location"] is None
    assert parse_artifact_results(artifact) == results
