from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from teammap.common.config_loader import load_config
from teammap.common.models import Place

FIXTURE_RAW_TEAM = Path(__file__).parent / "fixtures" / "raw" / "team_sample.json"

SAMPLE_PLACES = {
    "Seattle, US": Place(47.6038321, -122.330062, "Seattle, King County, Washington, United States", "Seattle", "United States", "US"),
    "Olsztyn, PL": Place(53.7784220, 20.4801193, "Olsztyn, Warmian-Masurian Voivodeship, Poland", "Olsztyn", "Poland", "PL"),
    "North Pole": Place(64.7511, -147.3494, "North Pole, Fairbanks North Star, Alaska, United States", "North Pole", "United States", "US"),
    "London, GB": Place(51.5074456, -0.1277653, "London, Greater London, England, United Kingdom", "London", "United Kingdom", "GB"),
}


class FakeGeocoder:
    def __init__(self, places: dict[str, Place] | None = None, *, reverse_places=None, errors=None):
        self.places = dict(SAMPLE_PLACES if places is None else places)
        self.reverse_places = reverse_places or {}
        self.errors = errors or {}
        self.queries: list[str] = []
        self.reverse_calls: list[tuple[float, float]] = []

    def geocode(self, query: str) -> list[Place]:
        self.queries.append(query)
        if query in self.errors:
            raise self.errors[query]
        place = self.places.get(query)
        return [place] if place else []

    def reverse(self, lat: float, lon: float) -> list[Place]:
        self.reverse_calls.append((lat, lon))
        for place in self.places.values():
            if (place.latitude, place.longitude) == (lat, lon):
                return [self.reverse_places.get(place.formatted_address, place)]
        return []


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder


@pytest.fixture
def pipeline_config() -> dict:
    cfg = load_config(Path("config"))
    cfg["geocoder"]["min_interval_seconds"] = 0
    return cfg


@pytest.fixture
def data_dir(tmp_path: Path, pipeline_config: dict) -> Path:
    target = tmp_path / "data" / pipeline_config["source"]["raw_team_filename"]
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(FIXTURE_RAW_TEAM, target)
    return tmp_path / "data"
