from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from teammap.common.fs import write_json
from teammap.server.app import ServerSettings, create_app


def _settings(tmp_path: Path) -> ServerSettings:
    return ServerSettings(
        team_path=tmp_path / "out" / "team.json",
        applicant_path=tmp_path / "applicant.json",
        cors_origins=["http://localhost:5173"],
        environment="test",
    )


@pytest.fixture
def served(tmp_path: Path):
    write_json(
        tmp_path / "out" / "team.json",
        {
            "metadata": {"totalMembers": 2, "source": "posthog.com/people", "dataVersion": "1.0"},
            "team": [
                {"id": 101, "name": "Ada Lovelace", "latitude": 47.6038321, "longitude": -122.330062},
                {"id": 103, "name": "Marek Nowak", "latitude": 53.778422, "longitude": 20.4801193},
            ],
        },
    )
    write_json(tmp_path / "applicant.json", {"name": "Alex", "locations": [{"city": "Lisbon", "percentage": 60}]})
    app = create_app(_settings(tmp_path))
    with TestClient(app) as client:
        yield app, client


@pytest.mark.integration
def test_list_team(served):
    _app, client = served

    response = client.get("/api/team")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["metadata"]["totalMembers"] == 2
    assert [m["id"] for m in body["data"]["team"]] == [101, 103]


@pytest.mark.integration
def test_get_member_by_id(served):
    _app, client = served

    response = client.get("/api/team/103")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {"id": 103, "name": "Marek Nowak", "latitude": 53.778422, "longitude": 20.4801193},
    }


@pytest.mark.integration
@pytest.mark.parametrize("member_id", ["999", "abc"])
def test_unknown_member_is_not_found(served, member_id):
    _app, client = served

    response = client.get(f"/api/team/{member_id}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Team member not found"}


@pytest.mark.integration
def test_applicant_profile(served):
    _app, client = served

    response = client.get("/api/applicant")

    assert response.status_code == 200
    assert response.json()["data"]["locations"][0]["city"] == "Lisbon"


@pytest.mark.integration
def test_dataset_is_loaded_once_across_requests(served):
    app, client = served

    client.get("/api/team")
    client.get("/api/team/101")
    client.get("/api/team")

    assert app.state.team_cache.load_count == 1
    assert not app.state.applicant_cache.loaded


@pytest.mark.integration
def test_missing_dataset_returns_server_error(tmp_path: Path):
    app = create_app(_settings(tmp_path))
    with TestClient(app) as client:
        team = client.get("/api/team")
        applicant = client.get("/api/applicant")

    assert team.status_code == 500
    assert team.json() == {"success": False, "error": "Team data is unavailable"}
    assert applicant.status_code == 500
    assert applicant.json()["error"] == "Applicant data is unavailable"


@pytest.mark.integration
def test_team_list_with_non_object_member_returns_error_envelope(tmp_path: Path):
    write_json(tmp_path / "out" / "team.json", {"metadata": {}, "team": [{"id": 101}, 7]})
    app = create_app(_settings(tmp_path))
    with TestClient(app) as client:
        response = client.get("/api/team")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Team data is unavailable"}


@pytest.mark.integration
def test_health_and_root(served):
    _app, client = served

    health = client.get("/api/health").json()
    root = client.get("/").json()

    assert health["status"] == "ok"
    assert health["environment"] == "test"
    assert root["version"] == "1.0.0"


@pytest.mark.integration
def test_cors_allows_configured_frontend(served):
    _app, client = served

    response = client.get("/api/team", headers={"Origin": "http://localhost:5173"})

    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
