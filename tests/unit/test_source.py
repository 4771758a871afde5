from pathlib import Path

import pytest

from teammap.common.errors import InputError
from teammap.common.fs import write_json
from teammap.pipeline.source import load_raw_team


def test_load_raw_team_reads_nested_team_members(pipeline_config, data_dir: Path):
    records = load_raw_team(data_dir / pipeline_config["source"]["raw_team_filename"])

    assert len(records) == 6
    ada = records[0]
    assert ada.squeak_id == 101
    assert ada.full_name == "Ada Lovelace"
    assert ada.avatar_url == "https://cdn.example.test/ada.png"
    assert ada.teams[0]["attributes"]["slug"] == "team-map"
    assert records[3].location is None
    assert records[5].avatar_url == "https://cdn.example.test/tom.png"


def test_load_raw_team_accepts_bare_list(tmp_path: Path):
    path = tmp_path / "team.json"
    write_json(path, [{"squeakId": "7", "firstName": "Solo", "lastName": "Dev", "location": "Paris", "country": "FR"}])

    records = load_raw_team(path)

    assert records[0].squeak_id == 7
    assert records[0].teams == ()


@pytest.mark.parametrize(
    "payload",
    [
        {"team": {}},
        {"members": []},
        {"team": {"teamMembers": ["not a member"]}},
        {"team": {"teamMembers": [{"squeakId": "abc"}]}},
        {"team": {"teamMembers": [{"squeakId": 1, "teams": [{"id": 1}]}]}},
        {"team": {"teamMembers": [{"squeakId": 1, "leadTeams": {"data": ["Team Map"]}}]}},
        {"team": {"teamMembers": [{"squeakId": [1]}]}},
    ],
)
def test_load_raw_team_rejects_malformed_payloads(tmp_path: Path, payload):
    path = tmp_path / "team.json"
    write_json(path, payload)

    with pytest.raises(InputError):
        load_raw_team(path)
