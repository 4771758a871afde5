import json
import logging
from pathlib import Path

import pytest

from teammap.common.errors import InputError
from teammap.common.fs import read_json_input, write_json
from teammap.common.ids import generate_run_id
from teammap.common.logging import JsonLineFormatter, build_logger, log_event
from teammap.common.time_utils import utc_timestamp_z


def test_generate_run_id_prefix():
    assert generate_run_id().startswith("run-")


def test_utc_timestamp_z_suffix():
    assert utc_timestamp_z().endswith("Z")


def test_write_json_is_sorted_and_newline_terminated(tmp_path: Path):
    path = tmp_path / "nested" / "out.json"
    write_json(path, {"b": 1, "a": "é"})

    text = path.read_text(encoding="utf-8")
    assert text.index('"a"') < text.index('"b"')
    assert "é" in text
    assert text.endswith("\n")
    assert not (tmp_path / "nested" / "out.json.tmp").exists()


def test_read_json_input_maps_failures_to_input_error(tmp_path: Path):
    with pytest.raises(InputError, match="raw team file not found"):
        read_json_input(tmp_path / "missing.json", "raw team file")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(InputError, match="Could not parse raw team file"):
        read_json_input(broken, "raw team file")


def test_json_line_formatter_emits_schema_fields():
    record = logging.LogRecord("teammap.test", logging.WARNING, __file__, 1, "hello %s", ("there",), None)
    record.stage = "geocode"
    record.event = "GEOCODE_FAILED"

    payload = json.loads(JsonLineFormatter().format(record))

    assert payload["message"] == "hello there"
    assert payload["stage"] == "geocode"
    assert payload["event"] == "GEOCODE_FAILED"
    assert payload["level"] == "WARNING"
    assert payload["run_id"] is None


def test_build_logger_writes_jsonl_file(tmp_path: Path):
    logger = build_logger("run-log", data_dir=tmp_path, level="DEBUG")
    log_event(logger, "stage start", run_id="run-log", stage="merge", event="STAGE_START", status="ok")
    log_event(logger, "quiet", level=logging.DEBUG)
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "run_meta" / "run-log.log.jsonl").read_text(encoding="utf-8").splitlines()
    first = json.loads(lines[0])
    assert first["event"] == "STAGE_START"
    assert json.loads(lines[1])["level"] == "DEBUG"
