"""Filesystem helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from teammap.common.errors import InputError


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload) -> None:
    ensure_dir(path.parent)
    tmp_path = path.with_name(f"{path.name}.tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")
    tmp_path.replace(path)


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def read_json_input(path: Path, description: str) -> Any:
    """Read a stage input, mapping I/O and parse failures to ``InputError``."""
    try:
        return read_json(path)
    except FileNotFoundError as exc:
        raise InputError(f"{description} not found: {path}") from exc
    except OSError as exc:
        raise InputError(f"Could not read {description} at {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Could not parse {description} at {path}: {exc}") from exc
