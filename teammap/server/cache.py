"""Load-once caches for the served JSON datasets."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from teammap.common.errors import DatasetUnavailableError, InputError
from teammap.common.fs import read_json_input

T = TypeVar("T")


class DatasetCache(Generic[T]):
    """Read a JSON file on first access and keep the parsed value for the process lifetime.

    The first successful load wins; there is no file watching or invalidation. A
    failed load leaves the cache empty so a later request can try again once the
    file exists.
    """

    def __init__(self, path: Path, name: str, build: Callable[[Any], T]) -> None:
        self.path = path
        self.name = name
        self.build = build
        self._value: T | None = None
        self._loaded = threading.Event()
        self._lock = threading.Lock()
        self.load_count = 0

    @property
    def loaded(self) -> bool:
        return self._loaded.is_set()

    def get(self) -> T:
        if self._loaded.is_set():
            return self._value
        with self._lock:
            if not self._loaded.is_set():
                try:
                    payload = read_json_input(self.path, f"{self.name} data")
                    self._value = self.build(payload)
                except InputError as exc:
                    raise DatasetUnavailableError(f"{self.name.capitalize()} data is unavailable") from exc
                self.load_count += 1
                self._loaded.set()
        return self._value


class TeamDataset:
    def __init__(self, payload: Any) -> None:
        if not isinstance(payload, dict) or not isinstance(payload.get("team"), list):
            raise InputError("Team dataset has no team list")
        if not all(isinstance(member, dict) for member in payload["team"]):
            raise InputError("Team dataset contains a non-object member")
        self.metadata: dict = payload.get("metadata") or {}
        self.team: list[dict] = payload["team"]
        self._by_id = {member.get("id"): member for member in self.team}

    def find(self, member_id: str | int) -> dict | None:
        try:
            key = int(str(member_id).strip())
        except ValueError:
            return None
        return self._by_id.get(key)


def applicant_profile(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise InputError("Applicant profile must be a JSON object")
    return payload
