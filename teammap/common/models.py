"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _relation_rows(payload: dict[str, Any], field_name: str) -> tuple[dict[str, Any], ...]:
    relation = payload.get(field_name)
    if not relation:
        return ()
    if not isinstance(relation, dict):
        raise TypeError(f"{field_name} must be an object with a data list")
    rows = relation.get("data") or []
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise TypeError(f"{field_name}.data must be a list of objects")
    return tuple(rows)


@dataclass(frozen=True)
class LocationKey:
    location: str | None
    country: str | None

    def as_string(self) -> str:
        location = "null" if self.location is None else self.location
        country = "null" if self.country is None else self.country
        return f"{location}|{country}"


@dataclass(frozen=True)
class RawTeamRecord:
    squeak_id: int | None
    first_name: str
    last_name: str
    location: str | None
    country: str | None
    company_role: str | None = None
    biography: str | None = None
    avatar_url: str | None = None
    color: str | None = None
    pronouns: str | None = None
    pineapple_on_pizza: bool | None = None
    start_date: str | None = None
    teams: tuple[dict[str, Any], ...] = ()
    lead_teams: tuple[dict[str, Any], ...] = ()

    @property
    def key(self) -> LocationKey:
        return LocationKey(self.location, self.country)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RawTeamRecord":
        avatar = payload.get("avatar")
        avatar_url = avatar.get("url") if isinstance(avatar, dict) else avatar
        squeak_id = payload.get("squeakId")
        return cls(
            squeak_id=int(squeak_id) if squeak_id is not None else None,
            first_name=str(payload.get("firstName") or ""),
            last_name=str(payload.get("lastName") or ""),
            location=_optional_str(payload.get("location")),
            country=_optional_str(payload.get("country")),
            company_role=payload.get("companyRole"),
            biography=payload.get("biography"),
            avatar_url=avatar_url,
            color=payload.get("color"),
            pronouns=payload.get("pronouns"),
            pineapple_on_pizza=payload.get("pineappleOnPizza"),
            start_date=payload.get("startDate"),
            teams=_relation_rows(payload, "teams"),
            lead_teams=_relation_rows(payload, "leadTeams"),
        )


@dataclass
class LocationEntry:
    key: LocationKey
    count: int = 0
    members: list[str] = field(default_factory=list)
    problematic: bool = False


@dataclass(frozen=True)
class Place:
    latitude: float
    longitude: float
    formatted_address: str
    city: str | None = None
    country: str | None = None
    country_code: str | None = None


@dataclass(frozen=True)
class GeocodeResult:
    key: LocationKey
    count: int
    members: tuple[str, ...]
    problematic: bool
    query: str
    success: bool
    lat: float | None = None
    lng: float | None = None
    formatted_address: str | None = None
    city: str | None = None
    country_name: str | None = None
    country_code: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "key": self.key.as_string(),
            "location": self.key.location,
            "country": self.key.country,
            "count": self.count,
            "members": list(self.members),
            "problematic": self.problematic,
            "query": self.query,
            "success": self.success,
        }
        if self.success:
            payload["geocoded"] = {
                "lat": self.lat,
                "lng": self.lng,
                "formatted_address": self.formatted_address,
                "city": self.city,
                "country": self.country_name,
                "country_code": self.country_code,
            }
        else:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "GeocodeResult":
        geocoded = payload.get("geocoded") or {}
        members = payload.get("members") or []
        if not isinstance(geocoded, dict):
            raise TypeError("geocoded must be an object")
        if not isinstance(members, list):
            raise TypeError("members must be a list")
        return cls(
            key=LocationKey(payload.get("location"), payload.get("country")),
            count=int(payload.get("count", 0)),
            members=tuple(members),
            problematic=bool(payload.get("problematic", False)),
            query=payload.get("query", ""),
            success=bool(payload.get("success")) and bool(geocoded),
            lat=geocoded.get("lat"),
            lng=geocoded.get("lng"),
            formatted_address=geocoded.get("formatted_address"),
            city=geocoded.get("city"),
            country_name=geocoded.get("country"),
            country_code=geocoded.get("country_code"),
            error=payload.get("error"),
        )


@dataclass(frozen=True)
class VerificationMismatch:
    original: str | None
    original_country: str | None
    coordinates: str
    reverse_geocoded_to: str
    members_affected: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
