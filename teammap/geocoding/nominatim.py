"""Forward and reverse geocoding against the OpenStreetMap Nominatim API."""

from __future__ import annotations

from typing import Any, Protocol

from teammap.common.errors import GeocodeError
from teammap.common.http import HttpClient, RetryConfig, TimeoutConfig
from teammap.common.models import Place

CITY_ADDRESS_FIELDS = ("city", "town", "village", "municipality", "hamlet", "county", "state")


class Geocoder(Protocol):
    def geocode(self, query: str) -> list[Place]: ...

    def reverse(self, lat: float, lon: float) -> list[Place]: ...


def _city_from_address(address: dict[str, Any]) -> str | None:
    for field in CITY_ADDRESS_FIELDS:
        value = address.get(field)
        if value:
            return str(value)
    return None


def parse_place(item: dict[str, Any]) -> Place:
    try:
        latitude = float(item["lat"])
        longitude = float(item["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodeError(f"Malformed Nominatim result: {exc}") from exc

    address = item.get("address") or {}
    country_code = address.get("country_code")
    return Place(
        latitude=latitude,
        longitude=longitude,
        formatted_address=str(item.get("display_name") or ""),
        city=_city_from_address(address),
        country=address.get("country"),
        country_code=country_code.upper() if country_code else None,
    )


class NominatimGeocoder:
    def __init__(
        self,
        endpoint: str,
        *,
        http_client: HttpClient | None = None,
        result_limit: int = 1,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.http_client = http_client or HttpClient()
        self.result_limit = result_limit

    @classmethod
    def from_config(cls, cfg: dict) -> "NominatimGeocoder":
        geocoder_cfg = cfg["geocoder"]
        timeout = float(geocoder_cfg["timeout_seconds"])
        client = HttpClient(
            timeout=TimeoutConfig(connect=timeout, read=timeout),
            retry=RetryConfig(max_attempts=int(geocoder_cfg["max_attempts"])),
        )
        return cls(
            geocoder_cfg["endpoint"],
            http_client=client,
            result_limit=int(geocoder_cfg["result_limit"]),
        )

    def close(self) -> None:
        self.http_client.close()

    def geocode(self, query: str) -> list[Place]:
        payload = self.http_client.get_json(
            f"{self.endpoint}/search",
            params={
                "q": query,
                "format": "jsonv2",
                "addressdetails": 1,
                "limit": self.result_limit,
            },
        )
        if not isinstance(payload, list):
            raise GeocodeError(f"Unexpected Nominatim search payload for {query!r}")
        return [parse_place(item) for item in payload]

    def reverse(self, lat: float, lon: float) -> list[Place]:
        payload = self.http_client.get_json(
            f"{self.endpoint}/reverse",
            params={
                "lat": lat,
                "lon": lon,
                "format": "jsonv2",
                "addressdetails": 1,
            },
        )
        if not isinstance(payload, dict):
            raise GeocodeError(f"Unexpected Nominatim reverse payload for {lat}, {lon}")
        # Nominatim answers 200 with an error body when nothing is near the point.
        if "error" in payload:
            return []
        return [parse_place(payload)]
