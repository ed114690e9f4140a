from __future__ import annotations

import requests

from listit.integrations.geocoding.base import GeocodeResult, ReverseGeocoder, format_display


# US states come back as full names; listings use the postal code.
_US_STATE_CODES = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR", "California": "CA",
    "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE", "District of Columbia": "DC",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID", "Illinois": "IL",
    "Indiana": "IN", "Iowa": "IA", "Kansas": "KS", "Kentucky": "KY", "Louisiana": "LA",
    "Maine": "ME", "Maryland": "MD", "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN",
    "Mississippi": "MS", "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK", "Oregon": "OR",
    "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC", "South Dakota": "SD",
    "Tennessee": "TN", "Texas": "TX", "Utah": "UT", "Vermont": "VT", "Virginia": "VA",
    "Washington": "WA", "West Virginia": "WV", "Wisconsin": "WI", "Wyoming": "WY",
}

_CITY_KEYS = ("city", "town", "village", "borough", "suburb", "hamlet", "municipality", "county")


def _pick_city(address: dict) -> str:
    for key in _CITY_KEYS:
        value = (address.get(key) or "").strip()
        if value:
            return value
    return ""


def _pick_region(address: dict) -> str:
    state = (address.get("state") or "").strip()
    if (address.get("country_code") or "").lower() == "us":
        return _US_STATE_CODES.get(state, state)
    return state or (address.get("country") or "").strip()


class NominatimReverseGeocoder(ReverseGeocoder):
    name = "nominatim"

    def __init__(self, *, base_url: str, user_agent: str, timeout_seconds: int = 8):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds

    def reverse(self, *, lat: float, lon: float) -> GeocodeResult:
        try:
            r = requests.get(
                f"{self.base_url}/reverse",
                params={"lat": lat, "lon": lon, "format": "jsonv2", "addressdetails": 1, "zoom": 10},
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
        except requests.Timeout:
            return GeocodeResult(ok=False, code="GEOCODER_DOWN", message="timeout")
        except requests.RequestException as e:
            return GeocodeResult(ok=False, code="GEOCODER_DOWN", message=str(e)[:200])

        if not (200 <= r.status_code < 300):
            return GeocodeResult(ok=False, code="GEOCODER_HTTP_ERROR", message=f"http_{r.status_code}")
        try:
            data = r.json()
        except ValueError:
            return GeocodeResult(ok=False, code="GEOCODER_BAD_RESPONSE", message="invalid json")
        if not isinstance(data, dict) or data.get("error"):
            return GeocodeResult(ok=False, code="GEOCODER_NOT_FOUND", message=str((data or {}).get("error") or "")[:200])

        address = data.get("address") or {}
        city = _pick_city(address)
        region = _pick_region(address)
        if not city and not region:
            return GeocodeResult(ok=False, code="GEOCODER_NOT_FOUND", message="no locality")
        return GeocodeResult(ok=True, display=format_display(city, region), city=city, region=region, code="OK")
