from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GeocodeResult:
    ok: bool
    display: str = ""
    city: str = ""
    region: str = ""
    code: str = ""
    message: str = ""


class ReverseGeocoder:
    name = "unknown"

    def reverse(self, *, lat: float, lon: float) -> GeocodeResult:
        raise NotImplementedError


def format_display(city: str, region: str) -> str:
    """"City, Region" as stored on listings; either part may be missing."""
    parts = [p.strip() for p in (city, region) if (p or "").strip()]
    return ", ".join(parts)
