from __future__ import annotations

from listit.integrations.geocoding.base import GeocodeResult, ReverseGeocoder, format_display


class MockReverseGeocoder(ReverseGeocoder):
    """Deterministic geocoder for local runs and tests; never leaves the process."""

    name = "mock"

    def reverse(self, *, lat: float, lon: float) -> GeocodeResult:
        city = "Brooklyn" if lat >= 0 else "Hobart"
        region = "NY" if lat >= 0 else "TAS"
        return GeocodeResult(ok=True, display=format_display(city, region), city=city, region=region, code="OK")
