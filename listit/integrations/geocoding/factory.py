from __future__ import annotations

import os

from listit.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from listit.integrations.geocoding.base import ReverseGeocoder
from listit.integrations.geocoding.mock_provider import MockReverseGeocoder
from listit.integrations.geocoding.nominatim_provider import NominatimReverseGeocoder


def build_reverse_geocoder() -> ReverseGeocoder:
    provider = (os.getenv("GEOCODER_PROVIDER") or "nominatim").strip().lower()
    if provider == "disabled":
        raise IntegrationDisabledError("INTEGRATION_DISABLED:geocoder")
    if provider == "mock":
        return MockReverseGeocoder()
    if provider != "nominatim":
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:unknown geocoder {provider}")

    base_url = (os.getenv("NOMINATIM_URL") or "https://nominatim.openstreetmap.org").strip()
    # Nominatim's usage policy rejects requests without an identifying agent.
    user_agent = (os.getenv("GEOCODER_USER_AGENT") or "listit-backend/1.0").strip()
    return NominatimReverseGeocoder(base_url=base_url, user_agent=user_agent)
