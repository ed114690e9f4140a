from listit.integrations.geocoding.base import GeocodeResult, ReverseGeocoder
from listit.integrations.geocoding.factory import build_reverse_geocoder

__all__ = ["GeocodeResult", "ReverseGeocoder", "build_reverse_geocoder"]
