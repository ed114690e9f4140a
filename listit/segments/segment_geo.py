from __future__ import annotations

import math

from flask import Blueprint, current_app, jsonify, request

from listit.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from listit.integrations.geocoding import build_reverse_geocoder
from listit.utils.rate_limit import rate_limit

geo_bp = Blueprint("geo_bp", __name__, url_prefix="/api/geo")


def _coordinate(name: str, bound: float) -> float | None:
    raw = str(request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if math.isnan(value) or abs(value) > bound:
        return None
    return value


@geo_bp.get("/reverse")
@rate_limit("geo_reverse", per_seconds=60, limit=30, scope="ip")
def reverse():
    lat = _coordinate("lat", 90.0)
    lon = _coordinate("lon", 180.0)
    if lat is None or lon is None:
        return jsonify({"message": "lat and lon must be valid coordinates"}), 400

    try:
        geocoder = build_reverse_geocoder()
    except IntegrationDisabledError:
        return jsonify({"message": "Reverse geocoding is disabled"}), 503
    except IntegrationMisconfiguredError as e:
        current_app.logger.error("geocoder_misconfigured reason=%s", e)
        return jsonify({"message": "Reverse geocoding is unavailable"}), 503

    result = geocoder.reverse(lat=lat, lon=lon)
    if not result.ok:
        current_app.logger.warning(
            "geocoder_failed provider=%s code=%s message=%s",
            geocoder.name,
            result.code,
            result.message,
        )
        return jsonify({"message": "Could not resolve location"}), 502
    return jsonify({"display": result.display, "city": result.city, "region": result.region}), 200
