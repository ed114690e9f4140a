from __future__ import annotations

import logging

from sqlalchemy import or_

from listit.extensions import db
from listit.models import Listing
from listit.services.city_matching import (
    DEFAULT_MAX_EDIT_DISTANCE,
    candidate_cities,
    city_token,
    match_cities,
    normalize_city_key,
)

logger = logging.getLogger(__name__)

SORT_KEYS = ("new", "price_asc", "price_desc", "city")


def _text_filtered_query(text_query: str, *, owner_id: int | None = None):
    query = Listing.query
    if owner_id is not None:
        query = query.filter(Listing.user_id == int(owner_id))
    needle = (text_query or "").strip().lower()
    if needle:
        query = query.filter(
            or_(
                Listing.title.icontains(needle, autoescape=True),
                Listing.description.icontains(needle, autoescape=True),
                db.func.coalesce(Listing.tags, "").icontains(needle, autoescape=True),
                Listing.location.icontains(needle, autoescape=True),
            )
        )
    return query.order_by(Listing.id.desc())


def known_cities() -> set[str]:
    """Candidate city set: every distinct city token across all stored listings."""
    rows = db.session.query(Listing.location).distinct().all()
    return candidate_cities(location for (location,) in rows)


def search_listings(
    text_query: str = "",
    location_query: str = "",
    *,
    owner_id: int | None = None,
    max_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
) -> list[Listing]:
    """Text search narrowed to listings whose city fuzzy-matches ``location_query``.

    The city vocabulary is global (not scoped by the text query or owner). A
    location query that matches no known city yields an empty result rather
    than falling back to the unfiltered rows.
    """
    rows = _text_filtered_query(text_query, owner_id=owner_id).all()

    loc = (location_query or "").strip()
    if not loc:
        return rows

    cities = known_cities()
    matched = match_cities(cities, loc, max_distance=max_distance)
    logger.info(
        "location_filter_applied loc=%r known_cities=%s matched=%s",
        loc,
        len(cities),
        len(matched),
    )
    if not matched:
        return []

    matched_keys = {normalize_city_key(c) for c in matched}
    return [row for row in rows if normalize_city_key(city_token(row.location)) in matched_keys]


def sort_listings(rows: list[Listing], sort_key: str = "new") -> list[Listing]:
    key = (sort_key or "new").strip().lower()
    if key == "price_asc":
        return sorted(rows, key=lambda r: (float(r.price or 0.0), -int(r.id)))
    if key == "price_desc":
        return sorted(rows, key=lambda r: (-float(r.price or 0.0), -int(r.id)))
    if key == "city":
        return sorted(rows, key=lambda r: ((r.location or "").lower(), -int(r.id)))
    return sorted(rows, key=lambda r: int(r.id), reverse=True)
