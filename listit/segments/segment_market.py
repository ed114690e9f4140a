from __future__ import annotations

import math

from flask import Blueprint, current_app, jsonify, request

from listit.extensions import db
from listit.models import Listing, ListingImage
from listit.services.city_matching import DEFAULT_MAX_EDIT_DISTANCE
from listit.services.listing_search import known_cities, search_listings, sort_listings, SORT_KEYS
from listit.utils.auth import current_user, is_admin, is_owner
from listit.utils.images import coerce_image_list, validate_images
from listit.utils.text import join_tags, normalize_tags, short_title

market_bp = Blueprint("market_bp", __name__, url_prefix="/api")

MAX_QUERY_LENGTH = 200
MAX_LOCATION_LENGTH = 80
MAX_DESCRIPTION_LENGTH = 400


def _query_arg(name: str, limit: int) -> str:
    return str(request.args.get(name) or "").strip()[:limit]


def _max_distance() -> int:
    try:
        return int(current_app.config.get("LOCATION_MATCH_MAX_DISTANCE", DEFAULT_MAX_EDIT_DISTANCE))
    except (TypeError, ValueError):
        return DEFAULT_MAX_EDIT_DISTANCE


def _parse_price(raw) -> float | None:
    # bool is an int subclass; "true" is not a price.
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    value = float(raw)
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _replace_images(listing: Listing, images: list[str]) -> None:
    listing.images = [ListingImage(image_data=img, position=i) for i, img in enumerate(images)]
    listing.image_data = images[0]


@market_bp.get("/listings")
def list_listings():
    q = _query_arg("q", MAX_QUERY_LENGTH)
    loc = _query_arg("loc", MAX_LOCATION_LENGTH)
    sort_key = _query_arg("sort", 20).lower() or "new"
    if sort_key not in SORT_KEYS:
        return jsonify({"message": f"sort must be one of: {', '.join(SORT_KEYS)}"}), 400

    mine = str(request.args.get("mine") or "").strip() == "1"
    owner_id = None
    if mine:
        u = current_user()
        if not u:
            return jsonify({"message": "Not authenticated"}), 401
        owner_id = int(u.id)

    rows = search_listings(q, loc, owner_id=owner_id, max_distance=_max_distance())
    rows = sort_listings(rows, sort_key)
    return jsonify([row.to_dict(include_private=mine) for row in rows]), 200


@market_bp.get("/cities")
def list_cities():
    return jsonify(sorted(known_cities(), key=lambda c: (c.lower(), c))), 200


@market_bp.post("/listings")
def create_listing():
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    images = coerce_image_list(data.get("images"), data.get("image_data"))
    err = validate_images(images)
    if err:
        return jsonify({"message": err}), 400

    description = str(data.get("description") or "").strip()
    location = str(data.get("location") or "").strip()
    price = _parse_price(data.get("price"))
    if not description or not location or price is None:
        return jsonify({"message": "Missing fields"}), 400

    listing = Listing(
        user_id=int(u.id),
        title=short_title(data.get("title")) or short_title(description),
        description=description[:MAX_DESCRIPTION_LENGTH],
        location=location[:MAX_LOCATION_LENGTH],
        price=price,
        tags=join_tags(normalize_tags(data.get("tags"))),
    )
    _replace_images(listing, images)
    db.session.add(listing)
    db.session.commit()
    current_app.logger.info("listing_created listing_id=%s user_id=%s images=%s", listing.id, u.id, len(images))
    return jsonify(listing.to_dict(include_private=True)), 201


@market_bp.put("/listings/<int:listing_id>")
def update_listing(listing_id: int):
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401
    listing = db.session.get(Listing, int(listing_id))
    if not listing:
        return jsonify({"message": "Not found"}), 404
    if not is_admin(u) and not is_owner(u, listing.user_id):
        return jsonify({"message": "Not your listing"}), 403

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}

    if data.get("images") or data.get("image_data"):
        images = coerce_image_list(data.get("images"), data.get("image_data"))
        err = validate_images(images)
        if err:
            return jsonify({"message": err}), 400
        _replace_images(listing, images)

    if "title" in data:
        listing.title = short_title(data.get("title"))
    description = str(data.get("description") or "").strip()
    if description:
        listing.description = description[:MAX_DESCRIPTION_LENGTH]
    location = str(data.get("location") or "").strip()
    if location:
        listing.location = location[:MAX_LOCATION_LENGTH]
    price = _parse_price(data.get("price"))
    if price is not None:
        listing.price = price
    if "tags" in data:
        listing.tags = join_tags(normalize_tags(data.get("tags")))

    db.session.commit()
    return jsonify(listing.to_dict(include_private=True)), 200


@market_bp.delete("/listings/<int:listing_id>")
def delete_listing(listing_id: int):
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401
    listing = db.session.get(Listing, int(listing_id))
    if not listing:
        return jsonify({"message": "Not found"}), 404
    if not is_admin(u) and not is_owner(u, listing.user_id):
        return jsonify({"message": "Not your listing"}), 403
    db.session.delete(listing)
    db.session.commit()
    return jsonify({"ok": True}), 200


@market_bp.get("/listings/<int:listing_id>/images")
def listing_images(listing_id: int):
    rows = (
        ListingImage.query.filter_by(listing_id=int(listing_id))
        .order_by(ListingImage.position.asc(), ListingImage.id.asc())
        .all()
    )
    return jsonify([row.image_data for row in rows]), 200
