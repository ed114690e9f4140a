from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from listit.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from listit.integrations.listing_ai import ListingSuggestion, build_listing_suggester
from listit.integrations.listing_ai.heuristic_provider import HeuristicListingSuggester
from listit.utils.auth import current_user
from listit.utils.rate_limit import rate_limit
from listit.utils.text import fallback_tags, normalize_tags, short_title

ai_bp = Blueprint("ai_bp", __name__, url_prefix="/api/ai")

MAX_ANALYZE_IMAGES = 3
MAX_HINT_LENGTH = 200
MIN_PROVIDER_TAGS = 8
MIN_PRICE = 1.0
MAX_PRICE = 100000.0


def _clamp_price(value: float | None) -> float | None:
    if value is None:
        return None
    value = min(max(float(value), MIN_PRICE), MAX_PRICE)
    return round(value, 2)


def _suggest(images: list[str], hint: str) -> ListingSuggestion:
    try:
        suggester = build_listing_suggester()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.warning("listing_ai_unavailable reason=%s", e)
        suggester = HeuristicListingSuggester()

    result = suggester.suggest(images=images, hint=hint)
    if result.ok or suggester.name == HeuristicListingSuggester.name:
        return result
    current_app.logger.warning(
        "listing_ai_provider_failed provider=%s code=%s message=%s",
        suggester.name,
        result.code,
        result.message,
    )
    return HeuristicListingSuggester().suggest(images=images, hint=hint)


@ai_bp.post("/analyze")
@rate_limit("ai_analyze", per_seconds=60, limit=10, scope="user")
def analyze():
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    images = data.get("images")
    images = [img for img in images if isinstance(img, str)][:MAX_ANALYZE_IMAGES] if isinstance(images, list) else []
    hint = str(data.get("hint") or "")[:MAX_HINT_LENGTH]
    if not images:
        return jsonify({"message": "No images provided"}), 400

    result = _suggest(images, hint)
    title = short_title(result.title) or "Item for sale"
    tags = normalize_tags(result.tags)
    if len(tags) < MIN_PROVIDER_TAGS:
        tags = normalize_tags(tags + fallback_tags(title, hint))

    return jsonify({"title": title, "tags": tags, "suggested_price": _clamp_price(result.price_usd)}), 200
