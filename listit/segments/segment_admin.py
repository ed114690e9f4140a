from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from listit.extensions import db
from listit.models import Listing, ListingImage
from listit.utils.audit import record_audit_event
from listit.utils.auth import current_user, is_admin

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/admin")


def _require_admin():
    u = current_user()
    if not u:
        return None, (jsonify({"message": "Not authenticated"}), 401)
    if not is_admin(u):
        return None, (jsonify({"message": "Admin only"}), 403)
    return u, None


@admin_bp.delete("/listings/<int:listing_id>")
def admin_delete_listing(listing_id: int):
    u, err = _require_admin()
    if err:
        return err
    listing = db.session.get(Listing, int(listing_id))
    deleted = 0
    if listing is not None:
        db.session.delete(listing)
        deleted = 1
    record_audit_event(
        "admin_listing_deleted",
        actor_user_id=int(u.id),
        listing_id=int(listing_id),
        details={"deleted": deleted},
    )
    db.session.commit()
    return jsonify({"ok": True, "deleted": deleted}), 200


@admin_bp.delete("/listings")
def admin_purge_listings():
    u, err = _require_admin()
    if err:
        return err
    images = ListingImage.query.delete(synchronize_session=False)
    listings = Listing.query.delete(synchronize_session=False)
    record_audit_event(
        "admin_listings_purged",
        actor_user_id=int(u.id),
        details={"listings": listings, "images": images},
    )
    db.session.commit()
    current_app.logger.warning("admin_listings_purged actor=%s listings=%s", u.id, listings)
    return jsonify({"ok": True, "deleted": listings}), 200
