from __future__ import annotations

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError

from listit.extensions import db
from listit.models import Conversation, Listing, Message, MessageImage, User
from listit.utils.auth import current_user
from listit.utils.images import MAX_MESSAGE_IMAGES, validate_images

conversations_bp = Blueprint("conversations_bp", __name__, url_prefix="/api/conversations")

MAX_MESSAGE_LENGTH = 2000


def _as_int(value) -> int | None:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _find_conversation(a: int, b: int, listing_id: int | None) -> Conversation | None:
    q = Conversation.query.filter_by(a_user_id=a, b_user_id=b)
    if listing_id is None:
        q = q.filter(Conversation.listing_id.is_(None))
    else:
        q = q.filter(Conversation.listing_id == listing_id)
    return q.first()


def _summary(c: Conversation, me: int) -> dict:
    other_id = c.other_user_id(me)
    other = db.session.get(User, other_id)
    listing = db.session.get(Listing, int(c.listing_id)) if c.listing_id is not None else None
    last = Message.query.filter_by(conversation_id=int(c.id)).order_by(Message.id.desc()).first()
    return {
        "id": int(c.id),
        "listing_id": int(c.listing_id) if c.listing_id is not None else None,
        "other_user_id": other_id,
        "other_user_username": (other.username or "") if other else "",
        "listing_description": listing.description if listing else None,
        "last_message_id": int(last.id) if last else None,
        "last_message_body": last.body if last else None,
        "last_message_sender_id": int(last.sender_id) if last else None,
        "last_message_at": last.created_at.isoformat() if last and last.created_at else None,
    }


def _member_conversation(conversation_id: int, u: User):
    c = db.session.get(Conversation, int(conversation_id))
    if not c:
        return None, (jsonify({"message": "Not found"}), 404)
    if not c.has_member(int(u.id)):
        return None, (jsonify({"message": "Forbidden"}), 403)
    return c, None


@conversations_bp.post("")
def open_conversation():
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    with_user_id = _as_int(data.get("with_user_id"))
    listing_id = _as_int(data.get("listing_id"))
    if with_user_id is None and listing_id is None:
        return jsonify({"message": "with_user_id or listing_id required"}), 400

    if listing_id is not None:
        listing = db.session.get(Listing, listing_id)
        if not listing:
            return jsonify({"message": "Listing not found"}), 404
        if with_user_id is None:
            with_user_id = int(listing.user_id)

    if with_user_id == int(u.id):
        return jsonify({"message": "Cannot message yourself"}), 400
    if db.session.get(User, with_user_id) is None:
        return jsonify({"message": "User not found"}), 404

    a, b = sorted((int(u.id), with_user_id))
    existing = _find_conversation(a, b, listing_id)
    if existing:
        return jsonify(existing.to_dict()), 200

    c = Conversation(a_user_id=a, b_user_id=b, listing_id=listing_id)
    db.session.add(c)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = _find_conversation(a, b, listing_id)
        if existing is None:
            raise
        return jsonify(existing.to_dict()), 200
    return jsonify(c.to_dict()), 201


@conversations_bp.get("")
def list_conversations():
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401
    me = int(u.id)
    rows = (
        Conversation.query.filter((Conversation.a_user_id == me) | (Conversation.b_user_id == me))
        .order_by(Conversation.id.desc())
        .all()
    )
    return jsonify([_summary(c, me) for c in rows]), 200


@conversations_bp.get("/<int:conversation_id>/messages")
def list_messages(conversation_id: int):
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401
    c, err = _member_conversation(conversation_id, u)
    if err:
        return err
    rows = Message.query.filter_by(conversation_id=int(c.id)).order_by(Message.id.asc()).all()
    return jsonify([m.to_dict() for m in rows]), 200


@conversations_bp.post("/<int:conversation_id>/messages")
def send_message(conversation_id: int):
    u = current_user()
    if not u:
        return jsonify({"message": "Not authenticated"}), 401

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    body = str(data.get("body") or "").strip()
    images = data.get("images") or []
    err = validate_images(images, max_count=MAX_MESSAGE_IMAGES, required=False)
    if err:
        return jsonify({"message": err}), 400
    if not body and not images:
        return jsonify({"message": "Message body required"}), 400

    c, err = _member_conversation(conversation_id, u)
    if err:
        return err

    m = Message(conversation_id=int(c.id), sender_id=int(u.id), body=body[:MAX_MESSAGE_LENGTH])
    m.images = [MessageImage(image_data=img, position=i) for i, img in enumerate(images)]
    db.session.add(m)
    db.session.commit()
    return jsonify(m.to_dict()), 201
