from __future__ import annotations

from flask import g, request

from listit.extensions import db
from listit.models import User
from listit.utils.jwt_utils import get_bearer_token, user_id_from_token

TOKEN_COOKIE = "token"


def request_token() -> str | None:
    """Bearer header wins; the http-only ``token`` cookie is the browser fallback."""
    token = get_bearer_token(request.headers.get("Authorization", ""))
    if token:
        return token
    return (request.cookies.get(TOKEN_COOKIE) or "").strip() or None


def current_user() -> User | None:
    uid = getattr(g, "auth_user_id", None)
    if uid is None:
        uid = user_id_from_token(request_token())
    if uid is None:
        return None
    return db.session.get(User, int(uid))


def is_admin(u: User | None) -> bool:
    return bool(u is not None and getattr(u, "is_admin", False))


def is_owner(u: User | None, owner_id: int | None) -> bool:
    if u is None or owner_id is None:
        return False
    return int(u.id) == int(owner_id)
