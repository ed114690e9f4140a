from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from listit.extensions import db
from listit.models import User
from listit.utils.auth import TOKEN_COOKIE, current_user
from listit.utils.jwt_utils import access_token_ttl_seconds, create_token

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api")


def _cookie_secure() -> bool:
    return bool(current_app.config.get("IS_PROD"))


def _session_response(u: User, status: int = 200):
    token = create_token(int(u.id))
    body = u.to_dict()
    body["token"] = token
    resp = jsonify(body)
    resp.status_code = status
    resp.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=access_token_ttl_seconds(),
        httponly=True,
        samesite="Lax",
        secure=_cookie_secure(),
        path="/",
    )
    return resp


def _conflict_message(email: str, username: str) -> str | None:
    if User.query.filter_by(email=email).first() is not None:
        return "Email already registered"
    if User.query.filter(db.func.lower(User.username) == username.lower()).first() is not None:
        return "Username already taken"
    return None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    username = str(data.get("username") or data.get("name") or "").strip()
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")

    if not username or not email or not password:
        return jsonify({"message": "Username, email, and password are required"}), 400
    if len(username) < 3 or len(username) > 32:
        return jsonify({"message": "Username must be 3-32 chars"}), 400
    if len(password) < 6:
        return jsonify({"message": "Password must be at least 6 chars"}), 400

    conflict = _conflict_message(email, username)
    if conflict:
        return jsonify({"message": conflict}), 409

    u = User(email=email, username=username, is_admin=False)
    u.set_password(password)
    db.session.add(u)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email/username.
        db.session.rollback()
        return jsonify({"message": "Email or username already registered"}), 409

    current_app.logger.info("user_registered user_id=%s", u.id)
    return _session_response(u, 201)


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")
    if not email or not password:
        return jsonify({"message": "Email and password are required"}), 400

    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return jsonify({"message": "Invalid credentials"}), 401
    return _session_response(u)


@auth_bp.post("/logout")
def logout():
    resp = jsonify({"ok": True})
    resp.delete_cookie(TOKEN_COOKIE, path="/", httponly=True, samesite="Lax", secure=_cookie_secure())
    return resp


@auth_bp.get("/me")
def me():
    u = current_user()
    return jsonify(u.to_dict() if u else None), 200
