import os
import time
from typing import Optional

import jwt

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 7


def _secret() -> str:
    return os.getenv("SECRET_KEY") or "dev-secret"


def access_token_ttl_seconds() -> int:
    try:
        ttl = int((os.getenv("ACCESS_TOKEN_TTL_SECONDS") or "").strip() or DEFAULT_TTL_SECONDS)
    except ValueError:
        ttl = DEFAULT_TTL_SECONDS
    return max(60, ttl)


def create_token(user_id: int, ttl_seconds: int | None = None) -> str:
    issued = int(time.time())
    ttl = access_token_ttl_seconds() if ttl_seconds is None else int(ttl_seconds)
    claims = {"sub": str(user_id), "typ": TOKEN_TYPE, "iat": issued, "exp": issued + ttl}
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def get_bearer_token(auth_header: str | None) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header value."""
    scheme, _, token = (auth_header or "").strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def user_id_from_token(token: str | None) -> Optional[int]:
    """User id carried by a valid, unexpired access token; None otherwise."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            _secret(),
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError:
        return None
    if claims.get("typ") != TOKEN_TYPE:
        return None
    try:
        return int(claims["sub"])
    except (TypeError, ValueError):
        return None
