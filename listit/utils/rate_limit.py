from __future__ import annotations

import os
import threading
import time
from collections import deque
from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, jsonify, request

import redis


DEFAULT_MESSAGE = "Too many requests. Please retry later."


@dataclass(frozen=True)
class Policy:
    name: str
    limit: int
    window_seconds: int


# Tiers applied to every /api/ request by the app-level guard.
AUTH_POLICIES = (
    Policy("auth:minute", 10, 60),
    Policy("auth:hour", 30, 3600),
)
BROWSE_POLICY = Policy("browse", 120, 60)
WRITE_POLICY = Policy("write", 60, 60)


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


class HitLimiter:
    """Per-key hit counting against a limit per window.

    With RATE_LIMIT_REDIS_URL (or REDIS_URL) pointing at a reachable server,
    counters are fixed windows in Redis shared by every worker. Otherwise each
    process keeps a sliding log of hit times per key.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._hits: dict[str, deque] = {}
        self._redis = None
        self._redis_checked = False
        self.stats = {"redis_hits": 0, "redis_errors": 0, "memory_hits": 0}

    @staticmethod
    def redis_url() -> str:
        return (os.getenv("RATE_LIMIT_REDIS_URL") or os.getenv("REDIS_URL") or "").strip()

    def _redis_client(self):
        with self._lock:
            if self._redis_checked:
                return self._redis
            self._redis_checked = True
        url = self.redis_url()
        if not url:
            return None
        try:
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=0.75,
                socket_timeout=0.75,
                health_check_interval=30,
            )
            client.ping()
        except redis.RedisError:
            return None
        with self._lock:
            self._redis = client
        return client

    def _bump(self, stat: str) -> None:
        with self._lock:
            self.stats[stat] += 1

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Record one hit; returns (allowed, retry_after_seconds)."""
        window = max(1, int(window_seconds))
        ceiling = max(1, int(limit))
        now = int(time.time())
        epoch = now // window
        retry_after = max(1, window - (now % window))

        client = self._redis_client()
        if client is not None:
            redis_key = f"rl:v2:{key}:{epoch}"
            try:
                count = int(client.incr(redis_key))
                if count == 1:
                    client.expire(redis_key, window + 1)
                self._bump("redis_hits")
                return (True, 0) if count <= ceiling else (False, retry_after)
            except redis.RedisError:
                self._bump("redis_errors")

        moment = time.monotonic()
        with self._lock:
            log = self._hits.setdefault(key, deque())
            while log and log[0] <= moment - window:
                log.popleft()
            if len(log) >= ceiling:
                self.stats["memory_hits"] += 1
                return False, max(1, int(window - (moment - log[0])))
            log.append(moment)
        return True, 0

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._redis = None
            self._redis_checked = False

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "enabled": rate_limit_enabled(),
                "redis_configured": bool(self.redis_url()),
                "redis_connected": self._redis is not None,
                **{k: int(v) for k, v in self.stats.items()},
            }


limiter = HitLimiter()


def rate_limit_enabled() -> bool:
    return _env_flag("RATE_LIMIT_ENABLED", True)


def limiter_active(app) -> bool:
    if app.config.get("TESTING") and not _env_flag("RATE_LIMIT_IN_TESTS", False):
        return False
    return rate_limit_enabled()


def check_limit(key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    return limiter.hit(key, limit=limit, window_seconds=window_seconds)


def client_ip(req, *, trust_proxy: bool | None = None) -> str:
    if trust_proxy is None:
        trust_proxy = _env_flag("TRUST_PROXY_HEADERS", False)
    if trust_proxy:
        forwarded = (req.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
        if forwarded:
            return forwarded
        real_ip = (req.headers.get("X-Real-IP") or "").strip()
        if real_ip:
            return real_ip
    return (req.remote_addr or "").strip() or "unknown"


def limit_subject(*, user_id: int | None = None, req=None) -> str:
    """Per-user subject when a user id is given, per-IP otherwise."""
    if user_id is not None:
        return f"u:{int(user_id)}"
    return f"ip:{client_ip(req or request)}"


def too_many_requests(retry_after: int, *, message: str = DEFAULT_MESSAGE):
    seconds = max(1, int(retry_after or 1))
    payload = {
        "ok": False,
        "error": "RATE_LIMITED",
        "message": message,
        "status": 429,
        "retry_after": seconds,
    }
    rid = getattr(g, "request_id", "")
    if rid:
        payload["trace_id"] = rid
    resp = jsonify(payload)
    resp.status_code = 429
    resp.headers["Retry-After"] = str(seconds)
    return resp


def enforce(policies, subject: str, *, scope_key: str = "", message: str = DEFAULT_MESSAGE):
    """Apply each policy in turn; returns a 429 response for the first one exceeded."""
    for policy in policies:
        key = f"{policy.name}:{scope_key}:{subject}" if scope_key else f"{policy.name}:{subject}"
        ok, retry_after = check_limit(key, limit=policy.limit, window_seconds=policy.window_seconds)
        if not ok:
            return too_many_requests(retry_after, message=message)
    return None


def rate_limit(key: str, per_seconds: int, limit: int, *, scope: str = "user", message: str = DEFAULT_MESSAGE):
    """Route decorator; ``scope="user"`` falls back to the client IP for anonymous callers."""
    policy = Policy(str(key or "route"), limit, per_seconds)

    def decorator(fn):
        @wraps(fn)
        def wrapped(*args, **kwargs):
            if limiter_active(current_app):
                user_id = getattr(g, "auth_user_id", None) if scope == "user" else None
                blocked = enforce((policy,), limit_subject(user_id=user_id), message=message)
                if blocked is not None:
                    return blocked
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def limiter_stats() -> dict:
    return limiter.snapshot()
