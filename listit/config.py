from __future__ import annotations

import os

from listit.services.city_matching import DEFAULT_MAX_EDIT_DISTANCE

MAX_LOCATION_MATCH_DISTANCE = 5
# Listings carry up to ten base64 images.
MAX_CONTENT_LENGTH = 64 * 1024 * 1024


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def env_int(name: str, default: int, *, minimum: int = 1, maximum: int = 100000) -> int:
    """Integer from the environment, clamped to [minimum, maximum]; junk falls back to default."""
    try:
        value = int(env_str(name) or default)
    except ValueError:
        value = int(default)
    return max(minimum, min(value, maximum))


def env_list(name: str) -> list[str]:
    return [part.strip() for part in env_str(name).split(",") if part.strip()]


def runtime_env() -> str:
    return env_str("LISTIT_ENV", "dev").lower() or "dev"


def database_url(instance_dir: str) -> str:
    url = env_str("SQLALCHEMY_DATABASE_URI") or env_str("DATABASE_URL")
    if url:
        return url
    return "sqlite:///" + os.path.join(instance_dir, "listit.db").replace(os.sep, "/")


def engine_options(url: str) -> dict:
    options = {
        "pool_pre_ping": True,
        "pool_reset_on_return": "rollback",
        "pool_recycle": env_int("DB_POOL_RECYCLE_SECONDS", 1800, minimum=60, maximum=86400),
    }
    if url.startswith("sqlite://"):
        return options
    options["pool_size"] = env_int("DB_POOL_SIZE", 10, minimum=1, maximum=200)
    options["max_overflow"] = env_int("DB_MAX_OVERFLOW", 20, minimum=0, maximum=500)
    options["pool_timeout"] = env_int("DB_POOL_TIMEOUT_SECONDS", 30, minimum=1, maximum=300)
    return options


def cors_origins(is_prod: bool) -> list[str]:
    origins = env_list("CORS_ORIGINS")
    if not origins and not is_prod:
        return ["*"]
    return origins


def check_production_settings() -> None:
    if len(env_str("SECRET_KEY")) < 16:
        raise RuntimeError("SECRET_KEY must be set and at least 16 chars in production")
    if not (env_str("DATABASE_URL") or env_str("SQLALCHEMY_DATABASE_URI")):
        raise RuntimeError("DATABASE_URL (or SQLALCHEMY_DATABASE_URI) must be set in production")


def load_config(instance_dir: str) -> dict:
    """Flask config mapping built from LISTIT_ENV and friends."""
    env = runtime_env()
    is_prod = env in ("prod", "production")
    if is_prod:
        check_production_settings()

    url = database_url(instance_dir)
    return {
        "ENV_NAME": env,
        "IS_PROD": is_prod,
        "SECRET_KEY": os.getenv("SECRET_KEY", "dev-secret"),
        "SQLALCHEMY_DATABASE_URI": url,
        "SQLALCHEMY_ENGINE_OPTIONS": engine_options(url),
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "MAX_CONTENT_LENGTH": MAX_CONTENT_LENGTH,
        "CORS_ORIGINS": cors_origins(is_prod),
        "LOCATION_MATCH_MAX_DISTANCE": env_int(
            "LOCATION_MATCH_MAX_DISTANCE",
            DEFAULT_MAX_EDIT_DISTANCE,
            minimum=0,
            maximum=MAX_LOCATION_MATCH_DISTANCE,
        ),
    }
