from __future__ import annotations

import os
import subprocess
from functools import lru_cache
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.util import CommandError

REPO_ROOT = Path(__file__).resolve().parents[2]
MIGRATIONS_DIR = REPO_ROOT / "migrations"


@lru_cache(maxsize=1)
def alembic_head() -> str:
    """Newest revision shipped in migrations/versions, or "unknown"."""
    cfg = Config(str(MIGRATIONS_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    try:
        heads = ScriptDirectory.from_config(cfg).get_heads()
    except (CommandError, OSError):
        return "unknown"
    return heads[0] if heads else "unknown"


@lru_cache(maxsize=1)
def git_sha() -> str:
    for key in ("GIT_SHA", "SOURCE_VERSION"):
        value = (os.getenv(key) or "").strip()
        if value:
            return value
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=str(REPO_ROOT),
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError):
        return "unknown"
    return out.decode().strip() or "unknown"
