from __future__ import annotations

import re
from collections import Counter
from typing import Iterable

MAX_TAGS = 20
MAX_TAG_LENGTH = 32
MAX_TITLE_LENGTH = 80

_TAG_STRIP_RE = re.compile(r"[^a-z0-9 \-]")
_WHITESPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[a-z0-9\-]{3,}")

GENERIC_TAGS = (
    "sale",
    "buy",
    "deal",
    "used",
    "second hand",
    "good",
    "condition",
    "local",
    "pickup",
    "cheap",
    "discount",
    "shop",
    "offer",
)


def normalize_tags(raw: str | Iterable | None) -> list[str]:
    """Lower-case, strip and dedupe tags; accepts a list or a comma string."""
    if not raw:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = list(raw)
    clean: list[str] = []
    seen: set[str] = set()
    for item in items:
        tag = _TAG_STRIP_RE.sub("", str(item).strip().lower()).strip()
        if not tag or len(tag) > MAX_TAG_LENGTH or tag in seen:
            continue
        seen.add(tag)
        clean.append(tag)
        if len(clean) >= MAX_TAGS:
            break
    return clean


def join_tags(tags: Iterable[str]) -> str:
    return ",".join(tags)


def short_title(value) -> str:
    text = _WHITESPACE_RE.sub(" ", str(value or "").strip())[:MAX_TITLE_LENGTH]
    if not text:
        return ""
    return text[0].upper() + text[1:]


def fallback_tags(title: str, hint: str = "") -> list[str]:
    """Most frequent words of title + hint, followed by generic marketplace words."""
    words = _WORD_RE.findall(f"{title or ''} {hint or ''}".lower())[:80]
    ranked = [w for w, _count in Counter(words).most_common(10)]
    merged: list[str] = []
    for word in ranked + list(GENERIC_TAGS):
        if word not in merged:
            merged.append(word)
    return merged[:MAX_TAGS]
