"""Approximate matching of a user's location query against known city names.

The vocabulary is closed: callers pass in the distinct city tokens that occur
in stored listings and get back the subset that matches the query. Nothing in
here touches the database, so every function is total over ``str`` input.
"""
from __future__ import annotations

import re
from typing import Iterable

DEFAULT_MAX_EDIT_DISTANCE = 2

_NON_LETTER_RE = re.compile(r"[^a-z]")


def city_token(location: str | None) -> str:
    """City part of a "City, Region" location string ("Queens, NY" -> "Queens")."""
    if not location:
        return ""
    return str(location).split(",", 1)[0].strip()


def normalize_city_key(value: str | None) -> str:
    """Lower-case and keep ASCII letters only ("St. Paul" -> "stpaul")."""
    if not value:
        return ""
    return _NON_LETTER_RE.sub("", str(value).lower())


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance using a single row sized to the shorter string."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    row = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        diag = row[0]
        row[0] = i
        for j, cb in enumerate(b, start=1):
            above = row[j]
            row[j] = min(
                above + 1,
                row[j - 1] + 1,
                diag + (ca != cb),
            )
            diag = above
    return row[-1]


def candidate_cities(locations: Iterable[str | None]) -> set[str]:
    """Distinct non-empty city tokens for a collection of location strings."""
    out: set[str] = set()
    for location in locations:
        token = city_token(location)
        if token:
            out.add(token)
    return out


def _is_match(city: str, city_key: str, query_lower: str, query_key: str, max_distance: int) -> bool:
    if query_lower in city.lower():
        return True
    # An empty query key (no letters in the query) is contained in every city key.
    if query_key in city_key or city_key.startswith(query_key):
        return True
    if abs(len(city_key) - len(query_key)) > max_distance:
        return False
    return edit_distance(city_key, query_key) <= max_distance


def match_cities(
    cities: Iterable[str],
    query: str | None,
    *,
    max_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
) -> set[str]:
    """Subset of ``cities`` that the location ``query`` refers to.

    A city matches when the raw query is a case-insensitive substring of it,
    when the normalized query is contained in (or a prefix of) the normalized
    city, or when the two normalized keys are within ``max_distance`` edits.
    An empty query matches nothing; callers that want "no filter" must not
    call this at all.
    """
    if not query:
        return set()
    query_lower = str(query).lower()
    query_key = normalize_city_key(query)

    matched: set[str] = set()
    for city in cities:
        city_key = normalize_city_key(city)
        if not city_key:
            continue
        if _is_match(city, city_key, query_lower, query_key, max_distance):
            matched.add(city)
    return matched
