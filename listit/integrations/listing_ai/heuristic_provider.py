from __future__ import annotations

from listit.integrations.listing_ai.base import ListingSuggester, ListingSuggestion
from listit.utils.text import fallback_tags, short_title


class HeuristicListingSuggester(ListingSuggester):
    """Offline suggester: title from the hint, tags from word frequency."""

    name = "heuristic"

    def suggest(self, *, images: list[str], hint: str = "") -> ListingSuggestion:
        title = short_title(hint or "Item for sale")
        return ListingSuggestion(ok=True, code="OK", title=title, tags=fallback_tags(title, hint), price_usd=None)
