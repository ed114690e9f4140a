from listit.integrations.listing_ai.base import ListingSuggestion, ListingSuggester
from listit.integrations.listing_ai.factory import build_listing_suggester

__all__ = ["ListingSuggestion", "ListingSuggester", "build_listing_suggester"]
