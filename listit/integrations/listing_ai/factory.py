from __future__ import annotations

import os

from listit.integrations.common import IntegrationMisconfiguredError
from listit.integrations.listing_ai.base import ListingSuggester
from listit.integrations.listing_ai.heuristic_provider import HeuristicListingSuggester
from listit.integrations.listing_ai.openai_provider import OpenAIListingSuggester, openai_health


def _provider_name() -> str:
    return (os.getenv("LISTING_AI_PROVIDER") or "heuristic").strip().lower()


def build_listing_suggester() -> ListingSuggester:
    if _provider_name() != "openai":
        return HeuristicListingSuggester()
    api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
    if not api_key:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing OPENAI_API_KEY")
    model = (os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()
    return OpenAIListingSuggester(api_key=api_key, model=model)


def listing_ai_health() -> dict:
    provider = _provider_name()
    if provider != "openai":
        return {"status": "configured", "provider": "heuristic", "missing": []}
    missing = openai_health().get("missing", [])
    return {
        "status": "misconfigured" if missing else "configured",
        "provider": provider,
        "missing": missing,
    }
