from __future__ import annotations

import json
import os

import requests

from listit.integrations.listing_ai.base import ListingSuggester, ListingSuggestion


OPENAI_BASE = "https://api.openai.com/v1"

_INSTRUCTIONS = "\n".join(
    [
        "You are a listing assistant for a local marketplace.",
        "Analyze the item images and output STRICT JSON with:",
        '"title": concise <=80 chars, no emojis;',
        '"tags": array of 12-24 short, lowercase search terms (generic words users type; '
        'include generic synonyms, e.g., "car" for a Jeep);',
        '"price_usd": fair used-market price in USD as a number (no symbols), based on comparable '
        "items and visible condition; estimate conservatively if unsure.",
        "Return ONLY JSON.",
    ]
)


def _map_openai_error(status: int) -> str:
    if status in (401, 403):
        return "OPENAI_AUTH_FAILED"
    if status == 429:
        return "OPENAI_RATE_LIMITED"
    if status in (400, 413, 422):
        return "OPENAI_BAD_REQUEST"
    return "OPENAI_PROVIDER_DOWN"


def _parse_price(raw) -> float | None:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if value != value:  # NaN
        return None
    return value


class OpenAIListingSuggester(ListingSuggester):
    name = "openai"

    def __init__(self, *, api_key: str, model: str = "gpt-4o-mini", timeout_seconds: int = 30):
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds

    def _payload(self, images: list[str], hint: str) -> dict:
        content: list[dict] = [{"type": "text", "text": _INSTRUCTIONS}]
        if hint:
            content.append({"type": "text", "text": f"User hint: {hint}"})
        for img in images:
            content.append({"type": "image_url", "image_url": {"url": img}})
        return {
            "model": self.model,
            "temperature": 0.2,
            "messages": [{"role": "user", "content": content}],
            "response_format": {"type": "json_object"},
        }

    def suggest(self, *, images: list[str], hint: str = "") -> ListingSuggestion:
        try:
            r = requests.post(
                f"{OPENAI_BASE}/chat/completions",
                json=self._payload(images, hint),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout_seconds,
            )
        except requests.Timeout:
            return ListingSuggestion(ok=False, code="OPENAI_PROVIDER_DOWN", message="timeout")
        except requests.RequestException as e:
            return ListingSuggestion(ok=False, code="OPENAI_PROVIDER_DOWN", message=str(e)[:200])

        if not (200 <= r.status_code < 300):
            return ListingSuggestion(ok=False, code=_map_openai_error(r.status_code), message=f"http_{r.status_code}")

        try:
            body = r.json()
            text = ((body.get("choices") or [{}])[0].get("message") or {}).get("content") or "{}"
            parsed = json.loads(text)
        except (ValueError, AttributeError, IndexError):
            parsed = {}
        if not isinstance(parsed, dict):
            parsed = {}

        tags = parsed.get("tags")
        return ListingSuggestion(
            ok=True,
            code="OK",
            title=str(parsed.get("title") or ""),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            price_usd=_parse_price(parsed.get("price_usd")),
        )


def openai_health() -> dict:
    missing = []
    if not (os.getenv("OPENAI_API_KEY") or "").strip():
        missing.append("OPENAI_API_KEY")
    return {"missing": missing}
