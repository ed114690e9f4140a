from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ListingSuggestion:
    ok: bool
    title: str = ""
    tags: list[str] = field(default_factory=list)
    price_usd: float | None = None
    code: str = ""
    message: str = ""


class ListingSuggester:
    name = "unknown"

    def suggest(self, *, images: list[str], hint: str = "") -> ListingSuggestion:
        raise NotImplementedError
