"""
Adapter: StaticPresentationLoader
Implementuje port PresentationLoader — stałe teksty nagłówka/stopki z konfiguracji.

Globalny nagłówek/stopka + opcjonalne teksty per strona (home, notes, articles, ...).
Kolejność: nagłówek globalny przed stronowym, stopka stronowa przed globalną.
"""
from __future__ import annotations

from typing import Optional

from config import Settings


class StaticPresentationLoader:
    def __init__(
        self,
        header: str = "",
        footer: str = "",
        page_headers: Optional[dict[str, str]] = None,
        page_footers: Optional[dict[str, str]] = None,
    ) -> None:
        self._header = header
        self._footer = footer
        self._page_headers = page_headers or {}
        self._page_footers = page_footers or {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticPresentationLoader":
        return cls(header=settings.header_text, footer=settings.footer_text)

    def get_header(self, page: str) -> str:
        parts = [self._header, self._page_headers.get(page, "")]
        return "\n\n".join(p for p in parts if p)

    def get_footer(self, page: str) -> str:
        parts = [self._page_footers.get(page, ""), self._footer]
        return "\n\n".join(p for p in parts if p)
