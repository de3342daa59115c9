"""
config.py — Konfiguracja aplikacji przez zmienne środowiskowe.
Wszystkie zmienne mają prefiks NOSTRGEM_.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Bramki-lustra (portale) dla linków do identyfikatorów NIP-19
    portal_urls: list[str] = ["https://njump.me", "https://nostr.at", "https://nostr.eu"]

    # Wątki
    thread_indent: str = "  "
    max_thread_depth: int = 10
    thread_query_limit: int = 500
    show_thread: bool = True

    # Skróty treści
    summary_length: int = 100
    truncate_indicator: str = "..."

    # Gemtext: 0 = bez zawijania linii
    line_width: int = 0

    # Interakcje (agregaty)
    show_interactions: bool = True
    show_replies: bool = True
    show_reactions: bool = True
    show_zaps: bool = True

    # Nagłówek / stopka dokumentów
    header_text: str = ""
    footer_text: str = ""

    # Doradczy deadline dla zapytań do magazynu w obrębie jednego żądania HTTP
    lookup_timeout_ms: int = 2000
    # Liczba wpisów na stronach list (/notes, /articles, /replies)
    list_limit: int = 20

    # Zrzut zdarzeń (JSON lub JSONL) ładowany do InMemoryEventStore
    events_path: str = ""

    # Logging
    log_level: str = "INFO"

    # App
    app_title: str = "Nostrgem"
    app_version: str = "0.1.0"

    model_config = SettingsConfigDict(env_prefix="NOSTRGEM_", env_file=".env", extra="ignore")
