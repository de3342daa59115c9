"""
RenderOptions — konfiguracja renderera wyprowadzona z Settings.
Nieprawidłowe wartości są normalizowane do domyślnych, nie odrzucane.
"""
from __future__ import annotations

from pydantic import BaseModel, field_validator

from config import Settings

DEFAULT_MAX_THREAD_DEPTH = 10
DEFAULT_SUMMARY_LENGTH = 100
DEFAULT_INDENT = "  "
DEFAULT_INDICATOR = "..."


class RenderOptions(BaseModel):
    portal_urls: list[str] = ["https://njump.me", "https://nostr.at", "https://nostr.eu"]
    thread_indent: str = DEFAULT_INDENT
    max_thread_depth: int = DEFAULT_MAX_THREAD_DEPTH
    summary_length: int = DEFAULT_SUMMARY_LENGTH
    truncate_indicator: str = DEFAULT_INDICATOR
    line_width: int = 0
    show_thread: bool = True
    show_interactions: bool = True
    show_replies: bool = True
    show_reactions: bool = True
    show_zaps: bool = True

    @field_validator("thread_indent")
    @classmethod
    def _default_indent(cls, v: str) -> str:
        return v or DEFAULT_INDENT

    @field_validator("max_thread_depth")
    @classmethod
    def _default_depth(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_MAX_THREAD_DEPTH

    @field_validator("summary_length")
    @classmethod
    def _default_summary(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_SUMMARY_LENGTH

    @field_validator("truncate_indicator")
    @classmethod
    def _default_indicator(cls, v: str) -> str:
        return v or DEFAULT_INDICATOR

    @classmethod
    def from_settings(cls, settings: Settings) -> "RenderOptions":
        return cls.model_validate(settings.model_dump(include=set(cls.model_fields)))
