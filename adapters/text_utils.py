"""
text_utils.py - small display helpers shared by the resolver and the renderer.
"""
from __future__ import annotations


def truncate_pubkey(pubkey: str) -> str:
    """First 8 + "..." + last 8 chars; keys of 16 chars or fewer are returned as-is."""
    if len(pubkey) <= 16:
        return pubkey
    return pubkey[:8] + "..." + pubkey[-8:]


def truncate(text: str, max_len: int, indicator: str = "...") -> str:
    """Cut text to max_len characters in total, indicator included."""
    if len(text) <= max_len:
        return text
    keep = max(max_len - len(indicator), 0)
    return text[:keep] + indicator


def short_id(event_id: str, size: int = 8) -> str:
    return event_id[:size]


def single_line(text: str) -> str:
    """Newlines become spaces, CR dropped, outer whitespace trimmed."""
    return text.replace("\r", "").replace("\n", " ").strip()
