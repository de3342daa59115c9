"""
Formatowanie wartości pokazywanych w dokumentach: czas względny, saty, skróty treści.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

from adapters.text_utils import single_line, truncate

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_YEAR = 365 * _DAY


def format_timestamp(created_at: int, now: Optional[float] = None) -> str:
    """Czas względny ("3 hours ago"); starsze niż rok → "YYYY-MM-DD HH:MM" (UTC)."""
    current = time.time() if now is None else now
    diff = current - created_at

    if diff < _MINUTE:
        return "just now"
    if diff < _HOUR:
        return _plural(int(diff // _MINUTE), "minute")
    if diff < _DAY:
        return _plural(int(diff // _HOUR), "hour")
    if diff < _WEEK:
        return _plural(int(diff // _DAY), "day")
    if diff < _YEAR:
        return _plural(int(diff // _WEEK), "week")

    return datetime.fromtimestamp(created_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _plural(n: int, unit: str) -> str:
    return f"1 {unit} ago" if n == 1 else f"{n} {unit}s ago"


def format_sats(sats: int) -> str:
    if sats == 0:
        return "0 sats"
    if sats < 1000:
        return f"{sats} sats"
    if sats < 1_000_000:
        return f"{sats / 1000:.1f}K sats"
    return f"{sats / 1_000_000:.2f}M sats"


def summarize(content: str, limit: int, indicator: str) -> str:
    """Jedna linia, ucięta do `limit` znaków łącznie ze wskaźnikiem obcięcia."""
    return truncate(single_line(content), limit, indicator)
