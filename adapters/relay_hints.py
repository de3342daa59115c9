"""
relay_hints.py - NIP-65 relay list (kind 10002) parsing.

Each "r" tag is one relay; an optional third element restricts it:
"read" drops write, "write" drops read, anything else keeps both.
"""
from __future__ import annotations

from contracts import KIND_RELAY_LIST, Event, RelayHint


def parse_relay_hints(event: Event) -> list[RelayHint]:
    """Extract relay hints from a kind 10002 event. Raises ValueError for other kinds."""
    if event.kind != KIND_RELAY_LIST:
        raise ValueError(f"expected kind {KIND_RELAY_LIST}, got {event.kind}")

    hints: list[RelayHint] = []
    for tag in event.tags:
        if len(tag) < 2 or tag[0] != "r":
            continue
        relay = tag[1].strip()
        if not relay:
            continue

        hint = RelayHint(
            pubkey=event.pubkey,
            relay=relay,
            freshness=event.created_at,
            last_seen_event_id=event.id,
        )
        if len(tag) >= 3:
            marker = tag[2].lower()
            if marker == "read":
                hint.can_write = False
            elif marker == "write":
                hint.can_read = False
        hints.append(hint)
    return hints
