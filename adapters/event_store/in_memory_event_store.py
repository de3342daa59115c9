"""
Adapter: InMemoryEventStore
Implementuje porty EventStore i AggregateSource za pomocą słownika in-memory.

Zastosowanie: CLI, API (zrzut JSON/JSONL wczytany przy starcie) i testy.
Semantyka filtra zgodna z NIP-01:
  - każde niepuste pole filtra zawęża wynik (AND),
  - wartości w obrębie pola to alternatywa (OR),
  - tags: {"d": ["x"]} ↔ "#d": ["x"],
  - wynik posortowany od najnowszych, limit 0 = bez limitu.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from adapters.relay_hints import parse_relay_hints
from contracts import (
    KIND_REACTION,
    KIND_RELAY_LIST,
    KIND_TEXT_NOTE,
    KIND_ZAP_RECEIPT,
    Event,
    EventAggregates,
    EventFilter,
    LookupContext,
)
from errors import StorageLookupError

logger = logging.getLogger("nostrgem.event_store")


class InMemoryEventStore:
    """
    Repozytorium zdarzeń trzymane in-memory.
    Zapis tylko przy ładowaniu (add/load); odczyty nie mutują stanu.
    """

    def __init__(self, events: Optional[Iterable[Event]] = None) -> None:
        # id → Event
        self._events: dict[str, Event] = {}
        for event in events or []:
            self.add(event)

    # ── write ─────────────────────────────────────────────────────────────────

    def add(self, event: Event) -> None:
        self._events.setdefault(event.id, event)  # duplikaty ignorowane

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryEventStore":
        """Wczytuje zdarzenia z pliku JSON (lista) albo JSONL (jedno na linię)."""
        raw = Path(path).read_text(encoding="utf-8")
        store = cls()
        stripped = raw.lstrip()
        if stripped.startswith("["):
            records = json.loads(stripped)
        else:
            records = [json.loads(line) for line in raw.splitlines() if line.strip()]

        skipped = 0
        for record in records:
            try:
                store.add(Event.model_validate(record))
            except ValueError as exc:
                skipped += 1
                logger.warning("Pominięto nieprawidłowe zdarzenie: %s", exc)
        logger.info("Loaded %d events from %s (%d skipped)", len(store), path, skipped)
        return store

    def __len__(self) -> int:
        return len(self._events)

    # ── EventStore protocol ───────────────────────────────────────────────────

    def query_events(self, ctx: LookupContext, flt: EventFilter) -> list[Event]:
        ctx.check()
        matched = [e for e in self._events.values() if _matches(e, flt)]
        matched.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        if flt.limit > 0:
            matched = matched[: flt.limit]
        return matched

    def get_read_relays(self, ctx: LookupContext, pubkey: str) -> list[str]:
        try:
            lists = self.query_events(
                ctx, EventFilter(authors=[pubkey], kinds=[KIND_RELAY_LIST], limit=1)
            )
            if not lists:
                return []
            return [h.relay for h in parse_relay_hints(lists[0]) if h.can_read]
        except (StorageLookupError, ValueError) as exc:
            logger.debug("No read relays for %s: %s", pubkey[:8], exc)
            return []

    # ── AggregateSource protocol ──────────────────────────────────────────────

    def get_aggregates(self, ctx: LookupContext, event_id: str) -> Optional[EventAggregates]:
        """Liczy agregaty na bieżąco: odpowiedzi (kind 1), reakcje (7), zapy (9735)."""
        if event_id not in self._events:
            return None
        ctx.check()

        agg = EventAggregates(event_id=event_id)
        for event in self._events.values():
            if event_id not in event.tag_values("e"):
                continue
            if event.kind == KIND_TEXT_NOTE:
                agg.reply_count += 1
            elif event.kind == KIND_REACTION:
                emoji = event.content or "+"
                agg.reaction_total += 1
                agg.reaction_counts[emoji] = agg.reaction_counts.get(emoji, 0) + 1
            elif event.kind == KIND_ZAP_RECEIPT:
                agg.zap_sats_total += _zap_amount_sats(event)
            else:
                continue
            agg.last_interaction = max(agg.last_interaction, event.created_at)
        return agg


def _matches(event: Event, flt: EventFilter) -> bool:
    if flt.ids is not None and event.id not in flt.ids:
        return False
    if flt.authors is not None and event.pubkey not in flt.authors:
        return False
    if flt.kinds is not None and event.kind not in flt.kinds:
        return False
    for name, values in flt.tags.items():
        if not any(v in values for v in event.tag_values(name)):
            return False
    return True


def _zap_amount_sats(receipt: Event) -> int:
    """Kwota zapa z tagu "amount" osadzonego żądania (description), msat → sat."""
    description = receipt.tag_value("description")
    if not description:
        return 0
    try:
        request = json.loads(description)
    except ValueError:
        return 0
    if not isinstance(request, dict):
        return 0
    for tag in request.get("tags") or []:
        if isinstance(tag, list) and len(tag) >= 2 and tag[0] == "amount":
            try:
                return int(tag[1]) // 1000
            except (TypeError, ValueError):
                return 0
    return 0
