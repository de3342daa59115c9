"""
Linki do bramek-lustra (portali), np. https://njump.me/<nip19>.

Dla zdarzenia bez wcześniej rozwiązanej encji kolejność kodowania jest stała:
  1. kind 30023 z niepustym tagiem "d" → naddr
  2. w przeciwnym razie                → nevent
Oba warianty z podpowiedziami relayów autora (best effort, [] przy błędzie).
Gdy oba kodowania zawiodą — brak linków; wołający używa /note/<id>.
"""
from __future__ import annotations

import logging
from typing import Optional

from adapters.entity_resolver import dedup_entities, encode_address, encode_event
from adapters.text_utils import single_line
from contracts import KIND_LONG_FORM, Event, LookupContext, ResolvedEntity
from errors import EncodeError
from ports.event_store import EventStore

logger = logging.getLogger("nostrgem.portal")

DEFAULT_PORTALS = ("https://njump.me", "https://nostr.at", "https://nostr.eu")


class PortalLinkGenerator:
    def __init__(self, store: EventStore, portal_urls: Optional[list[str]] = None) -> None:
        self._store = store
        portals = DEFAULT_PORTALS if portal_urls is None else portal_urls
        self._portals = tuple(url.rstrip("/") for url in portals if url.strip())

    @property
    def portals(self) -> tuple[str, ...]:
        return self._portals

    def links_for_entity(self, entity: ResolvedEntity) -> list[str]:
        return [f"{base}/{entity.token}" for base in self._portals]

    def links_for_event(self, ctx: LookupContext, event: Event) -> list[str]:
        code = self.pointer_for_event(ctx, event)
        if code is None:
            return []
        return [f"{base}/{code}" for base in self._portals]

    def pointer_for_event(self, ctx: LookupContext, event: Event) -> Optional[str]:
        """Kanoniczny token NIP-19 dla zdarzenia albo None."""
        relays = self._read_relays(ctx, event.pubkey)

        if event.kind == KIND_LONG_FORM:
            identifier = event.tag_value("d")
            if identifier:
                try:
                    return encode_address(event.pubkey, event.kind, identifier, relays)
                except EncodeError as exc:
                    logger.debug("naddr encoding failed for %s: %s", event.id[:8], exc)

        try:
            return encode_event(event.id, relays, event.pubkey)
        except EncodeError as exc:
            logger.debug("nevent encoding failed for %s: %s", event.id[:8], exc)
            return None

    def render_entity_section(self, entities: list[ResolvedEntity]) -> str:
        """Blok "Portal Links": nagłówek encji i po jednej linii => na portal."""
        lines: list[str] = []
        for entity in dedup_entities(entities):
            name = single_line(entity.display_name)
            lines.append(f"* {name} ({entity.entity_type})")
            for url in self.links_for_entity(entity):
                lines.append(f"=> {url} {name}")
            lines.append("")
        return "\n".join(lines)

    def _read_relays(self, ctx: LookupContext, pubkey: str) -> list[str]:
        try:
            return list(self._store.get_read_relays(ctx, pubkey))
        except Exception as exc:
            logger.debug("Read relay lookup failed for %s: %s", pubkey[:8], exc)
            return []
