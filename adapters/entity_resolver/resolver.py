"""
Adapter: Nip19EntityResolver
Implementuje port EntityResolver — identyfikatory nostr: (NIP-19) → ResolvedEntity.

Pipeline per token:
  1. nip19.decode(token)             — DecodeError / UnsupportedVariantError
  2. ścieżka linku z typu wskaźnika  — /profile, /note, /addr
  3. nazwa wyświetlana: zapytanie do EventStore, potem deterministyczny fallback

Błędy magazynu nigdy nie wychodzą poza resolver — degradują do etykiety
zastępczej (skrócony pubkey, "Note abcdef12...", "{d} by {pubkey}").
Brak retry i brak własnych timeoutów: liczy się tylko LookupContext wołającego.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from adapters.text_utils import short_id, single_line, truncate, truncate_pubkey
from contracts import (
    KIND_LONG_FORM,
    KIND_METADATA,
    KIND_TEXT_NOTE,
    AddressPointer,
    Event,
    EventFilter,
    EventPointer,
    LookupContext,
    NotePointer,
    ProfilePointer,
    PubkeyPointer,
    ResolvedEntity,
)
from errors import ResolutionError, StorageLookupError
from ports.entity_resolver import EntityFormatter
from ports.event_store import EventStore

from . import nip19
from .scanner import SCHEME, NOSTR_ENTITY_RE, scan

logger = logging.getLogger("nostrgem.resolver")

NOTE_TITLE_MAX = 40

# Priorytet pól metadanych profilu (kind 0)
_PROFILE_NAME_FIELDS = ("display_name", "name", "nip05")


# ── formattery ───────────────────────────────────────────────────────────────


def plain_text_formatter(entity: ResolvedEntity) -> str:
    return entity.display_name


def link_label_formatter(entity: ResolvedEntity) -> str:
    return f"{entity.display_name} ({entity.link})"


def identity_formatter(entity: ResolvedEntity) -> str:
    return entity.original_text


def dedup_entities(entities: list[ResolvedEntity]) -> list[ResolvedEntity]:
    """Usuwa duplikaty po original_text, zachowując kolejność pierwszego wystąpienia."""
    seen: set[str] = set()
    unique: list[ResolvedEntity] = []
    for entity in entities:
        if entity.original_text in seen:
            continue
        seen.add(entity.original_text)
        unique.append(entity)
    return unique


class Nip19EntityResolver:
    """
    Resolver identyfikatorów NIP-19 oparty na porcie EventStore.
    Bezstanowy poza referencją do store — bezpieczny dla równoległych renderów.
    """

    def __init__(self, store: EventStore) -> None:
        self._store = store

    # ── EntityResolver protocol ───────────────────────────────────────────────

    def find_entities(self, text: str) -> list[str]:
        return scan(text)

    def resolve(self, ctx: LookupContext, token: str) -> ResolvedEntity:
        """Rozwiązuje pojedynczy goły token (bez "nostr:")."""
        pointer = nip19.decode(token)
        original = SCHEME + token

        if isinstance(pointer, PubkeyPointer):
            return ResolvedEntity(
                entity_type="npub",
                display_name=self._pubkey_name(ctx, pointer.pubkey),
                link=f"/profile/{pointer.pubkey}",
                original_text=original,
            )
        if isinstance(pointer, ProfilePointer):
            return ResolvedEntity(
                entity_type="nprofile",
                display_name=self._pubkey_name(ctx, pointer.pubkey),
                link=f"/profile/{pointer.pubkey}",
                original_text=original,
            )
        if isinstance(pointer, NotePointer):
            return ResolvedEntity(
                entity_type="note",
                display_name=self._note_title(ctx, pointer.event_id),
                link=f"/note/{pointer.event_id}",
                original_text=original,
            )
        if isinstance(pointer, EventPointer):
            return ResolvedEntity(
                entity_type="nevent",
                display_name=self._note_title(ctx, pointer.event_id),
                link=f"/note/{pointer.event_id}",
                original_text=original,
            )
        if isinstance(pointer, AddressPointer):
            return ResolvedEntity(
                entity_type="naddr",
                display_name=self._addr_title(ctx, pointer),
                link=f"/addr/{pointer.kind}/{pointer.pubkey}/{pointer.identifier}",
                original_text=original,
            )
        raise TypeError(f"Nieobsługiwany wskaźnik: {type(pointer).__name__}")

    def expand(
        self, ctx: LookupContext, text: str, formatter: EntityFormatter
    ) -> tuple[str, list[ResolvedEntity]]:
        resolved: list[ResolvedEntity] = []

        def _replace(match) -> str:
            try:
                entity = self.resolve(ctx, match.group(1))
            except ResolutionError as exc:
                # Zostaw oryginalny tekst
                logger.debug("Nie udało się rozwiązać %s: %s", match.group(0), exc)
                return match.group(0)
            resolved.append(entity)
            return formatter(entity)

        return NOSTR_ENTITY_RE.sub(_replace, text), resolved

    # ── Helpers ───────────────────────────────────────────────────────────────

    def replace_entities(
        self, ctx: LookupContext, text: str, formatter: EntityFormatter
    ) -> str:
        replaced, _ = self.expand(ctx, text, formatter)
        return replaced

    # ── private ───────────────────────────────────────────────────────────────

    def _query_first(self, ctx: LookupContext, flt: EventFilter) -> Optional[Event]:
        try:
            events = self._store.query_events(ctx, flt)
        except StorageLookupError as exc:
            logger.debug("Lookup degraded to fallback: %s", exc)
            return None
        except Exception as exc:
            logger.warning("Event store failed during lookup: %s", exc)
            return None
        return events[0] if events else None

    def _pubkey_name(self, ctx: LookupContext, pubkey: str) -> str:
        event = self._query_first(
            ctx, EventFilter(authors=[pubkey], kinds=[KIND_METADATA], limit=1)
        )
        if event is None:
            return truncate_pubkey(pubkey)

        try:
            metadata = json.loads(event.content)
        except ValueError:
            return truncate_pubkey(pubkey)
        if not isinstance(metadata, dict):
            return truncate_pubkey(pubkey)

        # display_name > name > nip05 > skrócony pubkey
        for field in _PROFILE_NAME_FIELDS:
            value = metadata.get(field)
            if isinstance(value, str) and single_line(value) != "":
                return single_line(value)
        return truncate_pubkey(pubkey)

    def _note_title(self, ctx: LookupContext, event_id: str) -> str:
        event = self._query_first(ctx, EventFilter(ids=[event_id], limit=1))
        if event is None:
            return f"Note {short_id(event_id)}..."

        if event.kind == KIND_TEXT_NOTE:
            for line in event.content.split("\n"):
                line = line.strip()
                if line:
                    return truncate(line, NOTE_TITLE_MAX)

        if event.kind == KIND_LONG_FORM:
            title = single_line(event.tag_value("title"))
            if title:
                return title

        return f"Event {short_id(event_id)}..."

    def _addr_title(self, ctx: LookupContext, addr: AddressPointer) -> str:
        event = self._query_first(
            ctx,
            EventFilter(
                authors=[addr.pubkey],
                kinds=[addr.kind],
                tags={"d": [addr.identifier]},
                limit=1,
            ),
        )
        if event is None:
            return f"{addr.identifier} by {truncate_pubkey(addr.pubkey)}"

        title = single_line(event.tag_value("title"))
        if title:
            return title
        if addr.identifier != "":
            return single_line(addr.identifier)
        return f"Article by {truncate_pubkey(addr.pubkey)}"
