"""
contracts.py — Jedyne źródło prawdy dla wszystkich typów danych w Nostrgem.
Wszystkie moduły importują WYŁĄCZNIE stąd. Nie modyfikować bez versioning.
"""
from __future__ import annotations

import time
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from errors import LookupCancelled

CONTRACTS_VERSION = "1.0.0"

# Rodzaje zdarzeń Nostr używane przez renderer
KIND_METADATA = 0
KIND_TEXT_NOTE = 1
KIND_REACTION = 7
KIND_RELAY_LIST = 10002
KIND_ZAP_RECEIPT = 9735
KIND_LONG_FORM = 30023


# ─────────────────────────── Helpers ─────────────────────────────────────

def _now() -> int:
    return int(time.time())


# ─────────────────────────── Event / Filter ──────────────────────────────

class Event(BaseModel):
    id: str
    pubkey: str
    kind: int
    created_at: int = Field(default_factory=_now)
    content: str = ""
    tags: list[list[str]] = Field(default_factory=list)
    sig: str = ""

    def tag_value(self, name: str) -> str:
        """Pierwsza niepusta wartość taga `name` (np. "d", "title") lub ""."""
        for tag in self.tags:
            if len(tag) >= 2 and tag[0] == name and tag[1] != "":
                return tag[1]
        return ""

    def tag_values(self, name: str) -> list[str]:
        return [tag[1] for tag in self.tags if len(tag) >= 2 and tag[0] == name]


class EventFilter(BaseModel):
    authors: Optional[list[str]] = None
    kinds: Optional[list[int]] = None
    ids: Optional[list[str]] = None
    tags: dict[str, list[str]] = Field(default_factory=dict)  # "d" → ["my-article"]
    limit: int = 0  # 0 = bez limitu


# ─────────────────────────── LookupContext ───────────────────────────────

class LookupContext:
    """
    Kontekst wywołania przekazywany do każdego zapytania do EventStore.
    Niesie doradczy deadline i flagę anulowania — nie jest współdzielony
    między renderami.
    """

    def __init__(self, deadline: Optional[float] = None) -> None:
        self._deadline = deadline  # time.monotonic()
        self._cancelled = False

    @classmethod
    def background(cls) -> "LookupContext":
        return cls()

    @classmethod
    def with_timeout(cls, timeout_ms: int) -> "LookupContext":
        return cls(deadline=time.monotonic() + timeout_ms / 1000.0)

    def cancel(self) -> None:
        self._cancelled = True

    def expired(self) -> bool:
        if self._cancelled:
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self) -> None:
        """Rzuca LookupCancelled jeśli kontekst wygasł lub został anulowany."""
        if self._cancelled:
            raise LookupCancelled("lookup context cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise LookupCancelled("lookup deadline exceeded")


# ─────────────────────────── NIP-19 pointers ─────────────────────────────

class PubkeyPointer(BaseModel):
    kind_tag: Literal["npub"] = "npub"
    pubkey: str


class ProfilePointer(BaseModel):
    kind_tag: Literal["nprofile"] = "nprofile"
    pubkey: str
    relays: list[str] = Field(default_factory=list)


class NotePointer(BaseModel):
    kind_tag: Literal["note"] = "note"
    event_id: str


class EventPointer(BaseModel):
    kind_tag: Literal["nevent"] = "nevent"
    event_id: str
    relays: list[str] = Field(default_factory=list)
    author: Optional[str] = None
    kind: Optional[int] = None


class AddressPointer(BaseModel):
    kind_tag: Literal["naddr"] = "naddr"
    kind: int
    pubkey: str
    identifier: str = ""
    relays: list[str] = Field(default_factory=list)


Pointer = Annotated[
    Union[PubkeyPointer, ProfilePointer, NotePointer, EventPointer, AddressPointer],
    Field(discriminator="kind_tag"),
]

EntityType = Literal["npub", "nprofile", "note", "nevent", "naddr"]


# ─────────────────────────── EntityResolver ──────────────────────────────

class ResolvedEntity(BaseModel):
    entity_type: EntityType
    display_name: str
    link: str            # ścieżka wewnętrzna, np. "/profile/<hex>"
    original_text: str   # dokładny dopasowany fragment, razem z "nostr:"

    @property
    def token(self) -> str:
        """Identyfikator bech32 bez prefiksu schematu."""
        return self.original_text.removeprefix("nostr:")


# ─────────────────────────── Profile (kind 0) ────────────────────────────

class ProfileMetadata(BaseModel):
    name: str = ""
    display_name: str = ""
    about: str = ""
    picture: str = ""
    banner: str = ""
    website: str = ""
    nip05: str = ""
    lud16: str = ""
    lud06: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        # Klienci Nostr wysyłają null lub liczby w polach tekstowych
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    def preferred_name(self) -> str:
        return self.display_name or self.name

    def lightning_address(self) -> str:
        return self.lud16 or self.lud06


# ─────────────────────────── Aggregates ──────────────────────────────────

class EventAggregates(BaseModel):
    event_id: str
    reply_count: int = 0
    reaction_total: int = 0
    reaction_counts: dict[str, int] = Field(default_factory=dict)
    zap_sats_total: int = 0
    last_interaction: int = 0

    def has_interactions(self) -> bool:
        return self.reply_count > 0 or self.reaction_total > 0 or self.zap_sats_total > 0


class EnrichedEvent(BaseModel):
    event: Event
    aggregates: EventAggregates


# ─────────────────────────── Threads ─────────────────────────────────────

class ThreadInfo(BaseModel):
    root_event_id: str = ""
    reply_to_id: str = ""
    mentioned_ids: list[str] = Field(default_factory=list)

    def is_reply(self) -> bool:
        return self.reply_to_id != ""

    def is_root(self) -> bool:
        return self.root_event_id == "" and self.reply_to_id == ""

    def root_or_self(self, event_id: str) -> str:
        return self.root_event_id or event_id


class ThreadNode(BaseModel):
    event: Event
    aggregates: Optional[EventAggregates] = None
    children: list[ThreadNode] = Field(default_factory=list)


class ThreadView(BaseModel):
    root: Optional[ThreadNode] = None
    focus_id: str = ""


ThreadNode.model_rebuild()


# ─────────────────────────── Relay hints ─────────────────────────────────

class RelayHint(BaseModel):
    pubkey: str
    relay: str
    can_read: bool = True
    can_write: bool = True
    freshness: int = 0
    last_seen_event_id: str = ""


# ─────────────────────────── API response ────────────────────────────────

class RenderedText(BaseModel):
    text: str
    entities: list[ResolvedEntity]
