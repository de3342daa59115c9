"""
Port: EventStore
Odpowiedzialność: filtrowane zapytania o zdarzenia Nostr oraz podpowiedzi relayów.
Renderer nie wykonuje żadnego I/O poza tym portem.
"""
from typing import Optional, Protocol, runtime_checkable

from contracts import Event, EventAggregates, EventFilter, LookupContext


@runtime_checkable
class EventStore(Protocol):
    def query_events(self, ctx: LookupContext, flt: EventFilter) -> list[Event]:
        """
        Returns events matching the filter, most recent first.
        Raises StorageLookupError on collaborator failure or when
        ctx is cancelled / past its deadline.
        """
        ...

    def get_read_relays(self, ctx: LookupContext, pubkey: str) -> list[str]:
        """
        Best-effort read relay URLs for an author (NIP-65).
        Returns [] on any failure; never raises.
        """
        ...


@runtime_checkable
class AggregateSource(Protocol):
    def get_aggregates(self, ctx: LookupContext, event_id: str) -> Optional[EventAggregates]:
        """Returns interaction counts for an event, or None when unknown."""
        ...
