"""
Port: EntityResolver
Odpowiedzialność: rozwiązywanie identyfikatorów nostr: (NIP-19) w tekście
do czytelnych nazw i ścieżek wewnętrznych.
"""
from typing import Callable, Protocol, runtime_checkable

from contracts import LookupContext, ResolvedEntity

EntityFormatter = Callable[[ResolvedEntity], str]


@runtime_checkable
class EntityResolver(Protocol):
    def find_entities(self, text: str) -> list[str]:
        """Bare NIP-19 tokens found in text, in order, duplicates retained."""
        ...

    def resolve(self, ctx: LookupContext, token: str) -> ResolvedEntity:
        """
        Resolves a single bare token.
        Raises DecodeError or UnsupportedVariantError; storage failures
        never propagate (fallback display name is used instead).
        """
        ...

    def expand(
        self, ctx: LookupContext, text: str, formatter: EntityFormatter
    ) -> tuple[str, list[ResolvedEntity]]:
        """
        Replaces every resolvable nostr: match with formatter(entity).
        Unresolvable matches stay unchanged. Returns the new text and the
        resolved entities in encounter order (duplicates retained).
        """
        ...
