"""
errors.py — Hierarchia wyjątków Nostrgem.

Błędy rozwiązywania identyfikatorów (ResolutionError) są lokalne dla resolvera:
silnik podmian zostawia wtedy dopasowany tekst bez zmian.
Błędy magazynu (StorageLookupError) zawsze degradują do etykiety zastępczej.
"""


class NostrgemError(Exception):
    """Base exception for all Nostrgem errors."""


class ResolutionError(NostrgemError):
    """Identifier could not be turned into a ResolvedEntity."""


class DecodeError(ResolutionError):
    """Bad bech32 encoding, checksum or TLV payload."""


class UnsupportedVariantError(ResolutionError):
    """Valid bech32 string whose prefix is not one of the five supported kinds."""

    def __init__(self, prefix: str) -> None:
        super().__init__(f"unsupported NIP-19 type: {prefix}")
        self.prefix = prefix


class EncodeError(NostrgemError):
    """Pointer fields cannot be encoded (e.g. id is not 32-byte hex)."""


class StorageLookupError(NostrgemError):
    """Collaborator failure, timeout or cancellation during an event lookup."""


class LookupCancelled(StorageLookupError):
    """LookupContext expired or was cancelled before the lookup ran."""
