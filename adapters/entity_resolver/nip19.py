"""
NIP-19 — kodek bech32 (+ TLV) dla identyfikatorów Nostr.

Obsługiwane prefiksy (zamknięta unia Pointer z contracts.py):
  npub      — gołe 32 bajty klucza publicznego
  nprofile  — TLV: 0=pubkey, 1=relay*
  note      — gołe 32 bajty id zdarzenia
  nevent    — TLV: 0=id, 1=relay*, 2=autor, 3=kind (uint32 BE)
  naddr     — TLV: 0=identyfikator "d", 1=relay*, 2=autor, 3=kind

Dekodowanie jest totalne: wynik to jeden z pięciu wskaźników albo wyjątek.
Sumę kontrolną i konwersję 5↔8 bitów liczy biblioteka `bech32`; limit
90 znaków z BIP-173 nie jest stosowany (nprofile/naddr bywają dłuższe).
"""
from __future__ import annotations

import re
from typing import Union

from bech32 import CHARSET, bech32_encode, bech32_verify_checksum, convertbits

from contracts import (
    AddressPointer,
    EventPointer,
    NotePointer,
    ProfilePointer,
    PubkeyPointer,
)
from errors import DecodeError, EncodeError, UnsupportedVariantError

AnyPointer = Union[PubkeyPointer, ProfilePointer, NotePointer, EventPointer, AddressPointer]

SUPPORTED_PREFIXES = ("npub", "nprofile", "note", "nevent", "naddr")

_TLV_SPECIAL = 0
_TLV_RELAY = 1
_TLV_AUTHOR = 2
_TLV_KIND = 3

_HEX32_RE = re.compile(r"^[0-9a-f]{64}$")
_CHECKSUM_LEN = 6


# ── decode ────────────────────────────────────────────────────────────────────


def decode(token: str) -> AnyPointer:
    """Dekoduje goły token (bez "nostr:") do jednego z pięciu wskaźników."""
    prefix, payload = _bech32_split(token)

    if prefix == "npub":
        return PubkeyPointer(pubkey=_hex32(payload, "npub"))
    if prefix == "note":
        return NotePointer(event_id=_hex32(payload, "note"))
    if prefix == "nprofile":
        return _decode_nprofile(payload)
    if prefix == "nevent":
        return _decode_nevent(payload)
    if prefix == "naddr":
        return _decode_naddr(payload)

    raise UnsupportedVariantError(prefix)


def _bech32_split(token: str) -> tuple[str, bytes]:
    if not token:
        raise DecodeError("empty identifier")
    if token.lower() != token and token.upper() != token:
        raise DecodeError("mixed-case bech32 string")
    if any(ord(ch) < 33 or ord(ch) > 126 for ch in token):
        raise DecodeError("invalid character in bech32 string")

    token = token.lower()
    pos = token.rfind("1")
    if pos < 1 or pos + _CHECKSUM_LEN + 1 > len(token):
        raise DecodeError(f"malformed bech32 string: {token[:16]!r}")

    hrp = token[:pos]
    try:
        data = [CHARSET.index(ch) for ch in token[pos + 1:]]
    except ValueError:
        raise DecodeError(f"invalid bech32 data character in {token[:16]!r}...")

    if not bech32_verify_checksum(hrp, data):
        raise DecodeError(f"invalid bech32 checksum for {hrp!r}")

    payload = convertbits(data[:-_CHECKSUM_LEN], 5, 8, False)
    if payload is None:
        raise DecodeError("invalid bech32 padding")
    return hrp, bytes(payload)


def _hex32(raw: bytes, what: str) -> str:
    if len(raw) != 32:
        raise DecodeError(f"{what}: expected 32 bytes, got {len(raw)}")
    return raw.hex()


def _parse_tlv(payload: bytes) -> list[tuple[int, bytes]]:
    entries: list[tuple[int, bytes]] = []
    i = 0
    while i < len(payload):
        if i + 2 > len(payload):
            raise DecodeError("truncated TLV header")
        t, length = payload[i], payload[i + 1]
        value = payload[i + 2:i + 2 + length]
        if len(value) < length:
            raise DecodeError(f"TLV entry {t} declares {length} bytes, has {len(value)}")
        entries.append((t, value))
        i += 2 + length
    return entries


def _relay(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        raise DecodeError("relay hint is not valid UTF-8")


def _decode_nprofile(payload: bytes) -> ProfilePointer:
    pubkey = ""
    relays: list[str] = []
    for t, value in _parse_tlv(payload):
        if t == _TLV_SPECIAL:
            pubkey = _hex32(value, "nprofile pubkey")
        elif t == _TLV_RELAY:
            relays.append(_relay(value))
    if not pubkey:
        raise DecodeError("nprofile without pubkey")
    return ProfilePointer(pubkey=pubkey, relays=relays)


def _decode_nevent(payload: bytes) -> EventPointer:
    event_id = ""
    relays: list[str] = []
    author = None
    kind = None
    for t, value in _parse_tlv(payload):
        if t == _TLV_SPECIAL:
            event_id = _hex32(value, "nevent id")
        elif t == _TLV_RELAY:
            relays.append(_relay(value))
        elif t == _TLV_AUTHOR:
            author = _hex32(value, "nevent author")
        elif t == _TLV_KIND:
            kind = _uint32(value)
    if not event_id:
        raise DecodeError("nevent without event id")
    return EventPointer(event_id=event_id, relays=relays, author=author, kind=kind)


def _decode_naddr(payload: bytes) -> AddressPointer:
    identifier = None
    relays: list[str] = []
    pubkey = ""
    kind = None
    for t, value in _parse_tlv(payload):
        if t == _TLV_SPECIAL:
            try:
                identifier = value.decode("utf-8")
            except UnicodeDecodeError:
                raise DecodeError("naddr identifier is not valid UTF-8")
        elif t == _TLV_RELAY:
            relays.append(_relay(value))
        elif t == _TLV_AUTHOR:
            pubkey = _hex32(value, "naddr author")
        elif t == _TLV_KIND:
            kind = _uint32(value)
    if identifier is None or not pubkey or kind is None:
        raise DecodeError("naddr requires identifier, author and kind")
    return AddressPointer(kind=kind, pubkey=pubkey, identifier=identifier, relays=relays)


def _uint32(value: bytes) -> int:
    if len(value) != 4:
        raise DecodeError(f"kind must be 4 bytes, got {len(value)}")
    return int.from_bytes(value, "big")


# ── encode ────────────────────────────────────────────────────────────────────


def encode(pointer: AnyPointer) -> str:
    """Koduje wskaźnik do tokenu bech32 (bez "nostr:"). Rzuca EncodeError."""
    if isinstance(pointer, PubkeyPointer):
        return _bech32("npub", _hex_bytes(pointer.pubkey))
    if isinstance(pointer, NotePointer):
        return _bech32("note", _hex_bytes(pointer.event_id))
    if isinstance(pointer, ProfilePointer):
        tlv = _tlv(_TLV_SPECIAL, _hex_bytes(pointer.pubkey))
        tlv += b"".join(_tlv(_TLV_RELAY, r.encode("utf-8")) for r in pointer.relays)
        return _bech32("nprofile", tlv)
    if isinstance(pointer, EventPointer):
        tlv = _tlv(_TLV_SPECIAL, _hex_bytes(pointer.event_id))
        tlv += b"".join(_tlv(_TLV_RELAY, r.encode("utf-8")) for r in pointer.relays)
        if pointer.author and _HEX32_RE.match(pointer.author):
            # niepoprawny autor jest pomijany, id wystarcza do zakodowania
            tlv += _tlv(_TLV_AUTHOR, _hex_bytes(pointer.author))
        if pointer.kind is not None:
            tlv += _tlv(_TLV_KIND, _kind_bytes(pointer.kind))
        return _bech32("nevent", tlv)
    if isinstance(pointer, AddressPointer):
        tlv = _tlv(_TLV_SPECIAL, pointer.identifier.encode("utf-8"))
        tlv += b"".join(_tlv(_TLV_RELAY, r.encode("utf-8")) for r in pointer.relays)
        tlv += _tlv(_TLV_AUTHOR, _hex_bytes(pointer.pubkey))
        tlv += _tlv(_TLV_KIND, _kind_bytes(pointer.kind))
        return _bech32("naddr", tlv)
    raise TypeError(f"Nieznany typ wskaźnika: {type(pointer).__name__}")


def encode_event(event_id: str, relays: list[str], author: str = "") -> str:
    return encode(EventPointer(event_id=event_id, relays=relays, author=author or None))


def encode_address(pubkey: str, kind: int, identifier: str, relays: list[str]) -> str:
    return encode(AddressPointer(kind=kind, pubkey=pubkey, identifier=identifier, relays=relays))


def _bech32(hrp: str, payload: bytes) -> str:
    words = convertbits(list(payload), 8, 5, True)
    if words is None:
        raise EncodeError(f"cannot convert {hrp} payload")
    return bech32_encode(hrp, words)


def _hex_bytes(value: str) -> bytes:
    if not _HEX32_RE.match(value or ""):
        raise EncodeError(f"expected 32-byte lowercase hex, got {value!r}")
    return bytes.fromhex(value)


def _kind_bytes(kind: int) -> bytes:
    if kind < 0 or kind > 0xFFFFFFFF:
        raise EncodeError(f"kind out of range: {kind}")
    return kind.to_bytes(4, "big")


def _tlv(t: int, value: bytes) -> bytes:
    if len(value) > 255:
        raise EncodeError(f"TLV entry {t} too long ({len(value)} bytes)")
    return bytes([t, len(value)]) + value
