from __future__ import annotations

import pytest
from bech32 import bech32_encode, convertbits

from adapters.entity_resolver import decode, encode, encode_address, encode_event
from contracts import AddressPointer, EventPointer, NotePointer, ProfilePointer, PubkeyPointer
from errors import DecodeError, EncodeError, UnsupportedVariantError

PUBKEY = "7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"
NPUB = "npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg"
EVENT_ID = "b9f5441e45ca39179320e0031cfb18e34078673dcc3d3e3a3b3a981760aa5696"


def _raw_bech32(hrp: str, payload: bytes) -> str:
    return bech32_encode(hrp, convertbits(list(payload), 8, 5, True))


def test_decode_known_npub():
    pointer = decode(NPUB)
    assert isinstance(pointer, PubkeyPointer)
    assert pointer.pubkey == PUBKEY


def test_encode_npub_matches_known_value():
    assert encode(PubkeyPointer(pubkey=PUBKEY)) == NPUB


def test_note_roundtrip():
    token = encode(NotePointer(event_id=EVENT_ID))
    assert token.startswith("note1")
    assert decode(token) == NotePointer(event_id=EVENT_ID)


def test_nprofile_keeps_relays_in_order():
    token = encode(ProfilePointer(pubkey=PUBKEY, relays=["wss://r.x.com", "wss://djbas.sadkb.com"]))
    pointer = decode(token)
    assert isinstance(pointer, ProfilePointer)
    assert pointer.pubkey == PUBKEY
    assert pointer.relays == ["wss://r.x.com", "wss://djbas.sadkb.com"]


def test_nevent_with_author_and_kind():
    token = encode(EventPointer(event_id=EVENT_ID, relays=["wss://relay.example"], author=PUBKEY, kind=1))
    pointer = decode(token)
    assert isinstance(pointer, EventPointer)
    assert pointer.event_id == EVENT_ID
    assert pointer.relays == ["wss://relay.example"]
    assert pointer.author == PUBKEY
    assert pointer.kind == 1


def test_nevent_without_optional_fields():
    pointer = decode(encode_event(EVENT_ID, []))
    assert isinstance(pointer, EventPointer)
    assert pointer.author is None
    assert pointer.kind is None
    assert pointer.relays == []


def test_naddr_roundtrip():
    token = encode_address(PUBKEY, 30023, "my-article", ["wss://relay.example"])
    assert token.startswith("naddr1")
    pointer = decode(token)
    assert pointer == AddressPointer(
        kind=30023, pubkey=PUBKEY, identifier="my-article", relays=["wss://relay.example"]
    )


def test_naddr_allows_empty_identifier():
    pointer = decode(encode_address(PUBKEY, 30023, "", []))
    assert isinstance(pointer, AddressPointer)
    assert pointer.identifier == ""


def test_long_tokens_are_not_limited_to_90_chars():
    relays = [f"wss://relay{i}.example.com" for i in range(5)]
    token = encode(ProfilePointer(pubkey=PUBKEY, relays=relays))
    assert len(token) > 90
    assert decode(token).relays == relays


def test_bad_checksum_raises_decode_error():
    broken = NPUB[:-1] + ("q" if NPUB[-1] != "q" else "p")
    with pytest.raises(DecodeError):
        decode(broken)


@pytest.mark.parametrize("token", ["", "npub1", "nostr", "npub1xyzb", "npub1" + "b" * 58])
def test_garbage_raises_decode_error(token):
    with pytest.raises(DecodeError):
        decode(token)


def test_mixed_case_is_rejected():
    mixed = NPUB[:10].upper() + NPUB[10:]
    with pytest.raises(DecodeError):
        decode(mixed)


def test_unknown_prefix_raises_unsupported_variant():
    token = _raw_bech32("nsec", bytes(range(32)))
    with pytest.raises(UnsupportedVariantError) as exc_info:
        decode(token)
    assert exc_info.value.prefix == "nsec"


def test_npub_with_wrong_length_is_decode_error():
    with pytest.raises(DecodeError):
        decode(_raw_bech32("npub", bytes(31)))


def test_truncated_tlv_is_decode_error():
    # typ 0, deklarowane 32 bajty, jest 4
    with pytest.raises(DecodeError):
        decode(_raw_bech32("nevent", bytes([0, 32, 1, 2, 3, 4])))


def test_nprofile_without_pubkey_is_decode_error():
    relay = b"wss://r.example"
    with pytest.raises(DecodeError):
        decode(_raw_bech32("nprofile", bytes([1, len(relay)]) + relay))


def test_naddr_without_kind_is_decode_error():
    payload = bytes([0, 2]) + b"id" + bytes([2, 32]) + bytes.fromhex(PUBKEY)
    with pytest.raises(DecodeError):
        decode(_raw_bech32("naddr", payload))


def test_unknown_tlv_types_are_ignored():
    payload = bytes([0, 32]) + bytes.fromhex(EVENT_ID) + bytes([9, 3]) + b"xyz"
    pointer = decode(_raw_bech32("nevent", payload))
    assert isinstance(pointer, EventPointer)
    assert pointer.event_id == EVENT_ID


def test_encode_rejects_non_hex_ids():
    with pytest.raises(EncodeError):
        encode(NotePointer(event_id="not-hex"))
    with pytest.raises(EncodeError):
        encode_event("abc", [])


def test_encode_rejects_out_of_range_kind():
    with pytest.raises(EncodeError):
        encode_address(PUBKEY, -1, "x", [])


def test_encode_rejects_oversized_tlv_value():
    with pytest.raises(EncodeError):
        encode_address(PUBKEY, 30023, "x" * 300, [])


def test_encode_event_skips_malformed_author():
    token = encode_event(EVENT_ID, ["wss://r.example"], "npub-not-hex")
    pointer = decode(token)
    assert isinstance(pointer, EventPointer)
    assert pointer.event_id == EVENT_ID
    assert pointer.author is None
    assert pointer.relays == ["wss://r.example"]
