from __future__ import annotations

import json

import pytest

from adapters.entity_resolver import (
    Nip19EntityResolver,
    dedup_entities,
    encode,
    encode_address,
    identity_formatter,
    link_label_formatter,
    plain_text_formatter,
)
from adapters.event_store.in_memory_event_store import InMemoryEventStore
from contracts import (
    Event,
    EventFilter,
    EventPointer,
    LookupContext,
    NotePointer,
    ProfilePointer,
    PubkeyPointer,
    ResolvedEntity,
)
from errors import DecodeError, StorageLookupError, UnsupportedVariantError
from ports.entity_resolver import EntityResolver

ALICE = "a1" * 32
BOB = "b2" * 32
NOTE_ID = "abcdef12" + "0" * 56
ARTICLE_ID = "c3" * 32


def _hex(n: int) -> str:
    return f"{n:064x}"


def _profile(pubkey: str, **fields) -> Event:
    return Event(id=_hex(int(pubkey[:8], 16)), pubkey=pubkey, kind=0,
                 created_at=100, content=json.dumps(fields))


def _resolver(*events: Event) -> Nip19EntityResolver:
    return Nip19EntityResolver(InMemoryEventStore(events))


def _ctx() -> LookupContext:
    return LookupContext.background()


class _FailingStore:
    def query_events(self, ctx, flt: EventFilter):
        raise StorageLookupError("relay timeout")

    def get_read_relays(self, ctx, pubkey):
        return []


class _BrokenStore:
    def query_events(self, ctx, flt: EventFilter):
        raise RuntimeError("boom")

    def get_read_relays(self, ctx, pubkey):
        return []


def test_resolver_satisfies_port():
    assert isinstance(_resolver(), EntityResolver)


# ── profile names ─────────────────────────────────────────────────────────────


def test_unknown_pubkey_is_truncated():
    entity = _resolver().resolve(_ctx(), encode(PubkeyPointer(pubkey=ALICE)))
    assert entity.entity_type == "npub"
    assert entity.display_name == "a1a1a1a1...a1a1a1a1"
    assert entity.link == f"/profile/{ALICE}"


def test_profile_field_priority():
    token = encode(PubkeyPointer(pubkey=ALICE))

    both = _resolver(_profile(ALICE, display_name="Alice D", name="alice", nip05="a@x.com"))
    assert both.resolve(_ctx(), token).display_name == "Alice D"

    name_only = _resolver(_profile(ALICE, display_name="", name="alice", nip05="a@x.com"))
    assert name_only.resolve(_ctx(), token).display_name == "alice"

    nip05_only = _resolver(_profile(ALICE, nip05="a@x.com"))
    assert nip05_only.resolve(_ctx(), token).display_name == "a@x.com"

    empty = _resolver(_profile(ALICE, about="no names here"))
    assert empty.resolve(_ctx(), token).display_name == "a1a1a1a1...a1a1a1a1"


def test_malformed_profile_json_falls_back_to_truncated_pubkey():
    bad = Event(id=_hex(1), pubkey=ALICE, kind=0, created_at=1, content="{not json")
    entity = _resolver(bad).resolve(_ctx(), encode(PubkeyPointer(pubkey=ALICE)))
    assert entity.display_name == "a1a1a1a1...a1a1a1a1"


def test_nprofile_resolves_like_npub():
    token = encode(ProfilePointer(pubkey=BOB, relays=["wss://r.example"]))
    entity = _resolver(_profile(BOB, name="bob")).resolve(_ctx(), token)
    assert entity.entity_type == "nprofile"
    assert entity.display_name == "bob"
    assert entity.link == f"/profile/{BOB}"
    assert entity.original_text == "nostr:" + token


# ── note titles ───────────────────────────────────────────────────────────────


def test_missing_note_uses_note_fallback():
    entity = _resolver().resolve(_ctx(), encode(NotePointer(event_id=NOTE_ID)))
    assert entity.entity_type == "note"
    assert entity.display_name == "Note abcdef12..."
    assert entity.link == f"/note/{NOTE_ID}"


def test_short_note_title_is_first_non_empty_line_truncated():
    long_line = "x" * 60
    note = Event(id=NOTE_ID, pubkey=ALICE, kind=1, created_at=1, content=f"\n  \n{long_line}\nsecond")
    entity = _resolver(note).resolve(_ctx(), encode(NotePointer(event_id=NOTE_ID)))
    assert entity.display_name == "x" * 37 + "..."
    assert len(entity.display_name) == 40


def test_short_note_title_kept_when_short():
    note = Event(id=NOTE_ID, pubkey=ALICE, kind=1, created_at=1, content="gm nostr\nmore")
    entity = _resolver(note).resolve(_ctx(), encode(EventPointer(event_id=NOTE_ID)))
    assert entity.entity_type == "nevent"
    assert entity.display_name == "gm nostr"


def test_long_form_title_tag():
    article = Event(id=ARTICLE_ID, pubkey=ALICE, kind=30023, created_at=1,
                    content="body", tags=[["d", "x"], ["title", "My Essay"]])
    entity = _resolver(article).resolve(_ctx(), encode(NotePointer(event_id=ARTICLE_ID)))
    assert entity.display_name == "My Essay"


def test_other_kinds_use_event_fallback():
    reaction = Event(id=NOTE_ID, pubkey=ALICE, kind=7, created_at=1, content="+")
    entity = _resolver(reaction).resolve(_ctx(), encode(NotePointer(event_id=NOTE_ID)))
    assert entity.display_name == "Event abcdef12..."


def test_empty_short_note_uses_event_fallback():
    note = Event(id=NOTE_ID, pubkey=ALICE, kind=1, created_at=1, content="   \n ")
    entity = _resolver(note).resolve(_ctx(), encode(NotePointer(event_id=NOTE_ID)))
    assert entity.display_name == "Event abcdef12..."


# ── address titles ────────────────────────────────────────────────────────────


def test_address_without_record():
    token = encode_address(ALICE, 30023, "my-article", [])
    entity = _resolver().resolve(_ctx(), token)
    assert entity.entity_type == "naddr"
    assert entity.display_name == "my-article by a1a1a1a1...a1a1a1a1"
    assert entity.link == f"/addr/30023/{ALICE}/my-article"


def test_address_with_title_tag():
    article = Event(id=ARTICLE_ID, pubkey=ALICE, kind=30023, created_at=1,
                    tags=[["d", "my-article"], ["title", "Hello World"]])
    entity = _resolver(article).resolve(_ctx(), encode_address(ALICE, 30023, "my-article", []))
    assert entity.display_name == "Hello World"


def test_address_record_without_title_uses_identifier():
    article = Event(id=ARTICLE_ID, pubkey=ALICE, kind=30023, created_at=1,
                    tags=[["d", "my-article"]])
    entity = _resolver(article).resolve(_ctx(), encode_address(ALICE, 30023, "my-article", []))
    assert entity.display_name == "my-article"


def test_address_record_with_other_identifier_is_not_matched():
    article = Event(id=ARTICLE_ID, pubkey=ALICE, kind=30023, created_at=1,
                    tags=[["d", "other"], ["title", "Other"]])
    entity = _resolver(article).resolve(_ctx(), encode_address(ALICE, 30023, "my-article", []))
    assert entity.display_name == "my-article by a1a1a1a1...a1a1a1a1"


def test_address_record_with_empty_identifier():
    article = Event(id=ARTICLE_ID, pubkey=ALICE, kind=30023, created_at=1, tags=[["d", ""]])
    store = InMemoryEventStore([article])
    # pusty "d" → tag_values zwraca [""], filtr {"d": [""]} dopasowuje
    entity = Nip19EntityResolver(store).resolve(_ctx(), encode_address(ALICE, 30023, "", []))
    assert entity.display_name == "Article by a1a1a1a1...a1a1a1a1"


# ── storage failures ──────────────────────────────────────────────────────────


def test_storage_errors_degrade_to_fallback():
    resolver = Nip19EntityResolver(_FailingStore())
    assert resolver.resolve(_ctx(), encode(PubkeyPointer(pubkey=ALICE))).display_name == "a1a1a1a1...a1a1a1a1"
    assert resolver.resolve(_ctx(), encode(NotePointer(event_id=NOTE_ID))).display_name == "Note abcdef12..."


def test_unexpected_store_exceptions_degrade_too():
    resolver = Nip19EntityResolver(_BrokenStore())
    token = encode_address(ALICE, 30023, "x", [])
    assert resolver.resolve(_ctx(), token).display_name == "x by a1a1a1a1...a1a1a1a1"


def test_cancelled_context_degrades_without_raising():
    ctx = LookupContext.background()
    ctx.cancel()
    resolver = _resolver(_profile(ALICE, name="alice"))
    assert resolver.resolve(ctx, encode(PubkeyPointer(pubkey=ALICE))).display_name == "a1a1a1a1...a1a1a1a1"


def test_resolve_propagates_resolution_errors():
    resolver = _resolver()
    with pytest.raises(DecodeError):
        resolver.resolve(_ctx(), "npub1broken")


def test_resolve_unsupported_prefix():
    from bech32 import bech32_encode, convertbits

    token = bech32_encode("nrelay", convertbits(list(b"wss://r.example"), 8, 5, True))
    with pytest.raises(UnsupportedVariantError):
        _resolver().resolve(_ctx(), token)


# ── expand / replace ──────────────────────────────────────────────────────────


def test_expand_note_example():
    token = encode(NotePointer(event_id=NOTE_ID))
    text = f"hello nostr:{token} world"
    out, entities = _resolver().expand(_ctx(), text, plain_text_formatter)
    assert out == "hello Note abcdef12... world"
    assert len(entities) == 1
    assert entities[0].entity_type == "note"
    assert entities[0].original_text == f"nostr:{token}"


def test_expand_keeps_duplicates_in_order():
    alice = encode(PubkeyPointer(pubkey=ALICE))
    bob = encode(PubkeyPointer(pubkey=BOB))
    text = f"nostr:{alice} nostr:{bob} nostr:{alice}"
    resolver = _resolver(_profile(ALICE, name="alice"), _profile(BOB, name="bob"))
    out, entities = resolver.expand(_ctx(), text, plain_text_formatter)
    assert out == "alice bob alice"
    assert [e.display_name for e in entities] == ["alice", "bob", "alice"]


def test_expand_leaves_unresolvable_matches_untouched():
    good = encode(PubkeyPointer(pubkey=ALICE))
    text = f"bad nostr:npub1qqqqqq good nostr:{good}"
    out, entities = _resolver().expand(_ctx(), text, plain_text_formatter)
    assert out == "bad nostr:npub1qqqqqq good a1a1a1a1...a1a1a1a1"
    assert len(entities) == 1


def test_expand_with_link_label_formatter():
    token = encode(PubkeyPointer(pubkey=ALICE))
    out, _ = _resolver(_profile(ALICE, name="alice")).expand(
        _ctx(), f"cc nostr:{token}", link_label_formatter
    )
    assert out == f"cc alice (/profile/{ALICE})"


def test_identity_formatter_reconstructs_input():
    alice = encode(PubkeyPointer(pubkey=ALICE))
    note = encode(NotePointer(event_id=NOTE_ID))
    naddr = encode_address(ALICE, 30023, "my-article", ["wss://r.example"])
    text = (
        f"start nostr:{alice}\nnostr:{note}, nostr:npub1broken and "
        f"(nostr:{naddr}) nostr:{alice} end\n"
    )
    out, entities = _resolver().expand(_ctx(), text, identity_formatter)
    assert out == text
    assert len(entities) == 4


def test_replace_entities_returns_text_only():
    token = encode(NotePointer(event_id=NOTE_ID))
    assert _resolver().replace_entities(_ctx(), f"see nostr:{token}", plain_text_formatter) == (
        "see Note abcdef12..."
    )


def test_find_entities_delegates_to_scanner():
    assert _resolver().find_entities("nostr:npub1abc x nostr:npub1abc") == ["npub1abc", "npub1abc"]


def test_expand_without_identifiers():
    out, entities = _resolver().expand(_ctx(), "plain text", plain_text_formatter)
    assert out == "plain text"
    assert entities == []


# ── dedup ─────────────────────────────────────────────────────────────────────


def _entity(original: str, name: str = "n") -> ResolvedEntity:
    return ResolvedEntity(entity_type="npub", display_name=name, link="/profile/x", original_text=original)


def test_dedup_keeps_first_seen_order():
    entities = [_entity("nostr:a", "1"), _entity("nostr:b"), _entity("nostr:a", "2"), _entity("nostr:c")]
    unique = dedup_entities(entities)
    assert [e.original_text for e in unique] == ["nostr:a", "nostr:b", "nostr:c"]
    assert unique[0].display_name == "1"


def test_dedup_is_idempotent():
    entities = [_entity("nostr:a"), _entity("nostr:a"), _entity("nostr:b"), _entity("nostr:b")]
    once = dedup_entities(entities)
    assert dedup_entities(once) == once


def test_dedup_empty():
    assert dedup_entities([]) == []


def test_multiline_names_and_titles_are_flattened():
    article = Event(id=ARTICLE_ID, pubkey=BOB, kind=30023, created_at=5,
                    tags=[["d", "essay"], ["title", "Two\nLines"]])
    resolver = _resolver(_profile(ALICE, display_name="Alice\nSmith"), article)

    assert resolver.resolve(_ctx(), encode(PubkeyPointer(pubkey=ALICE))).display_name == "Alice Smith"
    naddr = encode_address(BOB, 30023, "essay", [])
    assert resolver.resolve(_ctx(), naddr).display_name == "Two Lines"
