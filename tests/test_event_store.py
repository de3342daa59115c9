from __future__ import annotations

import json

import pytest

from adapters.event_store.in_memory_event_store import InMemoryEventStore
from adapters.relay_hints import parse_relay_hints
from contracts import Event, EventFilter, LookupContext
from errors import LookupCancelled, StorageLookupError
from ports.event_store import AggregateSource, EventStore

ALICE = "a1" * 32
BOB = "b2" * 32
TARGET = "c3" * 32


def _hex(n: int) -> str:
    return f"{n:064x}"


def _ev(n: int, kind: int = 1, pubkey: str = ALICE, created_at: int = 0, **kw) -> Event:
    return Event(id=_hex(n), pubkey=pubkey, kind=kind, created_at=created_at or n, **kw)


def _ctx() -> LookupContext:
    return LookupContext.background()


def test_store_satisfies_ports():
    store = InMemoryEventStore()
    assert isinstance(store, EventStore)
    assert isinstance(store, AggregateSource)


def test_query_orders_newest_first_and_applies_limit():
    store = InMemoryEventStore([_ev(1), _ev(3), _ev(2)])
    assert [e.id for e in store.query_events(_ctx(), EventFilter())] == [_hex(3), _hex(2), _hex(1)]
    assert [e.id for e in store.query_events(_ctx(), EventFilter(limit=2))] == [_hex(3), _hex(2)]


def test_query_filters_are_and_of_ors():
    store = InMemoryEventStore([
        _ev(1, kind=1, pubkey=ALICE),
        _ev(2, kind=0, pubkey=ALICE),
        _ev(3, kind=1, pubkey=BOB),
        _ev(4, kind=30023, pubkey=ALICE, tags=[["d", "post"]]),
    ])
    flt = EventFilter(authors=[ALICE], kinds=[1, 30023])
    assert {e.id for e in store.query_events(_ctx(), flt)} == {_hex(1), _hex(4)}

    by_tag = EventFilter(kinds=[30023], tags={"d": ["post", "other"]})
    assert [e.id for e in store.query_events(_ctx(), by_tag)] == [_hex(4)]

    by_ids = EventFilter(ids=[_hex(2), _hex(99)])
    assert [e.id for e in store.query_events(_ctx(), by_ids)] == [_hex(2)]


def test_duplicate_ids_keep_first_event():
    store = InMemoryEventStore([_ev(1, content="first"), _ev(1, content="second")])
    assert len(store) == 1
    assert store.query_events(_ctx(), EventFilter())[0].content == "first"


def test_cancelled_context_raises_storage_error():
    ctx = LookupContext.background()
    ctx.cancel()
    with pytest.raises(StorageLookupError):
        InMemoryEventStore([_ev(1)]).query_events(ctx, EventFilter())


def test_expired_deadline_raises_lookup_cancelled():
    ctx = LookupContext.with_timeout(-1)
    assert ctx.expired()
    with pytest.raises(LookupCancelled):
        InMemoryEventStore().query_events(ctx, EventFilter())


def test_from_file_reads_jsonl_and_skips_invalid(tmp_path):
    path = tmp_path / "events.jsonl"
    lines = [
        json.dumps(_ev(1).model_dump()),
        json.dumps({"id": "missing-fields"}),
        "",
        json.dumps(_ev(2).model_dump()),
    ]
    path.write_text("\n".join(lines), encoding="utf-8")
    store = InMemoryEventStore.from_file(path)
    assert len(store) == 2


def test_from_file_reads_json_list(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps([_ev(1).model_dump(), _ev(2).model_dump()]), encoding="utf-8")
    assert len(InMemoryEventStore.from_file(path)) == 2


# ── relay hints ───────────────────────────────────────────────────────────────


def _relay_list(n: int, created_at: int, tags: list[list[str]]) -> Event:
    return _ev(n, kind=10002, created_at=created_at, tags=tags)


def test_parse_relay_hints_markers():
    event = _relay_list(1, 10, [
        ["r", "wss://both.example"],
        ["r", "wss://read.example", "read"],
        ["r", "wss://write.example", "WRITE"],
        ["r", "  "],
        ["p", ALICE],
    ])
    hints = parse_relay_hints(event)
    assert [(h.relay, h.can_read, h.can_write) for h in hints] == [
        ("wss://both.example", True, True),
        ("wss://read.example", True, False),
        ("wss://write.example", False, True),
    ]
    assert all(h.pubkey == ALICE and h.freshness == 10 for h in hints)


def test_parse_relay_hints_rejects_other_kinds():
    with pytest.raises(ValueError):
        parse_relay_hints(_ev(1, kind=1))


def test_read_relays_come_from_newest_list():
    store = InMemoryEventStore([
        _relay_list(1, 10, [["r", "wss://old.example"]]),
        _relay_list(2, 20, [["r", "wss://new.example", "read"], ["r", "wss://out.example", "write"]]),
    ])
    assert store.get_read_relays(_ctx(), ALICE) == ["wss://new.example"]


def test_read_relays_never_raise():
    ctx = LookupContext.background()
    ctx.cancel()
    store = InMemoryEventStore([_relay_list(1, 10, [["r", "wss://x.example"]])])
    assert store.get_read_relays(ctx, ALICE) == []
    assert store.get_read_relays(_ctx(), BOB) == []


# ── aggregates ────────────────────────────────────────────────────────────────


def _zap(n: int, msats: int) -> Event:
    request = {"kind": 9734, "tags": [["amount", str(msats)], ["e", TARGET]]}
    return _ev(n, kind=9735, tags=[["e", TARGET], ["description", json.dumps(request)]])


def test_aggregates_count_replies_reactions_and_zaps():
    store = InMemoryEventStore([
        Event(id=TARGET, pubkey=ALICE, kind=1, created_at=1),
        _ev(10, kind=1, tags=[["e", TARGET]]),
        _ev(11, kind=7, content="+", tags=[["e", TARGET]]),
        _ev(12, kind=7, content="", tags=[["e", TARGET]]),
        _ev(13, kind=7, content="🤙", tags=[["e", TARGET]]),
        _zap(14, 21_000),
        _zap(15, 1_500),
        _ev(16, kind=6, tags=[["e", TARGET]]),
        _ev(17, kind=1, tags=[["e", _hex(999)]]),
    ])
    agg = store.get_aggregates(_ctx(), TARGET)
    assert agg.reply_count == 1
    assert agg.reaction_total == 3
    assert agg.reaction_counts == {"+": 2, "🤙": 1}
    assert agg.zap_sats_total == 22
    assert agg.last_interaction == 15
    assert agg.has_interactions()


def test_zap_without_valid_description_counts_zero():
    store = InMemoryEventStore([
        Event(id=TARGET, pubkey=ALICE, kind=1, created_at=1),
        _ev(10, kind=9735, tags=[["e", TARGET], ["description", "not json"]]),
        _ev(11, kind=9735, tags=[["e", TARGET]]),
    ])
    assert store.get_aggregates(_ctx(), TARGET).zap_sats_total == 0


def test_aggregates_for_unknown_event_is_none():
    assert InMemoryEventStore().get_aggregates(_ctx(), TARGET) is None
