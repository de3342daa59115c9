"""
Router: strony Gemtext
GET /, /note/{id}, /thread/{id}, /profile/{pubkey}, /addr/{kind}/{pubkey}/{d},
/notes, /articles, /replies

Identyfikatory w ścieżce mogą być hex albo NIP-19 (note/nevent, npub/nprofile).
Nieznane zdarzenie → 404; błędy magazynu → 503.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from adapters.entity_resolver import decode
from adapters.event_store.in_memory_event_store import InMemoryEventStore
from adapters.gemtext_renderer import GemtextRenderer
from adapters.thread_builder.nip10_builder import Nip10ThreadBuilder, parse_thread_info
from api.dependencies import (
    get_event_store,
    get_lookup_context,
    get_renderer,
    get_settings,
    get_thread_builder,
)
from config import Settings
from contracts import (
    KIND_LONG_FORM,
    KIND_METADATA,
    KIND_TEXT_NOTE,
    EnrichedEvent,
    Event,
    EventAggregates,
    EventFilter,
    EventPointer,
    LookupContext,
    NotePointer,
    ProfilePointer,
    PubkeyPointer,
)
from errors import ResolutionError, StorageLookupError

logger = logging.getLogger("nostrgem.api")

router = APIRouter(tags=["pages"])

GEMINI_MEDIA_TYPE = "text/gemini; charset=utf-8"
HOME_URL = "/"


def _gemini(body: str) -> PlainTextResponse:
    return PlainTextResponse(body, media_type=GEMINI_MEDIA_TYPE)


def _event_id(value: str) -> str:
    if not value.startswith(("note1", "nevent1")):
        return value
    try:
        pointer = decode(value)
    except ResolutionError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid identifier: {exc}")
    if isinstance(pointer, (NotePointer, EventPointer)):
        return pointer.event_id
    raise HTTPException(status_code=400, detail=f"Not an event identifier: {value}")


def _pubkey(value: str) -> str:
    if not value.startswith(("npub1", "nprofile1")):
        return value
    try:
        pointer = decode(value)
    except ResolutionError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid identifier: {exc}")
    if isinstance(pointer, (PubkeyPointer, ProfilePointer)):
        return pointer.pubkey
    raise HTTPException(status_code=400, detail=f"Not a profile identifier: {value}")


def _query(store: InMemoryEventStore, ctx: LookupContext, flt: EventFilter) -> list[Event]:
    try:
        return store.query_events(ctx, flt)
    except StorageLookupError as exc:
        raise HTTPException(status_code=503, detail=f"Event store unavailable: {exc}")


def _aggregates(
    store: InMemoryEventStore, ctx: LookupContext, event_id: str
) -> EventAggregates:
    try:
        agg = store.get_aggregates(ctx, event_id)
    except StorageLookupError as exc:
        logger.debug("Aggregates unavailable for %s: %s", event_id[:8], exc)
        agg = None
    return agg or EventAggregates(event_id=event_id)


# ── strony ───────────────────────────────────────────────────────────────────


@router.get("/", response_class=PlainTextResponse)
def home(renderer: GemtextRenderer = Depends(get_renderer)) -> PlainTextResponse:
    return _gemini(renderer.render_home())


@router.get("/note/{note_id}", response_class=PlainTextResponse)
def note(
    note_id: str,
    store: InMemoryEventStore = Depends(get_event_store),
    renderer: GemtextRenderer = Depends(get_renderer),
    builder: Nip10ThreadBuilder = Depends(get_thread_builder),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    event_id = _event_id(note_id)
    events = _query(store, ctx, EventFilter(ids=[event_id], limit=1))
    if not events:
        raise HTTPException(status_code=404, detail=f"Note not found: {note_id}")
    event = events[0]

    thread = None
    if renderer.options.show_thread:
        try:
            thread = builder.build(ctx, event.id)
        except StorageLookupError as exc:
            logger.warning("Thread for %s unavailable: %s", event.id[:8], exc)

    body = renderer.render_note_with_thread(
        event,
        _aggregates(store, ctx, event.id),
        thread,
        thread_url=f"/thread/{event.id}",
        home_url=HOME_URL,
        ctx=ctx,
    )
    return _gemini(body)


@router.get("/thread/{note_id}", response_class=PlainTextResponse)
def thread(
    note_id: str,
    renderer: GemtextRenderer = Depends(get_renderer),
    builder: Nip10ThreadBuilder = Depends(get_thread_builder),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    event_id = _event_id(note_id)
    try:
        view = builder.build(ctx, event_id)
    except StorageLookupError as exc:
        raise HTTPException(status_code=503, detail=f"Event store unavailable: {exc}")
    return _gemini(renderer.render_thread(view, HOME_URL, ctx))


@router.get("/profile/{pubkey}", response_class=PlainTextResponse)
def profile(
    pubkey: str,
    store: InMemoryEventStore = Depends(get_event_store),
    renderer: GemtextRenderer = Depends(get_renderer),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    hex_pubkey = _pubkey(pubkey)
    events = _query(
        store, ctx, EventFilter(authors=[hex_pubkey], kinds=[KIND_METADATA], limit=1)
    )
    if not events:
        raise HTTPException(status_code=404, detail=f"Profile not found: {pubkey}")
    return _gemini(renderer.render_profile(events[0], HOME_URL))


@router.get("/addr/{kind}/{pubkey}/{identifier}", response_class=PlainTextResponse)
def address(
    kind: int,
    pubkey: str,
    identifier: str,
    store: InMemoryEventStore = Depends(get_event_store),
    renderer: GemtextRenderer = Depends(get_renderer),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    events = _query(
        store,
        ctx,
        EventFilter(authors=[pubkey], kinds=[kind], tags={"d": [identifier]}, limit=1),
    )
    if not events:
        raise HTTPException(
            status_code=404, detail=f"Address not found: {kind}/{pubkey}/{identifier}"
        )
    event = events[0]
    body = renderer.render_note(
        event,
        _aggregates(store, ctx, event.id),
        thread_url=f"/thread/{event.id}",
        home_url=HOME_URL,
        ctx=ctx,
    )
    return _gemini(body)


# ── listy ────────────────────────────────────────────────────────────────────


def _note_list(
    store: InMemoryEventStore,
    ctx: LookupContext,
    settings: Settings,
    kind: int,
    replies: Optional[bool],
) -> list[EnrichedEvent]:
    """Najnowsze wpisy danego rodzaju; replies=None → bez filtra odpowiedzi."""
    window = _query(store, ctx, EventFilter(kinds=[kind], limit=settings.thread_query_limit))
    notes = []
    for event in window:
        if replies is not None and parse_thread_info(event).is_reply() != replies:
            continue
        notes.append(EnrichedEvent(event=event, aggregates=_aggregates(store, ctx, event.id)))
        if len(notes) >= settings.list_limit:
            break
    return notes


@router.get("/notes", response_class=PlainTextResponse)
def notes(
    store: InMemoryEventStore = Depends(get_event_store),
    renderer: GemtextRenderer = Depends(get_renderer),
    settings: Settings = Depends(get_settings),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    items = _note_list(store, ctx, settings, KIND_TEXT_NOTE, replies=False)
    return _gemini(renderer.render_note_list(items, "Notes", HOME_URL))


@router.get("/articles", response_class=PlainTextResponse)
def articles(
    store: InMemoryEventStore = Depends(get_event_store),
    renderer: GemtextRenderer = Depends(get_renderer),
    settings: Settings = Depends(get_settings),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    items = _note_list(store, ctx, settings, KIND_LONG_FORM, replies=None)
    return _gemini(renderer.render_note_list(items, "Articles", HOME_URL))


@router.get("/replies", response_class=PlainTextResponse)
def replies(
    store: InMemoryEventStore = Depends(get_event_store),
    renderer: GemtextRenderer = Depends(get_renderer),
    settings: Settings = Depends(get_settings),
    ctx: LookupContext = Depends(get_lookup_context),
) -> PlainTextResponse:
    items = _note_list(store, ctx, settings, KIND_TEXT_NOTE, replies=True)
    return _gemini(renderer.render_note_list(items, "Replies", HOME_URL))
