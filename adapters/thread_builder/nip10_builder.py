"""
Adapter: Nip10ThreadBuilder
Buduje ThreadView (drzewo odpowiedzi) na podstawie tagów "e" wg NIP-10.

Kolejność:
  1. zdarzenie fokusowe (po id) — brak → None
  2. id korzenia z ThreadInfo; brak korzenia w store → fokus jako korzeń
  3. odpowiedzi kind 1 z "#e" = korzeń
  4. podpięcie do rodzica (nieznany rodzic lub pętla na sobie → korzeń)
  5. sortowanie dzieci chronologicznie
"""
from __future__ import annotations

import logging
from typing import Optional

from contracts import (
    KIND_LONG_FORM,
    KIND_TEXT_NOTE,
    Event,
    EventAggregates,
    EventFilter,
    LookupContext,
    ThreadInfo,
    ThreadNode,
    ThreadView,
)
from ports.event_store import AggregateSource, EventStore

logger = logging.getLogger("nostrgem.thread_builder")

_THREADABLE_KINDS = (KIND_TEXT_NOTE, KIND_LONG_FORM)


def parse_thread_info(event: Event) -> ThreadInfo:
    """Relacje wątku z tagów "e". Rzuca ValueError dla rodzajów spoza 1/30023."""
    if event.kind not in _THREADABLE_KINDS:
        raise ValueError(f"expected threadable kind (1 or 30023), got {event.kind}")

    e_tags = [tag for tag in event.tags if len(tag) >= 2 and tag[0] == "e"]
    if not e_tags:
        return ThreadInfo()

    if any(len(tag) >= 4 and tag[3] != "" for tag in e_tags):
        return _parse_marked(e_tags)
    return _parse_positional(e_tags)


def _parse_marked(e_tags: list[list[str]]) -> ThreadInfo:
    info = ThreadInfo()
    for tag in e_tags:
        marker = tag[3] if len(tag) >= 4 else ""
        if marker == "root":
            info.root_event_id = tag[1]
        elif marker == "reply":
            info.reply_to_id = tag[1]
        else:
            # "mention" albo brak markera
            info.mentioned_ids.append(tag[1])

    if info.reply_to_id and not info.root_event_id:
        info.root_event_id = info.reply_to_id
    return info


def _parse_positional(e_tags: list[list[str]]) -> ThreadInfo:
    """Przestarzały format pozycyjny: [root, ...mentions, reply]."""
    if len(e_tags) == 1:
        return ThreadInfo(root_event_id=e_tags[0][1], reply_to_id=e_tags[0][1])
    return ThreadInfo(
        root_event_id=e_tags[0][1],
        reply_to_id=e_tags[-1][1],
        mentioned_ids=[tag[1] for tag in e_tags[1:-1]],
    )


class Nip10ThreadBuilder:
    """Składa ThreadView z EventStore; agregaty opcjonalnie z AggregateSource."""

    def __init__(
        self,
        store: EventStore,
        aggregates: Optional[AggregateSource] = None,
        query_limit: int = 500,
    ) -> None:
        self._store = store
        self._aggregates = aggregates
        self._limit = query_limit

    def build(self, ctx: LookupContext, event_id: str) -> Optional[ThreadView]:
        focus = self._fetch(ctx, event_id)
        if focus is None:
            return None

        root_id = event_id
        if focus.kind in _THREADABLE_KINDS:
            root_id = parse_thread_info(focus).root_or_self(event_id)

        root_event = self._fetch(ctx, root_id) or focus
        root_id = root_event.id

        replies = self._store.query_events(
            ctx,
            EventFilter(kinds=[KIND_TEXT_NOTE], tags={"e": [root_id]}, limit=self._limit),
        )

        root = ThreadNode(event=root_event, aggregates=self._aggregates_for(ctx, root_event))
        nodes: dict[str, ThreadNode] = {root_id: root}
        for reply in replies:
            if reply.id not in nodes:
                nodes[reply.id] = ThreadNode(
                    event=reply, aggregates=self._aggregates_for(ctx, reply)
                )

        for reply in replies:
            if reply.id == root_id:
                continue
            info = parse_thread_info(reply)
            if info.root_event_id and info.root_event_id != root_id:
                # odpowiedź z innego wątku
                continue
            parent_id = info.reply_to_id or root_id
            if parent_id == reply.id or parent_id not in nodes:
                parent_id = root_id
            nodes[parent_id].children.append(nodes[reply.id])

        _sort_children(root)
        return ThreadView(root=root, focus_id=event_id)

    # ── private ───────────────────────────────────────────────────────────────

    def _fetch(self, ctx: LookupContext, event_id: str) -> Optional[Event]:
        events = self._store.query_events(ctx, EventFilter(ids=[event_id], limit=1))
        return events[0] if events else None

    def _aggregates_for(self, ctx: LookupContext, event: Event) -> Optional[EventAggregates]:
        if self._aggregates is None:
            return None
        try:
            return self._aggregates.get_aggregates(ctx, event.id)
        except Exception as exc:
            logger.debug("Brak agregatów dla %s: %s", event.id[:8], exc)
            return None


def _sort_children(node: ThreadNode) -> None:
    stack = [node]
    while stack:
        current = stack.pop()
        current.children.sort(key=lambda c: c.event.created_at)
        stack.extend(current.children)
