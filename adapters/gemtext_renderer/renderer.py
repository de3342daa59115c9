"""
Adapter: GemtextRenderer
Składa dokumenty Gemtext ze zdarzeń Nostr.

Strony:
  render_home            — strona startowa z nawigacją
  render_note            — notatka: treść (NIP-19 → nazwy), portale, interakcje, akcje
  render_note_with_thread— notatka + sekcja "## Thread"
  render_thread          — drzewo odpowiedzi (pre-order, twardy limit głębokości)
  render_profile         — profil (kind 0)
  render_note_list       — lista notatek/artykułów z podsumowaniem interakcji
  render_text            — dowolny tekst: rozwiązanie encji + konwersja + zawijanie

Renderowanie jest totalne: żadna metoda publiczna nie rzuca wyjątku.
Błąd fragmentu degraduje tylko ten fragment (surowy tekst / linia zastępcza).
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from adapters.entity_resolver import Nip19EntityResolver, dedup_entities, plain_text_formatter
from adapters.markup_converter.gemtext_converter import MarkdownGemtextConverter
from adapters.text_utils import short_id, single_line, truncate, truncate_pubkey
from contracts import (
    KIND_LONG_FORM,
    EnrichedEvent,
    Event,
    EventAggregates,
    LookupContext,
    ProfileMetadata,
    RenderedText,
    ThreadNode,
    ThreadView,
)
from ports.event_store import EventStore
from ports.markup_converter import MarkupConverter
from ports.presentation_loader import PresentationLoader

from .formatting import format_sats, format_timestamp, summarize
from .options import DEFAULT_MAX_THREAD_DEPTH, RenderOptions
from .portal import PortalLinkGenerator
from .width import clamp_width

logger = logging.getLogger("nostrgem.renderer")

HIDDEN_REPLIES_MARKER = "… additional replies hidden"
THREAD_NOT_FOUND = "Thread not found\n"

_LIST_TITLE_MAX = 120


class GemtextRenderer:
    """
    Renderer Gemtext. Trzyma tylko niezmienną konfigurację i referencje do
    portów — wszystkie bufory są lokalne dla wywołania.
    """

    def __init__(
        self,
        store: EventStore,
        options: Optional[RenderOptions] = None,
        resolver: Optional[Nip19EntityResolver] = None,
        converter: Optional[MarkupConverter] = None,
        loader: Optional[PresentationLoader] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._options = options or RenderOptions()
        self._resolver = resolver or Nip19EntityResolver(store)
        self._portal = PortalLinkGenerator(store, self._options.portal_urls)
        self._converter: MarkupConverter = converter or MarkdownGemtextConverter()
        self._loader = loader
        self._clock = clock

    @property
    def options(self) -> RenderOptions:
        return self._options

    # ── strony ────────────────────────────────────────────────────────────────

    def render_home(self) -> str:
        lines = [
            "# nostrgem - Nostr Gateway",
            "",
            "Browse Nostr content as Gemtext",
            "",
            "## Navigation",
            "",
            "=> /notes Notes",
            "=> /articles Articles",
            "=> /replies Replies",
            "",
            "Powered by nostrgem",
            "",
        ]
        return self._apply_headers_footers("\n".join(lines), "home")

    def render_note(
        self,
        event: Event,
        aggregates: Optional[EventAggregates],
        thread_url: str,
        home_url: str,
        ctx: Optional[LookupContext] = None,
    ) -> str:
        ctx = ctx or LookupContext.background()
        out: list[str] = []

        out.append(f"# Note by {truncate_pubkey(event.pubkey)}\n")
        out.append(f"Posted: {self._timestamp(event.created_at)}\n\n")

        rendered = self.render_text(event.content, ctx)
        if rendered.text:
            out.append(rendered.text + "\n\n")

        entities = dedup_entities(rendered.entities)
        if entities:
            out.append("## Portal Links\n\n")
            out.append(self._portal.render_entity_section(entities))
            out.append("\n")

        show = self._options.show_interactions
        if show and aggregates is not None and aggregates.has_interactions():
            interactions = self.aggregates_line(aggregates)
            if interactions:
                out.append("## Interactions\n\n")
                out.append(interactions)
                out.append("\n")

        out.append("## Actions\n\n")
        out.append(f"=> {thread_url} View Thread\n")
        out.append(f"=> {home_url} Back to Home\n")
        return "".join(out)

    def render_note_with_thread(
        self,
        event: Event,
        aggregates: Optional[EventAggregates],
        thread: Optional[ThreadView],
        thread_url: str,
        home_url: str,
        ctx: Optional[LookupContext] = None,
    ) -> str:
        ctx = ctx or LookupContext.background()
        base = self.render_note(event, aggregates, thread_url, home_url, ctx)
        if thread is None or not self._options.show_thread:
            return base
        return base + "\n## Thread\n\n" + self.render_thread(thread, home_url, ctx)

    def render_thread(
        self,
        thread: Optional[ThreadView],
        home_url: str,
        ctx: Optional[LookupContext] = None,
    ) -> str:
        if thread is None or thread.root is None:
            return THREAD_NOT_FOUND

        ctx = ctx or LookupContext.background()
        out = [f"=> /note/{thread.focus_id} Back to note\n\n"]
        self._thread_node(out, thread.root, 0, thread.focus_id, self._options.max_thread_depth, ctx)
        out.append("\n")
        out.append(f"=> {home_url} Back to Home\n")
        return "".join(out)

    def render_thread_node(
        self,
        node: Optional[ThreadNode],
        depth: int,
        focus_id: str,
        max_depth: int,
        ctx: Optional[LookupContext] = None,
    ) -> str:
        """Poddrzewo od `node` jako tekst; max_depth <= 0 → 10."""
        if max_depth <= 0:
            max_depth = DEFAULT_MAX_THREAD_DEPTH
        out: list[str] = []
        self._thread_node(out, node, depth, focus_id, max_depth, ctx or LookupContext.background())
        return "".join(out)

    def render_profile(self, profile_event: Event, home_url: str) -> str:
        try:
            profile = ProfileMetadata.model_validate_json(profile_event.content)
        except ValueError:
            return (
                f"# Profile: {truncate_pubkey(profile_event.pubkey)}\n\n"
                "Invalid profile data\n\n"
                f"=> {home_url} Back to Home\n"
            )

        out: list[str] = []
        display_name = single_line(profile.preferred_name()) or truncate_pubkey(profile_event.pubkey)
        out.append(f"# {display_name}\n\n")
        out.append(f"Pubkey: {profile_event.pubkey}\n\n")

        if profile.name:
            out.append(f"Name: {single_line(profile.name)}\n")
        if profile.display_name and profile.display_name != profile.name:
            out.append(f"Display Name: {single_line(profile.display_name)}\n")
        if profile.name or profile.display_name:
            out.append("\n")

        if profile.about:
            out.append("## About\n\n")
            out.append(clamp_width(profile.about, self._options.line_width, preserve_fenced=True))
            out.append("\n\n")

        lightning = profile.lightning_address()
        if profile.website or profile.nip05 or lightning:
            out.append("## Contact & Links\n\n")
            if profile.website:
                out.append(f"=> {profile.website} Website\n")
            if profile.nip05:
                out.append(f"NIP-05: {profile.nip05}\n")
            if lightning:
                out.append(f"Lightning: {lightning}\n")
            out.append("\n")

        if profile.picture or profile.banner:
            out.append("## Media\n\n")
            if profile.picture:
                out.append(f"=> {profile.picture} Profile Picture\n")
            if profile.banner:
                out.append(f"=> {profile.banner} Banner Image\n")
            out.append("\n")

        out.append(f"=> {home_url} Back to Home\n")
        return "".join(out)

    def render_note_list(self, notes: list[EnrichedEvent], title: str, home_url: str) -> str:
        page = _page_for_title(title)
        out = [f"# {title}\n\n"]

        if not notes:
            out.append("No notes yet.\n\n")
            out.append(f"=> {home_url} Back to Home\n")
            return self._apply_headers_footers("".join(out), page)

        for i, note in enumerate(notes, 1):
            entry = title_for_event(note.event)
            ts = self._timestamp(note.event.created_at)
            out.append(f"=> /note/{note.event.id} {i}. {entry} - {ts}\n")
            if self._options.show_interactions and note.aggregates.has_interactions():
                interactions = self.aggregates_line(note.aggregates).strip()
                if interactions:
                    out.append(f"   {interactions}\n")

        out.append("\n")
        out.append(f"=> {home_url} Back to Home\n")
        return self._apply_headers_footers("".join(out), page)

    def render_text(self, text: str, ctx: Optional[LookupContext] = None) -> RenderedText:
        """NIP-19 → nazwy, Markdown → Gemtext, zawijanie do line_width."""
        ctx = ctx or LookupContext.background()
        expanded, entities = self._resolver.expand(ctx, text, plain_text_formatter)
        try:
            converted = self._converter.to_gemtext(expanded)
        except Exception as exc:
            logger.warning("Markup conversion failed, using raw text: %s", exc)
            converted = expanded
        clamped = clamp_width(converted, self._options.line_width, preserve_fenced=True)
        return RenderedText(text=clamped, entities=entities)

    # ── fragmenty ─────────────────────────────────────────────────────────────

    def aggregates_line(self, agg: EventAggregates) -> str:
        opts = self._options
        parts: list[str] = []

        if opts.show_replies and agg.reply_count > 0:
            parts.append(f"{agg.reply_count} replies")

        if opts.show_reactions and agg.reaction_total > 0:
            if agg.reaction_counts:
                ordered = sorted(agg.reaction_counts.items(), key=lambda kv: (-kv[1], kv[0]))
                breakdown = ", ".join(f"{emoji} {count}" for emoji, count in ordered)
                parts.append(f"{agg.reaction_total} reactions ({breakdown})")
            else:
                parts.append(f"{agg.reaction_total} reactions")

        if opts.show_zaps and agg.zap_sats_total > 0:
            parts.append(f"{format_sats(agg.zap_sats_total)} zapped")

        if not parts:
            return ""
        return "Interactions: " + ", ".join(parts) + "\n"

    def thread_summary(self, content: str) -> str:
        return summarize(content, self._options.summary_length, self._options.truncate_indicator)

    # ── private ───────────────────────────────────────────────────────────────

    def _thread_node(
        self,
        out: list[str],
        node: Optional[ThreadNode],
        depth: int,
        focus_id: str,
        max_depth: int,
        ctx: LookupContext,
    ) -> None:
        if node is None:
            return

        prefix = self._options.thread_indent * depth
        if depth >= max_depth:
            out.append(f"{prefix}{HIDDEN_REPLIES_MARKER}\n")
            return

        markers: list[str] = []
        if depth == 0:
            markers.append("root")
        if node.event.id == focus_id:
            markers.append("you are here")

        summary = self.thread_summary(node.event.content)
        line = f"{prefix}* {summary} ({self._timestamp(node.event.created_at)})"
        if markers:
            line = f"{line} [{', '.join(markers)}]"
        out.append(line + "\n")

        portals = self._portal.links_for_event(ctx, node.event)
        if portals:
            for url in portals:
                out.append(f"{prefix}=> {url} Open\n")
        else:
            out.append(f"{prefix}=> /note/{node.event.id} Open note\n")

        for child in node.children:
            self._thread_node(out, child, depth + 1, focus_id, max_depth, ctx)

    def _timestamp(self, created_at: int) -> str:
        return format_timestamp(created_at, now=self._clock())

    def _apply_headers_footers(self, content: str, page: str) -> str:
        if self._loader is None:
            return content

        header = footer = ""
        try:
            header = self._loader.get_header(page)
        except Exception as exc:
            logger.warning("Header for page %r unavailable: %s", page, exc)
        try:
            footer = self._loader.get_footer(page)
        except Exception as exc:
            logger.warning("Footer for page %r unavailable: %s", page, exc)

        out = []
        if header:
            out.append(header + "\n\n")
        out.append(content)
        if footer:
            out.append("\n\n" + footer)
        return "".join(out)


def title_for_event(event: Event) -> str:
    """Tytuł wpisu na liście: tag "title" (30023), pierwsza linia treści lub id."""
    if event.kind == KIND_LONG_FORM:
        title = single_line(event.tag_value("title"))
        if title:
            return title

    content = event.content.strip()
    if not content:
        if len(event.id) > 8:
            return f"Event {short_id(event.id)}..."
        return f"Event {event.id}"

    return truncate(content.split("\n")[0], _LIST_TITLE_MAX)


def _page_for_title(title: str) -> str:
    lowered = title.lower()
    if "article" in lowered:
        return "articles"
    if "repl" in lowered:
        return "replies"
    return "notes"
