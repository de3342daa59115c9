#!/usr/bin/env python3
"""
nostrgem.py — CLI narzędzie Nostrgem.

Działa całkowicie lokalnie — zdarzenia wczytuje z pliku JSON/JSONL
(--events albo NOSTRGEM_EVENTS_PATH), nie wymaga uruchomionego serwera API.

Podkomendy:
    scan     — wypisz identyfikatory nostr: znalezione w tekście
    resolve  — rozwiąż jeden identyfikator NIP-19 (nazwa + ścieżka)
    expand   — podmień identyfikatory w tekście na nazwy/linki
    clamp    — zawiń linie dokumentu Gemtext do zadanej szerokości
    note     — wyrenderuj notatkę (z wątkiem)
    thread   — wyrenderuj drzewo odpowiedzi
    profile  — wyrenderuj profil (kind 0)

Użycie:
    python nostrgem.py scan --text "gm nostr:npub1..."
    python nostrgem.py resolve npub1... --events dump.jsonl
    python nostrgem.py expand --file note.md --format link --dedup
    python nostrgem.py clamp --width 60 --file page.gmi
    python nostrgem.py note <hex-id|note1...> --events dump.jsonl
    python nostrgem.py thread <hex-id> --events dump.jsonl --max-depth 5
    python nostrgem.py profile <hex-pubkey|npub1...> --events dump.jsonl
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

# -- helpers ---------------------------------------------------------------

_CONSOLE: Console | None = None


def _console() -> Console:
    global _CONSOLE
    if _CONSOLE is None:
        _CONSOLE = Console(highlight=False)
    return _CONSOLE


def _safe_terminal_text(value: Any) -> str:
    s = str(value).replace("…", "...").replace("→", "->")
    encoding = sys.stdout.encoding or "utf-8"
    try:
        s.encode(encoding)
        return s
    except UnicodeEncodeError:
        return s.encode(encoding, errors="replace").decode(encoding, errors="replace")


def _short(value: Any, limit: int = 64) -> str:
    s = _safe_terminal_text(value).replace("\n", " ").strip()
    if len(s) <= limit:
        return s
    return s[: limit - 3] + "..."


def _print_kv_table(title: str, rows: list[tuple[str, Any]]) -> None:
    table = Table(title=title, box=box.ASCII, show_header=False, pad_edge=False)
    table.add_column("Key", no_wrap=True, style="bold cyan")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(_safe_terminal_text(key), _safe_terminal_text(value))
    _console().print(table)


def _print_entities_table(entities: list[Any]) -> None:
    table = Table(title=f"Entities [{len(entities)}]", box=box.ASCII, show_lines=False)
    table.add_column("#", justify="right", no_wrap=True)
    table.add_column("Type", no_wrap=True, style="cyan")
    table.add_column("Name")
    table.add_column("Link")
    table.add_column("Identifier")
    for idx, entity in enumerate(entities, 1):
        table.add_row(
            str(idx),
            entity.entity_type,
            _short(entity.display_name, 40),
            _short(entity.link, 48),
            _short(entity.token, 32),
        )
    _console().print(table)


def _read_text(args: argparse.Namespace) -> str:
    if getattr(args, "file", None):
        try:
            with open(args.file, encoding="utf-8") as fh:
                return fh.read()
        except OSError as e:
            print(f"Błąd odczytu pliku: {e}", file=sys.stderr)
            sys.exit(1)
    text = getattr(args, "text", None) or sys.stdin.read()
    if not text.strip():
        print("Błąd: podaj tekst przez --text, --file lub stdin", file=sys.stderr)
        sys.exit(1)
    return text


def _settings():
    from config import Settings
    return Settings()


def _store(args: argparse.Namespace):
    from adapters.event_store.in_memory_event_store import InMemoryEventStore

    path = args.events or _settings().events_path
    if not path:
        return InMemoryEventStore()
    try:
        return InMemoryEventStore.from_file(path)
    except (OSError, ValueError) as exc:
        print(f"Błąd wczytywania zdarzeń: {exc}", file=sys.stderr)
        sys.exit(1)


def _renderer(store, args: argparse.Namespace):
    from adapters.gemtext_renderer import GemtextRenderer, RenderOptions
    from adapters.presentation_loader.static_loader import StaticPresentationLoader

    settings = _settings()
    options = RenderOptions.from_settings(settings)
    overrides = {}
    if getattr(args, "width", None) is not None:
        overrides["line_width"] = args.width
    if getattr(args, "max_depth", None) is not None:
        overrides["max_thread_depth"] = args.max_depth
    if overrides:
        options = RenderOptions.model_validate({**options.model_dump(), **overrides})
    return GemtextRenderer(
        store, options=options, loader=StaticPresentationLoader.from_settings(settings)
    )


def _hex_id(value: str, kinds: tuple[type, ...]) -> str:
    from adapters.entity_resolver import decode
    from errors import ResolutionError

    if not value.startswith(("note1", "nevent1", "npub1", "nprofile1")):
        return value
    try:
        pointer = decode(value)
    except ResolutionError as exc:
        print(f"Błąd identyfikatora: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(pointer, kinds):
        print(f"Błąd: nieobsługiwany typ identyfikatora: {value}", file=sys.stderr)
        sys.exit(1)
    return getattr(pointer, "event_id", None) or pointer.pubkey


# -- commands --------------------------------------------------------------


def _scan(args: argparse.Namespace) -> None:
    from adapters.entity_resolver import scan

    tokens = scan(_read_text(args))
    if not tokens:
        print("Brak identyfikatorów.")
        return

    table = Table(title=f"Identifiers [{len(tokens)}]", box=box.ASCII, show_lines=False)
    table.add_column("#", justify="right", no_wrap=True)
    table.add_column("Type", no_wrap=True, style="cyan")
    table.add_column("Identifier")
    for idx, token in enumerate(tokens, 1):
        table.add_row(str(idx), token.split("1", 1)[0], _short(token, 72))
    _console().print(table)


def _resolve(args: argparse.Namespace) -> None:
    from adapters.entity_resolver import Nip19EntityResolver
    from contracts import LookupContext
    from errors import ResolutionError

    token = args.token.removeprefix("nostr:")
    resolver = Nip19EntityResolver(_store(args))
    try:
        entity = resolver.resolve(LookupContext.background(), token)
    except ResolutionError as exc:
        print(f"Błąd rozwiązywania: {exc}", file=sys.stderr)
        sys.exit(1)

    _print_kv_table("Resolved entity", [
        ("type", entity.entity_type),
        ("name", entity.display_name),
        ("link", entity.link),
        ("identifier", entity.token),
    ])


def _expand(args: argparse.Namespace) -> None:
    from adapters.entity_resolver import (
        Nip19EntityResolver,
        dedup_entities,
        identity_formatter,
        link_label_formatter,
        plain_text_formatter,
    )
    from contracts import LookupContext

    formatters = {
        "plain": plain_text_formatter,
        "link": link_label_formatter,
        "identity": identity_formatter,
    }
    text = _read_text(args)
    resolver = Nip19EntityResolver(_store(args))
    expanded, entities = resolver.expand(
        LookupContext.background(), text, formatters[args.format]
    )
    print(expanded)
    if args.quiet:
        return
    if args.dedup:
        entities = dedup_entities(entities)
    if entities:
        _print_entities_table(entities)


def _clamp(args: argparse.Namespace) -> None:
    from adapters.gemtext_renderer import clamp_width

    print(clamp_width(_read_text(args), args.width, preserve_fenced=args.preserve_fenced))


def _note(args: argparse.Namespace) -> None:
    from adapters.thread_builder.nip10_builder import Nip10ThreadBuilder
    from contracts import EventFilter, EventPointer, LookupContext, NotePointer

    store = _store(args)
    event_id = _hex_id(args.event_id, (NotePointer, EventPointer))
    ctx = LookupContext.background()
    events = store.query_events(ctx, EventFilter(ids=[event_id], limit=1))
    if not events:
        print(f"Nie znaleziono notatki: {args.event_id}", file=sys.stderr)
        sys.exit(1)

    event = events[0]
    renderer = _renderer(store, args)
    thread = Nip10ThreadBuilder(store, aggregates=store).build(ctx, event.id)
    print(renderer.render_note_with_thread(
        event,
        store.get_aggregates(ctx, event.id),
        thread,
        thread_url=f"/thread/{event.id}",
        home_url="/",
        ctx=ctx,
    ), end="")


def _thread(args: argparse.Namespace) -> None:
    from adapters.thread_builder.nip10_builder import Nip10ThreadBuilder
    from contracts import EventPointer, LookupContext, NotePointer

    store = _store(args)
    event_id = _hex_id(args.event_id, (NotePointer, EventPointer))
    ctx = LookupContext.background()
    view = Nip10ThreadBuilder(store, aggregates=store).build(ctx, event_id)
    print(_renderer(store, args).render_thread(view, "/", ctx), end="")


def _profile(args: argparse.Namespace) -> None:
    from contracts import KIND_METADATA, EventFilter, LookupContext, ProfilePointer, PubkeyPointer

    store = _store(args)
    pubkey = _hex_id(args.pubkey, (PubkeyPointer, ProfilePointer))
    events = store.query_events(
        LookupContext.background(),
        EventFilter(authors=[pubkey], kinds=[KIND_METADATA], limit=1),
    )
    if not events:
        print(f"Nie znaleziono profilu: {args.pubkey}", file=sys.stderr)
        sys.exit(1)
    print(_renderer(store, args).render_profile(events[0], "/"), end="")


# -- main ------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="nostrgem",
        description="Nostrgem — CLI (lokalny, bez serwera API)",
    )
    parser.add_argument("--events", "-e", default="",
                        help="Plik JSON/JSONL ze zdarzeniami (domyślnie NOSTRGEM_EVENTS_PATH)")
    parser.add_argument("--log-level", default=None,
                        help="Poziom logowania (domyślnie NOSTRGEM_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    # scan
    p = sub.add_parser("scan", help="Wypisz identyfikatory nostr: z tekstu")
    p.add_argument("--text", "-t", help="Tekst (lub stdin)")
    p.add_argument("--file", "-f", help="Ścieżka do pliku z tekstem")

    # resolve
    p = sub.add_parser("resolve", help="Rozwiąż identyfikator NIP-19")
    p.add_argument("token", help="npub1/nprofile1/note1/nevent1/naddr1 (z nostr: lub bez)")

    # expand
    p = sub.add_parser("expand", help="Podmień identyfikatory w tekście")
    p.add_argument("--text", "-t", help="Tekst (lub stdin)")
    p.add_argument("--file", "-f", help="Ścieżka do pliku z tekstem")
    p.add_argument("--format", default="plain", choices=["plain", "link", "identity"])
    p.add_argument("--dedup", action="store_true", help="Tabela encji bez duplikatów")
    p.add_argument("--quiet", "-q", action="store_true", help="Tylko tekst, bez tabeli encji")

    # clamp
    p = sub.add_parser("clamp", help="Zawiń linie dokumentu Gemtext")
    p.add_argument("--width", "-w", type=int, required=True, help="Szerokość (0 = bez zmian)")
    p.add_argument("--text", "-t", help="Dokument (lub stdin)")
    p.add_argument("--file", "-f", help="Ścieżka do pliku .gmi")
    p.add_argument("--preserve-fenced", action="store_true",
                   help="Nie zawijaj treści bloków ```")

    # note
    p = sub.add_parser("note", help="Wyrenderuj notatkę z wątkiem")
    p.add_argument("event_id", help="hex id, note1... lub nevent1...")
    p.add_argument("--width", "-w", type=int, default=None, help="Szerokość linii")
    p.add_argument("--max-depth", type=int, default=None, help="Maks. głębokość wątku")

    # thread
    p = sub.add_parser("thread", help="Wyrenderuj drzewo odpowiedzi")
    p.add_argument("event_id", help="hex id, note1... lub nevent1...")
    p.add_argument("--max-depth", type=int, default=None, help="Maks. głębokość wątku")

    # profile
    p = sub.add_parser("profile", help="Wyrenderuj profil")
    p.add_argument("pubkey", help="hex pubkey, npub1... lub nprofile1...")
    p.add_argument("--width", "-w", type=int, default=None, help="Szerokość linii")

    args = parser.parse_args()
    logging.basicConfig(level=(args.log_level or _settings().log_level).upper())

    cmds = {
        "scan":    _scan,
        "resolve": _resolve,
        "expand":  _expand,
        "clamp":   _clamp,
        "note":    _note,
        "thread":  _thread,
        "profile": _profile,
    }
    cmds[args.command](args)


if __name__ == "__main__":
    main()
