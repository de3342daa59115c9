"""
dependencies.py — FastAPI Dependency Injection.
Każda zależność zwraca odpowiedni adapter przez Request.app.state.
"""
from __future__ import annotations

from fastapi import Request

from adapters.event_store.in_memory_event_store import InMemoryEventStore
from adapters.gemtext_renderer import GemtextRenderer
from adapters.thread_builder.nip10_builder import Nip10ThreadBuilder
from config import Settings
from contracts import LookupContext


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_event_store(request: Request) -> InMemoryEventStore:
    return request.app.state.event_store


def get_renderer(request: Request) -> GemtextRenderer:
    return request.app.state.renderer


def get_thread_builder(request: Request) -> Nip10ThreadBuilder:
    return request.app.state.thread_builder


def get_lookup_context(request: Request) -> LookupContext:
    """Nowy kontekst per żądanie — deadline z config.lookup_timeout_ms."""
    timeout_ms = request.app.state.settings.lookup_timeout_ms
    if timeout_ms <= 0:
        return LookupContext.background()
    return LookupContext.with_timeout(timeout_ms)
