"""
api/main.py — punkt wejścia FastAPI.

Lifespan:
  - Wczytuje zdarzenia z config.events_path do InMemoryEventStore
    (chyba że store został wstrzyknięty przez create_app, np. w testach)
  - Inicjalizuje adaptery (GemtextRenderer, Nip10ThreadBuilder)

Wszystkie strony zwracają text/gemini; /render/text i /health zwracają JSON.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from adapters.event_store.in_memory_event_store import InMemoryEventStore
from adapters.gemtext_renderer import GemtextRenderer, RenderOptions
from adapters.presentation_loader.static_loader import StaticPresentationLoader
from adapters.thread_builder.nip10_builder import Nip10ThreadBuilder
from api.routers import pages, render
from api.schemas import HealthResponse
from config import Settings

logger = logging.getLogger("nostrgem")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    store: Optional[InMemoryEventStore] = getattr(app.state, "event_store", None)
    if store is None:
        if settings.events_path:
            logger.info("Loading events from %s...", settings.events_path)
            store = InMemoryEventStore.from_file(settings.events_path)
        else:
            logger.warning("NOSTRGEM_EVENTS_PATH not set, serving an empty store.")
            store = InMemoryEventStore()
    app.state.event_store = store

    # Adaptery bezstanowe: tworzone raz, współdzielone przez żądania
    app.state.renderer = GemtextRenderer(
        store,
        options=RenderOptions.from_settings(settings),
        loader=StaticPresentationLoader.from_settings(settings),
    )
    app.state.thread_builder = Nip10ThreadBuilder(
        store, aggregates=store, query_limit=settings.thread_query_limit
    )

    logger.info("Nostrgem API ready (%d events).", len(store))
    yield

    logger.info("Shutting down.")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InMemoryEventStore] = None,
) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if store is not None:
        app.state.event_store = store

    # Routers
    app.include_router(pages.router)
    app.include_router(render.router)

    # Health
    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health(request: Request):
        return HealthResponse(
            status="ok",
            events=len(request.app.state.event_store),
            version=settings.app_version,
        )

    # Globalny handler błędów
    @app.exception_handler(KeyError)
    async def key_error_handler(request: Request, exc: KeyError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    return app


app = create_app()
