"""
Router: POST /render/text

Dowolny tekst → Gemtext: identyfikatory nostr: zamienione na nazwy,
Markdown skonwertowany, linie zawinięte do config.line_width.
Zwraca JSON z tekstem i listą rozwiązanych encji.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from adapters.entity_resolver import dedup_entities
from adapters.gemtext_renderer import GemtextRenderer
from api.dependencies import get_lookup_context, get_renderer
from api.schemas import RenderTextRequest, RenderTextResponse
from contracts import LookupContext

router = APIRouter(prefix="/render", tags=["render"])


@router.post("/text", response_model=RenderTextResponse)
def render_text(
    body: RenderTextRequest,
    renderer: GemtextRenderer = Depends(get_renderer),
    ctx: LookupContext = Depends(get_lookup_context),
) -> RenderTextResponse:
    rendered = renderer.render_text(body.text, ctx)
    entities = dedup_entities(rendered.entities) if body.dedup else rendered.entities
    return RenderTextResponse(text=rendered.text, entities=entities)
