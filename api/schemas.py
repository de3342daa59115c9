"""
schemas.py — Request/Response modele FastAPI.
Oddzielone od contracts.py żeby API mogło ewoluować niezależnie.
"""
from __future__ import annotations

from pydantic import BaseModel, Field

from contracts import ResolvedEntity


# ─────────────────────────── /render/text ────────────────────────

class RenderTextRequest(BaseModel):
    text: str
    dedup: bool = False  # zwraca encje bez duplikatów (identyfikacja po original_text)


class RenderTextResponse(BaseModel):
    text: str
    entities: list[ResolvedEntity] = Field(default_factory=list)


# ─────────────────────────── /health ─────────────────────────────

class HealthResponse(BaseModel):
    status: str
    events: int
    version: str
