"""
RollCall – Pydantic schemas for all API request / response bodies.
"""

from pydantic import BaseModel, Field
from typing import Any

from models import CallerIdentity, ConversationTurn


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------
class ChatQueryRequest(BaseModel):
    """Body sent by the chat widget / bot transport."""
    message: str = Field(..., min_length=1, max_length=500, description="Natural-language question about attendance, classes, students or teachers.")
    conversation_history: list[ConversationTurn] = []
    caller: CallerIdentity | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class ChatQueryResponse(BaseModel):
    """Full pipeline response returned to the caller."""
    success:  bool
    response: str                   = ""
    data:     dict[str, Any] | None = None
    error:    str | None            = None
    stage:    str                   = ""   # last completed stage for debugging
    debug:    dict[str, Any]        = {}


class StatusResponse(BaseModel):
    available: bool
    model:     str
    models:    list[str] | None = None


class HealthResponse(BaseModel):
    status: str
    db:     str
    model:  str
    config: dict[str, Any] = {}
