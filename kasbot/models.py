from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .conversation import sanitize_context

ContextValue = Union[str, int, float, bool, None]


class ChatRequest(BaseModel):
    """Request payload for the chat API; malformed fields are coerced, not rejected."""
    message: str = ""
    context: Dict[str, ContextValue] = Field(default_factory=dict)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("context", mode="before")
    @classmethod
    def _coerce_context(cls, value: Any) -> Dict[str, ContextValue]:
        return sanitize_context(value)


class Suggestion(BaseModel):
    """Quick-reply chip: the label shown and the text sent when tapped."""
    label: str
    send: str


class ChatResponse(BaseModel):
    """Response payload returned by the chat API."""
    reply: str
    context: Dict[str, ContextValue]
    suggestions: Optional[List[Suggestion]] = None


class RefreshResponse(BaseModel):
    """Outcome of a forced knowledge refresh."""
    ok: bool
    refreshedAt: Optional[str] = None
    version: Optional[int] = None
    fetched: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
