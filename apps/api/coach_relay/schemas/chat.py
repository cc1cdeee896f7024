"""Request and response bodies for the relay endpoints."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class TextRequest(BaseModel):
    text: str = Field(default="", description="User text or text to synthesize")


class ChatResponse(BaseModel):
    text: str
    source: Literal["gemini", "fallback"]


class TranscriptResponse(BaseModel):
    text: str
    raw: Any = None


class RateLimitedResponse(BaseModel):
    error: Literal["rate_limited"] = "rate_limited"
    retryAfterMs: int


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
