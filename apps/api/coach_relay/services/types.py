"""Value types exchanged between the chat relay services."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from ..core.errors import ValidationError

OutcomeKind = Literal["success", "rate_limited", "timeout", "upstream_error"]
ReplySource = Literal["gemini", "fallback"]


@dataclass(frozen=True)
class GenerationRequest:
    text: str
    system_prompt: str
    model: str

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise ValidationError("Missing text")

    @property
    def prompt(self) -> str:
        """Persona preamble followed by the user's turn."""

        return f"{self.system_prompt}\n\nUser: {self.text}"


@dataclass(frozen=True)
class Success:
    text: str = ""
    kind: OutcomeKind = field(default="success", init=False)


@dataclass(frozen=True)
class RateLimited:
    retry_after_ms: int
    kind: OutcomeKind = field(default="rate_limited", init=False)


@dataclass(frozen=True)
class Timeout:
    kind: OutcomeKind = field(default="timeout", init=False)


@dataclass(frozen=True)
class UpstreamError:
    detail: str
    kind: OutcomeKind = field(default="upstream_error", init=False)


GenerationOutcome = Union[Success, RateLimited, Timeout, UpstreamError]


@dataclass(frozen=True)
class Admitted:
    pass


@dataclass(frozen=True)
class Denied:
    retry_after_ms: int


Admission = Union[Admitted, Denied]


@dataclass(frozen=True)
class ChatReply:
    """Result of a chat turn after the fallback policy has been applied."""

    outcome: GenerationOutcome | Denied | None
    text: str | None = None
    source: ReplySource | None = None
