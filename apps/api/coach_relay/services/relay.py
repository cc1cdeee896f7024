"""Chat relay combining the cooldown gate, bounded Gemini call, and fallback."""
from __future__ import annotations

import logging
import random
from typing import Optional

from ..core.config import FallbackPolicy, Settings, settings
from ..core.errors import ConfigurationError, ValidationError
from . import fallback as fallback_responder
from .cooldown import CooldownGate
from .llm import GeminiGenerator, TextGenerator, call_with_timeout
from .types import Admission, ChatReply, Denied, GenerationOutcome, GenerationRequest, RateLimited, Success

logger = logging.getLogger(__name__)


class ChatRelay:
    """Entry point the HTTP layer uses for text generation."""

    def __init__(
        self,
        gate: Optional[CooldownGate] = None,
        generator: Optional[TextGenerator] = None,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.gate = gate or CooldownGate()
        self._generator = generator
        self._config = config
        self._rng = rng or random.Random()

    @property
    def config(self) -> Settings:
        return self._config or settings

    @property
    def generator(self) -> TextGenerator:
        """The injected generator, or Gemini using this relay's configured key."""

        return self._generator or GeminiGenerator(api_key=self.config.gemini_api_key)

    @property
    def fallback_policy(self) -> FallbackPolicy:
        return self.config.fallback_policy

    def admit_check(self, now: Optional[int] = None) -> Admission:
        return self.gate.try_admit(now)

    def fallback(self, text: str) -> str:
        return fallback_responder.respond(text, self._rng)

    def ensure_configured(self) -> None:
        """Raise when Gemini cannot be called because credentials are missing."""

        if self._generator is None and not self.config.gemini_api_key.strip():
            raise ConfigurationError("Missing GEMINI_API_KEY")
        if not self.config.gemini_model.strip():
            raise ConfigurationError("Missing GEMINI_MODEL")

    async def generate(self, text: str) -> GenerationOutcome:
        """Call Gemini once and teach the gate about any throttling it reports."""

        request = GenerationRequest(
            text=text,
            system_prompt=self.config.coach_system_prompt,
            model=self.config.gemini_model,
        )
        self.ensure_configured()
        outcome = await call_with_timeout(request, self.config.request_timeout_ms, self.generator)
        if isinstance(outcome, RateLimited):
            self.gate.record_throttled(None, outcome.retry_after_ms)
        return outcome

    async def reply(self, text: str) -> ChatReply:
        """Run a full chat turn: validation, admission, generation, fallback."""

        if not (text or "").strip():
            raise ValidationError("Missing text")

        if self.fallback_policy == "always":
            return ChatReply(outcome=None, text=self.fallback(text), source="fallback")

        self.ensure_configured()
        admission = self.admit_check()
        if isinstance(admission, Denied):
            logger.info("Chat denied during cooldown; retry in %d ms", admission.retry_after_ms)
            return ChatReply(outcome=admission)

        outcome = await self.generate(text)
        if isinstance(outcome, Success):
            return ChatReply(outcome=outcome, text=outcome.text, source="gemini")
        if isinstance(outcome, RateLimited) or self.fallback_policy == "never":
            return ChatReply(outcome=outcome)

        logger.info("Answering with fallback reply after %s", outcome.kind)
        return ChatReply(outcome=outcome, text=self.fallback(text), source="fallback")


chat_relay = ChatRelay()
