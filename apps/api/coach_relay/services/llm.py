"""Gemini text generation bounded by a timeout."""
from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Any, Dict, Optional, Protocol

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from ..core.config import settings
from ..core.errors import ConfigurationError
from .retry_delay import parse_retry_delay
from .types import GenerationOutcome, GenerationRequest, RateLimited, Success, Timeout, UpstreamError

logger = logging.getLogger(__name__)

THROTTLED_STATUSES = {HTTPStatus.TOO_MANY_REQUESTS.value, "RESOURCE_EXHAUSTED", "TOO_MANY_REQUESTS"}


class TextGenerator(Protocol):
    async def generate(self, prompt: str, model: str) -> Optional[str]:
        ...


def _configure_api(api_key: str) -> None:
    """Point the Google Generative AI client at ``api_key`` when it changes."""

    global _configured_key
    if not api_key.strip():
        raise ConfigurationError("Missing GEMINI_API_KEY")

    if api_key != _configured_key:
        genai.configure(api_key=api_key)
        _configured_key = api_key
        _model_cache.clear()


_configured_key: Optional[str] = None
_model_cache: Dict[str, genai.GenerativeModel] = {}


def _get_model(name: str, api_key: str) -> genai.GenerativeModel:
    """Return a cached Gemini model instance."""

    _configure_api(api_key)
    model_name = name.strip()
    if not model_name:
        raise ConfigurationError("Gemini model name was empty")

    if model_name not in _model_cache:
        _model_cache[model_name] = genai.GenerativeModel(model_name)
    return _model_cache[model_name]


class GeminiGenerator:
    """Text generator backed by ``google-generativeai``.

    Without an explicit ``api_key`` the process settings are read on each call.
    """

    def __init__(self, api_key: Optional[str] = None) -> None:
        self._api_key = api_key

    @property
    def api_key(self) -> str:
        return self._api_key if self._api_key is not None else settings.gemini_api_key

    async def generate(self, prompt: str, model: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        gemini_model = _get_model(model, self.api_key)

        def _run_inference() -> Optional[str]:
            response = gemini_model.generate_content(prompt)
            try:
                return response.text
            except ValueError:
                # no candidate parts, e.g. the reply was blocked
                return None

        return await loop.run_in_executor(None, _run_inference)


gemini_generator = GeminiGenerator()


def is_throttled(error: BaseException) -> bool:
    """True when the provider rejected the call with a "too many requests" status."""

    if isinstance(error, (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests)):
        return True
    for attribute in ("status", "code", "status_code"):
        value = getattr(error, attribute, None)
        if isinstance(value, int) and value in THROTTLED_STATUSES:
            return True
        if isinstance(value, str) and value.upper() in THROTTLED_STATUSES:
            return True
    return False


def _discard_late_result(task: asyncio.Task[Any]) -> None:
    """Consume the result of an abandoned call so it never surfaces."""

    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Abandoned Gemini call finished with %r", error)
    else:
        logger.debug("Abandoned Gemini call finished; result discarded")


async def call_with_timeout(
    request: GenerationRequest,
    timeout_ms: int,
    generator: Optional[TextGenerator] = None,
) -> GenerationOutcome:
    """Race the upstream call against ``timeout_ms`` and normalize the result."""

    backend = generator or gemini_generator
    task = asyncio.ensure_future(backend.generate(request.prompt, request.model))

    try:
        done, _ = await asyncio.wait({task}, timeout=max(0, timeout_ms) / 1000)
    except asyncio.CancelledError:
        task.add_done_callback(_discard_late_result)
        raise
    if task not in done:
        task.add_done_callback(_discard_late_result)
        logger.warning("Gemini call exceeded %d ms; abandoning it", timeout_ms)
        return Timeout()

    error = task.exception()
    if error is None:
        return Success(text=task.result() or "")

    if isinstance(error, ConfigurationError):
        raise error
    if is_throttled(error):
        retry_after_ms = parse_retry_delay(error)
        logger.warning("Gemini throttled the request; retry in %d ms", retry_after_ms)
        return RateLimited(retry_after_ms=retry_after_ms)

    logger.error("Gemini generate_content failed: %s", error)
    return UpstreamError(detail=str(error))
