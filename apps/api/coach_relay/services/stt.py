"""Speech-to-text pass-through to ElevenLabs."""
from __future__ import annotations

import logging
from typing import Any, Tuple

import httpx

from ..core.config import settings
from ..core.errors import ConfigurationError, SpeechProviderError

logger = logging.getLogger(__name__)

STT_PATH = "/v1/speech-to-text"


def _extract_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    result = data.get("result")
    nested = result.get("text") if isinstance(result, dict) else None
    return data.get("text") or data.get("transcript") or nested or ""


async def transcribe_audio(
    audio_bytes: bytes,
    filename: str = "audio.wav",
    content_type: str = "audio/wav",
) -> Tuple[str, Any]:
    """Return the transcript and the raw provider payload for the supplied audio."""

    if not settings.elevenlabs_api_key:
        raise ConfigurationError("Missing ELEVENLABS_API_KEY")

    logger.info("[STT] bytes=%d", len(audio_bytes))
    timeout = settings.request_timeout_ms / 1000
    try:
        async with httpx.AsyncClient(base_url=settings.elevenlabs_base_url, timeout=timeout) as client:
            response = await client.post(
                STT_PATH,
                headers={"xi-api-key": settings.elevenlabs_api_key},
                files={"file": (filename, audio_bytes, content_type)},
                data={"model_id": settings.elevenlabs_stt_model},
            )
    except httpx.HTTPError as exc:
        raise SpeechProviderError(f"ElevenLabs speech-to-text request failed: {exc}") from exc

    logger.info("[STT] status=%d", response.status_code)
    try:
        data = response.json()
    except ValueError as exc:
        raise SpeechProviderError(
            "ElevenLabs speech-to-text returned a non-JSON body",
            status_code=response.status_code,
            body=response.text,
        ) from exc

    return _extract_text(data), data
