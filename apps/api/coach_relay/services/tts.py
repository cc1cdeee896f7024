"""Text-to-speech pass-through to ElevenLabs."""
from __future__ import annotations

import logging
from typing import Tuple

import httpx

from ..core.config import settings
from ..core.errors import ConfigurationError, SpeechProviderError

logger = logging.getLogger(__name__)

AUDIO_MEDIA_TYPE = "audio/mpeg"


async def synthesize_speech(text: str) -> Tuple[bytes, str]:
    """Return MP3 audio bytes for the supplied text."""

    if not settings.elevenlabs_api_key:
        raise ConfigurationError("Missing ELEVENLABS_API_KEY")
    if not settings.elevenlabs_voice_id:
        raise ConfigurationError("Missing ELEVENLABS_VOICE_ID")

    logger.info("[TTS] textLen=%d", len(text))
    timeout = settings.request_timeout_ms / 1000
    try:
        async with httpx.AsyncClient(base_url=settings.elevenlabs_base_url, timeout=timeout) as client:
            response = await client.post(
                f"/v1/text-to-speech/{settings.elevenlabs_voice_id}",
                headers={
                    "xi-api-key": settings.elevenlabs_api_key,
                    "Accept": AUDIO_MEDIA_TYPE,
                },
                json={"text": text, "model_id": settings.elevenlabs_tts_model},
            )
    except httpx.HTTPError as exc:
        raise SpeechProviderError(f"ElevenLabs text-to-speech request failed: {exc}") from exc

    if response.is_error:
        raise SpeechProviderError(
            "ElevenLabs text-to-speech failed",
            status_code=response.status_code,
            body=response.text,
        )

    audio = response.content
    logger.info("[TTS] status=%d bytes=%d", response.status_code, len(audio))
    return audio, AUDIO_MEDIA_TYPE
