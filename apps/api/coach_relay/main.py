"""FastAPI relay between the voice client, ElevenLabs, and Gemini."""
from __future__ import annotations

import logging
import math

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .core.config import settings
from .core.errors import ConfigurationError, SpeechProviderError, ValidationError
from .core.logging_config import configure_logging
from .schemas.chat import ChatResponse, ErrorResponse, RateLimitedResponse, TextRequest, TranscriptResponse
from .services.relay import ChatRelay, chat_relay
from .services.stt import transcribe_audio
from .services.tts import synthesize_speech
from .services.types import Denied, RateLimited, Timeout

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Coach Relay API", version="0.1.0")

if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


@app.exception_handler(ValidationError)
@app.exception_handler(ConfigurationError)
async def bad_request_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content=ErrorResponse(error=str(exc)).model_dump(exclude_none=True))


@app.exception_handler(SpeechProviderError)
async def speech_provider_handler(_request: Request, exc: SpeechProviderError) -> Response:
    logger.error("Speech provider error (status=%s): %s", exc.status_code, exc)
    if exc.body:
        return Response(status_code=500, content=exc.body, media_type="text/plain")
    return JSONResponse(status_code=500, content=ErrorResponse(error=str(exc)).model_dump(exclude_none=True))


def get_chat_relay() -> ChatRelay:
    return chat_relay


def _rate_limited_response(retry_after_ms: int) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=RateLimitedResponse(retryAfterMs=retry_after_ms).model_dump(),
        headers={"Retry-After": str(math.ceil(retry_after_ms / 1000))},
    )


@app.get("/health", tags=["meta"])
async def health() -> dict[str, bool]:
    """Simple liveness probe."""

    return {"ok": True}


@app.head("/health", tags=["meta"])
async def health_head() -> Response:
    """Allow HEAD for uptime monitors that only need the status code."""

    return Response(status_code=200)


@app.post("/stt", response_model=TranscriptResponse, tags=["voice"])
async def speech_to_text(file: UploadFile | None = File(default=None)) -> TranscriptResponse:
    """Forward an uploaded clip to ElevenLabs and return its transcript."""

    if not settings.elevenlabs_api_key:
        raise ConfigurationError("Missing ELEVENLABS_API_KEY")
    if file is None:
        raise ValidationError("Missing audio file")

    audio_bytes = await file.read()
    text, raw = await transcribe_audio(
        audio_bytes,
        filename=file.filename or "audio.wav",
        content_type=file.content_type or "audio/wav",
    )
    return TranscriptResponse(text=text, raw=raw)


@app.post("/chat", tags=["chat"])
async def chat(
    payload: TextRequest | None = None,
    relay: ChatRelay = Depends(get_chat_relay),
) -> Response:
    """Answer one user turn with Gemini, or with a local reply when it is unavailable."""

    result = await relay.reply(payload.text if payload else "")
    outcome = result.outcome

    if isinstance(outcome, (Denied, RateLimited)):
        return _rate_limited_response(outcome.retry_after_ms)

    if result.text is None or result.source is None:
        if isinstance(outcome, Timeout):
            body = ErrorResponse(error="timeout")
            return JSONResponse(status_code=504, content=body.model_dump(exclude_none=True))
        body = ErrorResponse(error="upstream_error", detail=getattr(outcome, "detail", None))
        return JSONResponse(status_code=502, content=body.model_dump(exclude_none=True))

    return JSONResponse(content=ChatResponse(text=result.text, source=result.source).model_dump())


@app.post("/tts", tags=["voice"])
async def text_to_speech(payload: TextRequest | None = None) -> Response:
    """Synthesize the supplied text with ElevenLabs and stream back MP3 bytes."""

    audio, media_type = await synthesize_speech(payload.text if payload else "")
    return Response(content=audio, media_type=media_type)
