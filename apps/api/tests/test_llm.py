import asyncio
import gc
import time
from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from coach_relay.core.errors import ConfigurationError, ValidationError
from coach_relay.services import llm
from coach_relay.services.types import GenerationRequest, RateLimited, Success, Timeout, UpstreamError

RETRY_JSON = '{"error":{"details":[{"@type":"type.googleapis.com/google.rpc.RetryInfo","retryDelay":"10s"}]}}'


class StubGenerator:
    def __init__(self, result=None, error: Exception | None = None, delay: float = 0.0) -> None:
        self.result = result
        self.error = error
        self.delay = delay
        self.prompts: list[tuple[str, str]] = []

    async def generate(self, prompt: str, model: str):
        self.prompts.append((prompt, model))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class HangingGenerator:
    async def generate(self, prompt: str, model: str):
        await asyncio.Event().wait()


class StatusError(Exception):
    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


@contextmanager
def _loop_errors():
    """Collect messages passed to the running loop's exception handler."""

    loop = asyncio.get_running_loop()
    reported: list[str] = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context["message"]))
    try:
        yield reported
    finally:
        loop.set_exception_handler(None)


def _request(text: str = "hello") -> GenerationRequest:
    return GenerationRequest(text=text, system_prompt="Be a coach.", model="gemini-test")


def test_request_rejects_blank_text() -> None:
    with pytest.raises(ValidationError):
        _request("   ")


@pytest.mark.asyncio
async def test_success_passes_prompt_and_model() -> None:
    generator = StubGenerator(result="Nice to meet you!")

    outcome = await llm.call_with_timeout(_request("hi there"), 1000, generator)

    assert outcome == Success(text="Nice to meet you!")
    assert generator.prompts == [("Be a coach.\n\nUser: hi there", "gemini-test")]


@pytest.mark.asyncio
async def test_missing_text_is_empty_success() -> None:
    outcome = await llm.call_with_timeout(_request(), 1000, StubGenerator(result=None))

    assert outcome == Success(text="")


@pytest.mark.asyncio
async def test_never_resolving_upstream_times_out_quickly() -> None:
    started = time.monotonic()

    outcome = await llm.call_with_timeout(_request(), 50, HangingGenerator())

    elapsed_ms = (time.monotonic() - started) * 1000
    assert outcome == Timeout()
    assert 45 <= elapsed_ms < 150


@pytest.mark.asyncio
async def test_late_failure_after_timeout_is_discarded() -> None:
    generator = StubGenerator(error=RuntimeError("too late"), delay=0.05)

    outcome = await llm.call_with_timeout(_request(), 10, generator)
    await asyncio.sleep(0.1)

    assert outcome == Timeout()


@pytest.mark.asyncio
async def test_late_success_after_timeout_is_discarded() -> None:
    generator = StubGenerator(result="too late", delay=0.05)

    with _loop_errors() as reported:
        outcome = await llm.call_with_timeout(_request(), 10, generator)
        await asyncio.sleep(0.1)
        gc.collect()

    assert outcome == Timeout()
    assert len(generator.prompts) == 1
    assert reported == []


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_leak_upstream_failure() -> None:
    generator = StubGenerator(error=RuntimeError("finished after disconnect"), delay=0.05)

    with _loop_errors() as reported:
        caller = asyncio.ensure_future(llm.call_with_timeout(_request(), 1000, generator))
        await asyncio.sleep(0.01)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        await asyncio.sleep(0.1)
        gc.collect()

    assert reported == []


@pytest.mark.asyncio
async def test_resource_exhausted_maps_to_rate_limited() -> None:
    error = google_exceptions.ResourceExhausted("Quota exceeded " + RETRY_JSON)

    outcome = await llm.call_with_timeout(_request(), 1000, StubGenerator(error=error))

    assert outcome == RateLimited(retry_after_ms=10000)


@pytest.mark.asyncio
async def test_status_429_without_hint_uses_default(monkeypatch) -> None:
    monkeypatch.setattr(llm.settings, "gemini_cooldown_ms", 60000, raising=False)

    outcome = await llm.call_with_timeout(_request(), 1000, StubGenerator(error=StatusError("slow down", 429)))

    assert outcome == RateLimited(retry_after_ms=60000)


@pytest.mark.asyncio
async def test_other_errors_map_to_upstream_error() -> None:
    outcome = await llm.call_with_timeout(
        _request(), 1000, StubGenerator(error=google_exceptions.InternalServerError("backend exploded"))
    )

    assert isinstance(outcome, UpstreamError)
    assert "backend exploded" in outcome.detail


@pytest.mark.asyncio
async def test_gemini_generator_requires_api_key(monkeypatch) -> None:
    monkeypatch.setattr(llm.settings, "gemini_api_key", "", raising=False)

    with pytest.raises(ConfigurationError):
        await llm.call_with_timeout(_request(), 1000, llm.GeminiGenerator())


def test_is_throttled_recognises_status_shapes() -> None:
    assert llm.is_throttled(google_exceptions.TooManyRequests("429"))
    assert llm.is_throttled(StatusError("x", 429))
    assert not llm.is_throttled(StatusError("x", 500))
    assert not llm.is_throttled(RuntimeError("429 in text only"))


class FakeGenai:
    def __init__(self) -> None:
        self.configured: list[str] = []

    def configure(self, api_key: str) -> None:
        self.configured.append(api_key)

    def GenerativeModel(self, name: str):
        return SimpleNamespace(generate_content=lambda prompt: SimpleNamespace(text=f"{name} says hi"))


@pytest.mark.asyncio
async def test_gemini_generator_uses_explicit_key_over_settings(monkeypatch) -> None:
    fake = FakeGenai()
    monkeypatch.setattr(llm, "genai", fake)
    monkeypatch.setattr(llm, "_model_cache", {})
    monkeypatch.setattr(llm, "_configured_key", None)
    monkeypatch.setattr(llm.settings, "gemini_api_key", "", raising=False)

    outcome = await llm.call_with_timeout(_request(), 1000, llm.GeminiGenerator(api_key="relay-key"))

    assert outcome == Success(text="gemini-test says hi")
    assert fake.configured == ["relay-key"]
