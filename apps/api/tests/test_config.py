import pytest
from pydantic import ValidationError

from coach_relay.core.config import DEFAULT_SYSTEM_PROMPT, Settings


def test_defaults_match_relay_contract() -> None:
    config = Settings(_env_file=None)

    assert config.request_timeout_ms == 30000
    assert config.gemini_cooldown_ms == 60000
    assert config.fallback_policy == "on_error"
    assert config.coach_system_prompt == DEFAULT_SYSTEM_PROMPT


@pytest.mark.parametrize("field", ["request_timeout_ms", "gemini_cooldown_ms"])
def test_negative_durations_are_rejected(field: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: -1})


@pytest.mark.parametrize("field", ["request_timeout_ms", "gemini_cooldown_ms"])
def test_zero_duration_is_allowed(field: str) -> None:
    assert getattr(Settings(_env_file=None, **{field: 0}), field) == 0


def test_unknown_fallback_policy_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, fallback_policy="sometimes")


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("REQUEST_TIMEOUT_MS", "1500")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-test")

    config = Settings(_env_file=None)

    assert config.request_timeout_ms == 1500
    assert config.gemini_model == "gemini-test"
