"""Tests for the process-wide cooldown gate."""
from __future__ import annotations

import pytest

from coach_relay.services.cooldown import CooldownGate
from coach_relay.services.types import Admitted, Denied


class FakeClock:
    def __init__(self, start: int = 1_000) -> None:
        self.value = start

    def __call__(self) -> int:
        return self.value

    def advance(self, ms: int) -> None:
        self.value += ms


def test_fresh_gate_admits_immediately() -> None:
    clock = FakeClock()
    gate = CooldownGate(clock=clock)

    assert gate.try_admit() == Admitted()
    assert gate.next_allowed_at == clock.value


@pytest.mark.parametrize("delay", [0, 1, 2500, 60000])
def test_throttle_denies_until_expiry(delay: int) -> None:
    gate = CooldownGate(clock=FakeClock(0))

    gate.record_throttled(10_000, delay)

    if delay:
        assert gate.try_admit(10_000) == Denied(retry_after_ms=delay)
    else:
        assert gate.try_admit(10_000) == Admitted()
    assert gate.try_admit(10_000 + delay) == Admitted()


def test_admission_does_not_change_state() -> None:
    gate = CooldownGate(clock=FakeClock(0))
    gate.record_throttled(100, 500)

    gate.try_admit(200)
    gate.try_admit(700)

    assert gate.next_allowed_at == 600


def test_last_throttle_wins_even_when_shorter() -> None:
    gate = CooldownGate(clock=FakeClock(0))

    gate.record_throttled(0, 60_000)
    gate.record_throttled(0, 5_000)

    assert gate.try_admit(4_999) == Denied(retry_after_ms=1)
    assert gate.try_admit(5_000) == Admitted()

    gate.record_throttled(5_000, 10_000)
    assert gate.try_admit(5_000) == Denied(retry_after_ms=10_000)


def test_gate_uses_injected_clock_by_default() -> None:
    clock = FakeClock(0)
    gate = CooldownGate(clock=clock)

    gate.record_throttled(None, 3_000)
    clock.advance(1_000)
    assert gate.try_admit() == Denied(retry_after_ms=2_000)

    clock.advance(2_000)
    assert isinstance(gate.try_admit(), Admitted)
