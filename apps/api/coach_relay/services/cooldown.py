"""Process-wide cooldown gate in front of the text generator."""
from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .types import Admission, Admitted, Denied

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return time.monotonic_ns() // 1_000_000


class CooldownGate:
    """Deny generation requests until a learned provider cooldown expires.

    A single ``next_allowed_at`` instant is shared by every caller. Admission
    checks only read it; ``record_throttled`` overwrites it with the most
    recent throttle, whether that moves it earlier or later.
    """

    def __init__(self, clock: Clock = monotonic_ms) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._next_allowed_at = clock()

    @property
    def next_allowed_at(self) -> int:
        with self._lock:
            return self._next_allowed_at

    def try_admit(self, now: Optional[int] = None) -> Admission:
        if now is None:
            now = self._clock()
        with self._lock:
            next_allowed_at = self._next_allowed_at
        if now >= next_allowed_at:
            return Admitted()
        return Denied(retry_after_ms=next_allowed_at - now)

    def record_throttled(self, now: Optional[int], delay_ms: int) -> int:
        """Start a cooldown of ``delay_ms`` from ``now`` and return its end."""

        if now is None:
            now = self._clock()
        with self._lock:
            self._next_allowed_at = now + max(0, int(delay_ms))
            return self._next_allowed_at
