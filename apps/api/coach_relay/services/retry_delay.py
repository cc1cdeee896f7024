"""Extract provider-declared retry delays from Gemini throttling errors."""
from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Optional

from ..core.config import settings

RETRY_INFO_SUFFIX = "RetryInfo"
RETRY_DELAY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)s")

logger = logging.getLogger(__name__)


def parse_retry_delay(error: Any, default_ms: Optional[int] = None) -> int:
    """Return the cooldown in milliseconds the provider asked for.

    Looks for a ``RetryInfo`` entry in the structured details first, then in a
    JSON object embedded in the error message, and finally falls back to the
    configured default cooldown. Never raises.
    """

    fallback = settings.gemini_cooldown_ms if default_ms is None else default_ms
    if error is None:
        return fallback

    delay = _delay_from_payload(error)
    if delay is not None:
        return delay

    message = _message_of(error)
    json_start = message.find("{")
    if json_start >= 0:
        try:
            parsed = json.loads(message[json_start:])
        except ValueError:
            logger.debug("Ignoring unparsable JSON in provider error message")
        else:
            delay = _delay_from_payload(parsed)
            if delay is not None:
                return delay

    return fallback


def _delay_from_payload(payload: Any) -> Optional[int]:
    for details in _candidate_details(payload):
        delay = _delay_from_details(details)
        if delay is not None:
            return delay
    return None


def _candidate_details(payload: Any) -> list[Any]:
    """Details lists found at ``error.details`` or ``details``, in that order."""

    candidates: list[Any] = []
    nested = _field(payload, "error")
    if nested is not None and nested is not payload:
        candidates.append(_field(nested, "details"))
    details = _field(payload, "details")
    if isinstance(details, Mapping):
        # some SDKs keep the whole response body under ``details``
        candidates.append(_field(_field(details, "error"), "details"))
    candidates.append(details)
    return [item for item in candidates if _is_list(item)]


def _delay_from_details(details: Sequence[Any]) -> Optional[int]:
    for entry in details:
        if isinstance(entry, Mapping):
            if not str(entry.get("@type", "")).endswith(RETRY_INFO_SUFFIX):
                continue
            return _parse_delay_text(entry.get("retryDelay"))
        if type(entry).__name__ == RETRY_INFO_SUFFIX:
            # protobuf google.rpc.RetryInfo as surfaced by google-api-core
            return _parse_duration(getattr(entry, "retry_delay", None))
    return None


def _parse_delay_text(value: Any) -> Optional[int]:
    match = RETRY_DELAY_PATTERN.search(str(value or ""))
    if not match:
        return None
    return math.ceil(Decimal(match.group(1)) * 1000)


def _parse_duration(duration: Any) -> Optional[int]:
    seconds = getattr(duration, "seconds", None)
    if seconds is None:
        return None
    nanos = getattr(duration, "nanos", 0) or 0
    return math.ceil((Decimal(int(seconds)) + Decimal(int(nanos)) / Decimal(10**9)) * 1000)


def _field(payload: Any, name: str) -> Any:
    if isinstance(payload, Mapping):
        return payload.get(name)
    try:
        return getattr(payload, name, None)
    except Exception:  # noqa: BLE001 - provider objects may raise from properties
        return None


def _message_of(error: Any) -> str:
    if isinstance(error, str):
        return error
    message = _field(error, "message")
    if message:
        return str(message)
    if isinstance(error, BaseException):
        return str(error)
    return ""


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))
