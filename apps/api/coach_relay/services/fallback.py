"""Offline coaching replies used when Gemini is unreachable."""
from __future__ import annotations

import random
import re
from typing import Literal, Mapping, Optional, Sequence

FallbackCategory = Literal["name", "work", "school", "project", "help", "nervous", "generic"]

ECHO_LIMIT = 120

GENERIC_REPLIES: tuple[str, ...] = (
    "Thanks for sharing. What part of that feels most important to you?",
    "Got it. What are you hoping to learn or achieve from this?",
    "That makes sense. What’s one specific thing you’re working on right now?",
    "I hear you. What would a good next step look like for you?",
)

ACKNOWLEDGEMENTS: tuple[str, ...] = (
    "Thanks for saying that.",
    "I hear you.",
    "That’s helpful context.",
    "Appreciate the detail.",
)

REPLY_POOLS: Mapping[FallbackCategory, tuple[str, ...]] = {
    "name": (
        "Nice to meet you. What brings you here today?",
        "Great to meet you! Are you here with a team or solo?",
    ),
    "work": (
        "That sounds interesting. What do you enjoy most about that?",
        "Cool—what kind of projects do you usually work on?",
    ),
    "school": (
        "Nice! What are you studying right now?",
        "Sounds fun—what classes or topics are you into lately?",
    ),
    "project": (
        "Awesome—what’s the goal of the project?",
        "Interesting. What’s the hardest part so far?",
    ),
    "help": (
        "I can try to help. What’s the main blocker?",
        "Sure—what do you want to figure out first?",
    ),
    "nervous": (
        "Totally understandable. What part feels the most awkward?",
        "You’re not alone there. Want a simple opener to try?",
    ),
    "generic": GENERIC_REPLIES,
}

# Checked in order against the lower-cased input; the first match wins.
FALLBACK_RULES: Sequence[tuple[re.Pattern[str], FallbackCategory]] = (
    (re.compile(r"(^|\s)(my name is|i'm|i’m|im|i am)\s+\w+"), "name"),
    (re.compile(r"(work|job|career|role|company|startup|business)"), "work"),
    (re.compile(r"(school|university|college|class|major|study|studying)"), "school"),
    (re.compile(r"(project|demo|app|build|hack|hackathon|uofthacks)"), "project"),
    (re.compile(r"(help|stuck|issue|problem|bug|error)"), "help"),
    (re.compile(r"(nervous|awkward|anxious|shy)"), "nervous"),
)


def classify(text: str) -> Optional[FallbackCategory]:
    """Return the reply category for ``text`` or ``None`` when nothing matches."""

    lowered = (text or "").strip().lower()
    if not lowered:
        return "generic"
    for pattern, category in FALLBACK_RULES:
        if pattern.search(lowered):
            return category
    return None


def respond(text: str, rng: Optional[random.Random] = None) -> str:
    """Return a short coaching reply for ``text`` without calling any service."""

    chooser = rng or random.Random()
    category = classify(text)
    if category is not None:
        return chooser.choice(REPLY_POOLS[category])

    # echo keeps the speaker's casing; only matching is case-insensitive
    spoken = text.strip()
    echo = spoken[:ECHO_LIMIT] + "..." if len(spoken) > ECHO_LIMIT else spoken
    prefix = chooser.choice(ACKNOWLEDGEMENTS)
    return f'{prefix} You said: "{echo}". {chooser.choice(GENERIC_REPLIES)}'
