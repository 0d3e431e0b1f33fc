from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Mapping, Optional, Pattern, Sequence, Tuple

from app.state import Stage


class Intent(str, Enum):
    AFFIRM = "affirm"
    DENY = "deny"
    TIME_SLOT_A = "time_slot_a"
    TIME_SLOT_B = "time_slot_b"
    TIME_PERIOD_MORNING = "time_period_morning"
    TIME_PERIOD_AFTERNOON = "time_period_afternoon"
    NONE = "none"


def _normalize(text: Optional[str]) -> str:
    text = (text or "").lower()
    text = text.replace("’", "'").replace("‘", "'")
    return re.sub(r"\s+", " ", text).strip()


def _words(phrases: Iterable[str]) -> Pattern[str]:
    alternatives = "|".join(re.escape(phrase) for phrase in phrases)
    return re.compile(rf"(?:^|\b)(?:{alternatives})(?:\b|$)")


def _contains(needles: Iterable[str]) -> Pattern[str]:
    return re.compile("|".join(re.escape(needle) for needle in needles))


AFFIRM_KEYWORDS = (
    "yes",
    "yeah",
    "yep",
    "i did",
    "got it",
    "sure",
    "ok",
    "okay",
    "sounds good",
    "let's do it",
    "lets do it",
    "book",
)

DENY_KEYWORDS = (
    "no",
    "not yet",
    "didn't",
    "never",
    "not interested",
    "pass",
    "maybe later",
)

PatternTable = Sequence[Tuple[Pattern[str], Intent]]

CONFIRMATION_PATTERNS: PatternTable = (
    (_words(AFFIRM_KEYWORDS), Intent.AFFIRM),
    (_words(DENY_KEYWORDS), Intent.DENY),
)

# Slot names and hour digits match anywhere in the utterance ("2pm", "10am").
SLOT_PATTERNS: PatternTable = (
    (_contains(("tomorrow", "2")), Intent.TIME_SLOT_A),
    (_contains(("thursday", "10")), Intent.TIME_SLOT_B),
    (_words(("morning",)), Intent.TIME_PERIOD_MORNING),
    (_words(("afternoon", "evening")), Intent.TIME_PERIOD_AFTERNOON),
)

DEFAULT_PATTERNS: PatternTable = tuple(CONFIRMATION_PATTERNS) + tuple(SLOT_PATTERNS)

STAGE_PATTERNS: Mapping[Stage, PatternTable] = {
    Stage.INTRO_WAIT: CONFIRMATION_PATTERNS,
    Stage.OFFER: CONFIRMATION_PATTERNS,
    Stage.PICK_TIME: SLOT_PATTERNS,
}


def classify(stage: Optional[Stage], utterance: Optional[str]) -> Intent:
    """Map a caller utterance to a coarse intent.

    Patterns are tried in table order and the first match wins. Stages
    without a dedicated table fall back to the full table; the engine
    ignores whatever those stages get back.
    """

    text = _normalize(utterance)
    if not text:
        return Intent.NONE

    table = STAGE_PATTERNS.get(stage, DEFAULT_PATTERNS) if stage is not None else DEFAULT_PATTERNS
    for pattern, intent in table:
        if pattern.search(text):
            return intent
    return Intent.NONE


__all__ = [
    "AFFIRM_KEYWORDS",
    "DENY_KEYWORDS",
    "Intent",
    "STAGE_PATTERNS",
    "classify",
]
