"""Shared scoring helpers: tier lookup, ratios and text statistics."""

import re
from typing import Iterable, Sequence

WORD_PATTERN = re.compile(r"[A-Za-z']+")
SENTENCE_SPLIT = re.compile(r"[.!?]+")
VOWEL_GROUPS = re.compile(r"[aeiouy]+")
QUESTION_OPENERS = re.compile(
    r"^(what|why|how|when|where|who|which|can|should|does|do|is|are|will|could|would)\b",
    re.IGNORECASE,
)

READABILITY_BANDS = [(60, 100), (50, 80), (40, 60), (30, 40)]
READABILITY_FLOOR = 20
MIN_READABILITY_CHARS = 100


def score_tier(value: float, tiers: Sequence, default: float = 0, reverse: bool = False) -> float:
    """
    Map a raw measurement onto a discrete score.

    `tiers` is ordered best-first as (threshold, score) pairs or dicts with
    "threshold"/"score" keys. Normal tiers match when value >= threshold;
    reverse tiers (lower is better, e.g. timings) match when value < threshold.
    The first match wins, otherwise `default`.
    """
    for tier in tiers:
        if isinstance(tier, dict):
            threshold, score = tier["threshold"], tier["score"]
        else:
            threshold, score = tier
        if reverse:
            if value < threshold:
                return score
        elif value >= threshold:
            return score
    return default


def coverage_ratio(part: float, whole: float) -> float:
    """part/whole as a 0..100 percentage; 0 when there is nothing to cover."""
    if not whole:
        return 0.0
    return max(0.0, min(100.0, part / whole * 100.0))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def words(text: str) -> list[str]:
    return WORD_PATTERN.findall(text or "")


def sentences(text: str) -> list[str]:
    return [s.strip() for s in SENTENCE_SPLIT.split(text or "") if s.strip()]


def count_syllables(word: str) -> int:
    word = word.lower().strip("'")
    if not word:
        return 0
    if len(word) <= 3:
        return 1

    count = len(VOWEL_GROUPS.findall(word))
    if word.endswith("e"):
        count -= 1
    # "table", "simple": the silent-e rule undercounts a consonant + "le" ending
    if word.endswith("le") and word[-3] not in "aeiouy":
        count += 1
    return max(1, count)


def flesch_reading_ease(text: str) -> float | None:
    tokens = words(text)
    sentence_list = sentences(text)
    if not tokens or not sentence_list:
        return None
    syllables = sum(count_syllables(w) for w in tokens)
    return (
        206.835
        - 1.015 * (len(tokens) / len(sentence_list))
        - 84.6 * (syllables / len(tokens))
    )


def readability_band(text: str) -> int:
    """Flesch reading ease folded into 20/40/60/80/100."""
    if len((text or "").strip()) < MIN_READABILITY_CHARS:
        return READABILITY_FLOOR
    ease = flesch_reading_ease(text)
    if ease is None:
        return READABILITY_FLOOR
    return int(score_tier(ease, READABILITY_BANDS, default=READABILITY_FLOOR))


def keyword_hits(text: str, keywords: Iterable[str]) -> int:
    """Number of distinct keywords that appear in the text (case-insensitive)."""
    lowered = (text or "").lower()
    return sum(1 for keyword in keywords if keyword in lowered)


def is_question(text: str) -> bool:
    stripped = (text or "").strip()
    if stripped.endswith("?"):
        return True
    return bool(QUESTION_OPENERS.match(stripped))
