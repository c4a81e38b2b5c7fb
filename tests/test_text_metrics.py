import pytest

from text_metrics import (
    count_syllables,
    coverage_ratio,
    is_question,
    keyword_hits,
    readability_band,
    round_half_up,
    score_tier,
)

COUNT_TIERS = [(5, 100), (3, 80), (1, 50)]
LATENCY_TIERS = [(200, 100), (500, 90), (1000, 70)]


@pytest.mark.parametrize(
    "value, expected",
    [(7, 100), (5, 100), (4, 80), (1, 50), (0, 0)],
)
def test_score_tier_first_match_wins(value, expected):
    assert score_tier(value, COUNT_TIERS) == expected


def test_score_tier_reverse_means_lower_is_better():
    assert score_tier(150, LATENCY_TIERS, reverse=True) == 100
    assert score_tier(300, LATENCY_TIERS, reverse=True) == 90
    assert score_tier(5000, LATENCY_TIERS, default=30, reverse=True) == 30


def test_score_tier_accepts_dict_tiers():
    tiers = [{"threshold": 10, "score": 90}, {"threshold": 2, "score": 40}]
    assert score_tier(3, tiers) == 40


def test_score_tier_is_monotonic():
    scores = [score_tier(v, COUNT_TIERS) for v in range(0, 10)]
    assert scores == sorted(scores)

    reverse_scores = [score_tier(v, LATENCY_TIERS, default=10, reverse=True) for v in range(0, 2000, 50)]
    assert reverse_scores == sorted(reverse_scores, reverse=True)


def test_coverage_ratio_handles_empty_whole():
    assert coverage_ratio(3, 0) == 0.0
    assert coverage_ratio(1, 4) == 25.0
    assert coverage_ratio(9, 4) == 100.0


def test_count_syllables():
    assert count_syllables("the") == 1
    assert count_syllables("table") == 2
    assert count_syllables("simple") == 2
    assert count_syllables("") == 0


def test_readability_band_short_text_is_lowest_band():
    assert readability_band("Too short to measure.") == 20
    assert readability_band("") == 20


def test_readability_band_plain_text_is_top_band():
    text = "The cat sat on the mat. " * 10
    assert readability_band(text) == 100


def test_keyword_hits_counts_distinct_keywords():
    assert keyword_hits("Live scores and the LATEST news, live!", ("live", "latest", "today")) == 2


@pytest.mark.parametrize(
    "heading, expected",
    [
        ("How does managed IT work", True),
        ("Pricing?", True),
        ("Our Services", False),
        ("", False),
    ],
)
def test_is_question(heading, expected):
    assert is_question(heading) is expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2
