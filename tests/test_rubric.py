import pytest

from rubric import (
    CATEGORY_WEIGHTS,
    ISSUE_THRESHOLDS,
    SUBFACTOR_WEIGHTS,
    TIER_LIMITS,
    ConfigError,
    RubricConfig,
    default_config,
    display_name,
    validate_config,
)


def test_default_config_is_consistent():
    config = default_config()
    assert abs(sum(config.category_weights.values()) - 1.0) < 1e-6
    assert sum(len(weights) for weights in config.subfactor_weights.values()) == 50


def test_every_subfactor_has_a_threshold():
    for category, weights in SUBFACTOR_WEIGHTS.items():
        assert set(weights) == set(ISSUE_THRESHOLDS[category])


def test_category_weights_must_sum_to_one():
    weights = dict(CATEGORY_WEIGHTS, aiReadability=0.2)
    with pytest.raises(ConfigError, match="Category"):
        validate_config(RubricConfig(category_weights=weights))


def test_subfactor_weights_must_sum_to_one():
    subfactors = {k: dict(v) for k, v in SUBFACTOR_WEIGHTS.items()}
    subfactors["speedUX"]["lcpScore"] = 0.5
    with pytest.raises(ConfigError, match="speedUX"):
        validate_config(RubricConfig(subfactor_weights=subfactors))


def test_missing_threshold_is_fatal():
    thresholds = {k: dict(v) for k, v in ISSUE_THRESHOLDS.items()}
    del thresholds["technicalSetup"]["structuredDataScore"]
    with pytest.raises(ConfigError, match="structuredDataScore"):
        validate_config(RubricConfig(thresholds=thresholds))


def test_missing_tier_is_fatal():
    tiers = {k: v for k, v in TIER_LIMITS.items() if k != "pro"}
    with pytest.raises(ConfigError, match="pro"):
        validate_config(RubricConfig(tier_limits=tiers))


def test_unordered_tier_table_is_fatal():
    with pytest.raises(ConfigError):
        validate_config(RubricConfig(faq_count_tiers=[(1, 50), (5, 100)]))


def test_unknown_tier_lookup_raises():
    with pytest.raises(ConfigError):
        default_config().tier("enterprise")


def test_tier_limits_shape():
    config = default_config()
    assert config.tier("guest").max_recommendations == 0
    assert config.tier("free").max_recommendations == 3
    assert config.tier("free").llm_head == 0
    assert config.tier("diy").progressive_unlock
    assert config.tier("pro").show_code_snippets


def test_display_name():
    assert display_name("questionHeadingsScore") == "Question Headings"
    assert display_name("faqScore") == "Faq"
    assert display_name("technicalSetup") == "Technical Setup"


@pytest.mark.parametrize(
    "category, subfactor, threshold",
    [
        ("technicalSetup", "crawlerAccessScore", 80),
        ("technicalSetup", "indexNowScore", 50),
        ("aiReadability", "altTextScore", 70),
        ("aiSearchReadiness", "geoContentScore", 55),
        ("contentStructure", "headingHierarchyScore", 75),
        ("speedUX", "clsScore", 75),
        ("trustAuthority", "industryMemberships", 40),
        ("voiceOptimization", "snippetFormatScore", 70),
    ],
)
def test_issue_thresholds(category, subfactor, threshold):
    assert ISSUE_THRESHOLDS[category][subfactor] == threshold
