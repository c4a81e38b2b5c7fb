"""Rubric configuration: weights, thresholds and tier limits.

Everything here is static data bundled into an immutable RubricConfig that
is passed explicitly to the scoring engine, issue detector, recommendation
generator and tier filter. validate_config() runs at startup; a broken
table is a deployment error, not something to limp along with.
"""

from pydantic import BaseModel, ConfigDict, Field

WEIGHT_TOLERANCE = 1e-6

CATEGORY_WEIGHTS: dict[str, float] = {
    "aiReadability": 0.10,
    "aiSearchReadiness": 0.20,
    "contentFreshness": 0.08,
    "contentStructure": 0.15,
    "speedUX": 0.05,
    "technicalSetup": 0.18,
    "trustAuthority": 0.12,
    "voiceOptimization": 0.12,
}

CATEGORY_NAMES: dict[str, str] = {
    "aiReadability": "AI Readability",
    "aiSearchReadiness": "AI Search Readiness",
    "contentFreshness": "Content Freshness",
    "contentStructure": "Content Structure",
    "speedUX": "Speed & UX",
    "technicalSetup": "Technical Setup",
    "trustAuthority": "Trust & Authority",
    "voiceOptimization": "Voice Optimization",
}

SUBFACTOR_WEIGHTS: dict[str, dict[str, float]] = {
    "aiReadability": {
        "altTextScore": 0.35,
        "captionsTranscriptsScore": 0.35,
        "interactiveAccessScore": 0.20,
        "crossMediaScore": 0.10,
    },
    "aiSearchReadiness": {
        "questionHeadingsScore": 0.12,
        "scannabilityScore": 0.12,
        "readabilityScore": 0.12,
        "faqScore": 0.12,
        "snippetEligibleScore": 0.10,
        "pillarPagesScore": 0.10,
        "linkedSubpagesScore": 0.10,
        "painPointsScore": 0.12,
        "geoContentScore": 0.10,
    },
    "contentFreshness": {
        "lastUpdatedScore": 0.25,
        "versioningScore": 0.15,
        "timeSensitiveScore": 0.15,
        "auditProcessScore": 0.15,
        "liveDataScore": 0.10,
        "httpFreshnessScore": 0.10,
        "editorialCalendarScore": 0.10,
    },
    "contentStructure": {
        "headingHierarchyScore": 0.35,
        "navigationScore": 0.20,
        "entityCuesScore": 0.20,
        "accessibilityScore": 0.15,
        "geoMetaScore": 0.10,
    },
    "speedUX": {
        "lcpScore": 0.25,
        "clsScore": 0.25,
        "inpScore": 0.25,
        "mobileScore": 0.15,
        "crawlerResponseScore": 0.10,
    },
    "technicalSetup": {
        "crawlerAccessScore": 0.30,
        "structuredDataScore": 0.30,
        "canonicalHreflangScore": 0.10,
        "openGraphScore": 0.05,
        "sitemapScore": 0.10,
        "indexNowScore": 0.10,
        "rssFeedScore": 0.05,
    },
    "trustAuthority": {
        "authorBiosScore": 0.20,
        "certificationsScore": 0.10,
        "professionalCertifications": 0.10,
        "teamCredentials": 0.05,
        "industryMemberships": 0.05,
        "domainAuthorityScore": 0.15,
        "thoughtLeadershipScore": 0.20,
        "thirdPartyProfilesScore": 0.15,
    },
    "voiceOptimization": {
        "longTailScore": 0.25,
        "localIntentScore": 0.25,
        "conversationalTermsScore": 0.20,
        "snippetFormatScore": 0.15,
        "multiTurnScore": 0.15,
    },
}

# A subfactor scoring below its threshold becomes an issue.
ISSUE_THRESHOLDS: dict[str, dict[str, int]] = {
    "aiReadability": {
        "altTextScore": 70,
        "captionsTranscriptsScore": 60,
        "interactiveAccessScore": 65,
        "crossMediaScore": 60,
    },
    "aiSearchReadiness": {
        "questionHeadingsScore": 70,
        "scannabilityScore": 65,
        "readabilityScore": 60,
        "faqScore": 70,
        "snippetEligibleScore": 65,
        "pillarPagesScore": 60,
        "linkedSubpagesScore": 70,
        "painPointsScore": 60,
        "geoContentScore": 55,
    },
    "contentFreshness": {
        "lastUpdatedScore": 60,
        "versioningScore": 50,
        "timeSensitiveScore": 55,
        "auditProcessScore": 60,
        "liveDataScore": 50,
        "httpFreshnessScore": 60,
        "editorialCalendarScore": 50,
    },
    "contentStructure": {
        "headingHierarchyScore": 75,
        "navigationScore": 65,
        "entityCuesScore": 60,
        "accessibilityScore": 70,
        "geoMetaScore": 55,
    },
    "speedUX": {
        "lcpScore": 70,
        "clsScore": 75,
        "inpScore": 70,
        "mobileScore": 75,
        "crawlerResponseScore": 65,
    },
    "technicalSetup": {
        "crawlerAccessScore": 80,
        "structuredDataScore": 75,
        "canonicalHreflangScore": 70,
        "openGraphScore": 65,
        "sitemapScore": 80,
        "indexNowScore": 50,
        "rssFeedScore": 50,
    },
    "trustAuthority": {
        "authorBiosScore": 60,
        "certificationsScore": 55,
        "professionalCertifications": 55,
        "teamCredentials": 45,
        "industryMemberships": 40,
        "domainAuthorityScore": 60,
        "thoughtLeadershipScore": 60,
        "thirdPartyProfilesScore": 55,
    },
    "voiceOptimization": {
        "longTailScore": 65,
        "localIntentScore": 60,
        "conversationalTermsScore": 60,
        "snippetFormatScore": 70,
        "multiTurnScore": 60,
    },
}

# Tier lists are (threshold, score), highest threshold first.
FAQ_COUNT_TIERS: list[tuple[float, float]] = [(5, 100), (3, 80), (1, 50)]
FAQ_COVERAGE_TIERS: list[tuple[float, float]] = [(50, 100), (30, 80), (15, 60), (5, 40)]
QUESTION_COUNT_TIERS: list[tuple[float, float]] = [(6, 100), (4, 80), (2, 60), (1, 40)]
QUESTION_PERCENT_TIERS: list[tuple[float, float]] = [(40, 100), (25, 80), (15, 60), (5, 40)]

TIER_ORDER = ("guest", "free", "diy", "pro")

UPGRADE_MARKER = "[Available on upgrade]"


class TierLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_recommendations: int
    show_code_snippets: bool = False
    show_evidence: bool = False
    show_detailed_steps: bool = True
    progressive_unlock: bool = False
    daily_unlock_limit: int = 0
    generation_batch: int = 5
    llm_head: int = 0
    features: list[str] = Field(default_factory=list)
    upgrade_title: str = ""
    upgrade_message: str = ""
    upgrade_cta: str = ""
    upgrade_target: str = ""


TIER_LIMITS: dict[str, TierLimits] = {
    "guest": TierLimits(
        max_recommendations=0,
        show_detailed_steps=False,
        generation_batch=5,
        features=["Overall score", "Category breakdown"],
        upgrade_title="Unlock Your Top Recommendations",
        upgrade_message="Sign up free to see your top 3 priority fixes with step-by-step instructions.",
        upgrade_cta="Create Free Account",
        upgrade_target="free",
    ),
    "free": TierLimits(
        max_recommendations=3,
        generation_batch=5,
        features=["Overall score", "Category breakdown", "Top 3 recommendations", "Step-by-step instructions"],
        upgrade_title="Unlock More Recommendations",
        upgrade_message="Upgrade to DIY for daily recommendations with ready-to-use code snippets.",
        upgrade_cta="Upgrade to DIY",
        upgrade_target="diy",
    ),
    "diy": TierLimits(
        max_recommendations=300,
        show_code_snippets=True,
        show_evidence=True,
        progressive_unlock=True,
        daily_unlock_limit=5,
        generation_batch=10,
        llm_head=3,
        features=[
            "Overall score",
            "Category breakdown",
            "5 new recommendations per day",
            "Code snippets",
            "Page evidence",
            "Progress tracking",
        ],
        upgrade_title="Go Pro for the Full Roadmap",
        upgrade_message="Pro unlocks every recommendation at once with AI-tailored instructions.",
        upgrade_cta="Upgrade to Pro",
        upgrade_target="pro",
    ),
    "pro": TierLimits(
        max_recommendations=300,
        show_code_snippets=True,
        show_evidence=True,
        generation_batch=25,
        llm_head=5,
        features=[
            "Overall score",
            "Category breakdown",
            "All recommendations",
            "Code snippets",
            "Page evidence",
            "AI-tailored instructions",
        ],
    ),
}


class ConfigError(ValueError):
    """Raised when the rubric tables are internally inconsistent."""


class RubricConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_weights: dict[str, float] = Field(default_factory=lambda: dict(CATEGORY_WEIGHTS))
    subfactor_weights: dict[str, dict[str, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in SUBFACTOR_WEIGHTS.items()}
    )
    thresholds: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in ISSUE_THRESHOLDS.items()}
    )
    importance_weights: dict[str, float] = Field(default_factory=lambda: dict(CATEGORY_WEIGHTS))
    faq_count_tiers: list[tuple[float, float]] = Field(default_factory=lambda: list(FAQ_COUNT_TIERS))
    faq_coverage_tiers: list[tuple[float, float]] = Field(default_factory=lambda: list(FAQ_COVERAGE_TIERS))
    question_count_tiers: list[tuple[float, float]] = Field(default_factory=lambda: list(QUESTION_COUNT_TIERS))
    question_percent_tiers: list[tuple[float, float]] = Field(default_factory=lambda: list(QUESTION_PERCENT_TIERS))
    tier_limits: dict[str, TierLimits] = Field(default_factory=lambda: dict(TIER_LIMITS))

    def tier(self, name: str) -> TierLimits:
        try:
            return self.tier_limits[name]
        except KeyError:
            raise ConfigError(f"Unknown tier: {name}") from None

    def threshold(self, category: str, subfactor: str) -> int | None:
        return self.thresholds.get(category, {}).get(subfactor)


def _check_sum(label: str, weights: dict[str, float]) -> None:
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigError(f"{label} weights sum to {total:.6f}, expected 1.0")


def _check_tiers(label: str, tiers: list[tuple[float, float]]) -> None:
    thresholds = [t for t, _ in tiers]
    scores = [s for _, s in tiers]
    if thresholds != sorted(thresholds, reverse=True) or scores != sorted(scores, reverse=True):
        raise ConfigError(f"{label} tiers must be ordered by descending threshold and score")


def validate_config(config: RubricConfig) -> RubricConfig:
    """Check weight sums, threshold coverage and tier tables. Raises ConfigError."""
    _check_sum("Category", config.category_weights)
    _check_sum("Importance", config.importance_weights)

    if set(config.subfactor_weights) != set(config.category_weights):
        raise ConfigError("Subfactor weight table does not cover the same categories as the category weights")
    if set(config.importance_weights) != set(config.category_weights):
        raise ConfigError("Importance weights do not cover the same categories as the category weights")

    for category, weights in config.subfactor_weights.items():
        _check_sum(f"Subfactor ({category})", weights)
        category_thresholds = config.thresholds.get(category, {})
        for subfactor in weights:
            if subfactor not in category_thresholds:
                raise ConfigError(f"No issue threshold for {category}.{subfactor}")

    _check_tiers("FAQ count", config.faq_count_tiers)
    _check_tiers("FAQ coverage", config.faq_coverage_tiers)
    _check_tiers("Question count", config.question_count_tiers)
    _check_tiers("Question percent", config.question_percent_tiers)

    for tier_name in TIER_ORDER:
        if tier_name not in config.tier_limits:
            raise ConfigError(f"No limits configured for tier: {tier_name}")

    return config


def default_config() -> RubricConfig:
    return validate_config(RubricConfig())


def display_name(key: str) -> str:
    """Human label for a category or subfactor key (faqScore -> Faq)."""
    if key in CATEGORY_NAMES:
        return CATEGORY_NAMES[key]
    base = key[:-5] if key.endswith("Score") else key
    words = []
    current = ""
    for ch in base:
        if ch.isupper() and current and not current[-1].isupper():
            words.append(current)
            current = ch
        else:
            current += ch
    if current:
        words.append(current)
    return " ".join(w[:1].upper() + w[1:] for w in words)
