"""Scoring engine: eight category analyzers over a single Evidence snapshot.

Every analyzer is a pure function of (evidence, config). Time-relative
subfactors measure against evidence.timestamp, so the same snapshot always
produces the same scores.
"""

import logging
import re
from datetime import datetime, timezone

from evidence import Evidence
from models import CategoryScore
from rubric import ConfigError, RubricConfig
from text_metrics import (
    clamp,
    coverage_ratio,
    is_question,
    keyword_hits,
    readability_band,
    round_half_up,
    score_tier,
)

logger = logging.getLogger(__name__)

MISSING_TTFB_MS = 3000
SNIPPET_MIN_WORDS = 40
SNIPPET_MAX_WORDS = 60
SHORT_PARAGRAPH_WORDS = 100

GENERIC_ALT_WORDS = ("image", "picture", "photo")
PAIN_POINT_KEYWORDS = (
    "challenge", "problem", "issue", "difficulty", "struggle", "pain",
    "frustrat", "concern", "obstacle", "bottleneck", "solution", "solve",
)
GEO_KEYWORDS = ("location", "address", "city", "state", "country", "local", "area", "region")
CASE_STUDY_KEYWORDS = ("case study", "success story", "client")
UPDATED_PHRASES = ("last updated", "updated on", "last modified")
VERSIONING_KEYWORDS = ("version", "v1", "v2", "changelog", "revision", "updated", "modified")
LIVE_KEYWORDS = ("real-time", "live", "current", "now", "today", "latest")
CALENDAR_KEYWORDS = ("upcoming", "scheduled", "published", "archive", "posts")
AUTHOR_KEYWORDS = ("author", "written by", "contributor", "expert")
EEAT_KEYWORDS = ("experience", "expert", "certified", "credential", "qualification")
CERT_KEYWORDS = ("certified", "certification", "license", "accredited", "member", "award")
MEMBERSHIP_KEYWORDS = ("member of", "association", "accredited", "fellow of", "chamber of commerce")
CITATION_KEYWORDS = ("source", "reference", "study")
REVIEW_PLATFORMS = ("g2", "clutch", "google", "reviews", "testimonial", "rating", "trustpilot")
LOCAL_KEYWORDS = ("near me", "local", "location", "address", "directions", "nearby")
CONVERSATIONAL_KEYWORDS = (
    "how to", "what is", "why", "when", "where", "best way", "tips", "guide",
    "should i", "can i", "do i need", "help me",
)
CONTINUITY_KEYWORDS = (
    "next", "then", "after", "following", "also", "additionally",
    "furthermore", "moreover", "related", "see also",
)

PROPER_NOUN = re.compile(r"\b[A-Z][a-z]+\b")
FOUR_WORD_PHRASE = re.compile(r"\b\w+\s+\w+\s+\w+\s+\w+\b")

STRUCTURED_DATA_POINTS = (
    ("Organization", 25),
    ("FAQPage", 20),
    ("Article", 20),
    ("BreadcrumbList", 15),
    ("LocalBusiness", 20),
)

INDUSTRY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "SaaS": ("saas", "software as a service", "cloud platform", "subscription", "api", "dashboard"),
    "Agency": ("agency", "marketing agency", "digital agency", "creative agency", "our clients"),
    "Healthcare": ("patient", "clinic", "medical", "healthcare", "doctor", "treatment"),
    "Legal": ("law firm", "attorney", "lawyer", "legal services", "litigation"),
    "Real Estate": ("real estate", "realtor", "property listings", "homes for sale", "mortgage"),
    "E-commerce": ("add to cart", "shop now", "free shipping", "checkout", "online store"),
    "Financial": ("financial advisor", "wealth management", "investment", "insurance", "accounting"),
    "Education": ("course", "students", "curriculum", "enroll", "university", "training program"),
    "Restaurant": ("menu", "reservations", "restaurant", "dine", "catering", "delivery"),
    "Cybersecurity": ("cybersecurity", "threat detection", "penetration testing", "security operations", "ransomware"),
    "Fintech": ("fintech", "payments platform", "digital banking", "payment processing", "crypto"),
    "Managed IT": ("managed it", "it support", "help desk", "managed services", "network monitoring"),
}


def _text(evidence: Evidence) -> str:
    return evidence.content.body_text or ""


def _word_count(text: str) -> int:
    return len(text.split())


def _snippet_paragraphs(evidence: Evidence) -> int:
    return sum(
        1
        for p in evidence.content.paragraphs
        if SNIPPET_MIN_WORDS <= _word_count(p) <= SNIPPET_MAX_WORDS
    )


def _ttfb(evidence: Evidence) -> int:
    ttfb = evidence.performance.ttfb
    return ttfb if ttfb else MISSING_TTFB_MS


def parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _finish(category: str, subfactors: dict[str, float], config: RubricConfig) -> CategoryScore:
    weights = config.subfactor_weights.get(category)
    if weights is None or set(weights) != set(subfactors):
        raise ConfigError(f"Subfactor weights for {category} do not match its analyzer")

    rounded = {name: round(clamp(value), 1) for name, value in subfactors.items()}
    score = sum(rounded[name] * weight for name, weight in weights.items())
    return CategoryScore(
        score=round_half_up(clamp(score)),
        weight=config.category_weights[category],
        subfactors=rounded,
    )


# ----- AI readability ---------------------------------------------------------


def _alt_text_score(evidence: Evidence) -> float:
    images = evidence.media.images
    if not images:
        return 0

    with_alt = [img for img in images if img.alt.strip()]
    coverage = coverage_ratio(len(with_alt), len(images))

    quality_scores = []
    for img in with_alt:
        alt = img.alt.strip().lower()
        if len(alt) < 5:
            quality_scores.append(30)
        elif any(word in alt for word in GENERIC_ALT_WORDS):
            quality_scores.append(50)
        elif len(alt) > 125:
            quality_scores.append(70)
        else:
            quality_scores.append(100)
    quality = sum(quality_scores) / len(quality_scores) if quality_scores else 0

    return coverage * 0.7 + quality * 0.3


def _captions_score(evidence: Evidence) -> float:
    media = evidence.media
    total = len(media.videos) + len(media.audio)
    if total == 0:
        return 20

    accessible = sum(1 for v in media.videos if v.has_captions or v.has_transcript)
    accessible += sum(1 for a in media.audio if a.has_transcript)
    return coverage_ratio(accessible, total)


def _interactive_access_score(evidence: Evidence) -> float:
    score = 0
    if evidence.content.tables:
        score += 30
    if len(evidence.content.lists) >= 3:
        score += 30
    elif evidence.content.lists:
        score += 15
    if any(v.has_controls for v in evidence.media.videos) or any(a.has_controls for a in evidence.media.audio):
        score += 20
    if evidence.accessibility.aria_labels >= 3:
        score += 20
    return score


def _cross_media_score(evidence: Evidence) -> float:
    images = evidence.media.images
    text = _text(evidence).lower()
    mentioned = sum(1 for img in images if img.alt and img.alt.lower()[:20] in text)

    score = score_tier(len(images), [(5, 60), (2, 40), (1, 20)])
    if mentioned:
        score += 40
    return score


def score_ai_readability(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    return _finish(
        "aiReadability",
        {
            "altTextScore": _alt_text_score(evidence),
            "captionsTranscriptsScore": _captions_score(evidence),
            "interactiveAccessScore": _interactive_access_score(evidence),
            "crossMediaScore": _cross_media_score(evidence),
        },
        config,
    )


# ----- AI search readiness ----------------------------------------------------


def _question_headings_score(evidence: Evidence, config: RubricConfig) -> float:
    headings = evidence.content.headings
    candidates = [*headings.h1, *headings.h2, *headings.h3]
    if not candidates:
        return 0

    questions = sum(1 for h in candidates if is_question(h))
    percent_score = score_tier(coverage_ratio(questions, len(candidates)), config.question_percent_tiers)
    count_score = score_tier(questions, config.question_count_tiers)
    return max(percent_score, count_score)


def _scannability_score(evidence: Evidence) -> float:
    content = evidence.content
    list_items = sum(lst.item_count or len(lst.items) for lst in content.lists)
    short_paragraphs = sum(1 for p in content.paragraphs if _word_count(p) <= SHORT_PARAGRAPH_WORDS)
    return (
        min(40, list_items * 2)
        + min(30, len(content.tables) * 10)
        + min(30, short_paragraphs * 2)
    )


def _faq_score(evidence: Evidence, config: RubricConfig) -> float:
    faq_count = len(evidence.content.faqs)
    headings = evidence.content.headings
    sections = len(headings.h2) + len(headings.h3)
    coverage = coverage_ratio(faq_count, sections)

    count_score = score_tier(faq_count, config.faq_count_tiers)
    coverage_score = score_tier(coverage, config.faq_coverage_tiers)
    return max(count_score, coverage_score)


def _snippet_eligible_score(evidence: Evidence) -> float:
    return score_tier(_snippet_paragraphs(evidence), [(3, 100), (2, 80), (1, 60)], default=30)


def _pillar_pages_score(evidence: Evidence) -> float:
    content = evidence.content
    indicators = [
        len(content.headings.h2) >= 5,
        content.word_count >= 1500,
        evidence.structure.has_main or evidence.structure.has_article,
        len(content.lists) >= 3,
    ]
    return sum(indicators) / len(indicators) * 100


def _linked_subpages_score(evidence: Evidence) -> float:
    return score_tier(evidence.structure.internal_links, [(5, 100), (3, 75), (1, 50)], default=20)


def _pain_points_score(evidence: Evidence) -> float:
    hits = keyword_hits(_text(evidence), PAIN_POINT_KEYWORDS)
    return score_tier(hits, [(3, 100), (2, 70), (1, 40)], default=20)


def _geo_content_score(evidence: Evidence) -> float:
    text = _text(evidence).lower()
    score = 0
    if evidence.metadata.geo_region or evidence.metadata.geo_placename:
        score += 40
    score += min(40, keyword_hits(text, GEO_KEYWORDS) * 10)
    if keyword_hits(text, CASE_STUDY_KEYWORDS):
        score += 20
    return score


def score_ai_search_readiness(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    return _finish(
        "aiSearchReadiness",
        {
            "questionHeadingsScore": _question_headings_score(evidence, config),
            "scannabilityScore": _scannability_score(evidence),
            "readabilityScore": readability_band(_text(evidence)),
            "faqScore": _faq_score(evidence, config),
            "snippetEligibleScore": _snippet_eligible_score(evidence),
            "pillarPagesScore": _pillar_pages_score(evidence),
            "linkedSubpagesScore": _linked_subpages_score(evidence),
            "painPointsScore": _pain_points_score(evidence),
            "geoContentScore": _geo_content_score(evidence),
        },
        config,
    )


# ----- Content freshness ------------------------------------------------------


def _last_updated_score(evidence: Evidence) -> float:
    score = 0
    if evidence.metadata.last_modified or evidence.metadata.published_time:
        score += 50
    if keyword_hits(_text(evidence), UPDATED_PHRASES):
        score += 50
    return score


def _versioning_score(evidence: Evidence) -> float:
    return 75 if keyword_hits(_text(evidence), VERSIONING_KEYWORDS) else 25


def _time_sensitive_score(evidence: Evidence) -> float:
    reference = parse_timestamp(evidence.timestamp)
    if reference is None:
        return 40
    text = _text(evidence)
    if str(reference.year) in text:
        return 100
    if str(reference.year - 1) in text:
        return 70
    return 40


def _audit_process_score(evidence: Evidence) -> float:
    reference = parse_timestamp(evidence.timestamp)
    modified = parse_timestamp(evidence.metadata.last_modified)
    if reference is None or modified is None:
        return 50
    age_days = (reference - modified).total_seconds() / 86400
    return score_tier(age_days, [(30, 100), (90, 80), (180, 60)], default=40, reverse=True)


def _live_data_score(evidence: Evidence) -> float:
    return min(100, keyword_hits(_text(evidence), LIVE_KEYWORDS) * 20)


def _http_freshness_score(evidence: Evidence) -> float:
    technical = evidence.technical
    score = 0
    if technical.cache_control:
        score += 40
    if technical.last_modified:
        score += 30
    if technical.etag:
        score += 30
    return score


def _editorial_calendar_score(evidence: Evidence) -> float:
    return 80 if keyword_hits(_text(evidence), CALENDAR_KEYWORDS) >= 2 else 40


def score_content_freshness(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    return _finish(
        "contentFreshness",
        {
            "lastUpdatedScore": _last_updated_score(evidence),
            "versioningScore": _versioning_score(evidence),
            "timeSensitiveScore": _time_sensitive_score(evidence),
            "auditProcessScore": _audit_process_score(evidence),
            "liveDataScore": _live_data_score(evidence),
            "httpFreshnessScore": _http_freshness_score(evidence),
            "editorialCalendarScore": _editorial_calendar_score(evidence),
        },
        config,
    )


# ----- Content structure ------------------------------------------------------


def _heading_hierarchy_score(evidence: Evidence) -> float:
    structure = evidence.structure
    counts = structure.heading_count
    score = 0

    if counts.h1 == 1:
        score += 30
    elif counts.h1 > 1:
        score += 10

    score += score_tier(counts.h2, [(3, 25), (1, 15)])
    if counts.h3 >= 2:
        score += 20

    if structure.has_main:
        score += 10
    if structure.has_article:
        score += 5
    if structure.landmarks >= 2:
        score += 10
    return score


def _navigation_score(evidence: Evidence) -> float:
    structure = evidence.structure
    score = min(40, structure.elements_with_ids * 8)
    if structure.has_toc:
        score += 30
    if structure.anchor_links >= 3:
        score += 20
    if structure.has_breadcrumbs:
        score += 10
    return score


def _entity_cues_score(evidence: Evidence) -> float:
    unique = len(set(PROPER_NOUN.findall(_text(evidence))))
    unique += evidence.entities.total
    return score_tier(unique, [(20, 100), (10, 75), (5, 50)], default=25)


def _accessibility_score(evidence: Evidence) -> float:
    a11y = evidence.accessibility
    score = 0
    if a11y.has_lang_attribute:
        score += 20
    if a11y.has_skip_link:
        score += 15
    score += min(30, a11y.forms_with_labels * 30)
    if a11y.aria_labels >= 5:
        score += 20
    if a11y.semantic_buttons > a11y.div_click_handlers:
        score += 15
    return score


def _geo_meta_score(evidence: Evidence) -> float:
    score = 50
    if evidence.metadata.geo_region:
        score += 25
    if evidence.metadata.geo_placename:
        score += 25
    return score


def score_content_structure(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    return _finish(
        "contentStructure",
        {
            "headingHierarchyScore": _heading_hierarchy_score(evidence),
            "navigationScore": _navigation_score(evidence),
            "entityCuesScore": _entity_cues_score(evidence),
            "accessibilityScore": _accessibility_score(evidence),
            "geoMetaScore": _geo_meta_score(evidence),
        },
        config,
    )


# ----- Speed & UX -------------------------------------------------------------


def _cls_score(evidence: Evidence) -> float:
    images = evidence.media.images
    if not images:
        return 80
    sized = sum(1 for img in images if img.width and img.height)
    return 40 + coverage_ratio(sized, len(images)) * 0.6


def _mobile_score(evidence: Evidence) -> float:
    technical = evidence.technical
    if "width=device-width" in technical.viewport.replace(" ", "").lower():
        return 100
    if technical.has_viewport:
        return 70
    return 30


def score_speed_ux(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    ttfb = _ttfb(evidence)
    return _finish(
        "speedUX",
        {
            # LCP is estimated at roughly twice the TTFB
            "lcpScore": score_tier(ttfb * 2, [(2500, 100), (4000, 60)], default=30, reverse=True),
            "clsScore": _cls_score(evidence),
            "inpScore": score_tier(ttfb, [(500, 100), (1000, 70)], default=40, reverse=True),
            "mobileScore": _mobile_score(evidence),
            "crawlerResponseScore": score_tier(
                ttfb, [(200, 100), (500, 90), (1000, 70), (2000, 50)], default=30, reverse=True
            ),
        },
        config,
    )


# ----- Technical setup --------------------------------------------------------


def _crawler_access_score(evidence: Evidence) -> float:
    score = 40
    robots = (evidence.technical.robots_meta or evidence.metadata.robots).lower()
    if "noindex" in robots:
        score = 0
    score += score_tier(_ttfb(evidence), [(1000, 40), (2000, 25)], default=10, reverse=True)
    if evidence.technical.has_viewport:
        score += 20
    return score


def structured_data_score(evidence: Evidence) -> float:
    return sum(points for schema_type, points in STRUCTURED_DATA_POINTS if evidence.has_schema(schema_type))


def _canonical_hreflang_score(evidence: Evidence) -> float:
    score = 0
    if evidence.technical.has_canonical or evidence.metadata.canonical:
        score += 60
    if evidence.technical.hreflang_tags > 0:
        score += 40
    return score


def _open_graph_score(evidence: Evidence) -> float:
    metadata = evidence.metadata
    score = 0
    if metadata.og_title:
        score += 30
    if metadata.og_description:
        score += 30
    if metadata.og_image:
        score += 30
    if metadata.og_type:
        score += 10
    return score


def score_technical_setup(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    technical = evidence.technical
    return _finish(
        "technicalSetup",
        {
            "crawlerAccessScore": _crawler_access_score(evidence),
            "structuredDataScore": structured_data_score(evidence),
            "canonicalHreflangScore": _canonical_hreflang_score(evidence),
            "openGraphScore": _open_graph_score(evidence),
            "sitemapScore": 100 if technical.has_sitemap_link else 30,
            "indexNowScore": 100 if technical.has_index_now else 0,
            "rssFeedScore": 100 if technical.has_rss_feed else 0,
        },
        config,
    )


# ----- Trust & authority ------------------------------------------------------


def _credentials(evidence: Evidence, *kinds: str) -> int:
    return sum(1 for c in evidence.entities.professional_credentials if c.get("type") in kinds)


def _author_bios_score(evidence: Evidence) -> float:
    text = _text(evidence)
    score = 50 if keyword_hits(text, AUTHOR_KEYWORDS) or re.search(r"\bby [A-Z][a-z]+", text) else 20
    if evidence.metadata.author:
        score += 30
    score += min(20, keyword_hits(text, EEAT_KEYWORDS) * 5)
    return score


def _certifications_score(evidence: Evidence) -> float:
    hits = keyword_hits(_text(evidence), CERT_KEYWORDS)
    return score_tier(hits, [(3, 100), (2, 70), (1, 40)], default=20)


def _professional_certifications_score(evidence: Evidence) -> float:
    found = _credentials(evidence, "certification", "license")
    return score_tier(found, [(3, 100), (2, 80), (1, 60)], default=20)


def _team_credentials_score(evidence: Evidence) -> float:
    titled_people = sum(1 for p in evidence.entities.people if p.get("jobTitle"))
    signals = titled_people + _credentials(evidence, "degree")
    return score_tier(signals, [(4, 100), (2, 70), (1, 50)], default=20)


def _industry_memberships_score(evidence: Evidence) -> float:
    memberships = _credentials(evidence, "membership")
    if memberships:
        return score_tier(memberships, [(2, 100), (1, 70)])
    return 40 if keyword_hits(_text(evidence), MEMBERSHIP_KEYWORDS) else 20


def _domain_authority_score(evidence: Evidence) -> float:
    # Off-page authority needs an external data source; knowledge-graph links are the on-page proxy.
    same_as = sum(1 for r in evidence.entities.relationships if r.get("predicate") == "sameAs")
    return score_tier(same_as, [(5, 80), (2, 70)], default=60)


def _thought_leadership_score(evidence: Evidence) -> float:
    content = evidence.content
    score = score_tier(content.word_count, [(2000, 30), (1000, 20)])
    if evidence.structure.external_links >= 5:
        score += 30
    if len(content.headings.h2) >= 5:
        score += 20
    if keyword_hits(_text(evidence), CITATION_KEYWORDS):
        score += 20
    return score


def _third_party_profiles_score(evidence: Evidence) -> float:
    hits = keyword_hits(_text(evidence), REVIEW_PLATFORMS)
    return score_tier(hits, [(3, 100), (2, 70), (1, 40)], default=20)


def score_trust_authority(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    return _finish(
        "trustAuthority",
        {
            "authorBiosScore": _author_bios_score(evidence),
            "certificationsScore": _certifications_score(evidence),
            "professionalCertifications": _professional_certifications_score(evidence),
            "teamCredentials": _team_credentials_score(evidence),
            "industryMemberships": _industry_memberships_score(evidence),
            "domainAuthorityScore": _domain_authority_score(evidence),
            "thoughtLeadershipScore": _thought_leadership_score(evidence),
            "thirdPartyProfilesScore": _third_party_profiles_score(evidence),
        },
        config,
    )


# ----- Voice optimization -----------------------------------------------------


def _long_tail_score(evidence: Evidence) -> float:
    phrases = len(set(FOUR_WORD_PHRASE.findall(_text(evidence))))
    return score_tier(phrases, [(50, 100), (30, 80), (15, 60)], default=40)


def _local_intent_score(evidence: Evidence) -> float:
    score = keyword_hits(_text(evidence), LOCAL_KEYWORDS) * 15
    if evidence.metadata.geo_region or evidence.metadata.geo_placename:
        score += 30
    return score


def _conversational_terms_score(evidence: Evidence) -> float:
    hits = keyword_hits(_text(evidence), CONVERSATIONAL_KEYWORDS)
    return score_tier(hits, [(5, 100), (3, 75), (1, 50)], default=25)


def _snippet_format_score(evidence: Evidence) -> float:
    content = evidence.content
    score = min(40, _snippet_paragraphs(evidence) * 10)
    if len(content.lists) >= 3:
        score += 30
    if content.tables:
        score += 30
    return score


def _multi_turn_score(evidence: Evidence) -> float:
    score = min(50, keyword_hits(_text(evidence), CONTINUITY_KEYWORDS) * 5)
    if evidence.structure.internal_links >= 5:
        score += 50
    return score


def score_voice_optimization(evidence: Evidence, config: RubricConfig) -> CategoryScore:
    return _finish(
        "voiceOptimization",
        {
            "longTailScore": _long_tail_score(evidence),
            "localIntentScore": _local_intent_score(evidence),
            "conversationalTermsScore": _conversational_terms_score(evidence),
            "snippetFormatScore": _snippet_format_score(evidence),
            "multiTurnScore": _multi_turn_score(evidence),
        },
        config,
    )


ANALYZERS = {
    "aiReadability": score_ai_readability,
    "aiSearchReadiness": score_ai_search_readiness,
    "contentFreshness": score_content_freshness,
    "contentStructure": score_content_structure,
    "speedUX": score_speed_ux,
    "technicalSetup": score_technical_setup,
    "trustAuthority": score_trust_authority,
    "voiceOptimization": score_voice_optimization,
}


def score_evidence(evidence: Evidence, config: RubricConfig) -> dict[str, CategoryScore]:
    """Run every category analyzer. Keys follow the configured category order."""
    scores: dict[str, CategoryScore] = {}
    for category in config.category_weights:
        analyzer = ANALYZERS.get(category)
        if analyzer is None:
            raise ConfigError(f"No analyzer for category: {category}")
        scores[category] = analyzer(evidence, config)
    return scores


def total_score(category_scores: dict[str, CategoryScore]) -> int:
    total = sum(cat.score * cat.weight for cat in category_scores.values())
    return round_half_up(clamp(total))


def calculate_grade(score: float) -> str:
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def detect_industry(evidence: Evidence) -> str:
    """Keyword-vote industry guess; 'General' when nothing matches."""
    haystack = " ".join(
        [evidence.metadata.title, evidence.metadata.description, _text(evidence)]
    ).lower()

    best, best_hits = "General", 0
    for industry, keywords in INDUSTRY_KEYWORDS.items():
        hits = keyword_hits(haystack, keywords)
        if hits > best_hits:
            best, best_hits = industry, hits

    logger.debug("INDUSTRY: %s (%d keyword hits)", best, best_hits)
    return best
