"""Issue detection: compare subfactor scores to thresholds and rank the gaps."""

import logging
from typing import Any

from evidence import Evidence
from models import CategoryScore, Issue
from rubric import RubricConfig

logger = logging.getLogger(__name__)

RECOMMENDED_SCHEMAS = ("Organization", "WebSite", "WebPage", "BreadcrumbList", "FAQPage", "Article", "Person")
MAX_SLICE_ITEMS = 10


def calculate_severity(gap: float) -> str:
    if gap > 40:
        return "critical"
    if gap > 25:
        return "high"
    if gap > 10:
        return "medium"
    return "low"


def calculate_priority(importance: float, gap: float) -> float:
    """(weight x gap) / 10, with the weight expressed in percentage points."""
    return round(importance * 100 * gap / 10, 2)


def identify_missing_schemas(evidence: Evidence) -> list[str]:
    present = evidence.schema_types()
    return [schema for schema in RECOMMENDED_SCHEMAS if not evidence.has_schema(schema) and schema not in present]


def heading_hierarchy_problems(evidence: Evidence) -> list[str]:
    counts = evidence.structure.heading_count
    headings = evidence.content.headings
    h1 = max(counts.h1, len(headings.h1))
    problems = []

    if h1 == 0:
        problems.append("Missing H1 tag")
    elif h1 > 1:
        problems.append(f"Multiple H1 tags found ({h1})")

    levels = [
        max(getattr(counts, f"h{i}"), len(getattr(headings, f"h{i}")))
        for i in range(1, 7)
    ]
    for i in range(1, 5):
        if levels[i + 1] and not levels[i]:
            problems.append(f"Skipped heading level: H{i} to H{i + 2}")
    return problems


def extract_evidence_slice(subfactor: str, evidence: Evidence) -> dict[str, Any]:
    """The part of the snapshot that explains one subfactor's score."""
    content = evidence.content
    media = evidence.media
    technical = evidence.technical
    metadata = evidence.metadata
    headings = content.headings

    if subfactor == "altTextScore":
        missing = [img.src for img in media.images if not img.alt.strip()]
        return {
            "totalImages": len(media.images),
            "imagesWithAlt": len(media.images) - len(missing),
            "missingAltImages": missing[:MAX_SLICE_ITEMS],
        }
    if subfactor in {"captionsTranscriptsScore", "crossMediaScore", "interactiveAccessScore"}:
        return {
            "videos": len(media.videos),
            "videosWithCaptions": sum(1 for v in media.videos if v.has_captions or v.has_transcript),
            "audio": len(media.audio),
            "images": len(media.images),
            "tables": len(content.tables),
            "lists": len(content.lists),
        }
    if subfactor == "structuredDataScore":
        return {
            "schemaTypes": sorted(evidence.schema_types()),
            "missingSchemas": identify_missing_schemas(evidence),
        }
    if subfactor in {"faqScore", "snippetFormatScore"}:
        return {
            "faqCount": len(content.faqs),
            "hasFaqSchema": evidence.has_schema("FAQPage"),
            "sampleQuestions": [faq.question for faq in content.faqs[:5]],
        }
    if subfactor == "questionHeadingsScore":
        return {
            "h1": headings.h1[:MAX_SLICE_ITEMS],
            "h2": headings.h2[:MAX_SLICE_ITEMS],
            "h3": headings.h3[:MAX_SLICE_ITEMS],
        }
    if subfactor in {"headingHierarchyScore", "navigationScore"}:
        return {
            "headingCount": evidence.structure.heading_count.model_dump(),
            "hierarchyIssues": heading_hierarchy_problems(evidence),
            "hasMain": evidence.structure.has_main,
            "landmarks": evidence.structure.landmarks,
            "hasBreadcrumbs": evidence.structure.has_breadcrumbs,
        }
    if subfactor == "openGraphScore":
        return {
            "ogTitle": metadata.og_title,
            "ogDescription": metadata.og_description,
            "ogImage": metadata.og_image,
            "ogType": metadata.og_type,
            "twitterCard": metadata.twitter_card,
        }
    if subfactor in {"canonicalHreflangScore", "sitemapScore", "indexNowScore", "rssFeedScore", "crawlerAccessScore"}:
        return {
            "hasCanonical": technical.has_canonical,
            "canonicalUrl": technical.canonical_url,
            "hreflangLanguages": technical.hreflang_languages,
            "hasSitemapLink": technical.has_sitemap_link,
            "hasRSSFeed": technical.has_rss_feed,
            "robotsMeta": technical.robots_meta or metadata.robots,
            "hasViewport": technical.has_viewport,
        }
    if subfactor in {"lcpScore", "clsScore", "inpScore", "mobileScore", "crawlerResponseScore"}:
        return {
            "ttfb": evidence.performance.ttfb,
            "viewport": technical.viewport,
            "imagesWithoutDimensions": sum(1 for img in media.images if not (img.width and img.height)),
        }
    if subfactor in {
        "authorBiosScore",
        "certificationsScore",
        "professionalCertifications",
        "teamCredentials",
        "industryMemberships",
        "thirdPartyProfilesScore",
        "domainAuthorityScore",
    }:
        return {
            "author": metadata.author,
            "people": [p.get("name") for p in evidence.entities.people][:MAX_SLICE_ITEMS],
            "credentials": [c.get("value") for c in evidence.entities.professional_credentials][:MAX_SLICE_ITEMS],
        }
    if subfactor in {"lastUpdatedScore", "auditProcessScore", "httpFreshnessScore", "timeSensitiveScore"}:
        return {
            "lastModified": metadata.last_modified or technical.last_modified,
            "publishedTime": metadata.published_time,
            "cacheControl": technical.cache_control,
            "etag": technical.etag,
        }
    if subfactor in {"geoContentScore", "geoMetaScore", "localIntentScore"}:
        return {
            "geoRegion": metadata.geo_region,
            "geoPlacename": metadata.geo_placename,
            "places": len(evidence.entities.places),
        }

    return {
        "title": metadata.title,
        "wordCount": content.word_count,
        "paragraphs": len(content.paragraphs),
        "lists": len(content.lists),
        "h2": len(headings.h2),
    }


def detect_issues(
    category_scores: dict[str, CategoryScore],
    evidence: Evidence,
    config: RubricConfig,
) -> list[Issue]:
    """
    One Issue per subfactor scoring strictly below its threshold,
    ordered by descending priority. Equal priorities keep category order.
    """
    issues: list[Issue] = []

    for category, category_score in category_scores.items():
        importance = config.importance_weights.get(category, 0.0)
        for subfactor, score in category_score.subfactors.items():
            threshold = config.threshold(category, subfactor)
            if threshold is None:
                logger.warning("ISSUE DETECTOR: no threshold for %s.%s", category, subfactor)
                continue
            if score >= threshold:
                continue

            gap = round(threshold - score, 1)
            issues.append(
                Issue(
                    category=category,
                    subfactor=subfactor,
                    current_score=score,
                    threshold=threshold,
                    gap=gap,
                    severity=calculate_severity(gap),
                    priority=calculate_priority(importance, gap),
                    evidence_slice=extract_evidence_slice(subfactor, evidence),
                    page_url=evidence.url,
                )
            )

    issues.sort(key=lambda issue: issue.priority, reverse=True)
    logger.info("ISSUES: %d detected for %s", len(issues), evidence.url or "(no url)")
    return issues
