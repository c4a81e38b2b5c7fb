"""Template fallback for recommendations, plus the shared completeness guard.

Templates never fail: every issue gets a title, finding, impact and steps
built from the issue's own numbers and the page evidence.
"""

import html
import re
from typing import Any
from urllib.parse import urlparse

from evidence import Evidence
from issue_detector import identify_missing_schemas
from models import Issue, Recommendation
from rubric import display_name

MAX_TITLE = 200
MAX_FINDING = 1500
MAX_IMPACT = 2200
MAX_CODE = 20000
MAX_STEP = 600
MAX_STEPS = 12
MAX_QUICK_WIN = 300
MIN_FINDING_CHARS = 20

# an entity such as "&amp;" or "&#39;" cut off by truncation
PARTIAL_ENTITY = re.compile(r"&#?[A-Za-z0-9]{0,8}$")

# title, why it matters, typical time, difficulty, typical gain
TEMPLATES: dict[str, tuple[str, str, str, str, int]] = {
    "altTextScore": (
        "Complete Image Alt Text Coverage",
        "Alt text lets AI systems understand and reference your images in multimodal search.",
        "1-2 hours", "Easy", 8,
    ),
    "captionsTranscriptsScore": (
        "Add Captions and Transcripts to Media",
        "Transcripts turn audio and video into text that answer engines can index and quote.",
        "2-4 hours", "Medium", 8,
    ),
    "interactiveAccessScore": (
        "Make Interactive Content Machine-Readable",
        "Tables, lists and labelled controls expose the same information to crawlers that users see.",
        "1-3 hours", "Medium", 6,
    ),
    "crossMediaScore": (
        "Connect Images to the Surrounding Text",
        "Referencing visuals in copy helps AI relate your media to the topics on the page.",
        "1-2 hours", "Easy", 5,
    ),
    "questionHeadingsScore": (
        "Rewrite Key Headings as Questions",
        "Answer engines match conversational queries against question-shaped headings.",
        "30-60 minutes", "Easy", 10,
    ),
    "scannabilityScore": (
        "Improve Content Scannability",
        "Lists, tables and short paragraphs make key points easy for AI to extract.",
        "1-2 hours", "Easy", 8,
    ),
    "readabilityScore": (
        "Simplify Language for Readability",
        "Plain language at an 8th-10th grade level is easier for assistants to summarise accurately.",
        "2-4 hours", "Medium", 8,
    ),
    "faqScore": (
        "Add FAQ Content and Schema",
        "FAQ content with FAQPage markup helps your answers surface in AI results and voice search.",
        "1-2 hours", "Easy", 12,
    ),
    "snippetEligibleScore": (
        "Write Snippet-Ready Answer Paragraphs",
        "40-60 word direct answers are the format answer engines lift into snippets.",
        "1-2 hours", "Easy", 8,
    ),
    "pillarPagesScore": (
        "Build Out Pillar Content",
        "Comprehensive pages signal topical authority that AI systems prefer to cite.",
        "1-2 days", "Hard", 10,
    ),
    "linkedSubpagesScore": (
        "Link Related Subpages",
        "Internal links let crawlers and assistants follow your topic cluster.",
        "30-60 minutes", "Easy", 6,
    ),
    "painPointsScore": (
        "Address Customer Pain Points Directly",
        "Problem-and-solution language matches how people phrase questions to assistants.",
        "1-2 hours", "Medium", 8,
    ),
    "geoContentScore": (
        "Add Location and Service-Area Content",
        "Geographic detail lets answer engines recommend you for local queries.",
        "1-2 hours", "Medium", 7,
    ),
    "lastUpdatedScore": (
        "Show When Content Was Last Updated",
        "Visible update dates tell AI systems your information is current.",
        "15-30 minutes", "Easy", 6,
    ),
    "versioningScore": (
        "Track Content Revisions",
        "Changelogs and revision notes show the page is actively maintained.",
        "30-60 minutes", "Easy", 4,
    ),
    "timeSensitiveScore": (
        "Refresh Time-Sensitive References",
        "Current-year references keep assistants from treating the page as stale.",
        "30-60 minutes", "Easy", 5,
    ),
    "auditProcessScore": (
        "Set Up a Content Audit Cycle",
        "Regular reviews keep facts accurate and freshness signals recent.",
        "1-2 hours", "Medium", 5,
    ),
    "liveDataScore": (
        "Surface Live or Recent Data",
        "Current figures and dated updates give assistants a reason to cite you over stale sources.",
        "2-4 hours", "Medium", 4,
    ),
    "httpFreshnessScore": (
        "Send Freshness Headers",
        "Last-Modified, ETag and Cache-Control let crawlers revalidate efficiently.",
        "30-60 minutes", "Medium", 4,
    ),
    "editorialCalendarScore": (
        "Publish on a Visible Schedule",
        "A consistent publishing cadence signals an actively maintained source.",
        "1-2 hours", "Easy", 3,
    ),
    "headingHierarchyScore": (
        "Fix Heading Hierarchy",
        "A clean H1-H2-H3 outline tells AI how your content is organised.",
        "30-60 minutes", "Easy", 10,
    ),
    "navigationScore": (
        "Add In-Page Navigation",
        "Anchors, a table of contents and breadcrumbs make sections addressable.",
        "1-2 hours", "Easy", 6,
    ),
    "entityCuesScore": (
        "Name the Entities You Cover",
        "Explicit names of products, people and places help AI build an entity graph of your page.",
        "1-2 hours", "Medium", 6,
    ),
    "accessibilityScore": (
        "Improve Accessibility Markup",
        "Accessible markup (lang, labels, ARIA) is also what machines rely on to parse a page.",
        "1-3 hours", "Medium", 6,
    ),
    "geoMetaScore": (
        "Add Geographic Meta Tags",
        "geo.region and geo.placename tag the page with its service location.",
        "15-30 minutes", "Easy", 3,
    ),
    "lcpScore": (
        "Speed Up Largest Contentful Paint",
        "Slow pages are crawled less often and lose users before the answer appears.",
        "2-4 hours", "Hard", 5,
    ),
    "clsScore": (
        "Reduce Layout Shift",
        "Explicit media dimensions keep the page stable while it loads.",
        "1-2 hours", "Medium", 4,
    ),
    "inpScore": (
        "Improve Interaction Responsiveness",
        "Responsive pages keep visitors who arrive from AI answers.",
        "2-4 hours", "Hard", 4,
    ),
    "mobileScore": (
        "Configure the Mobile Viewport",
        "Most assistant referrals arrive on mobile devices.",
        "15-30 minutes", "Easy", 5,
    ),
    "crawlerResponseScore": (
        "Reduce Server Response Time",
        "AI crawlers time out on slow servers and skip the page.",
        "2-4 hours", "Hard", 5,
    ),
    "crawlerAccessScore": (
        "Open the Page to AI Crawlers",
        "A page that crawlers cannot fetch or index cannot be cited.",
        "30-60 minutes", "Medium", 10,
    ),
    "structuredDataScore": (
        "Implement Structured Data Schema",
        "Structured data tells AI assistants exactly what your content is about, increasing citation chances.",
        "1-2 hours", "Easy", 18,
    ),
    "canonicalHreflangScore": (
        "Declare Canonical and Language Variants",
        "Canonical and hreflang tags consolidate signals onto the right URL per language.",
        "15-30 minutes", "Easy", 5,
    ),
    "openGraphScore": (
        "Add Open Graph and Twitter Card Meta Tags",
        "Ensures rich previews across social and AI surfaces and better click-through from shares.",
        "15-30 minutes", "Easy", 8,
    ),
    "sitemapScore": (
        "Publish an XML Sitemap",
        "A sitemap lets crawlers discover every page and its last-modified date.",
        "30-60 minutes", "Easy", 6,
    ),
    "indexNowScore": (
        "Enable IndexNow Notifications",
        "IndexNow pushes content changes to participating search engines immediately.",
        "30-60 minutes", "Medium", 5,
    ),
    "rssFeedScore": (
        "Publish an RSS Feed",
        "Feeds give aggregators and assistants a structured stream of your new content.",
        "30-60 minutes", "Easy", 3,
    ),
    "authorBiosScore": (
        "Add Author Bios",
        "Named, qualified authors are a core experience and expertise signal.",
        "1-2 hours", "Easy", 8,
    ),
    "certificationsScore": (
        "Showcase Certifications and Awards",
        "Third-party credentials make your claims verifiable.",
        "30-60 minutes", "Easy", 5,
    ),
    "professionalCertifications": (
        "List Professional Certifications",
        "Named certifications (e.g. licences, vendor credentials) let AI verify expertise.",
        "30-60 minutes", "Easy", 6,
    ),
    "teamCredentials": (
        "Document Team Credentials",
        "Team members with titles and qualifications strengthen trust signals.",
        "1-2 hours", "Easy", 5,
    ),
    "industryMemberships": (
        "Show Industry Memberships",
        "Association memberships connect your brand to recognised organisations.",
        "15-30 minutes", "Easy", 4,
    ),
    "domainAuthorityScore": (
        "Strengthen Entity Links to Authoritative Profiles",
        "sameAs links to established profiles tie your entity to trusted sources.",
        "1-2 hours", "Medium", 5,
    ),
    "thoughtLeadershipScore": (
        "Publish Thought Leadership",
        "Original, sourced, in-depth content is what assistants choose to cite.",
        "1-2 days", "Hard", 8,
    ),
    "thirdPartyProfilesScore": (
        "Link Reviews and Third-Party Profiles",
        "Reviews on independent platforms corroborate your claims.",
        "30-60 minutes", "Easy", 5,
    ),
    "longTailScore": (
        "Cover Long-Tail Questions",
        "Specific multi-word phrases match the detailed queries people ask assistants.",
        "2-4 hours", "Medium", 6,
    ),
    "localIntentScore": (
        "Target Local Intent",
        "Near-me and location phrasing captures local voice queries.",
        "1-2 hours", "Easy", 6,
    ),
    "conversationalTermsScore": (
        "Use Conversational Language",
        "Voice queries are phrased as natural questions; matching copy gets matched answers.",
        "1-2 hours", "Easy", 6,
    ),
    "snippetFormatScore": (
        "Format Answers for Featured Snippets",
        "Short answers, lists and tables are the shapes voice assistants read out.",
        "1-2 hours", "Easy", 6,
    ),
    "multiTurnScore": (
        "Support Follow-Up Questions",
        "Linked follow-up content keeps assistants on your site across a conversation.",
        "1-2 hours", "Medium", 4,
    ),
}

DEFAULT_TEMPLATE = ("", "Improving this area increases how reliably AI systems understand and cite the page.", "1-2 hours", "Medium", 5)


def template_for(subfactor: str) -> dict[str, Any]:
    title, why, time, difficulty, gain = TEMPLATES.get(subfactor, DEFAULT_TEMPLATE)
    return {
        "title": title or f"Improve {display_name(subfactor)}",
        "impact": why,
        "estimated_time": time,
        "difficulty": difficulty,
        "estimated_score_gain": gain,
    }


def domain_of(url: str) -> str:
    host = urlparse(url or "").hostname or ""
    return host[4:] if host.startswith("www.") else host or "this site"


def score_breakdown(issue: Issue) -> dict[str, Any]:
    """Projected gain split across what a fix typically addresses."""
    gap = max(0.0, issue.gap)
    max_gain = min(round(gap * 0.85), 40)
    coverage = round(max_gain * 0.4)
    completeness = round(max_gain * 0.3)
    consistency = round(max_gain * 0.2)
    return {
        "min": max(8, round(max_gain * 0.6)) if max_gain else 0,
        "max": max_gain,
        "coverage": coverage,
        "completeness": completeness,
        "consistency": consistency,
        "crawlability": max_gain - (coverage + completeness + consistency),
    }


def clamp_text(text: str, limit: int) -> str:
    text = str(text or "")
    if len(text) <= limit:
        return text
    return PARTIAL_ENTITY.sub("", text[: limit - 1]) + "…"


def escape_text(text: str) -> str:
    return html.escape(str(text or ""), quote=True)


def build_smart_finding(issue: Issue, evidence: Evidence) -> str:
    subfactor = issue.subfactor
    domain = domain_of(evidence.url)
    title = evidence.metadata.title or "this page"
    word_count = evidence.content.word_count
    technical = evidence.technical

    if subfactor == "structuredDataScore":
        found = sorted(evidence.schema_types())
        missing = identify_missing_schemas(evidence)
        if not found:
            return (
                f"No Schema.org markup detected on {domain}. Your {word_count} words of content "
                "are invisible to AI entity recognition."
            )
        if not missing:
            return f"Schema.org on {domain} covers {', '.join(found)}, but the blocks are too sparse to score well."
        return f"Limited Schema.org on {domain}. Found: {', '.join(found)}. Missing: {', '.join(missing)}."

    if subfactor == "faqScore":
        faq_count = len(evidence.content.faqs)
        if faq_count and not evidence.has_schema("FAQPage"):
            return f'Found {faq_count} on-page FAQs on "{title}" but no FAQPage schema to mark them up.'
        if faq_count:
            return f'Only {faq_count} FAQ pairs on "{title}". Answer engines favour pages with five or more.'
        return f"No FAQ content or schema on {domain}. The {word_count}-word page has no Q&A pairs for AI to quote."

    if subfactor == "altTextScore":
        images = evidence.media.images
        with_alt = sum(1 for img in images if img.alt.strip())
        if not images:
            return f'No images found on "{title}". Pages without described visuals give multimodal search nothing to index.'
        coverage = round(with_alt / len(images) * 100)
        return (
            f"Alt text coverage: {coverage}% ({with_alt}/{len(images)} images). "
            f"{len(images) - with_alt} images are invisible to multimodal AI search."
        )

    if subfactor == "questionHeadingsScore":
        headings = evidence.content.headings
        sections = [*headings.h2, *headings.h3]
        questions = sum(1 for h in sections if h.strip().endswith("?"))
        pct = round(questions / len(sections) * 100) if sections else 0
        return (
            f'Only {questions} of {len(sections)} headings ({pct}%) are phrased as questions on "{title}", '
            "which limits matching against conversational queries."
        )

    if subfactor == "openGraphScore":
        metadata = evidence.metadata
        missing = [
            tag
            for tag, value in (
                ("og:title", metadata.og_title),
                ("og:description", metadata.og_description),
                ("og:image", metadata.og_image),
                ("twitter:card", metadata.twitter_card),
            )
            if not value
        ]
        if missing:
            return f'Open Graph incomplete on "{title}": missing {", ".join(missing)}. Shared links render without a proper preview.'
        return "Open Graph tags are present but incomplete for rich previews."

    if subfactor == "headingHierarchyScore":
        h1_count = evidence.structure.heading_count.h1
        if h1_count == 0:
            return f'"{title}" has no H1, so AI has no primary topic to anchor the page on.'
        if h1_count > 1:
            return f'"{title}" has {h1_count} H1 tags. Exactly one H1 gives AI a clear primary topic.'
        return f"Heading structure scored {issue.current_score:g}/100 (target {issue.threshold})."

    if subfactor == "readabilityScore":
        return (
            f"Readability scored {issue.current_score:g}/100 on a {word_count}-word page. "
            "Assistants summarise text at a Flesch score of 60+ most reliably."
        )

    if subfactor == "scannabilityScore":
        h2_count = evidence.structure.heading_count.h2
        lists = len(evidence.content.lists)
        if lists == 0:
            return f"No bulleted or numbered lists on the {word_count}-word page and {h2_count} H2 sections."
        return f"Scannability scored {issue.current_score:g}/100 with {lists} lists and {h2_count} H2 sections."

    if subfactor == "sitemapScore" and not technical.has_sitemap_link:
        return f"No XML sitemap reference found for {domain}."

    if subfactor == "crawlerResponseScore" or subfactor == "lcpScore":
        ttfb = evidence.performance.ttfb
        if ttfb is None:
            return f"Server response time for {domain} could not be measured, so it is scored as slow."
        return f"Time to first byte on {domain} is {ttfb} ms."

    return (
        f'{display_name(subfactor)} scored {issue.current_score:g}/100 on "{title}" '
        f"(target {issue.threshold}/100, gap {issue.gap:g} points)."
    )


def context_aware_steps(issue: Issue, evidence: Evidence) -> list[str]:
    subfactor = issue.subfactor
    domain = domain_of(evidence.url)
    word_count = evidence.content.word_count

    if subfactor == "structuredDataScore":
        missing = identify_missing_schemas(evidence)
        if missing:
            add_step = f"Add {', '.join(missing)} JSON-LD before </head>."
        else:
            add_step = "Fill in the empty properties of your existing JSON-LD blocks (logo, sameAs, author, dates)."
        return [
            "Open your homepage template file (e.g. index.html or header.php).",
            add_step,
            "Validate at validator.schema.org and in Google's Rich Results Test.",
            "Request re-indexing of the page in Google Search Console.",
        ]
    if subfactor == "faqScore":
        faq_count = len(evidence.content.faqs)
        if faq_count:
            return [
                f"Mark up your {faq_count} existing FAQ pairs with FAQPage schema.",
                "Paste the JSON-LD into the page template before </head>.",
                "Make each schema question and answer match the on-page text exactly.",
                "Validate with Google's Rich Results Test.",
            ]
        return [
            f"List the 5-10 questions customers most often ask about {domain}.",
            "Write a direct answer for each (80-140 words).",
            "Publish them in a visible FAQ section on the page.",
            "Add FAQPage schema that mirrors the on-page questions and answers.",
            "Validate with Google's Rich Results Test and re-scan.",
        ]
    if subfactor == "altTextScore":
        missing = sum(1 for img in evidence.media.images if not img.alt.strip())
        steps = []
        if missing:
            steps.append(f"Audit the {missing} images on {domain} that have no alt text.")
        else:
            steps.append("Add descriptive images (diagrams, product shots, team photos) that support the copy.")
        return steps + [
            "Write alt text that says what the image shows in 10-15 words.",
            'Use an empty alt="" only for purely decorative images.',
            "Require alt text in your CMS before publishing.",
        ]
    if subfactor == "questionHeadingsScore":
        return [
            "Audit your H2 and H3 headings and rewrite 30-50% of them as natural questions.",
            "Start question headings with Who, What, When, Where, Why or How.",
            "Answer each question in the first paragraph under its heading.",
            "Read the headings aloud to check they sound like spoken queries.",
        ]
    if subfactor == "openGraphScore":
        return [
            "Open the template that renders your site's <head>.",
            "Add og:title, og:description, og:image, og:url and twitter:card tags.",
            "Use a 1200x630 image hosted on your own domain for og:image.",
            "Check the preview with a social card validator and re-scan.",
        ]
    if subfactor == "headingHierarchyScore":
        h1_count = evidence.structure.heading_count.h1
        if h1_count == 0:
            first = "Add exactly one H1 that states the page's primary topic."
        elif h1_count > 1:
            first = f"Reduce the {h1_count} H1 tags to exactly one and demote the rest to H2."
        else:
            first = "Keep exactly one H1 per page."
        return [
            first,
            "Use H2 for main sections and H3 for subsections.",
            "Never skip a heading level (H1 to H3 without an H2).",
            "Make headings descriptive rather than generic labels.",
        ]
    if subfactor == "readabilityScore":
        return [
            f"Review the {word_count}-word page for long sentences and jargon.",
            "Aim for 15-20 words per sentence and an 8th-10th grade reading level.",
            "Prefer active voice and define technical terms on first use.",
            "Re-check the Flesch score after editing.",
        ]
    if subfactor == "scannabilityScore":
        h2_count = evidence.structure.heading_count.h2
        recommended = max(3, round(word_count / 300))
        return [
            f"Add {max(1, recommended - h2_count)} more H2 sections to break up the page.",
            "Turn feature, benefit and step sequences into bulleted or numbered lists.",
            "Keep paragraphs under 100 words.",
            "Use a table for any side-by-side comparison.",
        ]
    if subfactor == "sitemapScore":
        return [
            "Generate an XML sitemap with your CMS or a sitemap generator.",
            "Include lastmod dates for every URL.",
            "Serve it at /sitemap.xml and reference it from robots.txt.",
            "Submit the sitemap in Google Search Console and Bing Webmaster Tools.",
        ]
    if subfactor == "crawlerAccessScore":
        return [
            "Check robots.txt is not blocking the page or AI crawlers such as GPTBot.",
            'Remove any "noindex" robots meta tag from pages you want cited.',
            "Test the URL with Search Console's URL Inspection tool.",
            f"Reference your sitemap in robots.txt: Sitemap: https://{domain}/sitemap.xml",
        ]
    if subfactor == "captionsTranscriptsScore":
        video_count = len(evidence.media.videos)
        if video_count:
            return [
                f"Add captions to each of the {video_count} videos on the page.",
                "Publish a full text transcript below each video.",
                "Correct brand and product names in auto-generated captions.",
            ]
        return [
            "Add a short explainer video or audio clip where it supports the content.",
            "Publish captions and a full transcript alongside it.",
            "Reference the media in the surrounding copy.",
        ]

    name = display_name(subfactor)
    return [
        f"Open the page template for {domain} that affects {name}.",
        f"Compare the current {name} against the target of {issue.threshold}/100.",
        "Apply the changes described in the finding above.",
        "Validate the change with the relevant validator and re-scan.",
    ]


def coerce_recommendation(fields: dict[str, Any], issue: Issue) -> dict[str, Any]:
    """Back-fill missing or weak sections and apply length limits."""
    template = template_for(issue.subfactor)
    name = display_name(issue.subfactor)

    if not fields.get("title"):
        fields["title"] = template["title"]
    if not fields.get("finding") or len(fields["finding"]) < MIN_FINDING_CHARS:
        fields["finding"] = (
            f"{name} scored {issue.current_score:g}/100, {issue.gap:g} points below the "
            f"{issue.threshold}/100 target."
        )
    if not fields.get("impact") or len(fields["impact"]) < MIN_FINDING_CHARS:
        fields["impact"] = template["impact"]
    steps = [s for s in fields.get("action_steps") or [] if str(s).strip()]
    if not steps:
        steps = [
            f"Open the page template that controls {name}.",
            "Apply the changes described in the finding.",
            "Validate the change and re-scan the page.",
        ]
    if not isinstance(fields.get("code_snippet"), str):
        fields["code_snippet"] = ""

    fields["title"] = clamp_text(fields["title"], MAX_TITLE)
    fields["finding"] = clamp_text(fields["finding"], MAX_FINDING)
    fields["impact"] = clamp_text(fields["impact"], MAX_IMPACT)
    fields["code_snippet"] = clamp_text(fields["code_snippet"], MAX_CODE)
    fields["action_steps"] = [clamp_text(s, MAX_STEP) for s in steps][:MAX_STEPS]
    fields["quick_wins"] = [clamp_text(q, MAX_QUICK_WIN) for q in fields.get("quick_wins") or []][:MAX_STEPS]
    return fields


def build_recommendation(issue: Issue, generated_by: str, **fields: Any) -> Recommendation:
    """Assemble a Recommendation, taking anything not supplied from the template."""
    template = template_for(issue.subfactor)
    merged: dict[str, Any] = {
        "id": f"rec_{issue.category}_{issue.subfactor}",
        "title": template["title"],
        "category": issue.category,
        "subfactor": issue.subfactor,
        "priority": issue.severity,
        "priority_score": issue.priority,
        "impact": template["impact"],
        "estimated_time": template["estimated_time"],
        "difficulty": template["difficulty"],
        "estimated_score_gain": template["estimated_score_gain"],
        "current_score": issue.current_score,
        "target_score": issue.threshold,
        "evidence": issue.evidence_slice,
        "generated_by": generated_by,
    }
    merged.update({k: v for k, v in fields.items() if v is not None})
    return Recommendation(**coerce_recommendation(merged, issue))


def make_template_recommendation(issue: Issue, evidence: Evidence) -> Recommendation:
    return build_recommendation(
        issue,
        "template",
        finding=build_smart_finding(issue, evidence),
        action_steps=context_aware_steps(issue, evidence),
    )
