"""Deterministic recommendation generators.

Each generator builds its code and copy purely from facts found on the page.
When a fact it needs is missing it returns Skip so the caller can move on to
the next strategy; nothing is ever filled with placeholder values.
"""

import hashlib
import html
import json
import logging
import re
from pathlib import PurePosixPath
from typing import Callable
from urllib.parse import urlparse

from evidence import Evidence
from facts import extract_site_facts
from issue_detector import heading_hierarchy_problems, identify_missing_schemas
from jsonld import (
    build_article,
    build_breadcrumb,
    build_faq_jsonld,
    build_organization,
    build_person,
    build_webpage,
    build_website,
    script_tag,
)
from models import Issue, Recommendation, SiteFacts, Skip
from rec_templates import build_recommendation, domain_of
from rubric import CATEGORY_NAMES
from text_metrics import is_question

logger = logging.getLogger(__name__)

MAX_FAQ_PAIRS = 10
MAX_HEADING_REWRITES = 6
MAX_IMAGE_EXAMPLES = 5
MAX_MEDIA_EXAMPLES = 3
MIN_H2_SECTIONS = 3
GENERIC_IMAGE_NAMES = {"img", "image", "images", "photo", "pic", "picture", "dsc", "screenshot", "untitled"}

# (pattern on the heading, question template); {brand} and {rest} are filled in.
HEADING_REWRITES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^(our\s+)?services?$", re.I), "What services does {brand} offer?"),
    (re.compile(r"^(our\s+)?(pricing|plans|plans\s*(&|and)\s*pricing)$", re.I), "How much does {brand} cost?"),
    (re.compile(r"^about(\s+us)?$", re.I), "Who is {brand}?"),
    (re.compile(r"^contact(\s+us)?$", re.I), "How can I contact {brand}?"),
    (re.compile(r"^how\s+it\s+works$", re.I), "How does {brand} work?"),
    (re.compile(r"^(key\s+)?features$", re.I), "What features does {brand} offer?"),
    (re.compile(r"^why\s+(choose\s+)?us$", re.I), "Why choose {brand}?"),
    (re.compile(r"^(our\s+)?(team|people)$", re.I), "Who is on the {brand} team?"),
    (re.compile(r"^(testimonials|reviews|what\s+(our\s+)?clients\s+say)$", re.I), "What do customers say about {brand}?"),
    (re.compile(r"^(getting\s+started|get\s+started)$", re.I), "How do I get started with {brand}?"),
    (re.compile(r"^benefits\s+of\s+(?P<rest>.+)$", re.I), "What are the benefits of {rest}?"),
    (re.compile(r"^types\s+of\s+(?P<rest>.+)$", re.I), "What types of {rest} are there?"),
    (re.compile(r"^(?P<rest>.+)\s+benefits$", re.I), "What are the benefits of {rest}?"),
    (re.compile(r"^(?P<rest>.+)\s+pricing$", re.I), "How much does {rest} cost?"),
]


def heading_to_question(heading: str, brand: str) -> str:
    """Rewrite a statement heading as a natural question."""
    text = re.sub(r"\s+", " ", heading).strip().rstrip(":.!")
    subject = brand or "the company"
    for pattern, template in HEADING_REWRITES:
        match = pattern.match(text)
        if match:
            rest = match.groupdict().get("rest") or ""
            return template.format(brand=subject, rest=rest.strip())
    return f"What should I know about {text}?"


def _faq_pairs_from_schema(evidence: Evidence) -> list[tuple[str, str]]:
    pairs = []
    for block in evidence.technical.structured_data:
        nodes = [block.raw, *[n for n in block.raw.get("@graph", []) or [] if isinstance(n, dict)]]
        for node in nodes:
            if node.get("@type") != "FAQPage":
                continue
            entities = node.get("mainEntity") or []
            if isinstance(entities, dict):
                entities = [entities]
            for entity in entities:
                if not isinstance(entity, dict):
                    continue
                question = str(entity.get("name") or "").strip()
                answer = entity.get("acceptedAnswer") or {}
                answer_text = str(answer.get("text") or "").strip() if isinstance(answer, dict) else ""
                if question and answer_text:
                    pairs.append((question, answer_text))
    return pairs[:MAX_FAQ_PAIRS]


def _faq_section_html(pairs: list[tuple[str, str]]) -> str:
    items = "\n".join(
        f'  <div class="faq-item">\n    <h3>{html.escape(q)}</h3>\n    <p>{html.escape(a)}</p>\n  </div>'
        for q, a in pairs
    )
    return f'<section class="faq-section">\n  <h2>Frequently Asked Questions</h2>\n{items}\n</section>'


def make_structured_data_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    if not facts.origin:
        return Skip("page URL unknown; cannot build @id values")

    missing = identify_missing_schemas(evidence)
    page_pairs = [(f.question, f.answer) for f in evidence.content.faqs if f.question and f.answer]

    builders = {
        "Organization": lambda: build_organization(facts) if facts.brand else None,
        "WebSite": lambda: build_website(facts),
        "WebPage": lambda: build_webpage(facts),
        "BreadcrumbList": lambda: build_breadcrumb(facts),
        "FAQPage": lambda: build_faq_jsonld(facts.page_url, page_pairs[:MAX_FAQ_PAIRS]),
        "Article": lambda: build_article(facts),
        "Person": lambda: build_person(facts),
    }
    blocks = []
    added = []
    for schema_type in missing:
        node = builders[schema_type]()
        if node:
            blocks.append(node)
            added.append(schema_type)

    if not blocks:
        return Skip("no missing schema type can be derived from page facts")

    present = sorted(evidence.schema_types())
    domain = domain_of(evidence.url)
    if present:
        finding = (
            f"Structured data on {domain} covers {', '.join(present)} but is missing "
            f"{', '.join(added)}. The snippet below adds only the missing types."
        )
    else:
        finding = f"No Schema.org JSON-LD detected on {domain}. AI assistants cannot reliably identify your entity."

    steps = [
        "Open the template that renders this page's <head>.",
        "Paste the JSON-LD blocks below just before </head>.",
        "Keep any existing schema blocks; these blocks do not duplicate them.",
        "Deploy, then validate in Google's Rich Results Test.",
    ]
    if "FAQPage" in added:
        steps.append("Keep the FAQPage answers identical to the visible FAQ text on the page.")

    return build_recommendation(
        issue,
        "programmatic",
        title=f"Add {' + '.join(added)} schema",
        finding=finding,
        impact="Defines your canonical entity for AI systems, enables rich results and improves citation accuracy.",
        action_steps=steps,
        code_snippet="\n".join(script_tag(b) for b in blocks),
    )


def make_faq_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    has_schema = evidence.has_schema("FAQPage")
    page_pairs = [(f.question, f.answer) for f in evidence.content.faqs if f.question and f.answer]
    faq_count = len(evidence.content.faqs)
    domain = domain_of(evidence.url)
    code = ""

    if has_schema and faq_count == 0:
        finding = (
            "Status: Incomplete\n\n"
            f"FAQPage schema detected in JSON-LD, but no visible FAQ content found on {domain}. "
            "Search engines and AI assistants need both the markup and on-page Q&A to surface your answers."
        )
        schema_pairs = _faq_pairs_from_schema(evidence)
        if schema_pairs:
            code = _faq_section_html(schema_pairs)
        steps = [
            "Add a visible FAQ section to the page, above the footer.",
            "Use the questions and answers from your existing FAQPage schema as the on-page copy.",
            "Keep the schema and the visible text identical.",
            "Validate in Google's Rich Results Test and re-scan.",
        ]
    elif has_schema:
        finding = (
            "Status: Good Progress\n\n"
            f"{faq_count} FAQ pairs detected on-page with FAQPage schema markup. "
            "Expand to 5-10 pairs that answer your customers' real questions to maximise AI visibility."
        )
        steps = [
            f"Review the {faq_count} existing FAQ pairs against support and sales questions.",
            "Add questions until the section has 5-10 pairs.",
            "Add each new pair to the FAQPage schema as well as the visible section.",
            "Validate in Google's Rich Results Test and re-scan.",
        ]
    elif faq_count:
        finding = (
            "Status: Missing Schema\n\n"
            f"{faq_count} FAQ pairs detected on-page, but no FAQPage schema markup. "
            "Adding schema helps AI assistants extract and cite your answers."
        )
        node = build_faq_jsonld(facts.page_url or evidence.url, page_pairs[:MAX_FAQ_PAIRS])
        if node:
            code = script_tag(node)
        steps = [
            "Copy the FAQPage JSON-LD below; it is built from your on-page questions.",
            "Paste it into the page's <head> or inject it through your tag manager.",
            "Validate in Google's Rich Results Test.",
            "Re-scan to confirm the FAQ score improves.",
        ]
    else:
        finding = (
            "Status: Missing\n\n"
            f"No on-page FAQ content or FAQPage schema detected on {domain}. "
            "This limits how AI assistants extract clear answers about your services, pricing and terms."
        )
        steps = [
            f"List the 5-10 questions customers ask most about {facts.brand or domain}.",
            "Write a direct 80-140 word answer for each.",
            "Publish them in a visible FAQ section on the page.",
            "Add FAQPage schema that mirrors the visible questions and answers.",
            "Validate in Google's Rich Results Test and re-scan.",
        ]

    gain_low = max(8, round(issue.gap * 0.7))
    gain_high = max(15, round(issue.gap * 0.95))
    return build_recommendation(
        issue,
        "programmatic",
        title=f"{CATEGORY_NAMES.get(issue.category, issue.category)}: FAQ Section",
        finding=finding,
        impact=(
            f"Impact: High | +{gain_low}-{gain_high} pts potential\n\n"
            "FAQ content with matching schema is the format AI assistants quote most directly."
        ),
        action_steps=steps,
        code_snippet=code,
        estimated_score_gain=max(12, round(issue.gap * 0.8)),
        quick_wins=[
            "Answer each question in the first sentence, then add detail.",
            "Keep FAQ answers visible rather than behind collapsed tabs that block crawlers.",
        ],
    )


def make_open_graph_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    title = evidence.metadata.og_title or evidence.metadata.title or facts.brand
    if not title or not evidence.url:
        return Skip("no page title or URL to build social tags from")

    description = evidence.metadata.og_description or facts.description
    image = facts.og_image or facts.logo
    site_name = facts.brand

    def meta(attr: str, name: str, value: str) -> str:
        return f'<meta {attr}="{name}" content="{html.escape(value, quote=True)}">'

    lines = ["<!-- Open Graph -->", meta("property", "og:type", "website"), meta("property", "og:url", evidence.url)]
    lines.append(meta("property", "og:title", title))
    if description:
        lines.append(meta("property", "og:description", description))
    if image:
        lines.append(meta("property", "og:image", image))
    if site_name:
        lines.append(meta("property", "og:site_name", site_name))
    lines += ["", "<!-- Twitter Card -->"]
    lines.append(meta("name", "twitter:card", "summary_large_image" if image else "summary"))
    lines.append(meta("name", "twitter:title", title))
    if description:
        lines.append(meta("name", "twitter:description", description))
    if image:
        lines.append(meta("name", "twitter:image", image))

    steps = [
        "Open the template for this page's <head>.",
        "Paste the meta tags below inside <head>, one set per page.",
    ]
    if not image:
        steps.append("Add og:image and twitter:image tags once you have a 1200x630 image hosted on your domain.")
    if not description:
        steps.append("Add og:description and twitter:description once the page has a meta description.")
    steps.append("Validate with a social card debugger, then re-scan.")

    return build_recommendation(
        issue,
        "programmatic",
        finding="Open Graph metadata is missing or incomplete. Social previews and link shares will be poor or inconsistent.",
        impact="Improves social link previews and helps AI assistants form rich entity cards.",
        action_steps=steps,
        code_snippet="\n".join(lines),
    )


def make_question_headings_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    headings = evidence.content.headings
    statements = [h.strip() for h in [*headings.h2, *headings.h3] if h.strip() and not is_question(h)]
    if not statements:
        return Skip("no statement headings to rewrite")

    rewrites = [(h, heading_to_question(h, facts.brand)) for h in statements[:MAX_HEADING_REWRITES]]
    total = len(headings.h2) + len(headings.h3)
    questions = total - len(statements)
    code = "\n".join(
        f"<!-- Before: {html.escape(before)} -->\n<h2>{html.escape(after)}</h2>" for before, after in rewrites
    )
    steps = [f'Change "{before}" to "{after}".' for before, after in rewrites]
    steps.append("Answer each question in the first paragraph directly under it.")

    return build_recommendation(
        issue,
        "programmatic",
        finding=(
            f"{questions} of {total} section headings on {domain_of(evidence.url)} are phrased as questions. "
            "Rewriting the headings below matches them to how people ask assistants."
        ),
        action_steps=steps,
        code_snippet=code,
    )


def make_sitemap_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    if not facts.origin or not facts.page_url:
        return Skip("page URL unknown")

    lastmod = (evidence.metadata.last_modified or evidence.technical.last_modified or "")[:10]
    entry = [f"    <loc>{html.escape(facts.page_url)}</loc>"]
    if re.match(r"^\d{4}-\d{2}-\d{2}$", lastmod):
        entry.append(f"    <lastmod>{lastmod}</lastmod>")
    code = (
        "# robots.txt\n"
        f"Sitemap: {facts.origin}/sitemap.xml\n\n"
        "<!-- sitemap.xml -->\n"
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        "  <url>\n" + "\n".join(entry) + "\n  </url>\n"
        "</urlset>"
    )
    return build_recommendation(
        issue,
        "programmatic",
        finding=f"No XML sitemap reference found for {domain_of(evidence.url)}.",
        action_steps=[
            f"Publish a sitemap at {facts.origin}/sitemap.xml listing every indexable page.",
            "Start from the entry below and add one <url> per page.",
            "Add the Sitemap line to robots.txt.",
            "Submit the sitemap in Google Search Console and Bing Webmaster Tools.",
        ],
        code_snippet=code,
    )


def make_canonical_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    if not facts.page_url:
        return Skip("page URL unknown")

    lines = []
    if not (evidence.technical.has_canonical or evidence.metadata.canonical):
        lines.append(f'<link rel="canonical" href="{html.escape(facts.page_url, quote=True)}">')
    languages = list(dict.fromkeys(
        [lang for lang in [*evidence.technical.hreflang_languages, evidence.metadata.language] if lang]
    ))
    if evidence.technical.hreflang_tags == 0 and languages:
        for lang in languages:
            lines.append(f'<link rel="alternate" hreflang="{html.escape(lang, quote=True)}" href="{html.escape(facts.page_url, quote=True)}">')
        lines.append(f'<link rel="alternate" hreflang="x-default" href="{html.escape(facts.page_url, quote=True)}">')
    if not lines:
        return Skip("canonical present and no language variants known")

    return build_recommendation(
        issue,
        "programmatic",
        finding="The page does not declare its canonical URL or language variants, so duplicate URLs can split its signals.",
        action_steps=[
            "Add the link tags below inside <head>.",
            "Make sure every language variant lists all the others with hreflang.",
            "Re-scan to confirm the tags are detected.",
        ],
        code_snippet="\n".join(lines),
    )


def suggest_alt_text(src: str, brand: str) -> str:
    """A starting alt text from the image file name, or "" when the name says nothing."""
    stem = PurePosixPath(urlparse(src or "").path).stem
    words = re.sub(r"\s+", " ", re.sub(r"[-_.]+|\d+", " ", stem)).strip().lower()
    if not words or words in GENERIC_IMAGE_NAMES:
        return ""
    if brand and brand.lower() not in words:
        return f"{brand} {words}"
    return words[:1].upper() + words[1:]


def make_alt_text_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    images = evidence.media.images
    missing = [img for img in images if not img.alt.strip()]
    if not missing:
        return Skip("no images without alt text")

    coverage = round((len(images) - len(missing)) / len(images) * 100)
    tags = []
    steps = []
    for img in missing[:MAX_IMAGE_EXAMPLES]:
        name = PurePosixPath(urlparse(img.src).path).name or img.src or "an image without a src"
        alt = suggest_alt_text(img.src, facts.brand)
        if alt:
            tags.append(f'<img src="{html.escape(img.src, quote=True)}" alt="{html.escape(alt, quote=True)}">')
            steps.append(f'Add alt="{alt}" to {name}, then adjust it to describe what the image actually shows.')
        else:
            steps.append(f"Write 8-15 words of alt text for {name} describing what it shows.")
    if len(missing) > MAX_IMAGE_EXAMPLES:
        steps.append(f"Repeat for the other {len(missing) - MAX_IMAGE_EXAMPLES} images without alt text.")
    steps += [
        'Use an empty alt="" only for purely decorative images.',
        "Re-scan to confirm alt text coverage reaches 100%.",
    ]

    return build_recommendation(
        issue,
        "programmatic",
        finding=(
            f"{len(missing)} of {len(images)} images on {domain_of(evidence.url)} have no alt text "
            f"({coverage}% coverage). AI assistants and screen readers skip images without a description."
        ),
        action_steps=steps,
        code_snippet="\n".join(tags),
    )


def make_captions_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    videos = [v for v in evidence.media.videos if not (v.has_captions or v.has_transcript)]
    audio = [a for a in evidence.media.audio if not a.has_transcript]
    if not videos and not audio:
        return Skip("no media without captions or transcripts")

    srclang = f' srclang="{html.escape(facts.language, quote=True)}"' if facts.language else ""
    blocks = []
    for video in videos[:MAX_MEDIA_EXAMPLES]:
        stem = PurePosixPath(urlparse(video.src).path).stem or "video"
        blocks.append(
            f'<video src="{html.escape(video.src, quote=True)}" controls>\n'
            f'  <track kind="captions" src="/captions/{html.escape(stem, quote=True)}.vtt"{srclang} label="Captions" default>\n'
            "</video>"
        )
    for clip in audio[:MAX_MEDIA_EXAMPLES]:
        stem = PurePosixPath(urlparse(clip.src).path).stem or "audio"
        blocks.append(
            f'<audio src="{html.escape(clip.src, quote=True)}" controls></audio>\n'
            f'<a href="/transcripts/{html.escape(stem, quote=True)}.html">Read the transcript</a>'
        )

    steps = []
    if videos:
        steps.append(f"Create a WebVTT caption file for each of the {len(videos)} uncaptioned videos.")
        steps.append("Upload the .vtt files and reference them with a <track> element as shown.")
    if audio:
        steps.append(f"Publish a text transcript for each of the {len(audio)} audio files and link it beside the player.")
    steps.append("Re-scan to confirm captions and transcripts are detected.")

    return build_recommendation(
        issue,
        "programmatic",
        finding=(
            f"{len(videos)} videos and {len(audio)} audio files on {domain_of(evidence.url)} have no captions "
            "or transcript. Answer engines cannot read what is said in them."
        ),
        action_steps=steps,
        code_snippet="\n".join(blocks),
    )


def indexnow_key(origin: str) -> str:
    """Stable 32-character hex key for a site, usable as an IndexNow key."""
    return hashlib.sha256(origin.encode("utf-8")).hexdigest()[:32]


def make_index_now_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    if evidence.technical.has_index_now:
        return Skip("IndexNow already detected")
    host = urlparse(facts.origin).hostname
    if not host:
        return Skip("page URL unknown")

    key = indexnow_key(facts.origin)
    key_location = f"{facts.origin}/{key}.txt"
    payload = {"host": host, "key": key, "keyLocation": key_location, "urlList": [facts.page_url or facts.origin]}
    code = (
        f"# {key}.txt (upload to the site root; the file contains only the key)\n"
        f"{key}\n\n"
        "# Notify IndexNow after publishing or updating a page\n"
        'curl -X POST "https://api.indexnow.org/indexnow" \\\n'
        '  -H "Content-Type: application/json; charset=utf-8" \\\n'
        f"  -d '{json.dumps(payload)}'\n\n"
        "# Python, e.g. from a CMS publish hook\n"
        "import requests\n\n"
        "def notify_indexnow(urls):\n"
        f'    payload = {{"host": "{host}", "key": "{key}", "keyLocation": "{key_location}", "urlList": list(urls)}}\n'
        '    response = requests.post("https://api.indexnow.org/indexnow", json=payload, timeout=10)\n'
        "    return response.status_code in (200, 202)"
    )

    return build_recommendation(
        issue,
        "programmatic",
        finding=(
            f"No IndexNow integration detected on {domain_of(evidence.url)}. Bing, Yandex, Seznam and Naver "
            "only learn about changes when they next crawl the page."
        ),
        action_steps=[
            f"Create {key}.txt containing only {key} and upload it to the site root.",
            f"Check that {key_location} loads in a browser.",
            "Send the POST request below whenever a page is published or updated.",
            "Confirm the submissions in Bing Webmaster Tools.",
        ],
        code_snippet=code,
    )


def _hierarchy_step(problem: str, h1_text: str) -> str:
    if problem == "Missing H1 tag":
        return f'Add one H1 that names the page topic, e.g. "{h1_text}".' if h1_text else "Add one H1 that names the page topic."
    if problem.startswith("Multiple H1"):
        return "Keep one H1 and demote the others to H2."
    if problem.startswith("Skipped heading level"):
        return f"{problem}: insert the missing level or promote the lower headings."
    return "Split the content into 3-5 H2 sections with H3 subsections beneath them."


def make_heading_hierarchy_recommendation(issue: Issue, evidence: Evidence, facts: SiteFacts) -> Recommendation | Skip:
    headings = evidence.content.headings
    sections = [h.strip() for h in headings.h2 if h.strip()]
    problems = heading_hierarchy_problems(evidence)
    if len(sections) < MIN_H2_SECTIONS:
        problems.append(f"Only {len(sections)} H2 sections")
    if not problems:
        return Skip("heading outline has no structural problems")

    h1_text = (headings.h1[0] if headings.h1 else facts.page_title).strip()
    outline = [f"<h1>{html.escape(h1_text)}</h1>"] if h1_text else []
    outline += [f"  <h2>{html.escape(h)}</h2>" for h in sections[:MAX_HEADING_REWRITES]]

    steps = [_hierarchy_step(p, h1_text) for p in problems]
    steps += [
        "Use H2 for main sections and H3 for subsections inside them.",
        "Re-scan to confirm the heading structure score improves.",
    ]

    return build_recommendation(
        issue,
        "programmatic",
        finding=f"The heading outline on {domain_of(evidence.url)} has structural problems: {'; '.join(problems)}.",
        action_steps=steps,
        code_snippet="\n".join(outline),
    )


Generator = Callable[[Issue, Evidence, SiteFacts], "Recommendation | Skip"]

GENERATORS: dict[str, Generator] = {
    "structuredDataScore": make_structured_data_recommendation,
    "faqScore": make_faq_recommendation,
    "openGraphScore": make_open_graph_recommendation,
    "questionHeadingsScore": make_question_headings_recommendation,
    "sitemapScore": make_sitemap_recommendation,
    "canonicalHreflangScore": make_canonical_recommendation,
    "altTextScore": make_alt_text_recommendation,
    "captionsTranscriptsScore": make_captions_recommendation,
    "indexNowScore": make_index_now_recommendation,
    "headingHierarchyScore": make_heading_hierarchy_recommendation,
}


def generate_programmatic(issue: Issue, evidence: Evidence, facts: SiteFacts | None = None) -> Recommendation | Skip:
    generator = GENERATORS.get(issue.subfactor)
    if generator is None:
        return Skip(f"no deterministic generator for {issue.subfactor}")
    result = generator(issue, evidence, facts or extract_site_facts(evidence))
    if isinstance(result, Skip):
        logger.info("PROGRAMMATIC SKIP: %s (%s)", issue.subfactor, result.reason)
    return result
