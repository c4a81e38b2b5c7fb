"""Page fetcher and HTML parser that produce an Evidence payload.

fetch_evidence performs one GET and hands the body to build_evidence, which
is pure and can be driven from saved HTML. Output is the camelCase dict
accepted by evidence.coerce_evidence.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup, Tag

from entities import analyze_entities
from facts import SOCIAL_HOSTS

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "12"))

_REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

MAX_PARAGRAPHS = 200
MAX_BODY_CHARS = 50000
MAX_FAQS = 30
SCHEMA_FLAGS = {
    "hasOrganizationSchema": ("Organization", "Corporation"),
    "hasLocalBusinessSchema": ("LocalBusiness",),
    "hasFaqSchema": ("FAQPage",),
    "hasArticleSchema": ("Article", "BlogPosting", "NewsArticle"),
    "hasBreadcrumbSchema": ("BreadcrumbList",),
}
LANDMARK_TAGS = ("main", "nav", "header", "footer", "aside")
LANDMARK_ROLES = ("main", "navigation", "banner", "contentinfo", "complementary", "search", "region")


class ExtractionError(RuntimeError):
    """The page could not be fetched or parsed."""


def _text(node: Tag | None) -> str:
    if node is None:
        return ""
    return re.sub(r"\s+", " ", node.get_text(" ", strip=True)).strip()


def _meta(soup: BeautifulSoup, *, name: str | None = None, prop: str | None = None) -> str:
    if name:
        tag = soup.find("meta", attrs={"name": re.compile(rf"^{re.escape(name)}$", re.I)})
    else:
        tag = soup.find("meta", attrs={"property": prop})
    if tag and tag.get("content"):
        return (tag["content"] or "").strip()
    return ""


def _rel_links(soup: BeautifulSoup, rel: str) -> list[Tag]:
    return [link for link in soup.find_all("link") if rel in [r.lower() for r in (link.get("rel") or [])]]


def _schema_types(raw: dict) -> list[str]:
    types = []
    for node in [raw, *[n for n in raw.get("@graph", []) or [] if isinstance(n, dict)]]:
        node_type = node.get("@type")
        if isinstance(node_type, list):
            types.extend(str(t) for t in node_type if t)
        elif node_type:
            types.append(str(node_type))
    return types


def extract_structured_data(soup: BeautifulSoup) -> list[dict[str, Any]]:
    blocks = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            ld = json.loads(script.string or "")
        except ValueError as e:
            logger.debug("SCRAPER: skipping invalid JSON-LD block: %s", e)
            continue
        for item in ld if isinstance(ld, list) else [ld]:
            if not isinstance(item, dict):
                continue
            types = _schema_types(item)
            blocks.append({
                "type": types[0] if types else "",
                "context": str(item.get("@context") or ""),
                "raw": item,
            })
    return blocks


def _faqs_from_microdata(soup: BeautifulSoup) -> list[dict[str, str]]:
    pairs = []
    for node in soup.find_all(attrs={"itemtype": re.compile(r"schema\.org/Question", re.I)}):
        question = _text(node.find(attrs={"itemprop": "name"}) or node.find(["h2", "h3", "h4", "strong"]))
        answer = _text(node.find(attrs={"itemprop": "acceptedAnswer"}) or node.find("p"))
        if question and answer:
            pairs.append({"question": question, "answer": answer})
    return pairs


def extract_faqs(soup: BeautifulSoup) -> list[dict[str, str]]:
    """Visible FAQ pairs: Question microdata, <details> elements and question headings.

    FAQPage JSON-LD is not read here; it is reported through structuredData.
    """
    pairs = _faqs_from_microdata(soup)

    for details in soup.find_all("details"):
        summary = details.find("summary")
        question = _text(summary)
        full = _text(details)
        answer = full[len(question):].strip() if question and full.startswith(question) else full
        if question and answer:
            pairs.append({"question": question, "answer": answer})

    for heading in soup.find_all(["h2", "h3", "h4"]):
        question = _text(heading)
        if not question.endswith("?"):
            continue
        sibling = heading.find_next_sibling()
        if sibling is not None and sibling.name in ("p", "div"):
            answer = _text(sibling)
            if answer:
                pairs.append({"question": question, "answer": answer})

    unique: dict[str, dict[str, str]] = {}
    for pair in pairs:
        unique.setdefault(pair["question"].lower(), pair)
    return list(unique.values())[:MAX_FAQS]


def _link_profile(soup: BeautifulSoup, url: str) -> dict[str, Any]:
    parsed = urlparse(url)
    base_domain = (parsed.netloc or "").lower()
    internal = external = anchors = 0
    social: list[str] = []
    for a in soup.find_all("a", href=True):
        href = (a["href"] or "").strip()
        if not href:
            continue
        if href.startswith("#"):
            anchors += 1
            continue
        if href.lower().startswith(("javascript:", "mailto:", "tel:")):
            continue
        resolved = urlparse(urljoin(url, href))
        host = (resolved.netloc or "").lower()
        if not host or host == base_domain:
            internal += 1
            continue
        external += 1
        if re.sub(r"^www\.", "", host) in SOCIAL_HOSTS and resolved.geturl() not in social:
            social.append(resolved.geturl())
    return {"internalLinks": internal, "externalLinks": external, "anchorLinks": anchors, "socialLinks": social}


def _class_or_id_matches(soup: BeautifulSoup, pattern: str) -> bool:
    regex = re.compile(pattern, re.I)
    return bool(soup.find(attrs={"class": regex}) or soup.find(attrs={"id": regex}))


def build_structure(soup: BeautifulSoup, url: str, types: list[str]) -> dict[str, Any]:
    heading_count = {f"h{i}": len(soup.find_all(f"h{i}")) for i in range(1, 7)}
    landmarks = sum(len(soup.find_all(tag)) for tag in LANDMARK_TAGS)
    landmarks += len(soup.find_all(attrs={"role": re.compile(rf"^({'|'.join(LANDMARK_ROLES)})$")}))
    breadcrumb_nav = soup.find(attrs={"aria-label": re.compile("breadcrumb", re.I)})
    return {
        "hasMain": soup.find("main") is not None,
        "hasArticle": soup.find("article") is not None,
        "hasSection": soup.find("section") is not None,
        "hasAside": soup.find("aside") is not None,
        "hasNav": soup.find("nav") is not None,
        "hasHeader": soup.find("header") is not None,
        "hasFooter": soup.find("footer") is not None,
        "landmarks": landmarks,
        "headingCount": heading_count,
        "hasBreadcrumbs": bool(
            breadcrumb_nav or _class_or_id_matches(soup, "breadcrumb") or "BreadcrumbList" in types
        ),
        "hasTOC": _class_or_id_matches(soup, r"(^|[-_])toc([-_]|$)|table-of-contents"),
        "elementsWithIds": len(soup.find_all(id=True)),
        **_link_profile(soup, url),
    }


def build_media(soup: BeautifulSoup, body_text: str) -> dict[str, Any]:
    images = []
    for img in soup.find_all("img"):
        alt = img.get("alt")
        images.append({
            "src": img.get("src") or img.get("data-src") or "",
            "alt": (alt or "").strip(),
            "hasAlt": bool(alt and alt.strip()),
            "title": img.get("title") or "",
            "width": str(img.get("width") or ""),
            "height": str(img.get("height") or ""),
            "loading": img.get("loading") or "",
        })

    has_transcript = "transcript" in body_text.lower()
    videos = []
    for video in soup.find_all("video"):
        tracks = [t.get("kind", "").lower() for t in video.find_all("track")]
        source = video.find("source")
        videos.append({
            "src": video.get("src") or (source.get("src") if source else "") or "",
            "hasControls": video.has_attr("controls"),
            "hasAutoplay": video.has_attr("autoplay"),
            "hasCaptions": any(k in ("captions", "subtitles") for k in tracks),
            "hasTranscript": has_transcript,
        })
    for frame in soup.find_all("iframe", src=re.compile(r"youtube\.com|youtu\.be|vimeo\.com", re.I)):
        videos.append({
            "src": frame["src"],
            "hasControls": True,
            "hasAutoplay": "autoplay=1" in frame["src"],
            "hasCaptions": "cc_load_policy=1" in frame["src"],
            "hasTranscript": has_transcript,
        })

    audio = [
        {
            "src": a.get("src") or "",
            "hasControls": a.has_attr("controls"),
            "hasTranscript": has_transcript,
        }
        for a in soup.find_all("audio")
    ]
    with_alt = sum(1 for i in images if i["hasAlt"])
    return {
        "images": images,
        "imageCount": len(images),
        "imagesWithAlt": with_alt,
        "imagesWithoutAlt": len(images) - with_alt,
        "videos": videos,
        "videoCount": len(videos),
        "audio": audio,
        "audioCount": len(audio),
    }


def build_technical(soup: BeautifulSoup, raw_html: str, blocks: list[dict], headers: Mapping[str, str]) -> dict[str, Any]:
    types = {t for block in blocks for t in _schema_types(block["raw"])}
    hreflang = [
        (link.get("hreflang") or "").strip()
        for link in _rel_links(soup, "alternate")
        if link.get("hreflang")
    ]
    canonical = _rel_links(soup, "canonical")
    canonical_url = (canonical[0].get("href") or "").strip() if canonical else ""
    feeds = [
        link for link in _rel_links(soup, "alternate")
        if (link.get("type") or "").lower() in ("application/rss+xml", "application/atom+xml")
    ]
    viewport = _meta(soup, name="viewport")
    charset_tag = soup.find("meta", attrs={"charset": True})

    technical = {
        "structuredData": blocks,
        "hreflangTags": len(hreflang),
        "hreflangLanguages": list(dict.fromkeys(hreflang)),
        "hasCanonical": bool(canonical_url),
        "canonicalUrl": canonical_url,
        "hasSitemapLink": bool(_rel_links(soup, "sitemap")) or "sitemap.xml" in raw_html.lower(),
        "hasRSSFeed": bool(feeds),
        "hasIndexNow": "indexnow" in raw_html.lower(),
        "hasViewport": bool(viewport),
        "viewport": viewport,
        "charset": charset_tag["charset"] if charset_tag else "",
        "robotsMeta": _meta(soup, name="robots"),
        "cacheControl": headers.get("cache-control", ""),
        "lastModified": headers.get("last-modified", ""),
        "etag": headers.get("etag", ""),
    }
    for flag, flag_types in SCHEMA_FLAGS.items():
        technical[flag] = any(t in types for t in flag_types)
    return technical


def build_accessibility(soup: BeautifulSoup, media: dict[str, Any]) -> dict[str, Any]:
    inputs = soup.find_all(["input", "select", "textarea"])
    inputs = [i for i in inputs if (i.get("type") or "").lower() not in ("hidden", "submit", "button")]
    label_targets = {label.get("for") for label in soup.find_all("label") if label.get("for")}
    labelled = sum(
        1 for i in inputs
        if i.get("aria-label") or i.get("aria-labelledby") or (i.get("id") and i["id"] in label_targets)
        or i.find_parent("label") is not None
    )
    html_tag = soup.find("html")
    skip_link = soup.find("a", href=re.compile(r"^#"), string=re.compile("skip", re.I))
    return {
        "ariaLabels": len(soup.find_all(attrs={"aria-label": True})),
        "ariaDescribed": len(soup.find_all(attrs={"aria-describedby": True})),
        "ariaLabelledBy": len(soup.find_all(attrs={"aria-labelledby": True})),
        "ariaHidden": len(soup.find_all(attrs={"aria-hidden": True})),
        "ariaLive": len(soup.find_all(attrs={"aria-live": True})),
        "formsWithLabels": round(labelled / len(inputs), 2) if inputs else 0.0,
        "imagesWithAlt": media["imagesWithAlt"],
        "imagesTotal": media["imageCount"],
        "hasLangAttribute": bool(html_tag and html_tag.get("lang")),
        "hasSkipLink": skip_link is not None,
        "tabindex": len(soup.find_all(attrs={"tabindex": True})),
        "hasInlineStyles": len(soup.find_all(style=True)),
        "semanticButtons": len(soup.find_all("button")),
        "divClickHandlers": len(soup.find_all("div", onclick=True)),
    }


def build_content(soup: BeautifulSoup) -> dict[str, Any]:
    headings = {f"h{i}": [_text(h) for h in soup.find_all(f"h{i}") if _text(h)] for i in range(1, 7)}
    paragraphs = [_text(p) for p in soup.find_all("p")]
    paragraphs = [p for p in paragraphs if p][:MAX_PARAGRAPHS]

    lists = []
    for node in soup.find_all(["ul", "ol"]):
        if node.find_parent(["nav", "header", "footer"]) is not None:
            continue
        items = [_text(li) for li in node.find_all("li", recursive=False)]
        items = [i for i in items if i]
        if items:
            lists.append({"type": node.name, "items": items, "itemCount": len(items)})

    tables = []
    for table in soup.find_all("table"):
        rows = table.find_all("tr")
        cols = max((len(r.find_all(["td", "th"])) for r in rows), default=0)
        tables.append({"rows": len(rows), "cols": cols, "hasHeaders": table.find("th") is not None})

    faqs = extract_faqs(soup)
    body = soup.body or soup
    body_text = _text(body)[:MAX_BODY_CHARS]
    return {
        "headings": headings,
        "paragraphs": paragraphs,
        "lists": lists,
        "tables": tables,
        "faqs": faqs,
        "wordCount": len(body_text.split()),
        "textLength": len(body_text),
        "bodyText": body_text,
    }


def build_metadata(soup: BeautifulSoup) -> dict[str, Any]:
    html_tag = soup.find("html")
    canonical = _rel_links(soup, "canonical")
    return {
        "title": _text(soup.title),
        "description": _meta(soup, name="description"),
        "keywords": _meta(soup, name="keywords"),
        "author": _meta(soup, name="author"),
        "canonical": (canonical[0].get("href") or "").strip() if canonical else "",
        "robots": _meta(soup, name="robots"),
        "ogTitle": _meta(soup, prop="og:title"),
        "ogDescription": _meta(soup, prop="og:description"),
        "ogImage": _meta(soup, prop="og:image"),
        "ogType": _meta(soup, prop="og:type"),
        "twitterCard": _meta(soup, name="twitter:card"),
        "lastModified": _meta(soup, prop="article:modified_time") or _meta(soup, name="last-modified"),
        "publishedTime": _meta(soup, prop="article:published_time"),
        "language": (html_tag.get("lang") or "").strip() if html_tag else "",
        "geoRegion": _meta(soup, name="geo.region"),
        "geoPlacename": _meta(soup, name="geo.placename"),
    }


def build_evidence(
    html: str,
    url: str,
    ttfb_ms: int | None = None,
    headers: Mapping[str, str] | None = None,
    timestamp: str | None = None,
) -> dict[str, Any]:
    """Parse an HTML document into a camelCase Evidence payload."""
    headers = {k.lower(): v for k, v in (headers or {}).items()}
    soup = BeautifulSoup(html or "", "html.parser")

    # JSON-LD has to be read before scripts are removed
    blocks = extract_structured_data(soup)
    types = [t for block in blocks for t in _schema_types(block["raw"])]
    technical = build_technical(soup, html or "", blocks, headers)

    for tag in soup.find_all(["script", "style", "noscript"]):
        tag.decompose()

    metadata = build_metadata(soup)
    structure = build_structure(soup, url, types)
    content = build_content(soup)
    media = build_media(soup, content["bodyText"])
    if not metadata["lastModified"]:
        metadata["lastModified"] = technical["lastModified"]

    content_length = headers.get("content-length", "")
    return {
        "url": url,
        "timestamp": timestamp or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "metadata": metadata,
        "content": content,
        "structure": structure,
        "media": media,
        "technical": technical,
        "performance": {
            "ttfb": ttfb_ms,
            "responseTime": ttfb_ms or 0,
            "serverTiming": headers.get("server-timing", ""),
            "contentLength": int(content_length) if content_length.isdigit() else len(html or ""),
        },
        "accessibility": build_accessibility(soup, media),
        "entities": analyze_entities(
            content["bodyText"],
            [block["raw"] for block in blocks],
            geo_region=metadata["geoRegion"],
            geo_placename=metadata["geoPlacename"],
        ),
    }


def fetch_evidence(url: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> dict[str, Any]:
    """Fetch ``url`` and return its Evidence payload. Raises ExtractionError."""
    try:
        response = requests.get(url, timeout=timeout, headers=_REQUEST_HEADERS)
        response.raise_for_status()
        response.encoding = response.apparent_encoding or "utf-8"
        html = response.text
    except (requests.RequestException, ValueError, OSError) as e:
        raise ExtractionError(f"Could not fetch {url}: {e}") from e

    ttfb_ms = int(response.elapsed.total_seconds() * 1000)
    logger.info("SCRAPER: fetched %s status=%s ttfb=%dms", url, response.status_code, ttfb_ms)
    return build_evidence(html, response.url or url, ttfb_ms=ttfb_ms, headers=response.headers)
