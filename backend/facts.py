"""Site facts derived from evidence: brand, description, logo, socials, contact.

Facts are only ever read from the snapshot. When a fact is not present it
stays empty; nothing here guesses URLs or fills in placeholder copy.
"""

import re
from urllib.parse import urljoin, urlparse

from evidence import Evidence
from models import SiteFacts

BRAND_SUFFIX = re.compile(r"\s*[-|–—:]\s*(Home|Homepage|Welcome|Official Site|Website).*$", re.IGNORECASE)
TITLE_SEPARATOR = re.compile(r"\s+[-|–—]\s+")
EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
PHONE_PATTERN = re.compile(r"\(?\b\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")

SOCIAL_HOSTS = (
    "twitter.com",
    "x.com",
    "linkedin.com",
    "facebook.com",
    "instagram.com",
    "youtube.com",
    "github.com",
    "tiktok.com",
)
MAX_SOCIAL_LINKS = 8


def site_origin(url: str) -> str:
    parsed = urlparse(url or "")
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}"


def absolute_url(value: str, base: str) -> str:
    if not value:
        return ""
    if value.startswith("//"):
        return "https:" + value
    if not base:
        return value
    return urljoin(base, value)


def clean_brand_name(raw: str) -> str:
    cleaned = BRAND_SUFFIX.sub("", raw or "").strip()
    # "Acme | Managed IT" -> "Acme"
    parts = TITLE_SEPARATOR.split(cleaned)
    return parts[0].strip() if parts else cleaned


def _schema_nodes(evidence: Evidence) -> list[dict]:
    nodes = []
    for block in evidence.technical.structured_data:
        raw = block.raw or {}
        nodes.append(raw)
        nodes.extend(n for n in raw.get("@graph", []) or [] if isinstance(n, dict))
    return nodes


def _organization_node(evidence: Evidence) -> dict | None:
    for node in _schema_nodes(evidence):
        node_type = node.get("@type")
        types = node_type if isinstance(node_type, list) else [node_type]
        if "Organization" in types or "LocalBusiness" in types:
            return node
    return None


def extract_brand(evidence: Evidence) -> str:
    org = _organization_node(evidence)
    if org and isinstance(org.get("name"), str) and org["name"].strip():
        return org["name"].strip()

    metadata = evidence.metadata
    for candidate in (metadata.og_title, metadata.title):
        if candidate and clean_brand_name(candidate):
            return clean_brand_name(candidate)

    if evidence.content.headings.h1:
        return clean_brand_name(evidence.content.headings.h1[0])

    host = urlparse(evidence.url or "").hostname or ""
    host = re.sub(r"^www\.", "", host)
    if not host:
        return ""
    name = host.split(".")[0]
    return name[:1].upper() + name[1:]


def extract_description(evidence: Evidence) -> str:
    return evidence.metadata.description or evidence.metadata.og_description or ""


def extract_logo(evidence: Evidence) -> str:
    base = evidence.url
    org = _organization_node(evidence)
    if org:
        logo = org.get("logo")
        if isinstance(logo, dict):
            logo = logo.get("url")
        if isinstance(logo, str) and logo:
            return absolute_url(logo, base)

    if evidence.metadata.og_image:
        return absolute_url(evidence.metadata.og_image, base)

    for image in evidence.media.images:
        if image.src and re.search(r"logo", image.alt or "", re.IGNORECASE):
            return absolute_url(image.src, base)
    return ""


def extract_social_links(evidence: Evidence) -> list[str]:
    candidates: list[str] = []

    for node in _schema_nodes(evidence):
        same_as = node.get("sameAs")
        if isinstance(same_as, str):
            candidates.append(same_as)
        elif isinstance(same_as, list):
            candidates.extend(str(u) for u in same_as if u)

    for org in evidence.entities.organizations:
        same_as = org.get("sameAs") or []
        candidates.extend(str(u) for u in (same_as if isinstance(same_as, list) else [same_as]) if u)

    for edge in evidence.entities.knowledge_graph.edges:
        if edge.get("type") == "sameAs" and edge.get("target"):
            candidates.append(str(edge["target"]))

    candidates.extend(evidence.structure.social_links)

    links: list[str] = []
    for url in candidates:
        host = (urlparse(url).hostname or "").lower()
        host = re.sub(r"^www\.", "", host)
        if host in SOCIAL_HOSTS and url not in links:
            links.append(url)
    return links[:MAX_SOCIAL_LINKS]


def extract_email(evidence: Evidence) -> str:
    for org in evidence.entities.organizations:
        if isinstance(org.get("email"), str) and org["email"]:
            return org["email"]
    match = EMAIL_PATTERN.search(evidence.content.body_text or "")
    return match.group(0) if match else ""


def extract_phone(evidence: Evidence) -> str:
    for org in evidence.entities.organizations:
        if isinstance(org.get("telephone"), str) and org["telephone"]:
            return org["telephone"]
    match = PHONE_PATTERN.search(evidence.content.body_text or "")
    return match.group(0).strip() if match else ""


def extract_site_facts(evidence: Evidence) -> SiteFacts:
    return SiteFacts(
        brand=extract_brand(evidence),
        origin=site_origin(evidence.url),
        page_url=(evidence.url or "").split("#", 1)[0],
        page_title=evidence.metadata.title,
        description=extract_description(evidence),
        logo=extract_logo(evidence),
        og_image=absolute_url(evidence.metadata.og_image, evidence.url),
        social_links=extract_social_links(evidence),
        email=extract_email(evidence),
        phone=extract_phone(evidence),
        language=evidence.metadata.language,
        author=evidence.metadata.author.strip(),
        published=evidence.metadata.published_time,
        modified=evidence.metadata.last_modified or evidence.technical.last_modified,
    )
