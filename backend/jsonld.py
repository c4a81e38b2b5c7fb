"""JSON-LD builders fed by extracted site facts. Unknown fields are omitted."""

import json

from models import SiteFacts

SCHEMA_CONTEXT = "https://schema.org"


def _page_base(page_url: str) -> str:
    return page_url.split("#", 1)[0].rstrip("/")


def build_organization(facts: SiteFacts) -> dict:
    node = {
        "@context": SCHEMA_CONTEXT,
        "@type": "Organization",
        "@id": f"{facts.origin}/#organization",
        "url": facts.origin,
    }
    if facts.brand:
        node["name"] = facts.brand
    if facts.description:
        node["description"] = facts.description
    if facts.logo:
        node["logo"] = {"@type": "ImageObject", "url": facts.logo}
    if facts.social_links:
        node["sameAs"] = list(facts.social_links)
    if facts.email or facts.phone:
        contact = {"@type": "ContactPoint", "contactType": "customer service"}
        if facts.email:
            contact["email"] = facts.email
        if facts.phone:
            contact["telephone"] = facts.phone
        node["contactPoint"] = contact
    return node


def build_website(facts: SiteFacts) -> dict:
    node = {
        "@context": SCHEMA_CONTEXT,
        "@type": "WebSite",
        "@id": f"{facts.origin}/#website",
        "url": facts.origin,
        "publisher": {"@id": f"{facts.origin}/#organization"},
    }
    if facts.brand:
        node["name"] = facts.brand
    if facts.language:
        node["inLanguage"] = facts.language
    return node


def build_webpage(facts: SiteFacts) -> dict:
    node = {
        "@context": SCHEMA_CONTEXT,
        "@type": "WebPage",
        "@id": f"{_page_base(facts.page_url)}/#webpage",
        "url": facts.page_url,
        "isPartOf": {"@id": f"{facts.origin}/#website"},
    }
    if facts.page_title:
        node["name"] = facts.page_title
    if facts.description:
        node["description"] = facts.description
    return node


def build_breadcrumb(facts: SiteFacts) -> dict:
    items = [{"@type": "ListItem", "position": 1, "name": facts.brand or "Home", "item": facts.origin}]
    page = _page_base(facts.page_url)
    if page and page != facts.origin:
        items.append(
            {"@type": "ListItem", "position": 2, "name": facts.page_title or page, "item": facts.page_url}
        )
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "@id": f"{page}/#breadcrumb",
        "itemListElement": items,
    }


def build_person(facts: SiteFacts) -> dict | None:
    if not facts.author:
        return None
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Person",
        "@id": f"{_page_base(facts.page_url)}/#author",
        "name": facts.author,
        "worksFor": {"@id": f"{facts.origin}/#organization"},
    }


def build_article(facts: SiteFacts) -> dict | None:
    if not facts.page_title:
        return None
    page = _page_base(facts.page_url)
    node = {
        "@context": SCHEMA_CONTEXT,
        "@type": "Article",
        "@id": f"{page}/#article",
        "headline": facts.page_title,
        "mainEntityOfPage": {"@id": f"{page}/#webpage"},
        "publisher": {"@id": f"{facts.origin}/#organization"},
    }
    if facts.description:
        node["description"] = facts.description
    if facts.author:
        node["author"] = {"@id": f"{page}/#author"}
    if facts.published:
        node["datePublished"] = facts.published
    if facts.modified:
        node["dateModified"] = facts.modified
    if facts.og_image:
        node["image"] = facts.og_image
    return node


def build_faq_jsonld(page_url: str, qa_pairs: list[tuple[str, str]]) -> dict | None:
    if not qa_pairs:
        return None
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "@id": f"{_page_base(page_url)}/#faq",
        "mainEntity": [
            {
                "@type": "Question",
                "name": question,
                "acceptedAnswer": {"@type": "Answer", "text": answer},
            }
            for question, answer in qa_pairs
        ],
    }


def script_tag(node: dict) -> str:
    # "</" inside a JSON string would close the script element early
    body = json.dumps(node, indent=2, ensure_ascii=False).replace("</", "<\\/")
    return f'<script type="application/ld+json">\n{body}\n</script>'
