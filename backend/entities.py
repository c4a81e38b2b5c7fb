"""Named-entity extraction for the evidence snapshot.

Entities come from JSON-LD nodes and from simple text patterns. Output is a
camelCase dict ready to drop into the ``entities`` section of an Evidence
payload, including a small knowledge-graph projection.
"""

import re
from typing import Any

ORG_SUFFIX_PATTERN = re.compile(
    r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+(Inc\.|LLC|Corp\.|Corporation|Company|Ltd\.)"
)
ADDRESS_PATTERN = re.compile(
    r"\b\d+\s+[A-Z][a-z]+\s+(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr|Court|Ct)\b"
)

CREDENTIAL_PATTERNS = [
    (re.compile(r"\b(PhD|Ph\.D\.|Doctor of Philosophy)\b", re.I), "degree", "PhD"),
    (re.compile(r"\b(MBA|Master of Business Administration)\b"), "degree", "MBA"),
    (re.compile(r"\b(M\.D\.|Doctor of Medicine)\b"), "degree", "MD"),
    (re.compile(r"\b(J\.D\.|Juris Doctor)\b"), "degree", "JD"),
    (re.compile(r"\b(Bachelor'?s?\s+Degree)\b", re.I), "degree", "Bachelor's Degree"),
    (re.compile(r"\b(Master'?s?\s+Degree)\b", re.I), "degree", "Master's Degree"),
    (re.compile(r"\b(CPA|Certified Public Accountant)\b"), "certification", "CPA"),
    (re.compile(r"\b(PMP|Project Management Professional)\b"), "certification", "PMP"),
    (re.compile(r"\b(CFA|Chartered Financial Analyst)\b"), "certification", "CFA"),
    (re.compile(r"\b(Professional Engineer)\b"), "certification", "PE"),
    (re.compile(r"\b(Registered Nurse)\b"), "certification", "RN"),
    (re.compile(r"\b(AWS Certified|Azure Certified|Google Cloud Certified)\b"), "certification", "Cloud Certification"),
    (re.compile(r"\b(Board\s+Certified)\b", re.I), "certification", "Board Certification"),
    (re.compile(r"\b(Licensed\s+\w+)\b"), "license", "Professional License"),
    (re.compile(r"\b((?:Member|Fellow) of\s+(?:the\s+)?[A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)"), "membership", "Professional Membership"),
]

ORGANIZATION_TYPES = {"Organization", "LocalBusiness", "Corporation", "ProfessionalService"}


def _types(node: dict) -> set[str]:
    raw = node.get("@type")
    if isinstance(raw, list):
        return {str(t) for t in raw}
    return {str(raw)} if raw else set()


def _name_of(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("name") or "")
    return str(value or "")


def _as_list(value: Any) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _address(value: Any) -> dict:
    if isinstance(value, str):
        return {"streetAddress": value}
    if not isinstance(value, dict):
        return {}
    keys = ("streetAddress", "addressLocality", "addressRegion", "postalCode", "addressCountry")
    return {k: value[k] for k in keys if value.get(k)}


def _schema_nodes(structured_data: list[dict]) -> list[dict]:
    nodes = []
    for raw in structured_data:
        if not isinstance(raw, dict):
            continue
        nodes.append(raw)
        nodes.extend(n for n in _as_list(raw.get("@graph")) if isinstance(n, dict))
    return nodes


def extract_credentials(text: str) -> list[dict[str, str]]:
    found: list[dict[str, str]] = []
    seen: set[str] = set()
    for pattern, kind, name in CREDENTIAL_PATTERNS:
        for match in pattern.finditer(text or ""):
            value = match.group(1).strip()
            if value in seen:
                continue
            seen.add(value)
            found.append({"type": kind, "name": name, "value": value, "source": "text"})
    return found


def analyze_entities(
    body_text: str,
    structured_data: list[dict],
    geo_region: str = "",
    geo_placename: str = "",
) -> dict[str, Any]:
    people: list[dict] = []
    organizations: list[dict] = []
    places: list[dict] = []
    products: list[dict] = []
    events: list[dict] = []
    relationships: list[dict] = []

    for node in _schema_nodes(structured_data):
        types = _types(node)
        name = _name_of(node)
        same_as = [str(u) for u in _as_list(node.get("sameAs")) if u]

        if "Person" in types:
            people.append({
                "name": name,
                "jobTitle": node.get("jobTitle") or "",
                "affiliation": _name_of(node.get("affiliation") or node.get("worksFor")),
                "sameAs": same_as,
                "source": "schema",
            })
            employer = _name_of(node.get("affiliation") or node.get("worksFor"))
            if employer:
                relationships.append({
                    "subject": {"type": "Person", "name": name},
                    "predicate": "worksFor",
                    "object": {"type": "Organization", "name": employer},
                })
        if types & ORGANIZATION_TYPES:
            organizations.append({
                "name": name,
                "type": sorted(types & ORGANIZATION_TYPES)[0],
                "telephone": node.get("telephone") or "",
                "email": node.get("email") or "",
                "sameAs": same_as,
                "source": "schema",
            })
            if node.get("address"):
                relationships.append({
                    "subject": {"type": "Organization", "name": name},
                    "predicate": "locatedAt",
                    "object": {"type": "Place", "address": _address(node["address"])},
                })
        if "Place" in types or node.get("address"):
            places.append({"name": name, "address": _address(node.get("address")), "source": "schema"})
        if types & {"Product", "Service"}:
            products.append({"name": name, "brand": _name_of(node.get("brand")), "source": "schema"})
            if node.get("brand"):
                relationships.append({
                    "subject": {"type": "Product", "name": name},
                    "predicate": "manufacturedBy",
                    "object": {"type": "Organization", "name": _name_of(node["brand"])},
                })
        if "Event" in types:
            events.append({"name": name, "startDate": node.get("startDate") or "", "source": "schema"})

        for url in same_as:
            relationships.append({
                "subject": {"type": sorted(types)[0] if types else "Thing", "name": name},
                "predicate": "sameAs",
                "object": {"type": "ExternalEntity", "url": url},
            })

    known_orgs = {o["name"] for o in organizations}
    for match in ORG_SUFFIX_PATTERN.finditer(body_text or ""):
        if match.group(0) not in known_orgs:
            known_orgs.add(match.group(0))
            organizations.append({"name": match.group(0), "source": "text"})

    for address in dict.fromkeys(ADDRESS_PATTERN.findall(body_text or "")):
        places.append({"address": {"streetAddress": address}, "source": "text"})

    if geo_region or geo_placename:
        places.append({"region": geo_region, "placename": geo_placename, "source": "metadata"})

    return {
        "people": people,
        "organizations": organizations,
        "places": places,
        "products": products,
        "events": events,
        "professionalCredentials": extract_credentials(body_text),
        "relationships": relationships,
        "knowledgeGraph": build_knowledge_graph(people, organizations, relationships),
    }


def build_knowledge_graph(people: list[dict], organizations: list[dict], relationships: list[dict]) -> dict:
    nodes = [{"id": p["name"], "type": "Person"} for p in people if p.get("name")]
    nodes += [{"id": o["name"], "type": "Organization"} for o in organizations if o.get("name")]
    edges = []
    for rel in relationships:
        subject, target = rel["subject"], rel["object"]
        edges.append({
            "source": subject.get("name") or subject.get("type"),
            "target": target.get("name") or target.get("url") or target.get("type"),
            "type": rel["predicate"],
        })
    return {"nodes": nodes, "edges": edges}
