"""Evidence contract: the normalized snapshot of a page that every analyzer reads.

Evidence arrives as camelCase JSON from the extraction collaborator (or from
an API caller). Validation is tolerant: structural problems are reported as
warnings and the affected fields fall back to their defaults, so a partially
broken snapshot still scores.
"""

import copy
import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = (
    "url",
    "timestamp",
    "metadata",
    "content",
    "structure",
    "media",
    "technical",
    "performance",
    "accessibility",
)

# Paths (section, field) that must hold JSON arrays.
LIST_FIELDS = (
    ("content", "paragraphs"),
    ("content", "lists"),
    ("content", "tables"),
    ("content", "faqs"),
    ("media", "images"),
    ("media", "videos"),
    ("media", "audio"),
    ("technical", "structuredData"),
)

MAX_COERCE_PASSES = 25


class EvidenceModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Metadata(EvidenceModel):
    title: str = ""
    description: str = ""
    keywords: str = ""
    author: str = ""
    canonical: str = ""
    robots: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    og_type: str = ""
    twitter_card: str = ""
    last_modified: str = ""
    published_time: str = ""
    language: str = ""
    geo_region: str = ""
    geo_placename: str = ""


class Headings(EvidenceModel):
    h1: list[str] = Field(default_factory=list)
    h2: list[str] = Field(default_factory=list)
    h3: list[str] = Field(default_factory=list)
    h4: list[str] = Field(default_factory=list)
    h5: list[str] = Field(default_factory=list)
    h6: list[str] = Field(default_factory=list)

    def all(self) -> list[str]:
        return [*self.h1, *self.h2, *self.h3, *self.h4, *self.h5, *self.h6]


class ContentList(EvidenceModel):
    type: str = "ul"
    items: list[str] = Field(default_factory=list)
    item_count: int = 0


class ContentTable(EvidenceModel):
    rows: int = 0
    cols: int = 0
    has_headers: bool = False


class FaqPair(EvidenceModel):
    question: str = ""
    answer: str = ""


class Content(EvidenceModel):
    headings: Headings = Field(default_factory=Headings)
    paragraphs: list[str] = Field(default_factory=list)
    lists: list[ContentList] = Field(default_factory=list)
    tables: list[ContentTable] = Field(default_factory=list)
    faqs: list[FaqPair] = Field(default_factory=list)
    word_count: int = 0
    text_length: int = 0
    body_text: str = ""


class HeadingCount(EvidenceModel):
    h1: int = 0
    h2: int = 0
    h3: int = 0
    h4: int = 0
    h5: int = 0
    h6: int = 0


class Structure(EvidenceModel):
    has_main: bool = False
    has_article: bool = False
    has_section: bool = False
    has_aside: bool = False
    has_nav: bool = False
    has_header: bool = False
    has_footer: bool = False
    landmarks: int = 0
    heading_count: HeadingCount = Field(default_factory=HeadingCount)
    internal_links: int = 0
    external_links: int = 0
    has_breadcrumbs: bool = False
    has_toc: bool = Field(default=False, alias="hasTOC")
    anchor_links: int = 0
    elements_with_ids: int = 0
    social_links: list[str] = Field(default_factory=list)


class Image(EvidenceModel):
    src: str = ""
    alt: str = ""
    has_alt: bool = False
    title: str = ""
    width: str = ""
    height: str = ""
    loading: str = ""


class Video(EvidenceModel):
    src: str = ""
    has_controls: bool = False
    has_autoplay: bool = False
    has_captions: bool = False
    has_transcript: bool = False


class Audio(EvidenceModel):
    src: str = ""
    has_controls: bool = False
    has_transcript: bool = False


class Media(EvidenceModel):
    images: list[Image] = Field(default_factory=list)
    image_count: int = 0
    images_with_alt: int = 0
    images_without_alt: int = 0
    videos: list[Video] = Field(default_factory=list)
    video_count: int = 0
    audio: list[Audio] = Field(default_factory=list)
    audio_count: int = 0


class StructuredDataBlock(EvidenceModel):
    type: str = ""
    context: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


class Technical(EvidenceModel):
    structured_data: list[StructuredDataBlock] = Field(default_factory=list)
    has_organization_schema: bool = False
    has_local_business_schema: bool = False
    has_faq_schema: bool = False
    has_article_schema: bool = False
    has_breadcrumb_schema: bool = False
    hreflang_tags: int = 0
    hreflang_languages: list[str] = Field(default_factory=list)
    has_canonical: bool = False
    canonical_url: str = ""
    has_sitemap_link: bool = False
    has_rss_feed: bool = Field(default=False, alias="hasRSSFeed")
    has_index_now: bool = False
    has_viewport: bool = False
    viewport: str = ""
    charset: str = ""
    robots_meta: str = ""
    cache_control: str = ""
    last_modified: str = ""
    etag: str = ""


class Performance(EvidenceModel):
    ttfb: Optional[int] = None
    response_time: int = 0
    server_timing: str = ""
    content_length: int = 0


class Accessibility(EvidenceModel):
    aria_labels: int = 0
    aria_described: int = 0
    aria_labelled_by: int = 0
    aria_hidden: int = 0
    aria_live: int = 0
    forms_with_labels: float = 0.0
    images_with_alt: int = 0
    images_total: int = 0
    has_lang_attribute: bool = False
    has_skip_link: bool = False
    tabindex: int = 0
    has_inline_styles: int = 0
    semantic_buttons: int = 0
    div_click_handlers: int = 0


class KnowledgeGraph(EvidenceModel):
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)


class Entities(EvidenceModel):
    people: list[dict[str, Any]] = Field(default_factory=list)
    organizations: list[dict[str, Any]] = Field(default_factory=list)
    places: list[dict[str, Any]] = Field(default_factory=list)
    products: list[dict[str, Any]] = Field(default_factory=list)
    events: list[dict[str, Any]] = Field(default_factory=list)
    professional_credentials: list[dict[str, Any]] = Field(default_factory=list)
    relationships: list[dict[str, Any]] = Field(default_factory=list)
    knowledge_graph: KnowledgeGraph = Field(default_factory=KnowledgeGraph)

    @property
    def total(self) -> int:
        return (
            len(self.people)
            + len(self.organizations)
            + len(self.places)
            + len(self.products)
            + len(self.events)
        )


class Evidence(EvidenceModel):
    """Read-only page snapshot shared by all analyzers."""

    url: str = ""
    timestamp: str = ""
    metadata: Metadata = Field(default_factory=Metadata)
    content: Content = Field(default_factory=Content)
    structure: Structure = Field(default_factory=Structure)
    media: Media = Field(default_factory=Media)
    technical: Technical = Field(default_factory=Technical)
    performance: Performance = Field(default_factory=Performance)
    accessibility: Accessibility = Field(default_factory=Accessibility)
    entities: Entities = Field(default_factory=Entities)

    def schema_types(self) -> set[str]:
        """All JSON-LD @type values present on the page, including @graph members."""
        types: set[str] = set()
        for block in self.technical.structured_data:
            if block.type:
                types.add(block.type)
            raw_type = block.raw.get("@type")
            if isinstance(raw_type, list):
                types.update(str(t) for t in raw_type if t)
            elif raw_type:
                types.add(str(raw_type))
            for node in block.raw.get("@graph", []) or []:
                if isinstance(node, dict) and node.get("@type"):
                    node_type = node["@type"]
                    if isinstance(node_type, list):
                        types.update(str(t) for t in node_type if t)
                    else:
                        types.add(str(node_type))
        return types

    def has_schema(self, schema_type: str) -> bool:
        flags = {
            "Organization": self.technical.has_organization_schema,
            "LocalBusiness": self.technical.has_local_business_schema,
            "FAQPage": self.technical.has_faq_schema,
            "Article": self.technical.has_article_schema,
            "BreadcrumbList": self.technical.has_breadcrumb_schema,
        }
        if flags.get(schema_type):
            return True
        return schema_type in self.schema_types()


def validate_evidence(raw: object) -> list[str]:
    """Return structural problems found in raw evidence. Never raises."""
    if not isinstance(raw, dict):
        return ["Evidence must be a JSON object"]

    warnings: list[str] = []
    for section in REQUIRED_SECTIONS:
        if section not in raw:
            warnings.append(f"Missing required field: {section}")

    for section, field in LIST_FIELDS:
        parent = raw.get(section)
        if not isinstance(parent, dict) or field not in parent:
            continue
        if not isinstance(parent[field], list):
            warnings.append(f"{section}.{field} must be an array")

    headings = (raw.get("content") or {}).get("headings") if isinstance(raw.get("content"), dict) else None
    if isinstance(headings, dict):
        for level, values in headings.items():
            if not isinstance(values, list):
                warnings.append(f"content.headings.{level} must be an array")

    return warnings


def _drop_path(data: dict, loc: tuple) -> bool:
    node: Any = data
    for key in loc[:-1]:
        if isinstance(node, dict) and key in node:
            node = node[key]
        elif isinstance(node, list) and isinstance(key, int) and key < len(node):
            node = node[key]
        else:
            return False

    last = loc[-1] if loc else None
    if isinstance(node, dict) and last in node:
        del node[last]
        return True
    if isinstance(node, list) and isinstance(last, int) and last < len(node):
        del node[last]
        return True
    return False


def coerce_evidence(raw: object) -> tuple[Evidence, list[str]]:
    """
    Build an Evidence from untrusted JSON.
    Fields that fail type validation are dropped to their defaults and
    reported alongside the structural warnings from validate_evidence().
    """
    warnings = validate_evidence(raw)
    data = copy.deepcopy(raw) if isinstance(raw, dict) else {}

    for _ in range(MAX_COERCE_PASSES):
        try:
            evidence = Evidence.model_validate(data)
            break
        except ValidationError as exc:
            dropped = False
            # Deepest and highest list index first, so earlier drops don't shift later paths.
            errors = sorted(
                (err for err in exc.errors() if err.get("loc")),
                key=lambda err: tuple(str(p).zfill(8) for p in err["loc"]),
                reverse=True,
            )
            for err in errors:
                loc = tuple(err["loc"])
                if _drop_path(data, loc):
                    dropped = True
                    warnings.append(f"Invalid value at {'.'.join(str(p) for p in loc)}: {err.get('msg', '')}")
            if not dropped:
                warnings.append("Evidence could not be repaired; using empty defaults")
                evidence = Evidence(url=str(data.get("url") or ""))
                break
    else:
        warnings.append("Evidence could not be repaired; using empty defaults")
        evidence = Evidence(url=str(data.get("url") or ""))

    for warning in warnings:
        logger.warning("EVIDENCE WARNING: %s", warning)

    return evidence, warnings


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def mock_evidence_data(overrides: dict | None = None) -> dict:
    """A complete, well-formed evidence payload for tests and demos."""
    base = {
        "url": "https://example.com",
        "timestamp": "2026-01-15T12:00:00Z",
        "metadata": {
            "title": "Example Co | Managed IT Services",
            "description": "Example Co provides managed IT services for small businesses.",
            "language": "en",
        },
        "content": {
            "headings": {"h1": ["Managed IT Services"], "h2": [], "h3": [], "h4": [], "h5": [], "h6": []},
            "paragraphs": [],
            "lists": [],
            "tables": [],
            "faqs": [],
            "wordCount": 0,
            "textLength": 0,
            "bodyText": "",
        },
        "structure": {
            "hasMain": True,
            "hasNav": True,
            "hasHeader": True,
            "hasFooter": True,
            "landmarks": 4,
            "headingCount": {"h1": 1, "h2": 0, "h3": 0, "h4": 0, "h5": 0, "h6": 0},
        },
        "media": {"images": [], "imageCount": 0, "videos": [], "videoCount": 0, "audio": [], "audioCount": 0},
        "technical": {"structuredData": [], "hasViewport": True, "hasCanonical": False},
        "performance": {"ttfb": 400, "responseTime": 400},
        "accessibility": {"hasLangAttribute": True},
        "entities": {},
    }
    return _deep_merge(base, overrides or {})
