from datetime import timedelta

import pytest
import requests
from bs4 import BeautifulSoup

import extractor
from evidence import coerce_evidence
from extractor import ExtractionError, build_evidence, extract_faqs, fetch_evidence
from facts import extract_site_facts
from programmatic import make_faq_recommendation
from rubric import default_config
from scoring import score_evidence

PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example Co | Managed IT Services</title>
  <meta name="description" content="Managed IT for small businesses.">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta property="og:title" content="Example Co">
  <link rel="canonical" href="https://example.com/">
  <link rel="alternate" type="application/rss+xml" href="/feed.xml">
  <script type="application/ld+json">
    {"@context": "https://schema.org", "@type": "Organization", "name": "Example Co",
     "sameAs": ["https://www.linkedin.com/company/example-co"]}
  </script>
  <script type="application/ld+json">{not json</script>
</head>
<body>
  <a href="#main">Skip to content</a>
  <nav>
    <a href="/services">Services</a>
    <a href="https://www.linkedin.com/company/example-co">LinkedIn</a>
  </nav>
  <main id="main">
    <h1>Managed IT Services</h1>
    <h2>What is managed IT?</h2>
    <p>Managed IT means handing monitoring and support to a provider.</p>
    <details><summary>Do you offer 24/7 support?</summary>Yes, our help desk never closes.</details>
    <ul><li>Monitoring</li><li>Backups</li></ul>
    <img src="/team.jpg" alt="Our support team at work" width="600" height="400">
    <img src="/logo.png">
    <form>
      <label for="email">Email</label><input id="email" type="email">
      <input type="text" name="q">
      <input type="hidden" name="token">
    </form>
  </main>
</body>
</html>"""

HEADERS = {"Last-Modified": "Wed, 14 Jan 2026 10:00:00 GMT", "Cache-Control": "max-age=60"}


@pytest.fixture
def payload():
    return build_evidence(PAGE, "https://example.com/", ttfb_ms=250, headers=HEADERS, timestamp="2026-01-15T12:00:00Z")


def test_payload_is_valid_evidence(payload):
    evidence, warnings = coerce_evidence(payload)
    assert warnings == []
    assert evidence.timestamp == "2026-01-15T12:00:00Z"
    assert evidence.performance.ttfb == 250
    score_evidence(evidence, default_config())


def test_metadata_and_technical(payload):
    assert payload["metadata"]["title"] == "Example Co | Managed IT Services"
    assert payload["metadata"]["language"] == "en"
    assert payload["metadata"]["ogTitle"] == "Example Co"
    assert payload["metadata"]["lastModified"] == HEADERS["Last-Modified"]

    technical = payload["technical"]
    assert len(technical["structuredData"]) == 1
    assert technical["structuredData"][0]["type"] == "Organization"
    assert technical["hasOrganizationSchema"] is True
    assert technical["hasCanonical"] is True
    assert technical["canonicalUrl"] == "https://example.com/"
    assert technical["hasRSSFeed"] is True
    assert technical["hasViewport"] is True
    assert technical["cacheControl"] == "max-age=60"


def test_content_and_faqs(payload):
    content = payload["content"]
    assert content["headings"]["h1"] == ["Managed IT Services"]
    assert content["lists"] == [{"type": "ul", "items": ["Monitoring", "Backups"], "itemCount": 2}]
    questions = {faq["question"]: faq["answer"] for faq in content["faqs"]}
    assert questions["Do you offer 24/7 support?"] == "Yes, our help desk never closes."
    assert questions["What is managed IT?"].startswith("Managed IT means")
    assert "Organization" not in content["bodyText"]


def test_structure_media_and_accessibility(payload):
    structure = payload["structure"]
    assert structure["hasMain"] is True
    assert structure["internalLinks"] == 1
    assert structure["externalLinks"] == 1
    assert structure["anchorLinks"] == 1
    assert structure["socialLinks"] == ["https://www.linkedin.com/company/example-co"]

    assert payload["media"]["imageCount"] == 2
    assert payload["media"]["imagesWithAlt"] == 1

    accessibility = payload["accessibility"]
    assert accessibility["formsWithLabels"] == 0.5
    assert accessibility["hasLangAttribute"] is True
    assert accessibility["hasSkipLink"] is True


def test_entities_come_from_schema(payload):
    organizations = payload["entities"]["organizations"]
    assert organizations[0]["name"] == "Example Co"
    assert payload["entities"]["relationships"][0]["predicate"] == "sameAs"


def test_faq_pairs_are_deduplicated():
    html = (
        "<h2>Is it secure?</h2><p>Yes.</p>"
        "<details><summary>Is it secure?</summary>Yes, fully.</details>"
    )
    soup = BeautifulSoup(html, "html.parser")
    faqs = extract_faqs(soup)
    assert faqs == [{"question": "Is it secure?", "answer": "Yes, fully."}]


SCHEMA_ONLY_FAQ_PAGE = """<html lang="en"><head><title>Example Co</title>
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "FAQPage", "mainEntity": [
  {"@type": "Question", "name": "What is X?", "acceptedAnswer": {"@type": "Answer", "text": "X is a service."}}
]}
</script></head>
<body><main><h1>Example Co</h1><p>We run IT for small offices.</p></main></body></html>"""


def test_faq_schema_is_not_visible_faq_content(make_issue):
    payload = build_evidence(SCHEMA_ONLY_FAQ_PAGE, "https://example.com/", timestamp="2026-01-15T12:00:00Z")
    assert payload["content"]["faqs"] == []
    assert payload["technical"]["hasFaqSchema"] is True

    evidence, _ = coerce_evidence(payload)
    issue = make_issue("faqScore", category="aiSearchReadiness", threshold=70)
    rec = make_faq_recommendation(issue, evidence, extract_site_facts(evidence))
    assert rec.finding.startswith("Status: Incomplete")
    assert "What is X?" in rec.code_snippet


def test_question_microdata_counts_as_visible_faq():
    html = (
        '<div itemscope itemtype="https://schema.org/Question">'
        '<span itemprop="name">How fast is onboarding</span>'
        '<div itemprop="acceptedAnswer" itemscope itemtype="https://schema.org/Answer">'
        '<p itemprop="text">Most offices are live within a week.</p></div></div>'
    )
    faqs = extract_faqs(BeautifulSoup(html, "html.parser"))
    assert faqs == [{"question": "How fast is onboarding", "answer": "Most offices are live within a week."}]


class FakeResponse:
    def __init__(self, text, status=200):
        self.text = text
        self.status_code = status
        self.url = "https://example.com/"
        self.headers = {}
        self.elapsed = timedelta(milliseconds=120)
        self.apparent_encoding = "utf-8"
        self.encoding = None

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


def test_fetch_evidence(monkeypatch):
    monkeypatch.setattr(extractor.requests, "get", lambda url, timeout, headers: FakeResponse(PAGE))
    payload = fetch_evidence("https://example.com/")
    assert payload["performance"]["ttfb"] == 120
    assert payload["url"] == "https://example.com/"


def test_fetch_errors_become_extraction_errors(monkeypatch):
    def refuse(url, timeout, headers):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(extractor.requests, "get", refuse)
    with pytest.raises(ExtractionError, match="connection refused"):
        fetch_evidence("https://example.com/")

    monkeypatch.setattr(extractor.requests, "get", lambda url, timeout, headers: FakeResponse("", status=503))
    with pytest.raises(ExtractionError, match="503"):
        fetch_evidence("https://example.com/")
