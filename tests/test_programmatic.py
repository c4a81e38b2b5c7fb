import pytest

from facts import extract_site_facts
from models import Recommendation, Skip
from programmatic import (
    generate_programmatic,
    heading_to_question,
    indexnow_key,
    make_alt_text_recommendation,
    make_canonical_recommendation,
    make_captions_recommendation,
    make_faq_recommendation,
    make_heading_hierarchy_recommendation,
    make_index_now_recommendation,
    make_open_graph_recommendation,
    make_question_headings_recommendation,
    make_sitemap_recommendation,
    make_structured_data_recommendation,
    suggest_alt_text,
)

FAQ_SCHEMA = {
    "type": "FAQPage",
    "raw": {
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": "Do you offer <24/7> support?",
                "acceptedAnswer": {"@type": "Answer", "text": "Yes & always."},
            }
        ],
    },
}
PAGE_FAQ = {"question": "What is managed IT?", "answer": "Outsourced monitoring and support for your systems."}


def _run(generator, issue, evidence):
    return generator(issue, evidence, extract_site_facts(evidence))


@pytest.mark.parametrize(
    "heading, question",
    [
        ("Our Services", "What services does Example Co offer?"),
        ("Pricing", "How much does Example Co cost?"),
        ("Why Choose Us", "Why choose Example Co?"),
        ("Benefits of cloud backup", "What are the benefits of cloud backup?"),
        ("Cloud Backup:", "What should I know about Cloud Backup?"),
    ],
)
def test_heading_to_question(heading, question):
    assert heading_to_question(heading, "Example Co") == question


def test_heading_to_question_without_brand():
    assert heading_to_question("Services", "") == "What services does the company offer?"


def test_structured_data_adds_only_missing_types(make_issue, make_evidence):
    rec = _run(make_structured_data_recommendation, make_issue("structuredDataScore"), make_evidence())

    assert isinstance(rec, Recommendation)
    assert rec.id == "rec_technicalSetup_structuredDataScore"
    assert rec.generated_by == "programmatic"
    assert rec.title == "Add Organization + WebSite + WebPage + BreadcrumbList + Article schema"
    assert "Person" not in rec.title
    assert '"@id": "https://example.com/#organization"' in rec.code_snippet
    assert '"name": "Example Co"' in rec.code_snippet
    assert "No Schema.org JSON-LD detected on example.com" in rec.finding


def test_structured_data_keeps_existing_schema(make_issue, make_evidence):
    evidence = make_evidence(
        technical={"structuredData": [{"type": "Organization", "raw": {"@type": "Organization", "name": "Example Co"}}]},
        content={"faqs": [PAGE_FAQ]},
    )
    rec = _run(make_structured_data_recommendation, make_issue("structuredDataScore", current_score=25), evidence)

    assert rec.title == "Add WebSite + WebPage + BreadcrumbList + FAQPage + Article schema"
    assert '"@type": "Organization"' not in rec.code_snippet
    assert "What is managed IT?" in rec.code_snippet
    assert any("identical to the visible FAQ" in step for step in rec.action_steps)


def test_structured_data_skips_without_url(make_issue, make_evidence):
    result = _run(make_structured_data_recommendation, make_issue("structuredDataScore"), make_evidence(url=""))
    assert isinstance(result, Skip)


def _faq_issue(make_issue):
    return make_issue("faqScore", category="aiSearchReadiness", threshold=70)


def test_faq_missing_everything(make_issue, make_evidence):
    rec = _run(make_faq_recommendation, _faq_issue(make_issue), make_evidence())
    assert rec.finding.startswith("Status: Missing\n")
    assert rec.code_snippet == ""
    assert rec.estimated_score_gain == 56
    assert len(rec.quick_wins) == 2
    assert rec.title == "AI Search Readiness: FAQ Section"


def test_faq_on_page_without_schema_gets_jsonld(make_issue, make_evidence):
    evidence = make_evidence(content={"faqs": [PAGE_FAQ]})
    rec = _run(make_faq_recommendation, _faq_issue(make_issue), evidence)
    assert rec.finding.startswith("Status: Missing Schema")
    assert '"@type": "FAQPage"' in rec.code_snippet
    assert "What is managed IT?" in rec.code_snippet


def test_faq_schema_without_visible_content_gets_escaped_html(make_issue, make_evidence):
    evidence = make_evidence(technical={"structuredData": [FAQ_SCHEMA]})
    rec = _run(make_faq_recommendation, _faq_issue(make_issue), evidence)
    assert rec.finding.startswith("Status: Incomplete")
    assert "<h3>Do you offer &lt;24/7&gt; support?</h3>" in rec.code_snippet
    assert "<p>Yes &amp; always.</p>" in rec.code_snippet


def test_faq_schema_and_content_is_good_progress(make_issue, make_evidence):
    evidence = make_evidence(technical={"structuredData": [FAQ_SCHEMA]}, content={"faqs": [PAGE_FAQ]})
    rec = _run(make_faq_recommendation, _faq_issue(make_issue), evidence)
    assert rec.finding.startswith("Status: Good Progress")


def test_open_graph_uses_page_values_and_escapes(make_issue, make_evidence):
    issue = make_issue("openGraphScore", threshold=60)
    evidence = make_evidence(metadata={"title": 'Fish "&" Chips'})
    rec = _run(make_open_graph_recommendation, issue, evidence)

    assert 'content="Fish &quot;&amp;&quot; Chips"' in rec.code_snippet
    assert 'property="og:url" content="https://example.com"' in rec.code_snippet
    assert "og:image" not in rec.code_snippet
    assert any("1200x630" in step for step in rec.action_steps)


def test_open_graph_skips_without_url(make_issue, make_evidence):
    result = _run(make_open_graph_recommendation, make_issue("openGraphScore"), make_evidence(url=""))
    assert isinstance(result, Skip)


def test_question_heading_rewrites(make_issue, make_evidence):
    issue = make_issue("questionHeadingsScore", category="aiSearchReadiness", threshold=60)
    evidence = make_evidence(
        content={"headings": {"h2": ["Our Services", "Pricing", "How does it work?"], "h3": ["Benefits of Managed IT"]}}
    )
    rec = _run(make_question_headings_recommendation, issue, evidence)

    assert rec.action_steps[0] == 'Change "Our Services" to "What services does Example Co offer?".'
    assert rec.action_steps[1] == 'Change "Pricing" to "How much does Example Co cost?".'
    assert "1 of 4 section headings" in rec.finding
    assert "<!-- Before: Pricing -->" in rec.code_snippet


def test_question_headings_skip_when_all_are_questions(make_issue, make_evidence):
    evidence = make_evidence(content={"headings": {"h2": ["What is managed IT?"]}})
    result = _run(make_question_headings_recommendation, make_issue("questionHeadingsScore"), evidence)
    assert isinstance(result, Skip)


def test_sitemap_entry(make_issue, make_evidence):
    evidence = make_evidence(metadata={"lastModified": "2026-01-10T00:00:00Z"})
    rec = _run(make_sitemap_recommendation, make_issue("sitemapScore", current_score=30, threshold=60), evidence)
    assert "Sitemap: https://example.com/sitemap.xml" in rec.code_snippet
    assert "<lastmod>2026-01-10</lastmod>" in rec.code_snippet


def test_canonical_and_hreflang(make_issue, make_evidence):
    rec = _run(make_canonical_recommendation, make_issue("canonicalHreflangScore", threshold=60), make_evidence())
    assert '<link rel="canonical" href="https://example.com">' in rec.code_snippet
    assert 'hreflang="en"' in rec.code_snippet
    assert 'hreflang="x-default"' in rec.code_snippet


def test_canonical_skips_when_nothing_to_add(make_issue, make_evidence):
    evidence = make_evidence(technical={"hasCanonical": True, "hreflangTags": 2})
    result = _run(make_canonical_recommendation, make_issue("canonicalHreflangScore"), evidence)
    assert isinstance(result, Skip)


@pytest.mark.parametrize(
    "src, alt",
    [
        ("https://example.com/img/server-rack_2.jpg", "Example Co server rack"),
        ("/uploads/IMG_0042.png", ""),
        ("/uploads/photo.webp", ""),
        ("", ""),
    ],
)
def test_suggest_alt_text(src, alt):
    assert suggest_alt_text(src, "Example Co") == alt


def test_alt_text_lists_images_without_alt(make_issue, make_evidence):
    evidence = make_evidence(
        media={
            "images": [
                {"src": "/img/logo.png", "alt": "Example Co logo"},
                {"src": "/img/server-rack.jpg", "alt": ""},
                {"src": "/img/IMG_0042.jpg", "alt": "  "},
            ],
            "imageCount": 3,
        }
    )
    issue = make_issue("altTextScore", category="aiReadability", current_score=33, threshold=70)
    rec = _run(make_alt_text_recommendation, issue, evidence)

    assert rec.generated_by == "programmatic"
    assert "2 of 3 images" in rec.finding
    assert "(33% coverage)" in rec.finding
    assert '<img src="/img/server-rack.jpg" alt="Example Co server rack">' in rec.code_snippet
    assert rec.action_steps[0].startswith('Add alt="Example Co server rack" to server-rack.jpg')
    assert rec.action_steps[1] == "Write 8-15 words of alt text for IMG_0042.jpg describing what it shows."


def test_alt_text_skips_when_every_image_has_alt(make_issue, make_evidence):
    evidence = make_evidence(media={"images": [{"src": "/a.png", "alt": "A chart"}], "imageCount": 1})
    result = _run(make_alt_text_recommendation, make_issue("altTextScore", category="aiReadability"), evidence)
    assert isinstance(result, Skip)


def test_alt_text_caps_listed_images(make_issue, make_evidence):
    images = [{"src": f"/img/team-{i}.jpg", "alt": ""} for i in range(8)]
    evidence = make_evidence(media={"images": images, "imageCount": 8})
    rec = _run(make_alt_text_recommendation, make_issue("altTextScore", category="aiReadability"), evidence)

    assert "Repeat for the other 3 images without alt text." in rec.action_steps
    assert rec.code_snippet.count("<img ") == 5


def test_captions_track_for_uncaptioned_video(make_issue, make_evidence):
    evidence = make_evidence(
        media={
            "videos": [{"src": "/media/demo.mp4"}, {"src": "/media/intro.mp4", "hasCaptions": True}],
            "videoCount": 2,
            "audio": [{"src": "/media/episode-1.mp3"}],
            "audioCount": 1,
        }
    )
    issue = make_issue("captionsTranscriptsScore", category="aiReadability", threshold=60)
    rec = _run(make_captions_recommendation, issue, evidence)

    assert '<track kind="captions" src="/captions/demo.vtt" srclang="en" label="Captions" default>' in rec.code_snippet
    assert "intro.mp4" not in rec.code_snippet
    assert '<a href="/transcripts/episode-1.html">Read the transcript</a>' in rec.code_snippet
    assert "1 videos and 1 audio files" in rec.finding


def test_captions_skip_without_media(make_issue, make_evidence):
    result = _run(make_captions_recommendation, make_issue("captionsTranscriptsScore"), make_evidence())
    assert isinstance(result, Skip)


def test_index_now_key_file_and_ping(make_issue, make_evidence):
    rec = _run(make_index_now_recommendation, make_issue("indexNowScore", threshold=50), make_evidence())
    key = indexnow_key("https://example.com")

    assert len(key) == 32
    assert f"{key}.txt" in rec.code_snippet
    assert "https://api.indexnow.org/indexnow" in rec.code_snippet
    assert f'"keyLocation": "https://example.com/{key}.txt"' in rec.code_snippet
    assert rec.action_steps[0] == f"Create {key}.txt containing only {key} and upload it to the site root."


def test_index_now_key_is_stable_per_site():
    assert indexnow_key("https://example.com") == indexnow_key("https://example.com")
    assert indexnow_key("https://example.com") != indexnow_key("https://example.org")


def test_index_now_skips_when_present(make_issue, make_evidence):
    evidence = make_evidence(technical={"hasIndexNow": True})
    assert isinstance(_run(make_index_now_recommendation, make_issue("indexNowScore"), evidence), Skip)


def test_heading_hierarchy_missing_h1(make_issue, make_evidence):
    evidence = make_evidence(
        content={"headings": {"h1": [], "h2": ["Services", "Pricing", "Contact"]}},
        structure={"headingCount": {"h1": 0, "h2": 3}},
    )
    issue = make_issue("headingHierarchyScore", category="contentStructure", threshold=75)
    rec = _run(make_heading_hierarchy_recommendation, issue, evidence)

    assert "Missing H1 tag" in rec.finding
    assert rec.action_steps[0] == 'Add one H1 that names the page topic, e.g. "Example Co | Managed IT Services".'
    assert rec.code_snippet.startswith("<h1>Example Co | Managed IT Services</h1>")
    assert "  <h2>Pricing</h2>" in rec.code_snippet


def test_heading_hierarchy_too_few_sections(make_issue, make_evidence):
    rec = _run(make_heading_hierarchy_recommendation, make_issue("headingHierarchyScore"), make_evidence())

    assert "Only 0 H2 sections" in rec.finding
    assert rec.action_steps[0] == "Split the content into 3-5 H2 sections with H3 subsections beneath them."


def test_heading_hierarchy_skips_clean_outline(make_issue, make_evidence):
    evidence = make_evidence(
        content={"headings": {"h2": ["Services", "Pricing", "Contact"]}},
        structure={"headingCount": {"h1": 1, "h2": 3}},
    )
    assert isinstance(_run(make_heading_hierarchy_recommendation, make_issue("headingHierarchyScore"), evidence), Skip)


def test_generate_programmatic_dispatch(make_issue, make_evidence):
    assert isinstance(generate_programmatic(make_issue("rssFeedScore"), make_evidence()), Skip)
    rec = generate_programmatic(make_issue("sitemapScore"), make_evidence())
    assert isinstance(rec, Recommendation)
    assert rec.subfactor == "sitemapScore"
