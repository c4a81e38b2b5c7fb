from rec_templates import (
    build_recommendation,
    clamp_text,
    make_template_recommendation,
    score_breakdown,
    template_for,
)


def test_template_for_unknown_subfactor():
    template = template_for("mysteryScore")
    assert template["title"] == "Improve Mystery"
    assert template["difficulty"] == "Medium"


def test_template_recommendation_is_complete(make_issue, thin_page):
    issue = make_issue("lcpScore", category="speedUX", current_score=30, threshold=60)
    rec = make_template_recommendation(issue, thin_page)

    assert rec.generated_by == "template"
    assert rec.id == "rec_speedUX_lcpScore"
    assert rec.priority == issue.severity
    assert "could not be measured" in rec.finding
    assert rec.action_steps
    assert rec.title and rec.impact


def test_every_template_subfactor_produces_a_recommendation(config, make_issue, thin_page):
    for category, weights in config.subfactor_weights.items():
        for subfactor in weights:
            rec = make_template_recommendation(make_issue(subfactor, category=category, threshold=50), thin_page)
            assert rec.finding
            assert len(rec.action_steps) >= 3


def test_weak_fields_are_backfilled(make_issue):
    issue = make_issue("rssFeedScore", threshold=40)
    rec = build_recommendation(issue, "llm", finding="too short", action_steps=["", "  "])
    assert rec.finding.startswith("Rss Feed scored 0/100")
    assert len(rec.action_steps) == 3


def test_clamp_text():
    assert clamp_text("abcdef", 4) == "abc…"
    assert clamp_text("abc", 4) == "abc"


def test_score_breakdown(make_issue):
    breakdown = score_breakdown(make_issue("structuredDataScore", threshold=75))
    assert breakdown == {
        "min": 24,
        "max": 40,
        "coverage": 16,
        "completeness": 12,
        "consistency": 8,
        "crawlability": 4,
    }


def test_clamp_text_drops_partial_entity():
    assert clamp_text("a &amp; b", 5) == "a …"
    assert clamp_text("Q&amp;A support", 10) == "Q&amp;A s…"


def _schema_blocks(*types):
    return [{"type": t, "raw": {"@type": t}} for t in types]


def test_structured_data_steps_name_only_missing_types(make_issue, make_evidence):
    evidence = make_evidence(technical={"structuredData": _schema_blocks("Organization", "WebSite", "Article")})
    rec = make_template_recommendation(make_issue("structuredDataScore", current_score=40), evidence)

    assert "Add WebPage, BreadcrumbList, FAQPage, Person JSON-LD before </head>." in rec.action_steps
    assert "Missing: WebPage, BreadcrumbList, FAQPage, Person." in rec.finding


def test_structured_data_with_every_type_asks_for_richer_blocks(make_issue, make_evidence):
    types = ("Organization", "WebSite", "WebPage", "BreadcrumbList", "FAQPage", "Article", "Person")
    evidence = make_evidence(technical={"structuredData": _schema_blocks(*types)})
    rec = make_template_recommendation(make_issue("structuredDataScore", current_score=60), evidence)

    assert "too sparse to score well" in rec.finding
    assert not any(step.startswith("Add ") and "JSON-LD" in step for step in rec.action_steps)
    assert any(step.startswith("Fill in the empty properties") for step in rec.action_steps)
