import pytest

from conftest import FakeTransport
from pipeline import AnalysisPipeline
from rubric import CATEGORY_WEIGHTS, SUBFACTOR_WEIGHTS, ConfigError, RubricConfig


def _noop(seconds):
    return None


@pytest.fixture
def pipeline():
    return AnalysisPipeline(sleep=_noop)


def test_thin_page_end_to_end(pipeline, thin_page_data):
    result = pipeline.analyze(thin_page_data, tier="free")

    assert result["url"] == "https://example.com"
    assert result["industry"] == "Managed IT"
    assert result["validationWarnings"] == []
    assert result["categories"]["aiReadability"]["score"] == 7
    assert result["categories"]["technicalSetup"]["score"] == 18
    assert result["grade"] == "F"
    expected_total = sum(c["score"] * c["weight"] for c in result["categories"].values())
    assert abs(result["totalScore"] - expected_total) <= 0.5

    envelope = result["recommendations"]
    assert result["issueCount"] > 5
    assert envelope["tier"] == "free"
    assert envelope["limits"]["recommendationsShown"] == 3
    assert envelope["limits"]["recommendationsAvailable"] == 5
    assert [r["subfactor"] for r in envelope["recommendations"]] == ["questionHeadingsScore", "faqScore", "structuredDataScore"]


def test_scores_only(pipeline, thin_page_data):
    result = pipeline.analyze(thin_page_data, tier="guest", include_recommendations=False)
    assert "recommendations" not in result
    assert "issueCount" not in result
    assert set(result["categories"]) == set(CATEGORY_WEIGHTS)


def test_unknown_tier_fails_fast(pipeline, thin_page_data):
    with pytest.raises(ConfigError):
        pipeline.analyze(thin_page_data, tier="enterprise")


def test_broken_evidence_still_scores(pipeline):
    result = pipeline.analyze({"url": "https://example.com", "content": {"paragraphs": 3}}, tier="pro")
    assert "Missing required field: metadata" in result["validationWarnings"]
    assert 0 <= result["totalScore"] <= 100
    assert result["recommendations"]["limits"]["recommendationsShown"] > 0


def test_industry_override(pipeline, thin_page_data):
    assert pipeline.analyze(thin_page_data, industry="Legal", include_recommendations=False)["industry"] == "Legal"


def test_invalid_config_is_rejected():
    with pytest.raises(ConfigError):
        AnalysisPipeline(config=RubricConfig(category_weights=dict(CATEGORY_WEIGHTS, speedUX=0.5)))


def test_diy_progress(pipeline, thin_page_data):
    result = pipeline.analyze(thin_page_data, tier="diy", user_progress={"activeRecommendations": 2})
    assert result["recommendations"]["limits"]["recommendationsShown"] == 2
    assert result["recommendations"]["recommendations"][0]["codeSnippet"] != "[Available on upgrade]"


def test_llm_strategy_is_used_for_pro(thin_page_data):
    transport = FakeTransport()
    pipeline = AnalysisPipeline(transport=transport, sleep=_noop)
    result = pipeline.analyze(thin_page_data, tier="pro")

    generated_by = {r["generatedBy"] for r in result["recommendations"]["recommendations"]}
    assert "llm" in generated_by
    assert 0 < len(transport.prompts) <= 5


def test_guest_summary_reflects_real_issues(pipeline, thin_page_data):
    envelope = pipeline.analyze(thin_page_data, tier="guest")["recommendations"]

    assert envelope["recommendations"] == []
    assert envelope["limits"]["recommendationsShown"] == 0
    assert envelope["limits"]["recommendationsAvailable"] == 5
    assert envelope["summary"]["overallStatus"] == "needs_immediate_attention"
    assert envelope["summary"]["criticalIssues"] == 5
    assert envelope["summary"]["topPriorities"] == []
    assert "You're seeing 0 of 5 recommendations." in envelope["upgrade"]["message"]


def test_page_without_issues_gets_no_recommendations(thin_page_data):
    zero_thresholds = {category: {name: 0 for name in weights} for category, weights in SUBFACTOR_WEIGHTS.items()}
    pipeline = AnalysisPipeline(config=RubricConfig(thresholds=zero_thresholds), sleep=_noop)
    result = pipeline.analyze(thin_page_data, tier="pro")

    assert result["issueCount"] == 0
    assert result["recommendations"]["recommendations"] == []
    assert result["recommendations"]["summary"]["overallStatus"] == "excellent"
