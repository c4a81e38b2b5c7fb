import pytest

from evidence import Evidence, coerce_evidence, mock_evidence_data
from issue_detector import calculate_priority, calculate_severity
from models import Issue
from rubric import CATEGORY_WEIGHTS, default_config

THIN_BODY = " ".join(["word"] * 50)

LLM_RESPONSE = """[TITLE]
Tighten this page for answer engines
[FINDING]
The page lacks the signal described in the current state section.
[IMPACT]
AI assistants will cite the page more reliably once this is fixed.
[APPLY INSTRUCTIONS]
1. Open the page template in your CMS.
2. Apply the change described in the finding.
3. Re-scan the page to confirm the score moved.
[CODE]
[QUICK WINS]
- Update the meta description.
[END]"""


class FakeTransport:
    """Stands in for the Claude transport; records every prompt it receives."""

    def __init__(self, response=LLM_RESPONSE, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def complete(self, system, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class Sleeper:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def config():
    return default_config()


@pytest.fixture
def evidence_data():
    """camelCase payload factory with deep-merged overrides."""

    def _make(**overrides) -> dict:
        return mock_evidence_data(overrides)

    return _make


@pytest.fixture
def make_evidence():
    def _make(**overrides) -> Evidence:
        evidence, _ = coerce_evidence(mock_evidence_data(overrides))
        return evidence

    return _make


@pytest.fixture
def thin_page_data():
    """Zero images, zero structured data and 50 words of body text."""
    return mock_evidence_data(
        {
            "content": {"bodyText": THIN_BODY, "wordCount": 50, "textLength": len(THIN_BODY), "paragraphs": [THIN_BODY]},
            "technical": {"structuredData": [], "hasViewport": False},
            "performance": {"ttfb": None, "responseTime": 0},
        }
    )


@pytest.fixture
def thin_page(thin_page_data):
    evidence, _ = coerce_evidence(thin_page_data)
    return evidence


@pytest.fixture
def make_issue():
    def _make(subfactor, category="technicalSetup", current_score=0.0, threshold=75, evidence=None) -> Issue:
        gap = round(threshold - current_score, 1)
        return Issue(
            category=category,
            subfactor=subfactor,
            current_score=current_score,
            threshold=threshold,
            gap=gap,
            severity=calculate_severity(gap),
            priority=calculate_priority(CATEGORY_WEIGHTS[category], gap),
            evidence_slice=evidence or {},
        )

    return _make


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def sleeper():
    return Sleeper()
