"""Value types passed between the scoring, issue, recommendation and tier stages.

The page snapshot itself lives in evidence.py; rubric tables in rubric.py.
"""

from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Severity = Literal["critical", "high", "medium", "low"]
GeneratedBy = Literal["library", "programmatic", "llm", "template"]


class PipelineModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class CategoryScore(PipelineModel):
    """Score for one category plus its subfactor breakdown."""

    score: int
    weight: float
    subfactors: dict[str, float]


class Issue(PipelineModel):
    """A subfactor that scored below its threshold."""

    category: str
    subfactor: str
    current_score: float
    threshold: int
    gap: float
    severity: Severity
    priority: float
    evidence_slice: dict[str, Any] = Field(default_factory=dict)
    page_url: str = ""


class Recommendation(PipelineModel):
    id: str
    title: str
    category: str
    subfactor: str
    priority: Severity
    priority_score: float
    finding: str
    impact: str
    action_steps: list[str]
    code_snippet: str = ""
    evidence: Any = None
    estimated_time: str
    difficulty: str
    estimated_score_gain: int
    current_score: float
    target_score: int
    generated_by: GeneratedBy
    quick_wins: list[str] = Field(default_factory=list)


class SiteFacts(PipelineModel):
    """Facts about the site derivable from the evidence alone."""

    brand: str = ""
    origin: str = ""
    page_url: str = ""
    page_title: str = ""
    description: str = ""
    logo: str = ""
    og_image: str = ""
    social_links: list[str] = Field(default_factory=list)
    email: str = ""
    phone: str = ""
    language: str = ""
    author: str = ""
    published: str = ""
    modified: str = ""


class Skip(NamedTuple):
    """Returned by a generation strategy that cannot produce a recommendation."""

    reason: str
