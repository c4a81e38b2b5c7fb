"""Pydantic schemas for API request/response."""

from datetime import date
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserProgressIn(ApiModel):
    active_recommendations: int = Field(default=0, ge=0)
    unlocks_today: int = Field(default=0, ge=0)
    last_unlock_date: date | None = None


class AnalysisOptions(ApiModel):
    tier: str = "free"
    industry: str | None = None
    include_recommendations: bool = True
    user_progress: UserProgressIn | None = None
    today: date | None = None

    @field_validator("tier", mode="before")
    @classmethod
    def normalize_tier(cls, value: object) -> str:
        return str(value or "free").strip().lower()

    @field_validator("industry", mode="before")
    @classmethod
    def normalize_industry(cls, value: object) -> str | None:
        text = str(value or "").strip()
        return text or None


class AnalyzeRequest(AnalysisOptions):
    """Request body for POST /analyze."""

    url: str

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, value: object) -> str:
        url = str(value or "").strip()
        if url and "://" not in url:
            url = f"https://{url}"
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("A valid http(s) URL is required")
        return url


class EvidenceAnalyzeRequest(AnalysisOptions):
    """Request body for POST /analyze/evidence: a caller-supplied Evidence payload."""

    evidence: dict[str, Any]


class CategoryScoreOut(ApiModel):
    score: int
    weight: float
    subfactors: dict[str, float]


class AnalyzeResponse(ApiModel):
    """Response for both analyze endpoints."""

    url: str
    timestamp: str
    total_score: int
    grade: str
    industry: str
    categories: dict[str, CategoryScoreOut]
    validation_warnings: list[str] = Field(default_factory=list)
    issue_count: int | None = None
    recommendations: dict[str, Any] | None = None
