"""End-to-end analysis: Evidence -> scores -> issues -> recommendations -> tier envelope."""

import logging
import time
from datetime import date
from typing import Any, Callable, Mapping

from evidence import coerce_evidence
from issue_detector import detect_issues
from llm_service import LLMTransport
from rec_generator import RecommendationLibrary, generate_recommendations
from rubric import RubricConfig, default_config, validate_config
from scoring import calculate_grade, detect_industry, score_evidence, total_score
from tier_filter import UserProgress, filter_by_tier

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Holds the validated configuration and generation collaborators.

    One instance serves many requests; ``analyze`` keeps no state between calls.
    """

    def __init__(
        self,
        config: RubricConfig | None = None,
        library: RecommendationLibrary | None = None,
        transport: LLMTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = validate_config(config) if config is not None else default_config()
        self.library = library
        self.transport = transport
        self.sleep = sleep

    def analyze(
        self,
        raw_evidence: Any,
        tier: str = "free",
        industry: str | None = None,
        include_recommendations: bool = True,
        user_progress: UserProgress | Mapping[str, Any] | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        # fail fast on an unknown tier before any work is done
        limits = self.config.tier(tier)

        evidence, warnings = coerce_evidence(raw_evidence)
        category_scores = score_evidence(evidence, self.config)
        total = total_score(category_scores)
        industry = industry or detect_industry(evidence)

        result: dict[str, Any] = {
            "url": evidence.url,
            "timestamp": evidence.timestamp,
            "totalScore": total,
            "grade": calculate_grade(total),
            "industry": industry,
            "categories": {key: score.to_json() for key, score in category_scores.items()},
            "validationWarnings": warnings,
        }
        logger.info("ANALYSIS: %s total=%d grade=%s tier=%s", evidence.url, total, result["grade"], tier)

        if not include_recommendations:
            return result

        issues = detect_issues(category_scores, evidence, self.config)
        recommendations = generate_recommendations(
            issues,
            evidence,
            limits,
            industry=industry,
            library=self.library,
            transport=self.transport,
            sleep=self.sleep,
        )
        result["issueCount"] = len(issues)
        result["recommendations"] = filter_by_tier(
            recommendations, tier, self.config, user_progress=user_progress, today=today
        )
        return result
