"""Recommendation generation: one recommendation per issue via a strategy chain.

Strategies are tried in order (library, programmatic, llm, template). Each
returns a Recommendation or a Skip; the template strategy always succeeds,
so every issue in the batch gets exactly one recommendation.
"""

import logging
import time
from typing import Any, Callable, Protocol

from evidence import Evidence
from facts import extract_site_facts
from llm_service import LLM_CALL_DELAY_SECONDS, LLMTransport, generate_llm_recommendation
from models import Issue, Recommendation, SiteFacts, Skip
from programmatic import generate_programmatic
from rec_templates import build_recommendation, make_template_recommendation
from rubric import TierLimits

logger = logging.getLogger(__name__)


class RecommendationLibrary(Protocol):
    """Curated recommendation content keyed by subfactor and industry."""

    def lookup(self, subfactor: str, industry: str) -> dict[str, Any] | None: ...


class EmptyLibrary:
    def lookup(self, subfactor: str, industry: str) -> dict[str, Any] | None:
        return None


def library_recommendation(
    issue: Issue, library: RecommendationLibrary, industry: str
) -> Recommendation | Skip:
    entry = library.lookup(issue.subfactor, industry)
    if not entry:
        return Skip("no library entry")
    fields = {
        key: entry.get(key)
        for key in (
            "title",
            "finding",
            "impact",
            "action_steps",
            "code_snippet",
            "estimated_time",
            "difficulty",
            "quick_wins",
        )
    }
    if fields["finding"]:
        fields["finding"] = (
            f"{fields['finding']} Current score: {issue.current_score:g}/100 (target {issue.threshold})."
        )
    return build_recommendation(issue, "library", **fields)


def generate_recommendations(
    issues: list[Issue],
    evidence: Evidence,
    limits: TierLimits,
    industry: str = "General",
    library: RecommendationLibrary | None = None,
    transport: LLMTransport | None = None,
    sleep: Callable[[float], None] = time.sleep,
    delay: float = LLM_CALL_DELAY_SECONDS,
    facts: SiteFacts | None = None,
) -> list[Recommendation]:
    """Generate recommendations for the first ``limits.generation_batch`` issues.

    Issues are expected in priority order. LLM calls are made one at a time
    for the first ``limits.llm_head`` issues, with ``delay`` seconds between
    calls. The result is re-sorted by priority score.
    """
    batch = issues[: max(0, limits.generation_batch)]
    if not batch:
        return []

    library = library or EmptyLibrary()
    facts = facts or extract_site_facts(evidence)
    recommendations: list[Recommendation] = []
    llm_calls = 0

    for index, issue in enumerate(batch):
        strategies: list[tuple[str, Callable[[], Recommendation | Skip]]] = [
            ("library", lambda: library_recommendation(issue, library, industry)),
            ("programmatic", lambda: generate_programmatic(issue, evidence, facts)),
        ]
        if transport is not None and index < limits.llm_head:
            strategies.append(
                ("llm", lambda: generate_llm_recommendation(issue, evidence, facts, industry, limits, transport))
            )

        recommendation = None
        for name, strategy in strategies:
            if name == "llm":
                if llm_calls and delay > 0:
                    sleep(delay)
                llm_calls += 1
            try:
                result = strategy()
            except Exception as e:
                logger.warning("GENERATION ERROR: %s strategy failed for %s: %s", name, issue.subfactor, e)
                continue
            if isinstance(result, Skip):
                logger.debug("GENERATION SKIP: %s for %s (%s)", name, issue.subfactor, result.reason)
                continue
            recommendation = result
            break

        if recommendation is None:
            recommendation = make_template_recommendation(issue, evidence)
        logger.info("GENERATION: %s -> %s", issue.subfactor, recommendation.generated_by)
        recommendations.append(recommendation)

    return sorted(recommendations, key=lambda r: r.priority_score, reverse=True)
