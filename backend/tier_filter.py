"""Plan-based shaping of the recommendation list.

filter_by_tier never mutates its input and never reads the clock; the DIY
daily-unlock check compares against the ``today`` the caller passes in.
"""

import re
from datetime import date
from typing import Any, Mapping

from models import PipelineModel, Recommendation
from rubric import UPGRADE_MARKER, RubricConfig, TierLimits

TIME_PATTERN = re.compile(r"(\d+(?:\.\d+)?)(?:\s*-\s*(\d+(?:\.\d+)?))?\s*(minute|min|hour|hr|day|week)", re.I)
HOURS_PER_UNIT = {"minute": 1 / 60, "min": 1 / 60, "hour": 1, "hr": 1, "day": 8, "week": 40}
SEVERITIES = ("critical", "high", "medium", "low")


class UserProgress(PipelineModel):
    active_recommendations: int = 0
    unlocks_today: int = 0
    last_unlock_date: date | None = None


def _coerce_progress(user_progress: UserProgress | Mapping[str, Any] | None) -> UserProgress | None:
    if user_progress is None or isinstance(user_progress, UserProgress):
        return user_progress
    return UserProgress.model_validate(dict(user_progress))


def can_unlock_more(progress: UserProgress | None, limits: TierLimits, today: date | None = None) -> bool:
    if progress is None or not limits.progressive_unlock:
        return False
    if today is not None and progress.last_unlock_date != today:
        return True
    return progress.unlocks_today < limits.daily_unlock_limit


def estimate_hours(estimated_time: str) -> float:
    """Midpoint of a range like "1-2 hours" or "15-30 minutes", in hours."""
    match = TIME_PATTERN.search(estimated_time or "")
    if not match:
        return 0.0
    low = float(match.group(1))
    high = float(match.group(2)) if match.group(2) else low
    unit = match.group(3).lower()
    return (low + high) / 2 * HOURS_PER_UNIT[unit]


def format_duration(hours: float) -> str:
    if hours <= 0:
        return "0 hours"
    if hours < 1:
        return f"{max(1, round(hours * 60))} minutes"
    if hours < 8:
        return f"{round(hours)} hours"
    if hours < 40:
        return f"{round(hours / 8)} days"
    return f"{round(hours / 40)} weeks"


def overall_status(recommendations: list[Recommendation]) -> str:
    critical = sum(1 for r in recommendations if r.priority == "critical")
    high = sum(1 for r in recommendations if r.priority == "high")
    if critical > 3:
        return "needs_immediate_attention"
    if critical > 0 or high > 5:
        return "needs_improvement"
    if high > 0:
        return "good_with_opportunities"
    return "excellent"


def build_summary(available: list[Recommendation], shown: list[Recommendation]) -> dict[str, Any]:
    by_severity = {severity: 0 for severity in SEVERITIES}
    for rec in available:
        by_severity[rec.priority] += 1
    urgent = [r for r in shown if r.priority in ("critical", "high")]
    return {
        "overallStatus": overall_status(available),
        "bySeverity": by_severity,
        "criticalIssues": by_severity["critical"] + by_severity["high"],
        "totalRecommendations": len(available),
        "potentialScoreGain": round(sum(r.estimated_score_gain for r in available)),
        "topPriorities": [r.title for r in urgent[:3]],
        "estimatedTimeToImplement": format_duration(sum(estimate_hours(r.estimated_time) for r in available)),
    }


def redact(rec: Recommendation, limits: TierLimits) -> dict[str, Any]:
    data = rec.to_json()
    if not limits.show_code_snippets:
        has_code = bool(rec.code_snippet)
        data["codeSnippet"] = UPGRADE_MARKER if has_code else ""
        data["codeSnippetAvailable"] = has_code
    if not limits.show_evidence:
        has_evidence = bool(rec.evidence)
        data["evidence"] = UPGRADE_MARKER if has_evidence else None
        data["evidenceAvailable"] = has_evidence
    if not limits.show_detailed_steps:
        data["actionSteps"] = data["actionSteps"][:1]
    return data


def upgrade_cta(tier: str, limits: TierLimits, shown: int, available: int) -> dict[str, Any] | None:
    if not limits.upgrade_target:
        return None
    return {
        "show": True,
        "title": limits.upgrade_title,
        "message": f"{limits.upgrade_message} You're seeing {shown} of {available} recommendations.",
        "cta": limits.upgrade_cta,
        "tier": limits.upgrade_target,
        "from": tier,
    }


def filter_by_tier(
    recommendations: list[Recommendation],
    tier: str,
    config: RubricConfig,
    user_progress: UserProgress | Mapping[str, Any] | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Truncate and redact recommendations for one plan tier.

    Raises ConfigError for an unknown tier.
    """
    limits = config.tier(tier)
    progress = _coerce_progress(user_progress)
    ordered = sorted(recommendations, key=lambda r: r.priority_score, reverse=True)

    cap = max(0, limits.max_recommendations)
    active = 0
    if limits.progressive_unlock:
        active = progress.active_recommendations if progress is not None else limits.daily_unlock_limit
        cap = min(cap, active)
    shown = ordered[:cap]

    return {
        "tier": tier,
        "limits": {
            "recommendationsShown": len(shown),
            "recommendationsAvailable": len(ordered),
            "hasMoreRecommendations": len(ordered) > len(shown) or cap == 0,
            "activeRecommendations": active,
            "canUnlockMore": can_unlock_more(progress, limits, today),
        },
        "recommendations": [redact(r, limits) for r in shown],
        "upgrade": upgrade_cta(tier, limits, len(shown), len(ordered)),
        "summary": build_summary(ordered, shown),
        "features": list(limits.features),
    }
