"""
Performance insights derived from the analytics summary.

Every insight is a rule over the numbers get_summary() already computes;
nothing here calls the LLM. `type` filters which rule family runs,
`timeframe` selects how many trailing daily buckets the trend rules see
(capped at the 30 buckets the summary keeps).
"""

from __future__ import annotations

import logging

from blogpress.schemas.ai import Insight, InsightType, Timeframe
from blogpress.schemas.analytics import AnalyticsSummary

logger = logging.getLogger(__name__)

HIGH_BOUNCE_RATE = 40.0
HIGH_TRAFFIC_VIEWS = 1000
SHORT_SESSION_SECONDS = 60.0
MOBILE_SHARE = 50.0

_TIMEFRAME_DAYS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}


def build_insights(
    summary: AnalyticsSummary,
    insight_type: InsightType = "performance",
    timeframe: Timeframe = "30d",
) -> tuple[list[Insight], list[str]]:
    """Return (insights, recommendations) for one rule family."""
    rules = {
        "performance": _performance,
        "content": _content,
        "audience": _audience,
        "trends": _trends,
    }
    insights, recommendations = rules[insight_type](summary, _TIMEFRAME_DAYS[timeframe])
    if not recommendations:
        recommendations.append("No immediate action needed. Continue monitoring as traffic grows.")
    return insights, recommendations


# ── Rule families ───────────────────────────────────────────

def _performance(summary: AnalyticsSummary, days: int) -> tuple[list[Insight], list[str]]:
    insights: list[Insight] = []
    recommendations: list[str] = []

    if summary.bounce_rate > HIGH_BOUNCE_RATE:
        insights.append(
            Insight(
                type="performance",
                title="High Bounce Rate",
                description=(
                    f"Your bounce rate is {summary.bounce_rate}%, "
                    f"above the {HIGH_BOUNCE_RATE:g}% target."
                ),
                impact="high",
                actionable=True,
            )
        )
        recommendations.append("Improve page load speed and add related-article links.")

    if summary.total_page_views > HIGH_TRAFFIC_VIEWS:
        insights.append(
            Insight(
                type="performance",
                title="Strong Traffic Growth",
                description=f"You have {summary.total_page_views} page views in total.",
                impact="medium",
                actionable=False,
            )
        )

    if 0 < summary.avg_session_duration < SHORT_SESSION_SECONDS:
        insights.append(
            Insight(
                type="performance",
                title="Short Sessions",
                description=(
                    f"Average session lasts {summary.avg_session_duration:g} seconds."
                ),
                impact="medium",
                actionable=True,
            )
        )
        recommendations.append("Add internal links and calls to action to keep readers engaged.")

    return insights, recommendations


def _content(summary: AnalyticsSummary, days: int) -> tuple[list[Insight], list[str]]:
    insights: list[Insight] = []
    recommendations: list[str] = []

    if summary.top_pages:
        top = summary.top_pages[0]
        insights.append(
            Insight(
                type="content",
                title="Top Performing Page",
                description=f'"{top.title or top.url}" leads with {top.views} views.',
                impact="medium",
                actionable=True,
            )
        )
        recommendations.append("Write follow-up content on the topics of your top pages.")
    else:
        recommendations.append("Publish content and share it to start collecting page views.")

    return insights, recommendations


def _audience(summary: AnalyticsSummary, days: int) -> tuple[list[Insight], list[str]]:
    insights: list[Insight] = []
    recommendations: list[str] = []

    mobile = next((d for d in summary.device_stats if d.device == "mobile"), None)
    if mobile is not None and mobile.percentage > MOBILE_SHARE:
        insights.append(
            Insight(
                type="audience",
                title="Mobile-First Audience",
                description=f"{mobile.percentage}% of visitors browse on mobile.",
                impact="high",
                actionable=True,
            )
        )
        recommendations.append("Prioritise mobile layout and image sizes.")

    if summary.traffic_sources:
        leader = summary.traffic_sources[0]
        insights.append(
            Insight(
                type="audience",
                title="Main Traffic Source",
                description=f"{leader.percentage}% of sessions come from {leader.source} traffic.",
                impact="low",
                actionable=False,
            )
        )

    return insights, recommendations


def _trends(summary: AnalyticsSummary, days: int) -> tuple[list[Insight], list[str]]:
    insights: list[Insight] = []
    recommendations: list[str] = []

    window = summary.daily_stats[-days:]
    half = len(window) // 2
    if half == 0:
        return insights, recommendations

    earlier = sum(d.views for d in window[:half])
    recent = sum(d.views for d in window[half:])
    if recent > earlier:
        title, impact = "Traffic Rising", "medium"
    elif recent < earlier:
        title, impact = "Traffic Declining", "high"
        recommendations.append("Refresh older posts and promote new content.")
    else:
        title, impact = "Traffic Steady", "low"

    insights.append(
        Insight(
            type="trends",
            title=title,
            description=(
                f"{recent} views in the most recent {len(window) - half} days "
                f"versus {earlier} in the {half} days before."
            ),
            impact=impact,
            actionable=impact != "low",
        )
    )
    return insights, recommendations
