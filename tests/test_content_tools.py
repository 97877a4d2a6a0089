"""Test the deterministic content analysis, SEO and insight helpers."""

from __future__ import annotations

import datetime

from blogpress.schemas.analytics import (
    AnalyticsSummary,
    DailyStat,
    DeviceStat,
    RealtimeData,
)
from blogpress.services.content_tools import (
    analyze_content,
    keyword_density,
    optimize_seo,
    readability,
    reading_time,
)
from blogpress.services.insights import build_insights


def _summary(**overrides) -> AnalyticsSummary:
    fields = dict(
        total_visitors=0,
        unique_visitors=0,
        total_sessions=0,
        total_page_views=0,
        avg_session_duration=0.0,
        bounce_rate=0.0,
        top_pages=[],
        traffic_sources=[],
        device_stats=[],
        realtime_data=RealtimeData(active_users=0, today_views=0, today_visitors=0),
        hourly_stats=[],
        daily_stats=[],
    )
    fields.update(overrides)
    return AnalyticsSummary(**fields)


def test_reading_time_rounds_up():
    assert reading_time(0) == 0
    assert reading_time(1) == 1
    assert reading_time(200) == 1
    assert reading_time(201) == 2


def test_keyword_density_is_case_insensitive():
    assert keyword_density("SEO tips. More seo.", ["seo", "  "]) == {"seo": 2}


def test_readability_of_simple_text_is_high():
    assert readability("The cat sat. The dog ran.") > 80
    assert readability("") == 0.0


def test_short_untitled_draft_collects_suggestions():
    result = analyze_content("Just a few words.", None, ["python"])

    assert result.word_count == 4
    assert result.keyword_density == {"python": 0}
    assert result.seo_score < 60
    assert any("300 words" in s for s in result.suggestions)
    assert any("python" in s for s in result.suggestions)


def test_seo_keeps_good_title_and_meta():
    meta = "x" * 155
    result = optimize_seo("## Python\n\n" + "python " * 50, "python", "Learn Python", meta)

    assert result.optimized_title == "Learn Python"
    assert result.optimized_meta_description == meta
    assert result.score == 100
    assert result.suggestions == []


def test_seo_appends_keyword_to_title_and_trims_meta():
    result = optimize_seo("plain text", "django", "My Post", "y" * 300)

    assert result.optimized_title == "My Post | django"
    assert len(result.optimized_meta_description) == 160
    assert result.optimized_meta_description.endswith("...")
    assert result.score < 100


def test_high_bounce_rate_is_a_high_impact_insight():
    insights, recommendations = build_insights(_summary(bounce_rate=65.0, total_page_views=1500))

    titles = [i.title for i in insights]
    assert titles == ["High Bounce Rate", "Strong Traffic Growth"]
    assert insights[0].impact == "high"
    assert recommendations


def test_quiet_site_still_gets_a_recommendation():
    insights, recommendations = build_insights(_summary())

    assert insights == []
    assert recommendations == ["No immediate action needed. Continue monitoring as traffic grows."]


def test_mobile_audience_insight():
    devices = [DeviceStat(device="mobile", visitors=7, percentage=70.0)]
    insights, _ = build_insights(_summary(device_stats=devices), "audience")

    assert insights[0].title == "Mobile-First Audience"


def test_trend_compares_halves_of_the_timeframe():
    start = datetime.date(2026, 10, 1)
    days = [
        DailyStat(date=start + datetime.timedelta(days=i), views=views, visitors=1, sessions=1)
        for i, views in enumerate([0] * 23 + [1, 1, 1, 5, 5, 5, 5])
    ]

    insights, _ = build_insights(_summary(daily_stats=days), "trends", "7d")

    assert insights[0].title == "Traffic Rising"
    assert insights[0].description.startswith("20 views in the most recent 4 days")
