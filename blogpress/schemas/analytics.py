"""
Pydantic v2 schemas for visit tracking and the analytics dashboard.

Separation:
  • TrackVisitIn / UpdateSessionIn — what the tracking script SENDS.
  • AnalyticsSummary and its parts — what GET /api/analytics/detailed
    RETURNS (polled by the dashboard every 30 seconds).
"""

from __future__ import annotations

import datetime
import uuid

from pydantic import Field

from blogpress.schemas.common import CamelInput, CamelModel


# ── Request schemas ─────────────────────────────────────────
class TrackVisitIn(CamelInput):
    """Payload accepted by POST /api/analytics/track-visit."""

    url: str = Field(..., min_length=1, max_length=2048, examples=["https://blog.example.com/posts/hello"])
    title: str | None = Field(default=None, max_length=512)
    referrer: str | None = Field(default=None, max_length=2048)
    session_id: str = Field(..., min_length=1, max_length=255, examples=["session_1718000000000_k3j9x2a1b"])
    device_type: str | None = Field(default=None, max_length=50, examples=["desktop", "mobile", "tablet"])
    browser: str | None = Field(default=None, max_length=100)
    os: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    article_id: str | None = Field(default=None, max_length=36)
    category_id: str | None = Field(default=None, max_length=36)


class UpdateSessionIn(CamelInput):
    """
    Payload accepted by POST /api/analytics/update-session.

    pageViews is what the browser counted; the stored counter is
    authoritative for the bounce decision, so it is accepted but unused.
    """

    session_id: str = Field(..., min_length=1, max_length=255)
    duration: int = Field(..., ge=0, description="Session length in seconds.")
    page_views: int | None = Field(default=None, ge=0)


class TrackVisitOut(CamelModel):
    id: uuid.UUID
    session_id: str
    visitor_id: uuid.UUID | None
    timestamp: datetime.datetime


# ── Summary schemas ─────────────────────────────────────────
class TopPage(CamelModel):
    url: str
    title: str | None
    views: int


class TrafficSourceStat(CamelModel):
    source: str
    sessions: int
    percentage: float


class DeviceStat(CamelModel):
    device: str
    visitors: int
    percentage: float


class RealtimeData(CamelModel):
    active_users: int
    today_views: int
    today_visitors: int


class HourlyStat(CamelModel):
    hour: int = Field(..., ge=0, le=23, description="Local hour-of-day of the bucket start.")
    start: datetime.datetime
    views: int
    visitors: int


class DailyStat(CamelModel):
    date: datetime.date
    views: int
    visitors: int
    sessions: int


class AnalyticsSummary(CamelModel):
    """Point-in-time dashboard snapshot. Best effort — not transactionally consistent."""

    total_visitors: int
    unique_visitors: int
    total_sessions: int
    total_page_views: int
    avg_session_duration: float
    bounce_rate: float
    top_pages: list[TopPage]
    traffic_sources: list[TrafficSourceStat]
    device_stats: list[DeviceStat]
    realtime_data: RealtimeData
    hourly_stats: list[HourlyStat]
    daily_stats: list[DailyStat]
