"""
Analytics aggregator — visit ingestion and dashboard summary.

Ingestion (record_page_view, end_session) is the only write path into the
visitors / visitor_sessions / page_views log. Every counter moves through
a single SQL statement (INSERT … ON CONFLICT DO UPDATE SET n = n + 1, or
UPDATE … SET n = n + 1), so N concurrent requests for the same visitor or
session always add exactly N.

get_summary() is a read-only snapshot built from several independent
queries. It is best effort: the numbers are not guaranteed to be
consistent with each other as of a single instant.

Bucketing rules:
  • hourly_stats — 24 one-hour windows ending at `now` (inclusive).
  • daily_stats  — 30 local calendar days (ANALYTICS_TIMEZONE), oldest first,
                   the last one being today.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from blogpress.core.clock import as_utc, local_midnight, local_zone, utcnow
from blogpress.core.database import dialect_insert, storage_errors
from blogpress.core.errors import NotFound
from blogpress.models.page_view import PageView
from blogpress.models.visitor import Visitor
from blogpress.models.visitor_session import VisitorSession
from blogpress.schemas.analytics import (
    AnalyticsSummary,
    DailyStat,
    DeviceStat,
    HourlyStat,
    RealtimeData,
    TopPage,
    TrafficSourceStat,
)
from blogpress.services.traffic import (
    TrafficSource,
    classify_source,
    detect_browser,
    detect_device_type,
    detect_os,
    extract_campaign,
)

logger = logging.getLogger(__name__)

TOP_PAGES_LIMIT = 10
ACTIVE_WINDOW = datetime.timedelta(minutes=60)
HOURLY_BUCKETS = 24
DAILY_BUCKETS = 30
UNKNOWN_DEVICE = "unknown"


@dataclass(frozen=True, slots=True)
class Visit:
    """One observed page load plus the fingerprint of the client that made it."""

    url: str
    session_token: str
    ip_address: str
    title: str | None = None
    referrer: str | None = None
    user_agent: str | None = None
    device_type: str | None = None
    browser: str | None = None
    os: str | None = None
    country: str | None = None
    city: str | None = None
    article_id: str | None = None
    category_id: str | None = None
    site_host: str | None = None


# ── Ingestion ───────────────────────────────────────────────
async def record_page_view(
    session: AsyncSession,
    visit: Visit,
    now: datetime.datetime | None = None,
) -> PageView:
    """
    Record one page view: upsert the visitor, upsert the session,
    append the page_views row, commit.

    The visitor upsert runs first so the transaction takes its write
    lock before any read.
    """
    now = now or utcnow()

    with storage_errors("record the page view"):
        visitor_id = await _upsert_visitor(session, visit, now)
        session_pk = await _upsert_session(session, visit, visitor_id, now)

        page_view = PageView(
            session_id=session_pk,
            visitor_id=visitor_id,
            url=visit.url,
            title=visit.title,
            referrer=visit.referrer,
            timestamp=now,
            article_id=visit.article_id,
            category_id=visit.category_id,
        )
        session.add(page_view)
        await session.commit()

    logger.debug("Recorded page view %s for session %s", visit.url, visit.session_token)
    return page_view


async def end_session(
    session: AsyncSession,
    session_token: str,
    duration_seconds: int,
    now: datetime.datetime | None = None,
) -> None:
    """
    Close a browsing session: end_time, duration, bounce = (page_views == 1).

    Idempotent — a repeated call overwrites with the latest values.
    Raises NotFound for an unknown token.
    """
    now = now or utcnow()

    stmt = (
        update(VisitorSession)
        .where(VisitorSession.session_id == session_token)
        .values(
            end_time=now,
            duration=duration_seconds,
            bounce=VisitorSession.page_views == 1,
        )
        .execution_options(synchronize_session=False)
    )

    with storage_errors("end the session"):
        result = await session.execute(stmt)
        if result.rowcount == 0:
            await session.rollback()
            raise NotFound("Session not found.")
        await session.commit()


async def _upsert_visitor(
    session: AsyncSession,
    visit: Visit,
    now: datetime.datetime,
) -> uuid.UUID:
    """Insert the visitor, or bump visit_count atomically if the IP is known."""
    device_type = visit.device_type or detect_device_type(visit.user_agent).value
    browser = visit.browser or detect_browser(visit.user_agent)
    os_name = visit.os or detect_os(visit.user_agent)

    stmt = dialect_insert(session, Visitor).values(
        id=uuid.uuid4(),
        ip_address=visit.ip_address,
        user_agent=visit.user_agent,
        referrer=visit.referrer,
        country=visit.country,
        city=visit.city,
        device_type=device_type,
        browser=browser,
        os=os_name,
        first_visit=now,
        last_visit=now,
        visit_count=1,
        is_unique=True,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["ip_address"],
        set_={
            "visit_count": Visitor.visit_count + 1,
            "last_visit": now,
            # This IP has at least one prior visit now
            "is_unique": False,
            "user_agent": func.coalesce(stmt.excluded.user_agent, Visitor.user_agent),
            "device_type": stmt.excluded.device_type,
            "browser": stmt.excluded.browser,
            "os": stmt.excluded.os,
            "country": func.coalesce(stmt.excluded.country, Visitor.country),
            "city": func.coalesce(stmt.excluded.city, Visitor.city),
        },
    )
    await session.execute(stmt)

    return await session.scalar(
        select(Visitor.id).where(Visitor.ip_address == visit.ip_address)
    )


async def _upsert_session(
    session: AsyncSession,
    visit: Visit,
    visitor_id: uuid.UUID,
    now: datetime.datetime,
) -> uuid.UUID:
    """
    Insert the session on its first page view (provisional bounce), or
    bump page_views atomically and clear bounce on later ones.
    """
    stmt = dialect_insert(session, VisitorSession).values(
        id=uuid.uuid4(),
        session_id=visit.session_token,
        visitor_id=visitor_id,
        start_time=now,
        page_views=1,
        bounce=True,
        source=classify_source(visit.referrer, visit.site_host),
        campaign=extract_campaign(visit.url),
        landing_page=visit.url,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["session_id"],
        set_={
            "page_views": VisitorSession.page_views + 1,
            "bounce": False,
        },
    )
    await session.execute(stmt)

    return await session.scalar(
        select(VisitorSession.id).where(VisitorSession.session_id == visit.session_token)
    )


# ── Summary ─────────────────────────────────────────────────
async def get_summary(
    session: AsyncSession,
    now: datetime.datetime | None = None,
) -> AnalyticsSummary:
    """Build the dashboard snapshot as of `now`."""
    now = now or utcnow()

    with storage_errors("load analytics"):
        total_visitors = await _count(session, select(func.count(Visitor.id)))
        unique_visitors = await _count(
            session, select(func.count(Visitor.id)).where(Visitor.is_unique.is_(True))
        )
        total_sessions = await _count(session, select(func.count(VisitorSession.id)))
        bounced_sessions = await _count(
            session,
            select(func.count(VisitorSession.id)).where(VisitorSession.bounce.is_(True)),
        )
        total_page_views = await _count(session, select(func.count(PageView.id)))

        avg_duration = await session.scalar(
            select(func.avg(VisitorSession.duration)).where(VisitorSession.duration > 0)
        )

        top_pages = await _top_pages(session)
        traffic_sources = await _traffic_sources(session, total_sessions)
        device_stats = await _device_stats(session, total_visitors)
        realtime = await _realtime(session, now)
        hourly = await _hourly_stats(session, now)
        daily = await _daily_stats(session, now)

    return AnalyticsSummary(
        total_visitors=total_visitors,
        unique_visitors=unique_visitors,
        total_sessions=total_sessions,
        total_page_views=total_page_views,
        avg_session_duration=round(float(avg_duration), 2) if avg_duration is not None else 0.0,
        bounce_rate=percentage(bounced_sessions, total_sessions),
        top_pages=top_pages,
        traffic_sources=traffic_sources,
        device_stats=device_stats,
        realtime_data=realtime,
        hourly_stats=hourly,
        daily_stats=daily,
    )


def percentage(count: int, total: int) -> float:
    """count / total * 100, rounded to 2 places. 0 when total is 0."""
    if total == 0:
        return 0.0
    return round(count / total * 100, 2)


async def _count(session: AsyncSession, stmt) -> int:  # type: ignore[no-untyped-def]
    return int(await session.scalar(stmt) or 0)


async def _top_pages(session: AsyncSession) -> list[TopPage]:
    """Top URLs by view count; ties keep first-seen order."""
    views = func.count(PageView.id).label("views")
    stmt = (
        select(PageView.url, func.max(PageView.title).label("title"), views)
        .group_by(PageView.url)
        .order_by(views.desc(), func.min(PageView.timestamp).asc())
        .limit(TOP_PAGES_LIMIT)
    )
    rows = (await session.execute(stmt)).all()
    return [TopPage(url=r.url, title=r.title, views=r.views) for r in rows]


def _breakdown(rows, default_label: str) -> list[tuple[str, int]]:  # type: ignore[no-untyped-def]
    """
    Fold (label, count) rows into a list sorted by count, descending.

    NULL labels are reported under `default_label` and merged with any
    stored row already carrying that label. The sort is stable, so ties
    keep the order the labels were first encountered.
    """
    counts: dict[str, int] = {}
    for label, count in rows:
        key = label or default_label
        counts[key] = counts.get(key, 0) + count
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


async def _traffic_sources(session: AsyncSession, total_sessions: int) -> list[TrafficSourceStat]:
    stmt = (
        select(VisitorSession.source, func.count(VisitorSession.id))
        .group_by(VisitorSession.source)
        .order_by(func.min(VisitorSession.start_time).asc())
    )
    rows = (await session.execute(stmt)).all()
    return [
        TrafficSourceStat(source=label, sessions=count, percentage=percentage(count, total_sessions))
        for label, count in _breakdown(rows, TrafficSource.DIRECT.value)
    ]


async def _device_stats(session: AsyncSession, total_visitors: int) -> list[DeviceStat]:
    stmt = (
        select(Visitor.device_type, func.count(Visitor.id))
        .group_by(Visitor.device_type)
        .order_by(func.min(Visitor.first_visit).asc())
    )
    rows = (await session.execute(stmt)).all()
    return [
        DeviceStat(device=label, visitors=count, percentage=percentage(count, total_visitors))
        for label, count in _breakdown(rows, UNKNOWN_DEVICE)
    ]


async def _realtime(session: AsyncSession, now: datetime.datetime) -> RealtimeData:
    """Sessions started in the last hour, plus page views / visitors since local midnight."""
    midnight = local_midnight(now)

    active_users = await _count(
        session,
        select(func.count(VisitorSession.id)).where(
            VisitorSession.start_time >= now - ACTIVE_WINDOW
        ),
    )
    today_views = await _count(
        session,
        select(func.count(PageView.id)).where(PageView.timestamp >= midnight),
    )
    today_visitors = await _count(
        session,
        select(func.count(func.distinct(PageView.visitor_id))).where(
            PageView.timestamp >= midnight
        ),
    )
    return RealtimeData(
        active_users=active_users,
        today_views=today_views,
        today_visitors=today_visitors,
    )


async def _hourly_stats(session: AsyncSession, now: datetime.datetime) -> list[HourlyStat]:
    """
    24 buckets, bucket i = [now - (24 - i)h, now - (23 - i)h). The last
    bucket also takes views stamped exactly `now`.
    """
    hour = datetime.timedelta(hours=1)
    window_start = now - HOURLY_BUCKETS * hour

    stmt = select(PageView.timestamp, PageView.visitor_id).where(
        PageView.timestamp >= window_start,
        PageView.timestamp <= now,
    )
    rows = (await session.execute(stmt)).all()

    views = [0] * HOURLY_BUCKETS
    visitors: list[set[uuid.UUID]] = [set() for _ in range(HOURLY_BUCKETS)]
    for ts, visitor_id in rows:
        index = min(int((as_utc(ts) - window_start) // hour), HOURLY_BUCKETS - 1)
        if index < 0:
            continue
        views[index] += 1
        if visitor_id is not None:
            visitors[index].add(visitor_id)

    zone = local_zone()
    stats = []
    for i in range(HOURLY_BUCKETS):
        start = window_start + i * hour
        stats.append(
            HourlyStat(
                hour=start.astimezone(zone).hour,
                start=start,
                views=views[i],
                visitors=len(visitors[i]),
            )
        )
    return stats


async def _daily_stats(session: AsyncSession, now: datetime.datetime) -> list[DailyStat]:
    """30 local calendar days ending today; views, distinct visitors, sessions started."""
    zone = local_zone()
    today = now.astimezone(zone).date()
    days = [today - datetime.timedelta(days=offset) for offset in range(DAILY_BUCKETS - 1, -1, -1)]
    first_start = datetime.datetime.combine(days[0], datetime.time(), tzinfo=zone).astimezone(
        datetime.timezone.utc
    )

    views = dict.fromkeys(days, 0)
    visitors: dict[datetime.date, set[uuid.UUID]] = {d: set() for d in days}
    sessions = dict.fromkeys(days, 0)

    view_rows = (
        await session.execute(
            select(PageView.timestamp, PageView.visitor_id).where(PageView.timestamp >= first_start)
        )
    ).all()
    for ts, visitor_id in view_rows:
        day = as_utc(ts).astimezone(zone).date()
        if day not in views:
            continue
        views[day] += 1
        if visitor_id is not None:
            visitors[day].add(visitor_id)

    session_rows = (
        await session.execute(
            select(VisitorSession.start_time).where(VisitorSession.start_time >= first_start)
        )
    ).scalars()
    for started in session_rows:
        day = as_utc(started).astimezone(zone).date()
        if day in sessions:
            sessions[day] += 1

    return [
        DailyStat(date=day, views=views[day], visitors=len(visitors[day]), sessions=sessions[day])
        for day in days
    ]
