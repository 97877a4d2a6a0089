"""
Analytics router — visit tracking and the dashboard summary.

Endpoints:
  POST /api/analytics/track-visit     — record one page view
  POST /api/analytics/update-session  — close a browsing session
  GET  /api/analytics/detailed        — dashboard snapshot (polled every 30 s)

Tracking endpoints are public: the tracking script runs on every page of
the public site. The client IP and User-Agent come from the request, not
from the body.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogpress.core.database import get_db_session
from blogpress.schemas.analytics import (
    AnalyticsSummary,
    TrackVisitIn,
    TrackVisitOut,
    UpdateSessionIn,
)
from blogpress.schemas.common import SuccessOut
from blogpress.services.analytics import Visit, end_session, get_summary, record_page_view
from blogpress.services.traffic import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@router.post(
    "/track-visit",
    response_model=TrackVisitOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a page view",
    description=(
        "Creates or updates the visitor (keyed by client IP) and the session, "
        "then appends the page view."
    ),
)
async def track_visit(
    payload: TrackVisitIn,
    request: Request,
    session: DbSession,
) -> TrackVisitOut:
    visit = Visit(
        url=payload.url,
        session_token=payload.session_id,
        ip_address=get_client_ip(request),
        title=payload.title,
        referrer=payload.referrer or None,
        user_agent=request.headers.get("User-Agent"),
        device_type=payload.device_type,
        browser=payload.browser,
        os=payload.os,
        country=payload.country,
        city=payload.city,
        article_id=payload.article_id,
        category_id=payload.category_id,
        site_host=request.url.hostname,
    )
    page_view = await record_page_view(session, visit)

    return TrackVisitOut(
        id=page_view.id,
        session_id=payload.session_id,
        visitor_id=page_view.visitor_id,
        timestamp=page_view.timestamp,
    )


@router.post(
    "/update-session",
    response_model=SuccessOut,
    summary="End a browsing session",
    description=(
        "Sent when the page is abandoned or after 30 minutes of inactivity. "
        "Idempotent: the latest duration wins."
    ),
)
async def update_session(payload: UpdateSessionIn, session: DbSession) -> SuccessOut:
    await end_session(session, payload.session_id, payload.duration)
    return SuccessOut()


@router.get(
    "/detailed",
    response_model=AnalyticsSummary,
    summary="Dashboard analytics snapshot",
    description=(
        "Totals, bounce rate, top pages, traffic sources, devices, "
        "real-time figures, 24 hourly and 30 daily buckets."
    ),
)
async def get_detailed_analytics(session: DbSession) -> AnalyticsSummary:
    return await get_summary(session)
