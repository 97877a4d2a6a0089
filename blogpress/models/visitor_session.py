"""
Browsing session model.

One row per client session token. The row is created by the first page
view (page_views = 1, provisional bounce = true) and bumped atomically by
every later page view, which also clears the bounce flag. Ending the
session fills end_time / duration and settles bounce = (page_views == 1).
"""

import uuid
import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from blogpress.core.database import Base


class VisitorSession(Base):
    """One continuous browsing interaction by a visitor."""

    __tablename__ = "visitor_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    visitor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("visitors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Client-generated token (e.g. "session_1718000000000_x1y2z3")
    session_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    # ── Lifetime ────────────────────────────────────────────
    start_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    end_time: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds

    # ── Engagement ──────────────────────────────────────────
    page_views: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )
    bounce: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
    )

    # ── Acquisition ─────────────────────────────────────────
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)  # organic, social, referral
    campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    landing_page: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_visitor_sessions_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<VisitorSession token={self.session_id!r} "
            f"views={self.page_views} bounce={self.bounce}>"
        )
