"""
PageView model — one row per rendered page. Append-only.

article_id / category_id reference the content tables owned by the CMS;
they are kept as plain identifiers because those tables live outside
this service.
"""

import uuid
import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from blogpress.core.database import Base


class PageView(Base):
    """A single page load."""

    __tablename__ = "page_views"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("visitor_sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    visitor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("visitors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    time_on_page: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds

    article_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    __table_args__ = (
        Index("ix_page_views_timestamp", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<PageView id={self.id!s:.8} url={self.url!r}>"
