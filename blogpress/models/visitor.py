"""
Visitor model — one row per distinct client, keyed by IP address.

Design notes:
  • ip_address is UNIQUE so the ingestion path can use
    INSERT … ON CONFLICT DO UPDATE to bump visit_count atomically.
  • is_unique means "this IP had no prior visits" — it flips to false
    on the second recorded page view and stays false.
  • Rows are never deleted by the application.
"""

import uuid
import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from blogpress.core.database import Base


class Visitor(Base):
    """A distinct client seen by the public site."""

    __tablename__ = "visitors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Network / device fingerprint ────────────────────────
    ip_address: Mapped[str] = mapped_column(
        String(45),  # IPv4 or IPv6
        nullable=False,
        unique=True,
    )
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(100), nullable=True)
    os: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ── Visit history ───────────────────────────────────────
    first_visit: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_visit: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    visit_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )
    is_unique: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
    )

    def __repr__(self) -> str:
        return (
            f"<Visitor id={self.id!s:.8} ip={self.ip_address!r} "
            f"visits={self.visit_count}>"
        )
