"""
API key model — credential for a third-party AI integration.

Security notes:
  • Raw API keys are NEVER stored. Only a SHA-256 hash is persisted.
  • `key_prefix` stores the first 8 characters (e.g., "bkp_3f9a")
    so lists can show a masked key without exposing the secret.
  • `is_active` allows revocation without deletion (audit trail);
    a permanent delete removes the row.
  • `usage_count` is only ever changed by SQL expressions
    (usage_count + 1, or reset to 0 on regeneration).
"""

import uuid
import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from blogpress.core.database import Base
from blogpress.models.types import PermissionSet

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
_JSON = JSON().with_variant(JSONB(), "postgresql")

MASK_LENGTH = 8
MASK_SUFFIX = "..."


class ApiKey(Base):
    """Hashed API key with permissions, limits and usage counters."""

    __tablename__ = "api_keys"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Secret ──────────────────────────────────────────────
    key_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )
    key_prefix: Mapped[str] = mapped_column(
        String(MASK_LENGTH),
        nullable=False,
    )

    # ── Grants & limits ─────────────────────────────────────
    permissions: Mapped[frozenset[str]] = mapped_column(
        PermissionSet,
        nullable=False,
    )
    scopes: Mapped[frozenset[str] | None] = mapped_column(
        PermissionSet,
        nullable=True,
    )
    rate_limit: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=100,
        server_default="100",
    )
    allowed_ips: Mapped[list[str] | None] = mapped_column(_JSON, nullable=True)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Ownership & usage ───────────────────────────────────
    created_by: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_used: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    usage_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="1",
    )

    # Column named `metadata_` since `metadata` is reserved on declarative
    # classes; maps to DB column `metadata`.
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        _JSON,
        nullable=True,
    )

    @property
    def masked_key(self) -> str:
        return f"{self.key_prefix}{MASK_SUFFIX}"

    @property
    def daily_cap(self) -> int:
        """Lifetime usage ceiling — rate_limit is treated as hourly, × 24."""
        return self.rate_limit * 24

    def __repr__(self) -> str:
        return (
            f"<ApiKey id={self.id!s:.8} prefix={self.key_prefix!r} "
            f"active={self.is_active}>"
        )
