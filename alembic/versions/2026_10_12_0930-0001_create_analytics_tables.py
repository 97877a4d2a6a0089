"""create analytics tables

Revision ID: 0001
Revises:
Create Date: 2026-10-12

Visitor tracking log:
  - visitors          (one row per client IP, atomic visit_count)
  - visitor_sessions  (one row per client session token)
  - page_views        (append-only)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. visitors ─────────────────────────────────────────
    op.create_table(
        "visitors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("device_type", sa.String(50), nullable=True),
        sa.Column("browser", sa.String(100), nullable=True),
        sa.Column("os", sa.String(100), nullable=True),
        sa.Column("first_visit", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_visit", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("visit_count", sa.Integer(), server_default="1", nullable=False),
        sa.Column("is_unique", sa.Boolean(), server_default="1", nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ip_address"),
    )

    # ── 2. visitor_sessions ─────────────────────────────────
    op.create_table(
        "visitor_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("visitor_id", sa.Uuid(), nullable=True),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("start_time", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("end_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("page_views", sa.Integer(), server_default="1", nullable=False),
        sa.Column("bounce", sa.Boolean(), server_default="1", nullable=False),
        sa.Column("source", sa.String(255), nullable=True),
        sa.Column("campaign", sa.String(255), nullable=True),
        sa.Column("landing_page", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["visitor_id"], ["visitors.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("session_id"),
    )
    op.create_index("ix_visitor_sessions_visitor_id", "visitor_sessions", ["visitor_id"])
    op.create_index("ix_visitor_sessions_start_time", "visitor_sessions", ["start_time"])

    # ── 3. page_views ───────────────────────────────────────
    op.create_table(
        "page_views",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=True),
        sa.Column("visitor_id", sa.Uuid(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("time_on_page", sa.Integer(), nullable=True),
        sa.Column("article_id", sa.String(36), nullable=True),
        sa.Column("category_id", sa.String(36), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["visitor_sessions.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["visitor_id"], ["visitors.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_page_views_session_id", "page_views", ["session_id"])
    op.create_index("ix_page_views_visitor_id", "page_views", ["visitor_id"])
    op.create_index("ix_page_views_timestamp", "page_views", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_page_views_timestamp", table_name="page_views")
    op.drop_index("ix_page_views_visitor_id", table_name="page_views")
    op.drop_index("ix_page_views_session_id", table_name="page_views")
    op.drop_table("page_views")
    op.drop_index("ix_visitor_sessions_start_time", table_name="visitor_sessions")
    op.drop_index("ix_visitor_sessions_visitor_id", table_name="visitor_sessions")
    op.drop_table("visitor_sessions")
    op.drop_table("visitors")
