"""
Pydantic v2 schemas for API key management.

Separation:
  • ApiKeyCreate / ApiKeyUpdate — what the admin UI SENDS.
  • ApiKeyOut                   — every read; carries the MASKED key only.
  • ApiKeyCreatedOut            — create response; the only schema (with
                                  ApiKeyRegeneratedOut) that carries the
                                  plaintext key.
"""

from __future__ import annotations

import datetime
import uuid
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from blogpress.auth.permissions import parse_permissions
from blogpress.schemas.common import CamelInput, CamelModel


def _normalize(value: Any) -> list[str] | None:
    if value is None:
        return None
    return sorted(parse_permissions(value))


# Any stored or submitted shape (list, JSON text, "a,b") -> sorted unique list
PermissionList = Annotated[list[str], BeforeValidator(_normalize)]


# ── Request schemas ─────────────────────────────────────────
class ApiKeyCreate(CamelInput):
    """Payload accepted by POST /api/admin/api-keys."""

    name: str = Field(..., min_length=1, max_length=255, examples=["Zapier content sync"])
    permissions: PermissionList = Field(
        ...,
        min_length=1,
        examples=[["content:generate", "content:analyze"]],
        description='Granted permissions; "*" grants everything.',
    )
    scopes: PermissionList | None = None
    rate_limit: int = Field(default=100, ge=1, description="Requests per hour (24× is the lifetime cap).")
    allowed_ips: list[str] | None = None
    expires_at: datetime.datetime | None = None
    metadata: dict[str, Any] | None = None


class ApiKeyUpdate(CamelInput):
    """
    Payload accepted by PATCH /api/admin/api-keys/{id}.

    Partial update — only the fields present in the body are applied.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    permissions: PermissionList | None = Field(default=None, min_length=1)
    scopes: PermissionList | None = None
    rate_limit: int | None = Field(default=None, ge=1)
    allowed_ips: list[str] | None = None
    expires_at: datetime.datetime | None = None
    is_active: bool | None = None
    metadata: dict[str, Any] | None = None


# ── Response schemas ────────────────────────────────────────
class ApiKeyOut(CamelModel):
    """A stored key as shown in lists — the secret is masked."""

    id: uuid.UUID
    name: str
    key: str = Field(..., validation_alias="masked_key", description="First 8 characters + '...'.")
    permissions: PermissionList
    scopes: PermissionList | None
    rate_limit: int
    allowed_ips: list[str] | None
    expires_at: datetime.datetime | None
    created_at: datetime.datetime
    last_used: datetime.datetime | None
    usage_count: int
    is_active: bool
    metadata: dict[str, Any] | None = Field(
        default=None,
        # Maps to the ORM attribute `metadata_` (column name is `metadata`)
        validation_alias="metadata_",
    )
    created_by: str | None


class ApiKeyCreatedOut(ApiKeyOut):
    """Create response — `key` is the plaintext token, shown exactly once."""

    key: str = Field(..., description="Plaintext API key. Store it now; it is never shown again.")


class ApiKeyRegeneratedOut(CamelModel):
    success: bool = True
    new_key: str


class ApiKeyStatsOut(CamelModel):
    id: uuid.UUID
    name: str
    usage_count: int
    last_used: datetime.datetime | None
    created_at: datetime.datetime
    rate_limit: int
    is_active: bool
