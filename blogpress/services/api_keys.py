"""
API key access controller — issue, list, revoke, regenerate, update,
authenticate and meter keys for third-party AI integrations.

Ownership rule (delete / regenerate / update / stats):
  admin and superadmin may act on any key; everyone else only on keys
  they created. A key that exists but is not yours is indistinguishable
  from a missing key — nothing leaks about other users' keys.

authenticate() checks, in order, short-circuiting on the first failure:
  1. token resolves to an active key            → Unauthorized
  2. key not expired                            → Unauthorized
  3. client IP in allowed_ips (when set)        → Forbidden
  4. usage_count < rate_limit × 24              → TooManyRequests
  5. usage_count + 1, last_used = now           (same statement as 4)

Steps 4 and 5 are one conditional UPDATE, so concurrent requests can
neither lose increments nor overshoot the cap.

KNOWN LIMITATION: usage_count is a lifetime counter. Nothing resets it
except regeneration, so a busy key eventually stays rate limited.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blogpress.auth.hashing import generate_api_key, hash_api_key, key_prefix
from blogpress.core.clock import as_utc, utcnow
from blogpress.core.database import storage_errors
from blogpress.core.errors import (
    Forbidden,
    NotFound,
    StorageError,
    TooManyRequests,
    Unauthorized,
    ValidationError,
)
from blogpress.models.api_key import ApiKey
from blogpress.schemas.api_keys import ApiKeyCreate, ApiKeyUpdate

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"admin", "superadmin"})
MAX_CREATE_ATTEMPTS = 3

# ApiKeyUpdate field -> ORM attribute
_UPDATABLE_FIELDS = {
    "name": "name",
    "permissions": "permissions",
    "scopes": "scopes",
    "rate_limit": "rate_limit",
    "allowed_ips": "allowed_ips",
    "expires_at": "expires_at",
    "is_active": "is_active",
    "metadata": "metadata_",
}

# Nullable in the body only to mean "not supplied"; the columns are NOT NULL.
_NON_NULLABLE_FIELDS = {"rate_limit": "rateLimit", "is_active": "isActive"}


@dataclass(frozen=True, slots=True)
class Caller:
    """The session-authenticated admin-area user making a request."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def _owned_by(caller: Caller, key_id: uuid.UUID) -> list[Any]:
    """WHERE clauses selecting `key_id` if the caller may act on it."""
    clauses: list[Any] = [ApiKey.id == key_id]
    if not caller.is_admin:
        clauses.append(ApiKey.created_by == caller.user_id)
    return clauses


# ── Management ──────────────────────────────────────────────
async def create_api_key(
    session: AsyncSession,
    caller: Caller,
    data: ApiKeyCreate,
) -> tuple[ApiKey, str]:
    """
    Issue a new key. Returns (record, plaintext_token).

    The plaintext token is returned here and nowhere else. A collision on
    the token hash is retried with a fresh token.
    """
    if not caller.is_admin:
        raise Forbidden("Admin access required.")
    if not data.name or not data.permissions:
        raise ValidationError("Name and permissions are required.")

    for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
        raw_key, key_hash = generate_api_key()
        api_key = ApiKey(
            name=data.name,
            key_hash=key_hash,
            key_prefix=key_prefix(raw_key),
            permissions=frozenset(data.permissions),
            scopes=frozenset(data.scopes) if data.scopes is not None else None,
            rate_limit=data.rate_limit,
            allowed_ips=data.allowed_ips,
            expires_at=as_utc(data.expires_at) if data.expires_at is not None else None,
            created_by=caller.user_id,
            created_at=utcnow(),
            usage_count=0,
            is_active=True,
            metadata_=data.metadata,
        )
        try:
            session.add(api_key)
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.warning("API key hash collision on attempt %d, retrying", attempt)
            continue

        logger.info("API key %s (%s) created by %s", api_key.id, api_key.masked_key, caller.user_id)
        return api_key, raw_key

    raise StorageError("Could not generate a unique API key.")


async def list_api_keys(
    session: AsyncSession,
    caller: Caller,
    include_inactive: bool = False,
) -> list[ApiKey]:
    """All keys for admins, own keys for everyone else; active only by default."""
    stmt = select(ApiKey).order_by(ApiKey.created_at.desc())
    if not caller.is_admin:
        stmt = stmt.where(ApiKey.created_by == caller.user_id)
    if not include_inactive:
        stmt = stmt.where(ApiKey.is_active.is_(True))

    with storage_errors("list API keys"):
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def delete_api_key(
    session: AsyncSession,
    caller: Caller,
    key_id: uuid.UUID,
    permanent: bool = False,
) -> bool:
    """
    Deactivate (default) or permanently remove a key.

    Returns whether a row matched. A non-match is not an error.
    """
    if permanent:
        stmt = delete(ApiKey).where(*_owned_by(caller, key_id))
    else:
        stmt = update(ApiKey).where(*_owned_by(caller, key_id)).values(is_active=False)

    with storage_errors("delete the API key"):
        result = await session.execute(stmt.execution_options(synchronize_session=False))
        await session.commit()

    matched = result.rowcount > 0
    logger.info(
        "API key %s %s by %s (matched=%s)",
        key_id, "deleted" if permanent else "deactivated", caller.user_id, matched,
    )
    return matched


async def regenerate_api_key(
    session: AsyncSession,
    caller: Caller,
    key_id: uuid.UUID,
) -> str:
    """
    Replace the key's token and reset usage_count to 0.

    Permissions, limits, expiry and the active flag are untouched.
    Returns the new plaintext token (shown once).
    """
    raw_key, key_hash = generate_api_key()
    stmt = (
        update(ApiKey)
        .where(*_owned_by(caller, key_id))
        .values(key_hash=key_hash, key_prefix=key_prefix(raw_key), usage_count=0)
        .execution_options(synchronize_session=False)
    )

    with storage_errors("regenerate the API key"):
        result = await session.execute(stmt)
        if result.rowcount == 0:
            await session.rollback()
            raise NotFound("API key not found.")
        await session.commit()

    logger.info("API key %s regenerated by %s", key_id, caller.user_id)
    return raw_key


async def update_api_key(
    session: AsyncSession,
    caller: Caller,
    key_id: uuid.UUID,
    changes: ApiKeyUpdate,
) -> ApiKey:
    """
    Apply a partial update. Fields absent from `changes` are left as is;
    setting is_active=True reactivates a soft-deleted key.
    """
    supplied = changes.model_dump(exclude_unset=True)
    if "name" in supplied and not supplied["name"]:
        raise ValidationError("Name cannot be empty.")
    if "permissions" in supplied and not supplied["permissions"]:
        raise ValidationError("Permissions cannot be empty.")
    for field, label in _NON_NULLABLE_FIELDS.items():
        if field in supplied and supplied[field] is None:
            raise ValidationError(f"{label} cannot be null.")

    with storage_errors("update the API key"):
        api_key = await _get_owned(session, caller, key_id)
        for field, value in supplied.items():
            if field in ("permissions", "scopes") and value is not None:
                value = frozenset(value)
            elif field == "expires_at" and value is not None:
                value = as_utc(value)
            setattr(api_key, _UPDATABLE_FIELDS[field], value)
        await session.commit()
        await session.refresh(api_key)

    logger.info("API key %s updated by %s: %s", key_id, caller.user_id, sorted(supplied))
    return api_key


async def get_api_key_stats(
    session: AsyncSession,
    caller: Caller,
    key_id: uuid.UUID,
) -> ApiKey:
    with storage_errors("load API key statistics"):
        return await _get_owned(session, caller, key_id)


async def _get_owned(session: AsyncSession, caller: Caller, key_id: uuid.UUID) -> ApiKey:
    result = await session.execute(
        select(ApiKey)
        .where(*_owned_by(caller, key_id))
        .execution_options(populate_existing=True)
    )
    api_key = result.scalar_one_or_none()
    if api_key is None:
        raise NotFound("API key not found.")
    return api_key


# ── Request authentication ──────────────────────────────────
async def authenticate(
    session: AsyncSession,
    raw_token: str | None,
    client_ip: str,
    now: datetime.datetime | None = None,
) -> ApiKey:
    """
    Resolve a presented X-API-Key to its record and meter the request.

    Raw keys are never logged — only the masked prefix.
    """
    now = now or utcnow()

    if not raw_token:
        raise Unauthorized("API key required.")

    with storage_errors("validate the API key"):
        result = await session.execute(
            select(ApiKey).where(
                ApiKey.key_hash == hash_api_key(raw_token),
                ApiKey.is_active.is_(True),
            )
            .execution_options(populate_existing=True)
        )
        api_key = result.scalar_one_or_none()

        # ── 1. Exists and active ────────────────────────────
        if api_key is None:
            raise Unauthorized("Invalid or inactive API key.")

        # ── 2. Expiry ───────────────────────────────────────
        if api_key.expires_at is not None and as_utc(api_key.expires_at) < now:
            raise Unauthorized("API key has expired.")

        # ── 3. IP allowlist ─────────────────────────────────
        if api_key.allowed_ips and client_ip not in api_key.allowed_ips:
            logger.info("API key %s rejected for IP %s", api_key.masked_key, client_ip)
            raise Forbidden("IP address not authorized.")

        # ── 4 + 5. Cap check and atomic increment ───────────
        # Rollback expires the instance; read the mask while it is loaded.
        masked = api_key.masked_key
        stmt = (
            update(ApiKey)
            .where(
                ApiKey.id == api_key.id,
                ApiKey.usage_count < ApiKey.rate_limit * 24,
            )
            .values(usage_count=ApiKey.usage_count + 1, last_used=now)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            await session.rollback()
            logger.info("API key %s hit its usage cap", masked)
            raise TooManyRequests("Rate limit exceeded.")
        await session.commit()
        await session.refresh(api_key)

    return api_key
