"""Test API key management, authentication and authorization."""

from __future__ import annotations

import asyncio
import datetime
import uuid

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blogpress.auth.hashing import hash_api_key, mask_api_key
from blogpress.auth.permissions import authorize, parse_permissions
from blogpress.core.errors import (
    Forbidden,
    NotFound,
    TooManyRequests,
    Unauthorized,
    ValidationError,
)
from blogpress.models.api_key import ApiKey
from blogpress.schemas.api_keys import ApiKeyCreate, ApiKeyOut, ApiKeyUpdate
from blogpress.services.api_keys import (
    Caller,
    authenticate,
    create_api_key,
    delete_api_key,
    get_api_key_stats,
    list_api_keys,
    regenerate_api_key,
    update_api_key,
)

ADMIN = Caller(user_id="admin-1", role="admin")
EDITOR = Caller(user_id="editor-1", role="editor")
CLIENT_IP = "203.0.113.7"


async def _issue(session: AsyncSession, **overrides) -> tuple[ApiKey, str]:
    fields = {"name": "Integration", "permissions": ["content:analyze"]}
    fields.update(overrides)
    return await create_api_key(session, ADMIN, ApiKeyCreate(**fields))


# ── Masking & permissions ───────────────────────────────────

def test_mask_keeps_first_eight_characters():
    assert mask_api_key("bkp_abcdef1234567890") == "bkp_abcd..."


def test_authorize_wildcard_and_exact_match():
    wildcard = ApiKey(permissions=frozenset({"*"}))
    writer = ApiKey(permissions=frozenset({"content:write"}))

    assert authorize(wildcard, "content:read") is True
    assert authorize(writer, "content:read") is False
    assert authorize(writer, "content:write") is True


def test_authorize_has_no_prefix_matching():
    key = ApiKey(permissions=frozenset({"content:*"}))
    assert authorize(key, "content:read") is False


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, frozenset()),
        ("", frozenset()),
        ("content:read, seo:optimize", frozenset({"content:read", "seo:optimize"})),
        ('["*"]', frozenset({"*"})),
        (["a", " a ", ""], frozenset({"a"})),
    ],
)
def test_parse_permissions_normalizes_every_shape(raw, expected):
    assert parse_permissions(raw) == expected


# ── Create / list ───────────────────────────────────────────

async def test_create_returns_plaintext_once_and_stores_hash(db: AsyncSession):
    api_key, raw_key = await _issue(db)

    assert raw_key.startswith("bkp_")
    assert api_key.key_hash == hash_api_key(raw_key)
    assert api_key.key_prefix == raw_key[:8]
    assert api_key.usage_count == 0
    assert api_key.is_active is True
    assert api_key.created_by == ADMIN.user_id


async def test_list_after_create_shows_only_the_mask(db: AsyncSession):
    _, raw_key = await _issue(db)

    keys = await list_api_keys(db, ADMIN)
    listed = [ApiKeyOut.model_validate(k).model_dump(by_alias=True) for k in keys]

    assert len(listed) == 1
    assert listed[0]["key"] == raw_key[:8] + "..."
    assert raw_key not in str(listed)


async def test_create_requires_admin(db: AsyncSession):
    with pytest.raises(Forbidden):
        await create_api_key(
            db, EDITOR, ApiKeyCreate(name="x", permissions=["content:analyze"])
        )


async def test_create_rejects_missing_name_or_permissions(db: AsyncSession):
    with pytest.raises(ValidationError):
        await create_api_key(db, ADMIN, ApiKeyCreate.model_construct(name="", permissions=[]))


async def test_create_stores_comma_separated_permissions_as_a_set(db: AsyncSession):
    api_key, _ = await _issue(db, permissions="seo:optimize,content:analyze")

    await db.refresh(api_key)
    assert api_key.permissions == frozenset({"seo:optimize", "content:analyze"})


async def test_non_admin_lists_only_own_keys(db: AsyncSession):
    own, _ = await _issue(db, name="mine")
    await db.execute(
        update(ApiKey).where(ApiKey.id == own.id).values(created_by=EDITOR.user_id)
    )
    await db.commit()
    await _issue(db, name="someone else's")

    editor_keys = await list_api_keys(db, EDITOR)
    admin_keys = await list_api_keys(db, ADMIN)

    assert [k.name for k in editor_keys] == ["mine"]
    assert len(admin_keys) == 2


async def test_list_hides_inactive_unless_asked(db: AsyncSession):
    api_key, _ = await _issue(db)
    await delete_api_key(db, ADMIN, api_key.id)

    assert await list_api_keys(db, ADMIN) == []
    assert len(await list_api_keys(db, ADMIN, include_inactive=True)) == 1


# ── Delete / regenerate / update / stats ────────────────────

async def test_soft_delete_then_permanent_delete(db: AsyncSession):
    api_key, _ = await _issue(db)

    assert await delete_api_key(db, ADMIN, api_key.id) is True
    await db.refresh(api_key)
    assert api_key.is_active is False

    assert await delete_api_key(db, ADMIN, api_key.id, permanent=True) is True
    db.expunge_all()
    assert await db.scalar(select(ApiKey).where(ApiKey.id == api_key.id)) is None


async def test_delete_of_foreign_or_missing_key_is_silent(db: AsyncSession):
    api_key, _ = await _issue(db)

    assert await delete_api_key(db, EDITOR, api_key.id) is False
    assert await delete_api_key(db, ADMIN, uuid.uuid4()) is False
    await db.refresh(api_key)
    assert api_key.is_active is True


async def test_regenerate_replaces_token_and_resets_usage(db: AsyncSession):
    api_key, old_raw = await _issue(db)
    await authenticate(db, old_raw, CLIENT_IP)

    new_raw = await regenerate_api_key(db, ADMIN, api_key.id)

    assert new_raw != old_raw
    with pytest.raises(Unauthorized):
        await authenticate(db, old_raw, CLIENT_IP)
    refreshed = await authenticate(db, new_raw, CLIENT_IP)
    assert refreshed.usage_count == 1
    assert refreshed.permissions == frozenset({"content:analyze"})


async def test_regenerate_foreign_key_is_not_found(db: AsyncSession):
    api_key, _ = await _issue(db)
    with pytest.raises(NotFound):
        await regenerate_api_key(db, EDITOR, api_key.id)


async def test_update_applies_only_supplied_fields(db: AsyncSession):
    api_key, _ = await _issue(db, rate_limit=50)

    updated = await update_api_key(
        db, ADMIN, api_key.id, ApiKeyUpdate(name="Renamed", permissions=["*"])
    )

    assert updated.name == "Renamed"
    assert updated.permissions == frozenset({"*"})
    assert updated.rate_limit == 50


async def test_update_can_reactivate(db: AsyncSession):
    api_key, raw_key = await _issue(db)
    await delete_api_key(db, ADMIN, api_key.id)

    await update_api_key(db, ADMIN, api_key.id, ApiKeyUpdate(is_active=True))

    assert (await authenticate(db, raw_key, CLIENT_IP)).id == api_key.id


async def test_update_rejects_empty_name(db: AsyncSession):
    api_key, _ = await _issue(db)
    with pytest.raises(ValidationError):
        await update_api_key(db, ADMIN, api_key.id, ApiKeyUpdate.model_construct(name=""))


@pytest.mark.parametrize("changes", [{"rate_limit": None}, {"is_active": None}])
async def test_update_rejects_null_for_required_columns(db: AsyncSession, changes: dict):
    api_key, _ = await _issue(db, rate_limit=50)

    with pytest.raises(ValidationError):
        await update_api_key(db, ADMIN, api_key.id, ApiKeyUpdate(**changes))

    await db.refresh(api_key)
    assert (api_key.rate_limit, api_key.is_active) == (50, True)


async def test_stats_of_missing_key_is_not_found(db: AsyncSession):
    with pytest.raises(NotFound):
        await get_api_key_stats(db, ADMIN, uuid.uuid4())


# ── Authenticate ────────────────────────────────────────────

async def test_authenticate_counts_usage(db: AsyncSession):
    api_key, raw_key = await _issue(db)

    await authenticate(db, raw_key, CLIENT_IP)
    result = await authenticate(db, raw_key, CLIENT_IP)

    assert result.id == api_key.id
    assert result.usage_count == 2
    assert result.last_used is not None


async def test_authenticate_requires_a_token(db: AsyncSession):
    with pytest.raises(Unauthorized):
        await authenticate(db, None, CLIENT_IP)
    with pytest.raises(Unauthorized):
        await authenticate(db, "bkp_notarealkey", CLIENT_IP)


async def test_inactive_key_never_authenticates(db: AsyncSession):
    api_key, raw_key = await _issue(db)
    await delete_api_key(db, ADMIN, api_key.id)

    with pytest.raises(Unauthorized):
        await authenticate(db, raw_key, CLIENT_IP)


async def test_expired_key_is_unauthorized(db: AsyncSession):
    past = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(minutes=1)
    _, raw_key = await _issue(db, expires_at=past)

    with pytest.raises(Unauthorized):
        await authenticate(db, raw_key, CLIENT_IP)


async def test_ip_allowlist_is_forbidden_and_does_not_count(db: AsyncSession):
    api_key, raw_key = await _issue(db, allowed_ips=["198.51.100.1"])

    with pytest.raises(Forbidden):
        await authenticate(db, raw_key, CLIENT_IP)

    ok = await authenticate(db, raw_key, "198.51.100.1")
    assert ok.usage_count == 1


async def test_expiry_is_checked_before_ip(db: AsyncSession):
    past = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(days=1)
    _, raw_key = await _issue(db, expires_at=past, allowed_ips=["198.51.100.1"])

    with pytest.raises(Unauthorized):
        await authenticate(db, raw_key, CLIENT_IP)


async def test_usage_cap_is_rate_limit_times_24(db: AsyncSession):
    api_key, raw_key = await _issue(db, rate_limit=10)

    for _ in range(240):
        await authenticate(db, raw_key, CLIENT_IP)

    with pytest.raises(TooManyRequests):
        await authenticate(db, raw_key, CLIENT_IP)

    await db.refresh(api_key)
    assert api_key.usage_count == 240


async def test_cap_rejection_logs_the_masked_key(db: AsyncSession, caplog: pytest.LogCaptureFixture):
    api_key, raw_key = await _issue(db, rate_limit=1)
    await db.execute(
        update(ApiKey).where(ApiKey.id == api_key.id).values(usage_count=24)
    )
    await db.commit()

    with caplog.at_level("INFO", logger="blogpress.services.api_keys"):
        with pytest.raises(TooManyRequests):
            await authenticate(db, raw_key, CLIENT_IP)

    assert f"{raw_key[:8]}... hit its usage cap" in caplog.text
    assert raw_key not in caplog.text


async def test_concurrent_authentications_never_overshoot_the_cap(
    db: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
):
    api_key, raw_key = await _issue(db, rate_limit=1)

    async def attempt() -> bool:
        async with session_factory() as session:
            try:
                await authenticate(session, raw_key, CLIENT_IP)
            except TooManyRequests:
                return False
            return True

    results = await asyncio.gather(*(attempt() for _ in range(30)))

    assert results.count(True) == 24
    await db.refresh(api_key)
    assert api_key.usage_count == 24
