"""
Admin API key router — session-authenticated key management.

Endpoints:
  GET    /api/admin/api-keys                  — list (masked keys)
  POST   /api/admin/api-keys                  — create (plaintext key shown once)
  PATCH  /api/admin/api-keys/{id}             — partial update
  DELETE /api/admin/api-keys/{id}             — deactivate (?permanent=true removes)
  POST   /api/admin/api-keys/{id}/regenerate  — new token, usage reset
  GET    /api/admin/api-keys/{id}/stats       — usage statistics
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from blogpress.auth.dependencies import get_current_user
from blogpress.core.database import get_db_session
from blogpress.schemas.api_keys import (
    ApiKeyCreate,
    ApiKeyCreatedOut,
    ApiKeyOut,
    ApiKeyRegeneratedOut,
    ApiKeyStatsOut,
    ApiKeyUpdate,
)
from blogpress.schemas.common import SuccessOut
from blogpress.services.api_keys import (
    Caller,
    create_api_key,
    delete_api_key,
    get_api_key_stats,
    list_api_keys,
    regenerate_api_key,
    update_api_key,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["API Keys"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUser = Annotated[Caller, Depends(get_current_user)]


@router.get(
    "",
    response_model=list[ApiKeyOut],
    summary="List API keys",
    description="Admins see every key; other users only the keys they created.",
)
async def list_keys(
    session: DbSession,
    caller: CurrentUser,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> list[ApiKeyOut]:
    keys = await list_api_keys(session, caller, include_inactive=include_inactive)
    return [ApiKeyOut.model_validate(k) for k in keys]


@router.post(
    "",
    response_model=ApiKeyCreatedOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create API key",
    description="Admin only. The response is the only place the plaintext key ever appears.",
)
async def create_key(
    payload: ApiKeyCreate,
    session: DbSession,
    caller: CurrentUser,
) -> ApiKeyCreatedOut:
    api_key, raw_key = await create_api_key(session, caller, payload)
    masked = ApiKeyOut.model_validate(api_key)
    return ApiKeyCreatedOut(**masked.model_dump(exclude={"key"}), key=raw_key)


@router.patch(
    "/{key_id}",
    response_model=ApiKeyOut,
    summary="Update API key",
    description="Partial update: only the supplied fields change.",
)
async def update_key(
    key_id: uuid.UUID,
    payload: ApiKeyUpdate,
    session: DbSession,
    caller: CurrentUser,
) -> ApiKeyOut:
    api_key = await update_api_key(session, caller, key_id, payload)
    return ApiKeyOut.model_validate(api_key)


@router.delete(
    "/{key_id}",
    response_model=SuccessOut,
    summary="Deactivate or delete API key",
)
async def delete_key(
    key_id: uuid.UUID,
    session: DbSession,
    caller: CurrentUser,
    permanent: bool = Query(default=False),
) -> SuccessOut:
    # A key that does not exist or is not yours is a silent no-op
    await delete_api_key(session, caller, key_id, permanent=permanent)
    if permanent:
        return SuccessOut(message="API key permanently deleted")
    return SuccessOut()


@router.post(
    "/{key_id}/regenerate",
    response_model=ApiKeyRegeneratedOut,
    summary="Regenerate API key",
    description="Issues a new token and resets the usage counter. Permissions are kept.",
)
async def regenerate_key(
    key_id: uuid.UUID,
    session: DbSession,
    caller: CurrentUser,
) -> ApiKeyRegeneratedOut:
    new_key = await regenerate_api_key(session, caller, key_id)
    return ApiKeyRegeneratedOut(new_key=new_key)


@router.get(
    "/{key_id}/stats",
    response_model=ApiKeyStatsOut,
    summary="API key usage statistics",
)
async def key_stats(
    key_id: uuid.UUID,
    session: DbSession,
    caller: CurrentUser,
) -> ApiKeyStatsOut:
    api_key = await get_api_key_stats(session, caller, key_id)
    return ApiKeyStatsOut.model_validate(api_key)
