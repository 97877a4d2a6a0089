"""
FastAPI dependencies for the two authentication schemes.

Admin area (session cookie):
  The site's login flow stores `user_id` and `role` in the signed
  session (Starlette SessionMiddleware). get_current_user() turns that
  into a Caller; no session → 401.

AI integrations (X-API-Key header):
  1. Extract the key from the X-API-Key header
  2. authenticate(): hash lookup, active, expiry, IP allowlist, usage cap,
     atomic usage increment
  3. authorize(): the endpoint's required permission (or "*")
  Order in request pipeline: AUTHENTICATE → AUTHORIZE → ROUTER LOGIC.

Security:
  • Raw keys are NEVER logged
  • Hash lookup means the DB never sees the raw key
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from blogpress.auth.permissions import authorize
from blogpress.core.database import get_db_session
from blogpress.core.errors import Forbidden, Unauthorized
from blogpress.models.api_key import ApiKey
from blogpress.services.api_keys import Caller, authenticate
from blogpress.services.traffic import get_client_ip

# auto_error=False: a missing header reaches authenticate(), which
# reports it with the same typed Unauthorized as every other failure.
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def get_current_user(request: Request) -> Caller:
    """Resolve the admin-area user from the signed session cookie."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise Unauthorized("Unauthorized.")
    return Caller(user_id=str(user_id), role=str(request.session.get("role") or "user"))


async def get_api_key(
    request: Request,
    raw_token: str | None = Security(api_key_header),
    session: AsyncSession = Depends(get_db_session),
) -> ApiKey:
    """FastAPI dependency — resolves and meters the presented API key."""
    return await authenticate(session, raw_token, get_client_ip(request))


def require_permission(permission: str) -> Callable[..., Awaitable[ApiKey]]:
    """
    Build a dependency that authenticates the key and then checks
    `permission`.

    Usage in routers:
        Key = Annotated[ApiKey, Depends(require_permission(SEO_OPTIMIZE))]
    """

    async def dependency(api_key: ApiKey = Depends(get_api_key)) -> ApiKey:
        if not authorize(api_key, permission):
            raise Forbidden(f"Insufficient permissions: {permission} required.")
        return api_key

    return dependency
