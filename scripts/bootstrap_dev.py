"""
Dev bootstrap script — issue a wildcard API key for local development.

Usage:
    python -m scripts.bootstrap_dev [name]

This will:
  1. Create the tables if they do not exist (dev convenience; use
     `alembic upgrade head` everywhere else)
  2. Issue an API key with the "*" permission on behalf of a dev admin
  3. Print the raw key ONCE (only its hash is stored)

The raw key is shown exactly once — copy it immediately.
"""

import asyncio
import sys

# Ensure the project root is on the path
sys.path.insert(0, ".")

from blogpress.auth.permissions import WILDCARD
from blogpress.core.database import Base, async_session_factory, engine
from blogpress.schemas.api_keys import ApiKeyCreate
from blogpress.services.api_keys import Caller, create_api_key

import blogpress.models.visitor  # noqa: F401,E402
import blogpress.models.visitor_session  # noqa: F401,E402
import blogpress.models.page_view  # noqa: F401,E402

DEV_ADMIN = Caller(user_id="dev-admin", role="admin")


async def main(name: str) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        api_key, raw_key = await create_api_key(
            session,
            DEV_ADMIN,
            ApiKeyCreate(name=name, permissions=[WILDCARD]),
        )

    # ── Print results ───────────────────────────────────────
    print()
    print("=" * 60)
    print("  Dev Bootstrap Complete")
    print("=" * 60)
    print()
    print(f"  Key name:   {api_key.name}")
    print(f"  Key ID:     {api_key.id}")
    print(f"  Daily cap:  {api_key.daily_cap} requests")
    print()
    print(f"  API Key:    {raw_key}")
    print()
    print("  ⚠  Copy this key now — it will NEVER be shown again.")
    print("=" * 60)
    print()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "Dev Key"))
