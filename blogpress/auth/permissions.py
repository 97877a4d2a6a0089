"""
API key permission sets.

A permission is an opaque string ("content:read", "seo:optimize", …).
The only special value is the universal wildcard "*" — there is no
prefix or hierarchical matching, so "content:*" is just another token.

Legacy rows store permissions either as a JSON array or as a
comma-separated string. parse_permissions() folds every representation
into a frozenset at the storage boundary (see models.types.PermissionSet),
so business logic never branches on the stored shape.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from blogpress.models.api_key import ApiKey

WILDCARD = "*"

# Permissions required by the /api/ai/* endpoints
CONTENT_GENERATE = "content:generate"
CONTENT_ANALYZE = "content:analyze"
INSIGHTS_READ = "insights:read"
SEO_OPTIMIZE = "seo:optimize"


def parse_permissions(raw: str | Iterable[str] | None) -> frozenset[str]:
    """
    Normalize a stored or submitted permission value to a set of strings.

    Accepts None, any iterable of strings, a JSON array string, or a
    comma-separated string. Blank entries are dropped.
    """
    if raw is None:
        return frozenset()

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return frozenset()
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = text.split(",")
        if isinstance(decoded, str):
            decoded = [decoded]
        raw = decoded

    return frozenset(str(p).strip() for p in raw if str(p).strip())


def authorize(api_key: ApiKey, permission: str) -> bool:
    """True iff the key grants `permission` explicitly or via the wildcard."""
    granted = parse_permissions(api_key.permissions)
    return permission in granted or WILDCARD in granted
