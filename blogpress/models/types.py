"""
Portable column types.

PermissionSet stores a set of permission strings as a sorted JSON array
in a TEXT column. Reads go through parse_permissions(), which also
accepts the legacy comma-separated form, so every ApiKey loaded from the
database exposes a frozenset regardless of how the row was written.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from blogpress.auth.permissions import parse_permissions


class PermissionSet(TypeDecorator):
    """frozenset[str] <-> JSON array text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Iterable[str] | str | None, dialect) -> str | None:  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return json.dumps(sorted(parse_permissions(value)))

    def process_result_value(self, value: str | None, dialect) -> frozenset[str] | None:  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return parse_permissions(value)
