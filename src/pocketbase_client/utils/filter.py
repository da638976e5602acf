"""
Filter expression builder.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any


def _quote(value: str) -> str:
    return "'" + value.replace("'", "\\'") + "'"


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return _quote(value.strftime("%Y-%m-%d %H:%M:%S.") + f"{value.microsecond // 1000:03d}Z")
    if isinstance(value, date):
        return _quote(value.strftime("%Y-%m-%d") + " 00:00:00.000Z")
    if isinstance(value, str):
        return _quote(value)
    return _quote(json.dumps(value, separators=(",", ":"), default=str))


def build_filter(expr: str, params: Mapping[str, Any] | None = None) -> str:
    """
    Populate ``{:name}`` placeholders of a filter expression.

    Strings are single-quoted with embedded quotes escaped, datetimes are
    rendered in UTC, and any other non-scalar value is JSON encoded.

    Example:
        >>> build_filter("title ~ {:title} && active = {:active}", {"title": "news", "active": True})
        "title ~ 'news' && active = true"
    """
    if not params:
        return expr

    for key, value in params.items():
        expr = expr.replace("{:" + key + "}", _format_value(value))
    return expr
