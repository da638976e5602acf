"""
URL and query string helpers shared by the sync and async dispatchers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx


def normalize_query(query: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Convert query parameters to their wire representation.

    ``None`` values are dropped and booleans are rendered as ``true``/``false``.
    Keys are unique, so a later value for a key replaces the earlier one.
    """
    normalized: dict[str, str] = {}
    if not query:
        return normalized

    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, bool):
            normalized[key] = "true" if value else "false"
        else:
            normalized[key] = str(value)
    return normalized


def join_url(base_url: str, path: str, query: Mapping[str, Any] | None = None) -> str:
    """Join ``base_url`` and ``path`` and append the normalized query string."""
    url = base_url if base_url.endswith("/") else base_url + "/"

    if path:
        url += path[1:] if path.startswith("/") else path

    params = normalize_query(query)
    if params:
        url += ("&" if "?" in url else "?") + str(httpx.QueryParams(params))

    return url


def encode_segment(value: str) -> str:
    """Percent-encode a single path segment."""
    return quote(value, safe="")


def set_default(target: dict[str, Any], key: str, value: Any) -> None:
    """Add ``key`` unless it is already present or ``value`` is blank."""
    if value is None:
        return
    if isinstance(value, str) and not value.strip():
        return
    target.setdefault(key, value)
