"""
Dot-path access into decoded JSON payloads.
"""

from __future__ import annotations

from typing import Any


def extract(data: Any, path: str, default: Any = None) -> Any:
    """
    Return the value at a dot-notation ``path`` inside ``data`` or ``default``.

    Mapping keys and list indices can be mixed, e.g. ``"expand.tags.0.name"``.
    A missing key, an out of range index or an explicit ``null`` all yield
    ``default``; this function never raises.

    Example:
        >>> extract({"expand": {"author": {"name": "Ana"}}}, "expand.author.name")
        'Ana'
    """
    value = data
    for part in path.strip().split("."):
        if isinstance(value, dict):
            if part not in value:
                return default
            value = value[part]
        elif isinstance(value, list):
            try:
                value = value[int(part)]
            except (ValueError, IndexError):
                return default
        else:
            return default

    return default if value is None else value
