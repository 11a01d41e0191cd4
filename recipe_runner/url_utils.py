"""Shared URL and filename helpers."""

from __future__ import annotations

import re


def join_url(base_url: str, target: str) -> str:
    """Resolve a navigate target against the base URL.

    Absolute http(s) URLs pass through; anything else is treated as a path
    under the base URL, keeping any path prefix the base already has.
    """
    target = (target or "").strip()
    if target.startswith(("http://", "https://")):
        return target
    if not target:
        return base_url
    return f"{base_url.rstrip('/')}/{target.lstrip('/')}"


def safe_filename(name: str, max_length: int = 80) -> str:
    """Turn a scenario name into a filesystem- and URL-safe file stem."""
    cleaned = re.sub(r"[^A-Za-z0-9.-]+", "_", name).strip("_")
    return cleaned[:max_length] or "artifact"
