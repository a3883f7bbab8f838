"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import List
from urllib.parse import unquote, urlparse

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(value: str, fallback: str = "video") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = value.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def locator_suffix(locator: str) -> str:
    """Return the lowercase file suffix of a URL path without the dot."""
    path = PurePosixPath(unquote(urlparse(locator).path))
    return path.suffix.lstrip(".").lower()


def locator_stem(locator: str) -> str:
    path = PurePosixPath(unquote(urlparse(locator).path))
    return path.stem


def derive_output_name(title: str | None, locator: str) -> str:
    """Pick the base name for the final artifact."""
    if title and title.strip():
        return slugify(title)[:80].strip("-") or "video"
    return slugify(locator_stem(locator))[:80].strip("-") or "video"


def backoff_delays(attempts: int, base: float, cap: float) -> List[float]:
    """Delays slept between consecutive attempts (one fewer than attempts)."""
    return [min(cap, base * (2**index)) for index in range(max(attempts - 1, 0))]
