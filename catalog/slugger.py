"""
Slug generation for category titles.

slugify() is the pure transform. Slugger wraps it with per-document
collision tracking so every category slug in one catalog is distinct:

    >>> slugger = Slugger()
    >>> slugger.slug("Tools")
    'tools'
    >>> slugger.slug("Tools")
    'tools-1'
"""

from __future__ import annotations

import re
from typing import Dict

WHITESPACE_RE = re.compile(r"\s+")
NON_SLUG_RE = re.compile(r"[^\w-]+", re.ASCII)
HYPHEN_RUN_RE = re.compile(r"-{2,}")

EMPTY_SLUG_FALLBACK = "category"


def slugify(text: str) -> str:
    """Convert text to a URL-safe slug.

    Lower-cases, turns whitespace runs into a hyphen, drops anything that is
    not an ASCII word character or hyphen, collapses hyphen runs and trims
    hyphens from both ends. May return an empty string.

    Args:
        text: Source text (usually a heading)

    Returns:
        Slug string

    Example:
        >>> slugify("Development Tools")
        'development-tools'
        >>> slugify("  C++ / Rust  ")
        'c-rust'
    """
    slug = WHITESPACE_RE.sub("-", (text or "").strip().lower())
    slug = NON_SLUG_RE.sub("", slug)
    slug = HYPHEN_RUN_RE.sub("-", slug)
    return slug.strip("-")


class Slugger:
    """Collision-aware slug generator, one instance per catalog."""

    def __init__(self):
        self._seen: Dict[str, int] = {}

    def slug(self, text: str) -> str:
        """Return a slug for text that has not been issued by this instance.

        Repeats get a numeric suffix (-1, -2, ...). Text with no slug
        characters falls back to "category".
        """
        base = slugify(text) or EMPTY_SLUG_FALLBACK
        candidate = base
        count = self._seen.get(base, 0)
        while candidate in self._seen:
            count += 1
            candidate = f"{base}-{count}"
        self._seen[base] = count
        self._seen.setdefault(candidate, 0)
        return candidate

    def reserve(self, slug: str) -> None:
        """Mark an existing slug as taken."""
        self._seen.setdefault(slug, 0)
