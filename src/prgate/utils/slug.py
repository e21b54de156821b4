"""Slug helpers for branch names and artifact file names."""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from typing import Pattern

_UNSAFE: Pattern[str] = re.compile(r"[^a-z0-9._-]+")
_REPEATED_SEPARATORS: Pattern[str] = re.compile(r"[-.]{2,}")

DEFAULT_BRANCH_PREFIX = "prgate"


def slugify(value: str | None, *, fallback: str = "update", max_length: int = 60) -> str:
    """Lowercase ``value`` into a git-ref-safe slug, hashing overly long input."""
    slug = _clean(value or "") or _clean(fallback) or "update"
    if len(slug) <= max_length:
        return slug
    digest = hashlib.sha256(slug.encode("utf-8")).hexdigest()[:8]
    prefix = slug[: max(max_length - len(digest) - 1, 1)].rstrip("-.")
    return f"{prefix}-{digest}"


def branch_name(
    description: str | None,
    *,
    prefix: str = DEFAULT_BRANCH_PREFIX,
    now: datetime | None = None,
) -> str:
    """Return ``<prefix>/<slug>-<yyyymmddhhmmss>`` for a pull-request branch."""
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    head = _clean(prefix) or DEFAULT_BRANCH_PREFIX
    return f"{head}/{slugify(description)}-{stamp}"


def _clean(value: str) -> str:
    slug = _UNSAFE.sub("-", value.strip().lower())
    slug = _REPEATED_SEPARATORS.sub("-", slug)
    return slug.strip("-.")


__all__ = ["DEFAULT_BRANCH_PREFIX", "branch_name", "slugify"]
