from __future__ import annotations

import datetime as dt
import re
import secrets
import time

SLUG_MAX_LENGTH = 255


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def slugify(value: str) -> str:
    """Lowercase, drop non-word characters, collapse whitespace to hyphens."""
    value = (value or "").lower()
    value = re.sub(r"[^\w\s-]", "", value)
    value = re.sub(r"\s+", "-", value.strip())
    value = re.sub(r"-+", "-", value)
    return value.strip("-")


def unique_slug(name: str, fallback: str = "business") -> str:
    """Slug with a millisecond timestamp plus a short random suffix.

    Two listings created with the same name in the same millisecond still get
    different slugs, so callers never need a retry loop. The base is cut so
    the result fits the slug column.
    """
    suffix = f"-{int(time.time() * 1000)}{secrets.token_hex(2)}"
    base = slugify(name)[: SLUG_MAX_LENGTH - len(suffix)].strip("-") or fallback
    return base + suffix
