"""Small text helpers shared by the extraction stages."""
from __future__ import annotations

import re
from typing import Iterable, List, Mapping, Optional, Set
from urllib.parse import urlparse

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_SEPARATOR_RE = re.compile(r"[-_]+")
_MAX_SLUG_LENGTH = 120


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def slugify(value: Optional[str]) -> str:
    if not value:
        return ""
    slug = _SLUG_RE.sub("-", value.lower()).strip("-")
    return slug[:_MAX_SLUG_LENGTH]


def slugify_for_filename(value: Optional[str]) -> str:
    return slugify(value) or "image"


def slug_from_url(url: str) -> str:
    """Return the last non-empty path segment of ``url``."""

    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    return segments[-1] if segments else ""


def humanize_slug(slug: str, known: Optional[Mapping[str, str]] = None) -> str:
    if known and slug in known:
        return known[slug]
    words = [word for word in _SEPARATOR_RE.split(slug) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def build_alt_text(raw_alt: Optional[str], fallback: str) -> str:
    trimmed = (raw_alt or "").strip()
    if trimmed:
        return trimmed
    cleaned = clean_text(_SEPARATOR_RE.sub(" ", fallback))
    return cleaned or "Article image"


def dedupe_casefold(items: Iterable[str], limit: Optional[int] = None) -> List[str]:
    """Drop blank and case-insensitive duplicate entries, keeping order."""

    seen: Set[str] = set()
    unique: List[str] = []
    for item in items:
        normalised = clean_text(item)
        if not normalised:
            continue
        key = normalised.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(normalised)
        if limit is not None and len(unique) >= limit:
            break
    return unique
