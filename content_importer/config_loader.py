"""Utilities for loading the category catalogue to import."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Optional

from .models import CONTENT_TYPES, CategoryConfig


DEFAULT_CATEGORIES: List[dict] = [
    {
        "name": "Oral Health Tips",
        "slug": "oral-health-tips",
        "path": "/oral-health-tips/",
        "type": "article",
    },
    {"name": "News", "slug": "news", "path": "/news/", "type": "article"},
    {"name": "Reviews", "slug": "reviews", "path": "/reviews/", "type": "review"},
    {"name": "Salary", "slug": "salary", "path": "/salary/", "type": "article"},
    {
        "name": "Accessories",
        "slug": "accessories",
        "path": "/category/accessories/",
        "type": "article",
    },
    {
        "name": "Baby and Child Health",
        "slug": "baby-and-child-health",
        "path": "/category/baby-and-child-health/",
        "type": "article",
    },
    {"name": "Charts", "slug": "charts", "path": "/category/charts/", "type": "article"},
    {"name": "Info", "slug": "info", "path": "/category/info/", "type": "article"},
]


def _normalise_path(path: str) -> str:
    cleaned = "/" + path.strip().strip("/")
    return cleaned if cleaned == "/" else f"{cleaned}/"


def load_category_payload(path: Path) -> List[dict]:
    """Return the raw category payload stored in ``path``."""

    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("Category configuration must be a list")

    return payload


def parse_categories(raw_categories: Iterable[dict]) -> List[CategoryConfig]:
    """Convert raw category dictionaries into :class:`CategoryConfig` objects."""

    categories: List[CategoryConfig] = []
    for raw in raw_categories:
        try:
            slug = raw["slug"]
            path = raw["path"]
        except KeyError as exc:
            raise ValueError(f"Category entry is missing {exc.args[0]!r}") from exc

        content_type = raw.get("type", "article")
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unsupported content type {content_type!r} for {slug}")

        categories.append(
            CategoryConfig(
                name=raw.get("name") or slug,
                slug=slug,
                path=_normalise_path(path),
                type=content_type,
                link_selector=raw.get("link_selector"),
            )
        )

    return categories


def load_categories(path: Optional[Path] = None) -> List[CategoryConfig]:
    """Load the categories defined in ``path`` or the built-in catalogue."""

    if path is None:
        return parse_categories(DEFAULT_CATEGORIES)
    return parse_categories(load_category_payload(path))
