"""Default JSON-LD payloads stored alongside imported content."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .models import ArticleData, ReviewData

FALLBACK_AUTHOR_NAME = "Editorial Team"
NEWS_CATEGORY = "news"


def _isoformat(value: Optional[datetime]) -> str:
    moment = value or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def canonical_url(site_base_url: str, slug: str) -> str:
    return f"{site_base_url.rstrip('/')}/{slug}/"


def absolute_image_url(site_base_url: str, image: Optional[str]) -> Optional[str]:
    if not image:
        return None
    if image.startswith("http"):
        return image
    return f"{site_base_url.rstrip('/')}{image}"


def build_article_schema(article: ArticleData, site_base_url: str, site_name: str) -> str:
    url = canonical_url(site_base_url, article.slug)
    published = _isoformat(article.published_at)
    payload: Dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "NewsArticle" if article.category == NEWS_CATEGORY else "Article",
        "headline": article.title,
        "description": article.seo_description or article.excerpt or article.title,
        "author": {"@type": "Person", "name": article.author or FALLBACK_AUTHOR_NAME},
        "publisher": {
            "@type": "Organization",
            "name": site_name,
            "logo": {
                "@type": "ImageObject",
                "url": f"{site_base_url.rstrip('/')}/og-default.jpg",
            },
        },
        "datePublished": published,
        "dateModified": published,
        "url": url,
        "mainEntityOfPage": url,
    }
    image = absolute_image_url(site_base_url, article.featured_image)
    if image:
        payload["image"] = image
    return json.dumps(payload, ensure_ascii=False)


def build_review_schema(review: ReviewData, site_base_url: str) -> str:
    url = canonical_url(site_base_url, review.slug)
    summary = review.excerpt or review.title
    payload: Dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "Review",
        "name": review.title,
        "description": summary,
        "datePublished": _isoformat(review.published_at),
        "itemReviewed": {"@type": "Product", "name": review.title},
        "reviewBody": summary,
        "url": url,
        "mainEntityOfPage": url,
    }
    if review.author:
        payload["author"] = {"@type": "Person", "name": review.author}
    if review.rating is not None:
        payload["reviewRating"] = {
            "@type": "Rating",
            "ratingValue": review.rating,
            "bestRating": 5,
        }
    return json.dumps(payload, ensure_ascii=False)
