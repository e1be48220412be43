"""Normalization of article body markup before it is persisted."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from .dom import PARSER, inner_html
from .faqs import extract_faqs
from .images import ImageStore
from .models import ARTICLE, REVIEW, FaqEntry
from .reviews import enhance_review_content
from .sanitize import sanitize_content
from .text import build_alt_text

logger = logging.getLogger(__name__)

ROOT_ID = "article-import-root"
LAZY_SOURCE_ATTRIBUTES = (
    "data-src",
    "data-lazy-src",
    "data-original",
    "data-medium-file",
    "data-large-file",
)
REMOVED_IMAGE_ATTRIBUTES = ("srcset", "data-src", "data-lazy-src", "data-original")


@dataclass
class ProcessedContent:
    html: str
    faqs: List[FaqEntry] = field(default_factory=list)
    faq_heading: Optional[str] = None


def _first_srcset_candidate(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    for entry in str(value).split(","):
        parts = entry.strip().split()
        if parts:
            return parts[0]
    return None


def actual_image_source(image: Tag) -> Optional[str]:
    """Return the real source of a possibly lazy-loaded ``<img>``."""

    for attribute in LAZY_SOURCE_ATTRIBUTES:
        value = image.get(attribute)
        if value and str(value).strip():
            return str(value).strip()
    candidate = _first_srcset_candidate(image.get("srcset"))
    if candidate:
        return candidate
    src = image.get("src")
    return str(src).strip() if src and str(src).strip() else None


class ContentProcessor:
    """Clean imported markup, pull FAQs out and localize images."""

    def __init__(self, image_store: ImageStore) -> None:
        self._images = image_store

    def process(
        self,
        html: str,
        slug: str,
        title: str,
        content_type: str = ARTICLE,
        json_ld_payloads: Iterable[str] = (),
    ) -> ProcessedContent:
        if not html:
            return ProcessedContent(html=html or "")

        soup = BeautifulSoup(f'<div id="{ROOT_ID}">{html}</div>', PARSER)
        root = soup.find(id=ROOT_ID)

        sanitize_content(root)
        extraction = extract_faqs(root, json_ld_payloads)
        self._rewrite_images(root, slug, title, content_type)
        if content_type == REVIEW:
            enhance_review_content(root, soup)

        return ProcessedContent(
            html=inner_html(root) or html,
            faqs=extraction.faqs,
            faq_heading=extraction.heading,
        )

    def _rewrite_images(self, root: Tag, slug: str, title: str, content_type: str) -> None:
        stored = 0
        images = root.find_all("img")
        for index, image in enumerate(images, start=1):
            source = actual_image_source(image)
            if not source:
                continue
            alt = build_alt_text(
                image.get("alt") or image.get("title"), f"{title} image {index}"
            )
            saved = self._images.save(
                source,
                slug=slug,
                label=f"body-{index}",
                alt_text=alt,
                content_type=content_type,
            )
            if saved is None:
                continue
            image["src"] = saved.path
            image["alt"] = saved.alt
            for attribute in REMOVED_IMAGE_ATTRIBUTES:
                if attribute in image.attrs:
                    del image[attribute]
            stored += 1

        if images:
            logger.debug("Stored %d of %d content images for %s", stored, len(images), slug)
