"""HTML extraction for category listings and individual articles."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Union
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, Tag
from dateutil import parser as dateutil_parser

from .content import ContentProcessor
from .dom import PARSER, inner_html
from .faqs import JSON_LD_SELECTOR
from .http_client import HttpClient
from .images import ImageStore
from .models import ARTICLE, REVIEW, ArticleData, CategoryConfig, ReviewData
from .reviews import (
    detect_category_slug,
    extract_affiliate_links,
    extract_pros_cons,
    extract_rating,
)
from .text import clean_text, slug_from_url

logger = logging.getLogger(__name__)

DEFAULT_LINK_SELECTOR = ".entry-title a, article h2 a, .post-title a, h3.entry-title a"
TITLE_SELECTOR = "h1.entry-title, h1.post-title, article h1, h1"
CONTENT_SELECTORS = (
    ".entry-content",
    ".post-content",
    "article .content",
    ".article-content",
    "article",
)
CONTENT_NOISE_SELECTOR = "script, style, nav, .nav, .navigation, .social-share"
MIN_CONTENT_LENGTH = 100
FEATURED_IMAGE_SELECTOR = ".featured-image img, .post-thumbnail img, article img"
AUTHOR_SELECTOR = '.author-name, .entry-author, .post-author, [rel="author"]'
DATE_SELECTOR = ".entry-date, .published, time[datetime]"
DATE_TEXT_SELECTOR = ".entry-date, .published, time"
EXCERPT_SELECTOR = ".excerpt, .entry-summary"
TAG_SELECTOR = '.tag, .post-tag, [rel="tag"]'


class ListingDiscoveryError(RuntimeError):
    """Raised when no listing page of a category can be fetched."""

    def __init__(self, message: str, last_error: Optional[Exception] = None) -> None:
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.last_error = last_error


class ArticleExtractionError(RuntimeError):
    """Raised when an article page lacks the content required for import."""


def _meta_content(soup: BeautifulSoup, selector: str) -> Optional[str]:
    element = soup.select_one(selector)
    if element is None:
        return None
    value = clean_text(element.get("content"))
    return value or None


def _first_text(soup: BeautifulSoup, selector: str) -> Optional[str]:
    element = soup.select_one(selector)
    if element is None:
        return None
    return clean_text(element.get_text()) or None


def parse_published_at(value: Optional[str]) -> Optional[datetime]:
    if not value or not value.strip():
        return None
    try:
        return dateutil_parser.parse(value.strip())
    except (ValueError, OverflowError) as exc:
        logger.debug("Unable to parse publish date %r: %s", value, exc)
        return None


class ListingScraper:
    """Collect article URLs from a paginated category listing."""

    def __init__(
        self,
        http_client: HttpClient,
        live_site_url: str,
        max_pages: int = 200,
        page_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._http = http_client
        self._live_site_url = live_site_url.rstrip("/")
        self._max_pages = max_pages
        self._page_delay = page_delay
        self._sleep = sleep

    def page_url(self, category: CategoryConfig, page: int) -> str:
        base = f"{self._live_site_url}{category.path}"
        if page <= 1:
            return base
        return f"{base}page/{page}/"

    def discover(self, category: CategoryConfig) -> List[str]:
        selector = category.link_selector or DEFAULT_LINK_SELECTOR
        urls: List[str] = []
        seen: Set[str] = set()
        page = 1
        logger.info(
            "Fetching article URLs from %s", category.path, extra={"category": category.slug}
        )

        while page <= self._max_pages:
            page_url = self.page_url(category, page)
            logger.info("Listing page %d: %s", page, page_url, extra={"category": category.slug})
            try:
                response = self._http.get(page_url)
            except requests.RequestException as exc:
                if page == 1:
                    raise ListingDiscoveryError(
                        f"Failed to fetch listing for {category.slug}", exc
                    ) from exc
                logger.warning(
                    "Stopping pagination for %s at page %d: %s",
                    category.slug,
                    page,
                    exc,
                    extra={"category": category.slug, "article": page_url},
                )
                break

            base_url = getattr(response, "url", None) or page_url
            page_links = self._extract_links(response.text, base_url, selector)
            self._sleep(self._page_delay)
            if not page_links:
                break

            logger.info("Found %d articles", len(page_links), extra={"category": category.slug})
            for link in page_links:
                if link not in seen:
                    seen.add(link)
                    urls.append(link)
            page += 1

        logger.info("Total articles found for %s: %d", category.slug, len(urls))
        return urls

    @staticmethod
    def _extract_links(html: str, base_url: str, selector: str) -> List[str]:
        soup = BeautifulSoup(html, PARSER)
        links: List[str] = []
        for element in soup.select(selector):
            href = clean_text(element.get("href"))
            if not href or "#" in href or "javascript:" in href.lower():
                continue
            links.append(urljoin(base_url, href))
        return links


class ArticleScraper:
    """Extract :class:`ArticleData` or :class:`ReviewData` from an article page."""

    def __init__(
        self,
        http_client: HttpClient,
        image_store: ImageStore,
        content_processor: Optional[ContentProcessor] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._http = http_client
        self._images = image_store
        self._processor = content_processor or ContentProcessor(image_store)
        self._now = now

    def scrape(self, category: CategoryConfig, url: str) -> Union[ArticleData, ReviewData]:
        response = self._http.get(url)
        soup = BeautifulSoup(response.text, PARSER)

        title = _first_text(soup, TITLE_SELECTOR)
        if not title:
            raise ArticleExtractionError(f"No title found for {url}")

        slug = slug_from_url(url)
        if not slug:
            raise ArticleExtractionError(f"Unable to derive a slug from {url}")

        content_type = REVIEW if category.is_review else ARTICLE
        json_ld_payloads = [
            script.string or script.get_text() for script in soup.select(JSON_LD_SELECTOR)
        ]
        raw_content = self._extract_raw_content(soup)
        processed = self._processor.process(
            raw_content,
            slug,
            title,
            content_type=content_type,
            json_ld_payloads=json_ld_payloads,
        )

        fields = dict(
            title=title,
            slug=slug,
            content=processed.html,
            category=category.slug,
            source_url=url,
            excerpt=self._extract_excerpt(soup),
            author=self._extract_author(soup),
            published_at=self._extract_published_at(soup),
            featured_image=self._extract_featured_image(soup, title, slug, content_type),
            seo_title=self._extract_seo_title(soup),
            seo_description=self._extract_seo_description(soup),
            tags=self._extract_tags(soup),
            faqs=processed.faqs,
            faq_heading=processed.faq_heading,
        )

        if content_type != REVIEW:
            return ArticleData(**fields)

        pros, cons = extract_pros_cons(processed.html)
        fields["category"] = detect_category_slug(soup, category.slug)
        return ReviewData(
            **fields,
            rating=extract_rating(soup),
            pros=pros,
            cons=cons,
            affiliate_links=extract_affiliate_links(processed.html),
        )

    @staticmethod
    def _extract_raw_content(soup: BeautifulSoup) -> str:
        raw_content = ""
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            for noise in element.select(CONTENT_NOISE_SELECTOR):
                noise.extract()
            candidate = inner_html(element)
            if not raw_content or len(candidate) > len(raw_content):
                raw_content = candidate
            if len(candidate) > MIN_CONTENT_LENGTH:
                break
        return raw_content

    @staticmethod
    def _extract_excerpt(soup: BeautifulSoup) -> Optional[str]:
        return (
            _meta_content(soup, 'meta[name="description"]')
            or _meta_content(soup, 'meta[property="og:description"]')
            or _first_text(soup, EXCERPT_SELECTOR)
        )

    @staticmethod
    def _extract_seo_title(soup: BeautifulSoup) -> Optional[str]:
        return _meta_content(soup, 'meta[property="og:title"]') or _first_text(soup, "title")

    @staticmethod
    def _extract_seo_description(soup: BeautifulSoup) -> Optional[str]:
        return _meta_content(soup, 'meta[name="description"]') or _meta_content(
            soup, 'meta[property="og:description"]'
        )

    @staticmethod
    def _extract_author(soup: BeautifulSoup) -> Optional[str]:
        return _first_text(soup, AUTHOR_SELECTOR) or _meta_content(soup, 'meta[name="author"]')

    def _extract_published_at(self, soup: BeautifulSoup) -> datetime:
        candidate: Optional[str] = None
        element = soup.select_one(DATE_SELECTOR)
        if isinstance(element, Tag) and element.get("datetime"):
            candidate = str(element["datetime"])
        else:
            candidate = _first_text(soup, DATE_TEXT_SELECTOR)
        return parse_published_at(candidate) or self._now()

    def _extract_featured_image(
        self, soup: BeautifulSoup, title: str, slug: str, content_type: str
    ) -> Optional[str]:
        source = _meta_content(soup, 'meta[property="og:image"]')
        if not source:
            image = soup.select_one(FEATURED_IMAGE_SELECTOR)
            source = clean_text(image.get("src")) if image is not None else None
        if not source:
            return None

        saved = self._images.save(
            source,
            slug=slug,
            label="featured",
            alt_text=f"{title} featured image",
            content_type=content_type,
        )
        if saved is not None:
            return saved.path
        if self._images.enabled:
            logger.warning(
                "Unable to store featured image for %s, falling back to remote URL", slug
            )
        return self._images.resolve_url(source)

    @staticmethod
    def _extract_tags(soup: BeautifulSoup) -> List[str]:
        tags: List[str] = []
        for element in soup.select(TAG_SELECTOR):
            text = clean_text(element.get_text())
            if text and text not in tags:
                tags.append(text)
        return tags
