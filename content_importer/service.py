"""High level orchestration for importing legacy content."""
from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from .extractors import ArticleScraper, ListingScraper
from .models import ArticleData, CategoryConfig, ImportStats, ReviewData
from .repository import ContentRepository


logger = logging.getLogger(__name__)


class ImportService:
    """Coordinates listing discovery, article extraction, and persistence."""

    def __init__(
        self,
        repository: Optional[ContentRepository],
        listing_scraper: ListingScraper,
        article_scraper: ArticleScraper,
        article_delay: float = 1.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repository = repository
        self._listing_scraper = listing_scraper
        self._article_scraper = article_scraper
        self._article_delay = article_delay
        self._sleep = sleep

    def run(
        self,
        categories: Iterable[CategoryConfig],
        dry_run: bool = False,
        limit: Optional[int] = None,
    ) -> ImportStats:
        if not dry_run and self._repository is None:
            raise ValueError("A repository is required unless running in dry-run mode")

        categories = list(categories)
        logger.info("Starting import for %d categories", len(categories))
        totals = ImportStats()
        for category in categories:
            try:
                stats = self.import_category(category, dry_run=dry_run, limit=limit)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception(
                    "Failed to import category %s: %s",
                    category.name,
                    exc,
                    extra={"category": category.slug},
                )
                continue
            totals.merge(stats)
        logger.info("Import completed")
        return totals

    def import_category(
        self,
        category: CategoryConfig,
        dry_run: bool = False,
        limit: Optional[int] = None,
    ) -> ImportStats:
        logger.info("Importing category: %s", category.name, extra={"category": category.slug})
        try:
            urls = self._listing_scraper.discover(category)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception(
                "Failed to discover articles for %s: %s",
                category.slug,
                exc,
                extra={"category": category.slug},
            )
            return ImportStats()

        if limit:
            urls = urls[:limit]

        stats = ImportStats(total=len(urls))
        for index, url in enumerate(urls, start=1):
            context = {"category": category.slug, "article": url}
            logger.info("[%d/%d] Processing: %s", index, len(urls), url, extra=context)
            try:
                content = self._article_scraper.scrape(category, url)
                self._persist(content, dry_run)
                stats.success += 1
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Failed to process %s: %s", url, exc, extra=context)
                stats.failed += 1
            self._sleep(self._article_delay)

        logger.info(
            "Category %s stats: total=%d success=%d failed=%d",
            category.name,
            stats.total,
            stats.success,
            stats.failed,
            extra={"category": category.slug},
        )
        return stats

    def _persist(self, content: ArticleData, dry_run: bool) -> None:
        context = {"category": content.category, "article": content.source_url}
        if dry_run:
            logger.info(
                "[DRY RUN] Would import %s: %s", content.content_type, content.title, extra=context
            )
            return
        if isinstance(content, ReviewData):
            self._repository.save_review(content)
        else:
            self._repository.save_article(content)
