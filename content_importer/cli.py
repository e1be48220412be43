"""Command line interface for the content importer."""
from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional

import mysql.connector

from .config import DatabaseConfig, ImporterConfig, load_dotenv_if_available
from .config_loader import load_categories
from .extractors import ArticleScraper, ListingScraper
from .http_client import HttpClient
from .images import ImageStore
from .models import CategoryConfig, ImportStats
from .repository import MySqlContentRepository
from .service import ImportService


logger = logging.getLogger(__name__)

BANNER_WIDTH = 60


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import articles and reviews from the live site into MySQL"
    )
    parser.add_argument(
        "--category",
        help="Only import the category with this slug.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scrape and report without downloading images or writing to the database.",
    )
    parser.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Maximum number of articles to import per category.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a categories JSON file. Defaults to the built-in catalogue.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file. Defaults to the project root .env.",
    )
    parser.add_argument(
        "--db-host",
        default=None,
        help="MySQL host name (overrides DB_HOST).",
    )
    parser.add_argument(
        "--db-port",
        default=None,
        type=int,
        help="MySQL port (overrides DB_PORT).",
    )
    parser.add_argument(
        "--db-name",
        default=None,
        help="MySQL database name (overrides DB_NAME).",
    )
    parser.add_argument(
        "--db-user",
        default=None,
        help="MySQL user name (overrides DB_USER).",
    )
    parser.add_argument(
        "--db-password",
        default=None,
        help="MySQL password (overrides DB_PASSWORD).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--migrate-only",
        action="store_true",
        help="Create or update database tables and exit without importing.",
    )
    return parser.parse_args(argv)


class _ContextDefaultsFilter(logging.Filter):
    """Ensure log records contain category/article attributes for formatting."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not hasattr(record, "category"):
            record.category = "-"
        if not hasattr(record, "article"):
            record.article = "-"
        return True


def configure_logging(level: str, log_dir: Path = Path("logs")) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    logging.getLogger("content_importer").setLevel(numeric_level)

    root_logger = logging.getLogger()
    if not any(
        getattr(handler, "_import_warning_handler", False) for handler in root_logger.handlers
    ):
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "import-warnings.log")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s "
                "category=%(category)s article=%(article)s - %(message)s"
            )
        )
        file_handler.addFilter(_ContextDefaultsFilter())
        file_handler._import_warning_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(file_handler)


def select_categories(
    categories: Iterable[CategoryConfig], slug: Optional[str]
) -> List[CategoryConfig]:
    if not slug:
        return list(categories)
    return [category for category in categories if category.slug == slug]


def database_config(args: argparse.Namespace) -> DatabaseConfig:
    """Read the database settings from the environment and apply CLI overrides."""

    config = DatabaseConfig.from_env()
    overrides = {
        "host": args.db_host,
        "port": args.db_port,
        "database": args.db_name,
        "user": args.db_user,
        "password": args.db_password,
    }
    return replace(config, **{key: value for key, value in overrides.items() if value is not None})


def _log_banner(config: ImporterConfig, args: argparse.Namespace) -> None:
    logger.info("=" * BANNER_WIDTH)
    logger.info("Content import")
    logger.info("=" * BANNER_WIDTH)
    logger.info("Live site: %s", config.live_site_url)
    logger.info("Mode: %s", "DRY RUN (no changes)" if args.dry_run else "LIVE IMPORT")
    if args.category:
        logger.info("Category filter: %s", args.category)
    if args.limit:
        logger.info("Limit: %d articles per category", args.limit)


def _log_final_stats(stats: ImportStats, dry_run: bool) -> None:
    logger.info("=" * BANNER_WIDTH)
    logger.info("FINAL STATISTICS")
    logger.info("=" * BANNER_WIDTH)
    logger.info("Total articles processed: %d", stats.total)
    logger.info("Successfully imported: %d", stats.success)
    logger.info("Failed: %d", stats.failed)
    logger.info("Success rate: %.1f%%", stats.success_rate)
    if dry_run:
        logger.info("DRY RUN complete - no changes were made")


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv_if_available(args.env_file)
    configure_logging(args.log_level)

    config = ImporterConfig.from_env()
    categories = load_categories(args.config)

    selected = select_categories(categories, args.category)
    if not selected and not args.migrate_only:
        logger.error(
            "Category %r not found. Available categories: %s",
            args.category,
            ", ".join(category.slug for category in categories),
        )
        return 1

    repository: Optional[MySqlContentRepository] = None
    if not args.dry_run or args.migrate_only:
        db = database_config(args)
        repository = MySqlContentRepository(
            host=db.host,
            user=db.user,
            password=db.password,
            database=db.database,
            port=db.port,
            site_base_url=config.site_base_url,
            site_name=config.site_name,
            category_names={category.slug: category.name for category in categories},
        )
        try:
            repository.ensure_schema()
        except mysql.connector.Error as exc:
            logger.error("Unable to prepare the database schema: %s", exc)
            return 1

    if args.migrate_only:
        logger.info("Database schema ensured")
        return 0

    _log_banner(config, args)

    with HttpClient(timeout=config.request_timeout, user_agent=config.user_agent) as http_client:
        image_store = ImageStore(
            http_client,
            config.upload_root,
            config.live_site_url,
            media_recorder=repository,
            enabled=not args.dry_run,
        )
        listing_scraper = ListingScraper(
            http_client,
            config.live_site_url,
            max_pages=config.max_pages,
            page_delay=config.page_delay,
        )
        article_scraper = ArticleScraper(http_client, image_store)
        service = ImportService(
            repository,
            listing_scraper,
            article_scraper,
            article_delay=config.article_delay,
        )
        stats = service.run(selected, dry_run=args.dry_run, limit=args.limit)

    _log_final_stats(stats, args.dry_run)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
