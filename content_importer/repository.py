"""Persistence layer for imported articles, reviews and media."""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Mapping, Optional, Tuple

import mysql.connector
from mysql.connector.connection import MySQLConnection

from .models import ArticleData, MediaRecord, ReviewData
from .structured_data import FALLBACK_AUTHOR_NAME, build_article_schema, build_review_schema
from .text import humanize_slug, slugify

logger = logging.getLogger(__name__)

FALLBACK_AUTHOR_SLUG = "editorial-team"
MAX_AUTHOR_SLUG_LENGTH = 60
PUBLISHED = "PUBLISHED"
DRAFT = "DRAFT"
BLOG = "BLOG"


class MissingUserError(RuntimeError):
    """Raised when no CMS user exists to own imported content."""


class ContentRepository(ABC):
    """Abstract repository responsible for persisting imported content."""

    @abstractmethod
    def ensure_schema(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def save_article(self, article: ArticleData) -> bool:
        """Upsert ``article`` and return ``True`` when a new row was created."""

        raise NotImplementedError

    @abstractmethod
    def save_review(self, review: ReviewData) -> bool:
        """Upsert ``review`` and return ``True`` when a new row was created."""

        raise NotImplementedError

    @abstractmethod
    def record_media(self, record: MediaRecord) -> None:
        raise NotImplementedError


class MySqlContentRepository(ContentRepository):
    """MySQL backed implementation of :class:`ContentRepository`."""

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        database: str,
        port: int = 3306,
        connect_timeout: int = 10,
        site_base_url: str = "",
        site_name: str = "",
        category_names: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._config = {
            "host": host,
            "user": user,
            "password": password,
            "database": database,
            "port": port,
            "connection_timeout": connect_timeout,
            "charset": "utf8mb4",
            "use_unicode": True,
        }
        self._site_base_url = site_base_url
        self._site_name = site_name
        self._category_names = dict(category_names or {})
        self._category_ids: Dict[str, int] = {}
        self._author_ids: Dict[str, int] = {}
        self._user_id: Optional[int] = None

    @contextmanager
    def _connection(self) -> Generator[MySQLConnection, None, None]:
        connection = mysql.connector.connect(**self._config)
        try:
            yield connection
        finally:
            connection.close()

    def ensure_schema(self) -> None:
        schema_sql = """
        CREATE TABLE IF NOT EXISTS users (
            id BIGINT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
            email VARCHAR(255) NOT NULL,
            name VARCHAR(255),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE KEY uniq_user_email (email)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

        CREATE TABLE IF NOT EXISTS categories (
            id BIGINT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
            slug VARCHAR(191) NOT NULL,
            name VARCHAR(255) NOT NULL,
            description TEXT,
            seo_title VARCHAR(255),
            seo_description TEXT,
            featured_image VARCHAR(1024),
            is_no_index TINYINT(1) NOT NULL DEFAULT 0,
            is_no_follow TINYINT(1) NOT NULL DEFAULT 0,
            schema_markup LONGTEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
            UNIQUE KEY uniq_category_slug (slug)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

        CREATE TABLE IF NOT EXISTS authors (
            id BIGINT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
            slug VARCHAR(191) NOT NULL,
            name VARCHAR(255) NOT NULL,
            bio TEXT,
            email VARCHAR(255),
            website VARCHAR(1024),
            avatar VARCHAR(1024),
            seo_title VARCHAR(255),
            seo_description TEXT,
            featured_image VARCHAR(1024),
            is_no_index TINYINT(1) NOT NULL DEFAULT 0,
            is_no_follow TINYINT(1) NOT NULL DEFAULT 0,
            schema_markup LONGTEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
            UNIQUE KEY uniq_author_slug (slug)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

        CREATE TABLE IF NOT EXISTS articles (
            id BIGINT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
            slug VARCHAR(191) NOT NULL,
            title TEXT NOT NULL,
            content LONGTEXT,
            excerpt TEXT,
            featured_image VARCHAR(1024),
            status VARCHAR(20) NOT NULL DEFAULT 'DRAFT',
            type VARCHAR(20) NOT NULL DEFAULT 'BLOG',
            seo_title VARCHAR(512),
            seo_description TEXT,
            is_no_index TINYINT(1) NOT NULL DEFAULT 0,
            is_no_follow TINYINT(1) NOT NULL DEFAULT 0,
            schema_markup LONGTEXT,
            faqs LONGTEXT,
            faq_heading VARCHAR(512),
            source_url VARCHAR(2048),
            published_at DATETIME,
            category_id BIGINT UNSIGNED,
            author_id BIGINT UNSIGNED,
            user_id BIGINT UNSIGNED NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
            UNIQUE KEY uniq_article_slug (slug)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

        CREATE TABLE IF NOT EXISTS reviews (
            id BIGINT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
            slug VARCHAR(191) NOT NULL,
            title TEXT NOT NULL,
            content LONGTEXT,
            excerpt TEXT,
            featured_image VARCHAR(1024),
            rating DECIMAL(2, 1),
            pros LONGTEXT,
            cons LONGTEXT,
            affiliate_links LONGTEXT,
            faqs LONGTEXT,
            faq_heading VARCHAR(512),
            status VARCHAR(20) NOT NULL DEFAULT 'DRAFT',
            seo_title VARCHAR(512),
            seo_description TEXT,
            is_no_index TINYINT(1) NOT NULL DEFAULT 0,
            is_no_follow TINYINT(1) NOT NULL DEFAULT 0,
            schema_markup LONGTEXT,
            source_url VARCHAR(2048),
            published_at DATETIME,
            category_id BIGINT UNSIGNED,
            author_id BIGINT UNSIGNED,
            user_id BIGINT UNSIGNED NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
            UNIQUE KEY uniq_review_slug (slug)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;

        CREATE TABLE IF NOT EXISTS media (
            id BIGINT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
            filename VARCHAR(255) NOT NULL,
            original_name VARCHAR(255),
            mime_type VARCHAR(100),
            size INT UNSIGNED,
            path VARCHAR(512) NOT NULL,
            alt TEXT,
            caption TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
            UNIQUE KEY uniq_media_path (path)
        ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
        """
        with self._connection() as connection:
            cursor = connection.cursor()
            for statement in filter(None, schema_sql.split(";")):
                if statement.strip():
                    cursor.execute(statement)
            connection.commit()

    def save_article(self, article: ArticleData) -> bool:
        sql = """
            INSERT INTO articles (
                slug,
                title,
                content,
                excerpt,
                featured_image,
                status,
                type,
                seo_title,
                seo_description,
                is_no_index,
                is_no_follow,
                schema_markup,
                faqs,
                faq_heading,
                source_url,
                published_at,
                category_id,
                author_id,
                user_id
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s, %s, 0, 0, %s, %s, %s, %s, %s, %s, %s, %s
            )
            ON DUPLICATE KEY UPDATE
                title = VALUES(title),
                content = VALUES(content),
                excerpt = VALUES(excerpt),
                featured_image = VALUES(featured_image),
                status = VALUES(status),
                type = VALUES(type),
                seo_title = VALUES(seo_title),
                seo_description = VALUES(seo_description),
                is_no_index = VALUES(is_no_index),
                is_no_follow = VALUES(is_no_follow),
                schema_markup = VALUES(schema_markup),
                faqs = VALUES(faqs),
                faq_heading = VALUES(faq_heading),
                source_url = VALUES(source_url),
                published_at = VALUES(published_at),
                category_id = VALUES(category_id),
                author_id = VALUES(author_id),
                user_id = VALUES(user_id),
                updated_at = CURRENT_TIMESTAMP
        """
        with self._connection() as connection:
            cursor = connection.cursor()
            category_id, author_id, user_id = self._resolve_owners(cursor, article)
            params = (
                article.slug,
                article.title,
                article.content,
                article.excerpt,
                article.featured_image,
                self._status(article),
                BLOG,
                article.seo_title or article.title,
                article.seo_description or article.excerpt or None,
                build_article_schema(article, self._site_base_url, self._site_name),
                self._to_json_text(article.faqs_payload()),
                article.faq_heading,
                article.source_url or None,
                self._to_naive_utc(article.published_at),
                category_id,
                author_id,
                user_id,
            )
            cursor.execute(sql, params)
            created = cursor.rowcount == 1
            connection.commit()
            self._remember_owners(article, category_id, author_id)

        logger.info(
            "%s article: %s",
            "Created" if created else "Updated",
            article.title,
            extra={"category": article.category, "article": article.source_url},
        )
        return created

    def save_review(self, review: ReviewData) -> bool:
        sql = """
            INSERT INTO reviews (
                slug,
                title,
                content,
                excerpt,
                featured_image,
                rating,
                pros,
                cons,
                affiliate_links,
                faqs,
                faq_heading,
                status,
                seo_title,
                seo_description,
                is_no_index,
                is_no_follow,
                schema_markup,
                source_url,
                published_at,
                category_id,
                author_id,
                user_id
            ) VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 0, 0,
                %s, %s, %s, %s, %s, %s
            )
            ON DUPLICATE KEY UPDATE
                title = VALUES(title),
                content = VALUES(content),
                excerpt = VALUES(excerpt),
                featured_image = VALUES(featured_image),
                rating = VALUES(rating),
                pros = VALUES(pros),
                cons = VALUES(cons),
                affiliate_links = VALUES(affiliate_links),
                faqs = VALUES(faqs),
                faq_heading = VALUES(faq_heading),
                status = VALUES(status),
                seo_title = VALUES(seo_title),
                seo_description = VALUES(seo_description),
                is_no_index = VALUES(is_no_index),
                is_no_follow = VALUES(is_no_follow),
                schema_markup = VALUES(schema_markup),
                source_url = VALUES(source_url),
                published_at = VALUES(published_at),
                category_id = VALUES(category_id),
                author_id = VALUES(author_id),
                user_id = VALUES(user_id),
                updated_at = CURRENT_TIMESTAMP
        """
        with self._connection() as connection:
            cursor = connection.cursor()
            category_id, author_id, user_id = self._resolve_owners(cursor, review)
            params = (
                review.slug,
                review.title,
                review.content,
                review.excerpt,
                review.featured_image,
                review.rating,
                self._to_json_text(review.pros_payload()),
                self._to_json_text(review.cons_payload()),
                self._to_json_text(review.affiliate_links_payload()),
                self._to_json_text(review.faqs_payload()),
                review.faq_heading,
                self._status(review),
                review.seo_title or review.title,
                review.seo_description or review.excerpt or None,
                build_review_schema(review, self._site_base_url),
                review.source_url or None,
                self._to_naive_utc(review.published_at),
                category_id,
                author_id,
                user_id,
            )
            cursor.execute(sql, params)
            created = cursor.rowcount == 1
            connection.commit()
            self._remember_owners(review, category_id, author_id)

        logger.info(
            "%s review: %s",
            "Created" if created else "Updated",
            review.title,
            extra={"category": review.category, "article": review.source_url},
        )
        return created

    def record_media(self, record: MediaRecord) -> None:
        sql = """
            INSERT INTO media (
                filename,
                original_name,
                mime_type,
                size,
                path,
                alt,
                caption
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON DUPLICATE KEY UPDATE
                alt = VALUES(alt),
                updated_at = CURRENT_TIMESTAMP
        """
        params = (
            record.filename,
            record.original_name,
            record.mime_type,
            record.size,
            record.path,
            record.alt,
            record.alt,
        )
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(sql, params)
            connection.commit()

    def _resolve_owners(self, cursor, article: ArticleData) -> Tuple[int, int, int]:
        return (
            self._resolve_category_id(cursor, article.category),
            self._resolve_author_id(cursor, article.author),
            self._resolve_user_id(cursor),
        )

    def _remember_owners(self, article: ArticleData, category_id: int, author_id: int) -> None:
        # Only ids from committed transactions are cached.
        self._category_ids[self._category_slug(article.category)] = category_id
        self._author_ids[self._author_identity(article.author)[1]] = author_id

    @staticmethod
    def _category_slug(category_slug: str) -> str:
        return slugify(category_slug) or category_slug

    @staticmethod
    def _author_identity(author_name: Optional[str]) -> Tuple[str, str]:
        name = (author_name or "").strip() or FALLBACK_AUTHOR_NAME
        slug = slugify(name)[:MAX_AUTHOR_SLUG_LENGTH].strip("-") or FALLBACK_AUTHOR_SLUG
        return name, slug

    def _resolve_category_id(self, cursor, category_slug: str) -> int:
        slug = self._category_slug(category_slug)
        cached = self._category_ids.get(slug)
        if cached is not None:
            return cached

        cursor.execute("SELECT id FROM categories WHERE slug = %s", (slug,))
        row = cursor.fetchone()
        if row:
            category_id = int(row[0])
        else:
            name = humanize_slug(slug, self._category_names)
            cursor.execute(
                """
                INSERT INTO categories (slug, name, description, seo_title, seo_description)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (
                    slug,
                    name,
                    f"Articles imported from live site for {name}.",
                    name,
                    f"Latest resources covering {name}.",
                ),
            )
            category_id = int(cursor.lastrowid)
            logger.info("Created category %s", slug)

        return category_id

    def _resolve_author_id(self, cursor, author_name: Optional[str]) -> int:
        name, slug = self._author_identity(author_name)
        cached = self._author_ids.get(slug)
        if cached is not None:
            return cached

        cursor.execute("SELECT id FROM authors WHERE slug = %s", (slug,))
        row = cursor.fetchone()
        if row:
            author_id = int(row[0])
        else:
            cursor.execute(
                """
                INSERT INTO authors (slug, name, seo_title, seo_description)
                VALUES (%s, %s, %s, %s)
                """,
                (slug, name, name, f"Articles written by {name}."),
            )
            author_id = int(cursor.lastrowid)
            logger.info("Created author %s", name)

        return author_id

    def _resolve_user_id(self, cursor) -> int:
        if self._user_id is not None:
            return self._user_id

        cursor.execute("SELECT id FROM users ORDER BY created_at ASC, id ASC LIMIT 1")
        row = cursor.fetchone()
        if not row:
            raise MissingUserError(
                "No CMS user found. Create at least one user before running the import."
            )
        self._user_id = int(row[0])
        return self._user_id

    @staticmethod
    def _status(article: ArticleData) -> str:
        return PUBLISHED if article.is_published else DRAFT

    @staticmethod
    def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def _to_json_text(value: Optional[Any]) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)
