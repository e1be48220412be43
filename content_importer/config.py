"""Configuration objects for the content importer."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_LIVE_SITE_URL = "https://pediatricdentistinqueensny.com"
DEFAULT_SITE_NAME = "Pediatric Dentist in Queens NY"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def load_dotenv_if_available(path: str | Path | None = None, *, override: bool = False) -> bool:
    """Load variables from a ``.env`` file, defaulting to the project root."""

    dotenv_path: str | Path | None = path
    if dotenv_path is None:
        project_root = Path(__file__).resolve().parents[1]
        dotenv_path = project_root / ".env"

    return load_dotenv(dotenv_path=dotenv_path, override=override)


def _strip_trailing_slash(value: str) -> str:
    return value.rstrip("/")


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection details for the content database."""

    host: str = "localhost"
    port: int = 3306
    user: str = "content"
    password: str = ""
    database: str = "content"

    @classmethod
    def from_env(cls, prefix: str = "DB_") -> "DatabaseConfig":
        """Create a configuration from environment variables."""

        return cls(
            host=os.getenv(f"{prefix}HOST", cls.host),
            port=int(os.getenv(f"{prefix}PORT", cls.port)),
            user=os.getenv(f"{prefix}USER", cls.user),
            password=os.getenv(f"{prefix}PASSWORD", cls.password),
            database=os.getenv(f"{prefix}NAME", cls.database),
        )


@dataclass(frozen=True)
class ImporterConfig:
    """Settings describing the legacy site and the local import target."""

    live_site_url: str = DEFAULT_LIVE_SITE_URL
    site_base_url: str = DEFAULT_LIVE_SITE_URL
    site_name: str = DEFAULT_SITE_NAME
    upload_root: Path = Path("public/uploads")
    user_agent: str = DEFAULT_USER_AGENT
    page_delay: float = 1.0
    article_delay: float = 1.5
    max_pages: int = 200
    request_timeout: int = 30

    @classmethod
    def from_env(cls) -> "ImporterConfig":
        """Create a configuration from environment variables."""

        site_base_url = (
            os.getenv("NEXT_PUBLIC_SITE_URL")
            or os.getenv("SITE_URL")
            or DEFAULT_LIVE_SITE_URL
        )
        return cls(
            live_site_url=_strip_trailing_slash(
                os.getenv("LIVE_SITE_URL") or cls.live_site_url
            ),
            site_base_url=_strip_trailing_slash(site_base_url),
            site_name=os.getenv("SITE_NAME", cls.site_name),
            upload_root=Path(os.getenv("UPLOAD_ROOT", str(cls.upload_root))),
            user_agent=os.getenv("IMPORT_USER_AGENT", cls.user_agent),
            page_delay=float(os.getenv("IMPORT_PAGE_DELAY", cls.page_delay)),
            article_delay=float(os.getenv("IMPORT_ARTICLE_DELAY", cls.article_delay)),
            max_pages=int(os.getenv("IMPORT_MAX_PAGES", cls.max_pages)),
            request_timeout=int(os.getenv("IMPORT_REQUEST_TIMEOUT", cls.request_timeout)),
        )
