"""Domain models used by the content importer."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


ARTICLE = "article"
REVIEW = "review"
CONTENT_TYPES = (ARTICLE, REVIEW)


@dataclass(frozen=True)
class CategoryConfig:
    """Describes a listing section of the legacy site and how to import it."""

    name: str
    slug: str
    path: str
    type: str = ARTICLE
    link_selector: Optional[str] = None

    @property
    def is_review(self) -> bool:
        return self.type == REVIEW


@dataclass(frozen=True)
class FaqEntry:
    """A question with its answer split into paragraphs."""

    question: str
    answer: List[str] = field(default_factory=list)

    def as_record(self) -> Dict[str, str]:
        return {"question": self.question, "answer": "\n\n".join(self.answer)}


@dataclass(frozen=True)
class AffiliateLink:
    title: str
    url: str
    price: Optional[str] = None

    def as_record(self) -> Dict[str, str]:
        record = {"title": self.title, "url": self.url}
        if self.price:
            record["price"] = self.price
        return record


@dataclass(frozen=True)
class SavedImage:
    """A locally stored copy of a remote image."""

    path: str
    filename: str
    alt: str


@dataclass(frozen=True)
class MediaRecord:
    """Metadata persisted for every stored image."""

    filename: str
    original_name: str
    mime_type: str
    size: int
    path: str
    alt: str


@dataclass
class ArticleData:
    """Normalized article ready for persistence."""

    title: str
    slug: str
    content: str
    category: str
    source_url: str = ""
    excerpt: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = None
    featured_image: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    faqs: List[FaqEntry] = field(default_factory=list)
    faq_heading: Optional[str] = None
    is_published: bool = True

    content_type = ARTICLE

    def faqs_payload(self) -> Optional[List[Dict[str, str]]]:
        if not self.faqs:
            return None
        return [faq.as_record() for faq in self.faqs]


@dataclass
class ReviewData(ArticleData):
    """Normalized product review ready for persistence."""

    rating: Optional[float] = None
    pros: List[str] = field(default_factory=list)
    cons: List[str] = field(default_factory=list)
    affiliate_links: List[AffiliateLink] = field(default_factory=list)

    content_type = REVIEW

    def pros_payload(self) -> Optional[List[Dict[str, str]]]:
        return [{"text": text} for text in self.pros] or None

    def cons_payload(self) -> Optional[List[Dict[str, str]]]:
        return [{"text": text} for text in self.cons] or None

    def affiliate_links_payload(self) -> Optional[List[Dict[str, Any]]]:
        return [link.as_record() for link in self.affiliate_links] or None


@dataclass
class ImportStats:
    """Aggregated outcome of an import run or a single category."""

    total: int = 0
    success: int = 0
    failed: int = 0

    @property
    def success_rate(self) -> float:
        if not self.total:
            return 0.0
        return self.success / self.total * 100

    def merge(self, other: "ImportStats") -> None:
        self.total += other.total
        self.success += other.success
        self.failed += other.failed
