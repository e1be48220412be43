import json
import unittest
from datetime import datetime, timedelta, timezone

from content_importer.models import ArticleData, ReviewData
from content_importer.structured_data import (
    absolute_image_url,
    build_article_schema,
    build_review_schema,
    canonical_url,
)


def _article(**overrides) -> ArticleData:
    fields = dict(
        title="Teething Tips",
        slug="teething-tips",
        content="<p>Body</p>",
        category="baby-and-child-health",
        excerpt="Soothe sore gums.",
        published_at=datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2))),
        featured_image="/uploads/articles/teething-tips/teething-tips-featured.jpg",
    )
    fields.update(overrides)
    return ArticleData(**fields)


class ArticleSchemaTests(unittest.TestCase):
    def test_builds_article_payload(self) -> None:
        payload = json.loads(
            build_article_schema(_article(), "https://kids.example.com/", "Kids Dental")
        )

        self.assertEqual(payload["@type"], "Article")
        self.assertEqual(payload["headline"], "Teething Tips")
        self.assertEqual(payload["description"], "Soothe sore gums.")
        self.assertEqual(payload["author"], {"@type": "Person", "name": "Editorial Team"})
        self.assertEqual(payload["publisher"]["name"], "Kids Dental")
        self.assertEqual(payload["datePublished"], "2024-01-02T03:04:05Z")
        self.assertEqual(payload["url"], "https://kids.example.com/teething-tips/")
        self.assertEqual(
            payload["image"],
            "https://kids.example.com/uploads/articles/teething-tips/teething-tips-featured.jpg",
        )

    def test_news_category_uses_news_article(self) -> None:
        payload = json.loads(
            build_article_schema(
                _article(category="news", author="Dr. Lee", featured_image=None),
                "https://kids.example.com",
                "Kids Dental",
            )
        )

        self.assertEqual(payload["@type"], "NewsArticle")
        self.assertEqual(payload["author"]["name"], "Dr. Lee")
        self.assertNotIn("image", payload)

    def test_naive_dates_are_treated_as_utc(self) -> None:
        payload = json.loads(
            build_article_schema(
                _article(published_at=datetime(2023, 7, 8, 9, 10, 11)), "https://x.test", "X"
            )
        )

        self.assertEqual(payload["datePublished"], "2023-07-08T09:10:11Z")


class ReviewSchemaTests(unittest.TestCase):
    def test_includes_rating_when_present(self) -> None:
        review = ReviewData(
            title="Sonic Brush Review",
            slug="sonic-brush-review",
            content="",
            category="reviews",
            published_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
            rating=4.5,
        )

        payload = json.loads(build_review_schema(review, "https://kids.example.com"))

        self.assertEqual(payload["@type"], "Review")
        self.assertEqual(payload["itemReviewed"], {"@type": "Product", "name": "Sonic Brush Review"})
        self.assertEqual(payload["reviewBody"], "Sonic Brush Review")
        self.assertEqual(
            payload["reviewRating"], {"@type": "Rating", "ratingValue": 4.5, "bestRating": 5}
        )
        self.assertNotIn("author", payload)

    def test_omits_rating_when_missing(self) -> None:
        review = ReviewData(
            title="Floss Review",
            slug="floss-review",
            content="",
            category="reviews",
            author="Sam Patel",
            excerpt="Waxed floss compared.",
        )

        payload = json.loads(build_review_schema(review, "https://kids.example.com"))

        self.assertNotIn("reviewRating", payload)
        self.assertEqual(payload["author"]["name"], "Sam Patel")
        self.assertEqual(payload["description"], "Waxed floss compared.")


class UrlHelperTests(unittest.TestCase):
    def test_canonical_url(self) -> None:
        self.assertEqual(canonical_url("https://x.test/", "slug"), "https://x.test/slug/")

    def test_absolute_image_url(self) -> None:
        self.assertIsNone(absolute_image_url("https://x.test", None))
        self.assertEqual(absolute_image_url("https://x.test", "https://cdn/x.jpg"), "https://cdn/x.jpg")
        self.assertEqual(absolute_image_url("https://x.test/", "/uploads/a.jpg"), "https://x.test/uploads/a.jpg")


if __name__ == "__main__":
    unittest.main()
