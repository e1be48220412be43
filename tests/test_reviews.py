"""Tests for review specific extraction and presentation."""
from __future__ import annotations

import unittest

import pytest
from bs4 import BeautifulSoup

from content_importer.reviews import (
    CONS,
    PROS,
    classify_pros_cons_text,
    convert_definition_pairs,
    convert_spec_tables,
    decorate_affiliate_links,
    detect_category_slug,
    extract_affiliate_links,
    extract_pros_cons,
    extract_rating,
    parse_rating_from_text,
    spec_icon,
    wrap_responsive_embeds,
)


def _soup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(f'<div id="root">{markup}</div>', "html.parser")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Rated 4.7 out of 5 by parents", 4.7),
        ("Overall: 4/5", 4.0),
        ("Score 4.75 / 5", 4.8),
        ("A solid 9/5 experience", 5.0),
        ("Pick 4/50 brushes", None),
        ("No rating here", None),
        (None, None),
    ],
)
def test_parse_rating_from_text(text, expected) -> None:
    assert parse_rating_from_text(text) == expected


def test_extract_rating_prefers_microdata() -> None:
    soup = BeautifulSoup(
        '<body><meta itemprop="ratingValue" content="4.23"><p>Rated 3/5</p></body>',
        "html.parser",
    )
    assert extract_rating(soup) == 4.2


def test_extract_rating_falls_back_to_rating_elements() -> None:
    soup = BeautifulSoup(
        '<body><div class="review-rating">Our score: 3.5 out of 5</div></body>', "html.parser"
    )
    assert extract_rating(soup) == 3.5


def test_extract_rating_returns_none_without_rating() -> None:
    soup = BeautifulSoup("<body><p>Just a story.</p></body>", "html.parser")
    assert extract_rating(soup) is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Parents love the gentle bristles", PROS),
        ("The main downside is battery life", CONS),
        ("It comes in a box", None),
        ("We love it but it is loud", None),
        ("", None),
    ],
)
def test_classify_pros_cons_text(text, expected) -> None:
    assert classify_pros_cons_text(text) == expected


class ProsConsExtractionTests(unittest.TestCase):
    def test_reads_labelled_sections(self) -> None:
        pros, cons = extract_pros_cons(
            "<h3>What We Like</h3><ul><li>Gentle</li><li>gentle</li><li>Cheap</li></ul>"
            "<h3>Drawbacks</h3><ul><li>Loud</li></ul><p>Not part of it?</p>"
            "<h3>Verdict</h3><p>Buy it.</p>"
        )

        self.assertEqual(pros, ["Gentle", "Cheap"])
        self.assertEqual(cons, ["Loud", "Not part of it?"])

    def test_combined_heading_classifies_each_entry(self) -> None:
        pros, cons = extract_pros_cons(
            "<h2>Pros and Cons</h2><ul>"
            "<li>Benefit: whiter teeth</li><li>Drawback: pricey heads</li><li>Blue</li>"
            "</ul>"
        )

        self.assertEqual(pros, ["Benefit: whiter teeth"])
        self.assertEqual(cons, ["Drawback: pricey heads"])

    def test_falls_back_to_keyword_scoring(self) -> None:
        pros, cons = extract_pros_cons(
            "<p>We love the quiet motor.</p>"
            "<p>The main drawback is the price.</p>"
            "<p>It ships in a box.</p>"
        )

        self.assertEqual(pros, ["We love the quiet motor."])
        self.assertEqual(cons, ["The main drawback is the price."])

    def test_limits_entries(self) -> None:
        items = "".join(f"<li>Advantage number {index}</li>" for index in range(12))
        pros, _ = extract_pros_cons(f"<h3>Pros</h3><ul>{items}</ul>")

        self.assertEqual(len(pros), 8)


class AffiliateLinkTests(unittest.TestCase):
    def test_collects_retailer_links(self) -> None:
        links = extract_affiliate_links(
            '<a href="https://www.amazon.com/dp/A1#reviews">Buy now $19.99</a>'
            '<a href="https://www.amazon.com/dp/A1">Duplicate</a>'
            '<a href="https://amzn.to/xyz" title="Sonic brush"></a>'
            '<a href="https://example.com/shop">Not a retailer</a>'
            '<a href="/amazon.com/relative">Relative</a>'
            '<a href="https://www.amazon.com/associates">Amazon Associates Program</a>'
        )

        self.assertEqual(
            [(link.title, link.url, link.price) for link in links],
            [
                ("Buy now $19.99", "https://www.amazon.com/dp/A1#reviews", "$19.99"),
                ("Sonic brush", "https://amzn.to/xyz", None),
            ],
        )

    def test_reads_decorated_label(self) -> None:
        links = extract_affiliate_links(
            '<a href="https://www.amazon.com/dp/B2" class="review-affiliate-link">'
            '<span class="review-affiliate-icon">x</span>'
            '<span class="review-affiliate-text">Check price</span></a>'
        )

        self.assertEqual(links[0].title, "Check price")
        self.assertEqual(links[0].as_record(), {"title": "Check price", "url": "https://www.amazon.com/dp/B2"})

    def test_limits_to_five_links(self) -> None:
        markup = "".join(
            f'<a href="https://www.amazon.com/dp/{index}">Item {index}</a>' for index in range(7)
        )

        self.assertEqual(len(extract_affiliate_links(markup)), 5)

    def test_decorates_retailer_and_call_to_action_links(self) -> None:
        soup = _soup(
            '<a href="https://www.amazon.com/dp/C3">Sonic brush</a>'
            '<a href="https://shop.example.com/item">Shop now</a>'
            '<a href="/about/">About us</a>'
        )
        root = soup.find(id="root")

        decorate_affiliate_links(root)

        anchors = root.find_all("a")
        self.assertIn("review-affiliate-link", anchors[0]["class"])
        self.assertEqual(anchors[0]["target"], "_blank")
        self.assertEqual(anchors[0].select_one(".review-affiliate-text").get_text(), "Sonic brush")
        self.assertIn("review-affiliate-link", anchors[1]["class"])
        self.assertIsNone(anchors[2].get("class"))


class ReviewMarkupTests(unittest.TestCase):
    def test_detect_category_slug(self) -> None:
        soup = BeautifulSoup(
            '<article class="post category-reviews category-water-flossers"></article>',
            "html.parser",
        )
        self.assertEqual(detect_category_slug(soup, "reviews"), "water-flossers")
        self.assertEqual(
            detect_category_slug(BeautifulSoup("<div></div>", "html.parser"), "reviews"),
            "reviews",
        )

    def test_converts_two_column_tables(self) -> None:
        soup = _soup(
            "<table><tr><th>Battery</th><td>30 days</td></tr>"
            "<tr><td>Weight</td><td><strong>120 g</strong></td></tr></table>"
            "<table><tr><td>A</td><td>B</td><td>C</td></tr></table>"
        )
        root = soup.find(id="root")

        converted = convert_spec_tables(root)

        self.assertEqual(converted, 1)
        self.assertEqual(len(root.find_all("table")), 1)
        labels = [node.get_text() for node in root.select(".review-spec-label")]
        self.assertEqual(labels, ["Battery", "Weight"])
        self.assertIsNotNone(root.select_one(".review-spec-value strong"))

    def test_keeps_large_tables(self) -> None:
        rows = "".join(f"<tr><td>Row {index}</td><td>{index}</td></tr>" for index in range(9))
        soup = _soup(f"<table>{rows}</table>")

        self.assertEqual(convert_spec_tables(soup.find(id="root")), 0)

    def test_converts_definition_runs(self) -> None:
        soup = _soup(
            "<p><strong>Battery life</strong></p><p>Two weeks</p>"
            "<p><strong>Overall rating</strong></p><p>4.5 stars</p>"
            "<p><strong>Modes</strong></p><p>Three</p>"
            "<p>Regular paragraph.</p>"
        )
        root = soup.find(id="root")

        converted = convert_definition_pairs(root)

        self.assertEqual(converted, 1)
        cards = root.select(".review-spec-grid .review-spec-card")
        self.assertEqual(len(cards), 3)
        self.assertIn("review-spec-card--with-icon", cards[0]["class"])
        self.assertEqual(cards[0].select_one(".review-spec-icon").get_text(), "🔋")
        self.assertIn("review-spec-card--rating", cards[1]["class"])
        self.assertIn("Regular paragraph.", root.get_text())
        self.assertNotIn("<strong>Modes</strong>", str(root))

    def test_short_definition_runs_are_left_alone(self) -> None:
        soup = _soup(
            "<p><strong>Battery</strong></p><p>Two weeks</p>"
            "<p><strong>Modes</strong></p><p>Three</p>"
        )

        self.assertEqual(convert_definition_pairs(soup.find(id="root")), 0)

    def test_wraps_embeds(self) -> None:
        soup = _soup('<iframe src="https://www.youtube.com/embed/x"></iframe>')
        root = soup.find(id="root")

        wrap_responsive_embeds(root, soup)

        iframe = root.find("iframe")
        self.assertEqual(iframe["allowfullscreen"], "true")
        self.assertIn("review-embed", iframe.parent["class"])

    def test_spec_icon(self) -> None:
        self.assertEqual(spec_icon("Water tank capacity"), "💧")
        self.assertIsNone(spec_icon("Colour"))


if __name__ == "__main__":
    unittest.main()
