"""Review specific extraction and presentation helpers."""
from __future__ import annotations

import html
import logging
import math
import re
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from .dom import (
    PARSER,
    add_class,
    has_class,
    inner_html,
    insert_markup_before,
    node_text,
    replace_with_markup,
    set_inner_markup,
)
from .models import AffiliateLink
from .text import clean_text, dedupe_casefold

logger = logging.getLogger(__name__)

PROS = "pros"
CONS = "cons"

AFFILIATE_DOMAINS = ("amazon.", "amzn.to")
AFFILIATE_CALL_TO_ACTION_RE = re.compile(r"check price|buy now|shop now", re.IGNORECASE)
MAX_AFFILIATE_LINKS = 5
MAX_PROS_CONS = 8
MAX_SPEC_TABLE_ROWS = 8
MIN_DEFINITION_PAIRS = 3
MAX_DEFINITION_LABEL_LENGTH = 60

_RATING_RE = re.compile(r"(?<![\d.])(\d(?:\.\d+)?)\s*(?:/|out of)\s*5(?!\d)", re.IGNORECASE)
_PRICE_RE = re.compile(r"\$\d[\d.,]*")
_ABSOLUTE_URL_RE = re.compile(r"^https?:", re.IGNORECASE)
_ASSOCIATES_RE = re.compile(r"associates program", re.IGNORECASE)
_SECTION_HEADINGS = ("h2", "h3", "h4")

_BOTH_HEADING_RE = re.compile(r"pros\s+and\s+cons")
_PROS_HEADING_RE = re.compile(r"pros|advantages|benefits|what we like|strength")
_CONS_HEADING_RE = re.compile(
    r"cons|drawbacks|limitations|issues|what we don't like|where it could improve"
)

_PROS_KEYWORDS = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bpros\b",
        r"\badvantage",
        r"\bbenefit",
        r"\bpositive",
        r"\blov(?:e|ed|es|ing)\b",
        r"\bstrength",
    )
)
_CONS_KEYWORDS = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bcons\b",
        r"\bdrawback",
        r"\blimitation",
        r"\bdownside",
        r"\bissues?\b",
        r"\bnegative",
        r"\bhowever\b",
        r"\bbut\b",
    )
)

SPEC_ICONS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("battery",), "🔋"),
    (("plaque", "clean"), "🦷"),
    (("capacity", "tank"), "💧"),
    (("rating", "score"), "⭐"),
    (("noise", "sound"), "🔈"),
    (("coverage", "warranty"), "🛡️"),
    (("mode", "setting"), "⚙️"),
)
AFFILIATE_ICON = "💳"


def _round_rating(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def parse_rating_from_text(text: Optional[str]) -> Optional[float]:
    """Parse ``X/5`` or ``X out of 5`` into a rating clamped to [0, 5]."""

    if not text:
        return None
    match = _RATING_RE.search(text)
    if not match:
        return None
    value = min(max(float(match.group(1)), 0.0), 5.0)
    return _round_rating(value)


def _attribute_rating(soup: BeautifulSoup) -> Optional[float]:
    for selector, attribute in (
        ('[itemprop="ratingValue"]', "content"),
        ("[data-rating]", "data-rating"),
        ("[data-score]", "data-score"),
    ):
        element = soup.select_one(selector)
        raw = element.get(attribute) if element is not None else None
        if not raw:
            continue
        try:
            value = float(str(raw).strip())
        except ValueError:
            logger.debug("Ignoring non-numeric rating attribute %r", raw)
            return None
        if value > 0:
            return _round_rating(min(value, 5.0))
        return None
    return None


def extract_rating(soup: BeautifulSoup) -> Optional[float]:
    """Return the review rating advertised anywhere on the page."""

    direct = _attribute_rating(soup)
    if direct is not None:
        return direct

    candidates: List[str] = []
    for element in soup.select('[class*="rating"], [class*="score"], strong, b'):
        text = element.get_text().strip()
        if text and text not in candidates:
            candidates.append(text)
    body = soup.body or soup
    body_text = body.get_text()
    if body_text:
        candidates.append(body_text)

    for text in candidates:
        parsed = parse_rating_from_text(text)
        if parsed is not None:
            return parsed
    return None


def classify_pros_cons_text(text: Optional[str]) -> Optional[str]:
    """Score ``text`` against pros and cons vocabulary and return the winner."""

    lowered = clean_text(text).lower()
    if not lowered:
        return None
    pros_score = sum(1 for pattern in _PROS_KEYWORDS if pattern.search(lowered))
    cons_score = sum(1 for pattern in _CONS_KEYWORDS if pattern.search(lowered))
    if pros_score > cons_score:
        return PROS
    if cons_score > pros_score:
        return CONS
    return None


def _heading_target(text: str) -> Optional[str]:
    lowered = text.lower()
    if _BOTH_HEADING_RE.search(lowered):
        return "both"
    if _PROS_HEADING_RE.search(lowered):
        return PROS
    if _CONS_HEADING_RE.search(lowered):
        return CONS
    return None


def _section_entries(heading: Tag) -> List[str]:
    entries: List[str] = []
    node = heading.find_next_sibling()
    while isinstance(node, Tag) and node.name not in _SECTION_HEADINGS:
        if node.name in {"ul", "ol"}:
            entries.extend(node_text(item) for item in node.find_all("li"))
        elif node.name == "p":
            entries.append(node_text(node))
        node = node.find_next_sibling()
    return entries


def extract_pros_cons(markup: str) -> Tuple[List[str], List[str]]:
    """Collect pros and cons from labelled sections, then from keyword scoring."""

    root = BeautifulSoup(f"<div>{markup or ''}</div>", PARSER).div
    buckets: Dict[str, List[str]] = {PROS: [], CONS: []}

    for heading in root.find_all(list(_SECTION_HEADINGS)):
        target = _heading_target(node_text(heading))
        if target is None:
            continue
        for entry in _section_entries(heading):
            classification = classify_pros_cons_text(entry) if target == "both" else target
            if classification and entry:
                buckets[classification].append(entry)

    if not buckets[PROS] or not buckets[CONS]:
        for paragraph in root.find_all("p"):
            text = node_text(paragraph)
            classification = classify_pros_cons_text(text)
            if classification:
                buckets[classification].append(text)

    return (
        dedupe_casefold(buckets[PROS], limit=MAX_PROS_CONS),
        dedupe_casefold(buckets[CONS], limit=MAX_PROS_CONS),
    )


def is_affiliate_href(href: str) -> bool:
    lowered = href.lower()
    return any(domain in lowered for domain in AFFILIATE_DOMAINS)


def extract_affiliate_links(markup: str) -> List[AffiliateLink]:
    """Return up to five retailer links, deduplicated by URL without fragment."""

    root = BeautifulSoup(markup or "", PARSER)
    links: Dict[str, AffiliateLink] = {}
    for anchor in root.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if not href or not _ABSOLUTE_URL_RE.match(href) or not is_affiliate_href(href):
            continue
        label = anchor.select_one(".review-affiliate-text")
        text = node_text(label if label is not None else anchor)
        if _ASSOCIATES_RE.search(text):
            continue
        key = href.split("#", 1)[0]
        if key in links:
            continue
        title = text or clean_text(anchor.get("title")) or "Check availability"
        price = _PRICE_RE.search(text)
        links[key] = AffiliateLink(title=title, url=href, price=price.group(0) if price else None)
        if len(links) >= MAX_AFFILIATE_LINKS:
            break
    return list(links.values())


def detect_category_slug(soup: BeautifulSoup, fallback: str) -> str:
    """Prefer the ``category-*`` class of the first article element."""

    article = soup.find("article")
    if article is None:
        return fallback
    classes = article.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    for css_class in classes:
        if css_class.startswith("category-"):
            slug = css_class[len("category-"):]
            if slug and slug != "reviews":
                return slug
    return fallback


def spec_icon(label: str) -> Optional[str]:
    lowered = label.lower()
    for keywords, icon in SPEC_ICONS:
        if any(keyword in lowered for keyword in keywords):
            return icon
    return None


def _spec_card(label: str, value_markup: str) -> str:
    return (
        '<div class="review-spec-card">'
        f'<p class="review-spec-label">{html.escape(label)}</p>'
        f'<div class="review-spec-value">{value_markup}</div>'
        "</div>"
    )


def convert_spec_tables(root: Tag) -> int:
    """Replace small two-column tables with a grid of product detail cards."""

    converted = 0
    for table in root.find_all("table"):
        rows = table.find_all("tr")
        if not rows or len(rows) > MAX_SPEC_TABLE_ROWS:
            continue
        cards: List[str] = []
        for row in rows:
            cells = row.find_all(["td", "th"])
            if len(cells) != 2:
                break
            label = node_text(cells[0])
            value_markup = inner_html(cells[1]).strip()
            if not label or not value_markup:
                break
            cards.append(_spec_card(label, value_markup))
        else:
            replace_with_markup(table, f'<div class="review-spec-grid">{"".join(cards)}</div>')
            converted += 1
    return converted


def _definition_card(label: Tag, value: Tag) -> str:
    label_text = node_text(label)
    value_markup = inner_html(value).strip() or value.get_text().strip()
    classes = ["review-spec-card"]
    if re.search(r"rating|score|star", label_text, re.IGNORECASE):
        classes.append("review-spec-card--rating")
    icon = spec_icon(label_text)
    if icon:
        classes.append("review-spec-card--with-icon")
    icon_block = f'<div class="review-spec-icon">{icon}</div>' if icon else ""
    return (
        f'<div class="{" ".join(classes)}">{icon_block}'
        '<div class="review-spec-body">'
        f'<p class="review-spec-label">{html.escape(label_text)}</p>'
        f'<div class="review-spec-value">{value_markup}</div>'
        "</div></div>"
    )


def _is_definition_label(paragraph: Tag) -> bool:
    strong = paragraph.find("strong")
    if strong is None:
        return False
    text = strong.get_text().strip()
    return 0 < len(text) <= MAX_DEFINITION_LABEL_LENGTH


def convert_definition_pairs(root: Tag) -> int:
    """Turn runs of bold label paragraphs followed by value paragraphs into cards."""

    paragraphs = root.find_all("p")
    pairs: List[Tuple[Tag, Tag]] = []
    converted = 0

    def flush() -> None:
        nonlocal converted
        if len(pairs) >= MIN_DEFINITION_PAIRS:
            cards = "".join(_definition_card(label, value) for label, value in pairs)
            insert_markup_before(pairs[0][0], f'<div class="review-spec-grid">{cards}</div>')
            for label, value in pairs:
                label.extract()
                value.extract()
            converted += 1
        pairs.clear()

    index = 0
    while index < len(paragraphs):
        paragraph = paragraphs[index]
        following = paragraphs[index + 1] if index + 1 < len(paragraphs) else None
        if (
            following is not None
            and _is_definition_label(paragraph)
            and following.find("strong") is None
        ):
            pairs.append((paragraph, following))
            index += 2
            continue
        flush()
        index += 1
    flush()
    return converted


def wrap_responsive_embeds(root: Tag, soup: BeautifulSoup) -> None:
    for node in root.find_all(["iframe", "video"]):
        if not node.get("allowfullscreen"):
            node["allowfullscreen"] = "true"
        parent = node.parent
        if isinstance(parent, Tag) and has_class(parent, "review-embed"):
            continue
        node.wrap(soup.new_tag("div", attrs={"class": "review-embed"}))


def decorate_affiliate_links(root: Tag) -> None:
    for anchor in root.find_all("a"):
        href = str(anchor.get("href") or "")
        text = anchor.get_text()
        if not is_affiliate_href(href) and not AFFILIATE_CALL_TO_ACTION_RE.search(text):
            continue
        add_class(anchor, "review-affiliate-link")
        anchor["target"] = "_blank"
        anchor["rel"] = "noopener sponsored nofollow"
        label = text.strip() or "Check price"
        set_inner_markup(
            anchor,
            f'<span class="review-affiliate-icon">{AFFILIATE_ICON}</span>'
            f'<span class="review-affiliate-text">{html.escape(label)}</span>',
        )


def enhance_review_content(root: Tag, soup: BeautifulSoup) -> None:
    """Apply review presentation markup to the content below ``root``."""

    tables = convert_spec_tables(root)
    pairs = convert_definition_pairs(root)
    wrap_responsive_embeds(root, soup)
    decorate_affiliate_links(root)
    if tables or pairs:
        logger.debug("Converted %d spec tables and %d definition runs", tables, pairs)
