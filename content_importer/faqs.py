"""FAQ detection across the markup variants used by the legacy site.

Question/answer pairs are collected from, in order:

1. explicit FAQ containers (Yoast ``schema-faq`` blocks and generic
   ``faq-container``/``faq-block`` wrappers),
2. schema.org ``Question`` microdata,
3. Rank Math ``rank-math-question``/``rank-math-answer`` siblings,
4. JSON-LD ``FAQPage`` graphs,
5. headings that announce an FAQ section (captured as the FAQ heading only).

Consumed markup is removed from the content tree so the questions are not
rendered twice once the FAQ accordion is displayed.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .dom import HEADING_TAGS, PARSER, inner_html, is_within, node_text
from .models import FaqEntry
from .text import clean_text

logger = logging.getLogger(__name__)

FAQ_SECTION_SELECTOR = (
    ".schema-faq-section, .schema-faq-container, .schema-faq-wrap, "
    ".faq-container, .faq-block"
)
FAQ_QUESTION_SELECTOR = ".schema-faq-question, .faq-question"
FAQ_ANSWER_SELECTOR = ".schema-faq-answer, .faq-answer"
MICRODATA_QUESTION_SELECTOR = '[itemscope][itemtype="https://schema.org/Question"]'
RANK_MATH_LEFTOVER_SELECTOR = ".rank-math-faq, .rank-math-list, .rank-math-answer"
JSON_LD_SELECTOR = 'script[type="application/ld+json"]'

FAQ_HEADING_KEYWORDS = (
    "faq",
    "frequently asked",
    "common questions",
    "popular questions",
)

_BLOCK_TAGS = (
    "p",
    "li",
    "div",
    "ul",
    "ol",
    "blockquote",
    "section",
    "table",
    "tr",
) + HEADING_TAGS
_MARKUP_RE = re.compile(r"<[^>]+>")
_LINE_BREAK_RE = re.compile(r"\n+")
_FAQ_PAGE_RE = re.compile(r"faqpage", re.IGNORECASE)

Answer = Union[str, Sequence[str], None]


@dataclass
class FaqExtraction:
    faqs: List[FaqEntry] = field(default_factory=list)
    heading: Optional[str] = None


def is_faq_heading(text: Optional[str]) -> bool:
    normalised = clean_text(text).lower()
    if not normalised:
        return False
    return any(keyword in normalised for keyword in FAQ_HEADING_KEYWORDS)


def _html_paragraphs(node: Tag) -> List[str]:
    paragraphs: List[str] = []
    buffer: List[str] = []

    def flush() -> None:
        text = clean_text("".join(buffer))
        buffer.clear()
        if text:
            paragraphs.append(text)

    for child in node.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            buffer.append(str(child))
            continue
        if not isinstance(child, Tag):
            continue
        if child.name == "br":
            flush()
            continue
        if child.name not in _BLOCK_TAGS:
            buffer.append(child.get_text())
            continue
        flush()
        if child.find(list(_BLOCK_TAGS)):
            paragraphs.extend(_html_paragraphs(child))
        else:
            text = node_text(child)
            if text:
                paragraphs.append(text)
    flush()
    return paragraphs


def answer_paragraphs(raw: Optional[str]) -> List[str]:
    """Split an answer into paragraphs on line breaks or block elements."""

    if not raw:
        return []
    normalised = raw.replace("\r", "").strip()
    if not normalised:
        return []

    if not _MARKUP_RE.search(normalised):
        segments = (clean_text(segment) for segment in _LINE_BREAK_RE.split(normalised))
        return [segment for segment in segments if segment]

    snippet = BeautifulSoup(normalised, PARSER)
    paragraphs = _html_paragraphs(snippet)
    if paragraphs:
        return paragraphs
    fallback = clean_text(snippet.get_text())
    return [fallback] if fallback else []


def _as_list(value: object) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _first_string(node: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = node.get(key)
        if isinstance(value, str):
            return value
    return None


def _iter_json_ld_nodes(data: object) -> Iterator[dict]:
    if isinstance(data, list):
        nodes = data
    elif isinstance(data, dict):
        nodes = _as_list(data.get("@graph", [data]))
    else:
        nodes = []
    for node in nodes:
        if isinstance(node, dict):
            yield node


def _is_faq_page(node: dict) -> bool:
    return any(
        isinstance(item, str) and "faqpage" in item.lower()
        for item in _as_list(node.get("@type"))
    )


class _FaqCollector:
    def __init__(self, root: Tag) -> None:
        self._root = root
        self._seen: Set[str] = set()
        self.faqs: List[FaqEntry] = []
        self.heading: Optional[str] = None

    def add(self, question: Optional[str], answer: Answer) -> None:
        normalised_question = clean_text(question)
        if not normalised_question:
            return
        key = normalised_question.lower()
        if key in self._seen:
            return

        if isinstance(answer, str) or answer is None:
            paragraphs = answer_paragraphs(answer)
        else:
            paragraphs = [clean_text(item) for item in answer if clean_text(item)]
        if not paragraphs:
            return

        self.faqs.append(FaqEntry(question=normalised_question, answer=paragraphs))
        self._seen.add(key)

    def capture_heading(self, text: Optional[str]) -> None:
        if self.heading:
            return
        trimmed = clean_text(text)
        if trimmed:
            self.heading = trimmed

    def capture_heading_before(self, node: Tag) -> None:
        if self.heading:
            return
        for sibling in node.find_previous_siblings(list(HEADING_TAGS)):
            if is_faq_heading(sibling.get_text()):
                self.capture_heading(sibling.get_text())
                sibling.extract()
                return

    def attached(self, node: Tag) -> bool:
        return is_within(node, self._root)


def _answer_markup(node: Optional[Tag]) -> Optional[str]:
    if node is None:
        return None
    return inner_html(node) or node.get_text()


def _paragraph_markup(node: Tag) -> str:
    return "".join(str(paragraph) for paragraph in node.find_all("p"))


def _collect_faq_sections(root: Tag, collector: _FaqCollector) -> None:
    wrappers: List[Tag] = []
    for section in root.select(FAQ_SECTION_SELECTOR):
        if not collector.attached(section):
            continue
        if section.select_one(FAQ_SECTION_SELECTOR) is not None:
            # Wrapper around several sections; the nested ones are read below.
            collector.capture_heading_before(section)
            wrappers.append(section)
            continue
        collector.capture_heading_before(section)
        question = section.select_one(FAQ_QUESTION_SELECTOR)
        answer_node = section.select_one(FAQ_ANSWER_SELECTOR)
        if answer_node is not None:
            answer = _answer_markup(answer_node)
        else:
            answer = _paragraph_markup(section)
        collector.add(question.get_text() if question else None, answer)
        section.extract()

    for wrapper in wrappers:
        if collector.attached(wrapper):
            wrapper.extract()


def _collect_microdata(root: Tag, collector: _FaqCollector) -> None:
    for node in root.select(MICRODATA_QUESTION_SELECTOR):
        if not collector.attached(node):
            continue
        collector.capture_heading_before(node)
        question = node.select_one('[itemprop="name"]')
        answer_node = node.select_one('[itemprop="acceptedAnswer"] [itemprop="text"]')
        if answer_node is not None:
            answer = _answer_markup(answer_node)
        else:
            answer = _paragraph_markup(node)
        collector.add(question.get_text() if question else None, answer)
        node.extract()


def _collect_rank_math(root: Tag, collector: _FaqCollector) -> None:
    for question in root.select(".rank-math-question"):
        if not collector.attached(question):
            continue
        collector.capture_heading_before(question)
        answer_node = question.find_next_sibling(class_="rank-math-answer")
        collector.add(question.get_text(), _answer_markup(answer_node))
        if answer_node is not None:
            answer_node.extract()
        question.extract()

    for leftover in root.select(RANK_MATH_LEFTOVER_SELECTOR):
        if collector.attached(leftover):
            leftover.extract()


def _collect_json_ld(payloads: Iterable[str], collector: _FaqCollector) -> None:
    for raw in payloads:
        raw = (raw or "").strip()
        if not raw or not _FAQ_PAGE_RE.search(raw):
            continue
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("Failed to parse FAQ JSON-LD: %s", exc)
            continue

        for node in _iter_json_ld_nodes(data):
            if not _is_faq_page(node):
                continue
            collector.capture_heading(_first_string(node, "name", "headline"))
            for entity in _as_list(node.get("mainEntity")):
                if not isinstance(entity, dict):
                    continue
                question = _first_string(entity, "name", "headline")
                accepted = entity.get("acceptedAnswer")
                if isinstance(accepted, list):
                    texts = [
                        _first_string(item, "text", "description")
                        for item in accepted
                        if isinstance(item, dict)
                    ]
                    collector.add(question, "\n\n".join(text for text in texts if text))
                elif isinstance(accepted, dict):
                    collector.add(question, _first_string(accepted, "text", "description"))


def _collect_headings(root: Tag, collector: _FaqCollector) -> None:
    for heading in root.find_all(list(HEADING_TAGS)):
        if not collector.attached(heading):
            continue
        text = heading.get_text()
        if is_faq_heading(text):
            collector.capture_heading(text)
            heading.extract()


def extract_faqs(root: Tag, json_ld_payloads: Iterable[str] = ()) -> FaqExtraction:
    """Collect FAQ entries below ``root`` and remove the consumed markup.

    ``json_ld_payloads`` holds JSON-LD documents found elsewhere on the page;
    scripts still present below ``root`` are read as well.
    """

    collector = _FaqCollector(root)

    _collect_faq_sections(root, collector)
    _collect_microdata(root, collector)
    _collect_rank_math(root, collector)

    payloads = list(json_ld_payloads)
    for script in root.select(JSON_LD_SELECTOR):
        payload = script.string or script.get_text()
        if _FAQ_PAGE_RE.search(payload or ""):
            payloads.append(payload)
            script.extract()
    _collect_json_ld(payloads, collector)

    _collect_headings(root, collector)

    if collector.faqs:
        logger.debug("Extracted %d FAQ entries", len(collector.faqs))
    return FaqExtraction(faqs=collector.faqs, heading=collector.heading)
