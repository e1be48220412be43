"""Tests for FAQ detection across markup variants."""
from __future__ import annotations

import json
import unittest

from bs4 import BeautifulSoup

from content_importer.faqs import answer_paragraphs, extract_faqs, is_faq_heading


def _root(markup: str):
    soup = BeautifulSoup(f'<div id="root">{markup}</div>', "html.parser")
    return soup.find(id="root")


class ExplicitFaqSectionTests(unittest.TestCase):
    def test_reads_yoast_sections_and_removes_them(self) -> None:
        root = _root(
            """
            <h2>FAQ</h2>
            <div class="schema-faq">
              <div class="schema-faq-section">
                <strong class="schema-faq-question">Is fluoride safe?</strong>
                <p class="schema-faq-answer">Yes, in small amounts.</p>
              </div>
              <div class="schema-faq-section">
                <strong class="schema-faq-question">When should flossing start?</strong>
                <div class="schema-faq-answer"><p>Once teeth touch.</p><p>Ask your dentist.</p></div>
              </div>
            </div>
            <p>Closing paragraph.</p>
            """
        )

        extraction = extract_faqs(root)

        self.assertEqual(
            [(faq.question, faq.answer) for faq in extraction.faqs],
            [
                ("Is fluoride safe?", ["Yes, in small amounts."]),
                ("When should flossing start?", ["Once teeth touch.", "Ask your dentist."]),
            ],
        )
        self.assertEqual(extraction.heading, "FAQ")
        self.assertIsNone(root.select_one(".schema-faq-section"))
        self.assertIsNone(root.find("h2"))
        self.assertIn("Closing paragraph.", root.get_text())

    def test_wrapper_with_nested_sections_is_removed(self) -> None:
        root = _root(
            """
            <div class="faq-container">
              <div class="faq-block">
                <h3 class="faq-question">Do baby teeth matter?</h3>
                <div class="faq-answer">They hold space for adult teeth.</div>
              </div>
              <div class="faq-block">
                <h3 class="faq-question">Are sealants painful?</h3>
                <div class="faq-answer">No.</div>
              </div>
            </div>
            """
        )

        extraction = extract_faqs(root)

        self.assertEqual(len(extraction.faqs), 2)
        self.assertIsNone(root.select_one(".faq-container"))

    def test_section_without_answer_class_uses_paragraphs(self) -> None:
        root = _root(
            """
            <div class="faq-block">
              <h3 class="faq-question">What is a cavity?</h3>
              <p>A hole in the tooth.</p>
              <p>It needs a filling.</p>
            </div>
            """
        )

        extraction = extract_faqs(root)

        self.assertEqual(extraction.faqs[0].answer, ["A hole in the tooth.", "It needs a filling."])


class MicrodataAndPluginFaqTests(unittest.TestCase):
    def test_reads_schema_org_question_microdata(self) -> None:
        root = _root(
            """
            <div itemscope itemtype="https://schema.org/Question">
              <h3 itemprop="name">When is the first dental visit?</h3>
              <div itemprop="acceptedAnswer" itemscope itemtype="https://schema.org/Answer">
                <div itemprop="text"><p>By age one.</p></div>
              </div>
            </div>
            """
        )

        extraction = extract_faqs(root)

        self.assertEqual(extraction.faqs[0].question, "When is the first dental visit?")
        self.assertEqual(extraction.faqs[0].answer, ["By age one."])
        self.assertIsNone(root.select_one("[itemscope]"))

    def test_reads_rank_math_blocks_and_drops_leftovers(self) -> None:
        root = _root(
            """
            <div class="rank-math-faq">
              <div class="rank-math-list">
                <div class="rank-math-list-item">
                  <h3 class="rank-math-question">Can kids use mouthwash?</h3>
                  <div class="rank-math-answer"><p>After age six.</p></div>
                </div>
              </div>
            </div>
            <p>Body text.</p>
            """
        )

        extraction = extract_faqs(root)

        self.assertEqual(extraction.faqs[0].question, "Can kids use mouthwash?")
        self.assertEqual(extraction.faqs[0].answer, ["After age six."])
        self.assertIsNone(root.select_one(".rank-math-faq"))
        self.assertIn("Body text.", root.get_text())


class JsonLdFaqTests(unittest.TestCase):
    def test_reads_faq_page_from_graph(self) -> None:
        payload = json.dumps(
            {
                "@context": "https://schema.org",
                "@graph": [
                    {"@type": "WebPage", "name": "Ignored"},
                    {
                        "@type": "FAQPage",
                        "name": "Parent Questions",
                        "mainEntity": [
                            {
                                "@type": "Question",
                                "name": "Is thumb sucking harmful?",
                                "acceptedAnswer": {
                                    "@type": "Answer",
                                    "text": "<p>Usually not.</p><p>Stop by age four.</p>",
                                },
                            }
                        ],
                    },
                ],
            }
        )

        extraction = extract_faqs(_root("<p>Body</p>"), [payload])

        self.assertEqual(extraction.heading, "Parent Questions")
        self.assertEqual(extraction.faqs[0].answer, ["Usually not.", "Stop by age four."])

    def test_consumes_faq_scripts_inside_content(self) -> None:
        payload = json.dumps(
            {
                "@type": "FAQPage",
                "mainEntity": [
                    {
                        "@type": "Question",
                        "name": "Do I need X-rays?",
                        "acceptedAnswer": [{"text": "Sometimes."}, {"text": "Ask us."}],
                    }
                ],
            }
        )
        root = _root(f'<p>Body</p><script type="application/ld+json">{payload}</script>')

        extraction = extract_faqs(root)

        self.assertEqual(extraction.faqs[0].answer, ["Sometimes.", "Ask us."])
        self.assertIsNone(root.find("script"))

    def test_invalid_json_is_logged_and_ignored(self) -> None:
        with self.assertLogs("content_importer.faqs", level="WARNING"):
            extraction = extract_faqs(_root("<p>Body</p>"), ['{"@type": "FAQPage", broken'])

        self.assertEqual(extraction.faqs, [])

    def test_duplicate_questions_are_kept_once(self) -> None:
        payload = json.dumps(
            {
                "@type": "FAQPage",
                "mainEntity": [
                    {
                        "@type": "Question",
                        "name": "IS FLUORIDE SAFE?",
                        "acceptedAnswer": {"text": "Duplicate."},
                    }
                ],
            }
        )
        root = _root(
            '<div class="faq-block"><h3 class="faq-question">Is fluoride safe?</h3>'
            '<div class="faq-answer">Yes.</div></div>'
        )

        extraction = extract_faqs(root, [payload])

        self.assertEqual(len(extraction.faqs), 1)
        self.assertEqual(extraction.faqs[0].answer, ["Yes."])


class FaqHeadingTests(unittest.TestCase):
    def test_heading_only_is_captured_and_removed(self) -> None:
        root = _root("<h2>Common Questions About Braces</h2><p>Braces take time.</p>")

        extraction = extract_faqs(root)

        self.assertEqual(extraction.faqs, [])
        self.assertEqual(extraction.heading, "Common Questions About Braces")
        self.assertIsNone(root.find("h2"))

    def test_is_faq_heading(self) -> None:
        self.assertTrue(is_faq_heading("Frequently Asked Questions"))
        self.assertTrue(is_faq_heading("  FAQs  "))
        self.assertFalse(is_faq_heading("How to brush"))
        self.assertFalse(is_faq_heading(None))


class AnswerParagraphTests(unittest.TestCase):
    def test_plain_text_splits_on_newlines(self) -> None:
        self.assertEqual(answer_paragraphs("First line.\n\n  Second   line.\n"), [
            "First line.",
            "Second line.",
        ])

    def test_markup_splits_on_blocks_and_line_breaks(self) -> None:
        self.assertEqual(
            answer_paragraphs("Intro text<br>More text<ul><li>One</li><li>Two</li></ul>"),
            ["Intro text", "More text", "One", "Two"],
        )

    def test_empty_answers(self) -> None:
        self.assertEqual(answer_paragraphs(None), [])
        self.assertEqual(answer_paragraphs("   "), [])


if __name__ == "__main__":
    unittest.main()
