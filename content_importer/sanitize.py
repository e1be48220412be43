"""Removal of legacy boilerplate from imported article markup."""
from __future__ import annotations

import logging

from bs4 import Tag

from .dom import closest_block, is_within, node_text

logger = logging.getLogger(__name__)

TABLE_OF_CONTENTS_SELECTORS = (
    ".ez-toc-container",
    ".ez-toc",
    '[class*="ez-toc"]',
    ".toc",
    ".toc-container",
    ".toc_widget",
    "#toc_container",
    '[id*="ez-toc"]',
    "[data-ez-toc-container]",
)

AUTHOR_BOX_SELECTORS = (
    ".simple-author-box",
    ".author-box",
    ".authorbox",
    ".author-bio",
    ".author-info",
    ".author-profile-card",
    ".saboxplugin-wrap",
    ".wp-block-author-profile",
    ".entry-author-info",
    ".author-wrapper",
)

SHARE_WIDGET_SELECTORS = (
    ".sharedaddy",
    ".jp-sharing-container",
    ".sharethis-inline-share-buttons",
    ".addtoany_share_save_container",
    ".addtoany_content",
    ".shared-post",
    ".share-icons",
    ".social-share",
    ".sow-social-media-button",
    ".wp-block-social-links",
    ".a2a_kit",
    ".blog-share",
)

BOILERPLATE_SELECTORS = (
    TABLE_OF_CONTENTS_SELECTORS + AUTHOR_BOX_SELECTORS + SHARE_WIDGET_SELECTORS
)

_LABEL_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6", "p", "strong")


def _remove_following_list(block: Tag) -> None:
    following = block.find_next_sibling()
    if isinstance(following, Tag) and following.name in {"ul", "ol"}:
        following.extract()


def sanitize_content(root: Tag) -> None:
    """Strip navigation, sharing, TOC and author-box markup below ``root``."""

    removed = 0
    for selector in BOILERPLATE_SELECTORS:
        for element in root.select(selector):
            if is_within(element, root):
                element.extract()
                removed += 1

    for element in root.find_all(list(_LABEL_TAGS)):
        if not is_within(element, root):
            continue
        text = node_text(element).lower()
        if not text:
            continue

        if text == "table of contents":
            closest_block(element, root).extract()
            removed += 1
        elif text.startswith("share this") or text == "related":
            block = closest_block(element, root)
            _remove_following_list(block)
            block.extract()
            removed += 1

    if removed:
        logger.debug("Removed %d boilerplate blocks", removed)
