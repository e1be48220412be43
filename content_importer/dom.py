"""BeautifulSoup helpers shared by the content normalization stages."""
from __future__ import annotations

from typing import List

from bs4 import BeautifulSoup, Tag

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
PARSER = "html.parser"


def parse_fragment(markup: str) -> List[object]:
    """Parse ``markup`` and return its detached top-level nodes."""

    soup = BeautifulSoup(markup, PARSER)
    return [node.extract() for node in list(soup.contents)]


def inner_html(element: Tag) -> str:
    return element.decode_contents()


def node_text(element: Tag) -> str:
    return " ".join(element.get_text().split())


def has_class(element: Tag, name: str) -> bool:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return name in classes


def add_class(element: Tag, name: str) -> None:
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    if name not in classes:
        element["class"] = [*classes, name]


def is_within(element: Tag, root: Tag) -> bool:
    """Return whether ``element`` is still attached below ``root``."""

    return any(parent is root for parent in element.parents)


def closest_block(element: Tag, root: Tag) -> Tag:
    """Return the nearest enclosing ``div`` below ``root``, or the element."""

    if element.name == "div":
        return element
    parent = element.find_parent("div")
    if parent is None or parent is root or not is_within(parent, root):
        return element
    return parent


def replace_with_markup(element: Tag, markup: str) -> None:
    nodes = parse_fragment(markup)
    if not nodes:
        element.extract()
        return
    element.replace_with(*nodes)


def insert_markup_before(element: Tag, markup: str) -> None:
    for node in parse_fragment(markup):
        element.insert_before(node)


def set_inner_markup(element: Tag, markup: str) -> None:
    element.clear()
    for node in parse_fragment(markup):
        element.append(node)
