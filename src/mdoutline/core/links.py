"""Hyperlink discovery: maximal same-target character runs across the document tree"""

from dataclasses import dataclass
from typing import Optional

from mdoutline.core.models import Element, ElementType, Text


@dataclass
class LinkSpan:
    """A linked character range inside one Text element, valid until that element is edited."""
    element: Text
    start: int
    end_inclusive: int
    url: str
    text: str


def _scan_text(element: Text) -> list[LinkSpan]:
    spans: list[LinkSpan] = []
    text = element.get_text()
    url: Optional[str] = None
    start = end = 0

    for ch in range(len(text)):
        current = element.get_link_url(ch)
        if current != url and url is not None:
            spans.append(LinkSpan(element, start, end, url, text[start:end + 1]))
        if current is not None and current != url:
            start = ch
        url = current
        end = ch

    # run still open at end of text
    if url is not None:
        spans.append(LinkSpan(element, start, end, url, text[start:end + 1]))
    return spans


def extract_links(element: Element) -> list[LinkSpan]:
    """Return every link span under element in document order, skipping the table of contents."""
    if element.type == ElementType.text:
        return _scan_text(element)

    links: list[LinkSpan] = []
    for child in getattr(element, 'children', ()):
        if child.type != ElementType.table_of_contents:
            links.extend(extract_links(child))
    return links
