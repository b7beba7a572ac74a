"""Heading map: heading fragment -> current text, read from the table of contents"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from mdoutline.core.models import (
    Element, ElementType, Paragraph, TableOfContents, Text, find_element,
)


logger = logging.getLogger(__name__)

STALE_TOC_TITLE = "Table of Contents out of date"
STALE_TOC_MESSAGE = (
    "Please update the Table of Contents in the document.\n"
    "(This can also be the result of hidden heading levels.)"
)


class MissingTableOfContentsError(LookupError):
    """The document has no table of contents to resolve heading links against."""


@dataclass
class TocEntry:
    url: Optional[str]
    text: str


@dataclass
class HeadingMap:
    """Fragment -> heading text, plus what it was checked against."""
    entries: dict[str, str] = field(default_factory=dict)
    toc: list[TocEntry] = field(default_factory=list)
    headings: list[str] = field(default_factory=list)

    @property
    def stale(self) -> bool:
        """True if TOC texts and actual heading texts differ in length or at any position."""
        toc_texts = [e.text.strip() for e in self.toc]
        return toc_texts != self.headings

    def get(self, url: str) -> Optional[str]:
        return self.entries.get(url)

    def __contains__(self, url: str) -> bool:
        return url in self.entries


def _first_text(paragraph: Paragraph) -> Optional[Text]:
    return next((c for c in paragraph.children if isinstance(c, Text)), None)


def read_toc(toc: TableOfContents) -> list[TocEntry]:
    """Read (url, text) from each TOC entry's first text run, dropping tab-delimited page numbers."""
    entries = []
    for child in toc.children:
        if child.type != ElementType.paragraph:
            continue
        run = _first_text(child)
        if run is None or not len(run):
            continue
        text = run.get_text().split('\t', 1)[0]
        entries.append(TocEntry(url=run.get_link_url(0), text=text))
    return entries


def collect_heading_texts(root: Element) -> list[str]:
    """Return the stripped text of every heading outside the table of contents, in order."""
    headings = []

    def _walk(element: Element) -> None:
        if element.type == ElementType.table_of_contents:
            return
        if element.type == ElementType.paragraph and element.is_heading():
            headings.append(element.get_text().strip())
        for child in getattr(element, 'children', ()):
            _walk(child)

    _walk(root)
    return headings


def build_heading_map(root: Element) -> HeadingMap:
    """Build the heading map from the first table of contents under root.

    Raises MissingTableOfContentsError if there is none. A stale table of
    contents is logged and still returned.
    """
    toc = find_element(root, ElementType.table_of_contents)
    if toc is None:
        raise MissingTableOfContentsError("No table of contents found in document")

    heading_map = HeadingMap(toc=read_toc(toc), headings=collect_heading_texts(root))
    for entry in heading_map.toc:
        if entry.url is not None:
            heading_map.entries[entry.url] = entry.text

    if heading_map.stale:
        logger.warning("%s: %d TOC entries vs %d headings",
                       STALE_TOC_TITLE, len(heading_map.toc), len(heading_map.headings))
    return heading_map

