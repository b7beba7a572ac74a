"""Heading link resynchronization: rewrite link labels from the heading map"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from mdoutline.core.headings import HeadingMap, build_heading_map
from mdoutline.core.links import LinkSpan, extract_links
from mdoutline.core.models import Element
from mdoutline.core.utils.patterns import ANNEX_LABEL_RE, PREFIX_RE


logger = logging.getLogger(__name__)

HEADING_LINK_PREFIX = '#heading'


@dataclass
class RelinkReport:
    updated: list[LinkSpan] = field(default_factory=list)
    unchanged: list[LinkSpan] = field(default_factory=list)
    deprecated: list[LinkSpan] = field(default_factory=list)
    stale: bool = False

    def deprecated_lines(self) -> list[str]:
        return [f"heading: {s.url} / description: {s.text}" for s in self.deprecated]


def canonical_label(heading_text: str) -> str:
    """Short label for a link to a heading.

    "3.2. Methods" -> "Section 3.2", "Annex B: Glossary" -> "Annex B";
    anything else falls back to the stripped heading text.
    """
    m = PREFIX_RE.match(heading_text)
    if m:
        return f"Section {m.group(0).rstrip().rstrip('.')}"
    m = ANNEX_LABEL_RE.match(heading_text)
    if m:
        return m.group(0)[:-2]
    return heading_text.strip()


def rewrite_span(span: LinkSpan, label: str) -> None:
    """Replace the span's characters with label and re-link it to the span's target.

    The label takes the formatting and link title of the span's first character.
    """
    element = span.element
    style = element.style_at(span.start)
    element.delete_text(span.start, span.end_inclusive)
    element.insert_text(span.start, label, style)
    element.set_link_url(span.start, span.start + len(label) - 1, span.url)


def rewrite_links(
    links: list[LinkSpan],
    heading_map: HeadingMap,
    link_prefix: str = HEADING_LINK_PREFIX,
    ) -> RelinkReport:
    """Relabel heading links against heading_map; unknown targets are reported, not touched.

    Spans are applied per element in descending offset order so that each
    edit leaves the offsets of the spans still pending in that element valid.
    """
    report = RelinkReport(stale=heading_map.stale)
    by_element: dict[int, list[LinkSpan]] = defaultdict(list)

    for span in links:
        if not span.url.startswith(link_prefix):
            continue
        if span.url not in heading_map:
            report.deprecated.append(span)
            continue
        by_element[id(span.element)].append(span)

    for spans in by_element.values():
        for span in sorted(spans, key=lambda s: s.start, reverse=True):
            label = canonical_label(heading_map.get(span.url))
            if not label or label == span.text:
                report.unchanged.append(span)
                continue
            rewrite_span(span, label)
            report.updated.append(span)
            logger.debug("Relinked %s: %r -> %r", span.url, span.text, label)

    for line in report.deprecated_lines():
        logger.warning("Link could not be updated: %s", line)
    return report


def resync_heading_links(root: Element, link_prefix: str = HEADING_LINK_PREFIX) -> RelinkReport:
    """Rebuild every heading link label under root from its table of contents."""
    heading_map = build_heading_map(root)
    report = rewrite_links(extract_links(root), heading_map, link_prefix)
    logger.info(
        "Relinked %d link(s), %d unchanged, %d deprecated",
        len(report.updated), len(report.unchanged), len(report.deprecated),
    )
    return report
