"""Heading numbering: nested outline counters with an annex freeze"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from mdoutline.core.models import Element, Paragraph, ParagraphHeading, iter_paragraphs
from mdoutline.core.utils.patterns import PREFIX_RE, is_annex_heading


logger = logging.getLogger(__name__)

MAX_LEVEL = 6


class NumberingState(str, Enum):
    numbering = "numbering"
    frozen = "frozen"


@dataclass
class CounterVector:
    """Six outline counters; advancing level k zeroes every deeper level."""
    counts: list[int] = field(default_factory=lambda: [0] * MAX_LEVEL)

    def advance(self, level: int) -> str:
        """Increment counter `level` (1-6), reset deeper ones, and return its prefix."""
        if not 1 <= level <= MAX_LEVEL:
            raise ValueError(f"Heading level must be 1-{MAX_LEVEL}, got {level}")
        self.counts[level - 1] += 1
        for i in range(level, MAX_LEVEL):
            self.counts[i] = 0
        return self.prefix(level)

    def prefix(self, level: int) -> str:
        return ''.join(f"{c}." for c in self.counts[:level]) + ' '


@dataclass
class NumberingReport:
    headings: int = 0
    changed: int = 0
    frozen_at: Optional[str] = None


def replace_prefix(paragraph: Paragraph, new_prefix: str) -> bool:
    """Apply new_prefix to the paragraph's leading text; return True if it was edited.

    An existing leading run matching `[0-9.]+ ` is replaced, otherwise the
    prefix is inserted. An identical prefix leaves the paragraph untouched.
    """
    text = paragraph.leading_text()
    m = PREFIX_RE.match(text.get_text())
    if m:
        if m.group(0) == new_prefix:
            return False
        text.delete_text(0, m.end() - 1)
    text.insert_text(0, new_prefix)
    return True


class HeadingNumberer:
    """Single-use numbering pass over one document tree."""

    def __init__(self):
        self.counters = CounterVector()
        self.state = NumberingState.numbering
        self.report = NumberingReport()

    def visit(self, paragraph: Paragraph) -> NumberingState:
        """Number one paragraph; returns the state after visiting it."""
        level = paragraph.get_heading()
        if self.state == NumberingState.frozen or level == ParagraphHeading.NORMAL:
            return self.state

        text = paragraph.get_text()
        if level == ParagraphHeading.HEADING1 and is_annex_heading(text):
            logger.debug("Annex heading %r: numbering stops", text)
            self.state = NumberingState.frozen
            self.report.frozen_at = text
            return self.state

        prefix = self.counters.advance(int(level))
        self.report.headings += 1
        if replace_prefix(paragraph, prefix):
            self.report.changed += 1
            logger.debug("Renumbered %s %r -> %r", level.name, text, prefix)
        return self.state

    def run(self, root: Element) -> NumberingReport:
        for paragraph in iter_paragraphs(root):
            if self.visit(paragraph) == NumberingState.frozen:
                break
        return self.report


def renumber_headings(root: Element) -> NumberingReport:
    """Number every heading under root in document order until an annex begins."""
    report = HeadingNumberer().run(root)
    logger.info(
        "Numbered %d heading(s), %d changed%s",
        report.headings, report.changed,
        f", frozen at {report.frozen_at!r}" if report.frozen_at else "",
    )
    return report
