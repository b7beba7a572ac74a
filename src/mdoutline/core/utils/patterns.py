"""Heading text patterns shared by numbering and link rewriting"""

import re


# Leading outline number, e.g. "2.3.1. "
PREFIX_RE = re.compile(r'^[0-9.]+ ')

# H1 that opens an annex/appendix section, e.g. "Annex A:", "Appendix 1:"
ANNEX_RE = re.compile(r'^A\w*[xX] [0-9A-Z]:', re.ASCII)

# Annex marker as used in link labels, e.g. "Annex B: " -> "Annex B"
ANNEX_LABEL_RE = re.compile(r'^A\w*[xX] [0-9A-Z]: ', re.ASCII)

# Heading identifier suffix, e.g. "Introduction {#h.q1xuchg2smrk}"
ANCHOR_RE = re.compile(r'[ \t]*\{#([^}\s]+)\}[ \t]*$')


def is_annex_heading(text: str) -> bool:
    return ANNEX_RE.match(text) is not None
