"""Unit tests for core/numbering.py"""

import pytest

from mdoutline.core.models import (
    Body, InlineRaw, Paragraph, ParagraphHeading, Text, iter_paragraphs,
)
from mdoutline.core.numbering import (
    CounterVector, HeadingNumberer, NumberingState, renumber_headings, replace_prefix,
)
from mdoutline.core.parse import parse_text


# --- helpers ---

def _body(*items: tuple[int, str]) -> Body:
    """Build a Body from (level, text) pairs; level 0 is a normal paragraph."""
    return Body([Paragraph([Text(text)], heading=ParagraphHeading(level)) for level, text in items])


def _texts(body: Body) -> list[str]:
    return [p.get_text() for p in iter_paragraphs(body)]


# --- CounterVector ---

def test_counter_advance_resets_deeper_levels():
    c = CounterVector()
    c.advance(1)
    c.advance(2)
    c.advance(3)
    assert c.advance(1) == "2. "
    assert c.counts == [2, 0, 0, 0, 0, 0]


def test_counter_advance_leaves_shallower_levels():
    c = CounterVector()
    c.advance(1)
    c.advance(2)
    assert c.advance(2) == "1.2. "
    assert c.counts[0] == 1


@pytest.mark.parametrize("level", [0, 7])
def test_counter_rejects_bad_level(level):
    with pytest.raises(ValueError):
        CounterVector().advance(level)


# --- replace_prefix ---

@pytest.mark.parametrize("before,prefix,after,edited", [
    ("Intro", "1. ", "1. Intro", True),
    ("1. Intro", "1. ", "1. Intro", False),
    ("3.4. Intro", "1.2. ", "1.2. Intro", True),
    ("Intro 2.1. text", "1. ", "1. Intro 2.1. text", True),
    ("2021 plan", "1. ", "1. plan", True),
])
def test_replace_prefix(before, prefix, after, edited):
    p = Paragraph([Text(before)], heading=ParagraphHeading.HEADING1)
    assert replace_prefix(p, prefix) is edited
    assert p.get_text() == after
    assert p.modified is edited


def test_replace_prefix_before_inline_atom():
    """A heading that opens with an image gets its prefix in a new leading run."""
    p = Paragraph([InlineRaw("![logo](logo.png)"), Text(" Title")], heading=ParagraphHeading.HEADING1)
    replace_prefix(p, "1. ")
    assert isinstance(p.children[0], Text)
    assert p.get_text() == "1.  Title"


# --- renumber_headings ---

def test_ordinal_prefixes():
    body = _body((1, "A"), (2, "A1"), (2, "A2"), (1, "B"), (1, "C"), (2, "C1"), (2, "C2"))
    renumber_headings(body)
    assert _texts(body) == [
        "1. A", "1.1. A1", "1.2. A2", "2. B", "3. C", "3.1. C1", "3.2. C2",
    ]


def test_counter_reset_after_new_h1():
    """After H1, H2, H3, H1 the next H2 restarts at .1"""
    body = _body((1, "A"), (2, "B"), (3, "C"), (1, "D"), (2, "E"), (3, "F"))
    renumber_headings(body)
    assert _texts(body) == ["1. A", "1.1. B", "1.1.1. C", "2. D", "2.1. E", "2.1.1. F"]


def test_six_levels():
    body = _body(*[(k, f"L{k}") for k in range(1, 7)])
    renumber_headings(body)
    assert _texts(body)[-1] == "1.1.1.1.1.1. L6"


def test_normal_paragraphs_untouched():
    body = _body((0, "Preface"), (1, "A"), (0, "1. Not a heading"), (1, "B"))
    report = renumber_headings(body)
    assert _texts(body) == ["Preface", "1. A", "1. Not a heading", "2. B"]
    assert report.headings == 2


def test_out_of_order_levels_use_stale_counters():
    body = _body((1, "A"), (3, "Deep"))
    renumber_headings(body)
    assert _texts(body) == ["1. A", "1.0.1. Deep"]


def test_annex_freezes_numbering():
    body = _body((1, "Intro"), (1, "Annex A: Foo"), (2, "Bar"), (1, "Later"))
    report = renumber_headings(body)
    assert _texts(body) == ["1. Intro", "Annex A: Foo", "Bar", "Later"]
    assert report.frozen_at == "Annex A: Foo"


@pytest.mark.parametrize("title", ["Appendix 1: Tables", "Annex B: Glossary", "AnneX Z: Misc"])
def test_annex_pattern_variants(title):
    body = _body((1, title), (2, "Sub"))
    renumber_headings(body)
    assert _texts(body) == [title, "Sub"]


@pytest.mark.parametrize("title", ["Annex: Foo", "Appendix AB: Foo", "annex A: Foo", "Annex a: Foo"])
def test_annex_lookalikes_are_numbered(title):
    body = _body((1, title))
    renumber_headings(body)
    assert _texts(body) == [f"1. {title}"]


def test_annex_pattern_only_applies_to_h1():
    body = _body((1, "A"), (2, "Annex A: Nested"), (2, "Next"))
    renumber_headings(body)
    assert _texts(body) == ["1. A", "1.1. Annex A: Nested", "1.2. Next"]


def test_numberer_state_machine_is_terminal():
    numberer = HeadingNumberer()
    annex = Paragraph([Text("Annex A: X")], heading=ParagraphHeading.HEADING1)
    after = Paragraph([Text("Y")], heading=ParagraphHeading.HEADING1)
    assert numberer.visit(annex) == NumberingState.frozen
    assert numberer.visit(after) == NumberingState.frozen
    assert after.get_text() == "Y"
    assert numberer.counters.counts == [0] * 6


def test_renumber_is_idempotent():
    doc = parse_text("# Intro\n\n## Scope\n\n# Methods\n")
    first = renumber_headings(doc.body)
    texts = _texts(doc.body)
    second = renumber_headings(doc.body)
    assert _texts(doc.body) == texts == ["1. Intro", "1.1. Scope", "2. Methods"]
    assert first.changed == 3
    assert second.changed == 0


def test_renumber_fixes_drifted_prefixes():
    doc = parse_text("# 2. Intro\n\n## 2.5. Scope\n\n# 1. Methods\n")
    report = renumber_headings(doc.body)
    assert _texts(doc.body) == ["1. Intro", "1.1. Scope", "2. Methods"]
    assert report.changed == 3


def test_headings_inside_block_quotes_are_numbered():
    doc = parse_text("# A\n\n> ## Quoted\n")
    renumber_headings(doc.body)
    assert _texts(doc.body) == ["1. A", "1.1. Quoted"]
