"""Render modified paragraphs back to markdown and splice them into the original source"""

import re
from itertools import groupby
from pathlib import Path
from typing import Optional

from mdoutline.core.models import (
    Document, ElementType, InlineRaw, InlineStyle, Paragraph, TableRow, Text, iter_paragraphs,
)


ESCAPE_RE = re.compile(r'([\\`*_\[\]<])')
BACKTICKS_RE = re.compile(r'`+')
BLOCK_START_RE = re.compile(r'^(?:(\d{1,9})([.)])|([#>+-]))(?= |$)')
CLOSING_HASHES_RE = re.compile(r'(^|[ \t])(#+[ \t]*)$')
DEST_ESCAPE_RE = re.compile(r'([\\()])')
ANGLE_ESCAPE_RE = re.compile(r'([\\<>])')
TITLE_ESCAPE_RE = re.compile(r'([\\"])')


def _code_span(text: str) -> str:
    """Wrap text in a backtick fence longer than any backtick run it contains."""
    longest = max((len(m) for m in BACKTICKS_RE.findall(text)), default=0)
    fence = '`' * (longest + 1)
    pad = ' ' if text.startswith('`') or text.endswith('`') else ''
    return f"{fence}{pad}{text}{pad}{fence}"


def _styled(text: str, style: InlineStyle) -> str:
    out = _code_span(text) if style.code else ESCAPE_RE.sub(r'\\\1', text)
    if style.strike:
        out = f"~~{out}~~"
    if style.em:
        out = f"*{out}*"
    if style.strong:
        out = f"**{out}**"
    return out


def _link_target(url: str, title: Optional[str]) -> str:
    """Render `(destination "title")` so that it parses back to the same url and title."""
    if any(ch.isspace() for ch in url):
        dest = '<' + ANGLE_ESCAPE_RE.sub(r'\\\1', url) + '>'
    else:
        dest = DEST_ESCAPE_RE.sub(r'\\\1', url)
    if title:
        dest += ' "' + TITLE_ESCAPE_RE.sub(r'\\\1', title) + '"'
    return f"({dest})"


def render_text(text: Text) -> str:
    """Render a text run as inline markdown, one link per contiguous target."""
    parts = []
    for (url, title), runs in groupby(text.runs(), key=lambda r: (r[1].link_url, r[1].link_title)):
        inner = ''.join(_styled(t, s) for t, s in runs)
        parts.append(f"[{inner}]{_link_target(url, title)}" if url is not None else inner)
    return ''.join(parts)


def _escape_block_start(m: re.Match) -> str:
    """Escape a leading list, quote, or heading marker."""
    if m.group(1):
        return f"{m.group(1)}\\{m.group(2)}"
    return f"\\{m.group(3)}"


def render_inline(paragraph: Paragraph) -> str:
    """Render a paragraph's inline children, restoring its heading anchor if any."""
    out = ''.join(
        c.markup if isinstance(c, InlineRaw) else render_text(c)
        for c in paragraph.children
    )
    if paragraph.anchor:
        out = f"{out} {{#{paragraph.anchor}}}"
    return out


def _split_line(line: str, content: str) -> tuple[str, str]:
    """Return the (prefix, suffix) around content within a source line."""
    idx = line.rfind(content) if content else -1
    if idx < 0:
        body = line.rstrip('\r\n')
        stripped = body.lstrip()
        return body[:len(body) - len(stripped)], line[len(body):]
    return line[:idx], line[idx + len(content):]


def _line_ending(line: str) -> str:
    return line[len(line.rstrip('\r\n')):] or '\n'


def splice_paragraph(lines: list[str], paragraph: Paragraph) -> list[str]:
    """Return replacement source lines for a modified paragraph.

    Container prefixes (list markers, quote markers, heading hashes), the
    trailing part of each original line and its line ending are kept; only
    the inline content changes.
    """
    src = paragraph.source
    original = lines[src.start:src.end]
    content_lines = src.content.split('\n')
    n = min(len(content_lines), len(original))
    frames = [_split_line(original[i], content_lines[i]) for i in range(n)]
    rendered = render_inline(paragraph).split('\n')
    if '#' in frames[0][0]:
        # ATX heading: a trailing run of hashes would be read as its closing sequence
        rendered[-1] = CLOSING_HASHES_RE.sub(r'\1\\\2', rendered[-1])
    else:
        # not an ATX heading: no line may open a new block
        rendered = [BLOCK_START_RE.sub(_escape_block_start, r, count=1) for r in rendered]

    out = []
    for i, text in enumerate(rendered):
        frame = min(i, n - 1)
        prefix = frames[frame][0]
        suffix = frames[n - 1][1] if i == len(rendered) - 1 else _line_ending(original[frame])
        out.append(f"{prefix}{text}{suffix}")
    return out + original[n:]


def splice_row(line: str, row: TableRow) -> str:
    """Return the source line of a table row with its modified cells re-rendered.

    Cells are located left to right in the original line; unmodified cells
    keep their bytes. Raises ValueError if a modified cell cannot be found.
    """
    out = []
    pos = 0
    for cell in row.children:
        source = cell.source.content.replace('|', '\\|')
        idx = line.find(source, pos)
        if idx < 0:
            if cell.modified:
                raise ValueError(f"Cannot locate table cell {cell.source.content!r} in {line!r}")
            continue
        out.append(line[pos:idx])
        out.append(render_inline(cell).replace('|', '\\|') if cell.modified else source)
        pos = idx + len(source)
    out.append(line[pos:])
    return ''.join(out)


def render_document(doc: Document) -> str:
    """Return the full markdown source of doc, re-rendering only modified paragraphs."""
    edits: dict[int, Paragraph] = {}
    for p in iter_paragraphs(doc.body):
        if p.modified and p.source is not None:
            edits.setdefault(p.source.start, p)

    out: list[str] = []
    i = 0
    while i < len(doc.lines):
        paragraph = edits.get(i)
        if paragraph is None:
            out.append(doc.lines[i])
            i += 1
        elif paragraph.parent is not None and paragraph.parent.type == ElementType.table_row:
            out.append(splice_row(doc.lines[i], paragraph.parent))
            i += 1
        else:
            out.extend(splice_paragraph(doc.lines, paragraph))
            i = paragraph.source.end
    return doc.frontmatter_raw + ''.join(out)


def write_document(doc: Document, path: Path | None = None) -> Path:
    """Write the rendered document to path (default: its source path)."""
    dest = path or doc.path
    dest.write_text(render_document(doc), encoding='utf-8', newline='')
    return dest
