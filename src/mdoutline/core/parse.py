"""File discovery, frontmatter extraction, and markdown-it tokenization into a document tree"""

import re
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml
from markdown_it import MarkdownIt

from mdoutline.core.models import (
    BlockQuote, Body, Container, Document, Element, InlineRaw, InlineStyle,
    ListElement, ListItem, PLAIN, Paragraph, ParagraphHeading, RawBlock,
    SourceMap, Table, TableOfContents, TableRow, Text,
)
from mdoutline.core.utils.patterns import ANCHOR_RE


FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)
# source lines split the way markdown-it counts them, endings kept
LINE_RE = re.compile(r'[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+\Z')
MD_EXTENSIONS = {'.md', '.mdx'}

TOC_START = '<!-- toc -->'
TOC_END = '<!-- /toc -->'

CONTAINERS = {
    'bullet_list_open':  ListElement,
    'ordered_list_open': ListElement,
    'list_item_open':    ListItem,
    'blockquote_open':   BlockQuote,
    'table_open':        Table,
    'tr_open':           TableRow,
}
CONTAINER_CLOSE = {
    'bullet_list_close', 'ordered_list_close', 'list_item_close', 'blockquote_close',
    'table_close', 'tr_close',
}
CELL_OPEN = {'th_open', 'td_open'}
LEAF_BLOCKS = {'fence': 'code', 'code_block': 'code', 'hr': 'hr', 'html_block': 'html'}
STYLE_FLAGS = {'strong': 'strong', 'em': 'em', 's': 'strike'}


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def _strip_frontmatter(text: str) -> tuple[dict[str, Any], str, str]:
    """Return (frontmatter_dict, frontmatter_source, body) with YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    if m:
        try:
            fm = yaml.safe_load(m.group(1)) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML frontmatter: {e}") from e
        if not isinstance(fm, dict):
            raise ValueError(f"Invalid YAML frontmatter: expected a mapping, got {type(fm).__name__}")
        return fm, text[:m.end()], text[m.end():]
    return {}, "", text


def discover_files(path: Path) -> list[Path]:
    """Return sorted .md/.mdx files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if path.suffix in MD_EXTENSIONS else []
    return sorted(p for p in path.rglob('*') if p.suffix in MD_EXTENSIONS)


def read_source(path: Path) -> str:
    """Read a markdown file keeping its line endings as they are on disk."""
    with path.open(encoding='utf-8', newline='') as f:
        return f.read()


def _image_markup(token) -> str:
    title = token.attrGet('title')
    suffix = f' "{title}"' if title else ''
    return f"![{token.content}]({token.attrGet('src')}{suffix})"


def _inline_children(inline) -> list[Element]:
    """Convert an inline token's children into Text runs and InlineRaw atoms."""
    children: list[Element] = []
    style: InlineStyle = PLAIN
    autolink = False

    def _text() -> Text:
        if not children or not isinstance(children[-1], Text):
            children.append(Text())
        return children[-1]

    for tok in inline.children or []:
        kind, _, edge = tok.type.rpartition('_')
        if autolink and tok.type == 'text':
            # <https://...> is never a heading link; keep it verbatim
            children.append(InlineRaw(f"<{tok.content}>"))
        elif tok.type == 'text':
            _text().append(tok.content, style)
        elif tok.type == 'code_inline':
            _text().append(tok.content, replace(style, code=True))
        elif tok.type == 'softbreak':
            _text().append('\n', style)
        elif tok.type == 'link_open' and tok.markup == 'autolink':
            autolink = True
        elif tok.type == 'link_open':
            style = replace(style, link_url=tok.attrGet('href'), link_title=tok.attrGet('title'))
        elif tok.type == 'link_close':
            autolink = False
            style = style.without_link()
        elif kind in STYLE_FLAGS and edge in ('open', 'close'):
            style = replace(style, **{STYLE_FLAGS[kind]: edge == 'open'})
        elif tok.type == 'hardbreak':
            children.append(InlineRaw('\\\n'))
        elif tok.type == 'image':
            children.append(InlineRaw(_image_markup(tok)))
        elif tok.type == 'html_inline':
            children.append(InlineRaw(tok.content))
        elif tok.content:
            _text().append(tok.content, style)
    return children


def _make_paragraph(open_tok, inline, line_map: tuple[int, int] | None = None) -> Paragraph:
    heading = ParagraphHeading.NORMAL
    if open_tok.type == 'heading_open':
        heading = ParagraphHeading(int(open_tok.tag[1:]))

    children = _inline_children(inline)
    anchor = None
    if heading and children and isinstance(children[-1], Text):
        last = children[-1]
        m = ANCHOR_RE.search(last.get_text())
        if m:
            anchor = m.group(1)
            last.truncate(m.start())
            if not len(last):
                children.pop()

    start, end = line_map or open_tok.map
    return Paragraph(
        children,
        heading=heading,
        anchor=anchor,
        source=SourceMap(start=start, end=end, content=inline.content),
    )


def build_tree(tokens: list, toc_start: str = TOC_START, toc_end: str = TOC_END) -> Body:
    """Arrange a markdown-it block token stream into a Body tree.

    Paragraphs between the TOC markers become the children of a single
    TableOfContents element, flattened regardless of list nesting. Each table
    cell becomes a paragraph under a TableRow. Raises ValueError if the TOC
    start marker is never closed.
    """
    body = Body()
    stack: list[Container] = [body]
    toc: TableOfContents | None = None
    i = 0

    while i < len(tokens):
        tok = tokens[i]

        if tok.type == 'html_block' and tok.content.strip() == toc_start and toc is None:
            toc = stack[-1].append_child(TableOfContents())
            stack.append(toc)
        elif tok.type == 'html_block' and tok.content.strip() == toc_end and stack[-1] is toc:
            stack.pop()
        elif tok.type in ('paragraph_open', 'heading_open'):
            stack[-1].append_child(_make_paragraph(tok, tokens[i + 1]))
            i += 2  # inline + close
        elif tok.type in CELL_OPEN:
            row = stack[-1]
            line_map = (row.line, row.line + 1) if isinstance(row, TableRow) else None
            row.append_child(_make_paragraph(tok, tokens[i + 1], line_map or tokens[i + 1].map))
            i += 2  # inline + close
        elif stack[-1] is toc and (tok.type in CONTAINERS or tok.type in CONTAINER_CLOSE):
            pass
        elif tok.type in CONTAINERS:
            container = stack[-1].append_child(CONTAINERS[tok.type]())
            if isinstance(container, TableRow):
                container.line = tok.map[0]
            stack.append(container)
        elif tok.type in CONTAINER_CLOSE:
            stack.pop()
        elif tok.type in LEAF_BLOCKS:
            stack[-1].append_child(RawBlock(LEAF_BLOCKS[tok.type]))
        i += 1

    if toc is not None and toc in stack:
        raise ValueError(f"Table of contents opened by {toc_start!r} is never closed by {toc_end!r}")
    return body


def parse_text(
    text: str,
    path: Path = Path('<string>'),
    parser_config: str = 'gfm-like',
    toc_start: str = TOC_START,
    toc_end: str = TOC_END,
    ) -> Document:
    """Parse markdown source into a Document."""
    frontmatter, fm_raw, body = _strip_frontmatter(text)
    tokens = _make_parser(parser_config).parse(body)
    return Document(
        path=path,
        body=build_tree(tokens, toc_start, toc_end),
        lines=LINE_RE.findall(body),
        frontmatter_raw=fm_raw,
        frontmatter=frontmatter,
    )


def parse_file(
    path: Path,
    parser_config: str = 'gfm-like',
    toc_start: str = TOC_START,
    toc_end: str = TOC_END,
    ) -> Document:
    """Parse a single markdown file into a Document."""
    raw = read_source(path)
    return parse_text(raw, path, parser_config, toc_start, toc_end)
