"""Document tree: block containers, heading paragraphs, and character-attributed text runs"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Iterator, Optional


class ElementType(str, Enum):
    """Type tag carried by every element of the document tree"""
    body = "body"
    paragraph = "paragraph"
    text = "text"
    list = "list"
    list_item = "list_item"
    block_quote = "block_quote"
    table = "table"
    table_row = "table_row"
    table_of_contents = "table_of_contents"
    raw_block = "raw_block"
    inline_raw = "inline_raw"


class ParagraphHeading(IntEnum):
    """Paragraph heading level; NORMAL for body text"""
    NORMAL = 0
    HEADING1 = 1
    HEADING2 = 2
    HEADING3 = 3
    HEADING4 = 4
    HEADING5 = 5
    HEADING6 = 6


@dataclass(frozen=True)
class InlineStyle:
    """Formatting attributes of a single character."""
    link_url: Optional[str] = None
    link_title: Optional[str] = None
    strong: bool = False
    em: bool = False
    code: bool = False
    strike: bool = False

    def without_link(self) -> "InlineStyle":
        return replace(self, link_url=None, link_title=None)


PLAIN = InlineStyle()


class Element:
    """Base tree node. Containers override `children`; leaves have none."""
    type: ElementType

    def __init__(self):
        self.parent: Optional["Element"] = None

    @property
    def modified(self) -> bool:
        return False


class Text(Element):
    """A run of characters, each carrying its own InlineStyle.

    Offsets are character indices into get_text(). Every edit marks the run
    (and so its paragraph) as modified.
    """
    type = ElementType.text

    def __init__(self, text: str = "", style: InlineStyle = PLAIN):
        super().__init__()
        self._chars: list[str] = list(text)
        self._styles: list[InlineStyle] = [style] * len(text)
        self._modified = False

    @property
    def modified(self) -> bool:
        return self._modified

    def __len__(self) -> int:
        return len(self._chars)

    def __repr__(self) -> str:
        return f"Text({self.get_text()!r})"

    def get_text(self) -> str:
        return "".join(self._chars)

    def style_at(self, offset: int) -> InlineStyle:
        return self._styles[offset]

    def get_link_url(self, offset: int) -> Optional[str]:
        """Return the hyperlink target of the character at offset, or None."""
        return self._styles[offset].link_url

    def append(self, text: str, style: InlineStyle = PLAIN) -> None:
        """Extend the run while building it; does not mark it modified."""
        self._chars.extend(text)
        self._styles.extend([style] * len(text))

    def truncate(self, length: int) -> None:
        """Drop characters from length onwards while building; does not mark it modified."""
        del self._chars[length:]
        del self._styles[length:]

    def delete_text(self, start: int, end_inclusive: int) -> None:
        if start < 0 or end_inclusive >= len(self._chars) or start > end_inclusive:
            raise IndexError(f"Invalid range [{start}, {end_inclusive}] for text of length {len(self)}")
        del self._chars[start:end_inclusive + 1]
        del self._styles[start:end_inclusive + 1]
        self._modified = True

    def insert_text(self, offset: int, text: str, style: InlineStyle = PLAIN) -> None:
        if offset < 0 or offset > len(self._chars):
            raise IndexError(f"Offset {offset} out of range for text of length {len(self)}")
        self._chars[offset:offset] = list(text)
        self._styles[offset:offset] = [style] * len(text)
        if text:
            self._modified = True

    def set_link_url(self, start: int, end_inclusive: int, url: Optional[str]) -> None:
        if start < 0 or end_inclusive >= len(self._chars) or start > end_inclusive:
            raise IndexError(f"Invalid range [{start}, {end_inclusive}] for text of length {len(self)}")
        for i in range(start, end_inclusive + 1):
            style = self._styles[i]
            self._styles[i] = replace(style, link_url=url) if url is not None else style.without_link()
        self._modified = True

    def runs(self) -> Iterator[tuple[str, InlineStyle]]:
        """Yield maximal (text, style) runs of identically styled characters."""
        start = 0
        for i in range(1, len(self._chars) + 1):
            if i == len(self._chars) or self._styles[i] != self._styles[start]:
                yield "".join(self._chars[start:i]), self._styles[start]
                start = i


class InlineRaw(Element):
    """Opaque inline atom (image, raw HTML, hard break) kept as its markdown source."""
    type = ElementType.inline_raw

    def __init__(self, markup: str):
        super().__init__()
        self.markup = markup


class Container(Element):
    """An element with ordered children."""

    def __init__(self, children: Optional[list[Element]] = None):
        super().__init__()
        self.children: list[Element] = []
        for child in children or []:
            self.append_child(child)

    def append_child(self, child: Element) -> Element:
        child.parent = self
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: Element) -> Element:
        child.parent = self
        self.children.insert(index, child)
        return child

    def get_num_children(self) -> int:
        return len(self.children)

    def get_child(self, index: int) -> Element:
        return self.children[index]

    @property
    def modified(self) -> bool:
        return any(c.modified for c in self.children)


@dataclass
class SourceMap:
    """Where a paragraph came from: body line range and the inline source it was built from."""
    start: int
    end: int
    content: str


class Paragraph(Container):
    """A block of inline content; headings are paragraphs with a heading level."""
    type = ElementType.paragraph

    def __init__(
        self,
        children: Optional[list[Element]] = None,
        heading: ParagraphHeading = ParagraphHeading.NORMAL,
        anchor: Optional[str] = None,
        source: Optional[SourceMap] = None,
        ):
        super().__init__(children)
        self.heading = heading
        self.anchor = anchor
        self.source = source

    def __repr__(self) -> str:
        return f"Paragraph({self.heading.name}, {self.get_text()!r})"

    def get_heading(self) -> ParagraphHeading:
        return self.heading

    def is_heading(self) -> bool:
        return self.heading != ParagraphHeading.NORMAL

    def get_text(self) -> str:
        return "".join(c.get_text() for c in self.children if isinstance(c, Text))

    def leading_text(self) -> Text:
        """Return the first inline child as a Text, inserting an empty run if it is not one."""
        if self.children and isinstance(self.children[0], Text):
            return self.children[0]
        return self.insert_child(0, Text())


class Body(Container):
    type = ElementType.body


class ListElement(Container):
    type = ElementType.list


class ListItem(Container):
    type = ElementType.list_item


class BlockQuote(Container):
    type = ElementType.block_quote


class Table(Container):
    type = ElementType.table


class TableRow(Container):
    """One source line of a table; each child paragraph is a cell."""
    type = ElementType.table_row

    def __init__(self, children: Optional[list[Element]] = None, line: int = 0):
        super().__init__(children)
        self.line = line


class TableOfContents(Container):
    """Document-maintained outline; its children are the entry paragraphs in order."""
    type = ElementType.table_of_contents


class RawBlock(Element):
    """Non-traversable block (code, html, rule) carried through untouched."""
    type = ElementType.raw_block

    def __init__(self, kind: str):
        super().__init__()
        self.kind = kind


@dataclass
class Document:
    """A parsed markdown file: frontmatter source, body source lines, and the element tree."""
    path: Path
    body: Body
    lines: list[str]
    frontmatter_raw: str = ""
    frontmatter: dict[str, Any] = field(default_factory=dict)

    def get_body(self) -> Body:
        return self.body


def iter_elements(element: Element) -> Iterator[Element]:
    """Depth-first pre-order walk over element and all its descendants."""
    yield element
    for child in getattr(element, "children", ()):
        yield from iter_elements(child)


def iter_paragraphs(element: Element) -> Iterator[Paragraph]:
    """Yield every Paragraph under element in document order."""
    for el in iter_elements(element):
        if el.type == ElementType.paragraph:
            yield el


def find_element(element: Element, element_type: ElementType) -> Optional[Element]:
    """Return the first element of the given type in document order, or None."""
    return next((el for el in iter_elements(element) if el.type == element_type), None)
