"""Markdown segmentation into typed layout blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

DEFAULT_TITLE = "Converted Document"

TITLE_MARKER = "# "
H2_MARKER = "## "
H3_MARKER = "### "


@dataclass(frozen=True)
class Heading:
    level: Literal[1, 2, 3]
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class BlankLine:
    """Vertical spacing marker; carries no text."""


Block = Union[Heading, Paragraph, BlankLine]
Document = tuple[Block, ...]


@dataclass(frozen=True)
class ParsedMarkdown:
    title: str
    blocks: Document


def strip_emphasis(text: str) -> str:
    """Remove ``**bold**`` and ``*italic*`` delimiters, keeping inner text.

    Scans left to right. A ``**`` with a later closing ``**`` is a bold span and
    its inner text is copied verbatim, so a ``*`` inside it is never treated as
    an italic delimiter. Otherwise a ``*`` with a later closing ``*`` is an
    italic span, closed by the nearest ``*``. Delimiters without a closing
    partner are kept as literal characters.
    """
    out: list[str] = []
    i = 0
    length = len(text)
    while i < length:
        if text.startswith("**", i):
            close = text.find("**", i + 2)
            if close != -1:
                out.append(text[i + 2 : close])
                i = close + 2
                continue
        if text[i] == "*":
            close = text.find("*", i + 1)
            if close != -1:
                out.append(text[i + 1 : close])
                i = close + 1
                continue
        out.append(text[i])
        i += 1
    return "".join(out)


def extract_title(lines: list[str]) -> tuple[str, list[str]]:
    """Split off a leading level-1 heading as the document title.

    Returns the title and the lines left for block segmentation.
    """
    if lines and lines[0].startswith(TITLE_MARKER):
        return lines[0][len(TITLE_MARKER) :].strip(), lines[1:]
    return DEFAULT_TITLE, lines


def segment_line(line: str) -> Block:
    if line.startswith(H3_MARKER):
        return Heading(level=3, text=line[len(H3_MARKER) :].strip())
    if line.startswith(H2_MARKER):
        return Heading(level=2, text=line[len(H2_MARKER) :].strip())
    if not line.strip():
        return BlankLine()
    return Paragraph(text=strip_emphasis(line))


def parse_markdown(markdown_text: str) -> ParsedMarkdown:
    """Parse markdown text into a title and an immutable block sequence."""
    lines = markdown_text.replace("\r\n", "\n").split("\n")
    title, body = extract_title(lines)
    return ParsedMarkdown(title=title, blocks=tuple(segment_line(line) for line in body))
