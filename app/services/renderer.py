"""PDF rendering of parsed markdown with ReportLab platypus."""

from __future__ import annotations

import re
from dataclasses import dataclass
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import Flowable, SimpleDocTemplate, Spacer
from reportlab.platypus import Paragraph as PdfParagraph

from app.core.errors import RenderError
from app.core.logging import get_logger
from app.services.markdown_parser import BlankLine, Document, Heading, Paragraph, parse_markdown

logger = get_logger(__name__)

PAGE_MARGIN = 50
BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
BODY_SIZE = 12
TITLE_SIZE = 24
HEADING_SIZES = {2: 18, 3: 16}

# One vertical unit is a body line.
LINE_UNIT = BODY_SIZE * 1.2
HALF_UNIT = LINE_UNIT / 2


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    title: str
    blocks: Document
    page_count: int


def _style(name: str, *, font: str, size: int, alignment: int = TA_LEFT) -> ParagraphStyle:
    return ParagraphStyle(
        name=name,
        fontName=font,
        fontSize=size,
        leading=size * 1.2,
        alignment=alignment,
        spaceBefore=0,
        spaceAfter=0,
    )


def create_pdf_styles() -> dict[str, ParagraphStyle]:
    """Paragraph styles keyed by role."""
    return {
        "title": _style("DocTitle", font=BOLD_FONT, size=TITLE_SIZE, alignment=TA_CENTER),
        "h2": _style("Heading2", font=BOLD_FONT, size=HEADING_SIZES[2]),
        "h3": _style("Heading3", font=BOLD_FONT, size=HEADING_SIZES[3]),
        "body": _style("Body", font=BODY_FONT, size=BODY_SIZE),
    }


# Leading spaces and every space after the first in a run. ReportLab collapses
# ordinary whitespace, so these become non-breaking spaces.
_EXTRA_SPACE = re.compile(r"^ |(?<= ) ")


def preserve_spacing(text: str) -> str:
    """Escape markup characters and keep indentation and repeated spaces."""
    return _EXTRA_SPACE.sub("&nbsp;", escape(text))


def build_story(title: str, blocks: Document, styles: dict[str, ParagraphStyle]) -> list[Flowable]:
    """Convert a title and block sequence into ReportLab flowables."""
    story: list[Flowable] = [
        PdfParagraph(escape(title), styles["title"]),
        Spacer(1, LINE_UNIT),
    ]

    for block in blocks:
        if isinstance(block, Heading):
            style = styles["h3"] if block.level == 3 else styles["h2"]
            story.append(Spacer(1, HALF_UNIT))
            story.append(PdfParagraph(escape(block.text), style))
            story.append(Spacer(1, HALF_UNIT))
        elif isinstance(block, BlankLine):
            story.append(Spacer(1, HALF_UNIT))
        elif isinstance(block, Paragraph):
            story.append(PdfParagraph(preserve_spacing(block.text), styles["body"]))

    return story


def render(markdown_text: str) -> RenderedDocument:
    """Render markdown text to an in-memory PDF.

    Raises:
        RenderError: If ReportLab fails while laying out or writing the document.
    """
    parsed = parse_markdown(markdown_text)
    styles = create_pdf_styles()
    story = build_story(parsed.title, parsed.blocks, styles)
    pages: list[int] = []

    def _count_page(canvas, _doc) -> None:
        pages.append(canvas.getPageNumber())

    with BytesIO() as buffer:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=LETTER,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title=parsed.title,
        )
        try:
            doc.build(story, onFirstPage=_count_page, onLaterPages=_count_page)
        except Exception as exc:
            logger.error("PDF build failed for '%s': %s", parsed.title, exc)
            raise RenderError(f"{type(exc).__name__}: {exc}") from exc
        content = buffer.getvalue()

    logger.info(
        "Rendered '%s': %d blocks, %d pages, %d bytes",
        parsed.title,
        len(parsed.blocks),
        len(pages),
        len(content),
    )
    return RenderedDocument(
        content=content,
        title=parsed.title,
        blocks=parsed.blocks,
        page_count=len(pages),
    )
