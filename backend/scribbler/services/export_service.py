"""
Smart Scribbler Backend — PDF & PowerPoint Export
===================================================

What:  Builds the downloadable document from ProcessedNotes.
How:   PDF with ReportLab platypus (A4, flowables laid out by the engine);
       PPTX with python-pptx (16:9, blank layout, text boxes placed by hand).
       Both read section content through markdown_blocks() so headings,
       lists and emphasis survive the conversion.
Who:   Called by the /api/export/* routes.

Layout (PPTX, inches on a 10 × 5.625 slide):
    Title slide     title box   (1.0, 1.5)  8.0 × 1.0   44pt bold centred
    Section slide   heading     (0.5, 0.5)  9.0 × 0.5   28pt bold #363636
                    content     (0.5, 1.2)  9.0 × 3.0   14pt #666666
    Diagram slide   caption     (0.5, 0.3)  9.0 × 0.5   18pt bold
                    image       fitted in 9.0 × 4.3 below, centred
"""

import io
import logging
import re
from typing import List, Tuple
from urllib.parse import quote
from xml.sax.saxutils import escape

from PIL import Image as PILImage, UnidentifiedImageError
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.text import MSO_AUTO_SIZE, PP_ALIGN
from pptx.util import Emu, Inches, Pt
from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import HRFlowable, Image, Paragraph, Preformatted, SimpleDocTemplate, Spacer

from scribbler.exceptions import ExportError
from scribbler.schemas.notes import ProcessedNotes, Section
from scribbler.services.image_service import parse_data_uri
from scribbler.services.markdown_render import Block, markdown_blocks

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

# ── PDF geometry ──────────────────────────────────────────────────────────
PDF_MARGIN = 20 * mm
PDF_IMAGE_WIDTH = 170 * mm
PDF_IMAGE_HEIGHT = 95 * mm

# ── PPTX geometry ─────────────────────────────────────────────────────────
SLIDE_WIDTH = Inches(10)
SLIDE_HEIGHT = Inches(5.625)
BLANK_LAYOUT = 6
HEADING_COLOR = RGBColor(0x36, 0x36, 0x36)
CONTENT_COLOR = RGBColor(0x66, 0x66, 0x66)
DIAGRAM_BOX = (Inches(0.5), Inches(0.95), Inches(9), Inches(4.3))

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\'\x00-\x1f]')


# ══════════════════════════════════════════════════════════════════════════
# Filenames
# ══════════════════════════════════════════════════════════════════════════


def export_filename(title: str, ext: str) -> str:
    """
    Download filename from the notes title.

    Example:
        export_filename("Cell Biology: Week 3", "pdf") → "Cell_Biology_Week_3.pdf"
    """
    name = _UNSAFE_FILENAME_CHARS.sub("", (title or "").strip())
    name = re.sub(r"\s+", "_", name).strip("._")
    return f"{name or 'notes'}.{ext}"


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and RFC 5987 filename*."""
    fallback = filename.encode("ascii", "ignore").decode("ascii") or "notes"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


# ══════════════════════════════════════════════════════════════════════════
# Images
# ══════════════════════════════════════════════════════════════════════════


def decode_diagram(uri: str, export_format: str) -> Tuple[bytes, Tuple[int, int]]:
    """
    Data URI → (PNG or JPEG bytes, (width, height)).

    Both ReportLab and python-pptx read PNG and JPEG, so anything else
    (WEBP from an older client, for instance) is re-encoded as PNG.

    Raises:
        ExportError if the URI is not a readable image.
    """
    try:
        _, data = parse_data_uri(uri)
        with PILImage.open(io.BytesIO(data)) as img:
            size = img.size
            if img.format in ("PNG", "JPEG"):
                return data, size
            out = io.BytesIO()
            img.save(out, format="PNG")
            return out.getvalue(), size
    except (ValueError, UnidentifiedImageError, OSError) as e:
        logger.warning("Undecodable diagram image in %s export: %s", export_format, str(e))
        raise ExportError(
            message="A diagram image could not be read. Generate the notes again and retry.",
            export_format=export_format,
            context={"error_type": type(e).__name__},
        )


# ══════════════════════════════════════════════════════════════════════════
# PDF
# ══════════════════════════════════════════════════════════════════════════


def _pdf_styles() -> dict:
    base = getSampleStyleSheet()
    content = ParagraphStyle(
        "NoteContent",
        parent=base["BodyText"],
        fontSize=12,
        leading=16,
        spaceAfter=6,
        alignment=TA_LEFT,
        textColor=colors.HexColor("#333333"),
    )
    return {
        "title": ParagraphStyle(
            "NoteTitle",
            parent=base["Title"],
            fontSize=22,
            leading=28,
            spaceAfter=16,
            fontName="Helvetica-Bold",
        ),
        "heading": ParagraphStyle(
            "SectionHeading",
            parent=base["Heading1"],
            fontSize=16,
            leading=20,
            spaceBefore=14,
            spaceAfter=8,
            fontName="Helvetica-Bold",
            textColor=colors.HexColor("#363636"),
        ),
        "subheading": ParagraphStyle(
            "ContentHeading",
            parent=content,
            fontSize=13,
            leading=17,
            spaceBefore=8,
            fontName="Helvetica-Bold",
        ),
        "content": content,
        "bullet": ParagraphStyle("NoteBullet", parent=content, leftIndent=14, bulletIndent=4),
        "code": ParagraphStyle(
            "NoteCode",
            parent=base["Code"],
            fontSize=10,
            leading=13,
            backColor=colors.HexColor("#f4f4f4"),
            spaceAfter=6,
        ),
        "caption": ParagraphStyle(
            "DiagramCaption",
            parent=content,
            fontSize=9,
            textColor=colors.HexColor("#888888"),
        ),
    }


def _block_flowables(block: Block, styles: dict) -> list:
    if block.kind == "heading":
        return [Paragraph(block.markup or escape(block.text), styles["subheading"])]
    if block.kind in ("bullet", "number"):
        indent = 14 + 14 * block.level
        style = ParagraphStyle(
            f"NoteList{block.level}",
            parent=styles["bullet"],
            leftIndent=indent,
            bulletIndent=indent - 10,
        )
        marker = "•" if block.kind == "bullet" else f"{block.number}."
        return [Paragraph(block.markup or escape(block.text), style, bulletText=marker)]
    if block.kind == "code":
        return [Preformatted(block.text, styles["code"])]
    if block.kind == "rule":
        return [HRFlowable(width="100%", thickness=0.5, color=colors.HexColor("#cccccc"))]
    return [Paragraph(block.markup or escape(block.text), styles["content"])]


def _section_flowables(section: Section, styles: dict) -> list:
    story = [Paragraph(escape(section.heading), styles["heading"])]
    for block in markdown_blocks(section.content):
        story.extend(_block_flowables(block, styles))
    for uri in section.diagram_images or []:
        data, _ = decode_diagram(uri, "pdf")
        story.append(Spacer(1, 4 * mm))
        story.append(Image(io.BytesIO(data), width=PDF_IMAGE_WIDTH, height=PDF_IMAGE_HEIGHT))
        story.append(Paragraph("AI Generated Diagram", styles["caption"]))
    return story


def export_pdf(notes: ProcessedNotes) -> bytes:
    """
    Render notes as an A4 PDF.

    Raises:
        ExportError: a diagram is unreadable or ReportLab fails to lay out the story.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=PDF_MARGIN,
        rightMargin=PDF_MARGIN,
        topMargin=PDF_MARGIN,
        bottomMargin=PDF_MARGIN,
        title=notes.title,
    )
    styles = _pdf_styles()

    story = [Paragraph(escape(notes.title), styles["title"])]
    for section in notes.sections:
        story.extend(_section_flowables(section, styles))

    try:
        doc.build(story)
    except Exception as e:
        logger.error("PDF build failed for %r: %s", notes.title, str(e), exc_info=True)
        raise ExportError(
            message="Failed to build the PDF.",
            export_format="pdf",
            context={"error_type": type(e).__name__},
        )

    pdf = buffer.getvalue()
    logger.info("Exported PDF %r (%d sections, %d bytes)", notes.title, len(notes.sections), len(pdf))
    return pdf


# ══════════════════════════════════════════════════════════════════════════
# PPTX
# ══════════════════════════════════════════════════════════════════════════


def _add_textbox(slide, left, top, width, height):
    frame = slide.shapes.add_textbox(left, top, width, height).text_frame
    frame.word_wrap = True
    return frame


def _add_title_slide(prs, title: str) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
    frame = _add_textbox(slide, Inches(1), Inches(1.5), Inches(8), Inches(1))
    p = frame.paragraphs[0]
    p.text = title
    p.alignment = PP_ALIGN.CENTER
    p.font.size = Pt(44)
    p.font.bold = True


def _content_lines(content: str) -> List[Tuple[str, int, bool]]:
    """Markdown → (text, indent level, bold) lines for a slide body."""
    lines: List[Tuple[str, int, bool]] = []
    for block in markdown_blocks(content):
        if block.kind == "rule" or not block.text:
            continue
        if block.kind == "heading":
            lines.append((block.text, 0, True))
        elif block.kind == "bullet":
            lines.append((f"• {block.text}", block.level, False))
        elif block.kind == "number":
            lines.append((f"{block.number}. {block.text}", block.level, False))
        elif block.kind == "code":
            lines.extend((line, 1, False) for line in block.text.splitlines() if line.strip())
        else:
            lines.append((f"• {block.text}", 0, False))
    return lines


def _add_section_slide(prs, section: Section) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])

    heading = _add_textbox(slide, Inches(0.5), Inches(0.5), Inches(9), Inches(0.5)).paragraphs[0]
    heading.text = section.heading
    heading.font.size = Pt(28)
    heading.font.bold = True
    heading.font.color.rgb = HEADING_COLOR

    body = _add_textbox(slide, Inches(0.5), Inches(1.2), Inches(9), Inches(3))
    body.auto_size = MSO_AUTO_SIZE.TEXT_TO_FIT_SHAPE
    for i, (text, level, bold) in enumerate(_content_lines(section.content)):
        p = body.paragraphs[0] if i == 0 else body.add_paragraph()
        p.text = text
        p.level = min(level, 4)
        p.font.size = Pt(14)
        p.font.bold = bold
        p.font.color.rgb = CONTENT_COLOR


def _add_diagram_slide(prs, heading: str, uri: str) -> None:
    data, (px_w, px_h) = decode_diagram(uri, "pptx")
    slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])

    caption = _add_textbox(slide, Inches(0.5), Inches(0.3), Inches(9), Inches(0.5)).paragraphs[0]
    caption.text = f"{heading} - Diagram"
    caption.font.size = Pt(18)
    caption.font.bold = True
    caption.font.color.rgb = HEADING_COLOR

    box_left, box_top, box_w, box_h = DIAGRAM_BOX
    scale = min(box_w / px_w, box_h / px_h)
    width, height = Emu(int(px_w * scale)), Emu(int(px_h * scale))
    left = Emu(box_left + (box_w - width) // 2)
    top = Emu(box_top + (box_h - height) // 2)
    slide.shapes.add_picture(io.BytesIO(data), left, top, width=width, height=height)


def export_pptx(notes: ProcessedNotes) -> bytes:
    """
    Render notes as a 16:9 slide deck.

    One title slide, one slide per section, then one slide per diagram
    image directly after its section.
    """
    prs = Presentation()
    prs.slide_width = SLIDE_WIDTH
    prs.slide_height = SLIDE_HEIGHT

    _add_title_slide(prs, notes.title)
    for section in notes.sections:
        _add_section_slide(prs, section)
        for uri in section.diagram_images or []:
            _add_diagram_slide(prs, section.heading, uri)

    buffer = io.BytesIO()
    try:
        prs.save(buffer)
    except Exception as e:
        logger.error("PPTX save failed for %r: %s", notes.title, str(e), exc_info=True)
        raise ExportError(
            message="Failed to build the presentation.",
            export_format="pptx",
            context={"error_type": type(e).__name__},
        )

    pptx = buffer.getvalue()
    logger.info("Exported PPTX %r (%d slides, %d bytes)", notes.title, len(prs.slides), len(pptx))
    return pptx
