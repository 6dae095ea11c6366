"""
Smart Scribbler Backend — Preview Rendering
=============================================

What:  Renders ProcessedNotes as the HTML fragment shown in the browser
       before download.
How:   Title and headings are escaped text; section content goes through
       render_markdown (sanitized). Diagram images are only emitted when they
       are image data URIs.
"""

import html
import logging
from typing import List

from scribbler.schemas.notes import ProcessedNotes, Section
from scribbler.services.markdown_render import render_markdown

logger = logging.getLogger(__name__)

DIAGRAM_LABEL = "AI Generated Diagram"
ELABORATED_BADGE = "Elaborated"


def _diagram_html(image: str) -> str:
    if not image.startswith("data:image/"):
        return ""
    return (
        '<figure class="diagram">'
        f'<img src="{html.escape(image, quote=True)}" alt="{DIAGRAM_LABEL}">'
        f"<figcaption>{DIAGRAM_LABEL}</figcaption>"
        "</figure>"
    )


def _section_html(section: Section) -> str:
    parts: List[str] = ['<section class="note-section">']
    badge = f' <span class="badge">{ELABORATED_BADGE}</span>' if section.is_elaborated else ""
    parts.append(f"<h2>{html.escape(section.heading)}{badge}</h2>")
    parts.append(f'<div class="content">{render_markdown(section.content)}</div>')
    for image in section.diagram_images or []:
        parts.append(_diagram_html(image))
    parts.append("</section>")
    return "".join(parts)


def render_preview(notes: ProcessedNotes) -> str:
    """ProcessedNotes → HTML fragment (title, sections, diagrams)."""
    body = "".join(_section_html(section) for section in notes.sections)
    logger.debug("Rendered preview for %r (%d sections)", notes.title, len(notes.sections))
    return (
        '<article class="notes-preview">'
        f"<h1>{html.escape(notes.title)}</h1>"
        f"{body}"
        "</article>"
    )
