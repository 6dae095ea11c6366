"""
Smart Scribbler Backend — Notes Service (Pipeline Orchestrator)
=================================================================

What:  Runs one request through collect → analyze → draw diagrams.
Why:   Keeps the pipeline independent of HTTP so it can be tested with mocks.
How:   Composes ImageService, GoogleService and an LLMService.

Orchestration Flow:
    ┌──────────────┐    ┌──────────────┐    ┌──────────────────────┐
    │ Images       │───▶│              │    │ Diagram images       │
    │ (validated)  │    │ Gemini       │───▶│ (one call per        │
    ├──────────────┤    │ analyze      │    │  description, all in │
    │ Google Doc / │───▶│              │    │  parallel)           │
    │ text         │    └──────────────┘    └──────────────────────┘
    └──────────────┘

Design Decision:
    Stateless; the result is returned and forgotten. Diagram calls are
    independent, so they fan out with asyncio.gather and any failure fails
    the whole request (no partial results, no retries).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from scribbler.exceptions import ValidationError
from scribbler.schemas.notes import ProcessedNotes
from scribbler.services.gemini_service import gemini_service
from scribbler.services.google_service import GoogleService, extract_doc_id, google_service
from scribbler.services.image_service import ImageService, image_service
from scribbler.services.llm_base import LLMService

logger = logging.getLogger(__name__)

NO_INPUT_MESSAGE = "Please provide notes via image or Google Doc"


class NotesService:
    """
    Pipeline entry points, one per input kind.

    Dependencies default to the module singletons and can be replaced in tests.
    """

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        images: Optional[ImageService] = None,
        google: Optional[GoogleService] = None,
    ):
        self.llm = llm or gemini_service
        self.images = images or image_service
        self.google = google or google_service

    async def attach_diagram_images(self, notes: ProcessedNotes) -> ProcessedNotes:
        """
        Generate an image for every diagram description, concurrently.

        Images land in each section's diagram_images in description order;
        descriptions the model declined to draw are dropped.
        """
        jobs: List[Tuple[int, str]] = [
            (index, description)
            for index, section in enumerate(notes.sections)
            for description in (section.diagrams or [])
        ]
        if not jobs:
            return notes

        logger.info("Generating %d diagram image(s)", len(jobs))
        results = await asyncio.gather(
            *(self.llm.generate_diagram_image(description) for _, description in jobs)
        )

        images_by_section: Dict[int, List[str]] = {}
        for (index, _), image in zip(jobs, results):
            if image is not None:
                images_by_section.setdefault(index, []).append(image)

        for index, section in enumerate(notes.sections):
            if section.diagrams:
                section.diagram_images = images_by_section.get(index, [])

        drawn = sum(len(v) for v in images_by_section.values())
        if drawn < len(jobs):
            logger.warning("%d of %d diagram(s) came back without an image", len(jobs) - drawn, len(jobs))
        return notes

    async def _finish(self, notes: ProcessedNotes, generate_diagrams: bool) -> ProcessedNotes:
        if generate_diagrams:
            return await self.attach_diagram_images(notes)
        return notes

    async def process_images(
        self,
        uploads: List[Tuple[str, bytes, Optional[int]]],
        generate_diagrams: bool = True,
    ) -> ProcessedNotes:
        """
        Photos of handwritten notes → ProcessedNotes.

        Args:
            uploads: (filename, content, content_length) per uploaded file

        Raises:
            ValidationError: no files, too many, or an invalid image
            LLMServiceError: Gemini failed
        """
        images = self.images.validate_images(uploads)
        notes = await self.llm.analyze_notes(images)
        return await self._finish(notes, generate_diagrams)

    async def process_text(self, text: str, generate_diagrams: bool = True) -> ProcessedNotes:
        """Plain text (typed notes or a Google Doc body) → ProcessedNotes."""
        if not text or not text.strip():
            raise ValidationError(message=NO_INPUT_MESSAGE, field="text")
        notes = await self.llm.analyze_notes(text)
        return await self._finish(notes, generate_diagrams)

    async def process_google_doc(
        self,
        doc_url: str,
        tokens: Dict[str, Any],
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        generate_diagrams: bool = True,
    ) -> ProcessedNotes:
        """
        Google Doc link + OAuth tokens → ProcessedNotes.

        Raises:
            ValidationError: bad link, or the document has no text
            GoogleAuthError / GoogleDocsError: fetching the document failed
        """
        doc_id = extract_doc_id(doc_url)
        content = await self.google.fetch_document_text(
            doc_id, tokens, client_id=client_id, client_secret=client_secret
        )
        if not content.strip():
            raise ValidationError(
                message="The Google Doc is empty.",
                field="docUrl",
                context={"doc_id": doc_id},
            )
        return await self.process_text(content, generate_diagrams=generate_diagrams)


# ── Singleton Instance ────────────────────────────────────────────────────
notes_service = NotesService()
