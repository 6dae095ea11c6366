"""
Smart Scribbler Backend — Notes Routes
========================================

What:  Pipeline endpoints: one per input kind, plus single diagram drawing.
How:   Thin handlers; NotesService does the work and raises ScribblerError
       subclasses that the global handlers turn into JSON errors.

Route Inventory:
    POST /api/notes/images       multipart `files` (+ form generate_diagrams)
    POST /api/notes/text         {text, generateDiagrams}
    POST /api/notes/google-doc   {docUrl, tokens, clientId?, clientSecret?, generateDiagrams}
    POST /api/diagrams           {description} → {image}
"""

import logging
from typing import List

from fastapi import APIRouter, File, Form, UploadFile

from scribbler.schemas.notes import (
    DiagramRequest,
    DiagramResponse,
    ErrorResponse,
    GoogleDocNotesRequest,
    ProcessedNotes,
    TextNotesRequest,
)
from scribbler.services.notes_service import notes_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])

_ERRORS = {
    400: {"description": "Invalid or missing input", "model": ErrorResponse},
    503: {"description": "AI service unavailable", "model": ErrorResponse},
}


@router.post(
    "/notes/images",
    response_model=ProcessedNotes,
    responses=_ERRORS,
    summary="Elaborate photographed handwritten notes",
)
async def process_note_images(
    files: List[UploadFile] = File(default=[], description="Note photos (PNG, JPEG or WEBP)"),
    generate_diagrams: bool = Form(default=True),
) -> ProcessedNotes:
    """
    Validate the uploaded photos, send them to Gemini in one call and draw
    any diagrams it describes.
    """
    uploads = []
    try:
        for upload in files:
            content = await upload.read()
            uploads.append((upload.filename or "upload", content, upload.size))
    finally:
        for upload in files:
            await upload.close()

    logger.info(
        "Received %d image(s), %d bytes total",
        len(uploads),
        sum(len(c) for _, c, _ in uploads),
    )
    return await notes_service.process_images(uploads, generate_diagrams=generate_diagrams)


@router.post(
    "/notes/text",
    response_model=ProcessedNotes,
    responses=_ERRORS,
    summary="Elaborate typed notes",
)
async def process_note_text(body: TextNotesRequest) -> ProcessedNotes:
    return await notes_service.process_text(body.text, generate_diagrams=body.generate_diagrams)


@router.post(
    "/notes/google-doc",
    response_model=ProcessedNotes,
    responses={
        **_ERRORS,
        401: {"description": "Google sign-in expired", "model": ErrorResponse},
        502: {"description": "Google Docs API failed", "model": ErrorResponse},
    },
    summary="Elaborate notes from a Google Doc",
)
async def process_google_doc(body: GoogleDocNotesRequest) -> ProcessedNotes:
    return await notes_service.process_google_doc(
        body.doc_url,
        body.tokens,
        client_id=body.client_id,
        client_secret=body.client_secret,
        generate_diagrams=body.generate_diagrams,
    )


@router.post(
    "/diagrams",
    response_model=DiagramResponse,
    responses={503: _ERRORS[503]},
    summary="Draw one diagram from a description",
)
async def generate_diagram(body: DiagramRequest) -> DiagramResponse:
    image = await notes_service.llm.generate_diagram_image(body.description)
    return DiagramResponse(image=image)
