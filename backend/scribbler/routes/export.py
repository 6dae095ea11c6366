"""
Smart Scribbler Backend — Preview & Export Routes
===================================================

The browser posts back the ProcessedNotes it received from /api/notes/*;
nothing is kept between requests.

Route Inventory:
    POST /api/preview        → text/html fragment
    POST /api/export/pdf     → application/pdf attachment
    POST /api/export/pptx    → .pptx attachment
"""

import logging

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, Response

from scribbler.schemas.notes import ErrorResponse, ProcessedNotes
from scribbler.services.export_service import (
    PDF_MEDIA_TYPE,
    PPTX_MEDIA_TYPE,
    content_disposition,
    export_filename,
    export_pdf,
    export_pptx,
)
from scribbler.services.preview_service import render_preview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Export"])

_ERRORS = {500: {"description": "Export failed", "model": ErrorResponse}}


@router.post("/preview", response_class=HTMLResponse, summary="Render notes as HTML")
async def preview(notes: ProcessedNotes) -> HTMLResponse:
    return HTMLResponse(render_preview(notes))


def _attachment(data: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )


# Document builders are CPU-bound; run them off the event loop
@router.post("/export/pdf", response_class=Response, responses=_ERRORS, summary="Download as PDF")
async def download_pdf(notes: ProcessedNotes) -> Response:
    data = await run_in_threadpool(export_pdf, notes)
    return _attachment(data, PDF_MEDIA_TYPE, export_filename(notes.title, "pdf"))


@router.post("/export/pptx", response_class=Response, responses=_ERRORS, summary="Download as PowerPoint")
async def download_pptx(notes: ProcessedNotes) -> Response:
    data = await run_in_threadpool(export_pptx, notes)
    return _attachment(data, PPTX_MEDIA_TYPE, export_filename(notes.title, "pptx"))
