"""
Smart Scribbler Backend — Health Check Route
==============================================

Status levels:
    healthy:   Gemini reachable
    degraded:  Gemini key missing or the model lookup failed

Google OAuth is reported but never degrades the status: the image and text
paths work without it.
"""

import logging
import time

from fastapi import APIRouter

from scribbler import __version__
from scribbler.config import settings
from scribbler.schemas.notes import HealthResponse
from scribbler.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check() -> HealthResponse:
    if not gemini_service.configured:
        gemini_status = "not_configured"
    elif await gemini_service.health_check():
        gemini_status = "available"
    else:
        gemini_status = "unavailable"

    return HealthResponse(
        status="healthy" if gemini_status == "available" else "degraded",
        version=__version__,
        gemini=gemini_status,
        google_oauth="configured" if settings.google_oauth_configured else "not_configured",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
