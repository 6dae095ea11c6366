"""
Smart Scribbler Backend — Test Configuration (conftest.py)
============================================================

What:  Shared pytest fixtures for the test suite.
How:   Environment is set before any scribbler import so the Settings
       singleton never reads a developer's .env values for keys.

Fixtures:
    ├── png_bytes / jpeg_bytes:   real images generated with Pillow
    ├── png_data_uri:             the PNG as a data URI (diagram images)
    ├── sample_notes:             ProcessedNotes with markdown and a diagram
    ├── mock_llm:                 AsyncMock standing in for GeminiService
    └── test_client:              HTTPX AsyncClient bound to the ASGI app
"""

import io
import os

os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["APP_URL"] = "http://testserver"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from scribbler.schemas.notes import ProcessedNotes, Section
from scribbler.services.image_service import to_data_uri
from scribbler.services.llm_base import LLMService


def _image_bytes(fmt: str, size=(64, 36), color=(30, 90, 200)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture
def png_data_uri(png_bytes) -> str:
    return to_data_uri(png_bytes, "image/png")


@pytest.fixture
def sample_notes(png_data_uri) -> ProcessedNotes:
    """Two sections: one elaborated with a diagram, one plain."""
    return ProcessedNotes(
        title="Cell Biology: Week 3",
        sections=[
            Section(
                heading="Mitochondria",
                content=(
                    "The **powerhouse** of the cell.\n\n"
                    "- Produces *ATP*\n"
                    "- Has its own DNA\n"
                    "    - inherited maternally\n\n"
                    "1. Glycolysis\n"
                    "2. Krebs cycle\n"
                ),
                is_elaborated=True,
                diagrams=["Cross-section of a mitochondrion"],
                diagram_images=[png_data_uri],
            ),
            Section(
                heading="Summary",
                content="Energy flows from glucose to ATP.",
            ),
        ],
    )


@pytest.fixture
def mock_llm():
    """LLMService double: canned notes, every diagram drawn as a PNG."""
    llm = AsyncMock(spec=LLMService)
    llm.analyze_notes.return_value = ProcessedNotes(
        title="Notes",
        sections=[Section(heading="Intro", content="Hello")],
    )
    llm.generate_diagram_image.return_value = to_data_uri(_image_bytes("PNG"), "image/png")
    llm.health_check.return_value = True
    return llm


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient routed straight to the FastAPI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    from scribbler.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
