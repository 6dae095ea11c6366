"""
Smart Scribbler Backend — Gemini Service Unit Tests (Mocked)
==============================================================

What:  GeminiService against a mocked google-genai client.
How:   The lazily built client is replaced with a MagicMock whose
       aio.models.generate_content is an AsyncMock.

What we test:
    ✅ JSON notes are parsed and diagram prefixes stripped
    ✅ Images are sent as inline parts with their detected MIME type
    ✅ SDK errors, empty and malformed responses become LLMServiceError
    ✅ Diagram drawing returns the first inline image as a data URI
    ❌ Real API calls
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from scribbler.exceptions import LLMServiceError
from scribbler.services.gemini_service import (
    IMAGE_LEAD_TEXT,
    SYSTEM_INSTRUCTION,
    GeminiService,
    _strip_diagram_prefix,
)
from scribbler.services.image_service import ImageInput


def _service_with(response=None, side_effect=None) -> GeminiService:
    service = GeminiService(api_key="test-key")
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    client.aio.models.get = AsyncMock()
    service._client = client
    return service


def _text_response(payload) -> MagicMock:
    response = MagicMock()
    response.text = payload if isinstance(payload, str) else json.dumps(payload)
    return response


NOTES_JSON = {
    "title": "Photosynthesis",
    "sections": [
        {
            "heading": "Light reactions",
            "content": "Happen in the **thylakoid**.",
            "isElaborated": True,
            "diagrams": ["[DIAGRAM_DESCRIPTION]: Chloroplast with labelled thylakoids"],
        },
        {"heading": "Calvin cycle", "content": "Fixes CO2.", "isElaborated": None},
    ],
}


class TestAnalyzeNotes:

    @pytest.mark.asyncio
    async def test_text_notes_are_parsed(self):
        service = _service_with(_text_response(NOTES_JSON))

        result = await service.analyze_notes("photosynthesis notes")

        assert result.title == "Photosynthesis"
        assert len(result.sections) == 2
        first, second = result.sections
        assert first.is_elaborated is True
        assert first.diagrams == ["Chloroplast with labelled thylakoids"]
        assert first.diagram_images is None
        assert second.is_elaborated is False

        call = service.client.aio.models.generate_content.call_args
        assert call.kwargs["contents"] == ["Analyze these notes: photosynthesis notes"]
        config = call.kwargs["config"]
        assert config.system_instruction == SYSTEM_INSTRUCTION
        assert config.response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_images_sent_as_inline_parts(self, png_bytes, jpeg_bytes):
        service = _service_with(_text_response(NOTES_JSON))
        images = [
            ImageInput(filename="a.png", mime_type="image/png", data=png_bytes),
            ImageInput(filename="b.jpg", mime_type="image/jpeg", data=jpeg_bytes),
        ]

        await service.analyze_notes(images)

        contents = service.client.aio.models.generate_content.call_args.kwargs["contents"]
        assert contents[0] == IMAGE_LEAD_TEXT
        assert len(contents) == 3
        assert contents[1].inline_data.mime_type == "image/png"
        assert contents[2].inline_data.mime_type == "image/jpeg"
        assert contents[2].inline_data.data == jpeg_bytes

    @pytest.mark.asyncio
    async def test_sdk_error_wrapped(self):
        service = _service_with(side_effect=RuntimeError("quota exceeded"))

        with pytest.raises(LLMServiceError) as exc_info:
            await service.analyze_notes("notes")

        assert exc_info.value.context["error_type"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_empty_response_raises(self):
        service = _service_with(_text_response(""))

        with pytest.raises(LLMServiceError, match="empty result"):
            await service.analyze_notes("notes")

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self):
        service = _service_with(_text_response({"sections": "not a list"}))

        with pytest.raises(LLMServiceError, match="unexpected format"):
            await service.analyze_notes("notes")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        service = GeminiService(api_key="")

        assert service.configured is False
        with pytest.raises(LLMServiceError, match="GEMINI_API_KEY"):
            await service.analyze_notes("notes")


class TestGenerateDiagramImage:

    @staticmethod
    def _image_response(parts) -> MagicMock:
        response = MagicMock()
        response.candidates = [MagicMock()]
        response.candidates[0].content.parts = parts
        return response

    @pytest.mark.asyncio
    async def test_first_inline_image_returned(self, png_bytes):
        text_part = MagicMock(inline_data=None)
        image_part = MagicMock()
        image_part.inline_data.data = png_bytes
        image_part.inline_data.mime_type = "image/png"
        service = _service_with(self._image_response([text_part, image_part]))

        uri = await service.generate_diagram_image("A cell")

        assert uri.startswith("data:image/png;base64,")
        call = service.client.aio.models.generate_content.call_args
        assert "A cell" in call.kwargs["contents"][0]
        assert call.kwargs["config"].image_config.aspect_ratio == "16:9"

    @pytest.mark.asyncio
    async def test_text_only_answer_returns_none(self):
        service = _service_with(self._image_response([MagicMock(inline_data=None)]))

        assert await service.generate_diagram_image("A cell") is None

    @pytest.mark.asyncio
    async def test_no_candidates_returns_none(self):
        response = MagicMock()
        response.candidates = []
        service = _service_with(response)

        assert await service.generate_diagram_image("A cell") is None

    @pytest.mark.asyncio
    async def test_failure_raises(self):
        service = _service_with(side_effect=TimeoutError("deadline"))

        with pytest.raises(LLMServiceError):
            await service.generate_diagram_image("A cell")


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_reachable(self):
        service = _service_with()
        assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_unreachable(self):
        service = _service_with()
        service.client.aio.models.get.side_effect = RuntimeError("401")
        assert await service.health_check() is False

    @pytest.mark.asyncio
    async def test_not_configured(self):
        assert await GeminiService(api_key="").health_check() is False


def test_strip_diagram_prefix():
    assert _strip_diagram_prefix("[DIAGRAM_DESCRIPTION]: A graph") == "A graph"
    assert _strip_diagram_prefix("  plain description ") == "plain description"
