"""
Smart Scribbler Backend — Google Gemini Service Implementation
================================================================

What:  Concrete LLM service using Google Gemini for note analysis and
       diagram image generation.
How:   One async google-genai client; analyze_notes() sends images or text
       with a fixed system instruction and a JSON response schema,
       generate_diagram_image() asks the image model for a 16:9 drawing.
Who:   Singleton used by NotesService and the /api/diagrams route.

Error Handling:
    Every SDK exception is logged with a short call ID and re-raised as
    LLMServiceError. No retry or circuit breaker: a failed call surfaces
    as a 503 and the user tries again.
"""

import logging
import time
import uuid
from typing import List, Optional, Union

from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from scribbler.config import settings
from scribbler.exceptions import LLMServiceError
from scribbler.schemas.notes import ProcessedNotes
from scribbler.services.image_service import ImageInput, to_data_uri
from scribbler.services.llm_base import LLMService

logger = logging.getLogger(__name__)


SYSTEM_INSTRUCTION = """
You are a "Smart Scribbler" assistant. Your task is to transform handwritten notes or digital documents into a professional, structured format.

Rules:
1. UNDERLINED WORDS: Identify words or phrases that are underlined for emphasis. Elaborate on these concepts significantly, providing detailed context, definitions, or examples.
2. EMPTY HEADINGS: If you find a heading or title with no content under it, generate concise but highly contextual information that fits the overall theme of the notes.
3. DIAGRAMS: If there are any diagrams, sketches, or charts, provide a detailed textual description of them. Start these descriptions with "[DIAGRAM_DESCRIPTION]: ".
4. CONCISENESS: For all other parts of the notes, keep the summary concise, scannable, and to the point.
5. STRUCTURE: Use Markdown for the output. Use clear headings (H1, H2, H3).
6. OUTPUT FORMAT: Return a JSON object with the following structure:
   {
     "title": "Main Title of the Notes",
     "sections": [
       {
         "heading": "Section Heading",
         "content": "Elaborated or concise content in Markdown",
         "isElaborated": boolean,
         "diagrams": ["Description of diagram 1", ...]
       }
     ]
   }
"""

IMAGE_LEAD_TEXT = "Analyze these handwritten notes according to the rules."

DIAGRAM_PROMPT = (
    "Create a professional, clean, technical diagram based on this description: "
    "{description}. Use a white background and clear lines."
)

# Mirrors ProcessedNotes minus diagramImages, which we fill in ourselves
NOTES_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "sections": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "heading": {"type": "STRING"},
                    "content": {"type": "STRING"},
                    "isElaborated": {"type": "BOOLEAN"},
                    "diagrams": {
                        "type": "ARRAY",
                        "items": {"type": "STRING"},
                    },
                },
                "required": ["heading", "content"],
            },
        },
    },
    "required": ["title", "sections"],
}

DIAGRAM_PREFIX = "[DIAGRAM_DESCRIPTION]:"


def _strip_diagram_prefix(description: str) -> str:
    text = description.strip()
    if text.upper().startswith(DIAGRAM_PREFIX):
        text = text[len(DIAGRAM_PREFIX):].strip()
    return text


class GeminiService(LLMService):
    """
    Google Gemini implementation of LLMService.

    The SDK client is built on first use so that importing this module
    (tests, health checks without a key) never requires GEMINI_API_KEY.
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._client: Optional[genai.Client] = None
        logger.info(
            "GeminiService initialized with model=%s, image_model=%s",
            settings.gemini_model,
            settings.gemini_image_model,
        )

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise LLMServiceError(
                    message="AI service is not configured. Set GEMINI_API_KEY and restart.",
                    context={"reason": "missing_api_key"},
                )
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=settings.gemini_timeout * 1000),
            )
        return self._client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    # ── Note analysis ─────────────────────────────────────────────────────

    def _build_contents(self, notes: Union[List[ImageInput], str]) -> list:
        if isinstance(notes, str):
            return [f"Analyze these notes: {notes}"]
        parts: list = [IMAGE_LEAD_TEXT]
        parts.extend(
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type)
            for image in notes
        )
        return parts

    async def analyze_notes(
        self, notes: Union[List[ImageInput], str]
    ) -> ProcessedNotes:
        """
        Send notes to Gemini and parse the JSON it returns.

        Flow:
            1. Build contents: lead text + inline image parts, or the text prompt
            2. generate_content with system instruction and response schema
            3. Validate the JSON into ProcessedNotes
            4. Clean "[DIAGRAM_DESCRIPTION]:" prefixes off diagram descriptions
        """
        call_id = str(uuid.uuid4())[:8]
        kind = "text" if isinstance(notes, str) else f"{len(notes)} image(s)"
        logger.info("[%s] Starting Gemini analysis of %s", call_id, kind)
        start_time = time.time()

        try:
            response = await self.client.aio.models.generate_content(
                model=settings.gemini_model,
                contents=self._build_contents(notes),
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=NOTES_RESPONSE_SCHEMA,
                ),
            )
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error("[%s] Gemini analysis failed: %s", call_id, str(e), exc_info=True)
            raise LLMServiceError(
                message="Failed to process notes. The AI service returned an error.",
                context={"call_id": call_id, "error_type": type(e).__name__},
            )

        duration_ms = (time.time() - start_time) * 1000
        raw = (response.text or "").strip()
        if not raw:
            logger.warning("[%s] Gemini returned an empty response", call_id)
            raise LLMServiceError(
                message="The AI service returned an empty result. Please try again.",
                context={"call_id": call_id},
            )

        try:
            result = ProcessedNotes.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error("[%s] Gemini returned malformed notes JSON: %s", call_id, str(e))
            raise LLMServiceError(
                message="The AI service returned notes in an unexpected format.",
                context={"call_id": call_id},
            )

        for section in result.sections:
            if section.diagrams:
                section.diagrams = [
                    d for d in (_strip_diagram_prefix(d) for d in section.diagrams) if d
                ]
            section.diagram_images = None

        logger.info(
            "[%s] Gemini analysis completed in %.0fms: %d section(s), %d diagram(s)",
            call_id,
            duration_ms,
            len(result.sections),
            result.diagram_count,
        )
        return result

    # ── Diagram images ────────────────────────────────────────────────────

    async def generate_diagram_image(self, description: str) -> Optional[str]:
        """
        Ask the image model for a 16:9 technical drawing.

        Returns the first inline image part as a data URI. The model may
        answer with text only (e.g. a refusal), in which case None.
        """
        call_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = await self.client.aio.models.generate_content(
                model=settings.gemini_image_model,
                contents=[DIAGRAM_PROMPT.format(description=description)],
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(aspect_ratio="16:9"),
                ),
            )
        except LLMServiceError:
            raise
        except Exception as e:
            logger.error("[%s] Diagram generation failed: %s", call_id, str(e), exc_info=True)
            raise LLMServiceError(
                message="Failed to generate a diagram image.",
                context={"call_id": call_id, "error_type": type(e).__name__},
            )

        duration_ms = (time.time() - start_time) * 1000
        candidates = response.candidates or []
        content = candidates[0].content if candidates else None
        for part in (content.parts if content and content.parts else []):
            inline = part.inline_data
            if inline is None or not inline.data:
                continue
            data = inline.data
            logger.info(
                "[%s] Diagram generated in %.0fms (%d bytes)", call_id, duration_ms, len(data)
            )
            return to_data_uri(data, inline.mime_type or "image/png")

        logger.warning("[%s] Image model returned no image for diagram", call_id)
        return None

    async def health_check(self) -> bool:
        """
        Check if the configured analysis model is reachable.

        How: a models.get call (metadata only, no token cost).
        """
        if not self.configured:
            return False
        try:
            await self.client.aio.models.get(model=settings.gemini_model)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
gemini_service = GeminiService()
