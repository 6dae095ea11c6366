"""
Smart Scribbler Backend — Pydantic Request/Response Schemas
=============================================================

What:  Pydantic models defining the API contract between browser and backend.
Why:   Strict input validation, automatic serialization, and OpenAPI docs.
How:   Wire names are camelCase (isElaborated, diagramImages, docId) to match
       the JSON Gemini is asked to produce and what the browser client reads.
       Python code uses snake_case; `populate_by_name` accepts both.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Processed Notes: the one structured entity
# ══════════════════════════════════════════════════════════════════════════


class Section(CamelModel):
    """
    One heading of the elaborated notes.

    Why diagrams and diagram_images are separate lists:
        Gemini returns textual descriptions; the image model may decline to
        draw some of them, so diagram_images can be shorter than diagrams.
    """
    heading: str = Field(description="Section heading")
    content: str = Field(description="Elaborated or concise content in Markdown")
    is_elaborated: bool = Field(
        default=False,
        description="True when the section expands an underlined word or an empty heading",
    )
    diagrams: Optional[List[str]] = Field(
        default=None,
        description="Textual descriptions of diagrams found in the notes",
    )
    diagram_images: Optional[List[str]] = Field(
        default=None,
        description="Generated diagram images as data URIs",
    )

    @field_validator("is_elaborated", mode="before")
    @classmethod
    def null_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class ProcessedNotes(CamelModel):
    """
    What:  Result of one pipeline run: a title and ordered sections.
    Who:   Returned by the /api/notes/* endpoints; posted back to
           /api/preview and /api/export/* by the browser.
    """
    title: str = Field(description="Main title of the notes")
    sections: List[Section] = Field(default_factory=list)

    @property
    def diagram_count(self) -> int:
        return sum(len(s.diagrams or []) for s in self.sections)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class TextNotesRequest(CamelModel):
    """Plain text notes pasted by the user."""
    text: str = Field(description="Notes to analyze")
    generate_diagrams: bool = Field(default=True)


class GoogleDocNotesRequest(CamelModel):
    """
    Analyze a Google Doc the browser has OAuth tokens for.

    doc_url may be a full docs.google.com link or a bare document ID.
    """
    doc_url: str = Field(description="Google Doc link or document ID")
    tokens: Dict[str, Any] = Field(description="Token set from the OAuth popup")
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)
    generate_diagrams: bool = Field(default=True)


class GoogleDocContentRequest(CamelModel):
    """Body of POST /api/google-doc/content."""
    doc_id: str = Field(description="Google Doc document ID")
    tokens: Dict[str, Any] = Field(description="Token set from the OAuth popup")
    client_id: Optional[str] = Field(default=None)
    client_secret: Optional[str] = Field(default=None)


class DiagramRequest(CamelModel):
    description: str = Field(min_length=1, description="Diagram description to draw")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AuthUrlResponse(CamelModel):
    url: str = Field(description="Google consent screen URL to open in a popup")


class GoogleDocContentResponse(CamelModel):
    content: str = Field(description="Plain text of the document body")


class DiagramResponse(CamelModel):
    image: Optional[str] = Field(
        default=None,
        description="Data URI of the generated diagram, null if the model drew nothing",
    )


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid Google Doc URL",
            "details": {"field": "docUrl"},
            "request_id": "550e8400"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and container health checks.
    """
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    gemini: str = Field(description="Gemini status: available, unavailable, not_configured")
    google_oauth: str = Field(description="OAuth client: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
