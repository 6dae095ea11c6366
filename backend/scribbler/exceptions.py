"""
Smart Scribbler Backend — Custom Exception Hierarchy
======================================================

What:  Application-specific exceptions for the failure points of the pipeline.
Why:   Each exception maps to one HTTP status code and a user-facing message;
       global handlers in main.py turn them into JSON error responses.
How:   Each exception carries a message and an optional context dict.
       The message is safe to show to the user; the context is logged and
       returned as "details" only where it holds no secrets.

Exception Hierarchy:
    ScribblerError (base)
    ├── ValidationError   → 400 Bad Request (client can fix)
    ├── GoogleAuthError   → 401 Unauthorized (OAuth exchange/refresh failed)
    ├── GoogleDocsError   → 502 Bad Gateway (Docs API call failed)
    ├── LLMServiceError   → 503 Service Unavailable (Gemini failed)
    └── ExportError       → 500 Internal Server Error (PDF/PPTX build failed)

There is no retry anywhere: every failure is caught, logged and reported.
"""

from typing import Any, Dict, Optional


class ScribblerError(Exception):
    """
    Base exception for all Smart Scribbler application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ScribblerError):
    """
    Raised when client input fails validation.

    When:    No notes supplied, unsupported or corrupt image, too many files,
             a Google Doc link without a document ID.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class GoogleAuthError(ScribblerError):
    """
    Raised when the Google OAuth handshake cannot produce a usable token.

    When:    Authorization code exchange rejected, refresh rejected, or the
             client sent no access token at all.
    HTTP:    401 Unauthorized — the browser should reconnect its Google account.
    """

    def __init__(
        self,
        message: str = "Google authentication failed. Please reconnect your Google account.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GoogleDocsError(ScribblerError):
    """
    Raised when the Google Docs API call fails.

    When:    Document not found, permission denied, network failure.
    HTTP:    502 Bad Gateway — the upstream service failed, not our server.
    """

    def __init__(
        self,
        message: str = "Failed to fetch Google Doc",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["upstream_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class LLMServiceError(ScribblerError):
    """
    Raised when a Gemini call fails or returns something we cannot use.

    When:    API error, timeout, empty response, JSON that does not match
             the ProcessedNotes shape.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExportError(ScribblerError):
    """
    Raised when building the PDF or slide deck fails.

    When:    A diagram data URI cannot be decoded as an image, or the
             document builder raises while laying out content.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Failed to build the export file",
        export_format: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if export_format:
            ctx["format"] = export_format
        super().__init__(message=message, context=ctx)
        self.export_format = export_format
