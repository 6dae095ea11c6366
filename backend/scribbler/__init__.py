"""
Smart Scribbler Backend — Application Package Initializer
==========================================================

What: Marks the `scribbler` directory as a Python package.
Why:  Enables module imports like `from scribbler.config import settings`.
Who:  Used by uvicorn, pytest, and `python -m scribbler`.

Architecture Note:
    The backend is a thin request/response pipeline with three layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Pipeline)         │  ← Gemini, Google Docs, export
    ├─────────────────────────────────────┤
    │           Schemas (Data)            │  ← Pydantic ProcessedNotes
    └─────────────────────────────────────┘

    Nothing is persisted. A ProcessedNotes result lives for one request and
    is sent back to the browser, which posts it again to preview or export.
"""

__version__ = "1.0.0"
