"""
Smart Scribbler Backend — Services Layer
==========================================

Service Inventory:
    - LLMService (abstract):  note analysis + diagram drawing interface
    - GeminiService:          google-genai implementation of LLMService
    - ImageService:           upload validation, data URI helpers
    - GoogleService:          OAuth handshake and Docs API text extraction
    - NotesService:           pipeline orchestrator (collect → analyze → draw)
    - markdown_render:        Markdown → sanitized HTML and layout blocks
    - preview_service:        HTML preview of ProcessedNotes
    - export_service:         PDF (ReportLab) and PPTX (python-pptx) builders

Each stateful service is exposed as a module-level singleton; routes import
the singleton and tests construct their own instance with mocks.
"""
