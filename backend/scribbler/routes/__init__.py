"""
Smart Scribbler Backend — API Routes Package
==============================================

Route Inventory:
    - auth.py:    GET  /api/auth/url, GET /auth/callback,
                  POST /api/google-doc/content
    - notes.py:   POST /api/notes/images, /api/notes/text,
                  /api/notes/google-doc, /api/diagrams
    - export.py:  POST /api/preview, /api/export/pdf, /api/export/pptx
    - health.py:  GET  /health

Handlers stay thin: read the request, call a service, shape the response.
"""
