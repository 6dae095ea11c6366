"""
Smart Scribbler Backend — Middleware Package
==============================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and every log call made
    while handling the request share the same ID. Responses pass back
    through the chain in reverse, picking up X-Request-ID on the way out.
"""
