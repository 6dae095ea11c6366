"""
Smart Scribbler Backend — Google OAuth Routes
===============================================

Route Inventory:
    GET  /api/auth/url              consent URL for the popup
    GET  /auth/callback             OAuth redirect target; hands tokens to the opener
    POST /api/google-doc/content    plain text of a Google Doc

The callback answers with a tiny HTML page rather than JSON: it runs in the
popup window and posts {type: "GOOGLE_AUTH_SUCCESS", tokens} to the page
that opened it, restricted to this server's own origin.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse

from scribbler.exceptions import GoogleAuthError
from scribbler.schemas.notes import (
    AuthUrlResponse,
    ErrorResponse,
    GoogleDocContentRequest,
    GoogleDocContentResponse,
)
from scribbler.services.google_service import google_service, validate_doc_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Google"])

AUTH_SUCCESS_MESSAGE = "GOOGLE_AUTH_SUCCESS"

_CALLBACK_PAGE = """<!DOCTYPE html>
<html>
  <body>
    <script>
      if (window.opener) {{
        window.opener.postMessage({{ type: "{message_type}", tokens: {tokens} }}, window.location.origin);
        window.close();
      }} else {{
        window.location.href = "/";
      }}
    </script>
    <p>Authentication successful. This window should close automatically.</p>
  </body>
</html>
"""

_FAILURE_PAGE = """<!DOCTYPE html>
<html>
  <body>
    <p>{message}</p>
  </body>
</html>
"""


def _script_json(value) -> str:
    """JSON safe to embed inside a <script> element."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def render_callback_page(tokens: dict) -> str:
    return _CALLBACK_PAGE.format(message_type=AUTH_SUCCESS_MESSAGE, tokens=_script_json(tokens))


@router.get(
    "/api/auth/url",
    response_model=AuthUrlResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Google consent URL",
)
async def get_auth_url(
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    client_secret: Optional[str] = Query(default=None, alias="clientSecret"),
) -> AuthUrlResponse:
    # clientSecret is accepted for parity with clientId but the URL never carries it
    return AuthUrlResponse(url=google_service.build_auth_url(client_id))


@router.get("/auth/callback", response_class=HTMLResponse, include_in_schema=False)
async def auth_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
) -> HTMLResponse:
    """
    OAuth redirect target.

    Exchanges the code with the server's configured client credentials and
    returns the page that hands the token set to the opener window.
    """
    if error:
        logger.warning("OAuth consent returned error=%s", error)
        return HTMLResponse(_FAILURE_PAGE.format(message="Authentication was cancelled."), status_code=400)
    if not code:
        return HTMLResponse(_FAILURE_PAGE.format(message="Missing authorization code."), status_code=400)

    try:
        tokens = await google_service.exchange_code(code)
    except GoogleAuthError as e:
        logger.error("Error exchanging code for tokens: %s | %s", e.message, e.context)
        return HTMLResponse(_FAILURE_PAGE.format(message="Authentication failed"), status_code=500)

    return HTMLResponse(render_callback_page(tokens))


@router.post(
    "/api/google-doc/content",
    response_model=GoogleDocContentResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Read a Google Doc",
)
async def get_google_doc_content(body: GoogleDocContentRequest) -> GoogleDocContentResponse:
    doc_id = validate_doc_id(body.doc_id)
    content = await google_service.fetch_document_text(
        doc_id,
        body.tokens,
        client_id=body.client_id,
        client_secret=body.client_secret,
    )
    return GoogleDocContentResponse(content=content)
