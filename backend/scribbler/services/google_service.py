"""
Smart Scribbler Backend — Google OAuth & Docs Service
=======================================================

What:  Builds the OAuth consent URL, exchanges the authorization code for
       tokens, and reads a Google Doc's text with the Docs API v1.
Why:   Lets users import notes they typed in Google Docs.
How:   Plain HTTPS calls with httpx to Google's OAuth and Docs endpoints.
       No session: the token set goes back to the browser (see the
       /auth/callback route) and comes back with every Docs request.

OAuth Flow:
    Browser ── GET /api/auth/url ──────────────▶ consent URL
    Browser ── popup ─▶ accounts.google.com ─▶ GET /auth/callback?code=...
    Server  ── POST oauth2.googleapis.com/token ─▶ tokens
    Popup   ── postMessage(GOOGLE_AUTH_SUCCESS, tokens) ─▶ opener window
    Browser ── POST /api/google-doc/content {docId, tokens} ─▶ text
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from scribbler.config import settings
from scribbler.exceptions import GoogleAuthError, GoogleDocsError, ValidationError

logger = logging.getLogger(__name__)

AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
DOCS_ENDPOINT = "https://docs.googleapis.com/v1/documents"

# Google document IDs are 44 chars today; anything 25+ in the URL is the ID
_DOC_ID_RE = re.compile(r"[-\w]{25,}")

# Refresh this many ms before the recorded expiry
_EXPIRY_SKEW_MS = 60_000


def extract_doc_id(doc_url: str) -> str:
    """
    Pull the document ID out of a Google Docs link (or accept a bare ID).

    Example:
        https://docs.google.com/document/d/1AbC...xyz/edit → "1AbC...xyz"

    Raises:
        ValidationError if no ID-shaped token is present.
    """
    match = _DOC_ID_RE.search(doc_url or "")
    if not match:
        raise ValidationError(message="Invalid Google Doc URL", field="docUrl")
    return match.group(0)


def validate_doc_id(doc_id: str) -> str:
    """
    Accept only a bare document ID.

    The ID becomes a path segment of the Docs request that carries the
    user's bearer token, so slashes, dots and query strings are rejected.

    Raises:
        ValidationError if the value is not entirely ID characters.
    """
    if not isinstance(doc_id, str) or not _DOC_ID_RE.fullmatch(doc_id):
        raise ValidationError(message="Invalid Google Doc ID", field="docId")
    return doc_id


def _text_from_elements(elements: List[Dict[str, Any]]) -> str:
    """Concatenate textRun content from structural elements in body order."""
    content = ""
    for element in elements or []:
        paragraph = element.get("paragraph")
        if paragraph:
            for el in paragraph.get("elements") or []:
                text_run = el.get("textRun")
                if text_run:
                    content += text_run.get("content", "")
            continue
        table = element.get("table")
        if table:
            for row in table.get("tableRows") or []:
                for cell in row.get("tableCells") or []:
                    content += _text_from_elements(cell.get("content") or [])
    return content


def extract_document_text(document: Dict[str, Any]) -> str:
    """
    Flatten a Docs API document resource into plain text.

    Paragraph text runs are joined in order; table cells are read row by row.
    """
    body = document.get("body") or {}
    return _text_from_elements(body.get("content") or [])


class GoogleService:
    """OAuth handshake and Docs API access. Stateless."""

    def __init__(self, timeout: float = 20.0):
        self.timeout = timeout

    def _credentials(
        self, client_id: Optional[str] = None, client_secret: Optional[str] = None
    ) -> Dict[str, str]:
        return {
            "client_id": client_id or settings.google_client_id,
            "client_secret": client_secret or settings.google_client_secret,
        }

    def build_auth_url(self, client_id: Optional[str] = None) -> str:
        """
        Build the Google consent screen URL.

        access_type=offline asks Google for a refresh token alongside the
        access token.
        """
        cid = client_id or settings.google_client_id
        if not cid:
            raise GoogleAuthError(
                message="Google sign-in is not configured on this server.",
                context={"reason": "missing_client_id"},
            )
        params = {
            "client_id": cid,
            "redirect_uri": settings.oauth_redirect_uri,
            "response_type": "code",
            "access_type": "offline",
            "scope": " ".join(settings.google_scopes_list),
        }
        return f"{AUTH_ENDPOINT}?{urlencode(params)}"

    async def _post_token(self, data: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(TOKEN_ENDPOINT, data=data)
        except httpx.HTTPError as e:
            logger.error("Token endpoint unreachable: %s", str(e))
            raise GoogleAuthError(
                message="Could not reach Google to complete sign-in.",
                context={"error_type": type(e).__name__},
            )

        if resp.status_code != 200:
            logger.warning(
                "Token endpoint rejected %s grant: %d %s",
                data.get("grant_type"),
                resp.status_code,
                resp.text[:200],
            )
            raise GoogleAuthError(context={"upstream_status": resp.status_code})

        try:
            tokens = resp.json()
        except ValueError:
            tokens = None
        if not isinstance(tokens, dict):
            logger.warning(
                "Token endpoint returned an unreadable %s response: %s",
                data.get("grant_type"),
                resp.text[:200],
            )
            raise GoogleAuthError(
                message="Google returned an unreadable sign-in response.",
                context={"reason": "invalid_token_response"},
            )
        expires_in = tokens.get("expires_in")
        if expires_in:
            tokens["expiry_date"] = int(time.time() * 1000) + int(expires_in) * 1000
        return tokens

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for a token set.

        Uses the server's configured client credentials; the callback has
        no way to know about per-request overrides.
        """
        creds = self._credentials()
        tokens = await self._post_token({
            "code": code,
            "client_id": creds["client_id"],
            "client_secret": creds["client_secret"],
            "redirect_uri": settings.oauth_redirect_uri,
            "grant_type": "authorization_code",
        })
        logger.info("OAuth code exchanged (scope=%s)", tokens.get("scope", ""))
        return tokens

    def needs_refresh(self, tokens: Dict[str, Any]) -> bool:
        """True when the access token is missing or past its expiry_date."""
        if not tokens.get("access_token"):
            return True
        expiry = tokens.get("expiry_date")
        if not expiry:
            return False
        try:
            return int(expiry) <= int(time.time() * 1000) + _EXPIRY_SKEW_MS
        except (TypeError, ValueError):
            return False

    async def refresh_access_token(
        self,
        tokens: Dict[str, Any],
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Return a token set with a fresh access token.

        The refresh_token is kept since Google does not resend it.
        """
        refresh_token = tokens.get("refresh_token")
        if not refresh_token:
            raise GoogleAuthError(
                message="Your Google session has expired. Please reconnect your Google account.",
                context={"reason": "no_refresh_token"},
            )
        creds = self._credentials(client_id, client_secret)
        fresh = await self._post_token({
            "refresh_token": refresh_token,
            "client_id": creds["client_id"],
            "client_secret": creds["client_secret"],
            "grant_type": "refresh_token",
        })
        logger.info("Refreshed Google access token")
        return {**tokens, **fresh, "refresh_token": fresh.get("refresh_token", refresh_token)}

    async def fetch_document_text(
        self,
        doc_id: str,
        tokens: Dict[str, Any],
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> str:
        """
        Fetch a document and return its body text.

        Raises:
            ValidationError: doc_id is not a bare document ID
            GoogleAuthError: no usable token
            GoogleDocsError: Docs API returned an error or was unreachable
        """
        validate_doc_id(doc_id)
        if self.needs_refresh(tokens):
            tokens = await self.refresh_access_token(tokens, client_id, client_secret)

        headers = {"Authorization": f"Bearer {tokens['access_token']}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{DOCS_ENDPOINT}/{doc_id}", headers=headers)
        except httpx.HTTPError as e:
            logger.error("Error fetching Google Doc %s: %s", doc_id, str(e))
            raise GoogleDocsError(context={"error_type": type(e).__name__})

        if resp.status_code != 200:
            logger.error(
                "Error fetching Google Doc %s: %d %s",
                doc_id,
                resp.status_code,
                resp.text[:200],
            )
            if resp.status_code == 404:
                message = "Google Doc not found. Check the link."
            elif resp.status_code in (401, 403):
                message = "You don't have access to this Google Doc."
            else:
                message = "Failed to fetch Google Doc"
            raise GoogleDocsError(message=message, status_code=resp.status_code)

        try:
            document = resp.json()
        except ValueError:
            logger.error("Google Doc %s returned a non-JSON body", doc_id)
            raise GoogleDocsError(status_code=resp.status_code, context={"reason": "invalid_json"})
        content = extract_document_text(document)
        logger.info("Fetched Google Doc %s (%d chars)", doc_id, len(content))
        return content


# ── Singleton Instance ────────────────────────────────────────────────────
google_service = GoogleService()
