"""
Smart Scribbler Backend — Image Upload Service
================================================

What:  Validates uploaded note photos and converts images to/from data URIs.
Why:   Gemini only accepts a handful of image formats, and sending it a
       mislabelled or corrupt file wastes a slow API call.
How:   Extension check, size check, then Pillow decodes the header to learn
       the real format. Nothing is written to disk; validated bytes are
       handed to Gemini as inline parts.
Who:   Called by NotesService for uploads; data URI helpers are used by the
       Gemini service (diagram output) and the export service (diagram input).

Validation order (cheapest first):
    1. Extension  — no bytes read
    2. Size       — length only
    3. Format     — Pillow reads the header
"""

import base64
import binascii
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from scribbler.config import settings
from scribbler.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Pillow format name → MIME type sent to Gemini
ALLOWED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=.-]+)*;base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImageInput:
    """A validated image ready to be sent to the model."""
    filename: str
    mime_type: str
    data: bytes


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    """Encode raw bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """
    Decode a base64 data URI into (mime_type, bytes).

    Raises:
        ValueError if the string is not a base64 data URI.
    """
    match = _DATA_URI_RE.match(uri.strip())
    if not match:
        raise ValueError("Not a base64 data URI")
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload: {e}")
    return match.group("mime") or "application/octet-stream", data


class ImageService:
    """Validates uploaded handwritten-note photos."""

    def __init__(self, max_file_size: Optional[int] = None, max_files: Optional[int] = None):
        self.max_file_size = max_file_size or settings.max_file_size
        self.max_files = max_files or settings.max_files

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="files",
                context={"filename": filename, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Content-Length is checked too because some clients send a header
        that disagrees with the body.
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="files")

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="files",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=(
                    f"File is too large ({actual_size / (1024 * 1024):.1f}MB). "
                    f"Maximum size is {max_mb:.0f}MB."
                ),
                field="files",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def detect_mime_type(self, content: bytes, filename: str) -> str:
        """
        Detect the real image format from the file header.

        Returns:
            MIME type for Gemini (e.g. "image/jpeg").
        Raises:
            ValidationError if Pillow cannot read it or the format is not allowed.
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                fmt = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.info("Rejected unreadable image %s: %s", filename, str(e))
            raise ValidationError(
                message=f"'{filename}' is not a valid image.",
                field="files",
                context={"filename": filename},
            )

        mime_type = ALLOWED_FORMATS.get(fmt or "")
        if mime_type is None:
            raise ValidationError(
                message=(
                    f"Image format '{fmt}' is not supported. "
                    f"The file must be a PNG, JPEG or WEBP image."
                ),
                field="files",
                context={"filename": filename, "detected_format": fmt},
            )
        return mime_type

    def validate_image(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> ImageInput:
        """Run every check on one upload and return it ready for Gemini."""
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        mime_type = self.detect_mime_type(content, filename)
        return ImageInput(filename=filename, mime_type=mime_type, data=content)

    def validate_images(
        self, uploads: List[Tuple[str, bytes, Optional[int]]]
    ) -> List[ImageInput]:
        """
        Validate a batch of (filename, content, content_length) uploads.

        Raises:
            ValidationError on an empty batch, too many files, or the first bad file.
        """
        if not uploads:
            raise ValidationError(
                message="Please provide notes via image or Google Doc",
                field="files",
            )
        if len(uploads) > self.max_files:
            raise ValidationError(
                message=f"Too many images. Upload at most {self.max_files} at a time.",
                field="files",
                context={"max_files": self.max_files, "received": len(uploads)},
            )

        images = [self.validate_image(name, content, length) for name, content, length in uploads]
        logger.info(
            "Validated %d image(s), %d bytes total",
            len(images),
            sum(len(i.data) for i in images),
        )
        return images


# ── Singleton Instance ────────────────────────────────────────────────────
image_service = ImageService()
