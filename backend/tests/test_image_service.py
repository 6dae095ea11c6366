"""
Smart Scribbler Backend — Image Service Unit Tests
====================================================

What we test:
    ✅ Extension allow-list
    ✅ Size limits (empty, Content-Length, actual bytes)
    ✅ Real format detection with Pillow (mislabelled and corrupt files)
    ✅ Batch rules (no files, too many files)
    ✅ Data URI helpers
"""

import io

import pytest
from PIL import Image

from scribbler.exceptions import ValidationError
from scribbler.services.image_service import (
    ImageService,
    parse_data_uri,
    to_data_uri,
)


@pytest.fixture
def service():
    return ImageService(max_file_size=1024 * 1024, max_files=3)


class TestValidateExtension:

    @pytest.mark.parametrize("name", ["note.png", "NOTE.JPG", "scan.jpeg", "photo.webp"])
    def test_allowed(self, service, name):
        assert service.validate_extension(name) == "." + name.rsplit(".", 1)[1].lower()

    @pytest.mark.parametrize("name", ["notes.pdf", "notes.gif", "noextension"])
    def test_rejected(self, service, name):
        with pytest.raises(ValidationError, match="is not supported"):
            service.validate_extension(name)


class TestValidateSize:

    def test_empty_file(self, service):
        with pytest.raises(ValidationError, match="empty"):
            service.validate_size(None, 0)

    def test_content_length_over_limit(self, service):
        with pytest.raises(ValidationError, match="too large"):
            service.validate_size(5 * 1024 * 1024, 100)

    def test_actual_size_over_limit(self, service):
        with pytest.raises(ValidationError, match="too large"):
            service.validate_size(None, 2 * 1024 * 1024)

    def test_within_limit(self, service):
        service.validate_size(1000, 1000)


class TestDetectMimeType:

    def test_png(self, service, png_bytes):
        assert service.detect_mime_type(png_bytes, "a.png") == "image/png"

    def test_jpeg_named_png(self, service, jpeg_bytes):
        assert service.detect_mime_type(jpeg_bytes, "a.png") == "image/jpeg"

    def test_not_an_image(self, service):
        with pytest.raises(ValidationError, match="not a valid image"):
            service.detect_mime_type(b"%PDF-1.4 definitely not a picture", "a.png")

    def test_unsupported_format(self, service):
        buffer = io.BytesIO()
        Image.new("RGB", (8, 8)).save(buffer, format="GIF")
        with pytest.raises(ValidationError, match="not supported"):
            service.detect_mime_type(buffer.getvalue(), "a.png")


class TestValidateImages:

    def test_batch(self, service, png_bytes, jpeg_bytes):
        images = service.validate_images([
            ("one.png", png_bytes, len(png_bytes)),
            ("two.jpg", jpeg_bytes, None),
        ])
        assert [i.mime_type for i in images] == ["image/png", "image/jpeg"]
        assert images[0].data == png_bytes

    def test_no_files(self, service):
        with pytest.raises(ValidationError, match="Please provide notes"):
            service.validate_images([])

    def test_too_many_files(self, service, png_bytes):
        uploads = [(f"{i}.png", png_bytes, None) for i in range(4)]
        with pytest.raises(ValidationError, match="Too many images") as exc_info:
            service.validate_images(uploads)
        assert exc_info.value.context["max_files"] == 3

    def test_one_bad_file_fails_batch(self, service, png_bytes):
        with pytest.raises(ValidationError):
            service.validate_images([
                ("ok.png", png_bytes, None),
                ("bad.png", b"garbage", None),
            ])


class TestDataUri:

    def test_encode_and_parse(self, png_bytes):
        uri = to_data_uri(png_bytes, "image/png")
        assert uri.startswith("data:image/png;base64,")
        assert parse_data_uri(uri) == ("image/png", png_bytes)

    def test_parse_rejects_plain_url(self):
        with pytest.raises(ValueError):
            parse_data_uri("https://example.com/diagram.png")
