"""
Tests for services/images.py

Test Coverage:
- Accepted formats and content sniffing
- Size limit, unsupported types, unreadable data
- Base64 / data URL decoding
"""

import base64

import pytest

from monkeygen.errors import InvalidInputError
from monkeygen.services.images import (
    decode_b64,
    load_base_image,
    load_base_image_b64,
    strip_data_url,
)
from tests.conftest import make_image_bytes


class TestLoadBaseImage:
    @pytest.mark.parametrize(
        "fmt, media_type",
        [("PNG", "image/png"), ("JPEG", "image/jpeg"), ("WEBP", "image/webp")],
    )
    def test_accepted_formats(self, fmt, media_type):
        image = load_base_image(make_image_bytes(fmt))
        assert image.media_type == media_type

    def test_media_type_is_sniffed(self):
        """A JPEG declared as PNG is recorded as JPEG"""
        image = load_base_image(make_image_bytes("JPEG"), "image/png")
        assert image.media_type == "image/jpeg"

    def test_empty_rejected(self):
        with pytest.raises(InvalidInputError, match="No image provided"):
            load_base_image(b"")

    def test_oversized_rejected(self, png_bytes):
        with pytest.raises(InvalidInputError, match="Max"):
            load_base_image(png_bytes, max_bytes=len(png_bytes) - 1)

    def test_default_limit_is_5mb(self, png_bytes):
        oversized = png_bytes + b"\0" * (5 * 1024 * 1024)
        with pytest.raises(InvalidInputError, match="Max 5MB"):
            load_base_image(oversized)

    def test_declared_type_outside_allowlist(self, png_bytes):
        with pytest.raises(InvalidInputError, match="Unsupported image type"):
            load_base_image(png_bytes, "image/svg+xml")

    def test_sniffed_type_outside_allowlist(self):
        with pytest.raises(InvalidInputError, match="Unsupported image type"):
            load_base_image(make_image_bytes("GIF"))

    def test_garbage_rejected(self):
        with pytest.raises(InvalidInputError, match="Could not read image"):
            load_base_image(b"definitely not an image")

    def test_fingerprint_depends_on_content(self):
        a = load_base_image(make_image_bytes(color=(1, 2, 3)))
        b = load_base_image(make_image_bytes(color=(1, 2, 3)))
        c = load_base_image(make_image_bytes(color=(9, 9, 9)))
        assert a.fingerprint == b.fingerprint
        assert a.fingerprint != c.fingerprint


class TestBase64:
    def test_strip_data_url(self):
        assert strip_data_url("data:image/png;base64,QUFB") == "QUFB"
        assert strip_data_url("QUFB") == "QUFB"

    def test_decode_data_url(self, png_bytes):
        encoded = "data:image/png;base64," + base64.b64encode(png_bytes).decode()
        assert decode_b64(encoded) == png_bytes

    def test_invalid_base64(self):
        with pytest.raises(InvalidInputError):
            decode_b64("not base64 !!!")

    def test_load_b64_missing(self):
        with pytest.raises(InvalidInputError, match="No image provided"):
            load_base_image_b64(None)

    def test_load_b64(self, png_b64):
        image = load_base_image_b64(png_b64, "image/png")
        assert image.b64 == png_b64
        assert image.data_url.startswith("data:image/png;base64,")
