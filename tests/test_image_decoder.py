"""
Image Decoder Tests
===================
"""

import base64

import pytest

from stopmotion_agent.models.media import SourceImage
from stopmotion_agent.stream.image_decoder import (
    ImageDecodeError,
    decode_base64,
    decode_image,
    read_dimensions,
    validate_source_image,
)


class TestDecodeImage:

    def test_png(self, png_bytes):
        pixels = decode_image(png_bytes)

        assert pixels.shape == (6, 8, 3)

    def test_empty(self):
        with pytest.raises(ImageDecodeError):
            decode_image(b"")

    def test_corrupt(self, png_bytes):
        with pytest.raises(ImageDecodeError):
            decode_image(png_bytes[:20])

    def test_base64(self, png_bytes):
        data = decode_base64(base64.b64encode(png_bytes).decode())

        assert data == png_bytes
        assert decode_image(data).shape[:2] == (6, 8)

    def test_bad_base64(self):
        with pytest.raises(ImageDecodeError):
            decode_base64("not*base64")


class TestValidation:

    def test_validate_source_image(self, source_image):
        assert validate_source_image(source_image) == (6, 8)

    def test_validate_rejects_non_image(self):
        with pytest.raises(ImageDecodeError):
            validate_source_image(SourceImage(data=b"%PDF-1.7", media_type="image/png"))

    def test_read_dimensions(self, png_bytes):
        assert read_dimensions(png_bytes) == (6, 8)
        assert read_dimensions(b"garbage") is None
