"""Tests for upload compression and journal thumbnails."""

import base64
import io
import os

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from PIL import Image

from cockpit.vision.preprocess import (
    COMPRESS_MAX_WIDTH,
    compress_image,
    make_thumbnail,
    scaled_size,
)
from cockpit.vision.schema import ChartImage

from conftest import png_bytes


def _decode_data_url(url: str) -> Image.Image:
    header, b64 = url.split(",", 1)
    assert header == "data:image/jpeg;base64"
    return Image.open(io.BytesIO(base64.b64decode(b64)))


def _noisy_png(width: int, height: int) -> bytes:
    """PNG that does not compress well, so it crosses the 1 MB threshold."""
    img = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


class TestScaledSize:
    @pytest.mark.parametrize(
        "size,expected",
        [
            ((400, 300), (200, 150)),
            ((300, 400), (150, 200)),
            ((1000, 1000), (200, 200)),
            ((120, 80), (120, 80)),
        ],
    )
    def test_examples(self, size, expected):
        assert scaled_size(*size, 200) == expected

    @given(st.integers(1, 5000), st.integers(1, 5000))
    @settings(max_examples=100)
    def test_longer_side_clamped(self, w, h):
        sw, sh = scaled_size(w, h, 200)
        assert max(sw, sh) <= 200
        assert sw >= 1 and sh >= 1
        if max(w, h) <= 200:
            assert (sw, sh) == (w, h)


class TestThumbnail:
    def test_landscape(self):
        result = make_thumbnail(png_bytes(800, 400))
        assert result.ok
        assert result.error is None
        assert _decode_data_url(result.data_url).size == (200, 100)

    def test_transparent_png(self):
        result = make_thumbnail(png_bytes(50, 100, mode="RGBA"))
        img = _decode_data_url(result.data_url)
        assert img.size == (50, 100)
        assert img.mode == "RGB"

    def test_garbage_gives_empty_result(self):
        result = make_thumbnail(b"definitely not an image")
        assert not result.ok
        assert result.data_url == ""
        assert result.error


class TestCompressImage:
    def test_small_upload_untouched(self):
        img = ChartImage("chart.png", png_bytes(100, 100), "image/png")
        assert compress_image(img) is img

    def test_large_upload_resized_to_jpeg(self):
        raw = _noisy_png(2400, 600)
        assert len(raw) >= 1024 * 1024

        out = compress_image(ChartImage("eurusd.h4.png", raw, "image/png"))
        assert out.filename == "eurusd.h4.jpg"
        assert out.content_type == "image/jpeg"
        decoded = Image.open(io.BytesIO(out.data))
        assert decoded.format == "JPEG"
        assert decoded.size == (COMPRESS_MAX_WIDTH, 480)
