from __future__ import annotations

import base64
import io
import os
from dataclasses import dataclass

from PIL import Image

from .schema import ChartImage

COMPRESS_THRESHOLD_BYTES = 1024 * 1024
COMPRESS_MAX_WIDTH = 1920
COMPRESS_QUALITY = 80


def _flatten_rgb(img: Image.Image) -> Image.Image:
    """JPEG has no alpha: paint transparent screenshots onto white."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        bg = Image.new("RGB", rgba.size, (255, 255, 255))
        bg.paste(rgba, mask=rgba.getchannel("A"))
        return bg
    return img.convert("RGB")


def _to_jpeg_bytes(img: Image.Image, quality: int) -> bytes:
    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue()


def compress_image(image: ChartImage) -> ChartImage:
    """
    Shrink large chart uploads before they go over the wire:
    - under 1 MB: sent untouched
    - otherwise cap width at 1920px, flatten onto white, JPEG q80
    """
    if len(image.data) < COMPRESS_THRESHOLD_BYTES:
        return image

    img = Image.open(io.BytesIO(image.data))
    w, h = img.size
    if w > COMPRESS_MAX_WIDTH:
        h = round(h * COMPRESS_MAX_WIDTH / w)
        w = COMPRESS_MAX_WIDTH
        img = img.resize((w, h), Image.LANCZOS)

    data = _to_jpeg_bytes(_flatten_rgb(img), COMPRESS_QUALITY)
    stem = os.path.splitext(image.filename or "chart")[0] or "chart"
    return ChartImage(filename=f"{stem}.jpg", data=data, content_type="image/jpeg")


def scaled_size(width: int, height: int, max_size: int) -> tuple[int, int]:
    """Clamp the longer side to ``max_size`` keeping aspect ratio. Never upscales."""
    if width >= height:
        if width > max_size:
            height = height * max_size / width
            width = max_size
    elif height > max_size:
        width = width * max_size / height
        height = max_size
    return max(1, round(width)), max(1, round(height))


@dataclass(frozen=True)
class ThumbnailResult:
    data_url: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.data_url)


def make_thumbnail(raw: bytes, *, max_size: int = 200, quality: int = 70) -> ThumbnailResult:
    """Small JPEG data URL for the journal. Failures give an empty thumbnail."""
    try:
        img = Image.open(io.BytesIO(raw))
        img.load()
        size = scaled_size(img.size[0], img.size[1], max_size)
        thumb = _flatten_rgb(img).resize(size, Image.LANCZOS)
        b64 = base64.b64encode(_to_jpeg_bytes(thumb, quality)).decode("utf-8")
    except Exception as e:
        return ThumbnailResult(error=f"{type(e).__name__}: {e}")
    return ThumbnailResult(data_url=f"data:image/jpeg;base64,{b64}")
