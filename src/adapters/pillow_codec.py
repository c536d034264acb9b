"""
Pillow image codec.

WebP keeps an alpha channel, so RGBA/LA sources are preserved; palette and
other modes are normalized before encoding.
"""

from __future__ import annotations

from io import BytesIO

from PIL import Image

_PIL_FORMATS = {
    "jpeg": "JPEG",
    "jpg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
}


class PillowImageCodec:
    def decode(self, data: bytes, source_format: str) -> Image.Image:
        fmt = _PIL_FORMATS.get(source_format.lower())
        im = Image.open(BytesIO(data), formats=[fmt] if fmt else None)
        im.load()
        return im

    def encode(self, image: Image.Image, target_format: str, quality: int) -> bytes:
        fmt = _PIL_FORMATS.get(target_format.lower(), target_format.upper())
        im = image
        if im.mode == "P":
            im = im.convert("RGBA" if "transparency" in im.info else "RGB")
        elif im.mode not in ("RGB", "RGBA", "LA"):
            im = im.convert("RGB")
        if im.mode == "LA":
            im = im.convert("RGBA")

        buf = BytesIO()
        im.save(buf, format=fmt, quality=quality)
        return buf.getvalue()
