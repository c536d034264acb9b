"""
Pure helpers for the asset manager: conversion, naming, cover derivation.

Nothing here performs I/O; the codec is passed in.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import PurePath
from urllib.parse import unquote, urlsplit

from src.domain.entities import PostImage
from src.domain.errors import PayloadTooLargeError, ValidationError

from .models import AssetsConfig, ConversionResult
from .ports import ImageCodecPort

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/avif": "avif",
    "image/svg+xml": "svg",
}

# Codec format names by MIME type
_CODEC_FORMATS = {
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_FOCAL_POINT = re.compile(r"^(\d{1,3}(?:\.\d+)?)% (\d{1,3}(?:\.\d+)?)%$")

ALT_TEXT_MAX_LENGTH = 500


def mime_to_extension(content_type: str, filename: str | None = None) -> str:
    """File extension for a MIME type, falling back to the filename's own."""
    ext = MIME_EXTENSIONS.get(content_type.lower())
    if ext:
        return ext
    if filename:
        suffix = PurePath(filename).suffix.lstrip(".").lower()
        if suffix and not _UNSAFE_NAME_CHARS.search(suffix):
            return suffix
    return "bin"


def is_image(content_type: str) -> bool:
    return content_type.lower().startswith("image/")


def validate_upload_size(size_bytes: int, max_bytes: int) -> None:
    """Raise PayloadTooLargeError when the measured size exceeds the bound."""
    if size_bytes > max_bytes:
        raise PayloadTooLargeError(size_bytes, max_bytes)


def convert_image(
    data: bytes,
    content_type: str,
    codec: ImageCodecPort,
    config: AssetsConfig,
    *,
    filename: str | None = None,
) -> ConversionResult:
    """
    Convert an upload to the target web format when possible.

    Convertible types are re-encoded; the target type and unsupported types
    pass through untouched. A decode or encode failure never rejects the
    upload: the original bytes are returned with their own extension.
    """
    ctype = content_type.lower()
    original = ConversionResult(
        data=data,
        converted=False,
        extension=mime_to_extension(ctype, filename),
        content_type=content_type,
    )

    if ctype == config.target_mime_type:
        return ConversionResult(data, False, config.target_extension, config.target_mime_type)

    if ctype not in config.convertible_mime_types:
        if ctype not in config.passthrough_mime_types:
            logger.info("Skipping conversion for unsupported type %s", content_type)
        return original

    source_format = _CODEC_FORMATS.get(ctype, ctype.split("/")[-1])
    try:
        image = codec.decode(data, source_format)
        encoded = codec.encode(image, config.target_extension, config.quality)
    except Exception as e:
        logger.warning(
            "Conversion %s -> %s failed, storing original: %s",
            content_type,
            config.target_mime_type,
            e,
        )
        return original

    logger.debug(
        "Converted %s -> %s (%d -> %d bytes)",
        content_type,
        config.target_mime_type,
        len(data),
        len(encoded),
    )
    return ConversionResult(encoded, True, config.target_extension, config.target_mime_type)


def generate_object_name(
    filename: str,
    extension: str,
    now: datetime,
    *,
    token: str | None = None,
) -> str:
    """
    Collision-resistant storage name: "{epoch_ms}-{safe_base}-{token}.{ext}".

    The base is the original name without its extension, reduced to [A-Za-z0-9_-].
    """
    base = PurePath(filename).stem or "image"
    safe_base = _UNSAFE_NAME_CHARS.sub("_", base)[:80] or "image"
    token = token if token is not None else uuid.uuid4().hex[:8]
    epoch_ms = int(now.timestamp() * 1000)
    return f"{epoch_ms}-{safe_base}-{token}.{extension}"


def object_key_from_url(url: str | None, bucket: str) -> str | None:
    """
    Storage key of a public URL inside the bucket, or None for foreign URLs.

    Only URLs under the bucket are managed objects; anything else (external
    images, legacy links) is never deleted.
    """
    if not url:
        return None
    path = urlsplit(url).path
    marker = f"/{bucket}/"
    if marker not in path:
        return None
    key = unquote(path.split(marker, 1)[1])
    return key or None


def derive_cover(
    images: Sequence[PostImage],
    current_cover: str | None,
    *,
    removed_urls: Iterable[str] = (),
) -> str | None:
    """
    The cover a post should display.

    A current cover that is not one of the gallery's own URLs (including the
    ones just removed) is a legacy cover and stays. Otherwise the image with
    the lowest sort order wins, or there is no cover.
    """
    gallery_urls = {i.image_url for i in images} | set(removed_urls)
    if current_cover and current_cover not in gallery_urls:
        return current_cover
    if images:
        return min(images, key=lambda i: (i.sort_order, i.id)).image_url
    return None


def dense_orders(images: Sequence[PostImage]) -> list[tuple[int, int]]:
    """(image_id, sort_order) pairs renumbering images 0..n-1 in their given order."""
    return [(image.id, index) for index, image in enumerate(images)]


def validate_focal_point(value: str | None) -> str | None:
    """Accept "X% Y%" with both coordinates in 0..100; blank clears it."""
    if value is None or not value.strip():
        return None
    cleaned = " ".join(value.split())
    match = _FOCAL_POINT.match(cleaned)
    if not match or any(float(c) > 100 for c in match.groups()):
        raise ValidationError(
            "focal_point must look like '50% 30%' with values from 0 to 100",
            field="focal_point",
        )
    return cleaned


def normalize_alt_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if len(cleaned) > ALT_TEXT_MAX_LENGTH:
        raise ValidationError(
            f"alt_text must be at most {ALT_TEXT_MAX_LENGTH} characters", field="alt_text"
        )
    return cleaned or None
