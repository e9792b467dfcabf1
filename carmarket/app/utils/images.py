from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

ALLOWED_FORMATS = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "WEBP": ("webp", "image/webp"),
}


class InvalidImageError(ValueError):
    pass


@dataclass
class ImageInfo:
    extension: str
    content_type: str
    width: int
    height: int


def inspect_image(data: bytes, *, max_bytes: int, filename: str = "") -> ImageInfo:
    label = filename or "image"
    if not data:
        raise InvalidImageError(f"{label}: empty file")
    if len(data) > max_bytes:
        raise InvalidImageError(f"{label}: larger than {max_bytes // (1024 * 1024)}MB")
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            width, height = img.size
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidImageError(f"{label}: not a readable image") from exc
    if fmt not in ALLOWED_FORMATS:
        raise InvalidImageError(f"{label}: unsupported format {fmt}")
    ext, content_type = ALLOWED_FORMATS[fmt]
    return ImageInfo(extension=ext, content_type=content_type, width=width, height=height)
