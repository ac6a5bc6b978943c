"""
Image format detection from magic numbers.

Logo URLs on the scraped sites often carry the wrong extension (or none), so
the stored format is always taken from the first bytes of the payload.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ImageFormat:
    extension: str
    content_type: str


PNG = ImageFormat("png", "image/png")
JPEG = ImageFormat("jpg", "image/jpeg")
GIF = ImageFormat("gif", "image/gif")
WEBP = ImageFormat("webp", "image/webp")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")


def detect_image_format(data: bytes) -> Optional[ImageFormat]:
    """
    Identify PNG, JPEG, GIF or WEBP data by its signature.

    Returns None for anything else, including empty or truncated payloads.

    Examples:
        >>> detect_image_format(b"\\xff\\xd8\\xff\\xe0rest").content_type
        'image/jpeg'
        >>> detect_image_format(b"<html>") is None
        True
    """
    if not data:
        return None
    if data.startswith(PNG_SIGNATURE):
        return PNG
    if data.startswith(JPEG_SIGNATURE):
        return JPEG
    if data.startswith(GIF_SIGNATURES):
        return GIF
    # RIFF container: "RIFF" + 4-byte size + "WEBP"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return WEBP
    return None
